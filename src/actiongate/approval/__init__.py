"""Human approval for sensitive tool calls.

A sensitive call suspends its task until an approver answers through an
approval channel or the request's TTL elapses.
"""

from actiongate.approval.channel import (
    ApprovalChannel,
    AutoDecisionChannel,
    CallbackApprovalChannel,
)
from actiongate.approval.gate import ApprovalGate
from actiongate.approval.models import ApprovalDecision, ApprovalRequest, ApprovalResponse

__all__ = [
    "ApprovalChannel",
    "AutoDecisionChannel",
    "CallbackApprovalChannel",
    "ApprovalGate",
    "ApprovalDecision",
    "ApprovalRequest",
    "ApprovalResponse",
]
