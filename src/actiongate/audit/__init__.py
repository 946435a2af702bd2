"""
Hierarchical execution log for ActionGate tasks.

Every task has a root entry with its steps as children. Records are
hash-chained per task and can be persisted as JSON Lines.
"""

from actiongate.audit.logger import GENESIS_HASH, HierarchicalLogger
from actiongate.audit.models import ChainVerification, LogEntry, LogStatus, TaskLog

__all__ = [
    "GENESIS_HASH",
    "ChainVerification",
    "HierarchicalLogger",
    "LogEntry",
    "LogStatus",
    "TaskLog",
]
