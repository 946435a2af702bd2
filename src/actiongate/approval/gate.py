"""Approval gate: suspends a task until a human approves, rejects, or time runs out."""

import asyncio
import logging
import time
from typing import Any, Optional, Union

from actiongate.approval.channel import ApprovalChannel, AutoDecisionChannel
from actiongate.approval.models import ApprovalDecision, ApprovalRequest, ApprovalResponse
from actiongate.tools.models import ToolDefinition

logger = logging.getLogger(__name__)


class ApprovalGate:
    """Correlates outbound approval requests with inbound decisions.

    Each request gets its own future keyed by request id. Only the task
    awaiting that future is suspended; other tasks keep running. A request
    resolves exactly once, to APPROVED, REJECTED or TIMEOUT.
    """

    def __init__(
        self,
        channel: Optional[ApprovalChannel] = None,
        default_ttl_ms: int = 300_000,
    ):
        """Initialize the gate.

        Args:
            channel: Transport used to reach approvers. Defaults to a channel
                     that never answers, so every request times out.
            default_ttl_ms: TTL for requests built with :meth:`create_request`
        """
        self.channel = channel or AutoDecisionChannel(approved=None)
        self.channel.attach(self.resolve)
        self.default_ttl_ms = default_ttl_ms

        self._pending: dict[str, tuple[ApprovalRequest, asyncio.Future[ApprovalResponse]]] = {}
        # Resolved request id -> monotonic time after which it is forgotten
        self._resolved: dict[str, float] = {}

    def create_request(
        self,
        task_id: str,
        definition: ToolDefinition,
        arguments: dict[str, Any],
        ttl_ms: Optional[int] = None,
    ) -> ApprovalRequest:
        """Build an approval request for a sensitive tool call."""
        return ApprovalRequest(
            task_id=task_id,
            tool_name=definition.name,
            description=definition.describe_call(arguments),
            payload=dict(arguments),
            ttl_ms=ttl_ms or self.default_ttl_ms,
        )

    async def request_approval(self, request: ApprovalRequest) -> ApprovalResponse:
        """Publish a request and wait for its decision.

        Never raises for rejection or timeout; the decision is in the
        returned response.

        Raises:
            ValueError: If a request with this id was already issued
        """
        self._forget_expired()
        if request.id in self._pending or request.id in self._resolved:
            raise ValueError(f"Approval request {request.id} was already issued")

        future: asyncio.Future[ApprovalResponse] = asyncio.get_running_loop().create_future()
        self._pending[request.id] = (request, future)
        logger.info(
            f"Approval required for {request.tool_name} "
            f"(request {request.id}, task {request.task_id}, ttl {request.ttl_ms}ms)"
        )

        try:
            response = await asyncio.wait_for(
                self._publish_and_wait(request, future),
                timeout=request.ttl_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Approval timeout: {request.id}")
            response = ApprovalResponse.timed_out(request.id)
        except Exception as e:
            # A channel that cannot publish counts as a rejection of this call only
            logger.error(f"Approval channel failed for {request.id}: {e}", exc_info=True)
            response = ApprovalResponse(
                id=request.id,
                decision=ApprovalDecision.REJECTED,
                reason="approval channel unavailable",
            )
        finally:
            self._pending.pop(request.id, None)
            self._resolved[request.id] = time.monotonic() + request.ttl_seconds

        logger.info(f"Approval {request.id} resolved: {response.decision.value}")
        return response

    async def _publish_and_wait(
        self,
        request: ApprovalRequest,
        future: asyncio.Future[ApprovalResponse],
    ) -> ApprovalResponse:
        await self.channel.publish(request.to_event())
        return await future

    def _forget_expired(self) -> None:
        # A resolved id only blocks reuse for one TTL after resolution
        now = time.monotonic()
        for request_id in [rid for rid, until in self._resolved.items() if until <= now]:
            del self._resolved[request_id]

    def resolve(self, event: Union[dict[str, Any], ApprovalResponse]) -> bool:
        """Hand an inbound decision to the waiting task.

        Args:
            event: ``approval_response`` event or an ApprovalResponse

        Returns:
            True if a pending request was resolved, False if the id is
            unknown, expired or already resolved
        """
        try:
            response = (
                event if isinstance(event, ApprovalResponse) else ApprovalResponse.from_event(event)
            )
        except ValueError as e:
            logger.warning(f"Ignoring malformed approval response: {e}")
            return False

        entry = self._pending.get(response.id)
        if entry is None:
            logger.warning(f"No pending approval for id: {response.id}")
            return False

        _, future = entry
        if future.done():
            logger.warning(f"Approval {response.id} already resolved")
            return False

        future.set_result(response)
        return True

    def pending(self) -> list[ApprovalRequest]:
        """Requests still waiting for a decision."""
        return [request for request, _ in self._pending.values()]

    def __len__(self) -> int:
        return len(self._pending)
