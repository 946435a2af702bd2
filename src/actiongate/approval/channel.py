"""Approval channels: transports between the gate and human approvers."""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Resolver = Callable[[dict[str, Any]], bool]
Publisher = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class ApprovalChannel(ABC):
    """Base class for approval transports.

    The gate publishes ``approval_required`` events through :meth:`publish`.
    Inbound ``approval_response`` events are handed back with
    :meth:`deliver`, which forwards them to the gate the channel is
    attached to.
    """

    def __init__(self) -> None:
        self._resolver: Optional[Resolver] = None

    def attach(self, resolver: Resolver) -> None:
        """Connect the channel to a gate's resolve function."""
        self._resolver = resolver

    def deliver(self, event: dict[str, Any]) -> bool:
        """Pass an inbound response event to the attached gate.

        Returns:
            True if the event resolved a pending request
        """
        if self._resolver is None:
            logger.warning(f"Approval response {event.get('id')} dropped: no gate attached")
            return False
        return self._resolver(event)

    @abstractmethod
    async def publish(self, event: dict[str, Any]) -> None:
        """Send an ``approval_required`` event to approvers."""


class CallbackApprovalChannel(ApprovalChannel):
    """Publishes through a sync or async callable, e.g. a websocket broadcast."""

    def __init__(self, publisher: Publisher) -> None:
        super().__init__()
        self._publisher = publisher

    async def publish(self, event: dict[str, Any]) -> None:
        result = self._publisher(event)
        if inspect.isawaitable(result):
            await result


class AutoDecisionChannel(ApprovalChannel):
    """Answers every request with a fixed decision.

    Useful for development and tests. With ``approved=None`` the channel
    never answers, so requests run into their TTL.
    """

    def __init__(
        self,
        approved: Optional[bool] = True,
        reason: Optional[str] = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.approved = approved
        self.reason = reason
        self.delay = delay
        self.published: list[dict[str, Any]] = []

    async def publish(self, event: dict[str, Any]) -> None:
        self.published.append(event)
        if self.approved is None:
            return
        if self.delay:
            await asyncio.sleep(self.delay)
        self.deliver(
            {
                "type": "approval_response",
                "id": event["id"],
                "approved": self.approved,
                "reason": self.reason,
            }
        )
