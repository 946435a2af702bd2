"""Tests for the approval gate and channels."""

import asyncio
from types import SimpleNamespace

import pytest

from actiongate.approval import gate as gate_module
from actiongate.approval.channel import AutoDecisionChannel, CallbackApprovalChannel
from actiongate.approval.gate import ApprovalGate
from actiongate.approval.models import ApprovalDecision, ApprovalRequest, ApprovalResponse


def _request(gate: ApprovalGate, registry, ttl_ms: int | None = None) -> ApprovalRequest:
    return gate.create_request(
        "task-1",
        registry.resolve("process_refund"),
        {"id": 45, "reason": "damaged item"},
        ttl_ms=ttl_ms,
    )


class TestApprovalModels:
    """Tests for request and response models."""

    def test_request_event(self, registry):
        """The outbound event carries id, action, description and timeout."""
        request = _request(ApprovalGate(), registry, ttl_ms=1000)
        event = request.to_event()
        assert event["type"] == "approval_required"
        assert event["id"] == request.id
        assert event["action"] == "process_refund"
        assert event["description"] == "Refund order #45: damaged item"
        assert event["timeout"] == 1000
        assert event["data"] == {"id": 45, "reason": "damaged item"}

    def test_response_from_event(self):
        """Inbound events map to approved or rejected."""
        approved = ApprovalResponse.from_event({"type": "approval_response", "id": "a", "approved": True})
        rejected = ApprovalResponse.from_event({"id": "b", "approved": False, "reason": "no"})
        assert approved.decision == ApprovalDecision.APPROVED
        assert rejected.decision == ApprovalDecision.REJECTED
        assert rejected.reason == "no"

    @pytest.mark.parametrize("approved", ["false", "true", "yes", 1, "0", [False], None])
    def test_non_boolean_approval_rejects(self, approved):
        """Only a literal true approves; truthy strings and numbers do not."""
        response = ApprovalResponse.from_event({"id": "a", "approved": approved})
        assert response.decision == ApprovalDecision.REJECTED
        assert not response.approved

    def test_missing_approved_rejects(self):
        """An event without the approved field is a rejection."""
        assert ApprovalResponse.from_event({"id": "a"}).decision == ApprovalDecision.REJECTED

    @pytest.mark.parametrize(
        "event",
        [{"type": "approval_required", "id": "a"}, {"type": "approval_response"}],
    )
    def test_malformed_response_event(self, event):
        """Wrong type or missing id is rejected."""
        with pytest.raises(ValueError):
            ApprovalResponse.from_event(event)

    def test_default_ttl(self, registry):
        """Requests default to the gate's TTL."""
        gate = ApprovalGate(default_ttl_ms=300_000)
        assert _request(gate, registry).ttl_ms == 300_000


class TestApprovalGate:
    """Tests for correlating requests with decisions."""

    @pytest.mark.asyncio
    async def test_approved(self, approve_gate, registry):
        """An approving channel resolves the request as APPROVED."""
        response = await approve_gate.request_approval(_request(approve_gate, registry))
        assert response.approved
        assert len(approve_gate) == 0

    @pytest.mark.asyncio
    async def test_rejected(self, reject_gate, registry):
        """A rejecting channel resolves with its reason."""
        response = await reject_gate.request_approval(_request(reject_gate, registry))
        assert response.decision == ApprovalDecision.REJECTED
        assert response.reason == "not this one"

    @pytest.mark.asyncio
    async def test_timeout(self, silent_gate, registry):
        """No answer within the TTL resolves as TIMEOUT."""
        response = await silent_gate.request_approval(_request(silent_gate, registry, ttl_ms=20))
        assert response.decision == ApprovalDecision.TIMEOUT
        assert not response.approved
        assert silent_gate.pending() == []

    @pytest.mark.asyncio
    async def test_external_resolution(self, registry):
        """A decision delivered from outside resolves the waiting task."""
        published = []
        gate = ApprovalGate(CallbackApprovalChannel(published.append))
        request = _request(gate, registry, ttl_ms=5000)

        waiter = asyncio.create_task(gate.request_approval(request))
        while not published:
            await asyncio.sleep(0)

        assert gate.pending() == [request]
        assert gate.resolve({"type": "approval_response", "id": request.id, "approved": True})
        response = await waiter
        assert response.approved

    @pytest.mark.asyncio
    @pytest.mark.parametrize("approved", ["false", "yes", 1])
    async def test_string_approval_does_not_execute(self, registry, approved):
        """A client sending a non-boolean approval gets a rejection, not an approval."""
        published = []
        gate = ApprovalGate(CallbackApprovalChannel(published.append))
        request = _request(gate, registry, ttl_ms=5000)

        waiter = asyncio.create_task(gate.request_approval(request))
        while not published:
            await asyncio.sleep(0)

        assert gate.resolve({"type": "approval_response", "id": request.id, "approved": approved})
        response = await waiter
        assert response.decision == ApprovalDecision.REJECTED
        assert not response.approved

    @pytest.mark.asyncio
    async def test_late_response_ignored(self, silent_gate, registry):
        """A response after the timeout does not resolve anything."""
        request = _request(silent_gate, registry, ttl_ms=10)
        response = await silent_gate.request_approval(request)
        assert response.decision == ApprovalDecision.TIMEOUT
        assert silent_gate.resolve({"id": request.id, "approved": True}) is False

    def test_unknown_id(self):
        """Responses for unknown ids are ignored."""
        gate = ApprovalGate()
        assert gate.resolve({"id": "missing", "approved": True}) is False

    def test_malformed_response(self):
        """Malformed responses are ignored."""
        gate = ApprovalGate()
        assert gate.resolve({"type": "something_else", "id": "x"}) is False

    @pytest.mark.asyncio
    async def test_duplicate_request(self, approve_gate, registry):
        """A request id can only be issued once."""
        request = _request(approve_gate, registry)
        await approve_gate.request_approval(request)
        with pytest.raises(ValueError, match="already issued"):
            await approve_gate.request_approval(request)

    @pytest.mark.asyncio
    async def test_resolved_ids_are_forgotten(self, approve_gate, registry, monkeypatch):
        """Resolved ids are kept for one TTL, then dropped."""
        clock = [1000.0]
        monkeypatch.setattr(gate_module, "time", SimpleNamespace(monotonic=lambda: clock[0]))

        for _ in range(50):
            await approve_gate.request_approval(_request(approve_gate, registry, ttl_ms=1000))
        assert len(approve_gate._resolved) == 50

        clock[0] += 1.5
        last = _request(approve_gate, registry, ttl_ms=1000)
        await approve_gate.request_approval(last)
        assert list(approve_gate._resolved) == [last.id]

    @pytest.mark.asyncio
    async def test_independent_requests(self, registry):
        """Concurrent requests resolve independently."""
        channel = CallbackApprovalChannel(lambda event: None)
        gate = ApprovalGate(channel)
        first = _request(gate, registry, ttl_ms=5000)
        second = _request(gate, registry, ttl_ms=5000)

        waiters = [
            asyncio.create_task(gate.request_approval(first)),
            asyncio.create_task(gate.request_approval(second)),
        ]
        while len(gate) < 2:
            await asyncio.sleep(0)

        channel.deliver({"id": second.id, "approved": False, "reason": "second no"})
        channel.deliver({"id": first.id, "approved": True})
        first_response, second_response = await asyncio.gather(*waiters)

        assert first_response.approved
        assert second_response.reason == "second no"

    @pytest.mark.asyncio
    async def test_failing_channel_rejects(self, registry):
        """A channel that cannot publish rejects only that request."""

        async def broken(event):
            raise ConnectionError("socket closed")

        gate = ApprovalGate(CallbackApprovalChannel(broken))
        response = await gate.request_approval(_request(gate, registry, ttl_ms=1000))
        assert response.decision == ApprovalDecision.REJECTED
        assert response.reason == "approval channel unavailable"


class TestAutoDecisionChannel:
    """Tests for the fixed-decision channel."""

    def test_deliver_without_gate(self):
        """Delivering before attach() drops the response."""
        channel = AutoDecisionChannel()
        assert channel.deliver({"id": "x", "approved": True}) is False

    @pytest.mark.asyncio
    async def test_records_published_events(self, registry):
        """Published events are kept for inspection."""
        channel = AutoDecisionChannel(approved=True)
        gate = ApprovalGate(channel)
        request = _request(gate, registry)
        await gate.request_approval(request)
        assert [event["id"] for event in channel.published] == [request.id]
