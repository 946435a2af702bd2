"""Tests for the orchestrator."""

import asyncio

import pytest

from actiongate.agent.models import ConversationTurn, ExecutionState
from actiongate.agent.orchestrator import (
    FAILURE_MESSAGE,
    ITERATION_LIMIT_MESSAGE,
    TIMEOUT_MESSAGE,
    Orchestrator,
)
from actiongate.approval.gate import ApprovalGate
from actiongate.audit.logger import HierarchicalLogger
from actiongate.audit.models import LogStatus
from actiongate.backend.client import BackendClient
from actiongate.config.schema import Config
from actiongate.providers.client import ModelClient
from fakes import FakeExecutor, ScriptedModel, text, tool_call


def _orchestrator(script, registry, gate, audit, executor=None, **kwargs) -> Orchestrator:
    return Orchestrator(
        model=ScriptedModel(script),
        registry=registry,
        executor=executor or FakeExecutor(),
        gate=gate,
        audit=audit,
        **kwargs,
    )


class TestRunTask:
    """Tests for turning a command into a TaskResult."""

    @pytest.mark.asyncio
    async def test_success(self, registry, approve_gate, audit):
        """A finished task returns the answer and its full log."""
        orchestrator = _orchestrator(
            [tool_call("close_ticket", {"id": 12}), text("Ticket 12 is closed.")],
            registry,
            approve_gate,
            audit,
        )
        result = await orchestrator.run_task("close ticket 12")

        assert result.success
        assert result.state == ExecutionState.FINAL
        assert result.output == "Ticket 12 is closed."
        assert result.iterations == 2
        assert result.log[0].action == "close ticket 12"
        assert result.log[0].status == LogStatus.SUCCESS
        assert result.log[0].finalized_at is not None
        assert audit.verify(result.task_id).valid

    @pytest.mark.asyncio
    async def test_iteration_limit_message(self, registry, approve_gate, audit):
        """The operator gets a plain message when the cap is hit."""
        orchestrator = _orchestrator(
            [tool_call("get_open_tickets", "{}") for _ in range(2)],
            registry,
            approve_gate,
            audit,
            max_iterations=2,
        )
        result = await orchestrator.run_task("loop forever")

        assert not result.success
        assert result.output == ITERATION_LIMIT_MESSAGE
        assert result.log[0].status == LogStatus.FAILED
        assert result.log[0].error["type"] == "IterationLimitExceeded"

    @pytest.mark.asyncio
    async def test_timeout_message(self, registry, approve_gate, audit):
        """A first-call timeout has its own message."""
        orchestrator = _orchestrator(
            [("sleep", 1.0)], registry, approve_gate, audit, model_timeout=0.05
        )
        result = await orchestrator.run_task("hello")

        assert result.state == ExecutionState.TIMEOUT
        assert result.output == TIMEOUT_MESSAGE

    @pytest.mark.asyncio
    async def test_crash_is_contained(self, registry, approve_gate, audit):
        """Unexpected exceptions become a FAILED task with a generic message."""
        orchestrator = _orchestrator([ValueError("bug")], registry, approve_gate, audit)
        result = await orchestrator.run_task("hello")

        assert result.state == ExecutionState.FAILED
        assert result.output == FAILURE_MESSAGE
        assert "bug" in result.error
        assert "get_order" not in result.output

    @pytest.mark.asyncio
    async def test_history_window(self, registry, approve_gate, audit):
        """Only the most recent turns reach the model."""
        model = ScriptedModel([text("Done.")])
        orchestrator = Orchestrator(
            model=model,
            registry=registry,
            executor=FakeExecutor(),
            gate=approve_gate,
            audit=audit,
            history_window=2,
        )
        history = [
            {"role": "user", "content": "first"},
            {"role": "agent", "content": "second"},
            ConversationTurn(role="user", content="third"),
            ConversationTurn(role="agent", content="fourth"),
        ]
        await orchestrator.run_task("now this", history=history)

        prompt = model.calls[0]["messages"][1].content
        assert "first" not in prompt
        assert "second" not in prompt
        assert "User: third" in prompt
        assert "Assistant: fourth" in prompt
        assert prompt.endswith("Current request: now this")

    @pytest.mark.asyncio
    async def test_zero_history_window(self, registry, approve_gate, audit):
        """A window of zero sends the bare command."""
        model = ScriptedModel([text("Done.")])
        orchestrator = Orchestrator(
            model=model,
            registry=registry,
            executor=FakeExecutor(),
            gate=approve_gate,
            audit=audit,
            history_window=0,
        )
        await orchestrator.run_task("now this", history=[{"role": "user", "content": "old"}])
        assert model.calls[0]["messages"][1].content == "now this"

    @pytest.mark.asyncio
    async def test_concurrent_tasks(self, registry, audit):
        """A task waiting for approval does not block another task."""
        gate = ApprovalGate()  # never answers
        slow = _orchestrator(
            [tool_call("process_refund", {"id": 45, "reason": "x"}), text("Not approved.")],
            registry,
            gate,
            audit,
            approval_ttl_ms=300,
        )
        fast = _orchestrator(
            [tool_call("get_ticket", {"id": 1}), text("Ticket 1 is open.")],
            registry,
            gate,
            audit,
        )

        slow_task = asyncio.create_task(slow.run_task("refund order 45"))
        fast_result = await fast.run_task("show ticket 1")
        assert fast_result.success
        assert not slow_task.done()

        slow_result = await slow_task
        assert slow_result.output == "Not approved."
        assert {root.task_id for root in audit.list_tasks()} == {
            fast_result.task_id,
            slow_result.task_id,
        }

    @pytest.mark.asyncio
    async def test_to_dict(self, registry, approve_gate, audit):
        """Results serialize with the step log."""
        orchestrator = _orchestrator([text("Hi.")], registry, approve_gate, audit)
        data = (await orchestrator.run_task("hello")).to_dict()
        assert data["state"] == "final"
        assert data["log"][0]["status"] == "SUCCESS"

    @pytest.mark.asyncio
    async def test_cancelled_task_is_finalized(self, registry, silent_gate, audit):
        """Cancelling a task waiting for approval fails its root and re-raises."""
        orchestrator = _orchestrator(
            [tool_call("process_refund", {"id": 45, "reason": "damaged item"})],
            registry,
            silent_gate,
            audit,
            approval_ttl_ms=60_000,
        )
        running = asyncio.create_task(orchestrator.run_task("refund order 45"))
        while not silent_gate.pending():
            await asyncio.sleep(0.01)

        running.cancel()
        with pytest.raises(asyncio.CancelledError):
            await running

        [root] = audit.list_tasks()
        assert root.status == LogStatus.FAILED
        assert root.error["type"] == "CancelledError"
        assert root.finalized_at is not None
        assert audit.verify(root.task_id).valid
        assert silent_gate.pending() == []


class TestFromConfig:
    """Tests for wiring collaborators from configuration."""

    @pytest.mark.asyncio
    async def test_from_config(self, temp_dir):
        """Configuration values reach every collaborator."""
        config = Config.model_validate(
            {
                "model": {"variant": "textual", "name": "ollama/llama3"},
                "agent": {"max_iterations": 5, "history_window": 2},
                "approval": {"ttl_ms": 1000},
                "audit": {"path": str(temp_dir / "audit.jsonl")},
            }
        )
        orchestrator = Orchestrator.from_config(config)
        try:
            assert isinstance(orchestrator.model, ModelClient)
            assert isinstance(orchestrator.executor, BackendClient)
            assert isinstance(orchestrator.audit, HierarchicalLogger)
            assert orchestrator.variant.value == "textual"
            assert orchestrator.max_iterations == 5
            assert orchestrator.history_window == 2
            assert orchestrator.gate.default_ttl_ms == 1000
            assert orchestrator.strategy.tool_specs() is None
        finally:
            await orchestrator.aclose()
