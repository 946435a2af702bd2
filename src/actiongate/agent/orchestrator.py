"""Orchestrator: the single entry point that turns a command into a result."""

import asyncio
import logging
from typing import Any, Callable, Iterable, Optional, Union

from actiongate.agent.loop import ExecutionLoop
from actiongate.agent.models import (
    AgentEvent,
    ConversationTurn,
    ExecutionState,
    LoopResult,
    Task,
    TaskResult,
)
from actiongate.agent.strategies import ProviderStrategy, create_strategy
from actiongate.approval.channel import ApprovalChannel
from actiongate.approval.gate import ApprovalGate
from actiongate.audit.logger import HierarchicalLogger
from actiongate.audit.models import LogStatus
from actiongate.backend.client import BackendClient, ToolExecutor
from actiongate.config.schema import Config
from actiongate.exceptions import IterationLimitExceeded
from actiongate.providers.client import ModelBackend, ModelClient
from actiongate.tools.catalog import build_default_registry
from actiongate.tools.registry import ToolRegistry
from actiongate.tools.translator import ProviderVariant

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Sorry, I couldn't complete that request."
ITERATION_LIMIT_MESSAGE = "Sorry, that request needed more steps than I'm allowed to take."
TIMEOUT_MESSAGE = "Sorry, the assistant took too long to respond. Please try again."

HistoryItem = Union[ConversationTurn, dict[str, Any]]


class Orchestrator:
    """Composition root of the engine.

    Wires a provider strategy, the tool registry, the approval gate and
    the hierarchical logger into :meth:`run_task`. Tasks share only the
    read-only registry, so several can run concurrently.
    """

    def __init__(
        self,
        model: ModelBackend,
        registry: ToolRegistry,
        executor: ToolExecutor,
        gate: ApprovalGate,
        audit: HierarchicalLogger,
        variant: ProviderVariant | str = ProviderVariant.JSON,
        max_iterations: int = 10,
        format_retries: int = 2,
        model_timeout: float = 60.0,
        history_window: int = 4,
        instructions: Optional[str] = None,
        approval_ttl_ms: Optional[int] = None,
        event_callback: Optional[Callable[[AgentEvent], None]] = None,
    ):
        self.model = model
        self.registry = registry
        self.executor = executor
        self.gate = gate
        self.audit = audit
        self.variant = ProviderVariant(variant)
        self.max_iterations = max_iterations
        self.format_retries = format_retries
        self.model_timeout = model_timeout
        self.history_window = history_window
        self.approval_ttl_ms = approval_ttl_ms
        self.event_callback = event_callback
        self.strategy: ProviderStrategy = create_strategy(self.variant, registry, instructions)

    @classmethod
    def from_config(
        cls,
        config: Config,
        approval_channel: Optional[ApprovalChannel] = None,
        event_callback: Optional[Callable[[AgentEvent], None]] = None,
    ) -> "Orchestrator":
        """Build an orchestrator and its collaborators from configuration.

        Args:
            config: Loaded configuration
            approval_channel: Where approval requests go (requests time out if None)
            event_callback: Optional callback for streaming events
        """
        return cls(
            model=ModelClient(config.model),
            registry=build_default_registry(),
            executor=BackendClient.from_config(config.backend),
            gate=ApprovalGate(approval_channel, default_ttl_ms=config.approval.ttl_ms),
            audit=HierarchicalLogger.from_config(config.audit),
            variant=config.model.variant,
            max_iterations=config.agent.max_iterations,
            format_retries=config.agent.format_retries,
            model_timeout=config.model.request_timeout,
            history_window=config.agent.history_window,
            instructions=config.agent.instructions,
            approval_ttl_ms=config.approval.ttl_ms,
            event_callback=event_callback,
        )

    async def aclose(self) -> None:
        """Release the backend connection and flush the audit log."""
        close = getattr(self.executor, "aclose", None)
        if close is not None:
            await close()
        self.audit.close()

    def _window(self, history: Optional[Iterable[HistoryItem]]) -> list[ConversationTurn]:
        turns = [
            turn if isinstance(turn, ConversationTurn) else ConversationTurn.model_validate(turn)
            for turn in (history or [])
        ]
        if self.history_window <= 0:
            return []
        return turns[-self.history_window :]

    async def run_task(
        self,
        command: str,
        history: Optional[Iterable[HistoryItem]] = None,
    ) -> TaskResult:
        """Run one operator command to completion.

        Args:
            command: Natural-language command
            history: Prior conversation turns (only the most recent are sent)

        Returns:
            TaskResult with the final answer and the full step log
        """
        task = Task(command=command, history=self._window(history))
        root_id = await self.audit.start_task(command, task_id=task.id)

        loop = ExecutionLoop(
            model=self.model,
            strategy=self.strategy,
            registry=self.registry,
            executor=self.executor,
            gate=self.gate,
            audit=self.audit,
            max_iterations=self.max_iterations,
            format_retries=self.format_retries,
            model_timeout=self.model_timeout,
            approval_ttl_ms=self.approval_ttl_ms,
            event_callback=self.event_callback,
        )

        try:
            outcome = await loop.run(task, root_id)
        except asyncio.CancelledError:
            logger.warning(f"Task {task.id} cancelled")
            await self._finalize_cancelled(root_id, task)
            raise
        except Exception as e:
            logger.error(f"Task {task.id} crashed: {e}", exc_info=True)
            outcome = LoopResult(
                state=ExecutionState.FAILED,
                output="",
                iterations=task.iteration_count,
                error=e,
            )

        output = outcome.output if outcome.success else self._failure_output(outcome)
        error = str(outcome.error) if outcome.error else None

        if outcome.success:
            await self.audit.finalize(
                root_id,
                LogStatus.SUCCESS,
                data={"output": output, "iterations": outcome.iterations},
            )
        else:
            await self.audit.finalize(
                root_id,
                LogStatus.FAILED,
                data={"iterations": outcome.iterations, "state": outcome.state.value},
                error={"type": type(outcome.error).__name__, "message": error},
            )

        task_log = self.audit.get_task(task.id)
        return TaskResult(
            output=output,
            log=task_log.entries if task_log else [],
            task_id=task.id,
            success=outcome.success,
            state=outcome.state,
            error=error,
            iterations=outcome.iterations,
        )

    async def _finalize_cancelled(self, root_id: int, task: Task) -> None:
        # The root must not stay PENDING when the caller gives up on the task
        await self.audit.finalize(
            root_id,
            LogStatus.FAILED,
            data={"iterations": task.iteration_count, "state": ExecutionState.FAILED.value},
            error={"type": "CancelledError", "message": "task cancelled"},
        )

    @staticmethod
    def _failure_output(outcome: LoopResult) -> str:
        # Never expose tool names or backend details to the operator
        if isinstance(outcome.error, IterationLimitExceeded):
            return ITERATION_LIMIT_MESSAGE
        if outcome.state == ExecutionState.TIMEOUT:
            return TIMEOUT_MESSAGE
        return FAILURE_MESSAGE
