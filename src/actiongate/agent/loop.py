"""Execution loop: the bounded plan, act, observe cycle of one task."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from actiongate.agent.models import AgentEvent, EventType, ExecutionState, LoopResult, Task
from actiongate.agent.parser import ModelTurn
from actiongate.agent.strategies import ProviderStrategy
from actiongate.approval.gate import ApprovalGate
from actiongate.approval.models import ApprovalDecision
from actiongate.audit.logger import HierarchicalLogger
from actiongate.audit.models import LogStatus
from actiongate.backend.client import ToolExecutor
from actiongate.exceptions import (
    ActionGateError,
    ApprovalRejected,
    ApprovalTimeout,
    FatalConfigurationError,
    FormatError,
    IterationLimitExceeded,
)
from actiongate.providers.client import ModelBackend
from actiongate.providers.exceptions import ModelTimeoutError, ProviderError
from actiongate.providers.models import CompletionResponse
from actiongate.tools.models import ToolCallRequest, ToolCallResult, ToolDefinition
from actiongate.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

TIMEOUT_NOTICE = "The previous model request timed out. Continue with the task."


class ExecutionLoop:
    """Drives one task from command to a terminal state.

    Each iteration is one model call:
    1. Send the transcript to the model (AWAITING_MODEL)
    2. Interpret the response (TOOL_REQUESTED)
    3. Ask a human if the tool is sensitive (APPROVAL_PENDING)
    4. Validate and dispatch exactly one tool call (TOOL_EXECUTING)
    5. Feed the observation back and repeat

    The loop ends on a final answer, the iteration cap, or a fatal error.
    """

    def __init__(
        self,
        model: ModelBackend,
        strategy: ProviderStrategy,
        registry: ToolRegistry,
        executor: ToolExecutor,
        gate: ApprovalGate,
        audit: HierarchicalLogger,
        max_iterations: int = 10,
        format_retries: int = 2,
        model_timeout: float = 60.0,
        approval_ttl_ms: Optional[int] = None,
        event_callback: Optional[Callable[[AgentEvent], None]] = None,
    ):
        """Initialize the loop.

        Args:
            model: External language model
            strategy: Provider strategy matching the model's protocol
            registry: Read-only tool registry
            executor: Runs validated calls (the backend client)
            gate: Approval gate for sensitive tools
            audit: Hierarchical logger for the step tree
            max_iterations: Maximum model calls per task
            format_retries: Reformulation retries for malformed textual replies
            model_timeout: Timeout per model request in seconds
            approval_ttl_ms: TTL of approval requests (gate default if None)
            event_callback: Optional callback for streaming events
        """
        self.model = model
        self.strategy = strategy
        self.registry = registry
        self.executor = executor
        self.gate = gate
        self.audit = audit
        self.max_iterations = max_iterations
        self.format_retries = format_retries
        self.model_timeout = model_timeout
        self.approval_ttl_ms = approval_ttl_ms
        self.event_callback = event_callback

    def _emit_event(
        self,
        task: Task,
        event_type: EventType,
        message: str,
        tool_name: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        """Emit an event if a callback is configured."""
        if not self.event_callback:
            return
        try:
            self.event_callback(
                AgentEvent(
                    event_type=event_type,
                    task_id=task.id,
                    iteration=task.iteration_count,
                    tool_name=tool_name,
                    message=message,
                    data=data,
                    timestamp=datetime.now().isoformat(),
                )
            )
        except Exception as e:
            logger.warning(f"Event callback error: {e}")

    async def run(self, task: Task, root_id: int) -> LoopResult:
        """Run the loop until the task reaches a terminal state.

        Args:
            task: The task to execute
            root_id: Root log entry of the task

        Returns:
            LoopResult with the terminal state and the final answer
        """
        transcript = self.strategy.initial_messages(task)
        tool_specs = self.strategy.tool_specs()
        results: list[ToolCallResult] = []
        format_failures = 0

        logger.info(f"Task {task.id}: starting ({self.strategy.variant.value} variant)")

        while True:
            if task.iteration_count >= self.max_iterations:
                error = IterationLimitExceeded(self.max_iterations)
                logger.warning(f"Task {task.id}: {error.message}")
                await self.audit.append_step(
                    root_id, "iteration_limit", LogStatus.FAILED, error=error.to_observation()["error"]
                )
                return self._finish(task, ExecutionState.FAILED, "", results, error)

            task.iteration_count += 1
            task.state = ExecutionState.AWAITING_MODEL
            iteration = task.iteration_count
            logger.info(f"Task {task.id}: iteration {iteration}/{self.max_iterations}")
            self._emit_event(
                task,
                EventType.ITERATION_START,
                f"Starting iteration {iteration}/{self.max_iterations}",
            )

            # AWAITING_MODEL
            try:
                response = await asyncio.wait_for(
                    self.model.complete(
                        transcript, tools=tool_specs, variant=self.strategy.variant
                    ),
                    timeout=self.model_timeout,
                )
            except (asyncio.TimeoutError, ModelTimeoutError) as e:
                await self.audit.append_step(
                    root_id,
                    "model_timeout",
                    LogStatus.FAILED,
                    error={"iteration": iteration, "timeout": self.model_timeout},
                )
                if iteration == 1:
                    logger.error(f"Task {task.id}: first model request timed out")
                    timeout_error = (
                        e if isinstance(e, ModelTimeoutError) else ModelTimeoutError(str(e) or "timed out")
                    )
                    return self._finish(task, ExecutionState.TIMEOUT, "", results, timeout_error)
                logger.warning(f"Task {task.id}: model request timed out, continuing")
                self.strategy.record_notice(transcript, TIMEOUT_NOTICE)
                continue
            except FatalConfigurationError as e:
                logger.error(f"Task {task.id}: {e.message}")
                await self.audit.append_step(
                    root_id, "model_error", LogStatus.FAILED, error=e.to_observation()["error"]
                )
                return self._finish(task, ExecutionState.FAILED, "", results, e)
            except ProviderError as e:
                logger.warning(f"Task {task.id}: model request failed ({e.failure_type.value}): {e}")
                await self.audit.append_step(
                    root_id,
                    "model_error",
                    LogStatus.FAILED,
                    error={"type": e.failure_type.value, "message": str(e)},
                )
                continue

            # TOOL_REQUESTED
            task.state = ExecutionState.TOOL_REQUESTED
            try:
                turn = self.strategy.interpret(response)
            except FormatError as e:
                format_failures += 1
                await self.audit.append_step(
                    root_id,
                    "format_error",
                    LogStatus.FAILED,
                    data={"attempt": format_failures, "response": response.content},
                    error=e.to_observation()["error"],
                )
                if format_failures > self.format_retries:
                    logger.error(f"Task {task.id}: unparseable response after {self.format_retries} retries")
                    return self._finish(task, ExecutionState.FAILED, "", results, e)
                logger.warning(f"Task {task.id}: malformed response, asking model to reformulate")
                self.strategy.record_format_error(transcript, response, e)
                continue

            format_failures = 0
            await self._log_model_turn(root_id, iteration, response, turn)

            if turn.is_final:
                answer = turn.final_answer or ""
                await self.audit.append_step(
                    root_id, "final_answer", LogStatus.SUCCESS, data={"answer": answer}
                )
                logger.info(f"Task {task.id}: completed after {iteration} iterations")
                return self._finish(task, ExecutionState.FINAL, answer, results)

            call = turn.calls[0]
            if len(turn.calls) > 1:
                discarded = [c.tool_name for c in turn.calls[1:]]
                logger.warning(
                    f"Task {task.id}: model requested {len(turn.calls)} tools, "
                    f"executing only {call.tool_name}; discarded {discarded}"
                )
                await self.audit.append_step(
                    root_id,
                    "discarded_tool_calls",
                    LogStatus.SUCCESS,
                    data={"executed": call.tool_name, "discarded": discarded},
                )

            try:
                result = await self._execute_call(task, root_id, call)
            except FatalConfigurationError as e:
                logger.error(f"Task {task.id}: {e.message}")
                return self._finish(task, ExecutionState.FAILED, "", results, e)

            results.append(result)
            self.strategy.record_step(transcript, turn, call, result.to_observation())

    def _finish(
        self,
        task: Task,
        state: ExecutionState,
        output: str,
        results: list[ToolCallResult],
        error: Optional[Exception] = None,
    ) -> LoopResult:
        task.state = state
        self._emit_event(
            task,
            EventType.AGENT_COMPLETE,
            f"Task finished: {state.value}",
            data={"final_response": output, "error": str(error) if error else None},
        )
        return LoopResult(
            state=state,
            output=output,
            iterations=task.iteration_count,
            tool_results=results,
            error=error,
        )

    async def _log_model_turn(
        self,
        root_id: int,
        iteration: int,
        response: CompletionResponse,
        turn: ModelTurn,
    ) -> None:
        data: dict[str, Any] = {
            "iteration": iteration,
            "requested": [c.tool_name for c in turn.calls],
            "finish_reason": response.finish_reason,
        }
        if turn.thought:
            data["thought"] = turn.thought
        await self.audit.append_step(root_id, "model_response", LogStatus.SUCCESS, data=data)

    async def _execute_call(
        self,
        task: Task,
        root_id: int,
        call: ToolCallRequest,
    ) -> ToolCallResult:
        """Validate, gate and dispatch one tool call.

        Recoverable errors become failed results. Fatal errors propagate.
        """
        self._emit_event(
            task,
            EventType.TOOL_REQUESTED,
            f"Model requested tool: {call.tool_name}",
            tool_name=call.tool_name,
            data={"arguments": call.raw_arguments},
        )
        step_id = await self.audit.append_step(
            root_id,
            "tool_requested",
            LogStatus.SUCCESS,
            data={"tool": call.tool_name, "arguments": call.raw_arguments, "call_id": call.call_id},
        )

        arguments: dict[str, Any] = {}
        try:
            definition = self.registry.resolve(call.tool_name)
            arguments = self.registry.validate(call.tool_name, call.raw_arguments)

            if definition.requires_approval:
                await self._await_approval(task, root_id, step_id, definition, arguments)

            # TOOL_EXECUTING
            task.state = ExecutionState.TOOL_EXECUTING
            logger.info(f"Task {task.id}: executing {definition.name}")
            output = await self.executor.execute(definition, arguments)

        except FatalConfigurationError as e:
            await self.audit.append_step(
                root_id,
                "tool_result",
                LogStatus.FAILED,
                error=e.to_observation()["error"],
                parent_id=step_id,
            )
            raise
        except ActionGateError as e:
            result = ToolCallResult(
                tool_name=call.tool_name,
                validated_arguments=arguments,
                success=False,
                output=e.message if isinstance(e, ApprovalRejected) else None,
                error={"code": e.code, "message": e.message},
                call_id=call.call_id,
            )
            return await self._record_failure(task, root_id, step_id, result)
        except Exception as e:
            logger.error(f"Tool execution failed: {call.tool_name}: {e}", exc_info=True)
            result = ToolCallResult(
                tool_name=call.tool_name,
                validated_arguments=arguments,
                success=False,
                error={"code": "TOOL_ERROR", "message": f"Tool execution failed: {e}"},
                call_id=call.call_id,
            )
            return await self._record_failure(task, root_id, step_id, result)

        result = ToolCallResult(
            tool_name=call.tool_name,
            validated_arguments=arguments,
            success=True,
            output=output,
            call_id=call.call_id,
        )
        await self.audit.append_step(
            root_id,
            "tool_result",
            LogStatus.SUCCESS,
            data={"arguments": arguments, "output": output},
            parent_id=step_id,
        )
        self._emit_event(
            task,
            EventType.TOOL_COMPLETE,
            f"Tool completed: {call.tool_name}",
            tool_name=call.tool_name,
            data={"output_preview": str(result)[:100]},
        )
        return result

    async def _record_failure(
        self,
        task: Task,
        root_id: int,
        step_id: int,
        result: ToolCallResult,
    ) -> ToolCallResult:
        logger.info(f"Task {task.id}: tool {result.tool_name} failed: {result.error}")
        await self.audit.append_step(
            root_id,
            "tool_result",
            LogStatus.FAILED,
            data={"arguments": result.validated_arguments},
            error=result.error,
            parent_id=step_id,
        )
        self._emit_event(
            task,
            EventType.TOOL_ERROR,
            f"Tool failed: {result.tool_name}",
            tool_name=result.tool_name,
            data={"error": result.error},
        )
        return result

    async def _await_approval(
        self,
        task: Task,
        root_id: int,
        step_id: int,
        definition: ToolDefinition,
        arguments: dict[str, Any],
    ) -> None:
        """Suspend the task until the approval gate decides.

        Raises:
            ApprovalRejected: The approver said no
            ApprovalTimeout: Nobody answered within the TTL
        """
        task.state = ExecutionState.APPROVAL_PENDING
        request = self.gate.create_request(task.id, definition, arguments, ttl_ms=self.approval_ttl_ms)

        await self.audit.append_step(
            root_id,
            "approval_requested",
            LogStatus.PENDING,
            data={
                "request_id": request.id,
                "description": request.description,
                "ttl_ms": request.ttl_ms,
            },
            parent_id=step_id,
        )
        self._emit_event(
            task,
            EventType.APPROVAL_NEEDED,
            f"Approval required: {request.description}",
            tool_name=definition.name,
            data={"request_id": request.id, "arguments": arguments},
        )

        response = await self.gate.request_approval(request)

        if response.approved:
            await self.audit.append_step(
                root_id,
                "approval_granted",
                LogStatus.SUCCESS,
                data={"request_id": request.id, "reason": response.reason},
                parent_id=step_id,
            )
            self._emit_event(
                task,
                EventType.TOOL_APPROVED,
                f"Tool execution approved: {definition.name}",
                tool_name=definition.name,
            )
            return

        action = "approval_timeout" if response.decision == ApprovalDecision.TIMEOUT else "approval_rejected"
        await self.audit.append_step(
            root_id,
            action,
            LogStatus.FAILED,
            error={"request_id": request.id, "reason": response.reason},
            parent_id=step_id,
        )
        self._emit_event(
            task,
            EventType.TOOL_DENIED,
            f"Tool execution denied: {definition.name}",
            tool_name=definition.name,
            data={"reason": response.reason},
        )

        if response.decision == ApprovalDecision.TIMEOUT:
            raise ApprovalTimeout(definition.name)
        raise ApprovalRejected(response.reason or "rejected by approver", definition.name)
