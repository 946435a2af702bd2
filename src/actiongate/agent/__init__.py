"""Agent execution engine for ActionGate.

This package turns a natural-language command into backend calls:
- A provider strategy per tool-calling protocol
- The bounded execution loop with approval gating
- The orchestrator that ties it together
"""

from actiongate.agent.loop import ExecutionLoop
from actiongate.agent.models import (
    AgentEvent,
    ConversationTurn,
    EventType,
    ExecutionState,
    LoopResult,
    Task,
    TaskResult,
)
from actiongate.agent.orchestrator import Orchestrator
from actiongate.agent.parser import ModelTurn, ReActParser, ToolCallParser
from actiongate.agent.strategies import (
    ProviderStrategy,
    SingleTurnJSONStrategy,
    StructuredMultiTurnStrategy,
    TextualStrategy,
    create_strategy,
)

__all__ = [
    "AgentEvent",
    "ConversationTurn",
    "EventType",
    "ExecutionLoop",
    "ExecutionState",
    "LoopResult",
    "ModelTurn",
    "Orchestrator",
    "ProviderStrategy",
    "ReActParser",
    "SingleTurnJSONStrategy",
    "StructuredMultiTurnStrategy",
    "Task",
    "TaskResult",
    "TextualStrategy",
    "ToolCallParser",
    "create_strategy",
]
