"""Provider strategies: how each tool-calling protocol talks to the model.

The execution loop is written once against :class:`ProviderStrategy`. A
strategy knows how to present the tool catalog, how to read a response
into a :class:`ModelTurn`, and how to record an executed step in the
running transcript.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from actiongate.agent.models import ConversationTurn, Task
from actiongate.agent.parser import ModelTurn, ReActParser, ToolCallParser
from actiongate.exceptions import FormatError
from actiongate.providers.models import CompletionResponse, Message, ModelToolCall
from actiongate.tools.models import ToolCallRequest
from actiongate.tools.registry import ToolRegistry
from actiongate.tools.translator import (
    ProviderToolSpec,
    ProviderVariant,
    render_textual_catalog,
    to_provider_format,
)

logger = logging.getLogger(__name__)

BASE_PROMPT = """You are a web operations agent for an e-commerce platform.
You carry out commands from site administrators by calling the tools available to you.

Rules:
1. Call at most ONE tool per step. Wait for its result before deciding the next step.
2. Use the exact tool name and take parameter values from the command.
3. Some tools require approval from an admin. If an approval is rejected or times out,
   do not retry the tool; tell the admin the action was not performed.
4. If a tool returns an error, explain the problem in plain words or try a different tool.
5. Finish with a short, conversational summary of what you did."""

REACT_FORMAT = """You have access to the following tools:

{catalog}

Use this format:

Thought: think about what to do
Action: the tool to use, one of [{tool_names}]
Action Input: the arguments as single-line JSON, e.g. {{"id": 45}}
Observation: the result of the tool (provided to you, never write it yourself)
... (Thought/Action/Action Input/Observation can repeat)
Thought: I now know the final answer
Final Answer: the answer for the admin

Write exactly one Action per reply. Never write "Final Answer:" in the same reply as an Action."""

CORRECTION_PROMPT = """Your last reply could not be parsed: {error}
Reply again using the required format: either
Thought: ...
Action: <tool name>
Action Input: <single-line JSON object>
or
Final Answer: <your answer>"""


def format_command(command: str, history: list[ConversationTurn]) -> str:
    """Prefix a command with the conversation turns that precede it."""
    if not history:
        return command

    context = "\n".join(f"{turn.speaker}: {turn.content}" for turn in history)
    return f"Previous conversation context:\n{context}\n\nCurrent request: {command}"


class ProviderStrategy(ABC):
    """Base class for provider tool-calling protocols."""

    variant: ProviderVariant

    def __init__(self, registry: ToolRegistry, instructions: Optional[str] = None):
        """Initialize the strategy.

        Args:
            registry: Read-only tool registry
            instructions: Extra operator instructions for the system prompt
        """
        self.registry = registry
        self.instructions = instructions

    def system_prompt(self) -> str:
        prompt = BASE_PROMPT
        if self.instructions:
            prompt += f"\n\n{self.instructions}"
        return prompt

    def tool_specs(self) -> Optional[list[ProviderToolSpec]]:
        """Tool specs sent alongside the messages (None if embedded in the prompt)."""
        return to_provider_format(self.registry.list_all(), self.variant)

    def initial_messages(self, task: Task) -> list[Message]:
        return [
            Message.system(self.system_prompt()),
            Message.user(format_command(task.command, task.history)),
        ]

    @abstractmethod
    def interpret(self, response: CompletionResponse) -> ModelTurn:
        """Read a model response.

        Raises:
            FormatError: If the response cannot be parsed
        """

    @abstractmethod
    def record_step(
        self,
        transcript: list[Message],
        turn: ModelTurn,
        call: ToolCallRequest,
        observation: str,
    ) -> None:
        """Append an executed call and its observation to the transcript."""

    def record_format_error(
        self,
        transcript: list[Message],
        response: CompletionResponse,
        error: FormatError,
    ) -> None:
        """Append a malformed reply and a corrective message."""
        transcript.append(Message.assistant(response.content))
        transcript.append(Message.user(CORRECTION_PROMPT.format(error=error.message)))

    def record_notice(self, transcript: list[Message], notice: str) -> None:
        """Append a synthesized observation that is not tied to a tool call."""
        transcript.append(Message.user(notice))


class TextualStrategy(ProviderStrategy):
    """Free-text ReAct transcripts with the catalog embedded in the prompt."""

    variant = ProviderVariant.TEXTUAL

    def system_prompt(self) -> str:
        definitions = self.registry.list_all()
        react = REACT_FORMAT.format(
            catalog=render_textual_catalog(definitions),
            tool_names=", ".join(d.name for d in definitions),
        )
        return f"{super().system_prompt()}\n\n{react}"

    def tool_specs(self) -> Optional[list[ProviderToolSpec]]:
        return None

    def interpret(self, response: CompletionResponse) -> ModelTurn:
        return ReActParser.parse(response.content)

    def record_step(
        self,
        transcript: list[Message],
        turn: ModelTurn,
        call: ToolCallRequest,
        observation: str,
    ) -> None:
        lines = []
        if turn.thought:
            lines.append(f"Thought: {turn.thought}")
        lines.append(f"Action: {call.tool_name}")
        lines.append(f"Action Input: {call.raw_arguments}")
        transcript.append(Message.assistant("\n".join(lines)))
        transcript.append(Message.user(f"Observation: {observation}"))

    def record_notice(self, transcript: list[Message], notice: str) -> None:
        transcript.append(Message.user(f"Observation: {notice}"))


class _FunctionCallingStrategy(ProviderStrategy):
    """Shared transcript handling for the function-calling variants."""

    allow_inline_calls = False

    def interpret(self, response: CompletionResponse) -> ModelTurn:
        return ToolCallParser.parse_response(response, allow_inline=self.allow_inline_calls)

    def record_step(
        self,
        transcript: list[Message],
        turn: ModelTurn,
        call: ToolCallRequest,
        observation: str,
    ) -> None:
        model_call = ModelToolCall(
            name=call.tool_name,
            arguments=self._wire_arguments(call.raw_arguments),
            id=call.call_id,
        )
        # Only the executed call is recorded; discarded calls never reach the transcript
        transcript.append(Message.assistant(turn.text, [model_call]))
        transcript.append(Message.tool(observation, model_call))

    @staticmethod
    def _wire_arguments(raw: object) -> str | dict:
        if isinstance(raw, (str, dict)):
            return raw
        return json.dumps(raw) if raw is not None else "{}"


class SingleTurnJSONStrategy(_FunctionCallingStrategy):
    """Flat function specs; the model returns one JSON-encoded call per response."""

    variant = ProviderVariant.JSON
    allow_inline_calls = True


class StructuredMultiTurnStrategy(_FunctionCallingStrategy):
    """Typed function declarations; zero or more native calls per turn."""

    variant = ProviderVariant.STRUCTURED


_STRATEGIES: dict[ProviderVariant, type[ProviderStrategy]] = {
    ProviderVariant.TEXTUAL: TextualStrategy,
    ProviderVariant.JSON: SingleTurnJSONStrategy,
    ProviderVariant.STRUCTURED: StructuredMultiTurnStrategy,
}


def create_strategy(
    variant: ProviderVariant | str,
    registry: ToolRegistry,
    instructions: Optional[str] = None,
) -> ProviderStrategy:
    """Build the strategy for a provider variant."""
    return _STRATEGIES[ProviderVariant(variant)](registry, instructions)
