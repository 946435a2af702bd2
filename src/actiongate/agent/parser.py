"""Parsers for extracting tool calls from model responses."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from actiongate.exceptions import FormatError
from actiongate.providers.models import CompletionResponse
from actiongate.tools.models import ToolCallRequest

logger = logging.getLogger(__name__)

_THOUGHT_RE = re.compile(r"^\s*Thought\s*:\s*(.*)$", re.IGNORECASE)
_ACTION_RE = re.compile(r"^\s*Action\s*:\s*(.*)$", re.IGNORECASE)
_ACTION_INPUT_RE = re.compile(r"^\s*Action\s+Input\s*:\s*(.*)$", re.IGNORECASE)
_FINAL_RE = re.compile(r"^\s*Final\s+Answer\s*:\s*(.*)$", re.IGNORECASE)
_OBSERVATION_RE = re.compile(r"^\s*Observation\s*:", re.IGNORECASE)
_TOOL_NAME_RE = re.compile(r"^[A-Za-z_][\w.-]*$")

# Local models sometimes put an OpenAI style call in the message body
_INLINE_CALL_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass
class ModelTurn:
    """What the model asked for in one response."""

    calls: list[ToolCallRequest] = field(default_factory=list)
    final_answer: Optional[str] = None
    thought: Optional[str] = None
    text: str = ""

    @property
    def is_final(self) -> bool:
        return not self.calls


class ReActParser:
    """Parses the textual ``Thought / Action / Action Input`` grammar.

    A response either requests one or more actions or gives a
    ``Final Answer``. Anything else is a :class:`FormatError`; the parser
    never guesses the model's intent.
    """

    @staticmethod
    def parse(text: str) -> ModelTurn:
        """Parse one textual response.

        Args:
            text: Raw model output

        Returns:
            ModelTurn with the requested calls, or the final answer

        Raises:
            FormatError: If the transcript does not follow the grammar
        """
        if not text or not text.strip():
            raise FormatError("Empty response", transcript=text or "")

        thought: Optional[str] = None
        final_lines: Optional[list[str]] = None
        calls: list[ToolCallRequest] = []
        pending_action: Optional[str] = None

        for line in text.splitlines():
            # The model must not invent observations; stop reading there
            if _OBSERVATION_RE.match(line):
                break

            if final_lines is not None:
                final_lines.append(line)
                continue

            if match := _FINAL_RE.match(line):
                final_lines = [match.group(1)]
                continue

            if match := _ACTION_INPUT_RE.match(line):
                if pending_action is None:
                    raise FormatError("'Action Input:' without a preceding 'Action:'", transcript=text)
                calls.append(
                    ReActParser._build_call(pending_action, match.group(1), text, len(calls))
                )
                pending_action = None
                continue

            if match := _ACTION_RE.match(line):
                if pending_action is not None:
                    raise FormatError(
                        f"'Action: {pending_action}' has no 'Action Input:'", transcript=text
                    )
                pending_action = ReActParser._clean_tool_name(match.group(1), text)
                continue

            if match := _THOUGHT_RE.match(line):
                thought = match.group(1).strip() if thought is None else thought

        if pending_action is not None:
            raise FormatError(f"'Action: {pending_action}' has no 'Action Input:'", transcript=text)

        if calls and final_lines is not None:
            raise FormatError(
                "Response contains both an action and a final answer", transcript=text
            )

        if calls:
            return ModelTurn(calls=calls, thought=thought, text=text)

        if final_lines is not None:
            answer = "\n".join(final_lines).strip()
            if not answer:
                raise FormatError("'Final Answer:' is empty", transcript=text)
            return ModelTurn(final_answer=answer, thought=thought, text=text)

        raise FormatError("Response has neither an 'Action:' nor a 'Final Answer:'", transcript=text)

    @staticmethod
    def _clean_tool_name(raw: str, text: str) -> str:
        name = raw.strip().strip("`'\"[]").strip()
        if not _TOOL_NAME_RE.match(name):
            raise FormatError(f"Invalid action name: {raw.strip()!r}", transcript=text)
        return name

    @staticmethod
    def _build_call(name: str, raw_input: str, text: str, index: int) -> ToolCallRequest:
        raw_input = raw_input.strip()
        if not raw_input:
            raw_input = "{}"
        try:
            parsed = json.loads(raw_input)
        except json.JSONDecodeError as e:
            raise FormatError(
                f"'Action Input' for {name} is not single-line JSON: {e.msg}", transcript=text
            ) from e
        if not isinstance(parsed, dict):
            raise FormatError(f"'Action Input' for {name} must be a JSON object", transcript=text)
        return ToolCallRequest(tool_name=name, raw_arguments=raw_input, call_id=f"react_{index}")


class ToolCallParser:
    """Extracts tool calls from JSON and structured responses."""

    @staticmethod
    def parse_response(response: CompletionResponse, allow_inline: bool = False) -> ModelTurn:
        """Read the calls of a function-calling response.

        Args:
            response: Normalized model response
            allow_inline: Also accept a call written as JSON in the message body

        Returns:
            ModelTurn; a response without calls is a final answer
        """
        calls = [
            ToolCallRequest(tool_name=call.name, raw_arguments=call.arguments, call_id=call.id)
            for call in response.tool_calls
            if call.name
        ]
        if len(calls) != len(response.tool_calls):
            logger.warning("Skipping tool call without a name")

        if not calls and allow_inline:
            inline = ToolCallParser.parse_inline_call(response.content)
            if inline is not None:
                calls = [inline]

        if calls:
            return ModelTurn(calls=calls, text=response.content)
        return ModelTurn(final_answer=response.content.strip(), text=response.content)

    @staticmethod
    def parse_inline_call(content: str) -> Optional[ToolCallRequest]:
        """Recognize ``{"name": ..., "arguments": {...}}`` written as plain text."""
        text = (content or "").strip()
        fenced = _INLINE_CALL_RE.match(text)
        if fenced:
            text = fenced.group(1).strip()
        if not text.startswith("{"):
            return None

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None

        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            return None
        if set(data) - {"name", "arguments", "parameters"}:
            return None

        arguments = data.get("arguments", data.get("parameters"))
        logger.debug(f"Read inline tool call from message body: {data['name']}")
        return ToolCallRequest(tool_name=data["name"], raw_arguments=arguments, call_id="inline_0")
