"""Tool registry: the canonical catalog and argument validation."""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from actiongate.exceptions import ToolNotFoundError, ValidationError
from actiongate.tools.models import SideEffectClass, ToolDefinition, ToolParameter

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0"}


def normalize_arguments(raw: Any) -> dict[str, Any]:
    """Turn provider-native arguments into one canonical mapping.

    Accepts a JSON-encoded string, a mapping, ``None`` or an empty string.

    Raises:
        ValidationError: If the input is not a JSON object.
    """
    if raw is None:
        return {}

    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")

    if isinstance(raw, str):
        text = raw.strip()
        fenced = _FENCE_RE.match(text)
        if fenced:
            text = fenced.group(1).strip()
        if not text:
            return {}
        try:
            parsed = json.loads(text, strict=False)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Arguments are not valid JSON: {e.msg}") from e
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ValidationError(
                f"Arguments must be a JSON object, got {type(parsed).__name__}"
            )
        return parsed

    raise ValidationError(f"Unexpected argument type: {type(raw).__name__}")


def _coerce(param: ToolParameter, value: Any) -> Any:
    """Coerce a single value to the parameter's canonical type.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    kind = param.type

    if kind == "string":
        if isinstance(value, str):
            coerced: Any = value
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            coerced = str(value)
        else:
            raise ValueError(f"expected string, got {type(value).__name__}")

    elif kind == "integer":
        if isinstance(value, bool):
            raise ValueError("expected integer, got boolean")
        if isinstance(value, int):
            coerced = value
        elif isinstance(value, float) and value.is_integer():
            coerced = int(value)
        elif isinstance(value, str) and re.fullmatch(r"\s*-?\d+\s*", value):
            coerced = int(value)
        else:
            raise ValueError(f"expected integer, got {value!r}")

    elif kind == "number":
        if isinstance(value, bool):
            raise ValueError("expected number, got boolean")
        if isinstance(value, (int, float)):
            coerced = value
        elif isinstance(value, str):
            try:
                coerced = float(value)
            except ValueError:
                raise ValueError(f"expected number, got {value!r}") from None
            if coerced.is_integer() and re.fullmatch(r"\s*-?\d+\s*", value):
                coerced = int(coerced)
        else:
            raise ValueError(f"expected number, got {type(value).__name__}")

    elif kind == "boolean":
        if isinstance(value, bool):
            coerced = value
        elif isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            coerced = True
        elif isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            coerced = False
        else:
            raise ValueError(f"expected boolean, got {value!r}")

    elif kind == "array":
        if isinstance(value, (list, tuple)):
            coerced = list(value)
        else:
            raise ValueError(f"expected array, got {type(value).__name__}")

    else:  # object
        if isinstance(value, Mapping):
            coerced = dict(value)
        else:
            raise ValueError(f"expected object, got {type(value).__name__}")

    if param.enum:
        if isinstance(coerced, str):
            # Enum match is case-insensitive; the declared spelling wins
            for choice in param.enum:
                if choice.lower() == coerced.lower():
                    return choice
        elif coerced in param.enum:
            return coerced
        raise ValueError(f"must be one of {', '.join(param.enum)}")

    return coerced


class ToolRegistry:
    """Read-only catalog of tool definitions.

    Definitions are registered while the application boots. After
    :meth:`freeze` the registry only answers lookups and validates
    arguments, so it can be shared by concurrent tasks without locking.
    """

    def __init__(self, definitions: Iterable[ToolDefinition] | None = None):
        """Initialize the registry.

        Args:
            definitions: Optional definitions to register and freeze.
        """
        self._tools: dict[str, ToolDefinition] = {}
        self._frozen = False

        if definitions is not None:
            for definition in definitions:
                self.register(definition)
            self.freeze()

    def register(self, definition: ToolDefinition) -> None:
        """Register a tool definition.

        Raises:
            ValueError: If the name is already registered or invalid.
            RuntimeError: If the registry is frozen.
        """
        if self._frozen:
            raise RuntimeError("Tool registry is frozen")
        if not definition.name:
            raise ValueError("Tool name cannot be empty")
        if definition.name in self._tools:
            raise ValueError(f"Tool '{definition.name}' is already registered")

        names = [p.name for p in definition.parameters]
        if len(names) != len(set(names)):
            raise ValueError(f"Parameter names of '{definition.name}' must be unique")

        self._tools[definition.name] = definition
        logger.debug(f"Registered tool: {definition.name}")

    def freeze(self) -> None:
        """End initialization; the catalog is immutable from here on."""
        self._frozen = True
        logger.info(f"Tool registry frozen with {len(self._tools)} tools")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> ToolDefinition:
        """Get a tool definition by name.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(f"Tool '{name}' not found", tool_name=name)
        return definition

    def list_all(self) -> list[ToolDefinition]:
        """Get all definitions in registration order."""
        return list(self._tools.values())

    def list_tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def sensitive_tools(self) -> list[ToolDefinition]:
        """Tools that require approval before execution."""
        return [t for t in self._tools.values() if t.side_effect == SideEffectClass.SENSITIVE]

    def validate(self, name: str, arguments: Any) -> dict[str, Any]:
        """Normalize and validate arguments against a tool's canonical schema.

        Args:
            name: Tool name
            arguments: JSON string or mapping, as the model produced it

        Returns:
            Validated arguments with types coerced and defaults applied

        Raises:
            ToolNotFoundError: If the tool is unknown
            ValidationError: If the arguments do not fit the schema
        """
        definition = self.resolve(name)

        try:
            provided = normalize_arguments(arguments)
        except ValidationError as e:
            raise ValidationError(e.message, tool_name=name) from e

        problems: list[str] = []
        validated: dict[str, Any] = {}
        known = {p.name for p in definition.parameters}

        unknown = sorted(set(provided) - known)
        if unknown and definition.closed:
            problems.append(f"unknown parameters: {', '.join(unknown)}")

        for param in definition.parameters:
            value = provided.get(param.name)

            if value is None:
                if param.required:
                    problems.append(f"missing required parameter '{param.name}'")
                elif param.default is not None:
                    validated[param.name] = param.default
                continue

            try:
                validated[param.name] = _coerce(param, value)
            except ValueError as e:
                problems.append(f"'{param.name}' {e}")

        if not definition.closed:
            for key in unknown:
                validated[key] = provided[key]

        if problems:
            raise ValidationError(
                f"Invalid arguments for '{name}': {'; '.join(problems)}",
                tool_name=name,
                problems=problems,
            )

        return validated

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __str__(self) -> str:
        return f"ToolRegistry({len(self._tools)} tools)"

    def __repr__(self) -> str:
        tools = ", ".join(self._tools.keys())
        return f"<ToolRegistry tools=[{tools}]>"
