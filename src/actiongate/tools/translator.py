"""Schema translator: canonical tool definitions to provider wire formats.

Three provider variants are supported:

- ``textual``: a human-readable listing embedded in a ReAct style prompt
- ``json``: OpenAI style function specs, one call per response. The
  ``{"type": "function", "function": {...}}`` envelope is what the LiteLLM
  transport sends; the provider behind it may receive another shape.
- ``structured``: typed function declarations, zero or more calls per turn

Only the shape used to describe parameters changes. Values are never
touched here.
"""

import json
import re
from collections.abc import Iterable
from enum import Enum
from typing import Any

from actiongate.tools.models import SideEffectClass, ToolDefinition, ToolParameter


class ProviderVariant(str, Enum):
    """Tool-calling protocol of the external model."""

    TEXTUAL = "textual"
    JSON = "json"
    STRUCTURED = "structured"


ProviderToolSpec = dict[str, Any] | str

_APPROVAL_TAG = " [requires approval]"
_TEXT_ARGS_PREFIX = "  Arguments (JSON): "
_TEXT_SLOT_RE = re.compile(r"^<(\w+), (required|optional)(?:, one of (\[.*\]))?>$", re.DOTALL)


# =============================================================================
# Canonical -> provider
# =============================================================================


def _json_property(param: ToolParameter) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": param.type}
    if param.description:
        prop["description"] = param.description
    if param.enum:
        prop["enum"] = list(param.enum)
    if param.default is not None:
        prop["default"] = param.default
    if param.type == "array":
        prop["items"] = {}
    return prop


def _structured_property(param: ToolParameter) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": param.type.upper()}
    if param.description:
        prop["description"] = param.description
    if param.enum:
        prop["enum"] = list(param.enum)
    if param.type == "array":
        prop["items"] = {"type": "STRING"}
    return prop


def to_json_function(definition: ToolDefinition) -> dict[str, Any]:
    """Render one definition as a single-turn JSON function spec."""
    parameters: dict[str, Any] = {
        "type": "object",
        "properties": {p.name: _json_property(p) for p in definition.parameters},
        "required": [p.name for p in definition.parameters if p.required],
    }
    if definition.closed:
        parameters["additionalProperties"] = False

    return {
        "type": "function",
        "function": {
            "name": definition.name,
            "description": definition.description,
            "parameters": parameters,
        },
    }


def to_function_declaration(definition: ToolDefinition) -> dict[str, Any]:
    """Render one definition as a structured multi-turn function declaration."""
    parameters: dict[str, Any] = {
        "type": "OBJECT",
        "properties": {p.name: _structured_property(p) for p in definition.parameters},
    }
    required = [p.name for p in definition.parameters if p.required]
    if required:
        parameters["required"] = required

    return {
        "name": definition.name,
        "description": definition.description,
        "parameters": parameters,
    }


def to_text_block(definition: ToolDefinition) -> str:
    """Render one definition as a block of the prompt tool listing.

    The header is kept to one line, so whitespace runs in the description
    (newlines included) collapse to single spaces. Enum choices are written
    as a JSON array and may contain any character.
    """
    header = f"{definition.name}: {' '.join(definition.description.split())}"
    if definition.side_effect == SideEffectClass.SENSITIVE:
        header += _APPROVAL_TAG

    slots: dict[str, str] = {}
    for param in definition.parameters:
        slot = f"{param.type}, {'required' if param.required else 'optional'}"
        if param.enum:
            slot += f", one of {json.dumps(list(param.enum))}"
        slots[param.name] = f"<{slot}>"

    return f"{header}\n{_TEXT_ARGS_PREFIX}{json.dumps(slots)}"


def to_provider_format(
    definitions: Iterable[ToolDefinition],
    variant: ProviderVariant | str,
) -> list[ProviderToolSpec]:
    """Translate canonical definitions into a provider variant's wire format.

    Args:
        definitions: Canonical tool definitions
        variant: Target provider variant

    Returns:
        One spec per definition, in input order
    """
    variant = ProviderVariant(variant)
    if variant == ProviderVariant.TEXTUAL:
        return [to_text_block(d) for d in definitions]
    if variant == ProviderVariant.JSON:
        return [to_json_function(d) for d in definitions]
    return [to_function_declaration(d) for d in definitions]


def render_textual_catalog(definitions: Iterable[ToolDefinition]) -> str:
    """Join text blocks into the listing embedded in the prompt."""
    return "\n\n".join(to_text_block(d) for d in definitions)


# =============================================================================
# Provider -> canonical
# =============================================================================


def _from_json_schema(
    name: str,
    description: str,
    schema: dict[str, Any],
    lowercase_types: bool,
) -> ToolDefinition:
    required = set(schema.get("required") or [])
    parameters = []
    for param_name, prop in (schema.get("properties") or {}).items():
        kind = prop.get("type", "string")
        if lowercase_types:
            kind = kind.lower()
        enum = prop.get("enum")
        parameters.append(
            ToolParameter(
                name=param_name,
                type=kind,
                description=prop.get("description", ""),
                required=param_name in required,
                enum=tuple(enum) if enum else None,
                default=prop.get("default"),
            )
        )
    return ToolDefinition(
        name=name,
        description=description,
        parameters=tuple(parameters),
        closed=schema.get("additionalProperties", True) is False,
    )


def _from_text_block(block: str) -> ToolDefinition:
    lines = block.strip().splitlines()
    if len(lines) < 2 or not lines[1].startswith(_TEXT_ARGS_PREFIX):
        raise ValueError(f"Not a tool listing block: {block!r}")

    name, _, description = lines[0].partition(": ")
    side_effect = SideEffectClass.READ
    if description.endswith(_APPROVAL_TAG):
        description = description[: -len(_APPROVAL_TAG)]
        side_effect = SideEffectClass.SENSITIVE

    slots = json.loads(lines[1][len(_TEXT_ARGS_PREFIX) :])
    parameters = []
    for param_name, slot in slots.items():
        match = _TEXT_SLOT_RE.match(slot)
        if not match:
            raise ValueError(f"Malformed argument slot for '{param_name}': {slot!r}")
        kind, presence, choices = match.groups()
        parameters.append(
            ToolParameter(
                name=param_name,
                type=kind,
                required=presence == "required",
                enum=tuple(str(c) for c in json.loads(choices)) if choices else None,
            )
        )

    return ToolDefinition(
        name=name.strip(),
        description=description.strip(),
        parameters=tuple(parameters),
        side_effect=side_effect,
    )


def from_provider_format(spec: ProviderToolSpec, variant: ProviderVariant | str) -> ToolDefinition:
    """Read a provider spec back into a canonical definition.

    Descriptions and routes that the wire format does not carry are lost;
    names, required fields, types and enums survive.
    """
    variant = ProviderVariant(variant)

    if variant == ProviderVariant.TEXTUAL:
        if not isinstance(spec, str):
            raise TypeError("Textual specs are strings")
        return _from_text_block(spec)

    if not isinstance(spec, dict):
        raise TypeError(f"{variant.value} specs are mappings")

    if variant == ProviderVariant.JSON:
        function = spec["function"]
        return _from_json_schema(
            function["name"],
            function.get("description", ""),
            function.get("parameters") or {},
            lowercase_types=False,
        )

    definition = _from_json_schema(
        spec["name"],
        spec.get("description", ""),
        spec.get("parameters") or {},
        lowercase_types=True,
    )
    # Declarations have no notion of closed schemas; keep the canonical default
    return definition.model_copy(update={"closed": True})
