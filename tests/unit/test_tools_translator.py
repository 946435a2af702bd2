"""Tests for the schema translator."""

import json

import pytest

from actiongate.tools.catalog import DEFAULT_TOOLS
from actiongate.tools.models import SideEffectClass, ToolDefinition, ToolParameter
from actiongate.tools.translator import (
    ProviderVariant,
    from_provider_format,
    render_textual_catalog,
    to_provider_format,
    to_text_block,
)


_EDGE_CASES = [
    ToolDefinition(
        name="set_shipping_state",
        description="Set an order's shipping status.\nUse for shipping updates.\n\n  Not for refunds.",
        parameters=(
            ToolParameter(name="id", type="integer"),
            ToolParameter(name="status", type="string", enum=("shipped", "on-hold|review")),
        ),
        side_effect=SideEffectClass.WRITE,
    ),
    ToolDefinition(
        name="tag_order",
        description="Tag an order: pick a label",
        parameters=(
            ToolParameter(
                name="label",
                type="string",
                enum=("a>b", "x, y", '"quoted"', "]>", "<angle>", "ünïcode"),
            ),
            ToolParameter(name="note", type="string", required=False),
            ToolParameter(name="ids", type="array", required=False),
        ),
        side_effect=SideEffectClass.SENSITIVE,
    ),
    ToolDefinition(name="ping", description=""),
]


def _shape(definition):
    """What every wire format must preserve."""
    return {
        "name": definition.name,
        "required": sorted(definition.required_fields),
        "types": {p.name: p.type for p in definition.parameters},
        "enums": {p.name: p.enum for p in definition.parameters if p.enum},
    }


class TestRoundTrip:
    """Translation must keep names, required fields, types and enums."""

    @pytest.mark.parametrize("variant", list(ProviderVariant))
    def test_catalog_round_trip(self, variant):
        """Every catalog tool survives a trip through every variant."""
        specs = to_provider_format(DEFAULT_TOOLS, variant)
        assert len(specs) == len(DEFAULT_TOOLS)

        for original, spec in zip(DEFAULT_TOOLS, specs):
            restored = from_provider_format(spec, variant)
            assert _shape(restored) == _shape(original)

    def test_textual_keeps_sensitivity(self):
        """The textual listing marks tools that need approval."""
        refund = next(t for t in DEFAULT_TOOLS if t.name == "process_refund")
        restored = from_provider_format(to_text_block(refund), ProviderVariant.TEXTUAL)
        assert restored.side_effect == SideEffectClass.SENSITIVE

    @pytest.mark.parametrize("variant", list(ProviderVariant))
    @pytest.mark.parametrize("definition", _EDGE_CASES, ids=lambda d: d.name)
    def test_unusual_definitions_round_trip(self, variant, definition):
        """Multi-line descriptions and enum values with separators survive."""
        [spec] = to_provider_format([definition], variant)
        restored = from_provider_format(spec, variant)
        assert _shape(restored) == _shape(definition)

    def test_textual_description_on_one_line(self):
        """Newlines in a description collapse so the block keeps two lines."""
        block = to_text_block(_EDGE_CASES[0])
        header, args = block.splitlines()
        assert header == (
            "set_shipping_state: Set an order's shipping status. "
            "Use for shipping updates. Not for refunds."
        )
        restored = from_provider_format(block, ProviderVariant.TEXTUAL)
        assert restored.description == "Set an order's shipping status. Use for shipping updates. Not for refunds."
        assert restored.parameter("status").enum == ("shipped", "on-hold|review")


class TestJSONVariant:
    """Single-turn JSON function specs."""

    def test_function_shape(self, registry):
        """Specs use the OpenAI function envelope with lowercase types."""
        [spec] = to_provider_format([registry.resolve("process_refund")], "json")
        assert spec["type"] == "function"
        params = spec["function"]["parameters"]
        assert params["type"] == "object"
        assert params["properties"]["id"]["type"] == "integer"
        assert params["required"] == ["id", "reason"]
        assert params["additionalProperties"] is False

    def test_no_parameter_tool(self, registry):
        """Tools without parameters still carry an object schema."""
        [spec] = to_provider_format([registry.resolve("get_open_tickets")], "json")
        assert spec["function"]["parameters"]["properties"] == {}
        assert spec["function"]["parameters"]["required"] == []


class TestStructuredVariant:
    """Typed function declarations."""

    def test_declaration_shape(self, registry):
        """Declarations use uppercase type names and no envelope."""
        [spec] = to_provider_format([registry.resolve("update_ticket_priority")], "structured")
        assert spec["name"] == "update_ticket_priority"
        assert spec["parameters"]["type"] == "OBJECT"
        assert spec["parameters"]["properties"]["id"]["type"] == "INTEGER"
        assert spec["parameters"]["properties"]["priority"]["enum"] == ["LOW", "MEDIUM", "HIGH"]

    def test_no_required_key_when_empty(self, registry):
        """Declarations omit 'required' when nothing is required."""
        [spec] = to_provider_format([registry.resolve("get_site_status")], "structured")
        assert "required" not in spec["parameters"]


class TestTextualVariant:
    """Human-readable listing for ReAct prompts."""

    def test_block_lists_argument_slots(self, registry):
        """Each block names the tool and describes its argument slots."""
        block = to_text_block(registry.resolve("process_refund"))
        header, args = block.splitlines()
        assert header.startswith("process_refund: ")
        assert header.endswith("[requires approval]")
        slots = json.loads(args.split(": ", 1)[1])
        assert slots == {"id": "<integer, required>", "reason": "<string, required>"}

    def test_catalog_listing(self, registry):
        """The listing contains every tool name."""
        listing = render_textual_catalog(registry.list_all())
        for name in registry.list_tool_names():
            assert f"{name}: " in listing

    def test_malformed_block(self):
        """Blocks without an argument line are rejected."""
        with pytest.raises(ValueError):
            from_provider_format("just a line", ProviderVariant.TEXTUAL)

    def test_wrong_spec_type(self):
        """Variant and spec type must agree."""
        with pytest.raises(TypeError):
            from_provider_format({"name": "x"}, ProviderVariant.TEXTUAL)
