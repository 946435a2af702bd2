"""Tool catalog for ActionGate.

This package holds the canonical description of every operation the agent
may invoke:
- Tool definitions with typed parameters and a side-effect class
- The read-only registry that validates model-supplied arguments
- Translation of the catalog into each provider's wire format
"""

from actiongate.tools.catalog import DEFAULT_TOOLS, build_default_registry
from actiongate.tools.models import (
    BackendRoute,
    SideEffectClass,
    ToolCallRequest,
    ToolCallResult,
    ToolDefinition,
    ToolParameter,
)
from actiongate.tools.registry import ToolRegistry, normalize_arguments
from actiongate.tools.translator import (
    ProviderVariant,
    from_provider_format,
    render_textual_catalog,
    to_provider_format,
)

__all__ = [
    "BackendRoute",
    "SideEffectClass",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDefinition",
    "ToolParameter",
    "ToolRegistry",
    "normalize_arguments",
    "DEFAULT_TOOLS",
    "build_default_registry",
    "ProviderVariant",
    "from_provider_format",
    "render_textual_catalog",
    "to_provider_format",
]
