"""CLI command modules."""

from actiongate.cli.commands import audit, run, tools

__all__ = ["audit", "run", "tools"]
