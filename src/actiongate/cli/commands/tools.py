"""
actiongate tools - Inspect the tool catalog.

Usage:
    actiongate tools list
    actiongate tools schema --variant structured
"""

import json
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from actiongate.cli.output import print_error
from actiongate.tools.catalog import build_default_registry
from actiongate.tools.models import SideEffectClass
from actiongate.tools.translator import ProviderVariant, render_textual_catalog, to_provider_format

app = typer.Typer(
    name="tools",
    help="Inspect the tool catalog.",
)

console = Console()

_SIDE_EFFECT_LABEL = {
    SideEffectClass.READ: "[green]read[/green]",
    SideEffectClass.WRITE: "[blue]write[/blue]",
    SideEffectClass.SENSITIVE: "[yellow]sensitive[/yellow]",
}


@app.command("list")
def list_tools(
    sensitive: Annotated[
        bool,
        typer.Option(
            "--sensitive",
            "-s",
            help="Only show tools that require approval.",
        ),
    ] = False,
) -> None:
    """List all tools in the catalog."""
    registry = build_default_registry()
    definitions = registry.sensitive_tools() if sensitive else registry.list_all()

    table = Table(title="Tool Catalog")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Side effect")
    table.add_column("Route")
    table.add_column("Description")

    for definition in definitions:
        route = f"{definition.route.method} {definition.route.path}" if definition.route else "-"
        table.add_row(
            definition.name,
            _SIDE_EFFECT_LABEL[definition.side_effect],
            route,
            definition.description,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(definitions)} tool(s)[/dim]")


@app.command()
def schema(
    variant: Annotated[
        ProviderVariant,
        typer.Option(
            "--variant",
            help="Provider variant to render.",
            case_sensitive=False,
        ),
    ] = ProviderVariant.JSON,
    name: Annotated[
        Optional[str],
        typer.Option(
            "--name",
            "-n",
            help="Render a single tool.",
        ),
    ] = None,
) -> None:
    """Print the catalog in a provider's wire format."""
    registry = build_default_registry()
    if name is not None and name not in registry:
        print_error(f"Tool not found: {name}")
        raise typer.Exit(1)

    definitions = [registry.resolve(name)] if name else registry.list_all()

    if variant == ProviderVariant.TEXTUAL:
        console.print(render_textual_catalog(definitions), markup=False, highlight=False)
        return

    console.print_json(json.dumps(to_provider_format(definitions, variant)))
