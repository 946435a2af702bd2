"""
Rich rendering helpers shared by the CLI commands.
"""

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from actiongate.audit.models import LogStatus, TaskLog

console = Console()

_STATUS_STYLE = {
    LogStatus.PENDING.value: "yellow",
    LogStatus.SUCCESS.value: "green",
    LogStatus.FAILED.value: "red",
}
_PREVIEW_CHARS = 120


def _mark(symbol: str, style: str, message: str) -> None:
    console.print(f"[{style}]{symbol}[/{style}] {message}")


def print_success(message: str) -> None:
    _mark("✓", "green", message)


def print_error(message: str) -> None:
    _mark("✗", "red", message)


def print_warning(message: str) -> None:
    _mark("!", "yellow", message)


def print_info(message: str) -> None:
    _mark("i", "blue", message)


def print_table(headers: list[str], rows: list[list[Any]], title: str | None = None) -> None:
    """Render rows under the given column headers."""
    table = Table(*headers, title=title)
    for row in rows:
        table.add_row(*map(str, row))
    console.print(table)


def _node_label(node: dict[str, Any]) -> str:
    status = node["status"]
    style = _STATUS_STYLE.get(status, "white")
    label = f"[dim]#{node['id']}[/dim] [bold]{escape(node['action'])}[/bold] [{style}]{status}[/{style}]"
    if node.get("error"):
        label += f" [red]{escape(str(node['error']))}[/red]"
    elif node.get("data"):
        preview = str(node["data"])
        if len(preview) > _PREVIEW_CHARS:
            preview = preview[:_PREVIEW_CHARS] + "..."
        label += f" [dim]{escape(preview)}[/dim]"
    return label


def print_task_tree(task_log: TaskLog) -> None:
    """Render a task as a tree of steps, root first."""
    root = task_log.tree()
    tree = Tree(_node_label(root))

    pending = [(tree, root)]
    while pending:
        branch, node = pending.pop()
        for child in node["children"]:
            pending.append((branch.add(_node_label(child)), child))

    console.print(tree)
