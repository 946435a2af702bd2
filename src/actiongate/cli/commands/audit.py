"""
actiongate audit - Execution log access commands.

Usage:
    actiongate audit list
    actiongate audit show <task-id>
    actiongate audit verify <task-id>
"""

import json
from typing import Annotated

import typer
from rich.console import Console

from actiongate.audit.logger import HierarchicalLogger
from actiongate.cli.output import (
    print_error,
    print_success,
    print_table,
    print_task_tree,
    print_warning,
)
from actiongate.config import get_config
from actiongate.storage.paths import get_audit_log_path

app = typer.Typer(
    name="audit",
    help="Execution log access.",
)

console = Console()


def _open_log() -> HierarchicalLogger:
    config = get_config()
    # Read-only: never append to the file while inspecting it
    return HierarchicalLogger.load(get_audit_log_path(config.audit.path), enable=False)


@app.command("list")
def list_tasks(
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Number of tasks to show.",
        ),
    ] = 20,
) -> None:
    """List recent tasks, newest first."""
    log = _open_log()
    roots = log.list_tasks(limit=limit)

    if not roots:
        print_warning("No tasks logged yet.")
        return

    rows = []
    for root in roots:
        command = root.action if len(root.action) <= 60 else root.action[:57] + "..."
        rows.append([root.task_id, root.timestamp[:19], root.status.value, command])

    print_table(["Task", "Started", "Status", "Command"], rows, title="Tasks")


@app.command()
def show(
    task_id: Annotated[
        str,
        typer.Argument(help="Task id to show."),
    ],
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the step tree as JSON.",
        ),
    ] = False,
) -> None:
    """Show the step tree of one task."""
    task_log = _open_log().get_task(task_id)
    if task_log is None:
        print_error(f"Unknown task: {task_id}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(task_log.tree(), default=str))
        return

    print_task_tree(task_log)


@app.command()
def verify(
    task_id: Annotated[
        str,
        typer.Argument(help="Task id to verify."),
    ],
) -> None:
    """Check the hash chain of one task for tampering."""
    result = _open_log().verify(task_id)

    if result.valid:
        print_success(f"Chain intact: {result.records} records")
        return

    if result.broken_at is None:
        print_error(f"Cannot verify {task_id}: {result.reason}")
    else:
        print_error(f"Chain broken at record {result.broken_at}: {result.reason}")
    raise typer.Exit(1)
