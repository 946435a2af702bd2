"""
actiongate run - Execute a natural-language command.

Usage:
    actiongate run "close ticket 12"
    actiongate run --approval auto_reject "refund order 45, damaged item"
    actiongate run --history history.json --json "what about the next one?"
"""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from actiongate.agent.models import AgentEvent, ConversationTurn, EventType, TaskResult
from actiongate.agent.orchestrator import Orchestrator
from actiongate.approval.channel import ApprovalChannel, AutoDecisionChannel
from actiongate.config import load_config
from actiongate.config.schema import Config
from actiongate.exceptions import ConfigurationError
from actiongate.tools.translator import ProviderVariant

app = typer.Typer(
    name="run",
    help="Execute a command against the site backend.",
)

logger = logging.getLogger(__name__)

console = Console()


class ConsoleApprovalChannel(ApprovalChannel):
    """Asks the operator at the terminal."""

    def __init__(self, out: Optional[Console] = None) -> None:
        super().__init__()
        self.console = out or console

    async def publish(self, event: dict[str, Any]) -> None:
        body = (
            f"[bold]{escape(event['description'])}[/bold]\n"
            f"Action: {event['action']}\n"
            f"Arguments: {escape(json.dumps(event.get('data') or {}))}\n"
            f"[dim]Expires in {event['timeout'] // 1000}s[/dim]"
        )
        self.console.print(Panel(body, title="[yellow]Approval required[/yellow]"))

        # typer.confirm blocks, so it runs on a daemon thread that never
        # holds up interpreter or event loop shutdown
        loop = asyncio.get_running_loop()
        answer: asyncio.Future[bool] = loop.create_future()
        threading.Thread(
            target=self._prompt,
            args=(loop, answer),
            name="actiongate-approval-prompt",
            daemon=True,
        ).start()

        approved = await answer
        self.deliver(
            {
                "type": "approval_response",
                "id": event["id"],
                "approved": approved,
                "reason": None if approved else "rejected by operator",
            }
        )

    @staticmethod
    def _prompt(loop: asyncio.AbstractEventLoop, answer: "asyncio.Future[bool]") -> None:
        try:
            approved = bool(typer.confirm("Approve this action?", default=False))
        except (typer.Abort, EOFError):
            approved = False

        def settle() -> None:
            if not answer.done():
                answer.set_result(approved)

        try:
            loop.call_soon_threadsafe(settle)
        except RuntimeError:
            # Loop already closed, nothing is waiting for the answer
            logger.debug("Approval prompt answered after the event loop closed")


def build_approval_channel(kind: str) -> ApprovalChannel:
    """Create the approval channel named in configuration."""
    if kind == "auto_approve":
        return AutoDecisionChannel(approved=True)
    if kind == "auto_reject":
        return AutoDecisionChannel(approved=False, reason="rejected by policy")
    return ConsoleApprovalChannel()


def load_history(path: Path) -> list[ConversationTurn]:
    """Read prior turns from a JSON file holding a list of {role, content}."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise typer.BadParameter(f"Cannot read history file {path}: {e}") from e

    if not isinstance(raw, list):
        raise typer.BadParameter("History file must contain a JSON list")
    return [ConversationTurn.model_validate(item) for item in raw]


def _print_event(event: AgentEvent) -> None:
    if event.event_type == EventType.TOOL_REQUESTED.value:
        console.print(f"[dim]→ {event.tool_name}[/dim]")
    elif event.event_type == EventType.TOOL_ERROR.value:
        console.print(f"[dim red]✗ {event.tool_name} failed[/dim red]")
    elif event.event_type == EventType.TOOL_DENIED.value:
        console.print(f"[dim yellow]! {event.tool_name} not approved[/dim yellow]")


async def _execute(
    config: Config,
    command: str,
    history: list[ConversationTurn],
    show_progress: bool,
) -> TaskResult:
    orchestrator = Orchestrator.from_config(
        config,
        approval_channel=build_approval_channel(config.approval.channel),
        event_callback=_print_event if show_progress else None,
    )
    try:
        return await orchestrator.run_task(command, history=history)
    finally:
        await orchestrator.aclose()


@app.callback(invoke_without_command=True)
def run_command(
    command: Annotated[
        str,
        typer.Argument(
            help="Natural-language command, e.g. 'close ticket 12'.",
        ),
    ],
    variant: Annotated[
        Optional[ProviderVariant],
        typer.Option(
            "--variant",
            help="Tool-calling protocol of the model.",
            case_sensitive=False,
        ),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option(
            "--model",
            "-m",
            help="LiteLLM model identifier.",
        ),
    ] = None,
    approval: Annotated[
        Optional[str],
        typer.Option(
            "--approval",
            "-a",
            help="Approval channel: console, auto_approve or auto_reject.",
        ),
    ] = None,
    history_file: Annotated[
        Optional[Path],
        typer.Option(
            "--history",
            help="JSON file with prior conversation turns.",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the result and step log as JSON.",
        ),
    ] = False,
) -> None:
    """Execute a natural-language command."""
    overrides: dict[str, Any] = {}
    if variant is not None:
        overrides.setdefault("model", {})["variant"] = variant.value
    if model:
        overrides.setdefault("model", {})["name"] = model
    if approval:
        overrides["approval"] = {"channel": approval}

    try:
        config = load_config(overrides=overrides)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(2) from e

    history = load_history(history_file) if history_file else []
    result = asyncio.run(_execute(config, command, history, show_progress=not as_json))

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
    elif result.success:
        console.print(result.output)
    else:
        console.print(f"[red]{result.output}[/red]")
        console.print(f"[dim]Task {result.task_id}: {result.state.value}[/dim]")

    if not result.success:
        raise typer.Exit(1)
