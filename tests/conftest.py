"""
Pytest configuration and fixtures for actiongate tests.
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from actiongate.approval.channel import AutoDecisionChannel
from actiongate.approval.gate import ApprovalGate
from actiongate.audit.logger import HierarchicalLogger
from actiongate.config import clear_config_cache
from actiongate.exceptions import ToolExecutionError
from actiongate.tools.catalog import build_default_registry
from actiongate.tools.registry import ToolRegistry
from fakes import FakeExecutor


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_actiongate_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Provide an isolated ~/.actiongate directory with no config file."""
    home = temp_dir / ".actiongate"
    home.mkdir()
    monkeypatch.setenv("ACTIONGATE_HOME", str(home))
    for key in list(os.environ):
        if key.startswith("ACTIONGATE_") and key != "ACTIONGATE_HOME":
            monkeypatch.delenv(key)
    monkeypatch.setenv("ACTIONGATE_AUDIT_PATH", str(home / "audit.jsonl"))
    monkeypatch.chdir(temp_dir)
    clear_config_cache()
    yield home
    clear_config_cache()


@pytest.fixture
def registry() -> ToolRegistry:
    """The frozen default catalog."""
    return build_default_registry()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def audit() -> HierarchicalLogger:
    """In-memory hierarchical logger."""
    return HierarchicalLogger()


@pytest.fixture
def approve_gate() -> ApprovalGate:
    """Gate whose channel approves every request."""
    return ApprovalGate(AutoDecisionChannel(approved=True))


@pytest.fixture
def reject_gate() -> ApprovalGate:
    """Gate whose channel rejects every request."""
    return ApprovalGate(AutoDecisionChannel(approved=False, reason="not this one"))


@pytest.fixture
def silent_gate() -> ApprovalGate:
    """Gate whose channel never answers."""
    return ApprovalGate(AutoDecisionChannel(approved=None))


@pytest.fixture
def backend_failure() -> ToolExecutionError:
    return ToolExecutionError("Order not found", tool_name="get_order", error_code="NOT_FOUND")
