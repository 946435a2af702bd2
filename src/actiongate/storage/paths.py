"""
Where ActionGate keeps its files.

Everything lives under one home directory, ``$ACTIONGATE_HOME`` or
``~/.actiongate``. Projects may add ``.actiongate/project.yaml`` anywhere
above the working directory.
"""

import os
from pathlib import Path

HOME_ENV = "ACTIONGATE_HOME"
PROJECT_DIR_NAME = ".actiongate"
PROJECT_CONFIG_NAME = "project.yaml"


def get_actiongate_home() -> Path:
    """The home directory; ``$ACTIONGATE_HOME`` wins over ``~/.actiongate``."""
    configured = os.environ.get(HOME_ENV)
    if configured:
        return Path(configured).expanduser().resolve()
    return Path.home() / PROJECT_DIR_NAME


def get_global_config_path() -> Path:
    return get_actiongate_home() / "config.yaml"


def get_audit_log_path(configured: str | Path | None = None) -> Path:
    """
    Location of the JSON Lines audit log.

    Args:
        configured: Value of ``audit.path``. ``~`` and ``$VARS`` are expanded;
            when empty the log goes to ``<home>/audit.jsonl``.
    """
    if configured:
        return expand_path(configured)
    return get_actiongate_home() / "audit.jsonl"


def find_project_config(start_path: Path | None = None) -> Path | None:
    """
    Walk up from ``start_path`` (default: cwd) to the nearest project file.

    Returns:
        The ``.actiongate/project.yaml`` path, or None when no directory on
        the way to the filesystem root has one.
    """
    start = Path.cwd() if start_path is None else Path(start_path).resolve()
    for directory in (start, *start.parents):
        candidate = directory / PROJECT_DIR_NAME / PROJECT_CONFIG_NAME
        if candidate.exists():
            return candidate
    return None


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and environment variables, then resolve."""
    return Path(os.path.expandvars(os.path.expanduser(str(path)))).resolve()
