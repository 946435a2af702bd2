"""Storage utilities for ActionGate."""

from actiongate.storage.paths import (
    expand_path,
    find_project_config,
    get_actiongate_home,
    get_audit_log_path,
    get_global_config_path,
)

__all__ = [
    "expand_path",
    "find_project_config",
    "get_actiongate_home",
    "get_audit_log_path",
    "get_global_config_path",
]
