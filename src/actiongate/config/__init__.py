"""Configuration management for ActionGate."""

from actiongate.config.merger import deep_merge, set_nested_value
from actiongate.config.loader import (
    apply_env_overrides,
    clear_config_cache,
    get_config,
    load_config,
    load_yaml_file,
)
from actiongate.config.schema import (
    AgentConfig,
    ApprovalConfig,
    AuditConfig,
    BackendConfig,
    Config,
    LoggingConfig,
    ModelConfig,
)
from actiongate.exceptions import ConfigurationError

__all__ = [
    "AgentConfig",
    "ApprovalConfig",
    "AuditConfig",
    "BackendConfig",
    "Config",
    "ConfigurationError",
    "LoggingConfig",
    "ModelConfig",
    "apply_env_overrides",
    "clear_config_cache",
    "deep_merge",
    "get_config",
    "load_config",
    "load_yaml_file",
    "set_nested_value",
]
