"""
Configuration loading for ActionGate.

Sources, lowest precedence first:

1. ``Config`` defaults
2. ``$ACTIONGATE_HOME/config.yaml``
3. The nearest ``.actiongate/project.yaml`` above the working directory
4. ``ACTIONGATE_<SECTION>_<KEY>`` environment variables
5. Overrides passed by the caller (CLI flags)
"""

import logging
import os
import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from actiongate.config.merger import deep_merge, set_nested_value
from actiongate.config.schema import Config
from actiongate.exceptions import ConfigurationError
from actiongate.storage.paths import find_project_config, get_global_config_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "ACTIONGATE_"
_HOME_VARIABLE = "ACTIONGATE_HOME"

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})
_INT_RE = re.compile(r"-?\d+")
_FLOAT_RE = re.compile(r"-?\d+\.\d+")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Read one YAML file into a mapping.

    A missing or empty file yields ``{}``.

    Raises:
        ConfigurationError: On unreadable files, broken YAML, or a top
            level that is not a mapping.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}")
    return data


def _coerce(raw: str) -> Any:
    """Turn an environment string into a bool, number, list or string."""
    lowered = raw.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if _INT_RE.fullmatch(raw):
        return int(raw)
    if _FLOAT_RE.fullmatch(raw):
        return float(raw)
    if "," in raw:
        return [part.strip() for part in raw.split(",")]
    return raw


def apply_env_overrides(
    config: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Fold ``ACTIONGATE_<SECTION>_<KEY>`` variables into ``config``.

    The first token after the prefix names the section, the rest is the
    key, so ``ACTIONGATE_AGENT_MAX_ITERATIONS=5`` sets
    ``agent.max_iterations``. Variables naming no known section are
    skipped.

    Args:
        config: Mapping to update in place.
        environ: Variables to read; ``os.environ`` when omitted.
    """
    if environ is None:
        environ = os.environ
    known_sections = set(Config.model_fields)

    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX) or name == _HOME_VARIABLE:
            continue

        section, _, key = name[len(ENV_PREFIX) :].lower().partition("_")
        if not key or section not in known_sections:
            logger.debug(f"Skipping {name}: no such configuration key")
            continue

        set_nested_value(config, f"{section}.{key}", _coerce(raw))

    return config


def _file_layers(project_path: Path | None, skip_project: bool) -> Iterator[tuple[Path, dict[str, Any]]]:
    global_file = get_global_config_path()
    if global_file.exists():
        yield global_file, load_yaml_file(global_file)

    if skip_project:
        return
    project_file = find_project_config(project_path)
    if project_file is not None:
        yield project_file, load_yaml_file(project_file)


def load_config(
    project_path: Path | None = None,
    skip_project: bool = False,
    skip_env: bool = False,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """
    Build a validated Config from every source.

    Args:
        project_path: Where to start looking for a project file (cwd by default).
        skip_project: Ignore project files.
        skip_env: Ignore environment variables.
        overrides: Nested mapping merged on top of everything else.

    Raises:
        ConfigurationError: If a file is broken or the result does not validate.
    """
    merged = Config().model_dump(mode="json")

    for source, layer in _file_layers(project_path, skip_project):
        merged = deep_merge(merged, layer)
        logger.debug(f"Merged configuration from {source}")

    if not skip_env:
        merged = apply_env_overrides(merged)
    if overrides:
        merged = deep_merge(merged, overrides)

    try:
        return Config.model_validate(merged)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


_current: Config | None = None


def get_config(reload: bool = False) -> Config:
    """Return the process-wide Config, loading it on first use or when ``reload`` is set."""
    global _current
    if reload or _current is None:
        _current = load_config()
    return _current


def clear_config_cache() -> None:
    """Forget the loaded Config so the next get_config() reads the sources again."""
    global _current
    _current = None
