"""
Dictionary helpers for layering configuration sources.
"""

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Layer ``override`` on top of ``base`` without mutating either.

    Mappings present on both sides are merged key by key. Any other value
    in ``override`` (lists included) replaces the one in ``base``, and an
    explicit ``None`` deletes the key.

    Examples:
        >>> deep_merge({"agent": {"max_iterations": 10}}, {"agent": {"format_retries": 1}})
        {'agent': {'max_iterations': 10, 'format_retries': 1}}
    """
    merged = dict(base)
    for key, incoming in override.items():
        current = merged.get(key)
        if incoming is None:
            merged.pop(key, None)
        elif isinstance(current, dict) and isinstance(incoming, dict):
            merged[key] = deep_merge(current, incoming)
        else:
            merged[key] = incoming
    return merged


def set_nested_value(config: dict[str, Any], key_path: str, value: Any) -> dict[str, Any]:
    """
    Assign ``value`` at a dotted path such as ``"backend.base_url"``.

    Missing or non-mapping intermediate sections are replaced by empty
    mappings. ``config`` is updated in place and returned.
    """
    *parents, leaf = key_path.split(".")
    node = config
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value
    return config
