"""
ActionGate - approval-gated agent orchestration.

Turns natural-language operator commands into calls against a backend
action API, with human approval for sensitive actions and a
tamper-evident execution log.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("actiongate")
except PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "__version__",
]
