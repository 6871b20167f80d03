"""Exception types raised and contained by the supervisor."""

from pathlib import Path


class ReliveError(Exception):
    """Base class for relive errors."""


class LoadError(ReliveError):
    """Raised when a module fails to load or execute during a swap.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, path: Path, module_name: str, reason: str):
        self.path = path
        self.module_name = module_name
        self.reason = reason
        super().__init__(f"Failed to load {module_name} ({path}): {reason}")


class DispatchError(ReliveError):
    """Raised when a wrapped host entry point fails."""

    def __init__(self, entry_point: str, reason: str):
        self.entry_point = entry_point
        self.reason = reason
        super().__init__(f"Error in '{entry_point}': {reason}")


class HookError(ReliveError):
    """Raised when a pre- or post-swap hook fails."""

    def __init__(self, hook: str, path: Path, reason: str):
        self.hook = hook
        self.path = path
        self.reason = reason
        super().__init__(f"{hook} hook failed for {path}: {reason}")


class InvalidTransitionError(ReliveError):
    """Raised on a supervisor state transition the state machine forbids."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class ConfigError(ReliveError):
    """Raised when a configuration file cannot be read."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid configuration in {path}: {reason}")


def describe(exc: BaseException) -> str:
    """Return a one-line ``Type: message`` description of an exception."""
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"
