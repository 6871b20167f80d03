"""Supervisor configuration.

Options can be given in code, or read from a ``[tool.relive]`` table in
``pyproject.toml`` or from a standalone ``relive.toml``:

    [tool.relive]
    watch_path = "src"
    scan_interval = 0.5
    quiet = false
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, Field, ValidationError, field_validator

from relive.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("relive.toml", "pyproject.toml")

# Host entry points wrapped by default
DEFAULT_ENTRY_POINTS = [
    "update",
    "load",
    "draw",
    "mousepressed",
    "mousereleased",
    "keypressed",
    "keyreleased",
    "focus",
    "quit",
]


class SupervisorConfig(BaseModel):
    """Recognized supervisor options."""

    watch_path: Path = Path(".")
    # Import root used to derive module names; defaults to watch_path
    module_root: Path | None = None
    extension: str = ".py"
    ignore_patterns: list[str] = Field(
        default_factory=lambda: ["__pycache__", ".venv", "*.egg-info"]
    )
    scan_interval: float = Field(default=0.5, ge=0)

    # Intercept failures at all
    protected: bool = True
    # Log failed swaps instead of entering the error state
    quiet: bool = False

    pre_swap: Callable[[Path], Any] | None = None
    post_swap: Callable[[Path], Any] | None = None

    entry_points: list[str] = Field(default_factory=lambda: list(DEFAULT_ENTRY_POINTS))
    load_callback: str = "load"
    update_callback: str = "update"
    draw_callback: str = "draw"
    key_callback: str = "keypressed"
    quit_callback: str = "quit"
    quit_key: str = "escape"

    @field_validator("extension")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        if not value.startswith("."):
            value = f".{value}"
        return value

    @property
    def import_root(self) -> Path:
        """Directory module names are derived from."""
        return self.module_root if self.module_root is not None else self.watch_path


def find_config(start: Path | None = None) -> Path | None:
    """Find a configuration file in ``start`` (default: current directory)."""
    directory = start or Path.cwd()
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_table(path: Path) -> dict[str, Any]:
    try:
        data = tomli.loads(path.read_text())
    except (OSError, tomli.TOMLDecodeError) as e:
        raise ConfigError(path, str(e)) from e

    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("relive", {})
    if not isinstance(data, dict):
        raise ConfigError(path, "expected a table of options")

    return {key.replace("-", "_"): value for key, value in data.items()}


def load_config(path: str | Path | None = None, **overrides: Any) -> SupervisorConfig:
    """Load a configuration, applying keyword overrides on top.

    Args:
        path: Config file to read. If None, ``relive.toml`` or
            ``pyproject.toml`` in the current directory is used when present.
        **overrides: Option values that take precedence over the file.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file is unreadable or holds invalid options.
    """
    config_path = Path(path) if path is not None else find_config()
    options: dict[str, Any] = {}

    if config_path is not None:
        options = _read_table(config_path)
        base = config_path.parent
        for key in ("watch_path", "module_root"):
            if key in options and not Path(options[key]).is_absolute():
                options[key] = base / options[key]
        logger.debug(f"Loaded configuration from {config_path}")

    options.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return SupervisorConfig(**options)
    except ValidationError as e:
        raise ConfigError(config_path or Path("<overrides>"), str(e)) from e
