"""Hot-swap of a single module file.

Handles:
- Pre/post swap hooks
- Loading the file's current source into the live module
- Merging the new definitions into the old module state
- Rolling the module back when loading fails
- Containing failures raised by the hooks
"""

import logging
import sys
import time
import types
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from relive.errors import HookError, LoadError, ReliveError, describe
from relive.events import EventType
from relive.reload.merger import StateMerger

if TYPE_CHECKING:
    from relive.supervisor import Supervisor

logger = logging.getLogger(__name__)


class SwapStatus(Enum):
    """Status of a swap attempt."""

    SWAPPED = "swapped"
    NOT_LOADED = "not_loaded"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class SwapResult:
    """Result of a swap attempt."""

    path: Path
    status: SwapStatus
    module_name: str | None = None
    elapsed: float = 0.0
    error: ReliveError | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def ok(self) -> bool:
        return self.status is not SwapStatus.FAILED


def path_to_module(path: Path, root: Path) -> str | None:
    """Convert a file path to a Python module name.

    Args:
        path: Path to a Python file.
        root: Import root the module name is relative to.

    Returns:
        Module name (e.g., "game.entities.player"), or None for files that
        are not Python modules or lie outside the import root.
    """
    if path.suffix != ".py":
        return None

    try:
        rel_path = path.resolve().relative_to(root.resolve())
    except ValueError:
        return None

    # Remove src/ prefix if present
    parts = rel_path.parts
    if parts and parts[0] == "src":
        parts = parts[1:]
    if not parts:
        return None

    if parts[-1] == "__init__.py":
        parts = parts[:-1]
    else:
        parts = (*parts[:-1], parts[-1][: -len(".py")])

    return ".".join(parts) or None


def _compile(path: Path) -> types.CodeType:
    # Compile from source so a stale bytecode cache is never used
    return compile(path.read_bytes(), str(path), "exec", dont_inherit=True)


class HotSwapper:
    """Swaps changed module files into the running program.

    Flow:
    1. Leave the error state, if the supervisor is in it
    2. Ask the pre-swap hook whether to go ahead
    3. Load the new source into the live module and merge state
    4. Reset the file's record whatever the outcome
    5. Run the post-swap hook and resync the protected wrappers
    6. Enter the error state if the load or either hook failed
    """

    def __init__(self, supervisor: "Supervisor"):
        self.supervisor = supervisor
        self._history: list[SwapResult] = []

    def _load(self, module: types.ModuleType, path: Path) -> types.ModuleType:
        """Execute the file's current source and return the new generation.

        The live module is left exactly as it was; the new values are
        returned in a scratch module. On failure the live module and the
        host callback bindings are rolled back before the error propagates,
        including on KeyboardInterrupt or SystemExit.
        """
        namespace = vars(module)
        old_fields = dict(namespace)
        bindings = self.supervisor.host.callbacks.snapshot()

        try:
            exec(_compile(path), namespace)
        except BaseException:
            namespace.clear()
            namespace.update(old_fields)
            self.supervisor.host.callbacks.restore(bindings)
            raise

        fresh = types.ModuleType(module.__name__)
        vars(fresh).update(namespace)
        namespace.clear()
        namespace.update(old_fields)
        return fresh

    def _hotswap(self, module_name: str, path: Path) -> SwapStatus:
        module = sys.modules.get(module_name)
        if module is None:
            # Check the source without executing it
            try:
                _compile(path)
            except Exception as e:
                raise LoadError(path, module_name, describe(e)) from e
            logger.debug(f"Module {module_name} not loaded, skipping swap")
            return SwapStatus.NOT_LOADED

        try:
            fresh = self._load(module, path)
        except Exception as e:
            raise LoadError(path, module_name, describe(e)) from e

        StateMerger().merge(module, fresh)
        return SwapStatus.SWAPPED

    def _call_hook(self, name: str, hook: Callable[[Path], Any], path: Path) -> Any:
        try:
            return hook(path)
        except Exception as e:
            raise HookError(name, path, describe(e)) from e

    def swap(self, path: Path) -> SwapResult:
        """Swap one module file.

        Args:
            path: The changed module file.

        Returns:
            SwapResult describing the outcome. Load and hook failures are
            reported here and never raised.
        """
        supervisor = self.supervisor
        config = supervisor.config
        logger.info(f"Hotswapping '{path}'...")

        if supervisor.in_error:
            supervisor.exit_error_state()

        module_name = path_to_module(path, config.import_root)

        if config.pre_swap is not None:
            try:
                abort = self._call_hook("pre_swap", config.pre_swap, path)
            except HookError as e:
                supervisor.registry.reset(path)
                result = SwapResult(
                    path=path, status=SwapStatus.FAILED, module_name=module_name, error=e
                )
                return self._fail(result)
            if abort:
                logger.info(f"Hotswap of '{path}' aborted by pre-swap hook")
                supervisor.registry.reset(path)
                result = SwapResult(path=path, status=SwapStatus.ABORTED, module_name=module_name)
                supervisor.events.emit(EventType.SWAP_ABORTED, {"path": str(path)})
                return self._record(result)

        start = time.perf_counter()
        error: ReliveError | None = None
        if module_name is None:
            status = SwapStatus.NOT_LOADED
        else:
            try:
                status = self._hotswap(module_name, path)
            except LoadError as e:
                status = SwapStatus.FAILED
                error = e
        elapsed = time.perf_counter() - start

        supervisor.registry.reset(path)
        result = SwapResult(
            path=path,
            status=status,
            module_name=module_name,
            elapsed=elapsed,
            error=error,
        )
        if error is not None:
            return self._fail(result)

        if status is SwapStatus.SWAPPED:
            logger.info(f"Swapped '{path}' in {elapsed:.4f} secs")
        if config.post_swap is not None:
            try:
                self._call_hook("post_swap", config.post_swap, path)
            except HookError as e:
                result.error = e
        # Before any error state below rebinds the entry points
        if config.protected:
            supervisor.dispatcher.resync()

        if result.error is not None:
            result.status = SwapStatus.FAILED
            return self._fail(result)

        supervisor.events.emit(
            EventType.SWAP_COMPLETED,
            {
                "path": str(path),
                "module": module_name,
                "status": status.value,
                "elapsed": elapsed,
            },
        )
        return self._record(result)

    def _fail(self, result: SwapResult) -> SwapResult:
        supervisor = self.supervisor
        config = supervisor.config
        error = result.error
        logger.error(f"Failed to swap '{result.path}': {error.reason}")

        if config.protected and not config.quiet:
            supervisor.remember_error_file(result.path)
            supervisor.on_error(error, file=str(result.path), with_traceback=True)
        supervisor.events.emit(
            EventType.SWAP_FAILED,
            {"path": str(result.path), "module": result.module_name, "error": error.reason},
        )
        return self._record(result)

    def _record(self, result: SwapResult) -> SwapResult:
        self._history.append(result)
        return result

    def get_swap_history(self, limit: int = 10) -> list[SwapResult]:
        """Get recent swap history.

        Args:
            limit: Maximum number of results to return.

        Returns:
            List of recent SwapResults.
        """
        return self._history[-limit:]
