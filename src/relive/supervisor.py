"""Supervisor state machine.

States::

    init -> normal <-> error

``init`` is left lazily on the first tick, installing the protected
dispatcher. ``normal`` scans for changes every ``scan_interval`` seconds and
swaps changed files. A failed swap or an uncaught error in an entry point
moves to ``error``, where the application is frozen behind a diagnostic
overlay until a change is detected and the remembered failing file swaps
cleanly.
"""

import contextlib
import logging
import time
from collections.abc import Callable, Iterator
from enum import Enum
from pathlib import Path
from typing import Any

from relive.config import SupervisorConfig
from relive.dispatch import ProtectedDispatcher
from relive.errors import InvalidTransitionError
from relive.events import EventBus, EventType
from relive.host import CallbackTable, Host, noop
from relive.overlay import ErrorReport
from relive.reload.reloader import HotSwapper, SwapResult
from relive.reload.watcher import ChangeScanner, FileRegistry

logger = logging.getLogger(__name__)


class SupervisorState(str, Enum):
    """Supervisor lifecycle states."""

    INIT = "init"
    NORMAL = "normal"
    ERROR = "error"


_TRANSITIONS: dict[SupervisorState, set[SupervisorState]] = {
    SupervisorState.INIT: {SupervisorState.NORMAL},
    SupervisorState.NORMAL: {SupervisorState.ERROR},
    SupervisorState.ERROR: {SupervisorState.NORMAL},
}


class Supervisor:
    """Watches the source tree, swaps changed modules and contains failures.

    Drive it by calling :meth:`tick` from the host's per-frame update.
    """

    def __init__(
        self,
        config: SupervisorConfig | None = None,
        host: Host | None = None,
        clock: Callable[[], float] = time.monotonic,
        event_bus: EventBus | None = None,
    ):
        self.config = config or SupervisorConfig()
        self.host = host or Host(callbacks=CallbackTable(self.config.entry_points))
        self.events = event_bus or EventBus()
        self.registry = FileRegistry()
        self.scanner = ChangeScanner(
            self.config.watch_path,
            self.registry,
            extension=self.config.extension,
            ignore_patterns=self.config.ignore_patterns,
        )
        self.swapper = HotSwapper(self)
        self.dispatcher = ProtectedDispatcher(
            self.host.callbacks, self.config.entry_points, self.on_error
        )

        self._clock = clock
        self._state = SupervisorState.INIT
        self._last_scan = 0.0
        self._last_error_file: Path | None = None
        self._file_report: ErrorReport | None = None
        self._report: ErrorReport | None = None
        self._busy = False

        logger.info(f"Initializing supervisor for {self.config.watch_path}")
        self.reset_files()

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def in_error(self) -> bool:
        return self._state is SupervisorState.ERROR

    @property
    def last_error_file(self) -> Path | None:
        return self._last_error_file

    @property
    def error_report(self) -> ErrorReport | None:
        """The report shown while in the error state."""
        return self._report

    def reset_files(self) -> None:
        """Record the current modification time of every tracked file."""
        self.registry.reset_all(self.scanner.files())
        logger.debug(f"Tracking {len(self.registry)} files")

    def remember_error_file(self, path: Path) -> None:
        self._last_error_file = path

    # State transitions

    def _transition(self, target: SupervisorState) -> None:
        current = self._state
        if target not in _TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)
        self._state = target
        logger.debug(f"Supervisor state {current.value} -> {target.value}")
        self.events.emit(
            EventType.STATE_CHANGED, {"from": current.value, "to": target.value}
        )

    def _exit_init_state(self) -> None:
        self._transition(SupervisorState.NORMAL)
        if self.config.protected:
            self.dispatcher.install()

    def _enter_error_state(self, report: ErrorReport) -> None:
        self._report = report
        if self.in_error:
            return
        self._transition(SupervisorState.ERROR)

        try:
            self.host.release_capture()
        except Exception as e:
            logger.error(f"Failed to release input capture: {e}")

        callbacks = self.host.callbacks
        for name in self.config.entry_points:
            callbacks[name] = noop
        callbacks[self.config.update_callback] = self.tick
        callbacks[self.config.key_callback] = self._error_keypressed
        callbacks[self.config.draw_callback] = self._draw_error

    def exit_error_state(self) -> None:
        """Leave the error state and rebind the protected wrappers."""
        if not self.in_error:
            raise InvalidTransitionError(self._state.value, SupervisorState.NORMAL.value)
        self._transition(SupervisorState.NORMAL)
        self._report = None
        self.dispatcher.restore()

    def on_error(
        self,
        exc: BaseException,
        *,
        file: str | None = None,
        entry_point: str | None = None,
        with_traceback: bool = True,
    ) -> None:
        """Failure handler: switch to the error state showing ``exc``."""
        report = ErrorReport.from_exception(
            exc, file=file, entry_point=entry_point, with_traceback=with_traceback
        )
        if file is not None:
            self._file_report = report
        if entry_point is not None:
            self.events.emit(
                EventType.DISPATCH_FAILED, {"entry_point": entry_point, "error": report.message}
            )

        logger.warning("An error occurred; switching to error state")
        if self._state is SupervisorState.INIT:
            self._exit_init_state()
        self._enter_error_state(report)

    def _error_keypressed(self, key: Any = None, *args: Any, **kwargs: Any) -> None:
        if key == self.config.quit_key:
            logger.info("Exiting...")
            self.host.quit()

    def _draw_error(self, *args: Any, **kwargs: Any) -> None:
        if self._report is not None:
            self.host.draw_overlay(self._report)

    # Scanning

    @contextlib.contextmanager
    def _exclusive(self) -> Iterator[bool]:
        if self._busy:
            logger.debug("Ignoring reentrant scan")
            yield False
            return
        self._busy = True
        try:
            yield True
        finally:
            self._busy = False

    def tick(self, *args: Any, **kwargs: Any) -> list[Path]:
        """Per-frame entry point; scans once the interval has elapsed.

        Host arguments (such as a frame delta) are accepted and ignored.

        Returns:
            The files found changed by this tick's scan, if one ran.
        """
        with self._exclusive() as entered:
            if not entered:
                return []
            if self._state is SupervisorState.INIT:
                self._exit_init_state()

            diff = self._clock() - self._last_scan
            if diff <= self.config.scan_interval:
                return []
            self._last_scan += diff
            return self._scan()

    def scan(self) -> list[Path]:
        """Scan now, regardless of the interval, and swap changed files."""
        with self._exclusive() as entered:
            if not entered:
                return []
            return self._scan()

    def _scan(self) -> list[Path]:
        if self._state is SupervisorState.INIT:
            self._exit_init_state()

        changed = self.scanner.scan()
        if not changed:
            return changed

        order = list(changed)
        # Any edit may be the fix, so the failing file goes first
        if self._last_error_file is not None:
            retry = self._last_error_file
            self._last_error_file = None
            logger.info(f"Retrying '{retry}' after change")
            order = [retry, *(path for path in changed if path != retry)]

        for path in order:
            self.swapper.swap(path)

        # Stay in the error state until the failing file itself swaps
        if (
            self._last_error_file is not None
            and self._file_report is not None
            and self._state is SupervisorState.NORMAL
        ):
            self._enter_error_state(self._file_report)

        self.events.emit(EventType.SCAN_COMPLETED, {"changed": [str(p) for p in changed]})
        return changed

    def swap(self, path: str | Path) -> SwapResult:
        """Swap a single file immediately."""
        if self._state is SupervisorState.INIT:
            self._exit_init_state()
        return self.swapper.swap(Path(path))
