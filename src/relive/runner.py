"""A minimal terminal frame loop hosting an application module.

The application module defines top-level functions named after entry
points, for example::

    state = {"frames": 0}

    def update(dt):
        state["frames"] += 1

    def draw():
        ...

The loop ticks the supervisor every frame, so saving a change to any
watched module swaps it into the running program.
"""

import importlib
import logging
import time
import types
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rich.console import Console

from relive.config import SupervisorConfig
from relive.host import CallbackTable, Host
from relive.overlay import TerminalOverlay
from relive.supervisor import Supervisor

logger = logging.getLogger(__name__)


class FrameLoop:
    """Runs ``update``/``draw`` at a fixed rate under a supervisor."""

    def __init__(
        self,
        app_module: str,
        config: SupervisorConfig | None = None,
        fps: float = 30.0,
        console: Console | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        config = config or SupervisorConfig()
        self.app_module = app_module
        self.fps = fps
        self.module: types.ModuleType | None = None
        self.running = False
        self._clock = clock
        self._sleep = sleep
        self._user_post_swap = config.post_swap

        self.callbacks = CallbackTable(config.entry_points)
        self.host = Host(
            callbacks=self.callbacks,
            quit=self.stop,
            draw_overlay=TerminalOverlay(console),
        )
        self.supervisor = Supervisor(
            config.model_copy(update={"post_swap": self._post_swap}),
            host=self.host,
            clock=clock,
        )

    def _bind_app(self) -> None:
        """Bind the application's entry point functions into the table."""
        for name in self.supervisor.config.entry_points:
            func = getattr(self.module, name, None)
            if callable(func):
                self.callbacks[name] = func

    def _post_swap(self, path: Path) -> None:
        # Merged modules hold the new functions; rebind before the resync
        self._bind_app()
        if self._user_post_swap is not None:
            self._user_post_swap(path)

    def stop(self) -> None:
        self.running = False

    def run(self, max_frames: int | None = None) -> int:
        """Import the application and run frames until stopped.

        Args:
            max_frames: Stop after this many frames (None runs until stop()).

        Returns:
            Number of frames run.
        """
        self.module = importlib.import_module(self.app_module)
        self._bind_app()
        logger.info(f"Running {self.app_module} at {self.fps} fps")

        config = self.supervisor.config
        self.supervisor.tick()
        self.callbacks.invoke(config.load_callback)

        self.running = True
        frame_time = 1.0 / self.fps if self.fps > 0 else 0.0
        frames = 0
        last = self._clock()

        while self.running and (max_frames is None or frames < max_frames):
            now = self._clock()
            dt, last = now - last, now

            # In the error state the update binding is the supervisor's tick
            if not self.supervisor.in_error:
                self.supervisor.tick()
            self.callbacks.invoke(config.update_callback, dt)
            self.callbacks.invoke(config.draw_callback)
            frames += 1

            remaining = frame_time - (self._clock() - now)
            if remaining > 0:
                self._sleep(remaining)

        self.callbacks.invoke(config.quit_callback)
        return frames
