"""Protected dispatch of host entry points.

Every configured entry point in the :class:`~relive.host.CallbackTable` is
replaced by a wrapper that forwards to the real implementation and turns an
uncaught exception into a call to the supervisor's failure handler.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from relive.errors import DispatchError, describe
from relive.host import Callback, CallbackTable

logger = logging.getLogger(__name__)

ErrorHandler = Callable[..., Any]


class ProtectedDispatcher:
    """Keeps host entry points bound to failure-isolating wrappers."""

    def __init__(
        self,
        callbacks: CallbackTable,
        names: Iterable[str],
        on_error: ErrorHandler,
    ):
        self.callbacks = callbacks
        self.names = list(names)
        self.on_error = on_error
        self._wrappers: dict[str, Callback] = {}
        self._real: dict[str, Callback | None] = {}

    @property
    def installed(self) -> bool:
        return bool(self._wrappers)

    def wrapper(self, name: str) -> Callback | None:
        return self._wrappers.get(name)

    def real(self, name: str) -> Callback | None:
        """The implementation the wrapper for ``name`` currently forwards to."""
        return self._real.get(name)

    def _make_wrapper(self, name: str) -> Callback:
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            real = self._real.get(name)
            if real is None:
                return None
            try:
                return real(*args, **kwargs)
            except Exception as e:
                logger.error(f"Uncaught error in '{name}': {describe(e)}")
                error = DispatchError(name, describe(e))
                error.__cause__ = e
                self.on_error(error, entry_point=name, with_traceback=True)
                return None

        wrapper.__name__ = f"protected_{name}"
        wrapper.__qualname__ = wrapper.__name__
        return wrapper

    def install(self) -> None:
        """Create the wrappers and bind them in place of the host callbacks."""
        for name in self.names:
            if name not in self._wrappers:
                self._wrappers[name] = self._make_wrapper(name)
                self._real[name] = None
        self.resync()
        logger.debug(f"Installed wrappers for {len(self._wrappers)} entry points")

    def resync(self) -> None:
        """Capture bindings that replaced a wrapper and rebind the wrapper.

        Called after a swap, when the reloaded code may have assigned fresh
        implementations to the table. Wrappers already in place are left
        alone, so calling this repeatedly is harmless.
        """
        for name, wrapper in self._wrappers.items():
            current = self.callbacks[name]
            if current is not wrapper:
                self._real[name] = current
                self.callbacks[name] = wrapper

    def restore(self) -> None:
        """Bind every wrapper again, keeping the captured implementations."""
        for name, wrapper in self._wrappers.items():
            self.callbacks[name] = wrapper
