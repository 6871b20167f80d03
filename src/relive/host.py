"""Host-side indirection table for entry points.

The host never calls application callbacks directly. It calls through a
:class:`CallbackTable`, whose bindings the dispatcher and the supervisor
swap out (wrappers in normal state, no-ops and diagnostics in error state).
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relive.overlay import ErrorReport

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


def noop(*args: Any, **kwargs: Any) -> None:
    """Entry point binding that does nothing."""


class CallbackTable:
    """Named entry points the host invokes each frame or event."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._bindings: dict[str, Callback | None] = {name: None for name in names}

    def __getitem__(self, name: str) -> Callback | None:
        return self._bindings.get(name)

    def __setitem__(self, name: str, callback: Callback | None) -> None:
        self._bindings[name] = callback

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._bindings))

    def bind(self, name: str, callback: Callback | None) -> None:
        self._bindings[name] = callback

    def invoke(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call the current binding for ``name``; unbound names are a no-op."""
        callback = self._bindings.get(name)
        if callback is None:
            return None
        return callback(*args, **kwargs)

    def snapshot(self) -> dict[str, Callback | None]:
        """Copy of the current bindings, for :meth:`restore`."""
        return dict(self._bindings)

    def restore(self, snapshot: dict[str, Callback | None]) -> None:
        self._bindings.clear()
        self._bindings.update(snapshot)


def _default_overlay() -> Callable[["ErrorReport"], None]:
    from relive.overlay import TerminalOverlay

    return TerminalOverlay()


@dataclass
class Host:
    """Services the supervisor needs from the host application."""

    callbacks: CallbackTable = field(default_factory=CallbackTable)
    quit: Callable[[], Any] = noop
    # Release any exclusive pointer or input grab
    release_capture: Callable[[], Any] = noop
    draw_overlay: Callable[["ErrorReport"], Any] = field(default_factory=_default_overlay)
