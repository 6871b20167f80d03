"""Pytest configuration and fixtures."""

import importlib
import os
import sys
import textwrap
from pathlib import Path

import pytest

from relive.config import SupervisorConfig
from relive.host import CallbackTable, Host
from relive.supervisor import Supervisor


class FakeClock:
    """Manually advanced clock for interval tests."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SourceTree:
    """Importable source directory.

    Every write moves the file's mtime forward by ten seconds, so edits are
    visible to the scanner regardless of filesystem timestamp resolution.
    """

    def __init__(self, root: Path):
        self.root = root
        self._stamp = 1_700_000_000

    def write(self, relpath: str, source: str, keep_mtime: bool = False) -> Path:
        path = self.root / relpath
        previous = path.stat().st_mtime_ns if keep_mtime else None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source))
        if previous is not None:
            os.utime(path, ns=(previous, previous))
        else:
            self._stamp += 10
            os.utime(path, (self._stamp, self._stamp))
        return path

    def import_module(self, name: str):
        importlib.invalidate_caches()
        return importlib.import_module(name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tree(tmp_path: Path):
    """A source directory on sys.path; its modules are unloaded afterwards."""
    root = tmp_path / "app"
    root.mkdir()
    sys.path.insert(0, str(root))

    yield SourceTree(root)

    sys.path.remove(str(root))
    for name, module in list(sys.modules.items()):
        file = getattr(module, "__file__", None)
        if file and file.startswith(str(root)):
            del sys.modules[name]


@pytest.fixture
def reports() -> list:
    """Error reports passed to the host's overlay."""
    return []


@pytest.fixture
def make_supervisor(tree: SourceTree, clock: FakeClock, reports: list):
    """Factory for supervisors watching the source tree."""

    def factory(host: Host | None = None, **options) -> Supervisor:
        config = SupervisorConfig(watch_path=tree.root, **options)
        if host is None:
            host = Host(
                callbacks=CallbackTable(config.entry_points),
                draw_overlay=reports.append,
            )
        return Supervisor(config, host=host, clock=clock)

    return factory
