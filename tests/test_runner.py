"""Tests for the terminal frame loop."""

import io

import pytest
from rich.console import Console

from relive.config import SupervisorConfig
from relive.runner import FrameLoop

SINK = "calls = []\n"

APP = """
import sink


def load():
    sink.calls.append("load")


def update(dt):
    sink.calls.append("{tag}")


def quit():
    sink.calls.append("quit")
"""


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_loop(tree, clock, output):
    def factory(fps: float = 0, sleep=lambda seconds: None, **options) -> FrameLoop:
        config = SupervisorConfig(watch_path=tree.root, **options)
        return FrameLoop(
            "app",
            config,
            fps=fps,
            console=Console(file=output, width=120),
            clock=clock,
            sleep=sleep,
        )

    return factory


class TestFrameLoop:
    """Tests for FrameLoop.run."""

    def test_runs_requested_frames(self, tree, make_loop):
        """The loop calls load once, update every frame and quit at the end."""
        tree.write("sink.py", SINK)
        tree.write("app.py", APP.replace("{tag}", "v1"))
        loop = make_loop()

        assert loop.run(max_frames=3) == 3

        sink = tree.import_module("sink")
        assert sink.calls == ["load", "v1", "v1", "v1", "quit"]

    def test_stop_ends_loop(self, tree, make_loop):
        """stop() ends the loop after the current frame."""
        tree.write("sink.py", SINK + "stop = None\n")
        tree.write(
            "app.py",
            """
            import sink


            def update(dt):
                sink.calls.append("update")
                sink.stop()
            """,
        )
        loop = make_loop()
        sink = tree.import_module("sink")
        sink.stop = loop.stop

        assert loop.run(max_frames=10) == 1
        assert sink.calls == ["update"]

    def test_error_freezes_application(self, tree, make_loop, output):
        """An error in update stops calling the app and shows the overlay."""
        tree.write("sink.py", SINK)
        tree.write(
            "app.py",
            """
            import sink


            def update(dt):
                sink.calls.append("update")
                return 1 / 0
            """,
        )
        loop = make_loop()

        assert loop.run(max_frames=3) == 3

        sink = tree.import_module("sink")
        assert sink.calls == ["update"]
        assert loop.supervisor.in_error
        assert "ZeroDivisionError" in output.getvalue()

    def test_edit_is_picked_up_while_running(self, tree, make_loop, clock):
        """Saving a new version between frames swaps the running code."""
        tree.write("sink.py", SINK)
        tree.write("app.py", APP.replace("{tag}", "v1"))
        edits = []

        def sleep(seconds):
            if not edits:
                edits.append(tree.write("app.py", APP.replace("{tag}", "v2")))
            clock.advance(1)

        loop = make_loop(fps=10, sleep=sleep)

        loop.run(max_frames=2)

        sink = tree.import_module("sink")
        assert sink.calls == ["load", "v1", "v2", "quit"]

    def test_user_post_swap_hook_still_runs(self, tree, make_loop, clock):
        """The loop's rebinding wraps the configured post-swap hook."""
        tree.write("sink.py", SINK)
        tree.write("app.py", APP.replace("{tag}", "v1"))
        swapped = []

        def sleep(seconds):
            if not swapped:
                tree.write("app.py", APP.replace("{tag}", "v2"))
            clock.advance(1)

        loop = make_loop(fps=10, sleep=sleep, post_swap=swapped.append)

        loop.run(max_frames=2)

        assert [p.name for p in swapped] == ["app.py"]

    def test_failing_post_swap_hook_freezes_instead_of_crashing(
        self, tree, make_loop, clock, output
    ):
        """A raising hook puts the loop in the error state and it keeps running."""
        tree.write("sink.py", SINK)
        tree.write("app.py", APP.replace("{tag}", "v1"))
        frames = []

        def sleep(seconds):
            frames.append(seconds)
            if len(frames) == 2:
                tree.write("app.py", APP.replace("{tag}", "v2"))
            clock.advance(1)

        def post_swap(path):
            raise RuntimeError("hook boom")

        loop = make_loop(fps=10, sleep=sleep, post_swap=post_swap)

        assert loop.run(max_frames=5) == 5

        sink = tree.import_module("sink")
        assert loop.supervisor.in_error
        assert sink.calls[:3] == ["load", "v1", "v1"]
        assert "hook boom" in output.getvalue()

    def test_load_and_quit_names_are_configurable(self, tree, make_loop):
        """The startup and shutdown entry points follow the configuration."""
        tree.write("sink.py", SINK)
        tree.write(
            "app.py",
            """
            import sink


            def setup():
                sink.calls.append("setup")


            def update(dt):
                sink.calls.append("update")


            def teardown():
                sink.calls.append("teardown")
            """,
        )
        loop = make_loop(
            entry_points=["setup", "update", "draw", "teardown"],
            load_callback="setup",
            quit_callback="teardown",
        )

        loop.run(max_frames=1)

        sink = tree.import_module("sink")
        assert sink.calls == ["setup", "update", "teardown"]
