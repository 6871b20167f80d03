"""Tests for the event bus."""

import logging

from relive.events import Event, EventBus, EventType


class TestEventBus:
    """Tests for EventBus."""

    def test_emit_delivers_to_callbacks(self):
        """Every callback receives the emitted event."""
        bus = EventBus()
        first, second = [], []
        bus.add_callback(first.append)
        bus.add_callback(second.append)

        event = bus.emit(EventType.SWAP_COMPLETED, {"path": "a.py"})

        assert first == [event]
        assert second == [event]
        assert event.data == {"path": "a.py"}

    def test_remove_callback(self):
        """Removed callbacks stop receiving events."""
        bus = EventBus()
        received = []
        bus.add_callback(received.append)
        bus.remove_callback(received.append)
        bus.remove_callback(received.append)

        bus.emit(EventType.SCAN_COMPLETED)

        assert received == []
        assert bus.callback_count == 0

    def test_failing_callback_is_contained(self, caplog):
        """A callback error is logged and later callbacks still run."""
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.add_callback(broken)
        bus.add_callback(received.append)

        with caplog.at_level(logging.ERROR):
            bus.emit(EventType.DISPATCH_FAILED)

        assert len(received) == 1
        assert "listener bug" in caplog.text

    def test_event_to_json(self):
        """Events serialize their type by value."""
        event = Event(type=EventType.STATE_CHANGED, data={"to": "error"})

        payload = event.to_json()

        assert payload["type"] == "supervisor.state_changed"
        assert payload["data"] == {"to": "error"}
        assert payload["id"] == event.id
