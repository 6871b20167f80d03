"""Supervisor event publishing."""

from relive.events.bus import EventBus
from relive.events.types import Event, EventType

__all__ = ["Event", "EventBus", "EventType"]
