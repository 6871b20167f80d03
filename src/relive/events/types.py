"""Event type definitions for the event bus."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events published by the supervisor."""

    # Supervisor events
    STATE_CHANGED = "supervisor.state_changed"
    SCAN_COMPLETED = "scan.completed"

    # Swap events
    SWAP_COMPLETED = "swap.completed"
    SWAP_FAILED = "swap.failed"
    SWAP_ABORTED = "swap.aborted"

    # Dispatch events
    DISPATCH_FAILED = "dispatch.failed"


class Event(BaseModel):
    """A published event."""

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }
