"""
Event bus for Ascend state changes.

Provides decoupled communication between game systems. Subscribers such as
the threat detector register against a publish point instead of wrapping
another system's methods.

Usage:
    from .event_bus import EventBus, EventType

    bus = EventBus()
    bus.on(EventType.JOURNAL_ENTRY_SAVED, detector.on_journal_entry)

    # Emit (in a system when state changes)
    bus.emit(EventType.JOURNAL_ENTRY_SAVED, entry_id="a1b2c3d4", text="...")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Game events that can be published."""

    # Quest events
    QUEST_GENERATED = "quest.generated"
    QUEST_ACCEPTED = "quest.accepted"
    QUEST_COMPLETED = "quest.completed"
    QUEST_EXPIRED = "quest.expired"
    QUEST_FAILED = "quest.failed"
    QUEST_DELETED = "quest.deleted"

    # Report events
    REPORT_SUBMITTED = "report.submitted"
    REPORT_ANALYZED = "report.analyzed"

    # Player events
    XP_GAINED = "player.xp_gained"
    LEVEL_UP = "player.level_up"
    STAT_CHANGED = "player.stat_changed"
    RANK_CHANGED = "player.rank_changed"

    # Penalty events
    PENALTY_APPLIED = "penalty.applied"
    PENALTY_CLEARED = "penalty.cleared"

    # Journal events
    JOURNAL_ENTRY_SAVED = "journal.entry_saved"
    THREAT_DETECTED = "threat.detected"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


# Type alias for event handlers
EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    A failing listener is logged and does not stop the others.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The type of event to listen for
            handler: Callback function that receives GameEvent
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in handler for %s", event_type.value)

        return event

    def clear(self) -> None:
        """Clear all listeners. Useful for testing."""
        self._listeners.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        """Get number of listeners for an event type."""
        return len(self._listeners.get(event_type, []))


# Global singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """
    Get the global event bus instance.

    Managers own their own bus; this is for callers that want a shared one.
    """
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus (for testing)."""
    global _event_bus
    _event_bus = None
