"""Notification sinks for Ascend."""

from .notifications import (
    NotificationSink,
    Notification,
    ConsoleNotifier,
    MemoryNotifier,
    NullNotifier,
)

__all__ = [
    "NotificationSink",
    "Notification",
    "ConsoleNotifier",
    "MemoryNotifier",
    "NullNotifier",
]
