"""
Notification sinks.

The engine's only side channel to the user is notify(title, message, kind).
Presentation is up to the sink: a rich console panel, an in-memory list
for tests, or nothing at all.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..state.schema import NotificationKind


# Border colours per kind
THEME: dict[NotificationKind, str] = {
    NotificationKind.INFO: "steel_blue",
    NotificationKind.SUCCESS: "green",
    NotificationKind.ERROR: "dark_red",
    NotificationKind.WARNING: "dark_goldenrod",
    NotificationKind.ACHIEVEMENT: "magenta",
    NotificationKind.LEVEL_UP: "bold cyan",
    NotificationKind.QUEST_ASSIGN: "cyan",
    NotificationKind.QUEST_ACCEPT: "steel_blue",
    NotificationKind.QUEST_COMPLETE: "green",
    NotificationKind.CHALLENGE: "orange3",
    NotificationKind.SYNERGY: "purple",
}


@runtime_checkable
class NotificationSink(Protocol):
    def notify(
        self,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        duration_ms: int | None = None,
    ) -> None:
        ...


@dataclass
class Notification:
    title: str
    message: str
    kind: NotificationKind
    duration_ms: int | None = None
    created_at: datetime | None = None


class ConsoleNotifier:
    """Render notifications as rich panels."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify(
        self,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        duration_ms: int | None = None,
    ) -> None:
        kind = NotificationKind(kind)
        # Quest titles carry user text, so render it literally
        self.console.print(Panel(
            Text(message),
            title=Text(title),
            title_align="left",
            border_style=THEME.get(kind, "steel_blue"),
        ))


class MemoryNotifier:
    """Collect notifications in a list (testing)."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(
        self,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        duration_ms: int | None = None,
    ) -> None:
        self.notifications.append(Notification(
            title=title,
            message=message,
            kind=NotificationKind(kind),
            duration_ms=duration_ms,
            created_at=datetime.now(),
        ))

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self.notifications if n.kind == kind]

    def clear(self) -> None:
        self.notifications.clear()


class NullNotifier:
    """Discard notifications."""

    def notify(self, title, message, kind=NotificationKind.INFO, duration_ms=None) -> None:
        pass
