"""Tests for notification sinks."""

from rich.console import Console

from ascend.interface.notifications import (
    ConsoleNotifier,
    MemoryNotifier,
    NotificationSink,
    NullNotifier,
)
from ascend.state.schema import NotificationKind


class TestSinks:
    """Test the bundled sinks."""

    def test_all_sinks_match_protocol(self):
        for sink in (ConsoleNotifier(Console(record=True)), MemoryNotifier(), NullNotifier()):
            assert isinstance(sink, NotificationSink)

    def test_console_renders_panel(self):
        console = Console(record=True, width=80)
        ConsoleNotifier(console).notify(
            "[System] Level Up!", "You reached level 2.", NotificationKind.LEVEL_UP
        )
        output = console.export_text()
        assert "Level Up!" in output
        assert "You reached level 2." in output

    def test_memory_sink_filters_by_kind(self):
        sink = MemoryNotifier()
        sink.notify("a", "first", NotificationKind.INFO)
        sink.notify("b", "second", "warning")
        assert [n.title for n in sink.of_kind(NotificationKind.WARNING)] == ["b"]
        sink.clear()
        assert sink.notifications == []
