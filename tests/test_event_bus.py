"""Tests for the event bus."""

from ascend.state.event_bus import EventBus, EventType, get_event_bus, reset_event_bus


class TestEventBus:
    """Test subscription and emission."""

    def test_handler_receives_event(self):
        bus = EventBus()
        received = []
        bus.on(EventType.QUEST_ACCEPTED, received.append)

        event = bus.emit(EventType.QUEST_ACCEPTED, quest_id="q1")
        assert received == [event]
        assert event.data == {"quest_id": "q1"}

    def test_duplicate_subscription_ignored(self):
        bus = EventBus()
        handler = lambda event: None
        bus.on(EventType.LEVEL_UP, handler)
        bus.on(EventType.LEVEL_UP, handler)
        assert bus.listener_count(EventType.LEVEL_UP) == 1

    def test_off(self):
        bus = EventBus()
        received = []
        bus.on(EventType.LEVEL_UP, received.append)
        bus.off(EventType.LEVEL_UP, received.append)
        bus.emit(EventType.LEVEL_UP, level=2)
        assert received == []

    def test_failing_handler_is_isolated(self):
        """A broken listener does not stop the ones after it."""
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on(EventType.XP_GAINED, broken)
        bus.on(EventType.XP_GAINED, received.append)
        bus.emit(EventType.XP_GAINED, amount=10)
        assert len(received) == 1

    def test_history_is_bounded(self):
        bus = EventBus(history_limit=3)
        for n in range(5):
            bus.emit(EventType.XP_GAINED, amount=n)
        assert [e.data["amount"] for e in bus.get_history()] == [2, 3, 4]

    def test_history_filter(self):
        bus = EventBus()
        bus.emit(EventType.XP_GAINED, amount=1)
        bus.emit(EventType.LEVEL_UP, level=2)
        assert len(bus.get_history(EventType.LEVEL_UP)) == 1

    def test_global_bus(self):
        reset_event_bus()
        assert get_event_bus() is get_event_bus()
        first = get_event_bus()
        reset_event_bus()
        assert get_event_bus() is not first
