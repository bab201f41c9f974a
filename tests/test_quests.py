"""
Tests for the quest lifecycle.

Status moves pending -> active -> completed/expired/failed, and rewards
are applied at most once per quest.
"""

from datetime import datetime, timedelta

import pytest

from ascend.interface.notifications import MemoryNotifier
from ascend.state.errors import (
    GameError,
    InputRequiredError,
    InvalidTransitionError,
    QuestNotFoundError,
)
from ascend.state.event_bus import EventType
from ascend.state.manager import GameManager
from ascend.state.schema import (
    AIGeneratedQuest,
    CompletionData,
    KnowledgeBackedQuest,
    NotificationKind,
    Quality,
    QuestStatus,
)
from ascend.state.store import QUESTS


class LevelUpFailingNotifier(MemoryNotifier):
    """Sink that breaks on level-up announcements."""

    def notify(self, title, message, kind=NotificationKind.INFO, duration_ms=None):
        if kind == NotificationKind.LEVEL_UP:
            raise RuntimeError("display unavailable")
        super().notify(title, message, kind, duration_ms)


class TestGenerate:
    """Test quest generation from input."""

    def test_empty_input_rejected(self, manager):
        with pytest.raises(InputRequiredError):
            manager.quests.generate("")
        with pytest.raises(InputRequiredError):
            manager.quests.generate("   ")
        assert manager.quests.all() == []

    def test_generate_auto_accepts(self, manager, clock, notifier):
        quest = manager.quests.generate("Organize the garage")
        assert quest.status == QuestStatus.ACTIVE
        assert quest.accepted_at == clock.now()
        assert notifier.of_kind(NotificationKind.QUEST_ASSIGN)
        assert notifier.of_kind(NotificationKind.QUEST_ACCEPT)

    def test_input_is_logged(self, manager):
        manager.quests.generate("Organize the garage")
        history = manager.history("user_activity_input")
        assert len(history) == 1
        assert history[0]["data"]["content"] == "Organize the garage"
        assert history[0]["data"]["processed"] is True

    def test_pending_then_accept(self, manager):
        quest = manager.quests.generate("Organize the garage", auto_accept=False)
        assert quest.status == QuestStatus.PENDING
        manager.quests.accept(quest.id)
        assert quest.status == QuestStatus.ACTIVE

    def test_accept_twice(self, active_quest, manager):
        with pytest.raises(InvalidTransitionError):
            manager.quests.accept(active_quest.id)

    def test_accept_unknown(self, manager):
        with pytest.raises(QuestNotFoundError):
            manager.quests.accept("missing")

    def test_daily_quest_expires_end_of_day(self, manager):
        quest = manager.quests.generate("Organize the garage", daily=True)
        assert quest.daily is True
        assert quest.expires_at == datetime(2024, 1, 1, 23, 59, 59, 999999)

    def test_quest_is_persisted(self, manager, memory_store, active_quest):
        record = memory_store.get(QUESTS, active_quest.id)
        assert record["status"] == "active"
        assert record["quest_type"] == "ai_generated"


class TestCompletion:
    """Test completing quests."""

    def test_completion_applies_rewards(self, manager, active_quest, notifier):
        result = manager.quests.complete_with_report(
            active_quest.id, CompletionData(quality=Quality.BASIC, score=60)
        )
        assert result is not None
        assert active_quest.status == QuestStatus.COMPLETED
        assert active_quest.completed_at is not None
        assert active_quest.final_rewards.xp == result.points.xp
        assert manager.player.total_xp == result.points.xp
        assert notifier.of_kind(NotificationKind.QUEST_COMPLETE)
        assert manager.history("quest_completed")

    def test_completion_is_idempotent(self, manager, active_quest):
        """A second completion finds the quest closed and changes nothing."""
        completion = CompletionData(quality=Quality.GOOD, score=80)
        first = manager.quests.complete_with_report(active_quest.id, completion)
        snapshot = manager.player.model_dump()
        money = manager.inventory.money

        assert manager.quests.complete_with_report(active_quest.id, completion) is None
        assert manager.player.model_dump() == snapshot
        assert manager.inventory.money == money
        assert manager.player.total_xp == first.points.xp
        assert len(manager.bus.get_history(EventType.QUEST_COMPLETED)) == 1

    def test_pending_quest_cannot_complete(self, manager):
        quest = manager.quests.generate("Organize the garage", auto_accept=False)
        assert manager.quests.complete_with_report(quest.id, CompletionData()) is None
        assert manager.player.total_xp == 0

    def test_on_time_bonus(self, manager, make_quest, clock):
        quest = make_quest(xp=100, expires_at=clock.now() + timedelta(hours=2))
        manager.quests.add(quest, active=True)
        result = manager.quests.grant(quest.id)
        assert result.points.bonus_xp == 10

    def test_failed_award_reopens_quest(self, manager, make_quest, monkeypatch):
        quest = manager.quests.add(make_quest(), active=True)

        def explode(*args, **kwargs):
            raise ValueError("boom")

        monkeypatch.setattr(manager.ledger, "commit", explode)
        with pytest.raises(ValueError):
            manager.quests.grant(quest.id)
        assert quest.status == QuestStatus.ACTIVE
        assert quest.final_rewards is None

    def test_unverified_completion_is_ignored(self, manager, active_quest):
        """Only a passing verification moves a quest to completed."""
        result = manager.quests.complete_with_report(
            active_quest.id, CompletionData(score=10, verified=False)
        )
        assert result is None
        assert active_quest.status == QuestStatus.ACTIVE
        assert manager.player.total_xp == 0
        assert manager.inventory.money == 0

    def test_notifier_failure_after_award_keeps_completion(self, manager, make_quest):
        """Rewards committed before a sink error are never paid a second time."""
        quest = manager.quests.add(make_quest(xp=150), active=True)
        working = manager.notifier
        manager.notifier = LevelUpFailingNotifier()

        with pytest.raises(RuntimeError):
            manager.quests.grant(quest.id)
        assert quest.status == QuestStatus.COMPLETED
        assert manager.player.total_xp == 150

        manager.notifier = working
        assert manager.quests.grant(quest.id) is None
        assert manager.player.total_xp == 150


class TestFailureAndExpiry:
    """Test the failure and expiry transitions."""

    def test_fail(self, manager, active_quest):
        manager.quests.fail(active_quest.id, reason="gave up")
        assert active_quest.status == QuestStatus.FAILED
        with pytest.raises(InvalidTransitionError):
            manager.quests.fail(active_quest.id)
        assert manager.history("quest_failed")[0]["data"]["reason"] == "gave up"

    def test_sweep_expires_overdue(self, manager, make_quest, clock, notifier):
        quest = manager.quests.add(
            make_quest(expires_at=clock.now() + timedelta(hours=1)), active=True
        )
        clock.advance(hours=2)
        expired = manager.quests.sweep_expired()
        assert expired == [quest]
        assert quest.status == QuestStatus.EXPIRED
        assert manager.player.total_xp == 0
        assert any(n.title == "[System] Quest Expired" for n in notifier.notifications)

    def test_sweep_leaves_unexpired(self, manager, make_quest, clock):
        quest = manager.quests.add(
            make_quest(expires_at=clock.now() + timedelta(hours=1)), active=True
        )
        assert manager.quests.sweep_expired() == []
        assert quest.status == QuestStatus.ACTIVE

    def test_sweep_skips_daily_quests(self, manager, clock):
        quest = manager.quests.generate("Organize the garage", daily=True)
        clock.advance(days=1)
        manager.quests.sweep_expired()
        assert quest.status == QuestStatus.ACTIVE

    def test_expired_quest_cannot_complete(self, manager, make_quest, clock):
        quest = manager.quests.add(
            make_quest(expires_at=clock.now() + timedelta(hours=1)), active=True
        )
        clock.advance(hours=2)
        manager.quests.sweep_expired()
        assert manager.quests.grant(quest.id) is None


class TestManagement:
    """Test deletion, attribution and reload."""

    def test_delete(self, manager, memory_store, active_quest):
        assert manager.quests.delete(active_quest.id) is True
        assert manager.quests.get(active_quest.id) is None
        assert memory_store.get(QUESTS, active_quest.id) is None
        with pytest.raises(QuestNotFoundError):
            manager.quests.delete(active_quest.id)

    def test_toggle_attribution_requires_knowledge_quest(self, manager, active_quest):
        with pytest.raises(GameError):
            manager.quests.toggle_source_attribution(active_quest.id)

    def test_toggle_attribution(self, knowledge_manager):
        quest = knowledge_manager.quests.generate("Plan the quarterly strategy")
        assert isinstance(quest, KnowledgeBackedQuest)
        assert knowledge_manager.quests.toggle_source_attribution(quest.id) is True
        assert knowledge_manager.quests.toggle_source_attribution(quest.id) is False

    def test_reload_restores_variants(self, manager, memory_store, make_quest):
        manager.quests.add(make_quest(title="Stored"), active=True)
        manager.emergencies.generate(emergency_type="urgent_goal")

        reloaded = GameManager(store=memory_store)
        reloaded.load()
        types = sorted(q.quest_type for q in reloaded.quests.all())
        assert types == ["ai_generated", "emergency"]
        stored = [q for q in reloaded.quests.all() if isinstance(q, AIGeneratedQuest)][0]
        assert stored.title == "Stored"
        assert stored.status == QuestStatus.ACTIVE
