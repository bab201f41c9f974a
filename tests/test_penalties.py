"""
Tests for daily quest penalties and emergency quests.
"""

from datetime import timedelta

import pytest

from ascend.state.event_bus import EventType
from ascend.state.schema import (
    DEFAULT_STATS,
    Category,
    Difficulty,
    NotificationKind,
    PenaltyQuest,
    QuestStatus,
    RewardSchedule,
)
from ascend.systems.emergency import EMERGENCY_RECORD, EMERGENCY_TYPES
from ascend.systems.penalties import PENALTY_RECORD


@pytest.fixture
def missed_daily(manager, clock):
    """A daily quest left unfinished past midnight, with stats and XP to lose."""
    manager.ledger.apply(RewardSchedule(xp=80, stats={name: 5 for name in DEFAULT_STATS}))
    quest = manager.quests.generate("Organize the garage", daily=True)
    clock.advance(hours=15, minutes=30)
    return quest


def titles(notifier):
    return [n.title for n in notifier.notifications]


class TestDailyPenalties:
    """Test penalties for missed daily quests."""

    def test_missed_daily_fails_and_penalizes(self, manager, missed_daily, notifier):
        penalties = manager.penalties.check_daily_quests()

        assert missed_daily.status == QuestStatus.FAILED
        assert len(penalties) == 1
        penalty = penalties[0]
        assert penalty.quest_id == missed_daily.id
        assert manager.player.stats[penalty.stat_hit] == 3
        assert manager.player.xp == 30
        assert manager.player.total_xp == 80
        assert "[System] Penalty Applied" in titles(notifier)
        assert manager.bus.get_history(EventType.PENALTY_APPLIED)

    def test_redemption_quest_issued(self, manager, missed_daily, clock, notifier):
        penalty = manager.penalties.check_daily_quests()[0]
        redemption = [q for q in manager.quests.active() if isinstance(q, PenaltyQuest)]

        assert len(redemption) == 1
        quest = redemption[0]
        assert quest.penalty_id == penalty.id
        assert quest.mandatory is True
        assert quest.category == Category.PENALTY
        assert quest.difficulty == Difficulty.MEDIUM
        assert quest.rewards.xp == 100
        assert quest.expires_at == clock.now() + timedelta(hours=24)
        assert "[System] Penalty Quest Issued" in titles(notifier)

    def test_daily_quest_before_deadline_is_untouched(self, manager, clock):
        quest = manager.quests.generate("Organize the garage", daily=True)
        clock.advance(hours=10)
        assert manager.penalties.check_daily_quests() == []
        assert quest.status == QuestStatus.ACTIVE

    def test_completing_redemption_clears_penalty(self, manager, missed_daily, notifier):
        penalty = manager.penalties.check_daily_quests()[0]
        redemption = next(q for q in manager.quests.active() if isinstance(q, PenaltyQuest))

        manager.quests.grant(redemption.id)

        assert manager.penalties.get(penalty.id) is None
        assert [p.id for p in manager.penalties.history] == [penalty.id]
        removed = [n for n in notifier.notifications if n.title == "[System] Penalty Removed"]
        assert removed and removed[0].kind == NotificationKind.SUCCESS
        assert manager.bus.get_history(EventType.PENALTY_CLEARED)

    def test_penalties_persist(self, manager, missed_daily):
        manager.penalties.check_daily_quests()
        record = manager.get_stat_record(PENALTY_RECORD)
        assert len(record["penalties"]) == 1
        assert len(record["history"]) == 1

    def test_remove_unknown_penalty(self, manager):
        assert manager.penalties.remove_penalty("missing") is False

    def test_expired_redemption_keeps_penalty(self, manager, missed_daily, clock):
        penalty = manager.penalties.check_daily_quests()[0]
        clock.advance(hours=25)
        manager.quests.sweep_expired()
        assert manager.penalties.get(penalty.id) is not None


class TestEmergencyQuests:
    """Test emergency quest generation and expiry."""

    def test_generate_specific_type(self, manager, clock, notifier):
        quest = manager.emergencies.generate(emergency_type="urgent_goal")
        assert quest.status == QuestStatus.ACTIVE
        assert quest.category == Category.EMERGENCY
        assert quest.difficulty == Difficulty.HARD
        assert quest.rewards.xp == 200
        assert quest.rewards.skill_points == 1
        assert quest.expires_at == clock.now() + timedelta(hours=2)
        assert notifier.of_kind(NotificationKind.WARNING)[-1].title == "[System] Emergency Quest"
        assert manager.emergencies.active() == [quest]

    def test_random_type(self, manager):
        quest = manager.emergencies.generate()
        assert quest.emergency_type in EMERGENCY_TYPES

    def test_roll_respects_chance(self, manager):
        manager.config["emergency_chance"] = 0.0
        assert manager.emergencies.roll() is None
        manager.config["emergency_chance"] = 1.0
        assert manager.emergencies.roll() is not None

    def test_expiry_is_recorded(self, manager, clock, notifier):
        quest = manager.emergencies.generate(emergency_type="opportunity_seized")
        clock.advance(hours=2)
        manager.quests.sweep_expired()

        assert quest.status == QuestStatus.EXPIRED
        assert [e["id"] for e in manager.emergencies.history] == [quest.id]
        assert "[System] Emergency Quest Expired" in titles(notifier)
        assert "[System] Quest Expired" not in titles(notifier)
        stored = manager.get_stat_record(EMERGENCY_RECORD)
        assert stored["active"] == []

    def test_completion_on_time(self, manager):
        quest = manager.emergencies.generate(emergency_type="urgent_goal")
        result = manager.quests.grant(quest.id)
        assert result.points.xp == 220
        assert manager.player.level == 2
        assert manager.player.skill_points == 4
