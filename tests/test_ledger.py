"""
Tests for the reward ledger and progression rules.

The ledger is the only writer of the player profile and inventory.
"""

import pytest

from ascend.rules.progression import (
    next_rank,
    rank_for,
    rank_value,
    total_xp_for_level,
    xp_for_level,
    level_from_xp,
)
from ascend.state.errors import InsufficientResourceError
from ascend.state.event_bus import EventType
from ascend.state.schema import (
    Category,
    CompletionData,
    MaterialRewards,
    NotificationKind,
    Quality,
    Rank,
    RewardSchedule,
)


class TestProgressionRules:
    """Test level and rank formulas."""

    def test_level_curve(self):
        assert xp_for_level(1) == 100
        assert xp_for_level(2) == 150
        assert xp_for_level(3) == 225
        assert total_xp_for_level(3) == 250
        assert level_from_xp(250) == 3
        assert level_from_xp(249) == 2

    def test_rank_thresholds(self):
        assert rank_for(0) == Rank.E
        assert rank_for(74) == Rank.E
        assert rank_for(75) == Rank.D
        assert rank_for(760) == Rank.SS
        assert rank_for(1000) == Rank.SSS

    def test_rank_is_monotonic(self):
        """More total stats never means a lower rank."""
        totals = list(range(0, 1200, 7))
        for lower, higher in zip(totals, totals[1:]):
            assert rank_value(rank_for(lower)) <= rank_value(rank_for(higher))

    def test_next_rank(self):
        assert next_rank(Rank.E) == (Rank.D, 75)
        assert next_rank(Rank.SSS) is None


class TestExperience:
    """Test XP and levelling."""

    def test_level_up(self, manager, notifier):
        result = manager.ledger.add_xp(100)
        player = manager.player
        assert result.leveled_up
        assert player.level == 2
        assert player.xp == 0
        assert player.total_xp == 100
        assert player.skill_points == 3
        assert notifier.of_kind(NotificationKind.LEVEL_UP)
        assert manager.bus.get_history(EventType.LEVEL_UP)

    def test_multi_level_rollover(self, manager):
        manager.ledger.add_xp(250)
        assert manager.player.level == 3
        assert manager.player.xp == 0
        assert manager.player.skill_points == 6

    def test_xp_penalty_stays_in_level(self, manager):
        """Penalties reduce in-level XP only."""
        manager.ledger.add_xp(60)
        removed = manager.ledger.apply_xp_penalty(-50)
        assert removed == 50
        assert manager.player.xp == 10
        assert manager.player.total_xp == 60
        assert manager.player.level == 1

    def test_xp_penalty_floors_at_zero(self, manager):
        manager.ledger.add_xp(120)
        manager.ledger.apply_xp_penalty(-50)
        assert manager.player.level == 2
        assert manager.player.xp == 0


class TestStats:
    """Test stat changes and rank recalculation."""

    def test_stat_floors_at_zero(self, manager):
        assert manager.ledger.update_stat("strength", -5) == 0

    def test_rank_follows_stat_total(self, manager):
        manager.ledger.update_stat("strategy", 760)
        assert manager.player.rank == Rank.SS
        assert manager.bus.get_history(EventType.RANK_CHANGED)

    def test_new_stat_is_accepted(self, manager):
        manager.ledger.update_stat("influence", 4)
        assert manager.player.stats["influence"] == 4

    def test_allocate_stat_spends_points(self, manager):
        manager.ledger.add_xp(100)
        assert manager.ledger.allocate_stat("wisdom") == 1
        assert manager.player.skill_points == 2

    def test_spend_without_points(self, manager):
        with pytest.raises(InsufficientResourceError):
            manager.ledger.spend_skill_point()


class TestCompletionRewards:
    """Test bonus computation."""

    def test_excellent_bonus(self, manager, make_quest):
        points = manager.ledger.evaluate_completion(
            make_quest(xp=100, stats={"strategy": 10}),
            CompletionData(quality=Quality.EXCELLENT, score=100),
        )
        assert points.xp == 130
        assert points.bonus_xp == 30
        assert points.stats == {"strategy": 12}

    def test_good_bonus_with_on_time(self, manager, make_quest):
        points = manager.ledger.evaluate_completion(
            make_quest(xp=100),
            CompletionData(quality=Quality.GOOD, score=80),
            on_time=True,
        )
        assert points.xp == 125

    def test_basic_has_no_bonus(self, manager, make_quest):
        points = manager.ledger.evaluate_completion(make_quest(xp=100), CompletionData())
        assert points.xp == 100
        assert points.bonus_xp == 0


class TestMaterialRewards:
    """Test currency, resources and items."""

    def test_basic_strategy_materials(self, manager, make_quest):
        rewards = manager.ledger.generate_material_rewards(make_quest(), 0, Quality.BASIC)
        assert rewards.money == 50
        assert rewards.influence == 15
        assert rewards.resources == {"energy": 10, "materials": 5, "knowledge": 20}
        assert rewards.tools == []

    def test_excellent_high_score(self, manager, make_quest):
        rewards = manager.ledger.generate_material_rewards(make_quest(), 100, Quality.EXCELLENT)
        assert rewards.money == 112
        assert rewards.influence == 33
        assert rewards.resources["energy"] == 15
        assert len(rewards.tools) == 1

    def test_financial_asset(self, manager, make_quest):
        quest = make_quest(category=Category.FINANCIAL)
        rewards = manager.ledger.generate_material_rewards(quest, 80, Quality.GOOD)
        assert len(rewards.assets) == 1
        assert rewards.assets[0].value == 100

    def test_unknown_category_uses_strategy_table(self, manager, make_quest):
        quest = make_quest(category=Category.EMERGENCY)
        rewards = manager.ledger.generate_material_rewards(quest, 0, Quality.BASIC)
        assert rewards.money == 50


class TestApply:
    """Test atomic application and spending."""

    def test_apply_updates_inventory(self, manager):
        manager.ledger.apply(
            RewardSchedule(xp=10),
            MaterialRewards(money=40, resources={"energy": 5}, influence=3),
        )
        assert manager.inventory.money == 40
        assert manager.inventory.resources["energy"] == 5
        assert manager.inventory.influence == 3
        assert manager.player.xp == 10

    def test_invalid_award_changes_nothing(self, manager):
        """A failing part aborts the whole award."""
        with pytest.raises(ValueError):
            manager.ledger.apply(RewardSchedule(xp=50), MaterialRewards(money=-1000))
        assert manager.player.xp == 0
        assert manager.inventory.money == 0

    def test_overspend_is_rejected(self, manager):
        manager.ledger.apply(RewardSchedule(), MaterialRewards(money=30))
        with pytest.raises(InsufficientResourceError):
            manager.ledger.spend_money(31)
        assert manager.inventory.money == 30
        assert manager.ledger.spend_money(30) == 0

    def test_spend_resource(self, manager):
        manager.ledger.apply(RewardSchedule(), MaterialRewards(resources={"knowledge": 20}))
        assert manager.ledger.spend_resource("knowledge", 5) == 15
        with pytest.raises(InsufficientResourceError):
            manager.ledger.spend_resource("materials", 1)

    def test_influence_floors_at_zero(self, manager):
        assert manager.ledger.add_influence(-10) == 0
