"""
Reward and economy ledger.

The only place that mutates the player profile and inventory. Multi-part
awards are computed on copies and committed together, so a failure part
way through never leaves a half-applied reward.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..rules.progression import SKILL_POINTS_PER_LEVEL, rank_for_stats, xp_for_level
from ..state.errors import InsufficientResourceError
from ..state.event_bus import EventType
from ..state.schema import (
    Ally,
    Asset,
    CompletionData,
    Inventory,
    MaterialRewards,
    NotificationKind,
    PlayerProfile,
    Quality,
    Rank,
    RewardSchedule,
    Tool,
)

if TYPE_CHECKING:
    from ..state.manager import GameManager

logger = logging.getLogger(__name__)


# Completion bonuses as fractions of the quest's base XP/stats
EXCELLENT_XP_BONUS = 0.3
EXCELLENT_STAT_BONUS = 0.2
GOOD_XP_BONUS = 0.15
ON_TIME_XP_BONUS = 0.1

CATEGORY_MATERIALS: dict[str, dict] = {
    "strategy": {"money": 50, "resources": {"energy": 10, "materials": 5, "knowledge": 20}, "influence": 15},
    "social": {"money": 30, "resources": {"energy": 5, "materials": 0, "knowledge": 10}, "influence": 25},
    "financial": {"money": 100, "resources": {"energy": 5, "materials": 10, "knowledge": 15}, "influence": 10},
    "medical": {"money": 40, "resources": {"energy": 15, "materials": 5, "knowledge": 30}, "influence": 5},
    "fitness": {"money": 35, "resources": {"energy": 25, "materials": 0, "knowledge": 10}, "influence": 8},
}

QUALITY_MULTIPLIERS: dict[Quality, float] = {
    Quality.EXCELLENT: 1.5,
    Quality.GOOD: 1.2,
    Quality.BASIC: 1.0,
}

SCORE_DIVISOR = 200
TOOL_SCORE_THRESHOLD = 100
ALLY_CHANCE_ABOVE = 0.7

ALLY_TYPES = ["Mentor", "Partner", "Advisor", "Supporter", "Collaborator"]
ALLY_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley"]
ASSET_TYPES = ["Investment", "Business Connection", "Financial Tool", "Resource"]

CATEGORY_TOOLS: dict[str, list[str]] = {
    "strategy": ["Strategic Planner", "Decision Matrix", "Analysis Framework"],
    "social": ["Network Map", "Communication Guide", "Relationship Tracker"],
    "financial": ["Budget Calculator", "Investment Analyzer", "Expense Tracker"],
    "medical": ["Study Planner", "Knowledge Base", "Learning Path"],
    "fitness": ["Workout Tracker", "Progress Monitor", "Training Plan"],
}


@dataclass
class PointRewards:
    """Final XP/stat/skill-point award for one completion."""
    xp: int
    stats: dict[str, int]
    skill_points: int = 0
    bonus_xp: int = 0

    def to_schedule(self) -> RewardSchedule:
        return RewardSchedule(xp=self.xp, stats=dict(self.stats), skill_points=self.skill_points)


@dataclass
class LedgerResult:
    """What an apply() call changed."""
    xp_awarded: int = 0
    levels_gained: int = 0
    new_level: int = 1
    rank_before: Rank = Rank.E
    rank_after: Rank = Rank.E
    stat_changes: dict[str, int] = field(default_factory=dict)

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0

    @property
    def rank_changed(self) -> bool:
        return self.rank_before != self.rank_after


def _add_xp(profile: PlayerProfile, amount: int) -> int:
    """Add XP to a profile copy, rolling over levels. Returns levels gained."""
    if amount <= 0:
        return 0
    profile.xp += amount
    profile.total_xp += amount
    gained = 0
    while profile.xp >= xp_for_level(profile.level):
        profile.xp -= xp_for_level(profile.level)
        profile.level += 1
        profile.skill_points += SKILL_POINTS_PER_LEVEL
        gained += 1
    return gained


def _change_stat(profile: PlayerProfile, name: str, delta: int) -> int:
    """Apply a stat delta floored at zero. Returns the applied change."""
    current = profile.stats.get(name, 0)
    new_value = max(0, current + delta)
    profile.stats[name] = new_value
    return new_value - current


class RewardLedger:
    """
    Applies rewards, penalties and spends to the player aggregate.

    Requires a GameManager for state access and persistence.
    """

    def __init__(self, manager: "GameManager"):
        self.manager = manager

    @property
    def player(self) -> PlayerProfile:
        return self.manager.player

    @property
    def inventory(self) -> Inventory:
        return self.manager.inventory

    # -------------------------------------------------------------------------
    # Reward computation
    # -------------------------------------------------------------------------

    def evaluate_completion(
        self,
        quest,
        completion: CompletionData,
        on_time: bool = False,
    ) -> PointRewards:
        """Quest rewards plus quality and on-time bonuses."""
        base_xp = quest.rewards.xp
        stats = dict(quest.rewards.stats)
        bonus_xp = 0

        if completion.quality == Quality.EXCELLENT:
            bonus_xp = math.floor(base_xp * EXCELLENT_XP_BONUS)
            for stat, value in quest.rewards.stats.items():
                stats[stat] = value + math.floor(value * EXCELLENT_STAT_BONUS)
        elif completion.quality == Quality.GOOD:
            bonus_xp = math.floor(base_xp * GOOD_XP_BONUS)

        if on_time:
            bonus_xp += math.floor(base_xp * ON_TIME_XP_BONUS)

        return PointRewards(
            xp=base_xp + bonus_xp,
            stats=stats,
            skill_points=quest.rewards.skill_points,
            bonus_xp=bonus_xp,
        )

    def generate_material_rewards(self, quest, score: int, quality: Quality) -> MaterialRewards:
        """Currency, resources and items for a verified completion."""
        category = quest.category.value if hasattr(quest.category, "value") else str(quest.category)
        base = CATEGORY_MATERIALS.get(category, CATEGORY_MATERIALS["strategy"])
        quality = Quality(quality)
        multiplier = QUALITY_MULTIPLIERS.get(quality, 1.0)
        score_multiplier = 1 + score / SCORE_DIVISOR
        rng = self.manager.rng

        rewards = MaterialRewards(
            money=math.floor(base["money"] * multiplier * score_multiplier),
            resources={
                name: math.floor(amount * multiplier)
                for name, amount in base["resources"].items()
            },
            influence=math.floor(base["influence"] * multiplier * score_multiplier),
        )

        if category == "social" and quality == Quality.EXCELLENT and rng.random() > ALLY_CHANCE_ABOVE:
            rewards.allies.append(Ally(
                name=rng.choice(ALLY_NAMES),
                type=rng.choice(ALLY_TYPES),
                description=f"Met through {quest.title}",
            ))

        if category == "financial" and quality != Quality.BASIC:
            rewards.assets.append(Asset(
                name=f"{rng.choice(ASSET_TYPES)} - {category}",
                type="financial",
                value=150 if quality == Quality.EXCELLENT else 100,
            ))

        if score >= TOOL_SCORE_THRESHOLD:
            tools = CATEGORY_TOOLS.get(category, CATEGORY_TOOLS["strategy"])
            rewards.tools.append(Tool(name=rng.choice(tools), category=category))

        return rewards

    # -------------------------------------------------------------------------
    # Atomic application
    # -------------------------------------------------------------------------

    def apply(
        self,
        points: RewardSchedule | PointRewards,
        material: MaterialRewards | None = None,
        source: str = "",
    ) -> LedgerResult:
        """
        Apply XP, stats, skill points and material rewards in one commit.

        Everything is computed on copies first; the live aggregate is only
        replaced once the whole award is known to be valid.
        """
        result = self.commit(points, material)
        self.announce(result, source)
        return result

    def commit(
        self,
        points: RewardSchedule | PointRewards,
        material: MaterialRewards | None = None,
    ) -> LedgerResult:
        """
        Compute and commit an award without emitting events or notifications.

        Raises before anything is committed if the award is invalid. Callers
        that finalize other state (quest status) call announce() afterwards.
        """
        profile = self.player.model_copy(deep=True)
        inventory = self.inventory.model_copy(deep=True)
        result = LedgerResult(rank_before=profile.rank)

        result.xp_awarded = max(0, points.xp)
        result.levels_gained = _add_xp(profile, points.xp)

        for stat, delta in points.stats.items():
            applied = _change_stat(profile, stat, delta)
            if applied:
                result.stat_changes[stat] = applied

        profile.skill_points += max(0, points.skill_points)
        profile.rank = rank_for_stats(profile.stats)

        if material is not None:
            inventory.money += material.money
            for name, amount in material.resources.items():
                inventory.resources[name] = inventory.resources.get(name, 0) + amount
            inventory.influence += material.influence
            inventory.allies.extend(material.allies)
            inventory.assets.extend(material.assets)
            inventory.tools.extend(material.tools)

        # Validate before commit
        PlayerProfile.model_validate(profile.model_dump())
        Inventory.model_validate(inventory.model_dump())

        self.manager.player = profile
        self.manager.inventory = inventory
        result.new_level = profile.level
        result.rank_after = profile.rank

        self.manager.save_player()
        if material is not None:
            self.manager.save_inventory()
        return result

    def announce(self, result: LedgerResult, source: str) -> None:
        bus = self.manager.bus
        if result.xp_awarded:
            bus.emit(EventType.XP_GAINED, amount=result.xp_awarded, source=source)
        for stat, delta in result.stat_changes.items():
            bus.emit(EventType.STAT_CHANGED, stat=stat, delta=delta,
                     value=self.player.stats.get(stat, 0))
        if result.leveled_up:
            logger.info("Level up: %d (+%d)", result.new_level, result.levels_gained)
            bus.emit(EventType.LEVEL_UP, level=result.new_level, levels=result.levels_gained)
            self.manager.notify(
                "[System] Level Up!",
                f"You reached level {result.new_level}. "
                f"+{result.levels_gained * SKILL_POINTS_PER_LEVEL} skill points.",
                NotificationKind.LEVEL_UP,
            )
        if result.rank_changed:
            bus.emit(EventType.RANK_CHANGED, before=result.rank_before.value,
                     after=result.rank_after.value)

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def add_xp(self, amount: int, source: str = "") -> LedgerResult:
        return self.apply(RewardSchedule(xp=amount), source=source)

    def update_stat(self, name: str, delta: int) -> int:
        """Change one stat (floored at 0) and recompute rank. Returns the new value."""
        self.apply(RewardSchedule(stats={name: delta}), source=f"stat:{name}")
        return self.player.stats.get(name, 0)

    def apply_xp_penalty(self, amount: int) -> int:
        """
        Remove XP from the current level's progress.

        Never drops a level and never touches lifetime total_xp.
        Returns the XP actually removed.
        """
        amount = abs(amount)
        removed = min(amount, self.player.xp)
        self.player.xp -= removed
        self.manager.save_player()
        return removed

    def spend_skill_point(self, count: int = 1) -> int:
        if count <= 0:
            raise ValueError("Skill point spend must be positive")
        if self.player.skill_points < count:
            raise InsufficientResourceError("skill points", count, self.player.skill_points)
        self.player.skill_points -= count
        self.manager.save_player()
        return self.player.skill_points

    def allocate_stat(self, name: str, points: int = 1) -> int:
        """Spend skill points for +1 stat each. Returns the new stat value."""
        self.spend_skill_point(points)
        return self.update_stat(name, points)

    def spend_money(self, amount: int) -> int:
        if amount <= 0:
            raise ValueError("Spend amount must be positive")
        if self.inventory.money < amount:
            raise InsufficientResourceError("money", amount, self.inventory.money)
        self.inventory.money -= amount
        self.manager.save_inventory()
        return self.inventory.money

    def spend_resource(self, name: str, amount: int) -> int:
        if amount <= 0:
            raise ValueError("Spend amount must be positive")
        available = self.inventory.resources.get(name, 0)
        if available < amount:
            raise InsufficientResourceError(name, amount, available)
        self.inventory.resources[name] = available - amount
        self.manager.save_inventory()
        return self.inventory.resources[name]

    def add_influence(self, amount: int) -> int:
        self.inventory.influence = max(0, self.inventory.influence + amount)
        self.manager.save_inventory()
        return self.inventory.influence
