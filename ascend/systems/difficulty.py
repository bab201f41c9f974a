"""
Adaptive difficulty for quest rewards.

Tracks success/failure counts and completion times per difficulty tier from
the full quest history, and derives one global adjustment factor that scales
future rewards. The factor only changes the nominal tier on large deviations
so small noisy samples don't cause oscillation.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable

from ..state.schema import (
    DIFFICULTY_ORDER,
    Difficulty,
    DifficultyPerformanceRecord,
    QuestStatus,
)

logger = logging.getLogger(__name__)


DEFAULT_FACTOR = 1.0

# Base reward table scaled by the adjustment factor
BASE_DIFFICULTY_VALUES: dict[Difficulty, dict[str, int]] = {
    Difficulty.EASY: {"xp": 20, "stat_bonus": 1},
    Difficulty.MEDIUM: {"xp": 50, "stat_bonus": 2},
    Difficulty.HARD: {"xp": 100, "stat_bonus": 3},
}

# Tier shifts only happen outside this band
ESCALATE_ABOVE = 1.1
DEESCALATE_BELOW = 0.9

RECOMMEND_MIN_COMPLETIONS = 5


@dataclass
class Adjustment:
    difficulty: Difficulty
    xp: int
    stat_bonus: int
    adjustment_factor: float


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _as_difficulty(value) -> Difficulty:
    try:
        return Difficulty(value)
    except ValueError:
        return Difficulty.MEDIUM


class DifficultyAdjustmentModel:
    """
    Per-tier performance records and the global adjustment factor.

    Args:
        history: callable returning every known quest, used by recompute()
        persist: callback receiving the new factor after each recompute
        adjustment_factor: previously persisted factor
    """

    def __init__(
        self,
        history: Callable[[], Iterable] | None = None,
        persist: Callable[[float], None] | None = None,
        adjustment_factor: float = DEFAULT_FACTOR,
    ):
        self._history = history
        self._persist = persist
        self.adjustment_factor = adjustment_factor
        self.records: dict[Difficulty, DifficultyPerformanceRecord] = self._empty_records()

    @staticmethod
    def _empty_records() -> dict[Difficulty, DifficultyPerformanceRecord]:
        return {tier: DifficultyPerformanceRecord() for tier in DIFFICULTY_ORDER}

    def success_rate(self, tier: Difficulty) -> float:
        return self.records[tier].success_rate

    def load_performance(self, quests: Iterable) -> None:
        """Rebuild the per-tier records from finished quests."""
        self.records = self._empty_records()

        for quest in quests:
            if quest.status not in (QuestStatus.COMPLETED, QuestStatus.FAILED):
                continue
            record = self.records[_as_difficulty(quest.difficulty)]

            if quest.status == QuestStatus.COMPLETED:
                record.completed += 1
                if quest.accepted_at and quest.completed_at:
                    hours = (quest.completed_at - quest.accepted_at).total_seconds() / 3600
                    record.times.append(hours)
            else:
                record.failed += 1

    def select_factor(self) -> float:
        """Exactly one branch applies, checked in priority order."""
        easy = self.records[Difficulty.EASY]
        medium_rate = self.success_rate(Difficulty.MEDIUM)
        hard_rate = self.success_rate(Difficulty.HARD)

        if easy.success_rate >= 0.95 and easy.avg_time < 2:
            return 1.1  # Coasting through easy quests
        if medium_rate < 0.6:
            return 0.9
        if medium_rate >= 0.8:
            return 1.05
        if hard_rate < 0.4:
            return 0.85
        return 1.0

    def recompute(self, quests: Iterable | None = None) -> float:
        """Reload history, pick the factor and persist it."""
        if quests is None:
            quests = self._history() if self._history else []
        self.load_performance(quests)

        previous = self.adjustment_factor
        self.adjustment_factor = self.select_factor()
        if self.adjustment_factor != previous:
            logger.info(
                "Difficulty adjustment factor %.2f -> %.2f",
                previous, self.adjustment_factor,
            )

        if self._persist:
            self._persist(self.adjustment_factor)
        return self.adjustment_factor

    def adjust(self, base: Difficulty | str, context: dict | None = None) -> Adjustment:
        """Scale a tier's base values by the factor and shift the tier on large deviations."""
        base = _as_difficulty(base)
        values = BASE_DIFFICULTY_VALUES[base]
        factor = self.adjustment_factor

        idx = DIFFICULTY_ORDER.index(base)
        if factor > ESCALATE_ABOVE:
            idx = min(idx + 1, len(DIFFICULTY_ORDER) - 1)
        elif factor < DEESCALATE_BELOW:
            idx = max(idx - 1, 0)

        return Adjustment(
            difficulty=DIFFICULTY_ORDER[idx],
            xp=round_half_up(values["xp"] * factor),
            stat_bonus=round_half_up(values["stat_bonus"] * factor),
            adjustment_factor=factor,
        )

    def recommended_difficulty(self) -> Difficulty:
        easy = self.records[Difficulty.EASY]
        medium = self.records[Difficulty.MEDIUM]

        if easy.success_rate >= 0.9 and easy.completed >= RECOMMEND_MIN_COMPLETIONS:
            return Difficulty.MEDIUM
        if medium.success_rate >= 0.8 and medium.completed >= RECOMMEND_MIN_COMPLETIONS:
            return Difficulty.HARD
        if medium.success_rate < 0.5:
            return Difficulty.EASY
        return Difficulty.MEDIUM

    def performance_summary(self) -> dict:
        summary = {
            tier.value: {
                "success_rate": record.success_rate,
                "avg_time": record.avg_time,
                "total": record.completed + record.failed,
            }
            for tier, record in self.records.items()
        }
        summary["adjustment_factor"] = self.adjustment_factor
        summary["recommended_difficulty"] = self.recommended_difficulty().value
        return summary
