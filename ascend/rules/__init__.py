"""Progression formulas: levels, XP curve and ranks."""

from .progression import (
    RANK_THRESHOLDS,
    SKILL_POINTS_PER_LEVEL,
    xp_for_level,
    total_xp_for_level,
    level_from_xp,
    rank_for,
    rank_for_stats,
    rank_value,
    next_rank,
    xp_progress,
)

__all__ = [
    "RANK_THRESHOLDS",
    "SKILL_POINTS_PER_LEVEL",
    "xp_for_level",
    "total_xp_for_level",
    "level_from_xp",
    "rank_for",
    "rank_for_stats",
    "rank_value",
    "next_rank",
    "xp_progress",
]
