"""
Level, XP and rank formulas.

Pure functions with no state access. The ledger calls these after every
mutation to keep level and rank consistent with xp and stats.
"""

import math

from ..state.schema import PlayerProfile, Rank


XP_BASE = 100
XP_GROWTH = 1.5
SKILL_POINTS_PER_LEVEL = 3

# Minimum stat total for each rank, ascending
RANK_THRESHOLDS: dict[Rank, int] = {
    Rank.E: 0,
    Rank.D: 75,
    Rank.C: 150,
    Rank.B: 250,
    Rank.A: 350,
    Rank.S: 500,
    Rank.SS: 750,
    Rank.SSS: 1000,
}

RANK_ORDER: list[Rank] = list(RANK_THRESHOLDS)


def xp_for_level(level: int) -> int:
    """XP needed to advance from `level` to `level + 1`."""
    return math.floor(XP_BASE * XP_GROWTH ** (level - 1))


def total_xp_for_level(level: int) -> int:
    """Lifetime XP needed to reach `level` from level 1."""
    return sum(xp_for_level(n) for n in range(1, level))


def level_from_xp(total_xp: int) -> int:
    """Level reached with `total_xp` lifetime XP."""
    level = 1
    while total_xp >= xp_for_level(level):
        total_xp -= xp_for_level(level)
        level += 1
    return level


def rank_for(total_stats: int) -> Rank:
    """Highest rank whose threshold is <= total_stats."""
    rank = Rank.E
    for candidate, threshold in RANK_THRESHOLDS.items():
        if total_stats >= threshold:
            rank = candidate
    return rank


def rank_for_stats(stats: dict[str, int]) -> Rank:
    return rank_for(sum(stats.values()))


def rank_value(rank: Rank) -> int:
    """Ordinal of a rank (E=0 .. SSS=7) for comparisons."""
    return RANK_ORDER.index(Rank(rank))


def next_rank(rank: Rank) -> tuple[Rank, int] | None:
    """Next rank and its threshold, or None at the top."""
    idx = rank_value(rank)
    if idx + 1 >= len(RANK_ORDER):
        return None
    upcoming = RANK_ORDER[idx + 1]
    return upcoming, RANK_THRESHOLDS[upcoming]


def xp_progress(profile: PlayerProfile) -> dict:
    """Progress toward the next level, for display."""
    needed = xp_for_level(profile.level)
    return {
        "level": profile.level,
        "xp": profile.xp,
        "needed": needed,
        "percent": round(profile.xp / needed * 100, 1) if needed else 100.0,
    }
