"""
Knowledge library for grounding quests in real-world principles.

Sources ship as YAML data; the index provides ranked search and random
draws for the quest synthesizer.
"""

from .library import (
    KnowledgeLibrary,
    REQUIRED_DOMAINS,
    DOMAIN_STAT_REWARDS,
    stat_rewards_for_domain,
    verify_quest_backing,
)
from .index import KnowledgeIndex, PrincipleDraw, FrameworkDraw, ExerciseDraw

__all__ = [
    "KnowledgeLibrary",
    "REQUIRED_DOMAINS",
    "DOMAIN_STAT_REWARDS",
    "stat_rewards_for_domain",
    "verify_quest_backing",
    "KnowledgeIndex",
    "PrincipleDraw",
    "FrameworkDraw",
    "ExerciseDraw",
]
