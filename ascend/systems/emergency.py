"""
Emergency quests: rare, short, high-reward missions.

An hourly roll may spawn one. They start active and expire through the
normal quest sweep; expired ones are kept in the emergency history.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..state.schema import (
    EmergencyQuest,
    NotificationKind,
    QuestType,
    RewardSchedule,
)

if TYPE_CHECKING:
    from ..state.manager import GameManager

logger = logging.getLogger(__name__)


EMERGENCY_RECORD = "emergency_quests"

EMERGENCY_TYPES: dict[str, dict] = {
    "urgent_goal": {
        "title": "[Emergency] Urgent Goal Achievement",
        "description": "A critical goal requires immediate attention. Complete it within the time limit.",
        "time_limit": timedelta(hours=2),
        "rewards": {"xp": 200, "stats": {"strategy": 5, "intelligence": 3}, "skill_points": 1},
    },
    "crisis_management": {
        "title": "[Emergency] Crisis Management",
        "description": "A crisis situation has been detected. Take immediate action to resolve it.",
        "time_limit": timedelta(hours=3),
        "rewards": {"xp": 250, "stats": {"wisdom": 5, "strategy": 4}, "skill_points": 1},
    },
    "opportunity_seized": {
        "title": "[Emergency] Time-Sensitive Opportunity",
        "description": "A valuable opportunity has appeared but will expire soon. Act quickly!",
        "time_limit": timedelta(hours=1),
        "rewards": {"xp": 300, "stats": {"social": 5, "influence": 4}, "skill_points": 0},
    },
    "skill_mastery": {
        "title": "[Emergency] Rapid Skill Development",
        "description": "An opportunity for rapid skill improvement has appeared. Complete intensive training now.",
        "time_limit": timedelta(hours=4),
        "rewards": {"xp": 180, "stats": {"intelligence": 4, "wisdom": 3}, "skill_points": 2},
    },
}


class EmergencySystem:
    """Spawns emergency quests and remembers the ones that got away."""

    def __init__(self, manager: "GameManager"):
        self.manager = manager
        record = manager.get_stat_record(EMERGENCY_RECORD, {})
        self.history: list[dict] = list(record.get("history", []))

    def _save(self) -> None:
        self.manager.put_stat_record(EMERGENCY_RECORD, {
            "active": [q.id for q in self.active()],
            "history": self.history,
        })

    def active(self) -> list[EmergencyQuest]:
        return [
            q for q in self.manager.quests.active()
            if q.quest_type == QuestType.EMERGENCY
        ]

    def generate(self, now: datetime | None = None, emergency_type: str | None = None) -> EmergencyQuest:
        """Create an active emergency quest (random type unless given)."""
        now = now or self.manager.now()
        if emergency_type is None:
            emergency_type = self.manager.rng.choice(list(EMERGENCY_TYPES))
        template = EMERGENCY_TYPES[emergency_type]

        quest = EmergencyQuest(
            title=template["title"],
            description=template["description"],
            emergency_type=emergency_type,
            rewards=RewardSchedule(**template["rewards"]),
            created_at=now,
            expires_at=now + template["time_limit"],
        )
        self.manager.quests.add(quest, active=True)
        self._save()

        minutes = int(template["time_limit"].total_seconds() // 60)
        logger.info("Emergency quest %s (%s) issued", quest.id, emergency_type)
        self.manager.notify(
            "[System] Emergency Quest",
            f"{quest.title}: {quest.description} Time limit: {minutes // 60}h {minutes % 60}m.",
            NotificationKind.WARNING,
        )
        return quest

    def roll(self, now: datetime | None = None) -> EmergencyQuest | None:
        """Hourly chance to spawn an emergency quest."""
        if self.manager.rng.random() < self.manager.config["emergency_chance"]:
            return self.generate(now)
        return None

    def record_expired(self, quest: EmergencyQuest) -> None:
        """Called by the expiry sweep once the quest is already expired."""
        entry = quest.model_dump(mode="json")
        entry["expired_at"] = self.manager.now().isoformat()
        self.history.append(entry)
        self._save()
        self.manager.notify(
            "[System] Emergency Quest Expired",
            f"{quest.title} has expired. The opportunity has been lost.",
            NotificationKind.WARNING,
        )
