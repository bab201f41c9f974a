"""
Background quest generation from recorded activity.

Activity text the player logs without asking for a quest is kept as
unprocessed history. Every so often the scheduler asks this generator to
turn the recent backlog into one quest.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..state.errors import InputRequiredError
from ..state.schema import NotificationKind, Quest
from .classifier import classify

if TYPE_CHECKING:
    from ..state.manager import GameManager

logger = logging.getLogger(__name__)


LAST_GENERATION_RECORD = "last_quest_generation"
ACTIVITY_TYPE = "user_activity_input"
RECENT_ACTIVITY_LIMIT = 5
MIN_ACTIVITIES = 2
GENERATE_CHANCE_ABOVE = 0.3

CONTEXT_KEYWORDS: dict[str, list[str]] = {
    "strategy": ["plan", "strategic", "organize", "analyze", "problem", "decision"],
    "social": ["meeting", "friend", "network", "team", "conversation", "relationship"],
    "financial": ["money", "budget", "invest", "save", "financial", "negotiate", "deal"],
    "medical": ["study", "learn", "read", "research", "knowledge", "education"],
    "fitness": ["exercise", "workout", "run", "train", "gym", "health", "physical"],
}


class BackgroundQuestGenerator:
    """
    Turns the unprocessed activity backlog into quests.

    The last generation time is persisted so the minimum interval holds
    across restarts.
    """

    def __init__(self, manager: "GameManager"):
        self.manager = manager

    @property
    def min_interval(self) -> timedelta:
        return timedelta(minutes=self.manager.config["background_min_interval_minutes"])

    @property
    def last_generation(self) -> datetime | None:
        value = self.manager.get_stat_record(LAST_GENERATION_RECORD)
        if not value:
            return None
        return datetime.fromisoformat(value)

    def record_activity(self, text: str) -> dict:
        """Log activity text for later background generation."""
        if not text or not text.strip():
            raise InputRequiredError("Activity")
        classification = classify(text)
        entry = self.manager.record_history(
            ACTIVITY_TYPE,
            content=text.strip(),
            categories=classification.categories,
            keywords=classification.keywords,
            processed=False,
        )
        return entry.model_dump(mode="json")

    def recent_activities(self, limit: int = RECENT_ACTIVITY_LIMIT) -> list[dict]:
        """Unprocessed activity records, newest first."""
        records = [
            r for r in self.manager.history(ACTIVITY_TYPE)
            if not r.get("data", {}).get("processed")
        ]
        records.sort(key=lambda r: r.get("timestamp", ""), reverse=True)
        return records[:limit]

    def attempt(self, now: datetime | None = None) -> Quest | None:
        """One scheduled generation attempt. Returns the quest if one was made."""
        now = now or self.manager.now()

        last = self.last_generation
        if last is not None and now - last < self.min_interval:
            logger.debug("Background generation skipped: last run at %s", last)
            return None

        activities = self.recent_activities()
        if not activities:
            return None

        if len(activities) < MIN_ACTIVITIES or self.manager.rng.random() <= GENERATE_CHANCE_ABOVE:
            logger.debug("Background generation deferred (%d activities)", len(activities))
            return None

        return self.generate_from(activities, now)

    def select_category(self, activities: list[dict]) -> str:
        """Category with the most keyword hits across the activities."""
        strengths = {}
        for category, keywords in CONTEXT_KEYWORDS.items():
            hits = sum(
                1
                for activity in activities
                for kw in keywords
                if kw in activity["data"].get("content", "").lower()
            )
            if hits:
                strengths[category] = hits

        if not strengths:
            return self.manager.rng.choice(list(CONTEXT_KEYWORDS))
        return max(strengths, key=strengths.get)

    def extract_context(self, activities: list[dict], category: str) -> str:
        keywords = CONTEXT_KEYWORDS.get(category, [])
        for activity in activities:
            content = activity["data"].get("content", "")
            if any(kw in content.lower() for kw in keywords):
                return content
        return activities[0]["data"].get("content", "")

    def generate_from(self, activities: list[dict], now: datetime | None = None) -> Quest:
        now = now or self.manager.now()
        category = self.select_category(activities)
        context = self.extract_context(activities, category)

        quest = self.manager.synthesizer.synthesize(
            context, self.manager.player.level, category=category
        )
        self.manager.quests.add(quest, active=True)
        self.manager.notify(
            "[System] New Quest Assigned",
            f'"{quest.title}" has been automatically assigned based on your recent activities.',
            NotificationKind.QUEST_ASSIGN,
        )

        self.manager.put_stat_record(LAST_GENERATION_RECORD, now.isoformat())
        for activity in activities:
            activity["data"]["processed"] = True
            self.manager.put_history_record(activity)

        logger.info("Background quest %s generated (%s)", quest.id, category)
        return quest
