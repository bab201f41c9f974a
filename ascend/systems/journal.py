"""
Journal entries and threat detection.

JournalSystem persists entries and announces each save on the event bus.
ThreatDetector listens for those saves and raises warnings for stress,
danger, health and money trouble, and for a run of failed quests.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from ..state.errors import InputRequiredError
from ..state.event_bus import EventType, GameEvent
from ..state.schema import JournalEntry, NotificationKind, QuestStatus, Threat
from ..state.store import JOURNAL
from .classifier import classify_journal

if TYPE_CHECKING:
    from ..state.event_bus import EventBus
    from ..state.manager import GameManager

logger = logging.getLogger(__name__)


class JournalSystem:
    """Free-text journal, classified on save."""

    def __init__(self, manager: "GameManager"):
        self.manager = manager

    def save_entry(self, text: str) -> JournalEntry:
        if not text or not text.strip():
            raise InputRequiredError("Journal entry")

        classification = classify_journal(text)
        entry = JournalEntry(
            text=text.strip(),
            categories=classification.categories,
            keywords=classification.keywords,
            timestamp=self.manager.now(),
        )
        self.manager.put_record(JOURNAL, entry.model_dump(mode="json"))
        self.manager.bus.emit(
            EventType.JOURNAL_ENTRY_SAVED,
            entry_id=entry.id,
            text=entry.text,
            categories=entry.categories,
        )
        return entry

    def entries(self) -> list[JournalEntry]:
        """All entries, oldest first."""
        records = [JournalEntry.model_validate(r) for r in self.manager.get_records(JOURNAL)]
        return sorted(records, key=lambda e: e.timestamp)

    def get_entry(self, entry_id: str) -> JournalEntry | None:
        for entry in self.entries():
            if entry.id == entry_id:
                return entry
        return None

    def unanalyzed(self) -> list[JournalEntry]:
        return [e for e in self.entries() if not e.analyzed]

    def mark_analyzed(self, entry_id: str) -> bool:
        entry = self.get_entry(entry_id)
        if entry is None:
            return False
        entry.analyzed = True
        self.manager.put_record(JOURNAL, entry.model_dump(mode="json"))
        return True


# -----------------------------------------------------------------------------
# Threat detection
# -----------------------------------------------------------------------------

THREAT_RECORD = "threat_detection"
QUEST_FAILURE_LIMIT = 3

THREAT_KEYWORDS: dict[str, list[str]] = {
    "stress": ["stressed", "overwhelmed", "anxious", "worried", "pressure", "burnout"],
    "danger": ["danger", "unsafe", "threat", "risk", "harm", "injury"],
    "health": ["sick", "ill", "pain", "unwell", "symptoms", "doctor", "hospital"],
    "financial": ["broke", "debt", "money problems", "financial stress", "can't afford"],
}

THREAT_PROFILES: dict[str, dict[str, str]] = {
    "stress": {
        "severity": "low",
        "message": "Elevated stress levels detected. Consider taking a break or practicing stress management.",
        "recommendation": "Practice deep breathing or meditation",
    },
    "danger": {
        "severity": "high",
        "message": "Potential danger detected. Stay alert and prioritize safety.",
        "recommendation": "Remove yourself from dangerous situations",
    },
    "health": {
        "severity": "medium",
        "message": "Health concerns detected. Consider consulting a healthcare professional.",
        "recommendation": "Prioritize your health and well-being",
    },
    "financial": {
        "severity": "medium",
        "message": "Financial concerns detected. Consider reviewing your financial strategy.",
        "recommendation": "Review your budget and financial goals",
    },
    "quest_failure": {
        "severity": "medium",
        "message": "Multiple quest failures detected. Consider adjusting quest difficulty or approach.",
        "recommendation": "Focus on completing easier quests to build momentum",
    },
}


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(r"\b" + re.escape(phrase) + r"\b", text) is not None


class ThreatDetector:
    """
    Scans journal text for warning signs.

    Subscribe it to a bus with attach(); it then runs after every journal
    save without the journal knowing about it.
    """

    def __init__(self, manager: "GameManager"):
        self.manager = manager
        self.history: list[Threat] = [
            Threat.model_validate(t) for t in manager.get_stat_record(THREAT_RECORD, [])
        ]
        self._bus: "EventBus | None" = None

    def attach(self, bus: "EventBus") -> None:
        self.detach()
        bus.on(EventType.JOURNAL_ENTRY_SAVED, self._on_journal_saved)
        self._bus = bus

    def detach(self) -> None:
        if self._bus is not None:
            self._bus.off(EventType.JOURNAL_ENTRY_SAVED, self._on_journal_saved)
            self._bus = None

    def _on_journal_saved(self, event: GameEvent) -> None:
        failures = len(self.manager.quests.by_status(QuestStatus.FAILED))
        self.detect(
            text=event.data.get("text", ""),
            quest_failures=failures,
            entry_id=event.data.get("entry_id"),
        )

    def matching_types(self, text: str) -> list[str]:
        lower = text.lower()
        return [
            threat_type
            for threat_type, keywords in THREAT_KEYWORDS.items()
            if any(_contains_phrase(lower, kw) for kw in keywords)
        ]

    def detect(
        self,
        text: str | None = None,
        quest_failures: int = 0,
        entry_id: str | None = None,
    ) -> list[Threat]:
        """Record and announce every threat found in the context."""
        types = self.matching_types(text) if text else []
        if quest_failures > QUEST_FAILURE_LIMIT:
            types.append("quest_failure")

        threats = []
        for threat_type in types:
            threat = Threat(
                type=threat_type,
                detected_at=self.manager.now(),
                entry_id=entry_id,
                **THREAT_PROFILES[threat_type],
            )
            threats.append(threat)
            self.history.append(threat)
            self.manager.bus.emit(
                EventType.THREAT_DETECTED,
                threat_id=threat.id,
                threat_type=threat.type,
                severity=threat.severity,
            )
            self.manager.notify(
                "[System] Threat Detected",
                f"{threat.message} Recommendation: {threat.recommendation}",
                NotificationKind.WARNING,
            )

        if threats:
            logger.info("Detected %d threat(s): %s", len(threats), ", ".join(types))
            self.manager.put_stat_record(
                THREAT_RECORD, [t.model_dump(mode="json") for t in self.history]
            )
        return threats

    def recent_threats(self, limit: int = 10) -> list[Threat]:
        return sorted(self.history, key=lambda t: t.detected_at, reverse=True)[:limit]
