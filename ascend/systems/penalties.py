"""
Daily quest penalties and redemption quests.

A daily quest still active after its deadline fails, costs the player a
stat hit and some in-level XP, and spawns a mandatory redemption quest.
Completing that quest clears the penalty.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..state.event_bus import EventType
from ..state.schema import (
    Difficulty,
    NotificationKind,
    Penalty,
    PenaltyQuest,
    RewardSchedule,
)

if TYPE_CHECKING:
    from ..state.manager import GameManager
    from ..state.schema import Quest

logger = logging.getLogger(__name__)


PENALTY_RECORD = "penalty_quests"
REDEMPTION_WINDOW = timedelta(hours=24)
REDEMPTION_XP = 100


class PenaltySystem:
    """
    Tracks active penalties and their history.

    Requires a GameManager for state access and persistence.
    """

    def __init__(self, manager: "GameManager"):
        self.manager = manager
        record = manager.get_stat_record(PENALTY_RECORD, {})
        self.penalties: list[Penalty] = [
            Penalty.model_validate(p) for p in record.get("penalties", [])
        ]
        self.history: list[Penalty] = [
            Penalty.model_validate(p) for p in record.get("history", [])
        ]

    def _save(self) -> None:
        self.manager.put_stat_record(PENALTY_RECORD, {
            "penalties": [p.model_dump(mode="json") for p in self.penalties],
            "history": [p.model_dump(mode="json") for p in self.history],
        })

    def get(self, penalty_id: str) -> Penalty | None:
        for penalty in self.penalties:
            if penalty.id == penalty_id:
                return penalty
        return None

    def check_daily_quests(self, now: datetime | None = None) -> list[Penalty]:
        """Fail overdue daily quests and penalize each one."""
        now = now or self.manager.now()
        applied = []

        for quest in self.manager.quests.active():
            if not quest.daily or quest.expires_at is None or now <= quest.expires_at:
                continue
            self.manager.quests.fail(quest.id, reason="daily quest missed")
            applied.append(self.apply_penalty(quest, now))

        return applied

    def apply_penalty(self, quest: "Quest", now: datetime | None = None) -> Penalty:
        now = now or self.manager.now()
        penalty = Penalty(quest_id=quest.id, quest_title=quest.title, applied_at=now)
        ledger = self.manager.ledger

        stats = sorted(self.manager.player.stats)
        if stats:
            penalty.stat_hit = self.manager.rng.choice(stats)
            ledger.update_stat(penalty.stat_hit, penalty.effects.stat_penalty)
        ledger.apply_xp_penalty(penalty.effects.xp_penalty)

        self.penalties.append(penalty)
        self.history.append(penalty)
        self._save()

        logger.info("Penalty %s applied for missed quest %s", penalty.id, quest.id)
        self.manager.bus.emit(
            EventType.PENALTY_APPLIED,
            penalty_id=penalty.id,
            quest_id=quest.id,
            stat=penalty.stat_hit,
        )
        self.manager.notify(
            "[System] Penalty Applied",
            penalty.effects.message,
            NotificationKind.WARNING,
        )

        self.create_redemption_quest(penalty, now)
        return penalty

    def create_redemption_quest(self, penalty: Penalty, now: datetime | None = None) -> PenaltyQuest:
        now = now or self.manager.now()
        quest = PenaltyQuest(
            title="[Penalty Quest] Redemption Challenge",
            description=(
                f'You failed to complete "{penalty.quest_title}". '
                "Complete this redemption quest to remove the penalty."
            ),
            difficulty=Difficulty.MEDIUM,
            rewards=RewardSchedule(xp=REDEMPTION_XP),
            created_at=now,
            expires_at=now + REDEMPTION_WINDOW,
            penalty_id=penalty.id,
        )
        self.manager.quests.add(quest, active=True)
        self.manager.notify(
            "[System] Penalty Quest Issued",
            "A mandatory redemption quest has been issued. Complete it to remove the penalty.",
            NotificationKind.WARNING,
        )
        return quest

    def remove_penalty(self, penalty_id: str) -> bool:
        """Clear an active penalty. Returns False if it was not active."""
        penalty = self.get(penalty_id)
        if penalty is None:
            return False

        self.penalties.remove(penalty)
        self._save()
        self.manager.bus.emit(EventType.PENALTY_CLEARED, penalty_id=penalty_id)
        self.manager.notify(
            "[System] Penalty Removed",
            "The penalty has been removed. Continue completing daily quests to avoid future penalties.",
            NotificationKind.SUCCESS,
        )
        return True
