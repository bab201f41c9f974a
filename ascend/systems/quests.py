"""
Quest lifecycle for Ascend.

Owns the status state machine:
    pending → active → {completed, expired, failed}

Rewards are applied exactly once. The status check at the top of
complete_with_report() is the gate: a second completion attempt on the
same quest finds it no longer active and does nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ..state.errors import (
    GameError,
    InputRequiredError,
    InvalidTransitionError,
    QuestNotFoundError,
)
from ..state.event_bus import EventType
from ..state.schema import (
    CompletionData,
    KnowledgeBackedQuest,
    MaterialRewards,
    NotificationKind,
    Quality,
    Quest,
    QuestStatus,
    QuestType,
)
from .classifier import classify
from .ledger import LedgerResult, PointRewards

if TYPE_CHECKING:
    from ..state.manager import GameManager


logger = logging.getLogger(__name__)


# Allowed status transitions
VALID_TRANSITIONS: dict[QuestStatus, set[QuestStatus]] = {
    QuestStatus.PENDING: {QuestStatus.ACTIVE},
    QuestStatus.ACTIVE: {QuestStatus.COMPLETED, QuestStatus.EXPIRED, QuestStatus.FAILED},
    QuestStatus.COMPLETED: set(),
    QuestStatus.EXPIRED: set(),
    QuestStatus.FAILED: set(),
}


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


@dataclass
class CompletionResult:
    """Everything a completion awarded."""
    quest: Quest
    points: PointRewards
    material: MaterialRewards
    ledger: LedgerResult


class QuestSystem:
    """
    Generates, accepts, completes and expires quests.

    Requires a GameManager for state access and persistence.
    """

    def __init__(self, manager: "GameManager"):
        self.manager = manager

    @property
    def _quests(self) -> dict[str, Quest]:
        return self.manager.quest_book

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, quest_id: str) -> Quest | None:
        return self._quests.get(quest_id)

    def require(self, quest_id: str) -> Quest:
        quest = self._quests.get(quest_id)
        if quest is None:
            raise QuestNotFoundError(quest_id)
        return quest

    def all(self) -> list[Quest]:
        return list(self._quests.values())

    def by_status(self, status: QuestStatus) -> list[Quest]:
        return [q for q in self._quests.values() if q.status == status]

    def active(self) -> list[Quest]:
        return self.by_status(QuestStatus.ACTIVE)

    def pending(self) -> list[Quest]:
        return self.by_status(QuestStatus.PENDING)

    def completed(self) -> list[Quest]:
        return self.by_status(QuestStatus.COMPLETED)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition(self, quest: Quest, target: QuestStatus, action: str) -> None:
        if target not in VALID_TRANSITIONS[quest.status]:
            raise InvalidTransitionError(quest.status.value, action)
        quest.status = target

    def generate(
        self,
        text: str,
        auto_accept: bool = True,
        daily: bool = False,
    ) -> Quest:
        """
        Turn activity text into a new quest.

        Raises InputRequiredError for empty or whitespace-only text.
        Daily quests expire at the end of the day they were created.
        """
        if not text or not text.strip():
            raise InputRequiredError("Quest input")

        classification = classify(text)
        self.manager.record_history(
            "user_activity_input",
            content=text,
            categories=classification.categories,
            keywords=classification.keywords,
            processed=True,
        )

        quest = self.manager.synthesizer.synthesize(
            text, self.manager.player.level, classification
        )
        if daily:
            quest.daily = True
            quest.expires_at = end_of_day(self.manager.now())

        self.add(quest)
        self.manager.notify(
            "[System] New Quest Assigned",
            f'"{quest.title}" has been generated from your input.',
            NotificationKind.QUEST_ASSIGN,
        )

        if auto_accept:
            self.accept(quest.id)
        return quest

    def add(self, quest: Quest, active: bool = False) -> Quest:
        """Register a quest built elsewhere (system, emergency, background)."""
        if active and quest.status == QuestStatus.PENDING:
            self._transition(quest, QuestStatus.ACTIVE, "activate")
            quest.accepted_at = self.manager.now()

        self._quests[quest.id] = quest
        self.manager.save_quest(quest)
        self.manager.bus.emit(
            EventType.QUEST_GENERATED,
            quest_id=quest.id,
            quest_type=quest.quest_type,
            category=quest.category.value,
        )
        return quest

    def accept(self, quest_id: str) -> Quest:
        quest = self.require(quest_id)
        self._transition(quest, QuestStatus.ACTIVE, "accept")
        quest.accepted_at = self.manager.now()

        self.manager.save_quest(quest)
        self.manager.bus.emit(EventType.QUEST_ACCEPTED, quest_id=quest.id)
        self.manager.notify(
            "[System] Quest Accepted",
            f'"{quest.title}" is now active.',
            NotificationKind.QUEST_ACCEPT,
        )
        return quest

    def complete_with_report(
        self,
        quest_id: str,
        completion: CompletionData,
        analysis=None,
    ) -> CompletionResult | None:
        """
        Complete an active quest and apply its rewards once.

        Returns None without side effects if the quest is missing or not
        active (already completed, expired, failed), or if the completion
        did not pass verification.
        """
        quest = self._quests.get(quest_id)
        if quest is None or quest.status != QuestStatus.ACTIVE:
            logger.debug("Ignoring completion for quest %s (not active)", quest_id)
            return None
        if not completion.verified:
            logger.debug("Ignoring unverified completion for quest %s", quest_id)
            return None

        now = self.manager.now()
        ledger = self.manager.ledger
        on_time = quest.expires_at is not None and now <= quest.expires_at

        points = ledger.evaluate_completion(quest, completion, on_time=on_time)
        material = ledger.generate_material_rewards(quest, completion.score, completion.quality)

        self._transition(quest, QuestStatus.COMPLETED, "complete")
        quest.completed_at = now
        quest.completion = completion
        quest.final_rewards = points.to_schedule()

        player_before = self.manager.player
        try:
            ledger_result = ledger.commit(points, material)
        except Exception:
            if self.manager.player is player_before:
                # Nothing was committed; reopen the quest
                quest.status = QuestStatus.ACTIVE
                quest.completed_at = None
                quest.completion = None
                quest.final_rewards = None
            raise
        finally:
            self.manager.save_quest(quest)

        self.manager.difficulty.recompute()

        if quest.quest_type == QuestType.PENALTY:
            self.manager.penalties.remove_penalty(quest.penalty_id)

        # Events and notifications only after the completion is final
        ledger.announce(ledger_result, f"quest:{quest.title}")

        self.manager.bus.emit(
            EventType.QUEST_COMPLETED,
            quest_id=quest.id,
            xp=points.xp,
            quality=completion.quality.value,
        )
        self._notify_rewards(quest, points, material)
        self.manager.record_history(
            "quest_completed",
            quest_id=quest.id,
            quest_title=quest.title,
            xp_gained=points.xp,
            bonus_xp=points.bonus_xp,
            material_rewards=material.model_dump(mode="json"),
        )

        return CompletionResult(
            quest=quest, points=points, material=material, ledger=ledger_result
        )

    def grant(self, quest_id: str) -> CompletionResult | None:
        """System-granted completion without a report."""
        self.require(quest_id)
        return self.complete_with_report(
            quest_id, CompletionData(quality=Quality.BASIC, score=0, verified=True)
        )

    def fail(self, quest_id: str, reason: str = "") -> Quest:
        quest = self.require(quest_id)
        self._transition(quest, QuestStatus.FAILED, "fail")

        self.manager.save_quest(quest)
        self.manager.record_history(
            "quest_failed", quest_id=quest.id, quest_title=quest.title, reason=reason
        )
        self.manager.bus.emit(EventType.QUEST_FAILED, quest_id=quest.id, reason=reason)
        self.manager.difficulty.recompute()
        return quest

    def sweep_expired(self, now: datetime | None = None) -> list[Quest]:
        """
        Expire active time-limited quests past their deadline.

        Daily quests are left to the penalty check. Expired quests never
        award rewards.
        """
        now = now or self.manager.now()
        expired = []

        for quest in self.active():
            if quest.daily or quest.expires_at is None or now <= quest.expires_at:
                continue

            self._transition(quest, QuestStatus.EXPIRED, "expire")
            self.manager.save_quest(quest)
            self.manager.record_history(
                "quest_expired", quest_id=quest.id, quest_title=quest.title
            )
            self.manager.bus.emit(EventType.QUEST_EXPIRED, quest_id=quest.id)
            if quest.quest_type == QuestType.EMERGENCY:
                self.manager.emergencies.record_expired(quest)
            else:
                self.manager.notify(
                    "[System] Quest Expired",
                    f'"{quest.title}" ran out of time.',
                    NotificationKind.WARNING,
                )
            expired.append(quest)

        if expired:
            logger.info("Expired %d quest(s)", len(expired))
        return expired

    def delete(self, quest_id: str) -> bool:
        """Explicit user deletion."""
        self.require(quest_id)
        del self._quests[quest_id]
        self.manager.delete_quest_record(quest_id)
        self.manager.bus.emit(EventType.QUEST_DELETED, quest_id=quest_id)
        return True

    def toggle_source_attribution(self, quest_id: str) -> bool:
        """Show or hide a knowledge quest's source. Returns the new visibility."""
        quest = self.require(quest_id)
        if not isinstance(quest, KnowledgeBackedQuest):
            raise GameError(f"Quest {quest_id} has no knowledge source")
        quest.source_attribution.visible = not quest.source_attribution.visible
        self.manager.save_quest(quest)
        return quest.source_attribution.visible

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _notify_rewards(self, quest: Quest, points: PointRewards, material: MaterialRewards) -> None:
        parts = [f"+{points.xp} XP"]
        if points.bonus_xp:
            parts[0] += f" (+{points.bonus_xp} bonus)"
        if material.money:
            parts.append(f"{material.money} money")
        if material.influence:
            parts.append(f"{material.influence} influence")
        if material.allies:
            parts.append(f"{len(material.allies)} new ally")
        if material.tools:
            parts.append(f"{len(material.tools)} tool")
        if material.assets:
            parts.append(f"{len(material.assets)} asset")

        self.manager.notify(
            "[System] Quest Complete",
            f'"{quest.title}" completed. ' + " | ".join(parts),
            NotificationKind.QUEST_COMPLETE,
        )
