"""
Completion reports and heuristic verification.

A report is scored once with a deterministic additive point model. A
verified report completes its quest through QuestSystem; a rejected one
only produces a notification. Nothing here grants rewards directly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..state.errors import (
    InputRequiredError,
    InvalidTransitionError,
    QuestNotFoundError,
    ReportNotFoundError,
)
from ..state.event_bus import EventType
from ..state.schema import (
    CompletionData,
    KnowledgeBackedQuest,
    NotificationKind,
    Quality,
    QuestStatus,
    Report,
    ReportStatus,
)

if TYPE_CHECKING:
    from ..state.manager import GameManager
    from ..state.schema import Quest

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Scoring weights (standard reports)
# -----------------------------------------------------------------------------

COMPLETION_TERMS = [
    "completed", "finished", "done", "accomplished", "achieved",
    "succeeded", "concluded", "finalized",
]
DETAIL_TERMS = [
    "how", "what", "when", "where", "why", "details", "result",
    "outcome", "learned", "gained", "improved",
]
GOOD_TERMS = ["successfully", "effectively"]
EXCELLENT_TERMS = ["excellent", "outstanding"]

COMPLETION_POINTS = 30
DETAIL_POINTS = 10          # Per distinct detail term
KEYWORD_POINTS = 15         # Per quest keyword found
KEYWORD_MIN_LENGTH = 5
LENGTH_POINTS = 20          # Report longer than LENGTH_THRESHOLD
LONG_LENGTH_POINTS = 10     # Report longer than LONG_LENGTH_THRESHOLD
LENGTH_THRESHOLD = 50
LONG_LENGTH_THRESHOLD = 100
GOOD_POINTS = 15
EXCELLENT_POINTS = 25

VERIFY_THRESHOLD = 50
GOOD_THRESHOLD = 75
EXCELLENT_THRESHOLD = 100
SCORE_CAP = 150

# -----------------------------------------------------------------------------
# Scoring weights (knowledge-backed reports)
# -----------------------------------------------------------------------------

APPLICATION_TERMS = [
    "applied", "used", "implemented", "practiced", "executed",
    "tried", "tested", "experimented", "action", "did", "took",
]
OUTCOME_TERMS = [
    "result", "outcome", "achieved", "gained", "learned", "improved",
    "worked", "helped", "succeeded", "benefited",
]

PRINCIPLE_WORD_MIN_LENGTH = 4
PRINCIPLE_POINTS = 40
APPLICATION_POINTS = 30
OUTCOME_POINTS = 30
KNOWLEDGE_LENGTH_THRESHOLD = 100
KNOWLEDGE_LONG_LENGTH_THRESHOLD = 200
KNOWLEDGE_LENGTH_POINTS = 20
KNOWLEDGE_LONG_LENGTH_POINTS = 10
SOURCE_MENTION_POINTS = 10

KNOWLEDGE_VERIFY_THRESHOLD = 60
KNOWLEDGE_GOOD_THRESHOLD = 90
KNOWLEDGE_EXCELLENT_THRESHOLD = 120


@dataclass
class ScoreResult:
    """Outcome of scoring one report."""
    verified: bool
    score: int
    quality: Quality
    details: list[str] = field(default_factory=list)
    has_completion: bool = False
    keyword_matches: int = 0
    detail_count: int = 0
    principle_matches: int = 0
    has_application: bool = False
    has_outcome: bool = False

    def to_completion(self) -> CompletionData:
        return CompletionData(quality=self.quality, score=self.score, verified=self.verified)


def _contains_any(text: str, terms: list[str]) -> bool:
    return any(term in text for term in terms)


class ReportScorer:
    """
    Additive keyword scorer for completion reports.

    Pure: the same text and quest always produce the same result.
    """

    def score(self, report_text: str, quest: "Quest") -> ScoreResult:
        if isinstance(quest, KnowledgeBackedQuest):
            return self.score_knowledge(report_text, quest)
        return self.score_standard(report_text, quest)

    def score_standard(self, report_text: str, quest: "Quest") -> ScoreResult:
        text = report_text.lower()
        score = 0
        quality = Quality.BASIC

        has_completion = _contains_any(text, COMPLETION_TERMS)
        detail_count = sum(1 for term in DETAIL_TERMS if term in text)

        user_input = getattr(quest, "user_input", None) or ""
        quest_keywords = [
            w for w in re.split(r"\W+", user_input.lower()) if len(w) >= KEYWORD_MIN_LENGTH
        ]
        keyword_matches = sum(1 for w in quest_keywords if w in text)

        if has_completion:
            score += COMPLETION_POINTS
        score += detail_count * DETAIL_POINTS
        score += keyword_matches * KEYWORD_POINTS
        if len(report_text) > LENGTH_THRESHOLD:
            score += LENGTH_POINTS
        if len(report_text) > LONG_LENGTH_THRESHOLD:
            score += LONG_LENGTH_POINTS

        if _contains_any(text, GOOD_TERMS):
            score += GOOD_POINTS
            quality = Quality.GOOD
        if _contains_any(text, EXCELLENT_TERMS):
            score += EXCELLENT_POINTS
            quality = Quality.EXCELLENT

        verified = score >= VERIFY_THRESHOLD

        # Score tier wins over the vocabulary floor
        if score >= EXCELLENT_THRESHOLD:
            quality = Quality.EXCELLENT
        elif score >= GOOD_THRESHOLD:
            quality = Quality.GOOD
        elif score >= VERIFY_THRESHOLD:
            quality = Quality.BASIC

        details = [
            f"Completion language detected: {has_completion}",
            f"Detail level: {detail_count} indicators found",
            f"Quest keyword matches: {keyword_matches}/{len(quest_keywords)}",
            f"Report length: {len(report_text)} characters",
            f"Quality assessment: {quality.value}",
        ]

        return ScoreResult(
            verified=verified,
            score=min(score, SCORE_CAP),
            quality=quality,
            details=details,
            has_completion=has_completion,
            keyword_matches=keyword_matches,
            detail_count=detail_count,
        )

    def score_knowledge(self, report_text: str, quest: KnowledgeBackedQuest) -> ScoreResult:
        """Knowledge quests must show the principle was actually applied."""
        text = report_text.lower()
        source = quest.knowledge_source
        score = 0
        quality = Quality.BASIC

        principle_words = [
            w for w in re.split(r"\W+", source.principle.lower())
            if len(w) >= PRINCIPLE_WORD_MIN_LENGTH
        ]
        principle_matches = sum(1 for w in principle_words if w in text)
        has_application = _contains_any(text, APPLICATION_TERMS)
        has_outcome = _contains_any(text, OUTCOME_TERMS)

        if principle_matches:
            score += PRINCIPLE_POINTS
        if has_application:
            score += APPLICATION_POINTS
        if has_outcome:
            score += OUTCOME_POINTS
        if len(report_text) > KNOWLEDGE_LENGTH_THRESHOLD:
            score += KNOWLEDGE_LENGTH_POINTS
        if len(report_text) > KNOWLEDGE_LONG_LENGTH_THRESHOLD:
            score += KNOWLEDGE_LONG_LENGTH_POINTS

        title_words = source.source_title.lower().split()
        if title_words and title_words[0] in text:
            score += SOURCE_MENTION_POINTS

        verified = score >= KNOWLEDGE_VERIFY_THRESHOLD and has_application

        if score >= KNOWLEDGE_EXCELLENT_THRESHOLD and has_application and has_outcome:
            quality = Quality.EXCELLENT
        elif score >= KNOWLEDGE_GOOD_THRESHOLD and has_application:
            quality = Quality.GOOD

        details = [
            f"Principle application detected: {principle_matches > 0}",
            f"Real-world action taken: {has_application}",
            f"Outcome reported: {has_outcome}",
            f"Report length: {len(report_text)} characters",
            f"Quality: {quality.value}",
        ]

        return ScoreResult(
            verified=verified,
            score=min(score, SCORE_CAP),
            quality=quality,
            details=details,
            principle_matches=principle_matches,
            has_application=has_application,
            has_outcome=has_outcome,
        )


def rejection_hints(result: ScoreResult, quest: "Quest") -> list[str]:
    """What the player could add to get a rejected report accepted."""
    hints = []
    if isinstance(quest, KnowledgeBackedQuest):
        if not result.has_application:
            hints.append("describe the concrete action you took")
        if not result.principle_matches:
            hints.append(f'name the principle ("{quest.knowledge_source.principle}")')
        if not result.has_outcome:
            hints.append("say what the result was")
        return hints

    if not result.has_completion:
        hints.append("state that you finished the task")
    if result.detail_count == 0:
        hints.append("explain how you did it and what you learned")
    if result.keyword_matches == 0:
        hints.append("mention what the quest was about")
    return hints


class ReportSystem:
    """
    Report submission, analysis and withdrawal.

    Reports are persisted as quest_report history records and reloaded
    from there.
    """

    def __init__(self, manager: "GameManager", scorer: ReportScorer | None = None):
        self.manager = manager
        self.scorer = scorer or ReportScorer()
        self.reports: dict[str, Report] = {}
        self.load()

    def load(self) -> None:
        self.reports.clear()
        for record in self.manager.history("quest_report"):
            try:
                report = Report.model_validate(record)
            except ValueError as e:
                logger.warning("Skipping unreadable report %s: %s", record.get("id"), e)
                continue
            self.reports[report.id] = report

    def _save(self, report: Report) -> None:
        report.timestamp = self.manager.now()
        self.manager.put_history_record(report.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_report(self, report_id: str) -> Report | None:
        return self.reports.get(report_id)

    def reports_for_quest(self, quest_id: str) -> list[Report]:
        return [r for r in self.reports.values() if r.quest_id == quest_id]

    def pending_reports(self) -> list[Report]:
        return [r for r in self.reports.values() if r.status == ReportStatus.PENDING]

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def submit_report(self, quest_id: str, report_text: str, analyze: bool = True) -> Report:
        """
        File a completion report for an active quest.

        With analyze=True (the default) the report is scored immediately
        and, if verified, the quest completes.
        """
        if not report_text or not report_text.strip():
            raise InputRequiredError("Report")

        quest = self.manager.quests.get(quest_id)
        if quest is None:
            raise QuestNotFoundError(quest_id)
        if quest.status != QuestStatus.ACTIVE:
            raise InvalidTransitionError(quest.status.value, "submit a report")

        now = self.manager.now()
        report = Report(
            quest_id=quest.id,
            quest_title=quest.title,
            report_text=report_text.strip(),
            submitted_at=now,
            timestamp=now,
        )
        self.reports[report.id] = report
        self._save(report)
        self.manager.bus.emit(EventType.REPORT_SUBMITTED, report_id=report.id, quest_id=quest.id)

        if analyze:
            self.analyze_report(report.id)
        return report

    def analyze_report(self, report_id: str) -> Report:
        """
        Score a pending report once.

        Reports that are already analyzed or withdrawn are returned
        unchanged.
        """
        report = self.reports.get(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if report.status != ReportStatus.PENDING:
            return report

        report.status = ReportStatus.ANALYZING
        self._save(report)
        self.manager.notify(
            "[System] Analyzing Report",
            "The System is evaluating your report to verify quest completion...",
            NotificationKind.INFO,
        )

        quest = self.manager.quests.get(report.quest_id)
        if quest is None:
            report.status = ReportStatus.REJECTED
            report.analyzed_at = self.manager.now()
            report.analysis_details = [f"Quest not found: {report.quest_id}"]
            self._save(report)
            raise QuestNotFoundError(report.quest_id)

        result = self.scorer.score(report.report_text, quest)

        report.status = ReportStatus.COMPLETED if result.verified else ReportStatus.REJECTED
        report.analyzed_at = self.manager.now()
        report.completion_score = result.score
        report.analysis_details = result.details
        report.quality = result.quality

        if result.verified:
            completion = self.manager.quests.complete_with_report(
                quest.id, result.to_completion(), result
            )
            if completion is not None:
                report.rewards = completion.points.to_schedule()
            else:
                logger.info("Report %s verified but quest %s was no longer active",
                            report.id, quest.id)
                report.status = ReportStatus.REJECTED
                report.analysis_details.append(
                    f"Quest is no longer active ({quest.status.value}); no rewards granted"
                )
        else:
            hints = rejection_hints(result, quest)
            message = "Your report did not meet the quest requirements."
            if hints:
                message += " Try to " + "; ".join(hints) + "."
            self.manager.notify("[System] Report Rejected", message, NotificationKind.INFO)

        self._save(report)
        self.manager.bus.emit(
            EventType.REPORT_ANALYZED,
            report_id=report.id,
            quest_id=report.quest_id,
            verified=report.status == ReportStatus.COMPLETED,
            score=result.score,
        )
        logger.debug("Report %s scored %d (%s)", report.id, result.score, report.status.value)
        return report

    def withdraw_report(self, report_id: str) -> Report:
        """Cancel a report that has not been analyzed yet."""
        report = self.reports.get(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        if report.status != ReportStatus.PENDING:
            raise InvalidTransitionError(report.status.value, "withdraw the report")

        report.status = ReportStatus.WITHDRAWN
        self._save(report)
        return report
