"""
Game systems for Ascend.

Each system operates on manager state and delegates persistence back to
the manager.
"""

from .classifier import Classification, LexicalClassifier, classify, classify_journal
from .difficulty import DifficultyAdjustmentModel, Adjustment
from .synthesizer import QuestSynthesizer
from .ledger import RewardLedger, PointRewards, LedgerResult
from .quests import QuestSystem, CompletionResult, VALID_TRANSITIONS
from .reports import ReportSystem, ReportScorer, ScoreResult
from .penalties import PenaltySystem
from .emergency import EmergencySystem, EMERGENCY_TYPES
from .background import BackgroundQuestGenerator
from .journal import JournalSystem, ThreatDetector
from .scheduler import Clock, SystemClock, ManualClock, Scheduler

__all__ = [
    "Classification",
    "LexicalClassifier",
    "classify",
    "classify_journal",
    "DifficultyAdjustmentModel",
    "Adjustment",
    "QuestSynthesizer",
    "RewardLedger",
    "PointRewards",
    "LedgerResult",
    "QuestSystem",
    "CompletionResult",
    "VALID_TRANSITIONS",
    "ReportSystem",
    "ReportScorer",
    "ScoreResult",
    "PenaltySystem",
    "EmergencySystem",
    "EMERGENCY_TYPES",
    "BackgroundQuestGenerator",
    "JournalSystem",
    "ThreatDetector",
    # Scheduling
    "Clock",
    "SystemClock",
    "ManualClock",
    "Scheduler",
]
