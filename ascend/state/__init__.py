"""State management for Ascend.

GameManager lives in .manager and is exported from the top-level package;
it depends on the systems, which in turn import from here.
"""

from .schema import (
    Category,
    Difficulty,
    TimeFrame,
    QuestStatus,
    QuestType,
    Rank,
    ReportStatus,
    Quality,
    NotificationKind,
    PlayerProfile,
    Inventory,
    RewardSchedule,
    MaterialRewards,
    CompletionData,
    AIGeneratedQuest,
    KnowledgeBackedQuest,
    EmergencyQuest,
    PenaltyQuest,
    Quest,
    quest_from_dict,
    KnowledgeSource,
    Report,
    Penalty,
    JournalEntry,
    Threat,
    HistoryEntry,
)
from .errors import (
    GameError,
    InputRequiredError,
    QuestNotFoundError,
    ReportNotFoundError,
    InvalidTransitionError,
    InsufficientResourceError,
    PersistenceError,
)
from .store import GameStore, JsonGameStore, MemoryGameStore
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    # Schema
    "Category",
    "Difficulty",
    "TimeFrame",
    "QuestStatus",
    "QuestType",
    "Rank",
    "ReportStatus",
    "Quality",
    "NotificationKind",
    "PlayerProfile",
    "Inventory",
    "RewardSchedule",
    "MaterialRewards",
    "CompletionData",
    "AIGeneratedQuest",
    "KnowledgeBackedQuest",
    "EmergencyQuest",
    "PenaltyQuest",
    "Quest",
    "quest_from_dict",
    "KnowledgeSource",
    "Report",
    "Penalty",
    "JournalEntry",
    "Threat",
    "HistoryEntry",
    # Errors
    "GameError",
    "InputRequiredError",
    "QuestNotFoundError",
    "ReportNotFoundError",
    "InvalidTransitionError",
    "InsufficientResourceError",
    "PersistenceError",
    # Store
    "GameStore",
    "JsonGameStore",
    "MemoryGameStore",
    # Event Bus
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
]
