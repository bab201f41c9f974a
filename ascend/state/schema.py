"""
Pydantic models for Ascend game state.

Every persisted record is a model so stores can round-trip plain dicts.
Quests are a tagged union over quest_type, each variant carrying its own
required fields on top of the shared base.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field, TypeAdapter
from uuid import uuid4


def generate_id() -> str:
    return str(uuid4())[:8]


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Category(str, Enum):
    STRATEGY = "strategy"
    SOCIAL = "social"
    FINANCIAL = "financial"
    MEDICAL = "medical"      # Study, learning, research
    FITNESS = "fitness"
    EMERGENCY = "emergency"
    PENALTY = "penalty"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


DIFFICULTY_ORDER: list[Difficulty] = [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD]


class TimeFrame(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class QuestStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    FAILED = "failed"


class QuestType(str, Enum):
    AI_GENERATED = "ai_generated"
    KNOWLEDGE_BACKED = "knowledge_backed"
    EMERGENCY = "emergency"
    PENALTY = "penalty"


class Rank(str, Enum):
    E = "E"
    D = "D"
    C = "C"
    B = "B"
    A = "A"
    S = "S"
    SS = "SS"
    SSS = "SSS"


class ReportStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class Quality(str, Enum):
    BASIC = "basic"
    GOOD = "good"
    EXCELLENT = "excellent"


class NotificationKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    ACHIEVEMENT = "achievement"
    LEVEL_UP = "level-up"
    QUEST_ASSIGN = "quest-assign"
    QUEST_ACCEPT = "quest-accept"
    QUEST_COMPLETE = "quest-complete"
    CHALLENGE = "challenge"
    SYNERGY = "synergy"


# Starting stat sheet; the key set stays open for stats added later
DEFAULT_STATS: dict[str, int] = {
    "strength": 0,
    "intelligence": 0,
    "strategy": 0,
    "endurance": 0,
    "wisdom": 0,
    "social": 0,
    "medical": 0,
    "financial": 0,
}


# -----------------------------------------------------------------------------
# Player
# -----------------------------------------------------------------------------

class PlayerProfile(BaseModel):
    """
    The single player aggregate.

    xp is progress inside the current level; total_xp is lifetime and
    never decreases. rank is derived from the stat total by the ledger.
    """
    id: Literal["player"] = "player"
    name: str = "Player"
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    total_xp: int = Field(default=0, ge=0)
    skill_points: int = Field(default=0, ge=0)
    rank: Rank = Rank.E
    stats: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_STATS))
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def total_stats(self) -> int:
        return sum(self.stats.values())


class Ally(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    type: str
    level: int = 1
    description: str = ""


class Asset(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    type: str
    value: int = 0
    description: str = ""


class Tool(BaseModel):
    id: str = Field(default_factory=generate_id)
    name: str
    category: str
    description: str = ""


class Inventory(BaseModel):
    """Currency, resources and collected items. Balances never go negative."""
    id: Literal["inventory"] = "inventory"
    money: int = Field(default=0, ge=0)
    resources: dict[str, int] = Field(
        default_factory=lambda: {"energy": 0, "materials": 0, "knowledge": 0}
    )
    influence: int = Field(default=0, ge=0)
    allies: list[Ally] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Rewards
# -----------------------------------------------------------------------------

class RewardSchedule(BaseModel):
    """XP, stat deltas and skill points attached to a quest."""
    xp: int = 0
    stats: dict[str, int] = Field(default_factory=dict)
    skill_points: int = 0


class MaterialRewards(BaseModel):
    money: int = 0
    resources: dict[str, int] = Field(default_factory=dict)
    influence: int = 0
    allies: list[Ally] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    tools: list[Tool] = Field(default_factory=list)


class CompletionData(BaseModel):
    """Outcome of verification handed to quest completion."""
    quality: Quality = Quality.BASIC
    score: int = 0
    verified: bool = True


# -----------------------------------------------------------------------------
# Quests
# -----------------------------------------------------------------------------

class KnowledgeSourceRef(BaseModel):
    """Provenance of a knowledge-backed quest."""
    source_id: str
    source_title: str
    author: str
    domain: str
    principle: str
    principle_description: str = ""
    exercise: str = ""


class SourceAttribution(BaseModel):
    visible: bool = False
    source: str
    author: str
    principle: str


class QuestBase(BaseModel):
    id: str = Field(default_factory=generate_id)
    title: str
    description: str = ""
    category: Category = Category.STRATEGY
    difficulty: Difficulty = Difficulty.MEDIUM
    time_frame: TimeFrame = TimeFrame.TODAY
    rewards: RewardSchedule = Field(default_factory=RewardSchedule)
    status: QuestStatus = QuestStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    accepted_at: datetime | None = None
    completed_at: datetime | None = None
    expires_at: datetime | None = None
    mandatory: bool = False
    daily: bool = False
    completion: CompletionData | None = None
    final_rewards: RewardSchedule | None = None


class AIGeneratedQuest(QuestBase):
    quest_type: Literal["ai_generated"] = "ai_generated"
    user_input: str
    context: dict = Field(default_factory=dict)


class KnowledgeBackedQuest(QuestBase):
    quest_type: Literal["knowledge_backed"] = "knowledge_backed"
    knowledge_source: KnowledgeSourceRef
    source_attribution: SourceAttribution
    user_input: str | None = None
    context: dict = Field(default_factory=dict)


class EmergencyQuest(QuestBase):
    quest_type: Literal["emergency"] = "emergency"
    category: Category = Category.EMERGENCY
    difficulty: Difficulty = Difficulty.HARD
    emergency_type: str
    expires_at: datetime


class PenaltyQuest(QuestBase):
    quest_type: Literal["penalty"] = "penalty"
    category: Category = Category.PENALTY
    penalty_id: str
    expires_at: datetime
    mandatory: bool = True


Quest = Annotated[
    Union[AIGeneratedQuest, KnowledgeBackedQuest, EmergencyQuest, PenaltyQuest],
    Field(discriminator="quest_type"),
]

_quest_adapter = TypeAdapter(Quest)


def quest_from_dict(data: dict) -> Quest:
    """Rebuild the right quest variant from a stored record."""
    return _quest_adapter.validate_python(data)


# -----------------------------------------------------------------------------
# Knowledge
# -----------------------------------------------------------------------------

class Principle(BaseModel):
    name: str
    description: str = ""


class Framework(BaseModel):
    name: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)


class KnowledgeSource(BaseModel):
    """Immutable reference material that knowledge quests draw from."""
    id: str
    title: str
    author: str
    domain: str
    keywords: list[str] = Field(default_factory=list)
    principles: list[Principle] = Field(default_factory=list)
    frameworks: list[Framework] = Field(default_factory=list)
    exercises: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Difficulty tracking
# -----------------------------------------------------------------------------

DEFAULT_SUCCESS_RATE = 0.7


class DifficultyPerformanceRecord(BaseModel):
    """Completion statistics for one difficulty tier."""
    completed: int = 0
    failed: int = 0
    times: list[float] = Field(default_factory=list)  # Hours from accept to complete

    @property
    def success_rate(self) -> float:
        total = self.completed + self.failed
        if total == 0:
            return DEFAULT_SUCCESS_RATE
        return self.completed / total

    @property
    def avg_time(self) -> float:
        if not self.times:
            return 0.0
        return sum(self.times) / len(self.times)


# -----------------------------------------------------------------------------
# Reports
# -----------------------------------------------------------------------------

class Report(BaseModel):
    """A completion report; scored once, then frozen."""
    id: str = Field(default_factory=generate_id)
    type: Literal["quest_report"] = "quest_report"
    quest_id: str
    quest_title: str = ""
    report_text: str
    status: ReportStatus = ReportStatus.PENDING
    submitted_at: datetime = Field(default_factory=datetime.now)
    timestamp: datetime = Field(default_factory=datetime.now)
    analyzed_at: datetime | None = None
    completion_score: int = 0
    analysis_details: list[str] = Field(default_factory=list)
    quality: Quality | None = None
    rewards: RewardSchedule | None = None


# -----------------------------------------------------------------------------
# Penalties, journal, history
# -----------------------------------------------------------------------------

class PenaltyEffects(BaseModel):
    stat_penalty: int = -2
    xp_penalty: int = -50
    message: str = "You failed to complete your daily quest. Penalty applied."


class Penalty(BaseModel):
    id: str = Field(default_factory=generate_id)
    quest_id: str
    quest_title: str = ""
    type: str = "daily_quest_failure"
    applied_at: datetime = Field(default_factory=datetime.now)
    severity: str = "medium"
    effects: PenaltyEffects = Field(default_factory=PenaltyEffects)
    stat_hit: str | None = None


class JournalEntry(BaseModel):
    id: str = Field(default_factory=generate_id)
    text: str
    categories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)
    analyzed: bool = False


class Threat(BaseModel):
    id: str = Field(default_factory=generate_id)
    type: str
    severity: str
    message: str
    recommendation: str
    detected_at: datetime = Field(default_factory=datetime.now)
    entry_id: str | None = None


class HistoryEntry(BaseModel):
    """Append-only activity log record."""
    id: str = Field(default_factory=generate_id)
    type: str
    timestamp: datetime = Field(default_factory=datetime.now)
    data: dict = Field(default_factory=dict)
