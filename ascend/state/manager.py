"""
Game state ownership and system wiring.

The manager owns the player aggregate, inventory and quest book, plus the
injected collaborators (store, clock, rng, notifier, event bus). Domain
systems receive the manager and reach shared state through it; they are
created lazily on first use.

Persistence failures never stop play: they are logged, the manager flips
to degraded mode, and in-memory state stays authoritative.
"""

import logging
import random
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable

from ..config import DEFAULT_CONFIG, Config, load_config
from ..interface.notifications import NotificationSink, NullNotifier
from ..knowledge import KnowledgeIndex, KnowledgeLibrary
from ..rules.progression import next_rank, xp_progress
from ..systems.scheduler import Clock, Scheduler, SystemClock
from .errors import PersistenceError
from .event_bus import EventBus
from .schema import (
    HistoryEntry,
    Inventory,
    NotificationKind,
    PlayerProfile,
    Quest,
    QuestStatus,
    quest_from_dict,
)
from .store import (
    HISTORY,
    PLAYER,
    QUESTS,
    STATS,
    GameStore,
    JsonGameStore,
    MemoryGameStore,
)

logger = logging.getLogger(__name__)


INVENTORY_RECORD = "material_rewards"
DIFFICULTY_RECORD = "difficulty_adjustment"


class Capability(str, Enum):
    """Optional features, resolved once at startup."""
    KNOWLEDGE = "knowledge"
    ADAPTIVE_DIFFICULTY = "adaptive_difficulty"
    THREAT_DETECTION = "threat_detection"
    BACKGROUND_GENERATION = "background_generation"


class GameManager:
    """
    Owns game state and exposes each domain system.

    Storage is delegated to a GameStore implementation:
    - JsonGameStore for production (file-based)
    - MemoryGameStore for testing (in-memory)
    """

    def __init__(
        self,
        store: GameStore | Path | str | None = None,
        notifier: NotificationSink | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        config: Config | None = None,
        knowledge: KnowledgeIndex | None = None,
        event_bus: EventBus | None = None,
    ):
        """
        Args:
            store: GameStore instance, or path for JsonGameStore (None = in-memory)
            notifier: Notification sink (default discards)
            clock: Time source (default wall clock)
            rng: Random source; seed it for reproducible runs
            config: Overrides merged over DEFAULT_CONFIG
            knowledge: Built KnowledgeIndex enabling knowledge-backed quests
            event_bus: Bus shared with outside subscribers (default: a new one)
        """
        if store is None:
            self.store = MemoryGameStore()
        elif isinstance(store, (Path, str)):
            self.store = JsonGameStore(store)
        else:
            self.store = store

        self.notifier = notifier or NullNotifier()
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.config: Config = {**DEFAULT_CONFIG, **(config or {})}
        self.bus = event_bus or EventBus()
        self.knowledge = knowledge

        self.player = PlayerProfile(created_at=self.now())
        self.inventory = Inventory()
        self.quest_book: dict[str, Quest] = {}
        self.degraded = False

        self.capabilities = self._resolve_capabilities()

        # Game systems (lazily initialized)
        self._ledger = None
        self._quests = None
        self._reports = None
        self._difficulty = None
        self._synthesizer = None
        self._penalties = None
        self._emergencies = None
        self._background = None
        self._journal = None
        self._threats = None
        self._scheduler = None

        if self.has(Capability.THREAT_DETECTION):
            self.threats.attach(self.bus)

    def _resolve_capabilities(self) -> set[Capability]:
        caps = set()
        if self.config["knowledge_quests"] and self.knowledge is not None and self.knowledge.size:
            caps.add(Capability.KNOWLEDGE)
        if self.config["adaptive_difficulty"]:
            caps.add(Capability.ADAPTIVE_DIFFICULTY)
        if self.config["threat_detection"]:
            caps.add(Capability.THREAT_DETECTION)
        if self.config["background_generation"]:
            caps.add(Capability.BACKGROUND_GENERATION)
        return caps

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def now(self) -> datetime:
        return self.clock.now()

    def notify(
        self,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        duration_ms: int | None = None,
    ) -> None:
        self.notifier.notify(title, message, kind, duration_ms)

    # -------------------------------------------------------------------------
    # Systems
    # -------------------------------------------------------------------------

    @property
    def ledger(self):
        """Get the reward ledger (lazy initialization)."""
        if self._ledger is None:
            from ..systems.ledger import RewardLedger
            self._ledger = RewardLedger(self)
        return self._ledger

    @property
    def quests(self):
        """Get the quest system (lazy initialization)."""
        if self._quests is None:
            from ..systems.quests import QuestSystem
            self._quests = QuestSystem(self)
        return self._quests

    @property
    def reports(self):
        """Get the report system (lazy initialization)."""
        if self._reports is None:
            from ..systems.reports import ReportSystem
            self._reports = ReportSystem(self)
        return self._reports

    @property
    def difficulty(self):
        """Get the difficulty adjustment model (lazy initialization)."""
        if self._difficulty is None:
            from ..systems.difficulty import DifficultyAdjustmentModel
            stored = self.get_stat_record(DIFFICULTY_RECORD, {})
            self._difficulty = DifficultyAdjustmentModel(
                history=lambda: list(self.quest_book.values()),
                persist=self._persist_difficulty,
                adjustment_factor=stored.get("adjustment_factor", 1.0),
            )
            self._difficulty.load_performance(self.quest_book.values())
        return self._difficulty

    @property
    def synthesizer(self):
        """Get the quest synthesizer (lazy initialization)."""
        if self._synthesizer is None:
            from ..systems.synthesizer import QuestSynthesizer
            self._synthesizer = QuestSynthesizer(
                knowledge=self.knowledge if self.has(Capability.KNOWLEDGE) else None,
                difficulty_model=(
                    self.difficulty if self.has(Capability.ADAPTIVE_DIFFICULTY) else None
                ),
                rng=self.rng,
                clock=self.now,
            )
        return self._synthesizer

    @property
    def penalties(self):
        """Get the penalty system (lazy initialization)."""
        if self._penalties is None:
            from ..systems.penalties import PenaltySystem
            self._penalties = PenaltySystem(self)
        return self._penalties

    @property
    def emergencies(self):
        """Get the emergency quest system (lazy initialization)."""
        if self._emergencies is None:
            from ..systems.emergency import EmergencySystem
            self._emergencies = EmergencySystem(self)
        return self._emergencies

    @property
    def background(self):
        """Get the background quest generator (lazy initialization)."""
        if self._background is None:
            from ..systems.background import BackgroundQuestGenerator
            self._background = BackgroundQuestGenerator(self)
        return self._background

    @property
    def journal(self):
        """Get the journal system (lazy initialization)."""
        if self._journal is None:
            from ..systems.journal import JournalSystem
            self._journal = JournalSystem(self)
        return self._journal

    @property
    def threats(self):
        """Get the threat detector (lazy initialization)."""
        if self._threats is None:
            from ..systems.journal import ThreatDetector
            self._threats = ThreatDetector(self)
        return self._threats

    @property
    def scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = Scheduler(self.clock)
        return self._scheduler

    def install_default_tasks(self) -> Scheduler:
        """
        Register every periodic task with the scheduler.

        Tasks resolve their system on each run, so they keep working after
        load() replaces the system instances.
        """
        scheduler = self.scheduler
        scheduler.every(
            "expire_quests",
            timedelta(minutes=1),
            lambda now: self.quests.sweep_expired(now),
        )
        scheduler.every(
            "daily_penalties",
            timedelta(hours=1),
            lambda now: self.penalties.check_daily_quests(now),
        )
        scheduler.every(
            "emergency_roll",
            timedelta(hours=1),
            lambda now: self.emergencies.roll(now),
        )
        if self.has(Capability.BACKGROUND_GENERATION):
            scheduler.every(
                "background_generation",
                timedelta(minutes=self.config["background_min_interval_minutes"]),
                lambda now: self.background.attempt(now),
            )
        return scheduler

    def tick(self) -> list[str]:
        return self.scheduler.tick()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self) -> None:
        """Restore player, inventory and quests from the store."""
        try:
            record = self.store.get(PLAYER, "player")
            if record:
                self.player = PlayerProfile.model_validate(record)
            else:
                self.save_player()

            inventory = self.get_stat_record(INVENTORY_RECORD)
            if inventory:
                self.inventory = Inventory.model_validate(inventory)

            self.quest_book.clear()
            for record in self.store.get_all(QUESTS):
                try:
                    quest = quest_from_dict(record)
                except ValueError as e:
                    logger.warning("Skipping unreadable quest %s: %s", record.get("id"), e)
                    continue
                self.quest_book[quest.id] = quest
        except PersistenceError as e:
            self._degrade("load", e)

        # Systems caching stored state reload on next access
        self._reports = None
        self._difficulty = None
        self._synthesizer = None
        self._penalties = None
        self._emergencies = None
        if self._threats is not None:
            self._threats.detach()
            self._threats = None
            if self.has(Capability.THREAT_DETECTION):
                self.threats.attach(self.bus)

        logger.info(
            "Loaded player level %d with %d quest(s)", self.player.level, len(self.quest_book)
        )

    # -------------------------------------------------------------------------
    # Persistence (degraded on failure)
    # -------------------------------------------------------------------------

    def _degrade(self, action: str, error: Exception) -> None:
        if not self.degraded:
            logger.error("Persistence failed during %s, continuing in memory: %s", action, error)
        else:
            logger.warning("Persistence still failing (%s): %s", action, error)
        self.degraded = True

    def _safely(self, action: str, operation: Callable[[], object], default=None):
        try:
            return operation()
        except (PersistenceError, OSError) as e:
            self._degrade(action, e)
            return default

    def save_player(self) -> None:
        self._safely(
            "save player",
            lambda: self.store.put(PLAYER, self.player.model_dump(mode="json")),
        )

    def save_inventory(self) -> None:
        self.put_stat_record(INVENTORY_RECORD, self.inventory.model_dump(mode="json"))

    def save_quest(self, quest: Quest) -> None:
        self._safely(
            f"save quest {quest.id}",
            lambda: self.store.put(QUESTS, quest.model_dump(mode="json")),
        )

    def delete_quest_record(self, quest_id: str) -> None:
        self._safely(f"delete quest {quest_id}", lambda: self.store.delete(QUESTS, quest_id))

    def put_record(self, collection: str, record: dict) -> None:
        self._safely(f"write {collection}", lambda: self.store.put(collection, record))

    def get_records(self, collection: str) -> list[dict]:
        return self._safely(f"read {collection}", lambda: self.store.get_all(collection), [])

    def record_history(self, entry_type: str, **data) -> HistoryEntry:
        """Append an activity log entry."""
        entry = HistoryEntry(type=entry_type, timestamp=self.now(), data=data)
        self.put_history_record(entry.model_dump(mode="json"))
        return entry

    def put_history_record(self, record: dict) -> None:
        self.put_record(HISTORY, record)

    def history(self, entry_type: str | None = None) -> list[dict]:
        if entry_type is None:
            return self.get_records(HISTORY)
        return self._safely(
            "read history",
            lambda: self.store.get_by_index(HISTORY, "type", entry_type),
            [],
        )

    def get_stat_record(self, name: str, default=None):
        record = self._safely(f"read stats/{name}", lambda: self.store.get(STATS, name))
        if not record:
            return default
        return record.get("value", default)

    def put_stat_record(self, name: str, value) -> None:
        self.put_record(STATS, {
            "name": name,
            "value": value,
            "updated_at": self.now().isoformat(),
        })

    def _persist_difficulty(self, factor: float) -> None:
        self.put_stat_record(DIFFICULTY_RECORD, {"adjustment_factor": factor})

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_status(self) -> dict:
        """Plain-data snapshot for a presentation layer."""
        upcoming = next_rank(self.player.rank)
        return {
            "player": {
                "name": self.player.name,
                "level": self.player.level,
                "rank": self.player.rank.value,
                "skill_points": self.player.skill_points,
                "total_stats": self.player.total_stats,
                "stats": dict(self.player.stats),
                "xp": xp_progress(self.player),
                "next_rank": (
                    {"rank": upcoming[0].value, "threshold": upcoming[1]} if upcoming else None
                ),
            },
            "inventory": {
                "money": self.inventory.money,
                "resources": dict(self.inventory.resources),
                "influence": self.inventory.influence,
                "allies": len(self.inventory.allies),
                "assets": len(self.inventory.assets),
                "tools": len(self.inventory.tools),
            },
            "quests": {
                status.value: len(self.quests.by_status(status)) for status in QuestStatus
            },
            "difficulty_factor": self.difficulty.adjustment_factor,
            "capabilities": sorted(c.value for c in self.capabilities),
            "degraded": self.degraded,
        }


def create_manager(
    data_dir: Path | str | None = None,
    store: GameStore | None = None,
    notifier: NotificationSink | None = None,
    clock: Clock | None = None,
    rng: random.Random | None = None,
    config: Config | None = None,
    knowledge_dir: Path | str | None = None,
) -> GameManager:
    """
    Build a ready-to-play manager.

    With data_dir, state lives in JSON files there and the saved config is
    loaded from it. Without either data_dir or store, everything is
    in-memory.
    """
    rng = rng or random.Random()
    merged: Config = {}
    if data_dir is not None:
        merged.update(load_config(data_dir))
        if store is None:
            store = JsonGameStore(data_dir)
    merged.update(config or {})

    library = KnowledgeLibrary(knowledge_dir)
    library.load()
    if store is not None:
        try:
            library.merge_from_store(store)
        except PersistenceError as e:
            logger.warning("Could not read cached knowledge sources: %s", e)

    index = KnowledgeIndex(rng=rng)
    index.build(library.sources)

    manager = GameManager(
        store=store,
        notifier=notifier,
        clock=clock,
        rng=rng,
        config=merged,
        knowledge=index,
    )
    manager.load()
    return manager
