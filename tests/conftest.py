"""
Pytest fixtures for Ascend tests.

Provides in-memory stores, a manual clock and a seeded random source so
every test runs offline and deterministically.
"""

import random

import pytest
from pathlib import Path

# Add repo root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from ascend.interface.notifications import MemoryNotifier
from ascend.knowledge import KnowledgeIndex, KnowledgeLibrary
from ascend.state.manager import GameManager
from ascend.state.schema import AIGeneratedQuest, Difficulty, RewardSchedule
from ascend.state.store import MemoryGameStore
from ascend.systems.scheduler import ManualClock


@pytest.fixture
def memory_store():
    """In-memory game store for testing."""
    return MemoryGameStore()


@pytest.fixture
def clock():
    """Clock starting at 2024-01-01 09:00 that only moves on advance()."""
    return ManualClock()


@pytest.fixture
def notifier():
    """Notification sink that records everything."""
    return MemoryNotifier()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def manager(memory_store, notifier, clock, rng):
    """Manager on the generic quest path with fixed difficulty."""
    return GameManager(
        store=memory_store,
        notifier=notifier,
        clock=clock,
        rng=rng,
        config={"knowledge_quests": False, "adaptive_difficulty": False},
    )


@pytest.fixture
def library():
    """Bundled knowledge library."""
    return KnowledgeLibrary()


@pytest.fixture
def knowledge_index(library):
    index = KnowledgeIndex(rng=random.Random(7))
    index.build(library.sources)
    return index


@pytest.fixture
def knowledge_manager(memory_store, notifier, clock, knowledge_index):
    """Manager that grounds quests in the bundled knowledge library."""
    return GameManager(
        store=memory_store,
        notifier=notifier,
        clock=clock,
        rng=random.Random(42),
        config={"knowledge_quests": True, "adaptive_difficulty": False},
        knowledge=knowledge_index,
    )


@pytest.fixture
def active_quest(manager):
    """Accepted quest built from negotiation input."""
    return manager.quests.generate("Prepare for the salary negotiation with my manager")


@pytest.fixture
def make_quest(clock):
    """Factory for plain quests with fixed rewards."""
    def _make(
        title="Test Quest",
        user_input="Organize the quarterly planning session",
        difficulty=Difficulty.MEDIUM,
        xp=100,
        stats=None,
        **kwargs,
    ):
        return AIGeneratedQuest(
            title=title,
            user_input=user_input,
            difficulty=difficulty,
            rewards=RewardSchedule(xp=xp, stats=stats if stats is not None else {"strategy": 10}),
            created_at=clock.now(),
            **kwargs,
        )
    return _make
