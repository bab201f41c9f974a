"""
Ascend: offline quest engine for real-world self-improvement.

Turns activity text into RPG quests, verifies completion reports with
keyword heuristics and tracks the player's level, stats and rank.
"""

from .state.manager import GameManager, Capability, create_manager

__version__ = "0.1.0"

__all__ = ["GameManager", "Capability", "create_manager", "__version__"]
