"""
User configuration persistence.

Stores feature toggles and scheduler tuning in a JSON file next to the
game data.
"""

import json
import logging
from pathlib import Path
from typing import TypedDict


class Config(TypedDict, total=False):
    """User configuration."""
    knowledge_quests: bool  # Ground quests in the knowledge library
    adaptive_difficulty: bool  # Tune rewards from completion history
    threat_detection: bool  # Scan journal entries for warning signs
    background_generation: bool  # Build quests from recent activity inputs
    background_min_interval_minutes: int
    emergency_chance: float  # Probability per hourly roll
    log_level: str


DEFAULT_CONFIG: Config = {
    "knowledge_quests": True,
    "adaptive_difficulty": True,
    "threat_detection": True,
    "background_generation": True,
    "background_min_interval_minutes": 30,
    "emergency_chance": 0.02,
    "log_level": "INFO",
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def get_config_path(data_dir: Path | str = "data") -> Path:
    """Get path to config file."""
    return Path(data_dir) / ".ascend_config.json"


def load_config(data_dir: Path | str = "data") -> Config:
    """Load config from file, or return defaults if not found."""
    path = get_config_path(data_dir)

    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        # Merge with defaults to handle missing keys
        config = DEFAULT_CONFIG.copy()
        config.update(saved)
        return config
    except (json.JSONDecodeError, IOError):
        return DEFAULT_CONFIG.copy()


def save_config(config: Config, data_dir: Path | str = "data") -> bool:
    """Save config to file. Returns True on success."""
    path = get_config_path(data_dir)

    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        return True
    except IOError:
        return False


def set_feature(name: str, enabled: bool, data_dir: Path | str = "data") -> None:
    """Toggle a boolean feature flag and persist it."""
    if name not in DEFAULT_CONFIG or not isinstance(DEFAULT_CONFIG[name], bool):
        raise ValueError(f"Unknown feature: {name}")
    config = load_config(data_dir)
    config[name] = enabled
    save_config(config, data_dir)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for applications embedding the engine."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
