"""
Knowledge library loading and coverage checks.

Sources are reference data: YAML files grouped by domain, optionally merged
with records cached in the store. Loaded once, never mutated.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from ..state.schema import KnowledgeBackedQuest, KnowledgeSource
from ..state.store import KNOWLEDGE_SOURCES

if TYPE_CHECKING:
    from ..state.store import GameStore

logger = logging.getLogger(__name__)


DEFAULT_KNOWLEDGE_DIR = Path(__file__).parent / "data"

REQUIRED_DOMAINS = [
    "strategy",
    "medicine",
    "economics",
    "finance",
    "social",
    "psychology",
    "leadership",
    "power",
    "systems",
    "learning",
]

MIN_SOURCES_PER_DOMAIN = 10

# Stat rewards granted by quests grounded in each domain
DOMAIN_STAT_REWARDS: dict[str, dict[str, int]] = {
    "strategy": {"strategy": 10, "intelligence": 5},
    "medicine": {"medical": 12, "intelligence": 8, "wisdom": 5},
    "economics": {"financial": 12, "strategy": 6, "intelligence": 5},
    "finance": {"financial": 15, "strategy": 5},
    "social": {"social": 12, "wisdom": 5},
    "psychology": {"intelligence": 10, "wisdom": 8, "social": 5},
    "leadership": {"social": 12, "strategy": 8, "wisdom": 5},
    "power": {"strategy": 12, "social": 8, "intelligence": 5},
    "systems": {"intelligence": 12, "strategy": 10, "wisdom": 5},
    "learning": {"intelligence": 15, "wisdom": 8},
}

DEFAULT_STAT_REWARDS = {"intelligence": 10}


def stat_rewards_for_domain(domain: str) -> dict[str, int]:
    return dict(DOMAIN_STAT_REWARDS.get(domain, DEFAULT_STAT_REWARDS))


def load_sources_from_yaml(path: Path) -> list[KnowledgeSource]:
    """
    Load sources from one YAML file.

    The file holds a `domain` and a `sources` list; a source may override
    the file-level domain.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    domain = data.get("domain")
    sources = []
    for raw in data.get("sources", []):
        raw = dict(raw)
        raw.setdefault("domain", domain)
        sources.append(KnowledgeSource.model_validate(raw))
    return sources


class KnowledgeLibrary:
    """
    Catalog of knowledge sources.

    Loads bundled YAML data (or a custom directory) and optionally merges
    sources cached in the store's knowledgeSources collection.
    """

    def __init__(self, knowledge_dir: Path | str | None = None):
        self.knowledge_dir = Path(knowledge_dir) if knowledge_dir else DEFAULT_KNOWLEDGE_DIR
        self._sources: dict[str, KnowledgeSource] = {}
        self._loaded = False

    @property
    def sources(self) -> list[KnowledgeSource]:
        self.load()
        return list(self._sources.values())

    def load(self) -> list[KnowledgeSource]:
        """Load every YAML file in the knowledge directory. Cached after first call."""
        if self._loaded:
            return list(self._sources.values())

        if not self.knowledge_dir.exists():
            logger.warning("Knowledge directory %s not found", self.knowledge_dir)

        for yaml_file in sorted(self.knowledge_dir.glob("*.yaml")):
            try:
                for source in load_sources_from_yaml(yaml_file):
                    self._sources[source.id] = source
            except (OSError, yaml.YAMLError, ValidationError) as e:
                logger.error("Error loading %s: %s", yaml_file, e)

        self._loaded = True
        logger.info("Loaded %d knowledge sources", len(self._sources))
        return list(self._sources.values())

    def add(self, source: KnowledgeSource) -> None:
        self.load()
        self._sources[source.id] = source

    def merge_from_store(self, store: "GameStore") -> int:
        """Merge cached sources from the store. Cached records win by id."""
        self.load()
        merged = 0
        for record in store.get_all(KNOWLEDGE_SOURCES):
            try:
                source = KnowledgeSource.model_validate(record)
            except ValidationError as e:
                logger.warning("Skipping malformed cached source %s: %s", record.get("id"), e)
                continue
            self._sources[source.id] = source
            merged += 1
        return merged

    def cache_to_store(self, store: "GameStore") -> None:
        for source in self.sources:
            store.put(KNOWLEDGE_SOURCES, source.model_dump(mode="json"))

    def by_domain(self, domain: str) -> list[KnowledgeSource]:
        return [s for s in self.sources if s.domain == domain]

    def verify_coverage(self) -> dict[str, dict]:
        """Per required domain: source count and whether it meets the minimum."""
        coverage = {}
        for domain in REQUIRED_DOMAINS:
            count = len(self.by_domain(domain))
            coverage[domain] = {
                "count": count,
                "sufficient": count >= MIN_SOURCES_PER_DOMAIN,
            }
        return coverage

    def coverage_report(self) -> dict:
        coverage = self.verify_coverage()
        sufficient = [d for d, info in coverage.items() if info["sufficient"]]
        return {
            "total_sources": len(self.sources),
            "domains": coverage,
            "sufficient_domains": len(sufficient),
            "required_domains": len(REQUIRED_DOMAINS),
            "all_sufficient": len(sufficient) == len(REQUIRED_DOMAINS),
        }


def verify_quest_backing(quest: KnowledgeBackedQuest) -> dict:
    """
    Check that a knowledge quest carries full provenance.

    Returns {"valid": bool, "reason": str | None, "missing": list[str]}.
    """
    ref = quest.knowledge_source
    missing = [
        name for name, value in (
            ("source_id", ref.source_id),
            ("source_title", ref.source_title),
            ("author", ref.author),
            ("principle", ref.principle),
        )
        if not value or not str(value).strip()
    ]
    if missing:
        return {
            "valid": False,
            "reason": f"Missing knowledge provenance: {', '.join(missing)}",
            "missing": missing,
        }
    return {"valid": True, "reason": None, "missing": []}
