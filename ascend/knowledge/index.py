"""
Inverted indexes over the knowledge library.

Supports ranked keyword search plus random principle/framework/exercise
draws for quest synthesis. Uses lightweight keyword matching, no external
search dependencies. Lookups on unknown domains return empty results
instead of raising.
"""

import logging
import random
import re
from dataclasses import dataclass

from ..state.schema import Framework, KnowledgeSource, Principle
from .library import stat_rewards_for_domain

logger = logging.getLogger(__name__)


# Search weights
TITLE_MATCH = 100
AUTHOR_MATCH = 50
INDEXED_WORD_MATCH = 10
DECLARED_KEYWORD_MATCH = 15
PRINCIPLE_NAME_MATCH = 30
PRINCIPLE_DESCRIPTION_MATCH = 20
FRAMEWORK_MATCH = 25

MIN_INDEX_WORD_LENGTH = 3


def _words(text: str) -> list[str]:
    return [w for w in re.split(r"\W+", text.lower()) if len(w) >= MIN_INDEX_WORD_LENGTH]


def _searchable_text(source: KnowledgeSource) -> str:
    parts = [source.title, source.author, *source.keywords]
    parts += [p.name for p in source.principles]
    parts += [p.description for p in source.principles]
    parts += [f.name for f in source.frameworks]
    parts += [f.description for f in source.frameworks]
    return " ".join(parts)


@dataclass
class PrincipleDraw:
    principle: Principle
    source: KnowledgeSource

    @property
    def name(self) -> str:
        return self.principle.name

    @property
    def description(self) -> str:
        return self.principle.description


@dataclass
class FrameworkDraw:
    framework: Framework
    source: KnowledgeSource


@dataclass
class ExerciseDraw:
    exercise: str
    source: KnowledgeSource


class KnowledgeIndex:
    """
    Domain, full-text, principle and framework indexes.

    build() must be rerun whenever the source set changes; it clears
    and rebuilds every map, so repeated calls give the same result.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self._by_id: dict[str, KnowledgeSource] = {}
        self._domain_index: dict[str, list[KnowledgeSource]] = {}
        self._word_index: dict[str, list[str]] = {}  # word -> source ids
        self._principle_index: dict[str, list[KnowledgeSource]] = {}
        self._framework_index: dict[str, list[KnowledgeSource]] = {}

    def build(self, sources: list[KnowledgeSource]) -> None:
        self._by_id.clear()
        self._domain_index.clear()
        self._word_index.clear()
        self._principle_index.clear()
        self._framework_index.clear()

        for source in sources:
            self._by_id[source.id] = source
            self._domain_index.setdefault(source.domain, []).append(source)

            for word in _words(_searchable_text(source)):
                ids = self._word_index.setdefault(word, [])
                if source.id not in ids:
                    ids.append(source.id)

            for principle in source.principles:
                bucket = self._principle_index.setdefault(principle.name.lower(), [])
                if source not in bucket:
                    bucket.append(source)

            for framework in source.frameworks:
                if not framework.name:
                    continue
                bucket = self._framework_index.setdefault(framework.name.lower(), [])
                if source not in bucket:
                    bucket.append(source)

        logger.info(
            "Knowledge index built: %d sources, %d domains, %d words, %d principles, %d frameworks",
            len(self._by_id),
            len(self._domain_index),
            len(self._word_index),
            len(self._principle_index),
            len(self._framework_index),
        )

    @property
    def size(self) -> int:
        return len(self._by_id)

    def domains(self) -> list[str]:
        return list(self._domain_index)

    def get_source(self, source_id: str) -> KnowledgeSource | None:
        return self._by_id.get(source_id)

    def sources_by_domain(self, domain: str) -> list[KnowledgeSource]:
        return list(self._domain_index.get(domain, []))

    def has_domain(self, domain: str) -> bool:
        return bool(self._domain_index.get(domain))

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def score(self, source: KnowledgeSource, query: str) -> int:
        """Weighted relevance of one source for a query."""
        lower_query = query.lower()
        query_words = _words(query)
        score = 0

        if lower_query in source.title.lower():
            score += TITLE_MATCH
        if lower_query in source.author.lower():
            score += AUTHOR_MATCH

        for word in query_words:
            if source.id in self._word_index.get(word, []):
                score += INDEXED_WORD_MATCH
            for keyword in source.keywords:
                if word in keyword.lower():
                    score += DECLARED_KEYWORD_MATCH

        for principle in source.principles:
            if lower_query in principle.name.lower():
                score += PRINCIPLE_NAME_MATCH
            if principle.description and lower_query in principle.description.lower():
                score += PRINCIPLE_DESCRIPTION_MATCH

        for framework in source.frameworks:
            if lower_query in (framework.name or framework.description).lower():
                score += FRAMEWORK_MATCH

        return score

    def search(
        self,
        query: str,
        domain: str | None = None,
        limit: int = 10,
    ) -> list[KnowledgeSource]:
        """
        Rank sources against a query.

        Only positive scores are returned, highest first; ties keep the
        order the sources were indexed in.
        """
        if not query or not query.strip():
            return []

        if domain:
            candidates = self._domain_index.get(domain, [])
        else:
            candidates = [s for sources in self._domain_index.values() for s in sources]

        scored = []
        for source in candidates:
            score = self.score(source, query)
            if score > 0:
                scored.append((score, source))

        # sorted() is stable, so equal scores keep first-encountered order
        scored = sorted(scored, key=lambda item: item[0], reverse=True)
        return [source for _, source in scored[:limit]]

    def find_by_principle(self, name: str) -> list[KnowledgeSource]:
        return list(self._principle_index.get(name.lower(), []))

    def find_by_framework(self, name: str) -> list[KnowledgeSource]:
        return list(self._framework_index.get(name.lower(), []))

    # -------------------------------------------------------------------------
    # Random draws
    # -------------------------------------------------------------------------

    def random_principle(self, domain: str) -> PrincipleDraw | None:
        sources = self._domain_index.get(domain, [])
        if not sources:
            return None
        source = self.rng.choice(sources)
        if not source.principles:
            return None
        return PrincipleDraw(principle=self.rng.choice(source.principles), source=source)

    def random_framework(self, domain: str) -> FrameworkDraw | None:
        sources = self._domain_index.get(domain, [])
        if not sources:
            return None
        source = self.rng.choice(sources)
        if not source.frameworks:
            return None
        return FrameworkDraw(framework=self.rng.choice(source.frameworks), source=source)

    def random_exercise(self, domain: str) -> ExerciseDraw | None:
        sources = self._domain_index.get(domain, [])
        if not sources:
            return None
        source = self.rng.choice(sources)
        if not source.exercises:
            return None
        return ExerciseDraw(exercise=self.rng.choice(source.exercises), source=source)

    def stat_rewards_for_domain(self, domain: str) -> dict[str, int]:
        return stat_rewards_for_domain(domain)

    def stats(self) -> dict:
        return {
            "sources": len(self._by_id),
            "domains": len(self._domain_index),
            "words": len(self._word_index),
            "principles": len(self._principle_index),
            "frameworks": len(self._framework_index),
        }
