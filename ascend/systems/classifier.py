"""
Lexical classifier for free-text input.

Maps activity descriptions and journal entries to category labels using
fixed keyword dictionaries, and extracts difficulty and time-frame signals
plus a short keyword list. Pure functions of the input text; nothing here
raises or touches state.
"""

import re
from dataclasses import dataclass, field

from ..state.schema import Difficulty, TimeFrame


# Activity categories (substring match on lowercased text)
ACTIVITY_KEYWORDS: dict[str, list[str]] = {
    "strategy": ["plan", "strategic", "organize", "optimize", "analyze",
                 "problem", "solve", "decision", "manage"],
    "social": ["meeting", "friend", "network", "team", "conversation",
               "relationship", "social", "group", "community", "lead"],
    "financial": ["money", "budget", "invest", "save", "financial",
                  "negotiate", "deal", "client", "business", "income"],
    "medical": ["study", "learn", "read", "research", "knowledge",
                "education", "course", "exam", "test", "chapter"],
    "fitness": ["exercise", "workout", "run", "train", "gym", "fitness",
                "health", "physical", "strength", "cardio"],
}

# Journal categories (whole-word match)
JOURNAL_KEYWORDS: dict[str, list[str]] = {
    "career": ["work", "job", "career", "business", "client", "project",
               "meeting", "deadline", "salary", "promotion"],
    "learning": ["study", "learn", "exam", "test", "course", "education",
                 "school", "university", "skill"],
    "health": ["health", "exercise", "fitness", "diet", "doctor", "medical",
               "pain", "illness", "wellness"],
    "finance": ["money", "finance", "budget", "save", "invest", "debt",
                "income", "expense", "financial"],
    "social": ["relationship", "friend", "family", "social", "people",
               "communication", "conflict"],
    "personal_growth": ["goal", "achieve", "success", "improve", "progress",
                        "plan", "future", "dream"],
    "challenges": ["stress", "anxiety", "worry", "problem", "difficulty",
                   "challenge", "struggle", "frustrated"],
}

HARD_WORDS = ["difficult", "challenge", "hard", "complex", "tough"]
EASY_WORDS = ["easy", "simple", "quick"]

# Checked in order; first hit wins
TIME_FRAME_WORDS: list[tuple[TimeFrame, list[str]]] = [
    (TimeFrame.TODAY, ["today", "now", "immediate"]),
    (TimeFrame.WEEK, ["week"]),
    (TimeFrame.MONTH, ["month", "long term"]),
]

STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "i", "am", "is", "are", "was", "were",
}

MAX_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 4
MAX_ACTIVITIES = 3


@dataclass
class Classification:
    """Signals extracted from one piece of input text."""
    categories: list[str]
    difficulty: Difficulty = Difficulty.MEDIUM
    time_frame: TimeFrame = TimeFrame.TODAY
    keywords: list[str] = field(default_factory=list)
    activities: list[str] = field(default_factory=list)

    @property
    def primary_category(self) -> str:
        return self.categories[0]


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    """Distinct non-stop-word tokens longer than 3 chars, in order of appearance."""
    seen: list[str] = []
    for word in re.split(r"\W+", text.lower()):
        if len(word) < MIN_KEYWORD_LENGTH or word in STOP_WORDS:
            continue
        if word not in seen:
            seen.append(word)
    return seen[:limit]


def detect_difficulty(text: str) -> Difficulty:
    lower = text.lower()
    if any(word in lower for word in HARD_WORDS):
        return Difficulty.HARD
    if any(word in lower for word in EASY_WORDS):
        return Difficulty.EASY
    return Difficulty.MEDIUM


def detect_time_frame(text: str) -> TimeFrame:
    lower = text.lower()
    for frame, words in TIME_FRAME_WORDS:
        if any(word in lower for word in words):
            return frame
    return TimeFrame.TODAY


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in re.split(r"[.!?]", text) if s.strip()]


class LexicalClassifier:
    """
    Keyword-dictionary classifier.

    Args:
        keywords: category -> keyword list
        fallback: category returned when nothing matches
        whole_words: match on word boundaries instead of substrings
    """

    def __init__(
        self,
        keywords: dict[str, list[str]],
        fallback: str,
        whole_words: bool = False,
    ):
        self.keywords = keywords
        self.fallback = fallback
        self.whole_words = whole_words
        self._patterns = {
            category: re.compile(
                r"\b(" + "|".join(re.escape(w) for w in words) + r")\b"
            )
            for category, words in keywords.items()
        }

    def _matches(self, category: str, lower: str) -> bool:
        if self.whole_words:
            return bool(self._patterns[category].search(lower))
        return any(word in lower for word in self.keywords[category])

    def categorize(self, text: str) -> list[str]:
        """Matching categories in dictionary order, or [fallback]."""
        lower = (text or "").lower()
        categories = [c for c in self.keywords if self._matches(c, lower)]
        return categories or [self.fallback]

    def classify(self, text: str) -> Classification:
        text = text or ""
        return Classification(
            categories=self.categorize(text),
            difficulty=detect_difficulty(text),
            time_frame=detect_time_frame(text),
            keywords=extract_keywords(text),
            activities=split_sentences(text)[:MAX_ACTIVITIES],
        )


ACTIVITY_CLASSIFIER = LexicalClassifier(ACTIVITY_KEYWORDS, fallback="strategy")
JOURNAL_CLASSIFIER = LexicalClassifier(JOURNAL_KEYWORDS, fallback="general", whole_words=True)


def classify(text: str) -> Classification:
    """Classify activity input."""
    return ACTIVITY_CLASSIFIER.classify(text)


def classify_journal(text: str) -> Classification:
    """Classify a journal entry."""
    return JOURNAL_CLASSIFIER.classify(text)
