"""
Quest synthesis from classified input.

Two paths:
- Knowledge-grounded: draws a principle from the knowledge index for the
  input's domain and turns it into a real-world exercise. Preferred when
  the domain has sources.
- Generic: builds a quest from category templates and the input text.
  Always available.

A knowledge quest that lacks full provenance is discarded and the generic
path is used instead, without retrying another principle.
"""

from __future__ import annotations

import logging
import math
import random
import re
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from ..knowledge.library import stat_rewards_for_domain, verify_quest_backing
from ..state.schema import (
    AIGeneratedQuest,
    Category,
    DIFFICULTY_ORDER,
    Difficulty,
    KnowledgeBackedQuest,
    KnowledgeSourceRef,
    Quest,
    RewardSchedule,
    SourceAttribution,
    TimeFrame,
)
from .classifier import Classification, classify, split_sentences

if TYPE_CHECKING:
    from ..knowledge.index import KnowledgeIndex
    from .difficulty import DifficultyAdjustmentModel

logger = logging.getLogger(__name__)


DIFFICULTY_MULTIPLIERS: dict[Difficulty, float] = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2.5,
}

LEVEL_XP_STEP = 0.1

# -----------------------------------------------------------------------------
# Generic path tables
# -----------------------------------------------------------------------------

CATEGORY_BASE_XP: dict[str, int] = {
    "strategy": 80,
    "social": 90,
    "financial": 100,
    "medical": 70,
    "fitness": 75,
}
DEFAULT_BASE_XP = 80

CATEGORY_STAT_REWARDS: dict[str, dict[str, int]] = {
    "strategy": {"strategy": 8, "intelligence": 4},
    "social": {"social": 10, "wisdom": 3},
    "financial": {"financial": 12, "strategy": 5},
    "medical": {"intelligence": 10, "wisdom": 5},
    "fitness": {"strength": 8, "endurance": 10},
}

CATEGORY_ACTION_WORDS: dict[str, list[str]] = {
    "strategy": ["Conquer", "Dominate", "Master", "Execute", "Control"],
    "social": ["Lead", "Influence", "Connect", "Unite", "Inspire", "Dominate"],
    "financial": ["Conquer", "Secure", "Dominate", "Acquire", "Negotiate", "Master"],
    "medical": ["Master", "Dominate", "Absorb", "Conquer", "Achieve", "Complete"],
    "fitness": ["Dominate", "Conquer", "Master", "Overcome", "Achieve", "Complete"],
}

CATEGORY_PREFIX: dict[str, str] = {
    "strategy": "[Strategic Quest]",
    "social": "[Social Quest]",
    "financial": "[Financial Quest]",
    "medical": "[Study Quest]",
    "fitness": "[Fitness Quest]",
}

DIFFICULTY_PHRASES: dict[Difficulty, str] = {
    Difficulty.EASY: "Complete",
    Difficulty.MEDIUM: "Successfully accomplish",
    Difficulty.HARD: "Master and conquer",
}

LEADING_INTENT = re.compile(r"^(i need to|i want to|i have to|i'm going to|i will)", re.IGNORECASE)
SHORT_DESCRIPTION_LIMIT = 50
DESCRIPTION_INPUT_LIMIT = 100
FALLBACK_SHORT_DESCRIPTION = "your objective"

# -----------------------------------------------------------------------------
# Knowledge path tables
# -----------------------------------------------------------------------------

CATEGORY_TO_DOMAIN: dict[str, str] = {
    "strategy": "strategy",
    "social": "social",
    "financial": "finance",
    "medical": "medicine",
    "fitness": "learning",
}

DOMAIN_TO_CATEGORY: dict[str, Category] = {
    "strategy": Category.STRATEGY,
    "medicine": Category.MEDICAL,
    "economics": Category.FINANCIAL,
    "finance": Category.FINANCIAL,
    "social": Category.SOCIAL,
    "psychology": Category.SOCIAL,
    "leadership": Category.SOCIAL,
    "power": Category.STRATEGY,
    "systems": Category.STRATEGY,
    "learning": Category.MEDICAL,
}

DOMAIN_BASE_XP: dict[str, int] = {
    "strategy": 100,
    "medicine": 90,
    "economics": 95,
    "finance": 110,
    "social": 85,
    "psychology": 90,
    "leadership": 100,
    "power": 95,
    "systems": 105,
    "learning": 95,
}
DEFAULT_DOMAIN_XP = 100

DOMAIN_PREFIX: dict[str, str] = {
    "strategy": "[Strategic Quest]",
    "medicine": "[Medical Quest]",
    "economics": "[Economic Quest]",
    "finance": "[Financial Quest]",
    "social": "[Social Quest]",
    "psychology": "[Psychological Quest]",
    "leadership": "[Leadership Quest]",
    "power": "[Power Quest]",
    "systems": "[Systems Quest]",
    "learning": "[Learning Quest]",
}

KNOWLEDGE_ACTION_WORDS = ["Apply", "Master", "Conquer", "Execute", "Implement", "Practice"]

PRINCIPLE_TITLE_LIMIT = 40
COMPLEX_PRINCIPLE_LENGTH = 50
COMPLEX_MARKERS = ("complex", "advanced")
CONTEXT_SNIPPET_LIMIT = 150

EASY_LEVEL_BELOW = 5
HARD_LEVEL_FROM = 15

DIFFICULTY_TIME_FRAMES: dict[Difficulty, TimeFrame] = {
    Difficulty.EASY: TimeFrame.TODAY,
    Difficulty.MEDIUM: TimeFrame.WEEK,
    Difficulty.HARD: TimeFrame.MONTH,
}

# Exercise templates used when a source ships no exercises; {p} is the principle
EXERCISE_TEMPLATES: dict[str, list[str]] = {
    "strategy": [
        "Identify ONE specific leverage point in your current environment (workplace, school, community, or home). Write down: (1) What makes it a leverage point, (2) One concrete action you will take this week to influence it, (3) How you'll measure the impact. Then execute the action and document the result.",
        'Choose ONE real decision you need to make this week. Apply the principle "{p}" by: (1) Analyzing the situation using this principle, (2) Making the decision, (3) Documenting the outcome and what you learned.',
        "Map your competitive landscape for ONE real situation (job search, business competition, academic competition, etc.). Identify: (1) Your position, (2) Your competitors' positions, (3) One strategic move you can make. Execute the move and report results.",
    ],
    "medicine": [
        'Apply the principle "{p}" to ONE real health situation you encounter. Document: (1) The situation, (2) How the principle applies, (3) The action taken, (4) The outcome observed.',
        'Use the principle "{p}" to analyze ONE real health decision you need to make. Write down your analysis, make the decision, and document the results.',
        "Practice ONE diagnostic framework from this principle on a real case. Document your thought process, the conclusion, and the outcome.",
    ],
    "economics": [
        'Apply "{p}" to analyze ONE real economic decision you\'re facing (purchase, investment, career choice, etc.). Document: (1) The decision, (2) Seen consequences, (3) Unseen consequences, (4) Your final choice and reasoning.',
        "Identify ONE real market situation you're involved in (job market, housing, investments, etc.). Apply this principle to understand it better. Write down your analysis and one action you'll take based on it.",
        'Find ONE real economic policy or business decision affecting you. Analyze it using "{p}". Document your analysis and one way you\'ll adapt to or influence it.',
    ],
    "finance": [
        'Apply "{p}" to make ONE real financial decision this week (budget change, investment, savings goal, etc.). Document: (1) Your current situation, (2) The principle\'s application, (3) The decision made, (4) The action taken, (5) Results after one week.',
        "Use this principle to improve ONE specific aspect of your finances. Choose: (1) A concrete financial goal, (2) One action based on the principle, (3) Execute it, (4) Measure and report results.",
        'Analyze ONE real financial opportunity or risk using "{p}". Make a decision, take action, and document the outcome.',
    ],
    "social": [
        'Apply "{p}" in ONE real conversation or interaction this week. Before: Plan how you\'ll apply it. During: Use the principle. After: Document what happened, what worked, what didn\'t, and what you learned.',
        'Choose ONE real relationship you want to improve. Apply "{p}" in your next interaction. Document: (1) The relationship context, (2) How you applied the principle, (3) The other person\'s response, (4) The outcome.',
        'Practice "{p}" in ONE real social situation (meeting, networking event, family gathering, etc.). Document your approach, the interaction, and the results.',
    ],
    "psychology": [
        'Apply "{p}" to understand ONE real behavior you observe (your own or someone else\'s). Document: (1) The behavior, (2) Your analysis using the principle, (3) One insight you gained, (4) How you\'ll use this insight.',
        "Use this principle to influence ONE real behavior change (yours or someone you interact with). Document: (1) The target behavior, (2) Your strategy based on the principle, (3) The action taken, (4) The result.",
        'Analyze ONE real psychological pattern you notice using "{p}". Document your analysis and one practical application.',
    ],
    "leadership": [
        'Apply "{p}" in ONE real leadership situation this week (team meeting, project management, mentoring, etc.). Document: (1) The situation, (2) How you applied the principle, (3) Your team\'s response, (4) The outcome.',
        "Use this principle to improve ONE aspect of your leadership. Choose a specific situation, apply the principle, and document the results.",
        'Practice "{p}" with ONE real person you lead or influence. Document the interaction and outcome.',
    ],
    "power": [
        'Identify ONE real power dynamic you\'re involved in. Apply "{p}" to understand it. Document: (1) The power structure, (2) Your position, (3) One strategic action you\'ll take, (4) Execute and report results.',
        "Analyze ONE real situation where power is at play using this principle. Document your analysis and one action you'll take.",
        'Use "{p}" to navigate ONE real power-related challenge. Document your approach and outcome.',
    ],
    "systems": [
        'Map ONE real system you\'re part of (work system, family system, community system, etc.) using "{p}". Document: (1) The system components, (2) The feedback loops, (3) The leverage points, (4) One action you\'ll take, (5) Results.',
        "Identify ONE real system problem you face. Apply this principle to understand it. Document your analysis and one intervention you'll make.",
        'Use "{p}" to improve ONE real system you interact with daily. Document the system, your intervention, and the results.',
    ],
    "learning": [
        'Apply "{p}" to learn ONE real skill or topic you need. Document: (1) What you\'re learning, (2) How you\'re applying the principle, (3) Your learning process, (4) What you\'ve learned after one week.',
        "Use this principle to improve ONE real learning situation (studying, training, skill development). Document your approach and results.",
        'Practice "{p}" while learning something new this week. Document your learning process and outcomes.',
    ],
}

GENERIC_EXERCISE_TEMPLATE = (
    'Apply the principle "{p}" in ONE real-world situation. Document: (1) The situation, '
    "(2) How you applied the principle, (3) The action taken, (4) The measurable result."
)

REPORT_REQUIREMENTS = [
    "Describe the real situation you chose",
    "Explain how you applied the principle",
    "Detail the specific action you took",
    "Report the measurable outcome or result",
    "Reflect on what you learned",
]


def compute_xp(base_xp: int, difficulty: Difficulty, level: int) -> int:
    """floor(base * difficulty multiplier * (1 + level * 0.1))"""
    multiplier = DIFFICULTY_MULTIPLIERS.get(Difficulty(difficulty), 1.0)
    return math.floor(base_xp * multiplier * (1 + level * LEVEL_XP_STEP))


def scale_stats(base_stats: dict[str, int], difficulty: Difficulty) -> dict[str, int]:
    multiplier = DIFFICULTY_MULTIPLIERS.get(Difficulty(difficulty), 1.0)
    return {stat: math.floor(value * multiplier) for stat, value in base_stats.items()}


def difficulty_for_level(level: int) -> Difficulty:
    if level < EASY_LEVEL_BELOW:
        return Difficulty.EASY
    if level >= HARD_LEVEL_FROM:
        return Difficulty.HARD
    return Difficulty.MEDIUM


def escalate(difficulty: Difficulty) -> Difficulty:
    idx = DIFFICULTY_ORDER.index(difficulty)
    return DIFFICULTY_ORDER[min(idx + 1, len(DIFFICULTY_ORDER) - 1)]


def short_description(text: str) -> str:
    """First sentence without the leading intent phrase, capped for titles."""
    sentences = split_sentences(text)
    if not sentences:
        return FALLBACK_SHORT_DESCRIPTION
    desc = LEADING_INTENT.sub("", sentences[0]).strip()
    if len(desc) > SHORT_DESCRIPTION_LIMIT:
        desc = desc[:SHORT_DESCRIPTION_LIMIT - 3] + "..."
    return desc or FALLBACK_SHORT_DESCRIPTION


def truncate_principle(name: str) -> str:
    if len(name) > PRINCIPLE_TITLE_LIMIT:
        return name[:PRINCIPLE_TITLE_LIMIT - 3] + "..."
    return name


class QuestSynthesizer:
    """
    Builds quest records from input text.

    Args:
        knowledge: optional KnowledgeIndex enabling the grounded path
        difficulty_model: optional adjustment model; its XP overrides the formula
        rng: random source for templates and verbs
        clock: callable returning the current time
    """

    def __init__(
        self,
        knowledge: "KnowledgeIndex | None" = None,
        difficulty_model: "DifficultyAdjustmentModel | None" = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.knowledge = knowledge
        self.difficulty_model = difficulty_model
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now

    def synthesize(
        self,
        input_text: str,
        player_level: int,
        classification: Classification | None = None,
        category: str | None = None,
    ) -> Quest:
        """
        Produce one quest for the input.

        `category` forces the quest category (used by background generation).
        """
        classification = classification or classify(input_text)
        primary = category or classification.primary_category

        quest = None
        if self.knowledge is not None:
            quest = self._knowledge_quest(input_text, player_level, primary, classification)
            if quest is not None:
                validation = verify_quest_backing(quest)
                if not validation["valid"]:
                    logger.warning(
                        "Knowledge quest validation failed, using generic path: %s",
                        validation["reason"],
                    )
                    quest = None

        if quest is None:
            quest = self._generic_quest(input_text, player_level, primary, classification)

        if category:
            quest.category = Category(category)
        return quest

    # -------------------------------------------------------------------------
    # Shared rewards
    # -------------------------------------------------------------------------

    def _apply_adjustment(self, difficulty: Difficulty) -> tuple[Difficulty, int | None]:
        if self.difficulty_model is None:
            return difficulty, None
        adjustment = self.difficulty_model.adjust(difficulty)
        return adjustment.difficulty, adjustment.xp

    def _rewards(
        self,
        base_xp: int,
        base_stats: dict[str, int],
        difficulty: Difficulty,
        level: int,
        adjusted_xp: int | None,
    ) -> RewardSchedule:
        xp = compute_xp(base_xp, difficulty, level)
        if adjusted_xp:
            xp = adjusted_xp
        return RewardSchedule(
            xp=xp,
            stats=scale_stats(base_stats, difficulty),
            skill_points=1 if difficulty == Difficulty.HARD else 0,
        )

    # -------------------------------------------------------------------------
    # Knowledge path
    # -------------------------------------------------------------------------

    def _knowledge_quest(
        self,
        input_text: str,
        level: int,
        category: str,
        classification: Classification,
    ) -> KnowledgeBackedQuest | None:
        domain = CATEGORY_TO_DOMAIN.get(category, "strategy")
        if not self.knowledge.has_domain(domain):
            return None

        draw = self.knowledge.random_principle(domain)
        if draw is None:
            logger.debug("No principles available for domain %s", domain)
            return None

        principle, source = draw.principle, draw.source
        if source.exercises:
            exercise = self.rng.choice(source.exercises)
        else:
            templates = EXERCISE_TEMPLATES.get(domain, [GENERIC_EXERCISE_TEMPLATE])
            exercise = self.rng.choice(templates).format(p=principle.name)

        difficulty = difficulty_for_level(level)
        name_lower = principle.name.lower()
        if len(principle.name) > COMPLEX_PRINCIPLE_LENGTH or any(m in name_lower for m in COMPLEX_MARKERS):
            difficulty = escalate(difficulty)
        difficulty, adjusted_xp = self._apply_adjustment(difficulty)

        rewards = self._rewards(
            DOMAIN_BASE_XP.get(domain, DEFAULT_DOMAIN_XP),
            stat_rewards_for_domain(domain),
            difficulty,
            level,
            adjusted_xp,
        )

        title = "{} {}: {}".format(
            DOMAIN_PREFIX.get(domain, "[Quest]"),
            self.rng.choice(KNOWLEDGE_ACTION_WORDS),
            truncate_principle(principle.name),
        )

        return KnowledgeBackedQuest(
            title=title,
            description=self._knowledge_description(principle, source, exercise, input_text),
            category=DOMAIN_TO_CATEGORY.get(domain, Category.STRATEGY),
            difficulty=difficulty,
            time_frame=DIFFICULTY_TIME_FRAMES[difficulty],
            rewards=rewards,
            created_at=self.clock(),
            knowledge_source=KnowledgeSourceRef(
                source_id=source.id,
                source_title=source.title,
                author=source.author,
                domain=domain,
                principle=principle.name,
                principle_description=principle.description,
                exercise=exercise,
            ),
            source_attribution=SourceAttribution(
                visible=False,
                source=source.title,
                author=source.author,
                principle=principle.name,
            ),
            user_input=input_text or None,
            context={
                "categories": classification.categories,
                "keywords": classification.keywords,
            },
        )

    @staticmethod
    def _knowledge_description(principle, source, exercise: str, input_text: str) -> str:
        lines = [
            "[REAL-WORLD APPLICATION REQUIRED]",
            "",
            f'Principle: "{principle.name}"',
            f"Source: {source.title} by {source.author}",
            "",
        ]
        if principle.description:
            lines += [f"Understanding: {principle.description}", ""]
        lines += ["YOUR MISSION:", exercise, "", "REPORT REQUIREMENTS:"]
        lines += [f"- {item}" for item in REPORT_REQUIREMENTS]
        lines += ["", "This quest requires real-world action, not theoretical discussion."]
        if input_text:
            lines += ["", f"Your context: {input_text[:CONTEXT_SNIPPET_LIMIT]}"]
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Generic path
    # -------------------------------------------------------------------------

    def _generic_quest(
        self,
        input_text: str,
        level: int,
        category: str,
        classification: Classification,
    ) -> AIGeneratedQuest:
        if category not in CATEGORY_BASE_XP:
            category = "strategy"

        difficulty, adjusted_xp = self._apply_adjustment(classification.difficulty)
        rewards = self._rewards(
            CATEGORY_BASE_XP.get(category, DEFAULT_BASE_XP),
            CATEGORY_STAT_REWARDS[category],
            difficulty,
            level,
            adjusted_xp,
        )

        title = "{} {} {}".format(
            CATEGORY_PREFIX[category],
            self.rng.choice(CATEGORY_ACTION_WORDS[category]),
            short_description(input_text),
        )
        snippet = input_text[:DESCRIPTION_INPUT_LIMIT]
        if len(input_text) > DESCRIPTION_INPUT_LIMIT:
            snippet += "..."
        description = f"{DIFFICULTY_PHRASES[classification.difficulty]} the task you described. {snippet}"

        return AIGeneratedQuest(
            title=title,
            description=description,
            category=Category(category),
            difficulty=difficulty,
            time_frame=classification.time_frame,
            rewards=rewards,
            created_at=self.clock(),
            user_input=input_text,
            context={
                "categories": classification.categories,
                "keywords": classification.keywords,
                "activities": classification.activities,
                "difficulty": classification.difficulty.value,
                "time_frame": classification.time_frame.value,
            },
        )
