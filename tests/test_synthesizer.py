"""
Tests for quest synthesis.

Covers the generic template path, the knowledge-grounded path and the
fallback between them.
"""

import logging
import math
import random

import pytest

from ascend.knowledge import KnowledgeIndex
from ascend.state.schema import (
    AIGeneratedQuest,
    Category,
    Difficulty,
    KnowledgeBackedQuest,
    KnowledgeSource,
    Principle,
    TimeFrame,
)
from ascend.systems.difficulty import DifficultyAdjustmentModel
from ascend.systems.synthesizer import (
    EXERCISE_TEMPLATES,
    QuestSynthesizer,
    compute_xp,
    short_description,
)


def strategy_source(**overrides):
    data = {
        "id": "crux",
        "title": "The Crux",
        "author": "Richard Rumelt",
        "domain": "strategy",
        "principles": [Principle(name="Focus on the crux")],
    }
    data.update(overrides)
    return KnowledgeSource(**data)


def index_of(*sources):
    index = KnowledgeIndex(rng=random.Random(5))
    index.build(list(sources))
    return index


class TestGenericPath:
    """Test template-based quests."""

    def test_study_quest(self):
        """Exam study becomes a medium study quest with level-scaled XP."""
        synth = QuestSynthesizer(rng=random.Random(1))
        quest = synth.synthesize("I studied for my exam for 2 hours", player_level=1)

        assert isinstance(quest, AIGeneratedQuest)
        assert quest.category == Category.MEDICAL
        assert quest.difficulty == Difficulty.MEDIUM
        assert quest.time_frame == TimeFrame.TODAY
        assert quest.rewards.xp == math.floor(70 * 1.5 * 1.1)
        assert quest.rewards.stats == {"intelligence": 15, "wisdom": 7}
        assert quest.rewards.skill_points == 0
        assert quest.title.startswith("[Study Quest]")
        assert quest.title.endswith("I studied for my exam for 2 hours")

    def test_description_leads_with_difficulty_phrase(self):
        quest = QuestSynthesizer().synthesize("Organize the garage", player_level=1)
        assert quest.description.startswith("Successfully accomplish the task you described.")
        assert quest.user_input == "Organize the garage"

    def test_hard_quest_grants_skill_point(self):
        quest = QuestSynthesizer().synthesize("A tough plan for the launch", player_level=1)
        assert quest.difficulty == Difficulty.HARD
        assert quest.rewards.skill_points == 1

    def test_forced_category(self):
        quest = QuestSynthesizer().synthesize("Organize the garage", 1, category="fitness")
        assert quest.category == Category.FITNESS
        assert quest.title.startswith("[Fitness Quest]")

    def test_adjustment_overrides_xp_and_tier(self):
        """A low factor steps medium down to easy with the scaled base XP."""
        model = DifficultyAdjustmentModel(adjustment_factor=0.85)
        quest = QuestSynthesizer(difficulty_model=model).synthesize("Organize the garage", 3)
        assert quest.difficulty == Difficulty.EASY
        assert quest.rewards.xp == 43


class TestRewardFormula:
    """Test XP scaling."""

    def test_harder_quests_pay_more(self):
        """At level 10, hard > medium > easy."""
        hard = compute_xp(80, Difficulty.HARD, 10)
        medium = compute_xp(80, Difficulty.MEDIUM, 10)
        easy = compute_xp(80, Difficulty.EASY, 10)
        assert hard > medium > easy

    def test_level_scaling(self):
        assert compute_xp(100, Difficulty.EASY, 0) == 100
        assert compute_xp(100, Difficulty.EASY, 10) == 200


class TestShortDescription:
    """Test title text extraction."""

    def test_strips_intent_phrase(self):
        assert short_description("I need to finish the report. Then rest") == "finish the report"

    def test_long_text_is_truncated(self):
        desc = short_description("x" * 80)
        assert len(desc) == 50
        assert desc.endswith("...")

    def test_empty_text(self):
        assert short_description("") == "your objective"


class TestKnowledgePath:
    """Test knowledge-grounded quests."""

    def test_strategy_input_is_grounded(self, knowledge_index):
        synth = QuestSynthesizer(knowledge=knowledge_index, rng=random.Random(3))
        quest = synth.synthesize("Plan the quarterly strategy", player_level=1)

        assert isinstance(quest, KnowledgeBackedQuest)
        assert quest.knowledge_source.domain == "strategy"
        assert quest.source_attribution.visible is False
        assert quest.title.startswith("[Strategic Quest]")
        assert quest.difficulty == Difficulty.EASY
        assert quest.time_frame == TimeFrame.TODAY
        assert quest.rewards.xp == math.floor(100 * 1.0 * 1.1)
        assert "REPORT REQUIREMENTS:" in quest.description
        assert "Your context: Plan the quarterly strategy" in quest.description

    def test_high_level_is_hard(self, knowledge_index):
        synth = QuestSynthesizer(knowledge=knowledge_index)
        quest = synth.synthesize("Plan the quarterly strategy", player_level=20)
        assert quest.difficulty == Difficulty.HARD
        assert quest.time_frame == TimeFrame.MONTH
        assert quest.rewards.skill_points == 1

    def test_complex_principle_escalates(self):
        index = index_of(strategy_source(principles=[Principle(name="Advanced positioning")]))
        quest = QuestSynthesizer(knowledge=index).synthesize("Plan ahead", player_level=1)
        assert quest.difficulty == Difficulty.MEDIUM

    def test_template_exercise_when_source_has_none(self):
        index = index_of(strategy_source())
        quest = QuestSynthesizer(knowledge=index).synthesize("Plan ahead", player_level=1)
        expected = [t.format(p="Focus on the crux") for t in EXERCISE_TEMPLATES["strategy"]]
        assert quest.knowledge_source.exercise in expected

    def test_missing_domain_uses_generic_path(self):
        index = index_of(strategy_source(domain="medicine"))
        quest = QuestSynthesizer(knowledge=index).synthesize("Plan ahead", player_level=1)
        assert isinstance(quest, AIGeneratedQuest)

    def test_invalid_provenance_falls_back(self, caplog):
        """A source without an author cannot back a quest."""
        index = index_of(strategy_source(author=""))
        with caplog.at_level(logging.WARNING):
            quest = QuestSynthesizer(knowledge=index).synthesize("Plan ahead", player_level=1)
        assert isinstance(quest, AIGeneratedQuest)
        assert "validation failed" in caplog.text

    def test_source_without_principles_falls_back(self):
        index = index_of(strategy_source(principles=[]))
        quest = QuestSynthesizer(knowledge=index).synthesize("Plan ahead", player_level=1)
        assert isinstance(quest, AIGeneratedQuest)


class TestSynthesisViaManager:
    """Test synthesis wired through the manager."""

    def test_knowledge_capability(self, knowledge_manager):
        quest = knowledge_manager.quests.generate("Plan the quarterly strategy")
        assert isinstance(quest, KnowledgeBackedQuest)

    def test_generic_without_capability(self, manager):
        quest = manager.quests.generate("Plan the quarterly strategy")
        assert isinstance(quest, AIGeneratedQuest)

    @pytest.mark.parametrize("level", [1, 5, 15])
    def test_quest_level_scaling(self, manager, level):
        manager.player.level = level
        quest = manager.quests.generate("Organize the garage")
        assert quest.rewards.xp == math.floor(80 * 1.5 * (1 + level * 0.1))
