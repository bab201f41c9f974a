"""
Tests for the lexical classifier.

Classification is a pure function of the text: category labels, a
difficulty signal, a time frame and a short keyword list.
"""

from ascend.state.schema import Difficulty, TimeFrame
from ascend.systems.classifier import (
    classify,
    classify_journal,
    detect_difficulty,
    detect_time_frame,
    extract_keywords,
)


class TestActivityCategories:
    """Test category detection for activity input."""

    def test_study_input_is_medical(self):
        """Exam study maps to the medical (study) category."""
        result = classify("I studied for my exam for 2 hours")
        assert result.categories == ["medical"]
        assert result.difficulty == Difficulty.MEDIUM
        assert result.time_frame == TimeFrame.TODAY

    def test_empty_input_falls_back_to_strategy(self):
        """Empty text classifies as strategy."""
        assert classify("").categories == ["strategy"]

    def test_no_match_falls_back_to_strategy(self):
        """Text with no known keywords classifies as strategy."""
        assert classify("zzz qqq").categories == ["strategy"]

    def test_multiple_categories_in_dictionary_order(self):
        """Every matching category is returned, strategy before social."""
        result = classify("Plan a team meeting")
        assert result.categories == ["strategy", "social"]
        assert result.primary_category == "strategy"

    def test_substring_matching(self):
        """Activity keywords match inside longer words."""
        assert "fitness" in classify("Went running after work").categories


class TestDifficultyAndTimeFrame:
    """Test difficulty and time frame signals."""

    def test_hard_words(self):
        assert detect_difficulty("This is a difficult task") == Difficulty.HARD

    def test_easy_words(self):
        assert detect_difficulty("A quick errand") == Difficulty.EASY

    def test_hard_wins_over_easy(self):
        """Hard vocabulary is checked first."""
        assert detect_difficulty("An easy start to a real challenge") == Difficulty.HARD

    def test_default_is_medium(self):
        assert detect_difficulty("Walk the dog") == Difficulty.MEDIUM

    def test_week_time_frame(self):
        assert detect_time_frame("finish the draft this week") == TimeFrame.WEEK

    def test_long_term_is_month(self):
        assert detect_time_frame("a long term goal") == TimeFrame.MONTH

    def test_default_time_frame_is_today(self):
        assert detect_time_frame("Walk the dog") == TimeFrame.TODAY


class TestKeywords:
    """Test keyword extraction."""

    def test_distinct_words_in_order(self):
        """Short words and stop words are dropped, duplicates collapse."""
        keywords = extract_keywords("The quick brown fox jumps over the lazy dog quick")
        assert keywords == ["quick", "brown", "jumps", "over", "lazy"]

    def test_capped_at_ten(self):
        text = " ".join(f"word{n:02d}" for n in range(15))
        assert len(extract_keywords(text)) == 10

    def test_activities_are_first_three_sentences(self):
        result = classify("Read a book. Went to the gym. Called mom. Cooked dinner.")
        assert result.activities == ["Read a book", "Went to the gym", "Called mom"]


class TestJournalCategories:
    """Test journal classification (whole-word matching)."""

    def test_career_entry(self):
        result = classify_journal("Big project deadline at work")
        assert result.categories == ["career"]

    def test_whole_words_only(self):
        """'homework' does not count as 'work'."""
        assert classify_journal("homework is fun").categories == ["general"]

    def test_empty_falls_back_to_general(self):
        assert classify_journal("").categories == ["general"]

    def test_several_categories(self):
        result = classify_journal("Stress about money and my exam")
        assert result.categories == ["learning", "finance", "challenges"]
