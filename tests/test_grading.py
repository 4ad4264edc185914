"""
Tests for exercise scoring and feedback.
"""

import pytest

from wellcoach.training.grading import (
    extract_time_spent,
    feedback_for_score,
    is_answered,
    score_responses,
)


class TestScoreResponses:

    def test_all_answered(self):
        assert score_responses({"goal": "Walk daily", "why": "Energy"}) == 100

    def test_half_answered(self):
        assert score_responses({"goal": "Walk daily", "why": "   "}) == 50

    def test_nothing_to_grade(self):
        assert score_responses({}) == 100
        assert score_responses({"time_spent": 30, "completedAt": "now"}) == 100

    def test_bookkeeping_keys_ignored(self):
        assert score_responses({"answer": "", "timeSpent": 120, "totalWords": 0}) == 0

    def test_lists_and_numbers(self):
        assert score_responses({"habits": [], "rating": 7, "notes": None}) == 33

    def test_nested_reflection_responses(self):
        responses = {"responses": {"q1": "Slept better", "q2": "", "q3": ["not", "text"]}, "totalWords": 2}
        assert score_responses(responses) == 33

    def test_nested_all_answered(self):
        assert score_responses({"responses": {"q1": "yes", "q2": "no"}}) == 100


class TestFeedback:

    @pytest.mark.parametrize("score, opening", [
        (100, "Excellent"),
        (90, "Excellent"),
        (89, "Great job"),
        (70, "Great job"),
        (50, "Good start"),
        (0, "You've completed"),
    ])
    def test_bands(self, score, opening):
        assert feedback_for_score(score).startswith(opening)


class TestHelpers:

    def test_is_answered(self):
        assert is_answered("x")
        assert is_answered(0)
        assert is_answered({"a": 1})
        assert not is_answered("")
        assert not is_answered(None)
        assert not is_answered([])

    def test_time_spent(self):
        assert extract_time_spent({"time_spent": 90}) == 90
        assert extract_time_spent({"timeSpent": "45"}) == 45
        assert extract_time_spent({"time_spent": "soon"}) == 0
        assert extract_time_spent({"time_spent": -10}) == 0
        assert extract_time_spent({}) == 0
