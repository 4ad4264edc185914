"""
Exercise grading - completeness score and feedback for a submission.

The score is the share of answered fields (0-100). Bookkeeping keys added
by exercise forms are ignored. Reflection-style forms nest their answers
under a "responses" key; only those nested text answers are graded.
"""

from typing import Any


IGNORED_RESPONSE_KEYS = {
    "timeSpent",
    "time_spent",
    "completedAt",
    "completed_at",
    "totalWords",
    "total_words",
}

FEEDBACK_BANDS = [
    (90, "Excellent work! Your responses show deep reflection and engagement with the material."),
    (70, "Great job! Your responses show good understanding and effort. Consider adding more detail to deepen your insights."),
    (50, "Good start! Try to provide more detailed reflections for maximum benefit."),
    (0, "You've completed the exercise! For the most benefit, consider revisiting some sections and providing more detailed responses."),
]


def is_answered(value: Any) -> bool:
    """Whether a single response field counts as answered."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def score_responses(responses: dict[str, Any]) -> int:
    """
    Score a response map.

    Returns:
        Integer score 0-100 (100 when there is nothing to grade)
    """
    nested = responses.get("responses")
    if isinstance(nested, dict):
        fields = list(nested.values())
        answered = sum(1 for value in fields if isinstance(value, str) and value.strip())
    else:
        fields = [v for k, v in responses.items() if k not in IGNORED_RESPONSE_KEYS]
        answered = sum(1 for value in fields if is_answered(value))

    if not fields:
        return 100
    return min(100, round(answered / len(fields) * 100))


def feedback_for_score(score: int) -> str:
    for threshold, message in FEEDBACK_BANDS:
        if score >= threshold:
            return message
    return FEEDBACK_BANDS[-1][1]


def extract_time_spent(responses: dict[str, Any]) -> int:
    """Seconds spent as reported by the exercise form (0 if absent or invalid)."""
    value = responses.get("time_spent", responses.get("timeSpent", 0))
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
