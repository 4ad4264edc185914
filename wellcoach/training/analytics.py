"""
Exercise analytics - Summary statistics over a learner's submissions.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Iterable, Optional

from wellcoach.errors import MalformedRecordError
from wellcoach.schemas import ExerciseSubmission, TrainingModule

from .records import local_date, order_submissions, submission_score


logger = logging.getLogger(__name__)


@dataclass
class ModuleStats:
    module_id: str
    completed_exercises: int
    total_exercises: int
    average_score: float


@dataclass
class ExerciseAnalytics:
    total_submissions: int
    average_score: float
    total_time_spent: int  # seconds
    completion_rate: float  # percent of catalog exercises submitted at least once
    current_streak: int
    longest_streak: int
    modules: dict[str, ModuleStats] = field(default_factory=dict)
    recent_activity: list[ExerciseSubmission] = field(default_factory=list)


def _valid_scores(submissions: Iterable[ExerciseSubmission]) -> list[int]:
    scores = []
    for submission in submissions:
        try:
            score = submission_score(submission)
        except MalformedRecordError as e:
            logger.debug(f"Excluded from averages: {e}")
            continue
        if score is not None:
            scores.append(score)
    return scores


def _average(values: list[int]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


def calculate_streaks(
    submissions: Iterable[ExerciseSubmission],
    today: date,
    tz: Optional[tzinfo] = None,
) -> tuple[int, int]:
    """
    Current and longest run of consecutive active days.

    The current streak only counts if the last active day is today or
    yesterday.
    """
    days = set()
    for submission in submissions:
        try:
            days.add(local_date(submission, tz))
        except MalformedRecordError:
            continue
    if not days:
        return 0, 0

    active = sorted(days)
    longest = run = 1
    for previous, current in zip(active, active[1:]):
        run = run + 1 if (current - previous).days == 1 else 1
        longest = max(longest, run)

    current_streak = run if (today - active[-1]).days <= 1 else 0
    return current_streak, longest


def build_analytics(
    modules: Iterable[TrainingModule],
    submissions: Iterable[ExerciseSubmission],
    today: date,
    tz: Optional[tzinfo] = None,
    recent_limit: int = 10,
) -> ExerciseAnalytics:
    """
    Summarize a learner's exercise history against the module catalog.

    Args:
        modules: Catalog modules (for per-module totals)
        submissions: The learner's submissions, any order
        today: Reference date for the current streak
        tz: Timezone for calendar days
        recent_limit: Number of newest submissions to include
    """
    ordered = order_submissions(submissions)

    module_stats = {}
    for module in modules:
        in_module = [s for s in ordered if s.module_id == module.id]
        module_stats[module.id] = ModuleStats(
            module_id=module.id,
            completed_exercises=len({s.exercise_id for s in in_module}),
            total_exercises=module.total_exercises,
            average_score=_average(_valid_scores(in_module)),
        )

    total_exercises = sum(stats.total_exercises for stats in module_stats.values())
    total_completed = sum(stats.completed_exercises for stats in module_stats.values())
    current_streak, longest_streak = calculate_streaks(ordered, today, tz)

    dated = [s for s in ordered if s.submitted_at is not None]
    return ExerciseAnalytics(
        total_submissions=len(ordered),
        average_score=_average(_valid_scores(ordered)),
        total_time_spent=sum(max(0, s.time_spent) for s in ordered),
        completion_rate=round(total_completed / total_exercises * 100, 1) if total_exercises else 0.0,
        current_streak=current_streak,
        longest_streak=longest_streak,
        modules=module_stats,
        recent_activity=dated[::-1][:recent_limit],
    )
