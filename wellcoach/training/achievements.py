"""
Achievement engine - Badges derived from a learner's history.

Achievements are recomputed on every read from the completed modules and
the full submission history; nothing is stored. Each badge pairs display
metadata with one rule from a closed set of rule types:

- module_count: N modules completed
- submission_count: N exercise submissions
- score_count: N submissions scoring at least a threshold
- time_of_day: a submission within an hour window
- weekend_pair: submissions on a Saturday and the Sunday right after it
- streak: submissions on N consecutive calendar days

A submission with an unusable timestamp or score is skipped only by the
rules that need that field.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from wellcoach.errors import MalformedRecordError
from wellcoach.schemas import (
    RARITY_RANK,
    AchievementCategory,
    ExerciseSubmission,
    Rarity,
    UserModuleProgress,
)

from .records import (
    local_time,
    order_completed_modules,
    order_submissions,
    safe_timestamp,
    submission_score,
    submission_timestamp,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs shared by every rule. Submissions are in submission order."""
    completed_modules: tuple[UserModuleProgress, ...]
    submissions: tuple[ExerciseSubmission, ...]
    tz: Optional[tzinfo] = None

    def local_datetimes(self) -> list[tuple[datetime, ExerciseSubmission]]:
        """(local time, submission) for every submission with a usable timestamp."""
        result = []
        for submission in self.submissions:
            try:
                timestamp = submission_timestamp(submission)
            except MalformedRecordError as e:
                logger.debug(f"Skipping for time rules: {e}")
                continue
            result.append((local_time(timestamp, self.tz), submission))
        return result


RuleOutcome = tuple[bool, Optional[datetime]]
NOT_EARNED: RuleOutcome = (False, None)


# -----------------------------------------------------------------------------
# Rule types
# -----------------------------------------------------------------------------

class RuleBase(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: str

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        raise NotImplementedError


class ModuleCountRule(RuleBase):
    """Earned at the completion of the Nth module.

    A completed record missing completed_at is dated by its last_accessed_at.
    """
    type: Literal["module_count"] = "module_count"
    required: int = Field(..., ge=1)

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        if len(context.completed_modules) < self.required:
            return NOT_EARNED
        module = context.completed_modules[self.required - 1]
        return True, module.completed_at or module.last_accessed_at


class SubmissionCountRule(RuleBase):
    """Earned at the Nth submission. Every record counts."""
    type: Literal["submission_count"] = "submission_count"
    required: int = Field(..., ge=1)

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        if len(context.submissions) < self.required:
            return NOT_EARNED
        return True, safe_timestamp(context.submissions[self.required - 1])


class ScoreCountRule(RuleBase):
    """Earned at the Nth submission scoring min_score or more."""
    type: Literal["score_count"] = "score_count"
    min_score: int = Field(..., ge=0, le=100)
    required: int = Field(1, ge=1)

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        qualifying = []
        for submission in context.submissions:
            try:
                score = submission_score(submission)
            except MalformedRecordError as e:
                logger.debug(f"Skipping for score rules: {e}")
                continue
            if score is not None and score >= self.min_score:
                qualifying.append(submission)
                if len(qualifying) == self.required:
                    return True, safe_timestamp(submission)
        return NOT_EARNED


class TimeOfDayRule(RuleBase):
    """Earned by the first submission whose local hour is in [start_hour, end_hour)."""
    type: Literal["time_of_day"] = "time_of_day"
    start_hour: int = Field(0, ge=0, le=23)
    end_hour: int = Field(24, ge=1, le=24)

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        for local, submission in context.local_datetimes():
            if self.start_hour <= local.hour < self.end_hour:
                return True, submission.submitted_at
        return NOT_EARNED


class WeekendPairRule(RuleBase):
    """
    Earned by submissions on a Saturday and on the Sunday right after it.

    Days are local calendar dates. The earliest qualifying weekend counts,
    and the badge is dated by the first Sunday submission that completes it.
    """
    type: Literal["weekend_pair"] = "weekend_pair"

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        dated = context.local_datetimes()
        days = {local.date() for local, _ in dated}
        saturdays = sorted(day for day in days if day.weekday() == 5 and day + timedelta(days=1) in days)
        if not saturdays:
            return NOT_EARNED

        sunday = saturdays[0] + timedelta(days=1)
        for local, submission in dated:
            if local.date() == sunday:
                return True, submission.submitted_at
        return NOT_EARNED


class StreakRule(RuleBase):
    """
    Earned on the day a run of consecutive active days reaches `days`.

    earned_at is midnight of that local date.
    """
    type: Literal["streak"] = "streak"
    days: int = Field(..., ge=1)

    def evaluate(self, context: EvaluationContext) -> RuleOutcome:
        active = sorted({local.date() for local, _ in context.local_datetimes()})
        if not active:
            return NOT_EARNED

        run = 1
        if run >= self.days:
            return True, self._midnight(active[0], context.tz)
        for previous, current in zip(active, active[1:]):
            run = run + 1 if (current - previous).days == 1 else 1
            if run >= self.days:
                return True, self._midnight(current, context.tz)
        return NOT_EARNED

    @staticmethod
    def _midnight(day: date, tz: Optional[tzinfo]) -> datetime:
        return datetime.combine(day, time.min, tzinfo=tz)


AchievementRule = Annotated[
    Union[
        ModuleCountRule,
        SubmissionCountRule,
        ScoreCountRule,
        TimeOfDayRule,
        WeekendPairRule,
        StreakRule,
    ],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------

class AchievementDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    rarity: Rarity
    rule: AchievementRule


DEFAULT_ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Module completion
    AchievementDefinition(
        id="first_module", title="First Steps",
        description="Complete your first wellness module", icon="🌱",
        category=AchievementCategory.MODULE, rarity=Rarity.COMMON,
        rule=ModuleCountRule(required=1),
    ),
    AchievementDefinition(
        id="half_way", title="Halfway Hero",
        description="Complete 4 wellness modules", icon="🏃",
        category=AchievementCategory.MODULE, rarity=Rarity.RARE,
        rule=ModuleCountRule(required=4),
    ),
    AchievementDefinition(
        id="wellness_master", title="Wellness Master",
        description="Complete all 8 wellness modules", icon="🏆",
        category=AchievementCategory.MODULE, rarity=Rarity.LEGENDARY,
        rule=ModuleCountRule(required=8),
    ),
    # Exercises
    AchievementDefinition(
        id="exercise_enthusiast", title="Exercise Enthusiast",
        description="Complete 10 interactive exercises", icon="💪",
        category=AchievementCategory.EXERCISE, rarity=Rarity.COMMON,
        rule=SubmissionCountRule(required=10),
    ),
    AchievementDefinition(
        id="practice_perfecter", title="Practice Perfecter",
        description="Complete 25 interactive exercises", icon="🎯",
        category=AchievementCategory.EXERCISE, rarity=Rarity.RARE,
        rule=SubmissionCountRule(required=25),
    ),
    # Scores
    AchievementDefinition(
        id="high_scorer", title="High Scorer",
        description="Achieve 90+ score on 5 exercises", icon="⭐",
        category=AchievementCategory.SCORE, rarity=Rarity.RARE,
        rule=ScoreCountRule(min_score=90, required=5),
    ),
    AchievementDefinition(
        id="perfectionist", title="Perfectionist",
        description="Achieve a perfect 100 score on an exercise", icon="💯",
        category=AchievementCategory.SCORE, rarity=Rarity.EPIC,
        rule=ScoreCountRule(min_score=100, required=1),
    ),
    # Special
    AchievementDefinition(
        id="early_bird", title="Early Bird",
        description="Complete an exercise before 8 AM", icon="🌅",
        category=AchievementCategory.SPECIAL, rarity=Rarity.EPIC,
        rule=TimeOfDayRule(start_hour=0, end_hour=8),
    ),
    AchievementDefinition(
        id="night_owl", title="Night Owl",
        description="Complete an exercise after 10 PM", icon="🦉",
        category=AchievementCategory.SPECIAL, rarity=Rarity.EPIC,
        rule=TimeOfDayRule(start_hour=22, end_hour=24),
    ),
    AchievementDefinition(
        id="weekend_warrior", title="Weekend Warrior",
        description="Complete exercises on both Saturday and Sunday", icon="🗓️",
        category=AchievementCategory.SPECIAL, rarity=Rarity.RARE,
        rule=WeekendPairRule(),
    ),
    # Streaks
    AchievementDefinition(
        id="consistency_champion", title="Consistency Champion",
        description="Complete exercises on 7 consecutive days", icon="🔥",
        category=AchievementCategory.STREAK, rarity=Rarity.EPIC,
        rule=StreakRule(days=7),
    ),
)


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class AchievementResult:
    """An achievement with its earned state for one learner."""
    definition: AchievementDefinition
    earned: bool
    earned_at: Optional[datetime] = None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def category(self) -> AchievementCategory:
        return self.definition.category

    @property
    def rarity(self) -> Rarity:
        return self.definition.rarity


@dataclass
class AchievementSummary:
    earned: int
    total: int
    by_category: dict[str, tuple[int, int]] = field(default_factory=dict)  # category -> (earned, total)

    @property
    def percent(self) -> float:
        return round(self.earned / self.total * 100, 1) if self.total else 0.0


def build_context(
    completed_modules: Iterable[UserModuleProgress],
    submissions: Iterable[ExerciseSubmission],
    tz: Optional[tzinfo] = None,
) -> EvaluationContext:
    """Order the inputs once for all rules. Non-completed progress is ignored."""
    return EvaluationContext(
        completed_modules=tuple(order_completed_modules(completed_modules)),
        submissions=tuple(order_submissions(submissions)),
        tz=tz,
    )


def evaluate(
    completed_modules: Iterable[UserModuleProgress],
    submissions: Iterable[ExerciseSubmission],
    catalog: Iterable[AchievementDefinition] = DEFAULT_ACHIEVEMENTS,
    tz: Optional[tzinfo] = None,
) -> list[AchievementResult]:
    """
    Evaluate every achievement against a learner's history.

    Args:
        completed_modules: Progress records (only completed ones count)
        submissions: Full submission history, any order
        catalog: Achievement definitions
        tz: Timezone for hour/day rules; None uses timestamps as stored

    Returns:
        One result per definition, in catalog order
    """
    context = build_context(completed_modules, submissions, tz)
    results = []
    for definition in catalog:
        earned, earned_at = definition.rule.evaluate(context)
        results.append(AchievementResult(
            definition=definition,
            earned=earned,
            earned_at=earned_at if earned else None,
        ))
    return results


def rank_achievements(
    results: Iterable[AchievementResult],
    category: Optional[AchievementCategory | str] = None,
    earned_only: bool = False,
) -> list[AchievementResult]:
    """
    Order achievements for display.

    Earned before unearned, then rarity (legendary first), then id so the
    order never depends on catalog order.
    """
    filtered = list(results)
    if earned_only:
        filtered = [r for r in filtered if r.earned]
    if category is not None and category != "all":
        category = AchievementCategory(category)
        filtered = [r for r in filtered if r.category == category]

    return sorted(filtered, key=lambda r: (not r.earned, -RARITY_RANK[r.rarity], r.id))


def summarize(results: Iterable[AchievementResult]) -> AchievementSummary:
    results = list(results)
    by_category: dict[str, tuple[int, int]] = {}
    for category in AchievementCategory:
        in_category = [r for r in results if r.category == category]
        if in_category:
            by_category[category.value] = (sum(1 for r in in_category if r.earned), len(in_category))
    return AchievementSummary(
        earned=sum(1 for r in results if r.earned),
        total=len(results),
        by_category=by_category,
    )
