"""
Wellcoach Training - Runtime components for gating modules and awarding badges.

This module provides:
- CatalogLoader: Load the module catalog
- SubmissionLedger: Store progress and exercise submissions
- ProgressGate: Section gating and module completion
- Achievement engine: Badge rules, evaluation and ranking
- Analytics: Exercise history statistics
"""

from .catalog import CatalogLoader

from .ledger import SubmissionLedger

from .gate import (
    ProgressGate,
    SectionAccess,
    SectionView,
    CompletionOutcome,
    ReconcileReport,
    compute_progress_percentage,
    is_section_accessible,
    section_states,
    apply_section_completion,
)

from .achievements import (
    AchievementDefinition,
    AchievementResult,
    AchievementSummary,
    DEFAULT_ACHIEVEMENTS,
    ModuleCountRule,
    SubmissionCountRule,
    ScoreCountRule,
    TimeOfDayRule,
    WeekendPairRule,
    StreakRule,
    evaluate,
    rank_achievements,
    summarize,
)

from .analytics import (
    ExerciseAnalytics,
    ModuleStats,
    build_analytics,
    calculate_streaks,
)

from .grading import score_responses, feedback_for_score

__all__ = [
    # Catalog
    "CatalogLoader",
    # Ledger
    "SubmissionLedger",
    # Gate
    "ProgressGate",
    "SectionAccess",
    "SectionView",
    "CompletionOutcome",
    "ReconcileReport",
    "compute_progress_percentage",
    "is_section_accessible",
    "section_states",
    "apply_section_completion",
    # Achievements
    "AchievementDefinition",
    "AchievementResult",
    "AchievementSummary",
    "DEFAULT_ACHIEVEMENTS",
    "ModuleCountRule",
    "SubmissionCountRule",
    "ScoreCountRule",
    "TimeOfDayRule",
    "WeekendPairRule",
    "StreakRule",
    "evaluate",
    "rank_achievements",
    "summarize",
    # Analytics
    "ExerciseAnalytics",
    "ModuleStats",
    "build_analytics",
    "calculate_streaks",
    # Grading
    "score_responses",
    "feedback_for_score",
]
