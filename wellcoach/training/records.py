"""
Field access for ledger records used by achievement and analytics rules.

Accessors raise MalformedRecordError for unusable values so each rule can
skip just the fields it needs.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

from wellcoach.errors import MalformedRecordError
from wellcoach.schemas import ExerciseSubmission, ModuleStatus, UserModuleProgress


MIN_SCORE = 0
MAX_SCORE = 100


def submission_timestamp(submission: ExerciseSubmission) -> datetime:
    """submitted_at, or MalformedRecordError when missing."""
    value = submission.submitted_at
    if not isinstance(value, datetime):
        raise MalformedRecordError(submission.id, "submitted_at", value)
    return value


def safe_timestamp(submission: ExerciseSubmission) -> Optional[datetime]:
    try:
        return submission_timestamp(submission)
    except MalformedRecordError:
        return None


def submission_score(submission: ExerciseSubmission) -> Optional[int]:
    """
    Score of a submission.

    Returns None for ungraded submissions.

    Raises:
        MalformedRecordError: If the score is not an integer in 0-100
    """
    value = submission.score
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_SCORE <= value <= MAX_SCORE:
        raise MalformedRecordError(submission.id, "score", value)
    return value


def local_time(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Wall-clock time used for hour and calendar-day rules.

    Aware timestamps are converted to tz when one is given; naive timestamps
    are taken as already local.
    """
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz)
    return value


def local_date(submission: ExerciseSubmission, tz: Optional[tzinfo] = None) -> date:
    return local_time(submission_timestamp(submission), tz).date()


def _sort_key(value: datetime) -> datetime:
    # aware values order by instant, naive ones by wall clock
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def order_submissions(submissions: Iterable[ExerciseSubmission]) -> list[ExerciseSubmission]:
    """
    Submissions in submission order (oldest first).

    Ties keep input order; records without a usable timestamp go last.
    """
    dated = []
    undated = []
    for submission in submissions:
        timestamp = safe_timestamp(submission)
        if timestamp is None:
            undated.append(submission)
        else:
            dated.append((_sort_key(timestamp), submission))
    dated.sort(key=lambda pair: pair[0])
    return [submission for _, submission in dated] + undated


def order_completed_modules(progress: Iterable[UserModuleProgress]) -> list[UserModuleProgress]:
    """Completed modules in completion order; records without completed_at go last."""
    completed = [p for p in progress if p.status == ModuleStatus.COMPLETED]
    dated = [p for p in completed if p.completed_at is not None]
    undated = [p for p in completed if p.completed_at is None]
    dated.sort(key=lambda p: _sort_key(p.completed_at))
    return dated + undated
