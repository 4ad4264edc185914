"""
SubmissionLedger - Store learner progress and exercise submissions in SQLite.

Stores per-user state separately from the module catalog:
- Module progress records (status, completed sections, section pointer)
- Exercise submissions (append-only)
- Module completion certificates
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import uuid4

from wellcoach.config import DEFAULT_PROGRESS_DB
from wellcoach.errors import IncompleteModuleError, NotFoundError, PersistenceError
from wellcoach.schemas import (
    ExerciseSubmission,
    ModuleCertificate,
    ModuleStatus,
    UserModuleProgress,
)
from wellcoach.utils import format_timestamp, parse_timestamp

from .catalog import CatalogLoader
from .gate import apply_section_completion, recompute_progress
from .grading import extract_time_spent, feedback_for_score, score_responses
from .records import order_submissions


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS module_progress (
    user_id TEXT NOT NULL,
    module_id TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'not_started',
    completed_sections JSON NOT NULL DEFAULT '[]',
    completed_exercises JSON NOT NULL DEFAULT '[]',
    current_section_id TEXT,
    progress_percentage REAL NOT NULL DEFAULT 0,
    time_spent INTEGER NOT NULL DEFAULT 0,
    started_at TEXT,
    completed_at TEXT,
    last_accessed_at TEXT,
    PRIMARY KEY (user_id, module_id)
);

CREATE TABLE IF NOT EXISTS exercise_submissions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    module_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL,
    section_id TEXT NOT NULL DEFAULT '',
    responses JSON NOT NULL DEFAULT '{}',
    score INTEGER,
    feedback TEXT,
    submitted_at TEXT,
    time_spent INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS certificates (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    module_id TEXT NOT NULL,
    certificate_number TEXT NOT NULL,
    issued_at TEXT NOT NULL,
    completion_time INTEGER NOT NULL DEFAULT 0,
    exercises_completed INTEGER NOT NULL DEFAULT 0,
    total_exercises INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_submissions_user
ON exercise_submissions(user_id, module_id, exercise_id);
"""


class SubmissionLedger:
    """
    Persist progress and submissions in a SQLite database.

    Each method opens its own connection. Writes that cannot be committed
    raise PersistenceError; reads never write.
    """

    def __init__(
        self,
        catalog: CatalogLoader,
        db_path: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the ledger.

        Args:
            catalog: Module catalog used to validate ids and recompute progress
            db_path: Path to the ledger database (default: ~/.wellcoach/progress.db)
            clock: Source of the current time
        """
        self.catalog = catalog
        self.db_path = Path(db_path) if db_path else DEFAULT_PROGRESS_DB
        self.clock = clock
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _write(self, sql: str, params: tuple):
        """Execute one write statement, raising PersistenceError on failure."""
        try:
            conn = self._get_connection()
            try:
                conn.execute(sql, params)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Ledger write failed: {e}") from e

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_progress(row: sqlite3.Row) -> UserModuleProgress:
        return UserModuleProgress(
            user_id=row["user_id"],
            module_id=row["module_id"],
            status=ModuleStatus(row["status"]),
            completed_sections=json.loads(row["completed_sections"] or "[]"),
            completed_exercises=json.loads(row["completed_exercises"] or "[]"),
            current_section_id=row["current_section_id"],
            progress_percentage=row["progress_percentage"],
            time_spent=row["time_spent"],
            started_at=parse_timestamp(row["started_at"]),
            completed_at=parse_timestamp(row["completed_at"]),
            last_accessed_at=parse_timestamp(row["last_accessed_at"]),
        )

    @staticmethod
    def _row_to_submission(row: sqlite3.Row) -> ExerciseSubmission:
        submitted_at = parse_timestamp(row["submitted_at"])
        if submitted_at is None:
            logger.warning(f"Submission {row['id']} has unreadable submitted_at: {row['submitted_at']!r}")
        try:
            responses = json.loads(row["responses"] or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Submission {row['id']} has unreadable responses")
            responses = {}
        score = row["score"]
        if score is not None and (isinstance(score, bool) or not isinstance(score, int)):
            logger.warning(f"Submission {row['id']} has unreadable score: {score!r}")
            score = None
        return ExerciseSubmission(
            id=row["id"],
            user_id=row["user_id"],
            module_id=row["module_id"],
            exercise_id=row["exercise_id"],
            section_id=row["section_id"],
            responses=responses,
            score=score,
            feedback=row["feedback"],
            submitted_at=submitted_at,
            time_spent=row["time_spent"],
        )

    def _save_progress(self, progress: UserModuleProgress):
        self._write(
            """INSERT INTO module_progress (
                   user_id, module_id, status, completed_sections, completed_exercises,
                   current_section_id, progress_percentage, time_spent,
                   started_at, completed_at, last_accessed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(user_id, module_id) DO UPDATE SET
                 status = excluded.status,
                 completed_sections = excluded.completed_sections,
                 completed_exercises = excluded.completed_exercises,
                 current_section_id = excluded.current_section_id,
                 progress_percentage = excluded.progress_percentage,
                 time_spent = excluded.time_spent,
                 started_at = excluded.started_at,
                 completed_at = excluded.completed_at,
                 last_accessed_at = excluded.last_accessed_at""",
            (
                progress.user_id,
                progress.module_id,
                progress.status.value,
                json.dumps(progress.completed_sections),
                json.dumps(progress.completed_exercises),
                progress.current_section_id,
                progress.progress_percentage,
                progress.time_spent,
                format_timestamp(progress.started_at),
                format_timestamp(progress.completed_at),
                format_timestamp(progress.last_accessed_at),
            ),
        )

    # -------------------------------------------------------------------------
    # Module Progress
    # -------------------------------------------------------------------------

    def get_module_progress(self, user_id: str, module_id: str) -> Optional[UserModuleProgress]:
        """Get progress for one module, or None if the user never opened it."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT * FROM module_progress
                   WHERE user_id = ? AND module_id = ?""",
                (user_id, module_id)
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if not row:
            return None
        progress = self._row_to_progress(row)
        module = self.catalog.get_module(module_id)
        return recompute_progress(module, progress, self.clock()) if module else progress

    def get_user_progress(self, user_id: str) -> list[UserModuleProgress]:
        """Get progress for every module the user has opened, in catalog order."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT * FROM module_progress WHERE user_id = ?",
                (user_id,)
            )
            rows = cursor.fetchall()
        finally:
            conn.close()

        now = self.clock()
        order = {module_id: idx for idx, module_id in enumerate(self.catalog.get_module_ids())}
        result = []
        for row in rows:
            progress = self._row_to_progress(row)
            module = self.catalog.get_module(progress.module_id)
            if module is None:
                logger.warning(f"Ignoring progress for unknown module {progress.module_id}")
                continue
            result.append(recompute_progress(module, progress, now))
        result.sort(key=lambda p: order[p.module_id])
        return result

    def get_completed_modules(self, user_id: str) -> list[UserModuleProgress]:
        return [p for p in self.get_user_progress(user_id) if p.status == ModuleStatus.COMPLETED]

    def start_module(self, user_id: str, module_id: str) -> UserModuleProgress:
        """
        Start a module (not_started -> in_progress), creating the record if absent.

        Raises:
            NotFoundError: If the module is unknown
            PersistenceError: If the record cannot be saved
        """
        module = self.catalog.require_module(module_id)
        now = self.clock()
        progress = self.get_module_progress(user_id, module_id)

        if progress is None:
            progress = UserModuleProgress(
                user_id=user_id,
                module_id=module_id,
                status=ModuleStatus.IN_PROGRESS,
                current_section_id=module.sections[0].id,
                started_at=now,
                last_accessed_at=now,
            )
        else:
            updates: dict[str, Any] = {"last_accessed_at": now}
            if progress.status == ModuleStatus.NOT_STARTED:
                updates["status"] = ModuleStatus.IN_PROGRESS
                updates["started_at"] = progress.started_at or now
            if progress.current_section_id is None:
                updates["current_section_id"] = module.sections[0].id
            progress = progress.model_copy(update=updates)

        self._save_progress(progress)
        return progress

    def complete_section(self, user_id: str, module_id: str, section_id: str) -> UserModuleProgress:
        """
        Mark a section complete.

        Idempotent: completing a section twice leaves the record unchanged.

        Raises:
            NotFoundError: If the module or section is unknown
            PersistenceError: If the write cannot be committed
        """
        module = self.catalog.require_module(module_id)
        self.catalog.require_section(module_id, section_id)

        progress = self.get_module_progress(user_id, module_id)
        if progress is None or progress.status == ModuleStatus.NOT_STARTED:
            progress = self.start_module(user_id, module_id)

        updated = apply_section_completion(module, progress, section_id, self.clock())
        if updated != progress:
            self._save_progress(updated)
            if updated.status == ModuleStatus.COMPLETED and progress.status != ModuleStatus.COMPLETED:
                logger.info(f"User {user_id} completed module {module_id}")
        return updated

    def reset_module(self, user_id: str, module_id: str):
        """Reset a module to not started. Submissions are kept."""
        self._write(
            "DELETE FROM module_progress WHERE user_id = ? AND module_id = ?",
            (user_id, module_id),
        )

    # -------------------------------------------------------------------------
    # Exercise Submissions
    # -------------------------------------------------------------------------

    def submit_exercise(
        self,
        user_id: str,
        module_id: str,
        exercise_id: str,
        responses: dict[str, Any],
        section_id: Optional[str] = None,
    ) -> ExerciseSubmission:
        """
        Record a graded submission and mark the exercise completed.

        Args:
            section_id: Owning section; looked up from the catalog when omitted

        Once the submission row is saved, a failed progress update is only
        logged.

        Raises:
            NotFoundError: If the module or exercise is unknown, or section_id
                does not own the exercise
            PersistenceError: If the submission cannot be saved
        """
        section, _ = self.catalog.find_exercise(module_id, exercise_id)
        if section_id is not None and section_id != section.id:
            raise NotFoundError("section", section_id)
        now = self.clock()
        score = score_responses(responses)

        submission = ExerciseSubmission(
            id=f"submission_{uuid4().hex}",
            user_id=user_id,
            module_id=module_id,
            exercise_id=exercise_id,
            section_id=section.id,
            responses=responses,
            score=score,
            feedback=feedback_for_score(score),
            submitted_at=now,
            time_spent=extract_time_spent(responses),
        )

        self._write(
            """INSERT INTO exercise_submissions (
                   id, user_id, module_id, exercise_id, section_id,
                   responses, score, feedback, submitted_at, time_spent)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                submission.id,
                submission.user_id,
                submission.module_id,
                submission.exercise_id,
                submission.section_id,
                json.dumps(submission.responses, default=str),
                submission.score,
                submission.feedback,
                format_timestamp(submission.submitted_at),
                submission.time_spent,
            ),
        )

        try:
            self._record_exercise_completion(user_id, module_id, exercise_id, submission.time_spent, now)
        except PersistenceError as e:
            logger.warning(f"Saved {submission.id} but could not update progress for {module_id}: {e}")

        logger.debug(f"Recorded {submission.id} for {exercise_id} (score {score})")
        return submission

    def _record_exercise_completion(self, user_id: str, module_id: str, exercise_id: str, time_spent: int, now: datetime):
        progress = self.get_module_progress(user_id, module_id)
        if progress is None or progress.status == ModuleStatus.NOT_STARTED:
            progress = self.start_module(user_id, module_id)
        if exercise_id not in progress.completed_exercises:
            self._save_progress(progress.model_copy(update={
                "completed_exercises": progress.completed_exercises + [exercise_id],
                "time_spent": progress.time_spent + time_spent,
                "last_accessed_at": now,
            }))

    def get_exercise_submissions(
        self,
        user_id: str,
        module_id: Optional[str] = None,
        exercise_id: Optional[str] = None,
    ) -> list[ExerciseSubmission]:
        """
        Get a user's submissions, newest first.

        Omitted filters return the full history. Submissions without a
        readable timestamp come last.
        """
        query = "SELECT * FROM exercise_submissions WHERE user_id = ?"
        params: list[Any] = [user_id]
        if module_id:
            query += " AND module_id = ?"
            params.append(module_id)
        if exercise_id:
            query += " AND exercise_id = ?"
            params.append(exercise_id)
        query += " ORDER BY rowid"

        conn = self._get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        ordered = order_submissions(self._row_to_submission(row) for row in rows)
        dated = [s for s in ordered if s.submitted_at is not None]
        undated = [s for s in ordered if s.submitted_at is None]
        return dated[::-1] + undated

    def get_latest_submission(
        self,
        user_id: str,
        exercise_id: str,
        module_id: Optional[str] = None,
    ) -> Optional[ExerciseSubmission]:
        """Most recent submission of an exercise, shown as its current answer."""
        submissions = self.get_exercise_submissions(user_id, module_id, exercise_id)
        return submissions[0] if submissions else None

    def is_exercise_completed(self, user_id: str, module_id: str, exercise_id: str) -> bool:
        progress = self.get_module_progress(user_id, module_id)
        return progress is not None and exercise_id in progress.completed_exercises

    # -------------------------------------------------------------------------
    # Certificates
    # -------------------------------------------------------------------------

    def generate_certificate(self, user_id: str, module_id: str) -> ModuleCertificate:
        """
        Issue a completion certificate.

        Raises:
            NotFoundError: If the module is unknown
            IncompleteModuleError: If the module is not completed
            PersistenceError: If the certificate cannot be saved
        """
        module = self.catalog.require_module(module_id)
        progress = self.get_module_progress(user_id, module_id)
        if progress is None or progress.status != ModuleStatus.COMPLETED:
            raise IncompleteModuleError(module_id)

        now = self.clock()
        certificate = ModuleCertificate(
            id=f"cert_{uuid4().hex}",
            user_id=user_id,
            module_id=module_id,
            certificate_number=f"WC-{now:%Y%m%d}-{uuid4().hex[:6].upper()}",
            issued_at=now,
            completion_time=progress.time_spent,
            exercises_completed=len(progress.completed_exercises),
            total_exercises=module.total_exercises,
        )
        self._write(
            """INSERT INTO certificates (
                   id, user_id, module_id, certificate_number, issued_at,
                   completion_time, exercises_completed, total_exercises)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                certificate.id,
                certificate.user_id,
                certificate.module_id,
                certificate.certificate_number,
                format_timestamp(certificate.issued_at),
                certificate.completion_time,
                certificate.exercises_completed,
                certificate.total_exercises,
            ),
        )
        logger.info(f"Issued certificate {certificate.certificate_number} for {module_id}")
        return certificate

    def get_certificates(self, user_id: str) -> list[ModuleCertificate]:
        conn = self._get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM certificates WHERE user_id = ? ORDER BY issued_at",
                (user_id,)
            ).fetchall()
        finally:
            conn.close()

        return [
            ModuleCertificate(
                id=row["id"],
                user_id=row["user_id"],
                module_id=row["module_id"],
                certificate_number=row["certificate_number"],
                issued_at=datetime.fromisoformat(row["issued_at"]),
                completion_time=row["completion_time"],
                exercises_completed=row["exercises_completed"],
                total_exercises=row["total_exercises"],
            )
            for row in rows
        ]
