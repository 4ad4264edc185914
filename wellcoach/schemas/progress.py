"""
Progress tracking schemas for Wellcoach.

Defines Pydantic models for learner state:
- Module status and per-module progress records
- Exercise submissions (append-only ledger entries)
- Module completion certificates
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional
from datetime import datetime
from enum import Enum


class ModuleStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class UserModuleProgress(BaseModel):
    user_id: str
    module_id: str
    status: ModuleStatus = ModuleStatus.NOT_STARTED
    completed_sections: list[str] = []
    completed_exercises: list[str] = []
    current_section_id: Optional[str] = None
    progress_percentage: float = Field(0.0, ge=0, le=100)
    time_spent: int = 0  # seconds
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None

    @field_validator("completed_sections", "completed_exercises")
    @classmethod
    def dedupe(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def is_completed(self) -> bool:
        return self.status == ModuleStatus.COMPLETED


class ExerciseSubmission(BaseModel):
    """
    One submission of an exercise. A learner may submit the same exercise
    many times; every record counts toward achievements.

    score and submitted_at are loosely typed so that a damaged ledger row
    still loads; range checks happen where the values are used.
    """
    id: str
    user_id: str
    module_id: str
    exercise_id: str
    section_id: str = ""
    responses: dict[str, Any] = {}
    score: Optional[int] = None  # expected 0-100
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    time_spent: int = 0  # seconds


class ModuleCertificate(BaseModel):
    id: str
    user_id: str
    module_id: str
    certificate_number: str
    issued_at: datetime
    completion_time: int = 0  # seconds
    exercises_completed: int = 0
    total_exercises: int = 0
