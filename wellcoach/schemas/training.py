"""
Training catalog schemas for Wellcoach.

Defines Pydantic models for the immutable reference data:
- Modules, ordered sections and section content blocks
- Exercises with opaque per-type configuration
- The module catalog with explicit module succession
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator


class ExerciseType(str, Enum):
    REFLECTION_JOURNAL = "reflection_journal"
    WELLNESS_WHEEL = "wellness_wheel"
    REFLECTION = "reflection"
    MOVEMENT_TRACKER = "movement_tracker"
    MOVEMENT_CHALLENGE = "movement_challenge"
    SLEEP_AUDIT = "sleep_audit"
    MINDFUL_EATING_TIMER = "mindful_eating_timer"
    MEAL_PLANNING = "meal_planning"
    MOOD_TRACKING = "mood_tracking"
    MINDSET_REFRAMING = "mindset_reframing"
    RESILIENCE_MAPPING = "resilience_mapping"
    GUIDED_MEDITATION = "guided_meditation"
    BREATHING_EXERCISE = "breathing_exercise"
    STRESS_INVENTORY = "stress_inventory"
    HABIT_LOOP_ANALYZER = "habit_loop_analyzer"
    HABIT_TRACKER = "habit_tracker"
    IF_THEN_PLANNING = "if_then_planning"
    WEEKLY_REFLECTION = "weekly_reflection"
    SELF_COACHING_CHECKLIST = "self_coaching_checklist"
    PROGRESS_CELEBRATION = "progress_celebration"
    WELLNESS_VISION_BUILDER = "wellness_vision_builder"
    SMART_GOAL_SETTING = "smart_goal_setting"
    WELLNESS_PLAN_GENERATOR = "wellness_plan_generator"
    QUIZ_ASSESSMENT = "quiz_assessment"


class ContentType(str, Enum):
    TEXT = "text"
    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    INTERACTIVE = "interactive"


class SectionContent(BaseModel):
    id: str
    type: ContentType = ContentType.TEXT
    title: Optional[str] = None
    content: str
    order: int = 0


class ModuleExercise(BaseModel):
    """An interactive exercise. The config is only meaningful to its form."""
    id: str
    type: ExerciseType
    title: str
    instructions: str = ""
    estimated_duration: int = Field(0, ge=0)  # minutes
    config: dict[str, Any] = {}


class ModuleSection(BaseModel):
    id: str
    number: int = Field(..., ge=1)
    title: str
    content: list[SectionContent] = []
    exercises: list[ModuleExercise] = []

    def get_exercise(self, exercise_id: str) -> Optional[ModuleExercise]:
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        return None


class TrainingModule(BaseModel):
    """
    A training module. Section order defines the gating order.

    next_module_id names the module that follows this one; when unset the
    catalog order decides.
    """
    id: str
    number: int = Field(..., ge=1)
    title: str
    description: str = ""
    estimated_duration: int = Field(0, ge=0)  # minutes
    sections: list[ModuleSection] = Field(..., min_length=1)
    next_module_id: Optional[str] = None

    @field_validator("sections")
    @classmethod
    def sections_unique(cls, v: list[ModuleSection]) -> list[ModuleSection]:
        ids = [section.id for section in v]
        if len(ids) != len(set(ids)):
            raise ValueError("section ids must be unique within a module")
        return v

    @computed_field
    @property
    def total_exercises(self) -> int:
        return sum(len(section.exercises) for section in self.sections)

    @property
    def section_ids(self) -> list[str]:
        return [section.id for section in self.sections]

    def section_index(self, section_id: str) -> int:
        """Position of a section in gating order, or -1 if unknown."""
        for idx, section in enumerate(self.sections):
            if section.id == section_id:
                return idx
        return -1

    def get_section(self, section_id: str) -> Optional[ModuleSection]:
        idx = self.section_index(section_id)
        return self.sections[idx] if idx >= 0 else None


class ModuleCatalog(BaseModel):
    """All modules, in the order learners take them."""
    modules: list[TrainingModule] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_references(self) -> "ModuleCatalog":
        ids = [module.id for module in self.modules]
        if len(ids) != len(set(ids)):
            raise ValueError("module ids must be unique")
        known = set(ids)
        for module in self.modules:
            if module.next_module_id is not None and module.next_module_id not in known:
                raise ValueError(
                    f"module {module.id} names unknown next module {module.next_module_id}"
                )
        return self
