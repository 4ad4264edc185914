"""
Schema validation tests for Wellcoach.

Tests the Pydantic models to ensure they validate correctly.
"""

import pytest
from datetime import datetime
from pydantic import ValidationError

from wellcoach.schemas import (
    # Training
    ExerciseType,
    ContentType,
    SectionContent,
    ModuleExercise,
    ModuleSection,
    TrainingModule,
    ModuleCatalog,
    # Progress
    ModuleStatus,
    UserModuleProgress,
    ExerciseSubmission,
    ModuleCertificate,
    # Achievement
    AchievementCategory,
    Rarity,
    RARITY_RANK,
)


def make_section(number: int, exercises: int = 1) -> ModuleSection:
    return ModuleSection(
        id=f"s{number}",
        number=number,
        title=f"Section {number}",
        exercises=[
            ModuleExercise(id=f"s{number}_e{i}", type=ExerciseType.REFLECTION, title="Reflect")
            for i in range(exercises)
        ],
    )


class TestTrainingSchemas:
    """Test catalog reference data."""

    def test_section_content_defaults(self):
        block = SectionContent(id="c1", content="Breathe in.")
        assert block.type == ContentType.TEXT
        assert block.order == 0
        assert block.title is None

    def test_exercise_type_from_string(self):
        exercise = ModuleExercise(id="e1", type="breathing_exercise", title="Box breathing")
        assert exercise.type == ExerciseType.BREATHING_EXERCISE
        assert exercise.config == {}

    def test_unknown_exercise_type_rejected(self):
        with pytest.raises(ValidationError):
            ModuleExercise(id="e1", type="juggling", title="Juggle")

    def test_section_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            ModuleSection(id="s0", number=0, title="Zero")

    def test_get_exercise(self):
        section = make_section(1, exercises=2)
        assert section.get_exercise("s1_e1").id == "s1_e1"
        assert section.get_exercise("missing") is None

    def test_module_requires_sections(self):
        with pytest.raises(ValidationError):
            TrainingModule(id="m1", number=1, title="Empty", sections=[])

    def test_module_rejects_duplicate_sections(self):
        with pytest.raises(ValidationError):
            TrainingModule(id="m1", number=1, title="Dup", sections=[make_section(1), make_section(1)])

    def test_module_helpers(self):
        module = TrainingModule(
            id="m1",
            number=1,
            title="Module",
            sections=[make_section(1, exercises=2), make_section(2), make_section(3, exercises=0)],
        )
        assert module.total_exercises == 3
        assert module.section_ids == ["s1", "s2", "s3"]
        assert module.section_index("s2") == 1
        assert module.section_index("nope") == -1
        assert module.get_section("s3").number == 3
        assert module.get_section("nope") is None

    def test_total_exercises_serialized(self):
        module = TrainingModule(id="m1", number=1, title="Module", sections=[make_section(1)])
        assert module.model_dump()["total_exercises"] == 1


class TestModuleCatalog:
    """Test catalog-level validation."""

    def module(self, module_id: str, number: int, next_module_id=None) -> TrainingModule:
        return TrainingModule(
            id=module_id,
            number=number,
            title=module_id,
            sections=[make_section(1)],
            next_module_id=next_module_id,
        )

    def test_valid_catalog(self):
        catalog = ModuleCatalog(modules=[self.module("a", 1, next_module_id="b"), self.module("b", 2)])
        assert len(catalog.modules) == 2

    def test_duplicate_module_ids(self):
        with pytest.raises(ValidationError):
            ModuleCatalog(modules=[self.module("a", 1), self.module("a", 2)])

    def test_unknown_next_module(self):
        with pytest.raises(ValidationError, match="unknown next module"):
            ModuleCatalog(modules=[self.module("a", 1, next_module_id="z")])

    def test_empty_catalog(self):
        with pytest.raises(ValidationError):
            ModuleCatalog(modules=[])


class TestProgressSchemas:
    """Test learner progress models."""

    def test_progress_defaults(self):
        progress = UserModuleProgress(user_id="u1", module_id="m1")
        assert progress.status == ModuleStatus.NOT_STARTED
        assert progress.completed_sections == []
        assert progress.progress_percentage == 0.0
        assert not progress.is_completed

    def test_completed_lists_deduplicated(self):
        progress = UserModuleProgress(
            user_id="u1",
            module_id="m1",
            completed_sections=["s1", "s2", "s1"],
            completed_exercises=["e1", "e1"],
        )
        assert progress.completed_sections == ["s1", "s2"]
        assert progress.completed_exercises == ["e1"]

    def test_percentage_bounds(self):
        with pytest.raises(ValidationError):
            UserModuleProgress(user_id="u1", module_id="m1", progress_percentage=101)
        with pytest.raises(ValidationError):
            UserModuleProgress(user_id="u1", module_id="m1", progress_percentage=-1)

    def test_status_from_string(self):
        progress = UserModuleProgress(user_id="u1", module_id="m1", status="completed")
        assert progress.is_completed

    def test_submission_allows_missing_timestamp(self):
        submission = ExerciseSubmission(id="x", user_id="u1", module_id="m1", exercise_id="e1")
        assert submission.submitted_at is None
        assert submission.score is None
        assert submission.responses == {}

    def test_submission_parses_iso_timestamp(self):
        submission = ExerciseSubmission(
            id="x",
            user_id="u1",
            module_id="m1",
            exercise_id="e1",
            submitted_at="2024-03-09T07:30:00",
            score=95,
        )
        assert submission.submitted_at == datetime(2024, 3, 9, 7, 30)

    def test_certificate(self):
        cert = ModuleCertificate(
            id="c1",
            user_id="u1",
            module_id="m1",
            certificate_number="WC-20240309-ABC123",
            issued_at=datetime(2024, 3, 9),
        )
        assert cert.exercises_completed == 0


class TestAchievementSchemas:

    def test_rarity_rank_order(self):
        ranks = [RARITY_RANK[r] for r in (Rarity.COMMON, Rarity.RARE, Rarity.EPIC, Rarity.LEGENDARY)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4

    def test_categories(self):
        assert {c.value for c in AchievementCategory} == {"module", "exercise", "streak", "score", "special"}
