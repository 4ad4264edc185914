"""
Wellcoach Schemas - Pydantic models for the wellness training platform.

This module exports all schema classes for:
- Training: modules, sections, exercises, catalog
- Progress: module progress, exercise submissions, certificates
- Achievement: categories and rarities
"""

# Training schemas
from .training import (
    ExerciseType,
    ContentType,
    SectionContent,
    ModuleExercise,
    ModuleSection,
    TrainingModule,
    ModuleCatalog,
)

# Progress schemas
from .progress import (
    ModuleStatus,
    UserModuleProgress,
    ExerciseSubmission,
    ModuleCertificate,
)

# Achievement schemas
from .achievement import (
    AchievementCategory,
    Rarity,
    RARITY_RANK,
)

__all__ = [
    # Training
    'ExerciseType',
    'ContentType',
    'SectionContent',
    'ModuleExercise',
    'ModuleSection',
    'TrainingModule',
    'ModuleCatalog',
    # Progress
    'ModuleStatus',
    'UserModuleProgress',
    'ExerciseSubmission',
    'ModuleCertificate',
    # Achievement
    'AchievementCategory',
    'Rarity',
    'RARITY_RANK',
]
