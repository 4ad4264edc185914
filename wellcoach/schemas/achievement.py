"""
Achievement classification schemas for Wellcoach.
"""

from enum import Enum


class AchievementCategory(str, Enum):
    MODULE = "module"
    EXERCISE = "exercise"
    STREAK = "streak"
    SCORE = "score"
    SPECIAL = "special"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# Higher ranks sort first in achievement panels
RARITY_RANK = {
    Rarity.COMMON: 1,
    Rarity.RARE: 2,
    Rarity.EPIC: 3,
    Rarity.LEGENDARY: 4,
}
