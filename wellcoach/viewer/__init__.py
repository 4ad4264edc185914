"""
Wellcoach Viewer - HTML/text rendering for progress and achievements.
"""

from .progress import (
    get_progress_css,
    get_status_indicator,
    describe_module_status,
    render_progress_bar,
    render_section_list,
)

from .achievements import (
    LOCKED_ICON,
    get_achievement_css,
    rarity_style,
    format_earned_at,
    render_achievement_card,
    render_achievement_grid,
    format_summary,
)

__all__ = [
    # Progress
    "get_progress_css",
    "get_status_indicator",
    "describe_module_status",
    "render_progress_bar",
    "render_section_list",
    # Achievements
    "LOCKED_ICON",
    "get_achievement_css",
    "rarity_style",
    "format_earned_at",
    "render_achievement_card",
    "render_achievement_grid",
    "format_summary",
]
