"""
Progress renderer - Section navigation and module progress display.

Provides:
- Status indicators for section navigation
- Module progress bar HTML
- Section list HTML with gating styles
"""

import html
from typing import Optional

from wellcoach.schemas import ModuleStatus, UserModuleProgress
from wellcoach.training.gate import SectionAccess, SectionView
from wellcoach.utils import format_duration


STATUS_INDICATORS = {
    SectionAccess.COMPLETED: "✓",
    SectionAccess.CURRENT: "→",
    SectionAccess.ACCESSIBLE: "○",
    SectionAccess.LOCKED: "◌",
}

MODULE_STATUS_LABELS = {
    ModuleStatus.NOT_STARTED: "Not started",
    ModuleStatus.IN_PROGRESS: "In progress",
    ModuleStatus.COMPLETED: "Completed",
}


def get_progress_css() -> str:
    """Get CSS styles for section navigation."""
    return """
    <style>
    .section-list {
        list-style: none;
        padding: 0;
        margin: 0.5em 0;
    }
    .section-item {
        padding: 0.4em 0.6em;
        border-radius: 6px;
        margin-bottom: 0.3em;
    }
    .section-completed { color: #388E3C; }
    .section-current {
        color: #1976D2;
        font-weight: bold;
        background: #e3f2fd;
    }
    .section-accessible { color: #333; }
    .section-locked { color: #999; }
    .module-progress-bar {
        background: #eee;
        border-radius: 8px;
        height: 10px;
        overflow: hidden;
    }
    .module-progress-fill {
        background: #1976D2;
        height: 100%;
    }
    </style>
    """


def get_status_indicator(access: SectionAccess) -> str:
    """
    Get status indicator for sidebar display.

    Returns:
        ✓ for completed
        → for current
        ○ for accessible
        ◌ for locked
    """
    return STATUS_INDICATORS[access]


def describe_module_status(progress: Optional[UserModuleProgress]) -> str:
    """One-line status such as 'In progress (33%)'."""
    if progress is None:
        return MODULE_STATUS_LABELS[ModuleStatus.NOT_STARTED]
    label = MODULE_STATUS_LABELS[progress.status]
    if progress.status == ModuleStatus.IN_PROGRESS:
        return f"{label} ({progress.progress_percentage:.0f}%)"
    if progress.status == ModuleStatus.COMPLETED and progress.time_spent:
        return f"{label} in {format_duration(progress.time_spent)}"
    return label


def render_progress_bar(percentage: float) -> str:
    width = max(0.0, min(100.0, percentage))
    return (
        '<div class="module-progress-bar">'
        f'<div class="module-progress-fill" style="width: {width:.0f}%"></div>'
        "</div>"
    )


def render_section_list(views: list[SectionView]) -> str:
    """Render sections as an HTML list with gating styles."""
    items = []
    for view in views:
        indicator = get_status_indicator(view.access)
        title = html.escape(view.section.title)
        items.append(
            f'<li class="section-item section-{view.access.value}">'
            f"{indicator} {view.section.number}. {title}</li>"
        )
    return f'<ul class="section-list">{"".join(items)}</ul>'
