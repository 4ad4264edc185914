"""
Achievement renderer - Badge cards and summary display.
"""

import html
from datetime import datetime
from typing import Optional

from wellcoach.schemas import Rarity
from wellcoach.training.achievements import AchievementResult, AchievementSummary


LOCKED_ICON = "🔒"

RARITY_COLORS = {
    Rarity.COMMON: ("#9e9e9e", "#fafafa"),
    Rarity.RARE: ("#64b5f6", "#e3f2fd"),
    Rarity.EPIC: ("#ba68c8", "#f3e5f5"),
    Rarity.LEGENDARY: ("#ffd54f", "#fffde7"),
}


def get_achievement_css() -> str:
    """Get CSS styles for achievement cards."""
    return """
    <style>
    .badge-grid {
        display: grid;
        grid-template-columns: repeat(auto-fill, minmax(180px, 1fr));
        gap: 1em;
    }
    .badge-card {
        border: 2px solid #ddd;
        border-radius: 10px;
        padding: 1em;
    }
    .badge-locked {
        background: #f5f5f5;
        opacity: 0.6;
    }
    .badge-icon {
        font-size: 2em;
    }
    .badge-title {
        font-weight: 600;
        margin: 0.3em 0;
    }
    .badge-meta {
        font-size: 0.8em;
        color: #666;
        text-transform: capitalize;
    }
    </style>
    """


def rarity_style(rarity: Rarity) -> str:
    """Inline border/background style for an earned badge."""
    border, background = RARITY_COLORS[rarity]
    return f"border-color: {border}; background: {background};"


def format_earned_at(earned_at: Optional[datetime]) -> str:
    return f"Earned {earned_at:%b %d, %Y}" if earned_at else ""


def render_achievement_card(result: AchievementResult) -> str:
    """Render one badge. Unearned badges show a lock instead of their icon."""
    definition = result.definition
    if result.earned:
        classes = "badge-card"
        style = rarity_style(definition.rarity)
        icon = definition.icon
    else:
        classes = "badge-card badge-locked"
        style = ""
        icon = LOCKED_ICON

    earned = format_earned_at(result.earned_at) if result.earned else ""
    return (
        f'<div class="{classes}" style="{style}">'
        f'<div class="badge-icon">{icon}</div>'
        f'<div class="badge-title">{html.escape(definition.title)}</div>'
        f"<div>{html.escape(definition.description)}</div>"
        f'<div class="badge-meta">{definition.rarity.value} · {definition.category.value}'
        f"{' · ' + earned if earned else ''}</div>"
        "</div>"
    )


def render_achievement_grid(results: list[AchievementResult]) -> str:
    cards = "".join(render_achievement_card(result) for result in results)
    return f'<div class="badge-grid">{cards}</div>'


def format_summary(summary: AchievementSummary) -> str:
    return f"{summary.earned}/{summary.total} achievements earned ({summary.percent:.0f}%)"
