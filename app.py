"""
Wellcoach - Guided Wellness Training

Streamlit application for working through wellness modules section by
section, submitting exercises and collecting achievements.

Usage:
    streamlit run app.py
"""

import json
from datetime import datetime

import streamlit as st

from wellcoach.config import load_settings
from wellcoach.errors import NotFoundError, PersistenceError
from wellcoach.schemas import AchievementCategory
from wellcoach.training import (
    CatalogLoader,
    ProgressGate,
    SectionAccess,
    SubmissionLedger,
    build_analytics,
    evaluate,
    rank_achievements,
    summarize,
)
from wellcoach.utils import format_duration
from wellcoach.viewer import (
    describe_module_status,
    format_summary,
    get_achievement_css,
    get_progress_css,
    get_status_indicator,
    render_achievement_grid,
    render_progress_bar,
)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

st.set_page_config(
    page_title="Wellcoach",
    page_icon="🌿",
    layout="wide",
    initial_sidebar_state="expanded",
)


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "settings" not in st.session_state:
        st.session_state.settings = load_settings()

    settings = st.session_state.settings

    if "catalog" not in st.session_state:
        try:
            st.session_state.catalog = CatalogLoader.from_file(settings.catalog_path)
        except FileNotFoundError:
            st.session_state.catalog = None

    if "ledger" not in st.session_state and st.session_state.catalog:
        st.session_state.ledger = SubmissionLedger(st.session_state.catalog, settings.progress_db)

    if "current_module_id" not in st.session_state:
        catalog = st.session_state.catalog
        st.session_state.current_module_id = catalog.get_module_ids()[0] if catalog else None

    if "gate" not in st.session_state:
        st.session_state.gate = None

    if "view_mode" not in st.session_state:
        st.session_state.view_mode = "modules"  # modules, achievements, analytics


def get_gate() -> ProgressGate:
    """Gate for the selected module, opened (and started) on first use."""
    gate = st.session_state.gate
    module_id = st.session_state.current_module_id
    if gate is None or gate.module_id != module_id:
        gate = ProgressGate(
            st.session_state.catalog,
            st.session_state.ledger,
            st.session_state.settings.user_id,
            module_id,
        )
        st.session_state.gate = gate
    return gate


# -----------------------------------------------------------------------------
# Sidebar: Module List
# -----------------------------------------------------------------------------

def render_sidebar():
    """Render the sidebar with module list and view selector."""
    st.sidebar.title("🌿 Wellcoach")

    if not st.session_state.catalog:
        st.sidebar.error("Module catalog not found. Check WELLCOACH_CATALOG.")
        return

    view_mode = st.sidebar.radio(
        "Select view",
        ["Modules", "Achievements", "Analytics"],
        index=["modules", "achievements", "analytics"].index(st.session_state.view_mode),
        horizontal=True,
        label_visibility="collapsed",
    )
    st.session_state.view_mode = view_mode.lower()

    st.sidebar.divider()
    st.sidebar.subheader("Modules")

    ledger = st.session_state.ledger
    user_id = st.session_state.settings.user_id
    for module in st.session_state.catalog.get_modules():
        progress = ledger.get_module_progress(user_id, module.id)
        label = f"{module.number}. {module.title}"
        if st.sidebar.button(
            label[:40] + "..." if len(label) > 40 else label,
            key=f"module_{module.id}",
            help=describe_module_status(progress),
            use_container_width=True,
        ):
            select_module(module.id)


def select_module(module_id: str):
    st.session_state.current_module_id = module_id
    st.session_state.view_mode = "modules"
    st.rerun()


# -----------------------------------------------------------------------------
# Main Content: Module View
# -----------------------------------------------------------------------------

def render_module_view():
    """Render the selected module with gated sections."""
    gate = get_gate()
    module = gate.module

    st.title(f"{module.number}. {module.title}")
    st.caption(module.description)

    st.markdown(get_progress_css(), unsafe_allow_html=True)
    st.markdown(render_progress_bar(gate.progress_percentage), unsafe_allow_html=True)
    st.markdown(f"**{describe_module_status(gate.local)}**")

    if gate.has_pending_changes:
        st.warning("Some progress has not been saved yet.")
        if st.button("Reload saved progress"):
            report = gate.reload()
            if report.diverged:
                st.info(f"Reverted unsaved sections: {', '.join(report.unconfirmed_sections)}")
            st.rerun()

    render_section_tabs(gate)
    st.divider()
    render_current_section(gate)


def render_section_tabs(gate: ProgressGate):
    columns = st.columns(len(gate.module.sections))
    for column, view in zip(columns, gate.sections()):
        with column:
            label = f"{get_status_indicator(view.access)} {view.section.number}. {view.section.title}"
            if st.button(
                label,
                key=f"section_{view.section.id}",
                disabled=view.access == SectionAccess.LOCKED,
                use_container_width=True,
            ):
                gate.navigate_to(view.index)
                st.rerun()


def render_current_section(gate: ProgressGate):
    section = gate.current_section
    st.subheader(section.title)

    for block in sorted(section.content, key=lambda c: c.order):
        if block.title and block.title != section.title:
            st.markdown(f"#### {block.title}")
        st.markdown(block.content)

    for exercise in section.exercises:
        render_exercise(gate, exercise)

    if section.id in gate.local.completed_sections:
        st.success("Section completed")
        return

    if st.button("Mark section as complete", type="primary", use_container_width=True):
        outcome = gate.complete_section(section.id)
        if not outcome.persisted:
            st.warning(f"Completed locally but not saved: {outcome.error}")
        if outcome.module_completed:
            st.balloons()
            if outcome.next_module_id:
                st.session_state.current_module_id = outcome.next_module_id
        st.rerun()


def render_exercise(gate: ProgressGate, exercise):
    ledger = st.session_state.ledger
    user_id = st.session_state.settings.user_id

    with st.expander(f"✍️ {exercise.title}", expanded=True):
        if exercise.instructions:
            st.markdown(exercise.instructions)

        latest = ledger.get_latest_submission(user_id, exercise.id, module_id=gate.module_id)
        previous = latest.responses.get("answer", "") if latest else ""
        started = st.session_state.setdefault(f"started_{exercise.id}", datetime.now())
        answer = st.text_area("Your response", value=previous, key=f"answer_{exercise.id}")

        if st.button("Submit", key=f"submit_{exercise.id}"):
            try:
                submission = ledger.submit_exercise(
                    user_id,
                    gate.module_id,
                    exercise.id,
                    {"answer": answer, "time_spent": int((datetime.now() - started).total_seconds())},
                )
            except NotFoundError as e:
                st.error(str(e))
                return
            except PersistenceError as e:
                st.warning(f"Your response could not be saved: {e}")
                return
            st.success(f"Score: {submission.score}")
            st.info(submission.feedback)

        if latest:
            st.caption(f"Last submitted {latest.submitted_at:%Y-%m-%d %H:%M}" if latest.submitted_at else "Last submission")
            st.code(json.dumps(latest.responses, indent=2, ensure_ascii=False))


# -----------------------------------------------------------------------------
# Achievements View
# -----------------------------------------------------------------------------

def render_achievements_view():
    st.title("Achievements")

    ledger = st.session_state.ledger
    settings = st.session_state.settings

    results = evaluate(
        ledger.get_completed_modules(settings.user_id),
        ledger.get_exercise_submissions(settings.user_id),
        tz=settings.tzinfo,
    )
    summary = summarize(results)
    st.markdown(f"**{format_summary(summary)}**")
    st.progress(summary.percent / 100)

    col1, col2 = st.columns([2, 1])
    with col1:
        category = st.selectbox(
            "Category",
            ["all"] + [c.value for c in AchievementCategory],
            format_func=str.title,
        )
    with col2:
        earned_only = st.checkbox("Earned only")

    ranked = rank_achievements(results, category=category, earned_only=earned_only)
    if not ranked:
        st.info("No achievements to show yet.")
        return

    st.markdown(get_achievement_css(), unsafe_allow_html=True)
    st.markdown(render_achievement_grid(ranked), unsafe_allow_html=True)


# -----------------------------------------------------------------------------
# Analytics View
# -----------------------------------------------------------------------------

def render_analytics_view():
    st.title("Exercise Analytics")

    ledger = st.session_state.ledger
    settings = st.session_state.settings
    tz = settings.tzinfo

    stats = build_analytics(
        st.session_state.catalog.get_modules(),
        ledger.get_exercise_submissions(settings.user_id),
        today=datetime.now(tz).date(),
        tz=tz,
    )

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Submissions", stats.total_submissions)
    col2.metric("Average score", stats.average_score)
    col3.metric("Time spent", format_duration(stats.total_time_spent))
    col4.metric("Current streak", f"{stats.current_streak} days")

    st.markdown(f"**Exercise completion:** {stats.completion_rate}% (longest streak {stats.longest_streak} days)")

    for module_id, module_stats in stats.modules.items():
        module = st.session_state.catalog.get_module(module_id)
        total = module_stats.total_exercises or 1
        st.markdown(f"{module.title}: {module_stats.completed_exercises}/{module_stats.total_exercises}")
        st.progress(module_stats.completed_exercises / total)

    if stats.recent_activity:
        st.subheader("Recent activity")
        for submission in stats.recent_activity:
            st.markdown(
                f"- {submission.submitted_at:%Y-%m-%d %H:%M} · {submission.exercise_id} · score {submission.score}"
            )


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()

    if not st.session_state.catalog:
        st.error("Module catalog not found.")
        return

    if st.session_state.view_mode == "modules":
        render_module_view()
    elif st.session_state.view_mode == "achievements":
        render_achievements_view()
    elif st.session_state.view_mode == "analytics":
        render_analytics_view()


if __name__ == "__main__":
    main()
