"""
Layout components: header, sidebar filters, section headers.

Sidebar renderers read widget values and return a new DashboardState; they
never mutate the snapshot they are given.
"""
import streamlit as st
from datetime import date
from typing import Dict, List

from src.config import MODES
from src.ui.state import DashboardState, with_filter, with_mode


MODE_OPTIONS = {
    "volume": "Volumes",
    "visits": "Visits",
}


# =============================================================================
# HEADER
# =============================================================================

def render_header(title: str, subtitle: str, source_label: str):
    """Render page header with the active data source."""
    col1, col2 = st.columns([3, 1])

    with col1:
        st.title(title)
        st.caption(subtitle)

    with col2:
        st.caption(f"Data source: `{source_label}`")


def section_header(title: str, subtitle: str = ""):
    """Render a section header."""
    st.markdown(f"### {title}")
    if subtitle:
        st.caption(subtitle)


# =============================================================================
# SIDEBAR FILTERS
# =============================================================================

def _with_all(values: List[str]) -> List[str]:
    return ["all"] + [v for v in values if v != "all"]


def _index_of(options: List[str], value) -> int:
    value = "all" if value is None else str(value)
    return options.index(value) if value in options else 0


def render_mode_toggle(state: DashboardState, key: str) -> DashboardState:
    """Volume / visits toggle."""
    mode = st.sidebar.radio(
        "Metric",
        options=list(MODES),
        format_func=lambda m: MODE_OPTIONS[m],
        index=list(MODES).index(state.mode),
        horizontal=True,
        key=key,
    )
    return with_mode(state, mode)


def render_daily_filters(state: DashboardState, options: Dict[str, List[str]]) -> DashboardState:
    """Branch, date and line for the daily (exact-date) view."""
    st.sidebar.header("Filters")
    criteria = state.criteria

    branches = _with_all(options.get("branches", []))
    branch = st.sidebar.selectbox(
        "Branch",
        options=branches,
        index=_index_of(branches, criteria.branch_id),
        format_func=lambda b: "All branches" if b == "all" else f"Branch {b}",
        key="daily_branch",
    )

    day = st.sidebar.date_input(
        "Date",
        value=criteria.date_exact or date.today(),
        key="daily_date",
    )

    lines = _with_all(options.get("lines", []))
    line = st.sidebar.selectbox(
        "Line",
        options=lines,
        index=_index_of(lines, criteria.line),
        format_func=lambda l: "All lines" if l == "all" else l,
        key="daily_line",
    )

    state = with_filter(state, branch_id=branch, date_exact=day, line=line)

    st.sidebar.divider()
    return render_mode_toggle(state, key="daily_mode")


def render_period_filters(state: DashboardState, options: Dict[str, List[str]]) -> DashboardState:
    """Date range, branch and worker search for the period view."""
    st.sidebar.header("Filters")
    criteria = state.criteria

    start = st.sidebar.date_input("Start date", value=criteria.date_range_start, key="period_start")
    end = st.sidebar.date_input("End date", value=criteria.date_range_end, key="period_end")
    if start and end and start > end:
        st.sidebar.warning("Start date is after end date.")

    branches = _with_all(options.get("branches", []))
    branch = st.sidebar.selectbox(
        "Branch",
        options=branches,
        index=_index_of(branches, criteria.branch_id),
        format_func=lambda b: "All branches" if b == "all" else f"Branch {b}",
        key="period_branch",
    )

    worker = st.sidebar.text_input(
        "Worker",
        value=criteria.worker_name_contains or "",
        placeholder="Search by name...",
        key="period_worker",
    )

    state = with_filter(
        state,
        date_range_start=start,
        date_range_end=end,
        branch_id=branch,
        worker_name_contains=worker.strip() or None,
    )

    st.sidebar.divider()
    return render_mode_toggle(state, key="period_mode")
