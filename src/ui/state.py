"""
Dashboard state management for the Streamlit app.

The dashboard state is an immutable snapshot. Every change (filter, mode,
column toggle, fetch result) produces a new DashboardState through a pure
update function; the session only stores the latest snapshot.
"""
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any, Callable, Optional, Tuple

import pandas as pd
import streamlit as st

from src.config import config, AGGREGATE_COLUMNS, DEFAULT_VISIBLE_COLUMNS, MODES, GoalPolicy
from src.data.loader import FetchResult, RowQuery
from src.metrics.productivity import FilterCriteria, compute_aggregates, sort_aggregates


# =============================================================================
# STATE KEYS
# =============================================================================

STATE_KEYS = {
    "daily": "dashboard_daily",
    "period": "dashboard_period",
}


def _empty_aggregates() -> pd.DataFrame:
    return pd.DataFrame(columns=AGGREGATE_COLUMNS)


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass(frozen=True, eq=False)
class DashboardState:
    """One immutable dashboard snapshot."""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    mode: str = "volume"
    raw_rows: Optional[pd.DataFrame] = None
    aggregates: pd.DataFrame = field(default_factory=_empty_aggregates)
    error: Optional[str] = None
    fetch_generation: int = 0
    visible_columns: Tuple[str, ...] = tuple(DEFAULT_VISIBLE_COLUMNS)
    goal: GoalPolicy = field(default_factory=lambda: config.goal_policy)

    @property
    def has_data(self) -> bool:
        return self.raw_rows is not None

    @property
    def row_query(self) -> RowQuery:
        """What the data source must return for the current criteria."""
        c = self.criteria
        if c.mode == "range":
            return RowQuery(
                date_range_start=_date_str(c.date_range_start),
                date_range_end=_date_str(c.date_range_end),
                branch_id=None if c.branch_id is None else str(c.branch_id),
            )
        return RowQuery(
            date_exact=_date_str(c.date_exact),
            branch_id=None if c.branch_id is None else str(c.branch_id),
        )


def _date_str(value) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def initial_state(mode: str = "exact", today: Optional[date] = None) -> DashboardState:
    """Defaults: today for the daily view, the last 7 days for the period view."""
    today = today or date.today()
    if mode == "range":
        criteria = FilterCriteria(
            mode="range",
            date_range_start=today - timedelta(days=7),
            date_range_end=today,
            branch_id="all",
        )
    else:
        criteria = FilterCriteria(mode="exact", date_exact=today, branch_id="all", line="all")
    return DashboardState(criteria=criteria)


# =============================================================================
# PURE UPDATES
# =============================================================================

def recompute(state: DashboardState) -> DashboardState:
    """Rebuild aggregates from the held raw rows."""
    if state.raw_rows is None:
        return replace(state, aggregates=_empty_aggregates())
    aggregates = compute_aggregates(state.raw_rows, state.criteria, state.mode, goal=state.goal)
    return replace(state, aggregates=aggregates)


def with_filter(state: DashboardState, **changes: Any) -> DashboardState:
    """New snapshot with updated criteria fields and recomputed aggregates."""
    criteria = replace(state.criteria, **changes)
    if criteria == state.criteria:
        return state
    return recompute(replace(state, criteria=criteria))


def needs_fetch(previous: DashboardState, current: DashboardState) -> bool:
    """A new fetch is required when the source query changes."""
    return previous.row_query != current.row_query or not current.has_data


def with_mode(state: DashboardState, mode: str) -> DashboardState:
    """Switch volume/visits; status and ranking depend on the mode."""
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}'")
    if mode == state.mode:
        return state
    return recompute(replace(state, mode=mode))


def with_visible_columns(state: DashboardState, columns) -> DashboardState:
    """Keep known columns, in their canonical order."""
    visible = tuple(c for c in AGGREGATE_COLUMNS if c in set(columns))
    return replace(state, visible_columns=visible)


def with_goal(state: DashboardState, goal: GoalPolicy) -> DashboardState:
    return recompute(replace(state, goal=goal))


def begin_fetch(state: DashboardState) -> Tuple[DashboardState, int]:
    """
    Start a fetch. Returns the new snapshot and its generation token; only a
    result carrying the latest token is applied.
    """
    token = state.fetch_generation + 1
    return replace(state, fetch_generation=token), token


def apply_fetch_result(state: DashboardState, token: int, result: FetchResult) -> DashboardState:
    """
    Apply a fetch result.

    - stale token (a newer fetch started): ignored, state returned unchanged
    - failure: previous rows and aggregates kept, error recorded
    - success: rows replaced wholesale, aggregates rebuilt, error cleared
    """
    if token != state.fetch_generation:
        return state
    if not result.ok:
        return replace(state, error=result.error)
    return recompute(replace(state, raw_rows=result.rows, error=None))


def ranked(state: DashboardState) -> pd.DataFrame:
    """Aggregates in the order of the active mode."""
    return sort_aggregates(state.aggregates, state.mode)


# =============================================================================
# SESSION HELPERS
# =============================================================================

def init_state(view: str = "daily"):
    """Initialize the session snapshot for a view."""
    key = STATE_KEYS[view]
    if key not in st.session_state:
        st.session_state[key] = initial_state("range" if view == "period" else "exact")


def get_dashboard(view: str = "daily") -> DashboardState:
    """Get the current snapshot."""
    init_state(view)
    return st.session_state[STATE_KEYS[view]]


def set_dashboard(state: DashboardState, view: str = "daily"):
    """Replace the stored snapshot."""
    st.session_state[STATE_KEYS[view]] = state


def reset_dashboard(view: str = "daily"):
    """Reset a view to defaults."""
    st.session_state[STATE_KEYS[view]] = initial_state("range" if view == "period" else "exact")


def refresh_dashboard(view: str, fetch: Callable[[RowQuery], FetchResult]) -> DashboardState:
    """
    Fetch rows for the stored snapshot's query and apply the result.

    The token is taken before fetching and checked against whatever snapshot
    is stored when the result arrives.
    """
    state, token = begin_fetch(get_dashboard(view))
    set_dashboard(state, view)

    result = fetch(state.row_query)

    state = apply_fetch_result(get_dashboard(view), token, result)
    set_dashboard(state, view)
    return state
