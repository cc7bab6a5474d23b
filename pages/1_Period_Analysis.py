"""
Period Analysis Page

Productivity over a date range: daily evolution, ranking and task detail.
"""
import streamlit as st
import pandas as pd
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import RATE_COLUMNS
from src.data.loader import load_task_rows, get_data_status
from src.data.schema import ensure_column_types
from src.metrics.productivity import (
    filter_rows, compute_row_metrics, compute_daily_trend, compute_kpis,
    get_filter_options, top_workers,
)
from src.ui.state import (
    init_state, get_dashboard, set_dashboard, refresh_dashboard, needs_fetch, ranked,
)
from src.ui.layout import render_header, render_period_filters, section_header
from src.ui.components import kpi_strip, empty_state, download_button, fetch_error_banner
from src.ui.charts import daily_trend_chart, top_workers_bar
from src.ui.tables import metric_table


st.set_page_config(page_title="Period Analysis", page_icon="📅", layout="wide")

VIEW = "period"

DETAIL_COLUMNS = [
    "worker_name", "date_started", "line", "volume_count", "visit_count",
    "time_start", "time_end", "hours_worked", "volume_per_hour", "visits_per_hour",
]

init_state(VIEW)


def main():
    status = get_data_status()
    render_header(
        "Period Analysis",
        "Daily evolution and ranking over a date range",
        status["source"],
    )

    if not status["ready"]:
        st.error("Data source not configured. See the main page for setup.")
        return

    state = get_dashboard(VIEW)
    if not state.has_data and state.error is None:
        with st.spinner("Loading data..."):
            state = refresh_dashboard(VIEW, load_task_rows)

    rows = state.raw_rows if state.has_data else ensure_column_types(pd.DataFrame())
    updated = render_period_filters(state, get_filter_options(rows))

    set_dashboard(updated, VIEW)
    if needs_fetch(state, updated):
        with st.spinner("Loading data..."):
            updated = refresh_dashboard(VIEW, load_task_rows)

    state = updated
    fetch_error_banner(state.error, state.has_data)

    filtered = filter_rows(state.raw_rows, state.criteria) if state.has_data else rows
    aggregates = ranked(state)

    kpi_strip(compute_kpis(aggregates, state.mode, state.goal), state.mode)

    if len(filtered) == 0:
        empty_state("No task rows in this period.", hint="Widen the date range or clear the worker search.")
        return

    st.markdown("---")

    col1, col2 = st.columns([2, 1])

    with col1:
        section_header("Daily Evolution")
        trend = compute_daily_trend(filtered)
        st.plotly_chart(daily_trend_chart(trend, state.mode), use_container_width=True)

    with col2:
        section_header("Top 5 Workers")
        top = top_workers(aggregates, state.mode, n=5)
        st.plotly_chart(top_workers_bar(top, state.mode), use_container_width=True)

    st.markdown("---")
    section_header("Task Detail", "One row per task, rates to 2 decimals")

    detail = compute_row_metrics(filtered)
    metric_table(detail, DETAIL_COLUMNS, sort_by=RATE_COLUMNS[state.mode])

    download_button(detail, columns=DETAIL_COLUMNS, label="Export tasks CSV", key="period_export")


main()
