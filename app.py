"""
Picking Productivity OS

Main entry point for Streamlit app: daily productivity per worker.
"""
import logging
import pandas as pd
import streamlit as st
from pathlib import Path

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Picking Productivity OS",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from src.config import config, DEFAULT_VISIBLE_COLUMNS, RATE_COLUMNS
from src.data.loader import load_task_rows, get_data_status
from src.data.schema import ensure_column_types
from src.metrics.productivity import compute_kpis, get_filter_options, top_workers
from src.ui.state import (
    get_dashboard, set_dashboard, init_state, refresh_dashboard, needs_fetch,
    ranked, reset_dashboard, with_visible_columns,
)
from src.ui.layout import render_header, render_daily_filters, section_header
from src.ui.components import (
    kpi_strip, top_workers_list, empty_state, download_button,
    excel_download_button, fetch_error_banner, status_legend,
)
from src.ui.charts import rate_vs_goal_bar
from src.ui.tables import column_picker, metric_table

logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

VIEW = "daily"

WIDGET_KEYS = ["daily_branch", "daily_date", "daily_line", "daily_mode", "daily_columns"]


def main():
    """Main app entry point."""

    init_state(VIEW)

    status = get_data_status()
    render_header(
        "Picking Productivity",
        "Daily rate per hour by worker, against goal",
        f"{status['source']} ({status['detail']})",
    )

    if not status["ready"]:
        st.error("Data source not configured!")
        st.markdown(f"""
        ### Setup Required

        `DATA_SOURCE` is `{status['source']}`. Either:
        - set `SUPABASE_URL` and `SUPABASE_KEY` for the live store, or
        - place `task_rows.parquet` (or `.csv`) in `{config.processed_dir}` and set `DATA_SOURCE=file`, or
        - set `DATA_SOURCE=synthetic` for generated demo data.

        Run `python scripts/generate_sample_data.py` to write a sample file.
        """)
        return

    state = get_dashboard(VIEW)
    if not state.has_data and state.error is None:
        with st.spinner("Loading data..."):
            state = refresh_dashboard(VIEW, load_task_rows)

    rows = state.raw_rows if state.has_data else ensure_column_types(pd.DataFrame())
    updated = render_daily_filters(state, get_filter_options(rows))

    if st.sidebar.button("Reset filters", use_container_width=True):
        reset_dashboard(VIEW)
        # widgets would otherwise re-apply their last values
        for key in WIDGET_KEYS:
            st.session_state.pop(key, None)
        st.rerun()

    if st.sidebar.button("Reload data", use_container_width=True):
        st.cache_data.clear()
        set_dashboard(updated, VIEW)
        with st.spinner("Loading data..."):
            updated = refresh_dashboard(VIEW, load_task_rows)
    elif needs_fetch(state, updated):
        set_dashboard(updated, VIEW)
        with st.spinner("Loading data..."):
            updated = refresh_dashboard(VIEW, load_task_rows)
    else:
        set_dashboard(updated, VIEW)

    state = updated
    fetch_error_banner(state.error, state.has_data)

    aggregates = ranked(state)
    kpis = compute_kpis(aggregates, state.mode, state.goal)

    kpi_strip(kpis, state.mode)

    if len(aggregates) == 0:
        empty_state("No task rows for this date, branch and line.",
                    hint="Pick another date or widen the branch/line filters.")
        return

    st.markdown("---")

    col1, col2 = st.columns([2, 1])

    with col1:
        section_header("Rate per Hour vs Goal", "Top 20 workers")
        st.plotly_chart(rate_vs_goal_bar(aggregates, state.mode), use_container_width=True)

    with col2:
        section_header("Top 5")
        top_workers_list(top_workers(aggregates, state.mode, n=5), state.mode)

    st.markdown("---")
    section_header("Detail", "One row per worker")

    visible = column_picker(state.visible_columns or DEFAULT_VISIBLE_COLUMNS, key="daily_columns")
    state = with_visible_columns(state, visible)
    set_dashboard(state, VIEW)

    metric_table(aggregates, state.visible_columns, sort_by=RATE_COLUMNS[state.mode])
    status_legend()

    col1, col2, _ = st.columns([1, 1, 4])
    with col1:
        download_button(
            aggregates,
            columns=state.visible_columns,
            label="Export CSV",
            key="daily_export",
        )
    with col2:
        excel_download_button(
            aggregates,
            columns=state.visible_columns,
            label="Export Excel",
            key="daily_export_xlsx",
        )


if __name__ == "__main__":
    main()
