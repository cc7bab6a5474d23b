"""
Reusable UI components and blocks.
"""
import streamlit as st
import pandas as pd
from typing import Optional, Dict, Any

from src.config import RATE_COLUMNS, STATUS_ABOVE
from src.ui.formatting import fmt_count, fmt_percent, fmt_rate, band_color, status_badge
from src.exports import export_aggregates_csv, export_aggregates_excel


RATE_UNITS = {"volume": "vol", "visits": "vis"}


def kpi_strip(kpis: Dict[str, Any], mode: str = "volume"):
    """
    Render the KPI row: total, mean rate, goal with progress, above/below.
    """
    unit = RATE_UNITS.get(mode, "vol")
    total_label = "Total Volumes" if mode == "volume" else "Total Visits"
    rate_label = "Mean Volumes/Hour" if mode == "volume" else "Mean Visits/Hour"

    c1, c2, c3, c4, c5 = st.columns(5)

    with c1:
        st.metric(total_label, fmt_count(kpis["total"]))
    with c2:
        st.metric(rate_label, fmt_rate(kpis["avg_rate"], unit))
    with c3:
        st.metric("Goal", fmt_rate(kpis["goal_target"], unit))
        progress_bar(kpis["percent_of_goal"], kpis["band"])
    with c4:
        st.metric("Above Goal", fmt_count(kpis["above_goal"]))
    with c5:
        st.metric("Below Goal", fmt_count(kpis["below_goal"]))


def progress_bar(percent_of_goal: float, band: str):
    """Coloured bar capped at 100%, with the uncapped percentage as label."""
    width = max(0, min(percent_of_goal, 100))
    color = band_color(band)
    st.markdown(
        f"""
        <div style="background:#e9ecef;border-radius:6px;height:8px;">
          <div style="width:{width}%;background:{color};height:8px;border-radius:6px;"></div>
        </div>
        <small>{fmt_percent(percent_of_goal)} of goal</small>
        """,
        unsafe_allow_html=True,
    )


def top_workers_list(top: pd.DataFrame, mode: str = "volume"):
    """Numbered ranking list with status and rate."""
    if len(top) == 0:
        empty_state("No workers for the current filters.")
        return

    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])
    unit = RATE_UNITS.get(mode, "vol")

    for i, row in enumerate(top.itertuples(index=False), start=1):
        team = row.team if isinstance(row.team, str) and row.team else "General"
        marker = "🟢" if row.status == STATUS_ABOVE else "🟡"
        col1, col2 = st.columns([4, 1])
        with col1:
            st.markdown(f"{marker} **#{i} {row.worker_name}**  \n<small>{team}</small>",
                        unsafe_allow_html=True)
        with col2:
            st.markdown(f"**{fmt_rate(getattr(row, rate_col), unit)}**")


def empty_state(message: str, hint: Optional[str] = None):
    """Render an empty-state message."""
    st.info(message)
    if hint:
        st.caption(hint)


def download_button(df: pd.DataFrame,
                    columns=None,
                    filename: Optional[str] = None,
                    label: str = "Download CSV",
                    key: str = "download"):
    """
    Render download button for the visible columns of a table.
    """
    csv_bytes, filename = export_aggregates_csv(df, columns=columns, filename=filename)
    st.download_button(
        label=label,
        data=csv_bytes,
        file_name=filename,
        mime="text/csv",
        key=key
    )


def fetch_error_banner(error: Optional[str], has_previous: bool):
    """Report a failed fetch; say whether older data is still on screen."""
    if not error:
        return
    st.error(f"Could not load data: {error}")
    if has_previous:
        st.caption("Showing the last successfully loaded data.")


def status_legend():
    st.caption(f"{status_badge('ABOVE')} rate at or above goal · {status_badge('BELOW')} below goal")


def excel_download_button(df: pd.DataFrame,
                          columns=None,
                          label: str = "Download Excel",
                          key: str = "download_xlsx"):
    """Same table as download_button, as an .xlsx workbook."""
    data, filename = export_aggregates_excel(df, columns=columns)
    st.download_button(
        label=label,
        data=data,
        file_name=filename,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key=key
    )
