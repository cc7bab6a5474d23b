"""
Standard table components.
"""
import streamlit as st
import pandas as pd
from typing import List, Optional, Sequence

from src.config import AGGREGATE_COLUMNS, COLUMN_LABELS
from src.ui.formatting import format_metric_df, style_metric_df


def column_picker(current: Sequence[str],
                  options: Optional[List[str]] = None,
                  key: str = "column_picker") -> List[str]:
    """
    Multiselect of visible columns. Returns the selection in option order.
    """
    if options is None:
        options = AGGREGATE_COLUMNS

    selected = st.multiselect(
        "Columns",
        options=options,
        default=[c for c in current if c in options],
        format_func=lambda c: COLUMN_LABELS.get(c, c),
        key=key,
    )
    return [c for c in options if c in selected]


def metric_table(df: pd.DataFrame,
                 columns: Sequence[str],
                 sort_by: Optional[str] = None,
                 ascending: bool = False):
    """
    Render a read-only table restricted to `columns`, labelled for display.
    """
    if len(df) == 0:
        st.info("No data to display.")
        return

    display_df = df[[c for c in columns if c in df.columns]].copy()

    if sort_by and sort_by in display_df.columns:
        display_df = display_df.sort_values(sort_by, ascending=ascending, kind="mergesort")

    display_df = format_metric_df(display_df)
    display_df = display_df.rename(columns={c: COLUMN_LABELS.get(c, c) for c in display_df.columns})
    styled = style_metric_df(display_df, status_col=COLUMN_LABELS["status"])

    st.dataframe(
        styled,
        use_container_width=True,
        hide_index=True,
    )
