"""
Consistent number and display formatting.
"""
import pandas as pd
from typing import Union, Any
from pandas.io.formats.style import Styler

from src.config import STATUS_ABOVE



# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def fmt_hours(value: Union[float, int, None]) -> str:
    """Format hours: 7.50"""
    if value is None or pd.isna(value):
        return "—"
    return f"{value:,.2f}"


def fmt_rate(value: Union[float, int, None], unit: str = "vol") -> str:
    """Format rate per hour: 123 vol/h"""
    if value is None or pd.isna(value):
        return "—"
    return f"{value:,.0f} {unit}/h"


def fmt_percent(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format percentage: 87%"""
    if value is None or pd.isna(value):
        return "—"
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if value is None or pd.isna(value):
        return "—"
    return f"{int(value):,}"


def first_name(name: Any) -> str:
    """Chart label: first token of the worker name."""
    if name is None or pd.isna(name):
        return "—"
    parts = str(name).split()
    return parts[0] if parts else str(name)


# =============================================================================
# STATUS
# =============================================================================

BAND_COLORS = {
    "good": "#28a745",
    "warning": "#ffc107",
    "bad": "#dc3545",
    "neutral": "#6c757d",
}


def status_badge(status: str) -> str:
    """ABOVE -> green dot, BELOW -> amber dot."""
    if status == STATUS_ABOVE:
        return f"🟢 {status}"
    return f"🟠 {status}"


def band_color(band: str) -> str:
    return BAND_COLORS.get(band, BAND_COLORS["neutral"])


# =============================================================================
# DATAFRAME FORMATTERS
# =============================================================================

def format_metric_df(df: pd.DataFrame) -> pd.DataFrame:
    """
    Format an aggregate/row dataframe for display.
    """
    df = df.copy()

    hours_cols = ["hours_worked"]
    count_cols = ["total_volume", "total_visits", "volume_count", "visit_count"]
    percent_cols = ["percent_of_goal"]

    for col in df.columns:
        if col in hours_cols:
            df[col] = df[col].apply(fmt_hours)
        elif col in count_cols:
            df[col] = df[col].apply(fmt_count)
        elif col in percent_cols:
            df[col] = df[col].apply(fmt_percent)
        elif col == "status":
            df[col] = df[col].apply(status_badge)

    return df


def style_metric_df(df: pd.DataFrame, status_col: str = "status") -> Styler:
    """
    Colour the status column: green at or above goal, red below.
    """
    def color_status(val):
        if pd.isna(val):
            return ""
        return "color: #28a745" if STATUS_ABOVE in str(val) else "color: #dc3545"

    styled = df.style
    if status_col in df.columns:
        styled = styled.map(color_status, subset=[status_col])

    return styled
