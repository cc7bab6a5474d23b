"""
Plotly figures for the productivity views.
"""
import plotly.graph_objects as go
import pandas as pd

from src.config import RATE_COLUMNS, TOTAL_COLUMNS, STATUS_ABOVE
from src.ui.formatting import first_name


# =============================================================================
# CHART THEME
# =============================================================================

CHART_COLORS = {
    "primary": "#00B4D8",
    "above": "#00D4AA",
    "below": "#F77F00",
    "goal": "#023047",
    "neutral": "#6c757d",
}

CHART_TEMPLATE = "plotly_white"

DEFAULT_LAYOUT = {
    "template": CHART_TEMPLATE,
    "font": {"family": "Arial, sans-serif", "size": 12},
    "margin": {"l": 50, "r": 30, "t": 40, "b": 50},
    "hoverlabel": {"bgcolor": "white"},
}

MODE_LABELS = {
    "volume": "Vol/Hour",
    "visits": "Visits/Hour",
}


def apply_layout(fig: go.Figure, **kwargs) -> go.Figure:
    """Apply standard layout to figure."""
    layout = {**DEFAULT_LAYOUT, **kwargs}
    fig.update_layout(**layout)
    return fig


# =============================================================================
# BAR CHARTS
# =============================================================================

def rate_vs_goal_bar(aggregates: pd.DataFrame, mode: str = "volume",
                     limit: int = 20, title: str = "") -> go.Figure:
    """
    Rate per worker (first name) with a dashed goal line.

    Bars above goal use the 'above' colour.
    """
    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])
    data = aggregates.head(limit)

    colors = [
        CHART_COLORS["above"] if s == STATUS_ABOVE else CHART_COLORS["below"]
        for s in data["status"]
    ]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=[first_name(n) for n in data["worker_name"]],
        y=data[rate_col],
        name=MODE_LABELS.get(mode, rate_col),
        marker_color=colors,
        hovertext=data["worker_name"],
    ))
    fig.add_trace(go.Scatter(
        x=[first_name(n) for n in data["worker_name"]],
        y=data["goal_target"],
        name="Goal",
        mode="lines",
        line={"color": CHART_COLORS["goal"], "dash": "dash"},
    ))

    fig.update_layout(
        title=title,
        yaxis={"rangemode": "tozero", "showgrid": False},
        xaxis={"showgrid": False},
        legend={"orientation": "h", "y": -0.2},
    )

    return apply_layout(fig, height=400)


def top_workers_bar(top: pd.DataFrame, mode: str = "volume") -> go.Figure:
    """
    Horizontal ranking, best worker on top, rate printed on each bar.
    """
    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])
    data = top.iloc[::-1]

    fig = go.Figure(go.Bar(
        x=data[rate_col],
        y=[first_name(n) for n in data["worker_name"]],
        orientation="h",
        text=data[rate_col],
        textposition="outside",
        marker_color=[
            CHART_COLORS["above"] if s == STATUS_ABOVE else CHART_COLORS["below"]
            for s in data["status"]
        ],
        hovertext=data["worker_name"],
    ))
    fig.update_layout(xaxis={"title": MODE_LABELS.get(mode, rate_col), "rangemode": "tozero"})

    return apply_layout(fig, height=320, showlegend=False)


# =============================================================================
# TIME SERIES
# =============================================================================

def daily_trend_chart(trend: pd.DataFrame, mode: str = "volume") -> go.Figure:
    """
    Daily totals for the active mode, with active workers on a second axis.
    """
    total_col = TOTAL_COLUMNS.get(mode, "total_volume")

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=trend["date_started"],
        y=trend[total_col],
        name="Volumes" if mode == "volume" else "Visits",
        mode="lines+markers",
        line={"color": CHART_COLORS["primary"]},
    ))
    fig.add_trace(go.Bar(
        x=trend["date_started"],
        y=trend["workers"],
        name="Workers",
        marker_color=CHART_COLORS["neutral"],
        opacity=0.3,
        yaxis="y2",
    ))
    fig.update_layout(
        xaxis={"type": "category"},
        yaxis={"rangemode": "tozero"},
        yaxis2={"overlaying": "y", "side": "right", "showgrid": False, "rangemode": "tozero"},
        legend={"orientation": "h", "y": -0.2},
    )

    return apply_layout(fig, height=360)
