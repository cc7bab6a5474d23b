"""
Picking productivity metrics pack.

Single source of truth for: row filtering, per-worker aggregation,
rate-per-hour, goal classification, KPI summary and ranking.

Pipeline: raw rows -> filter -> group/sum -> finalize (hours, rates, status)
-> ranked list. Every function here is pure: inputs are copied, never mutated.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Dict, List, Union

import numpy as np
import pandas as pd

from src.config import (
    config, GoalPolicy, AGGREGATE_COLUMNS, RATE_COLUMNS, TOTAL_COLUMNS,
    STATUS_ABOVE, STATUS_BELOW,
)
from src.data.schema import ensure_column_types
from src.metrics.time_arithmetic import elapsed_hours

logger = logging.getLogger(__name__)

GoalLike = Union[GoalPolicy, float, int, None]

IDENTITY_COLUMNS = ["worker_id", "worker_name", "branch_id", "line", "team"]

ALL = "all"


# =============================================================================
# FILTER CRITERIA
# =============================================================================

@dataclass(frozen=True)
class FilterCriteria:
    """
    Row filter.

    mode="exact": date_started must equal date_exact.
    mode="range": date_started within [date_range_start, date_range_end].
    branch_id / line of None or "all" disable that predicate.
    """
    mode: str = "exact"
    date_exact: Optional[Union[date, str]] = None
    branch_id: Optional[Union[int, str]] = ALL
    line: Optional[str] = ALL
    worker_name_contains: Optional[str] = None
    date_range_start: Optional[Union[date, str]] = None
    date_range_end: Optional[Union[date, str]] = None


def _as_date_str(value) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


def normalise_id(value) -> str:
    """String form of an identifier; 101, 101.0 and "101" compare equal."""
    if value is None:
        return ""
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return ""
        if float(value).is_integer():
            return str(int(value))
    return str(value).strip()


def _is_active(value) -> bool:
    return value is not None and str(value) != "" and str(value).lower() != ALL


def round_half_up(values):
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    values = np.asarray(values, dtype="float64")
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def _resolve_goal(goal: GoalLike) -> GoalPolicy:
    if goal is None:
        return config.goal_policy
    if isinstance(goal, GoalPolicy):
        return goal
    return GoalPolicy(volume_target=float(goal), visits_target=float(goal))


# =============================================================================
# FILTERING
# =============================================================================

def filter_rows(rows: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    """
    Keep the rows that pass every active predicate, in input order.

    Rows are coerced first (see ensure_column_types).
    """
    rows = ensure_column_types(rows)
    if len(rows) == 0:
        return rows

    mask = pd.Series(True, index=rows.index)
    row_dates = rows["date_started"].fillna("").astype(str).str[:10]

    if criteria.mode == "range":
        start = _as_date_str(criteria.date_range_start)
        end = _as_date_str(criteria.date_range_end)
        if start:
            mask &= row_dates >= start
        if end:
            mask &= row_dates <= end
    else:
        target = _as_date_str(criteria.date_exact)
        if target:
            mask &= row_dates == target

    if _is_active(criteria.branch_id) and "branch_id" in rows.columns:
        branch = normalise_id(criteria.branch_id)
        mask &= rows["branch_id"].map(normalise_id) == branch

    if _is_active(criteria.line) and "line" in rows.columns:
        mask &= rows["line"] == criteria.line

    term = (criteria.worker_name_contains or "").strip()
    if term and "worker_name" in rows.columns:
        names = rows["worker_name"].fillna("").astype(str).str.upper()
        mask &= names.str.contains(term.upper(), regex=False)

    return rows[mask].copy()


# =============================================================================
# AGGREGATION
# =============================================================================

def sort_aggregates(aggregates: pd.DataFrame, mode: str = "volume") -> pd.DataFrame:
    """Rank descending by the mode's rate. Ties keep their current order."""
    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])
    if len(aggregates) == 0 or rate_col not in aggregates.columns:
        return aggregates.copy()
    return aggregates.sort_values(rate_col, ascending=False, kind="mergesort").reset_index(drop=True)


def aggregate_by_worker(rows: pd.DataFrame,
                        goal: GoalLike = None,
                        mode: str = "volume",
                        min_hours: Optional[float] = None) -> pd.DataFrame:
    """
    Fold filtered task rows into one aggregate per worker.

    - identity fields come from the first row seen for the worker
    - totals are sums of the parsed counts
    - envelope is min(time_start) / max(time_end); blank times are skipped
    - hours_worked = elapsed envelope, floored to min_hours when <= 0
    - rates are rounded to whole units per hour
    - status compares the active mode's rate to the goal for the worker's
      branch/line

    Returns DataFrame with AGGREGATE_COLUMNS, ranked by the active rate.
    """
    if len(rows) == 0:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    policy = _resolve_goal(goal)
    floor = config.min_hours_floor if min_hours is None else min_hours

    df = ensure_column_types(rows)
    df["_start"] = df["time_start"].replace("", np.nan)
    df["_end"] = df["time_end"].replace("", np.nan)

    identity = df.drop_duplicates(subset="worker_id", keep="first")[IDENTITY_COLUMNS]

    sums = df.groupby("worker_id", sort=False, dropna=False).agg(
        total_volume=("volume_count", "sum"),
        total_visits=("visit_count", "sum"),
        earliest_start=("_start", "min"),
        latest_end=("_end", "max"),
    ).reset_index()

    result = identity.merge(sums, on="worker_id", how="left")
    result["earliest_start"] = result["earliest_start"].fillna("")
    result["latest_end"] = result["latest_end"].fillna("")

    elapsed = np.array([
        elapsed_hours(start, end)
        for start, end in zip(result["earliest_start"], result["latest_end"])
    ], dtype="float64")
    result["hours_worked"] = np.where(elapsed > 0, elapsed, floor)

    result["volume_per_hour"] = round_half_up(result["total_volume"] / result["hours_worked"]).astype("int64")
    result["visits_per_hour"] = round_half_up(result["total_visits"] / result["hours_worked"]).astype("int64")

    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])
    result["goal_target"] = [
        policy.target_for(branch, line, mode)
        for branch, line in zip(result["branch_id"], result["line"])
    ]
    result["percent_of_goal"] = np.where(
        result["goal_target"] > 0,
        round_half_up(100 * result[rate_col] / result["goal_target"].where(result["goal_target"] > 0, 1)),
        0
    ).astype("int64")
    result["status"] = np.where(result[rate_col] >= result["goal_target"], STATUS_ABOVE, STATUS_BELOW)

    floored = int((elapsed <= 0).sum())
    if floored:
        logger.debug("%d of %d workers had no usable time envelope; using %.1fh", floored, len(result), floor)

    return sort_aggregates(result[AGGREGATE_COLUMNS], mode)


def compute_aggregates(raw_rows: pd.DataFrame,
                       filters: FilterCriteria,
                       mode: str = "volume",
                       goal: GoalLike = None) -> pd.DataFrame:
    """
    Full pipeline for presentation layers: coerce -> filter -> aggregate.

    Deterministic and side-effect free for a given goal policy.
    """
    if raw_rows is None or len(raw_rows) == 0:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    filtered = filter_rows(raw_rows, filters)
    logger.debug("filter kept %d of %d rows", len(filtered), len(raw_rows))

    return aggregate_by_worker(filtered, goal=goal, mode=mode)


# =============================================================================
# ROW-LEVEL METRICS
# =============================================================================

def compute_row_metrics(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Per-task hours and rates (2 decimals, 0 when the task has no duration).
    """
    df = ensure_column_types(rows)
    if len(df) == 0:
        for col in ["hours_worked", "volume_per_hour", "visits_per_hour"]:
            df[col] = pd.Series(dtype="float64")
        return df

    df["hours_worked"] = [elapsed_hours(s, e) for s, e in zip(df["time_start"], df["time_end"])]
    hours = df["hours_worked"].where(df["hours_worked"] > 0, np.nan)

    df["volume_per_hour"] = (df["volume_count"] / hours).fillna(0).round(2)
    df["visits_per_hour"] = (df["visit_count"] / hours).fillna(0).round(2)

    return df


# =============================================================================
# SUMMARIES
# =============================================================================

def progress_band(percent_of_goal: float) -> str:
    """good >= 100%, warning >= 80%, else bad."""
    if percent_of_goal >= config.good_band_pct:
        return "good"
    if percent_of_goal >= config.warning_band_pct:
        return "warning"
    return "bad"


def _shared_value(df: pd.DataFrame, col: str):
    """The column's single distinct value, else None."""
    if col not in df.columns or len(df) == 0:
        return None
    values = {normalise_id(v) for v in df[col]}
    return values.pop() if len(values) == 1 else None


def compute_kpis(aggregates: pd.DataFrame,
                 mode: str = "volume",
                 goal: GoalLike = None) -> Dict[str, float]:
    """
    KPI summary over a ranked aggregate list.

    avg_rate is the unweighted mean of the workers' rates. The goal is the
    one for the branch/line every worker shares; a dimension that varies
    falls back to the broader target.
    """
    policy = _resolve_goal(goal)
    goal_target = policy.target_for(
        _shared_value(aggregates, "branch_id"),
        _shared_value(aggregates, "line"),
        mode,
    )
    rate_col = RATE_COLUMNS.get(mode, RATE_COLUMNS["volume"])

    n_workers = len(aggregates)
    if n_workers == 0:
        return {
            "total_volume": 0,
            "total_visits": 0,
            "total": 0,
            "avg_rate": 0,
            "goal_target": goal_target,
            "percent_of_goal": 0,
            "band": progress_band(0),
            "above_goal": 0,
            "below_goal": 0,
            "workers": 0,
        }

    avg_rate = int(round_half_up(aggregates[rate_col].mean()))
    percent = int(round_half_up(avg_rate / goal_target * 100)) if goal_target > 0 else 0
    above = int((aggregates["status"] == STATUS_ABOVE).sum())

    return {
        "total_volume": int(aggregates["total_volume"].sum()),
        "total_visits": int(aggregates["total_visits"].sum()),
        "total": int(aggregates[TOTAL_COLUMNS.get(mode, "total_volume")].sum()),
        "avg_rate": avg_rate,
        "goal_target": goal_target,
        "percent_of_goal": percent,
        "band": progress_band(percent),
        "above_goal": above,
        "below_goal": n_workers - above,
        "workers": n_workers,
    }


def top_workers(aggregates: pd.DataFrame, mode: str = "volume", n: int = 5) -> pd.DataFrame:
    """Top n of the ranking for the active mode."""
    return sort_aggregates(aggregates, mode).head(n)


def compute_daily_trend(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Volume and visits per day, ascending by date.
    """
    if len(rows) == 0:
        return pd.DataFrame(columns=["date_started", "total_volume", "total_visits", "workers"])

    rows = ensure_column_types(rows)
    result = rows.groupby("date_started").agg(
        total_volume=("volume_count", "sum"),
        total_visits=("visit_count", "sum"),
        workers=("worker_id", "nunique"),
    ).reset_index()

    return result.sort_values("date_started").reset_index(drop=True)


def get_filter_options(rows: pd.DataFrame) -> Dict[str, List[str]]:
    """Distinct branches and lines for filter widgets."""
    options = {"branches": [], "lines": []}
    if len(rows) == 0:
        return options

    if "branch_id" in rows.columns:
        branches = {normalise_id(b) for b in rows["branch_id"].dropna()}
        options["branches"] = sorted(b for b in branches if b)
    if "line" in rows.columns:
        options["lines"] = sorted(str(l) for l in rows["line"].dropna().unique())

    return options
