"""
Tests for the productivity aggregation pipeline.
"""
import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import GoalPolicy, AGGREGATE_COLUMNS, STATUS_ABOVE, STATUS_BELOW
from src.metrics.productivity import (
    FilterCriteria,
    filter_rows,
    aggregate_by_worker,
    compute_aggregates,
    compute_row_metrics,
    compute_kpis,
    compute_daily_trend,
    get_filter_options,
    progress_band,
    round_half_up,
    sort_aggregates,
    top_workers,
    normalise_id,
)

GOAL = GoalPolicy(volume_target=120, visits_target=120)


def _task(worker_id, volume, visits, start, end, name=None, branch=101,
          line="FLV", date="2024-01-01"):
    return {
        "worker_id": worker_id,
        "worker_name": name or f"WORKER {worker_id}",
        "branch_id": branch,
        "line": line,
        "team": "TURNO A",
        "volume_count": volume,
        "visit_count": visits,
        "date_started": date,
        "time_start": start,
        "time_end": end,
    }


@pytest.fixture
def two_tasks_worker_a():
    return pd.DataFrame([
        _task("A", 100, 20, "08:00:00", "09:00:00"),
        _task("A", 50, 10, "09:00:00", "10:00:00"),
    ])


class TestFilterRows:
    """Tests for row filtering."""

    def test_branch_and_date(self):
        """Only the row matching both branch and date survives."""
        rows = pd.DataFrame({
            "branch_id": [101, 102],
            "date_started": ["2024-01-01", "2024-01-01"],
        })
        criteria = FilterCriteria(mode="exact", branch_id=101, date_exact="2024-01-01")

        result = filter_rows(rows, criteria)

        assert len(result) == 1
        assert normalise_id(result["branch_id"].iloc[0]) == "101"

    def test_branch_compared_as_string(self):
        rows = pd.DataFrame([_task("A", 1, 1, "", "", branch=101.0)])
        result = filter_rows(rows, FilterCriteria(branch_id="101", date_exact="2024-01-01"))
        assert len(result) == 1

    def test_all_sentinels(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", branch=101, line="FLV"),
            _task("B", 1, 1, "", "", branch=102, line="MERCEARIA"),
        ])
        result = filter_rows(rows, FilterCriteria(branch_id="all", line="all", date_exact="2024-01-01"))
        assert len(result) == 2

    def test_line_exact_match(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", line="FLV"),
            _task("B", 1, 1, "", "", line="FLV2"),
        ])
        result = filter_rows(rows, FilterCriteria(line="FLV", date_exact="2024-01-01"))
        assert list(result["worker_id"]) == ["A"]

    def test_exact_date_uses_first_ten_chars(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", date="2024-01-01T08:00:00"),
            _task("B", 1, 1, "", "", date="2024-01-02T08:00:00"),
        ])
        result = filter_rows(rows, FilterCriteria(date_exact="2024-01-01"))
        assert list(result["worker_id"]) == ["A"]

    def test_range_inclusive(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", date="2023-12-31"),
            _task("B", 1, 1, "", "", date="2024-01-01"),
            _task("C", 1, 1, "", "", date="2024-01-05"),
            _task("D", 1, 1, "", "", date="2024-01-06"),
        ])
        criteria = FilterCriteria(mode="range", date_range_start="2024-01-01", date_range_end="2024-01-05")

        result = filter_rows(rows, criteria)

        assert list(result["worker_id"]) == ["B", "C"]

    def test_worker_name_case_insensitive(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", name="Maria Santos"),
            _task("B", 1, 1, "", "", name="JOAO SILVA"),
        ])
        criteria = FilterCriteria(mode="range", worker_name_contains="maria")

        result = filter_rows(rows, criteria)

        assert list(result["worker_id"]) == ["A"]

    def test_preserves_input_order(self):
        rows = pd.DataFrame([_task(w, 1, 1, "", "") for w in ["C", "A", "B"]])
        result = filter_rows(rows, FilterCriteria(date_exact="2024-01-01"))
        assert list(result["worker_id"]) == ["C", "A", "B"]

    def test_does_not_mutate_input(self):
        rows = pd.DataFrame([_task("A", "10", 1, "8:00:00", "9:00:00")])
        before = rows.copy()
        filter_rows(rows, FilterCriteria(date_exact="2024-01-01"))
        pd.testing.assert_frame_equal(rows, before)


class TestAggregateByWorker:
    """Tests for per-worker aggregation."""

    def test_single_worker_end_to_end(self, two_tasks_worker_a):
        result = aggregate_by_worker(two_tasks_worker_a, goal=GOAL)

        assert len(result) == 1
        row = result.iloc[0]
        assert row["worker_id"] == "A"
        assert row["total_volume"] == 150
        assert row["total_visits"] == 30
        assert row["hours_worked"] == 2.0
        assert row["volume_per_hour"] == 75
        assert row["visits_per_hour"] == 15
        assert row["status"] == STATUS_BELOW

    def test_output_columns(self, two_tasks_worker_a):
        result = aggregate_by_worker(two_tasks_worker_a, goal=GOAL)
        assert list(result.columns) == AGGREGATE_COLUMNS

    def test_envelope(self):
        rows = pd.DataFrame([
            _task("A", 10, 1, "10:00:00", "11:00:00"),
            _task("A", 10, 1, "07:30:00", "08:00:00"),
            _task("A", 10, 1, "13:00:00", "12:00:00"),
        ])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]

        assert row["earliest_start"] == "07:30:00"
        assert row["latest_end"] == "12:00:00"
        assert row["hours_worked"] == 4.5

    def test_unpadded_times_compare_correctly(self):
        rows = pd.DataFrame([
            _task("A", 10, 1, "9:00:00", "10:00:00"),
            _task("A", 10, 1, "10:00:00", "11:00:00"),
        ])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["earliest_start"] == "09:00:00"
        assert row["hours_worked"] == 2.0

    def test_conservation_of_totals(self):
        rows = pd.DataFrame([
            _task("A", 100, 20, "08:00:00", "09:00:00"),
            _task("B", 37, 4, "08:00:00", "08:30:00"),
            _task("A", 12, 3, "09:00:00", "10:00:00"),
            _task("C", 0, 0, "", ""),
            _task("B", 51, 9, "10:00:00", "12:00:00"),
        ])
        result = aggregate_by_worker(rows, goal=GOAL)

        assert result["total_volume"].sum() == 200
        assert result["total_visits"].sum() == 36
        assert set(result["worker_id"]) == {"A", "B", "C"}

    def test_missing_times_floor_to_one_hour(self):
        rows = pd.DataFrame([_task("A", 90, 9, "", None)])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]

        assert row["hours_worked"] == 1.0
        assert row["volume_per_hour"] == 90

    def test_zero_elapsed_floors_to_one_hour(self):
        rows = pd.DataFrame([_task("A", 50, 5, "10:00:00", "10:00:00")])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["hours_worked"] == 1.0

    def test_floor_only_when_not_positive(self):
        """Short positive envelopes are kept as-is."""
        rows = pd.DataFrame([_task("A", 50, 5, "10:00:00", "10:30:00")])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["hours_worked"] == 0.5
        assert row["volume_per_hour"] == 100

    def test_overnight_shift(self):
        rows = pd.DataFrame([_task("N", 480, 40, "22:00:00", "02:00:00")])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]

        assert row["hours_worked"] == 4.0
        assert row["volume_per_hour"] == 120
        assert row["status"] == STATUS_ABOVE

    def test_malformed_counts_contribute_zero(self):
        rows = pd.DataFrame([
            _task("A", "abc", None, "08:00:00", "09:00:00"),
            _task("A", "12.7", "5", "09:00:00", "10:00:00"),
        ])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]

        assert row["total_volume"] == 12
        assert row["total_visits"] == 5

    def test_rate_rounds_half_up(self):
        rows = pd.DataFrame([_task("A", 5, 1, "08:00:00", "10:00:00")])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["volume_per_hour"] == 3

    def test_percent_of_goal(self, two_tasks_worker_a):
        row = aggregate_by_worker(two_tasks_worker_a, goal=GOAL).iloc[0]
        # 75 / 120 = 62.5%
        assert row["percent_of_goal"] == 63
        assert row["goal_target"] == 120

    def test_status_at_goal_is_above(self):
        rows = pd.DataFrame([_task("A", 120, 1, "08:00:00", "09:00:00")])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["status"] == STATUS_ABOVE
        assert row["percent_of_goal"] == 100

    def test_numeric_goal(self, two_tasks_worker_a):
        row = aggregate_by_worker(two_tasks_worker_a, goal=60).iloc[0]
        assert row["status"] == STATUS_ABOVE

    def test_branch_goal_override(self):
        rows = pd.DataFrame([
            _task("A", 75, 1, "08:00:00", "09:00:00", branch=101),
            _task("B", 75, 1, "08:00:00", "09:00:00", branch=102),
        ])
        policy = GoalPolicy(overrides={("101", "all"): 70.0})

        result = aggregate_by_worker(rows, goal=policy).set_index("worker_id")

        assert result.loc["A", "goal_target"] == 70.0
        assert result.loc["A", "status"] == STATUS_ABOVE
        assert result.loc["B", "goal_target"] == 120.0
        assert result.loc["B", "status"] == STATUS_BELOW

    def test_visits_mode_status(self, two_tasks_worker_a):
        policy = GoalPolicy(volume_target=120, visits_target=10)
        row = aggregate_by_worker(two_tasks_worker_a, goal=policy, mode="visits").iloc[0]

        assert row["goal_target"] == 10
        assert row["status"] == STATUS_ABOVE

    def test_identity_from_first_row(self):
        rows = pd.DataFrame([
            _task("A", 1, 1, "", "", name="FIRST"),
            _task("A", 1, 1, "", "", name="SECOND"),
        ])
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["worker_name"] == "FIRST"

    def test_missing_name_placeholder(self):
        rows = pd.DataFrame([_task("A", 1, 1, "", "")])
        rows["worker_name"] = None
        row = aggregate_by_worker(rows, goal=GOAL).iloc[0]
        assert row["worker_name"] == "Unknown"

    def test_empty(self):
        result = aggregate_by_worker(pd.DataFrame(), goal=GOAL)
        assert len(result) == 0
        assert list(result.columns) == AGGREGATE_COLUMNS


class TestSorting:
    """Tests for ranking."""

    def test_higher_rate_first(self):
        rows = pd.DataFrame([
            _task("X", 80, 50, "08:00:00", "09:00:00"),
            _task("Y", 130, 10, "08:00:00", "09:00:00"),
        ])
        result = aggregate_by_worker(rows, goal=GOAL, mode="volume")
        assert list(result["worker_id"]) == ["Y", "X"]

    def test_visits_mode_ranks_by_visits(self):
        rows = pd.DataFrame([
            _task("X", 80, 50, "08:00:00", "09:00:00"),
            _task("Y", 130, 10, "08:00:00", "09:00:00"),
        ])
        result = aggregate_by_worker(rows, goal=GOAL, mode="visits")
        assert list(result["worker_id"]) == ["X", "Y"]

    def test_ties_keep_order(self):
        aggs = pd.DataFrame({
            "worker_id": ["A", "B", "C"],
            "volume_per_hour": [50, 90, 50],
        })
        result = sort_aggregates(aggs, "volume")
        assert list(result["worker_id"]) == ["B", "A", "C"]

    def test_top_workers(self):
        aggs = pd.DataFrame({
            "worker_id": list("ABCDEFG"),
            "volume_per_hour": [10, 70, 30, 60, 20, 50, 40],
        })
        result = top_workers(aggs, "volume", n=3)
        assert list(result["worker_id"]) == ["B", "D", "F"]


class TestComputeAggregates:
    """Tests for the full pipeline."""

    def test_filters_then_aggregates(self):
        rows = pd.DataFrame([
            _task("A", 100, 20, "08:00:00", "09:00:00", branch=101),
            _task("B", 100, 20, "08:00:00", "09:00:00", branch=102),
        ])
        result = compute_aggregates(rows, FilterCriteria(branch_id=101, date_exact="2024-01-01"), goal=GOAL)
        assert list(result["worker_id"]) == ["A"]

    def test_idempotent(self, two_tasks_worker_a):
        criteria = FilterCriteria(date_exact="2024-01-01")
        first = compute_aggregates(two_tasks_worker_a, criteria, "volume", goal=GOAL)
        second = compute_aggregates(two_tasks_worker_a, criteria, "volume", goal=GOAL)
        pd.testing.assert_frame_equal(first, second)

    def test_upstream_column_names(self):
        rows = pd.DataFrame({
            "CODPRODUTIVO": [7, 7],
            "PRODUTIVO": ["ANA", "ANA"],
            "NROEMPRESA": [101, 101],
            "QTDVOLUME": ["100", "50"],
            "QTD_VISITAS": [20, 10],
            "DTAINICIO": ["2024-01-01", "2024-01-01"],
            "HORAINICIO": ["08:00:00", "09:00:00"],
            "HORAFIM": ["09:00:00", "10:00:00"],
        })
        result = compute_aggregates(rows, FilterCriteria(date_exact="2024-01-01"), goal=GOAL)

        assert len(result) == 1
        assert result.iloc[0]["volume_per_hour"] == 75

    def test_empty_input(self):
        result = compute_aggregates(pd.DataFrame(), FilterCriteria())
        assert len(result) == 0
        assert list(result.columns) == AGGREGATE_COLUMNS

    def test_nothing_matches(self, two_tasks_worker_a):
        result = compute_aggregates(two_tasks_worker_a, FilterCriteria(date_exact="2030-01-01"), goal=GOAL)
        assert len(result) == 0


class TestRoundHalfUp:
    def test_halves_away_from_zero(self):
        assert list(round_half_up([0.5, 1.5, 2.5, -2.5, 2.4])) == [1, 2, 3, -3, 2]


class TestKpis:
    """Tests for KPI summary."""

    def _aggs(self):
        rows = pd.DataFrame([
            _task("A", 75, 10, "08:00:00", "09:00:00"),
            _task("B", 130, 20, "08:00:00", "09:00:00"),
        ])
        return aggregate_by_worker(rows, goal=GOAL)

    def test_summary(self):
        kpis = compute_kpis(self._aggs(), "volume", goal=GOAL)

        assert kpis["workers"] == 2
        assert kpis["total_volume"] == 205
        assert kpis["total_visits"] == 30
        assert kpis["total"] == 205
        # mean(75, 130) = 102.5
        assert kpis["avg_rate"] == 103
        assert kpis["percent_of_goal"] == 86
        assert kpis["band"] == "warning"
        assert kpis["above_goal"] == 1
        assert kpis["below_goal"] == 1

    def test_goal_uses_shared_branch_override(self):
        policy = GoalPolicy(overrides={("101", "all"): 100.0})
        rows = pd.DataFrame([
            _task("A", 75, 10, "08:00:00", "09:00:00", branch=101),
            _task("B", 125, 20, "08:00:00", "09:00:00", branch=101.0),
        ])
        aggs = aggregate_by_worker(rows, goal=policy)

        kpis = compute_kpis(aggs, "volume", goal=policy)

        assert kpis["goal_target"] == 100.0
        assert set(aggs["goal_target"]) == {100.0}
        # mean(75, 125) = 100
        assert kpis["percent_of_goal"] == 100
        assert kpis["band"] == "good"

    def test_goal_uses_shared_line_override(self):
        policy = GoalPolicy(overrides={("101", "all"): 100.0, ("101", "FLV"): 90.0})
        rows = pd.DataFrame([_task("A", 90, 10, "08:00:00", "09:00:00", branch=101, line="FLV")])

        kpis = compute_kpis(aggregate_by_worker(rows, goal=policy), "volume", goal=policy)

        assert kpis["goal_target"] == 90.0

    def test_mixed_branches_use_default_goal(self):
        policy = GoalPolicy(overrides={("101", "all"): 100.0})
        rows = pd.DataFrame([
            _task("A", 75, 10, "08:00:00", "09:00:00", branch=101),
            _task("B", 125, 20, "08:00:00", "09:00:00", branch=102),
        ])

        kpis = compute_kpis(aggregate_by_worker(rows, goal=policy), "volume", goal=policy)

        assert kpis["goal_target"] == 120

    def test_visits_total(self):
        kpis = compute_kpis(self._aggs(), "visits", goal=GOAL)
        assert kpis["total"] == 30

    def test_empty(self):
        kpis = compute_kpis(pd.DataFrame(columns=AGGREGATE_COLUMNS), "volume", goal=GOAL)
        assert kpis["workers"] == 0
        assert kpis["avg_rate"] == 0
        assert kpis["band"] == "bad"

    @pytest.mark.parametrize("pct,band", [(100, "good"), (140, "good"), (80, "warning"), (99, "warning"), (79, "bad"), (0, "bad")])
    def test_progress_band(self, pct, band):
        assert progress_band(pct) == band


class TestRowMetrics:
    """Tests for per-task detail."""

    def test_rates_two_decimals(self):
        rows = pd.DataFrame([_task("A", 100, 7, "08:00:00", "09:30:00")])
        result = compute_row_metrics(rows)

        assert result.iloc[0]["hours_worked"] == 1.5
        assert result.iloc[0]["volume_per_hour"] == 66.67
        assert result.iloc[0]["visits_per_hour"] == 4.67

    def test_zero_duration_rate_is_zero(self):
        rows = pd.DataFrame([_task("A", 100, 7, "", "")])
        result = compute_row_metrics(rows)

        assert result.iloc[0]["hours_worked"] == 0.0
        assert result.iloc[0]["volume_per_hour"] == 0


class TestDailyTrendAndOptions:
    """Tests for trend and filter option helpers."""

    def test_daily_trend(self):
        rows = pd.DataFrame([
            _task("A", 10, 1, "", "", date="2024-01-02"),
            _task("B", 20, 2, "", "", date="2024-01-01"),
            _task("A", 30, 3, "", "", date="2024-01-01"),
        ])
        trend = compute_daily_trend(rows)

        assert list(trend["date_started"]) == ["2024-01-01", "2024-01-02"]
        assert list(trend["total_volume"]) == [50, 10]
        assert list(trend["workers"]) == [2, 1]

    def test_filter_options(self):
        rows = pd.DataFrame({
            "branch_id": [101, 102.0, "102", np.nan],
            "line": ["FLV", "MERCEARIA", "FLV", None],
        })
        options = get_filter_options(rows)

        assert options["branches"] == ["101", "102"]
        assert options["lines"] == ["FLV", "MERCEARIA"]

    def test_filter_options_empty(self):
        assert get_filter_options(pd.DataFrame()) == {"branches": [], "lines": []}
