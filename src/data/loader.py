"""
Task row sources and loading utilities with Streamlit caching.

A source answers "fetch rows matching this query" and raises DataSourceError
when it cannot. Callers go through fetch_task_rows / load_task_rows, which
never raise: failures come back as a FetchResult carrying the error.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Dict, Any, Callable

import pandas as pd
import streamlit as st
from supabase import create_client

from src.config import config, AppConfig, TABLE_FILES
from src.data.schema import apply_column_aliases, ensure_column_types, validate_schema
from src.data.synthetic import generate_task_rows
from src.metrics.productivity import normalise_id

logger = logging.getLogger(__name__)

# Upstream column names used for server-side filtering
UPSTREAM_BRANCH_COL = "NROEMPRESA"
UPSTREAM_DATE_COL = "DTAINICIO"


class DataSourceError(Exception):
    """Raised by a source when rows cannot be fetched."""
    pass


@dataclass(frozen=True)
class RowQuery:
    """What to fetch. Dates are "YYYY-MM-DD" strings or dates."""
    date_exact: Optional[str] = None
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    branch_id: Optional[str] = None
    worker_name_contains: Optional[str] = None

    def date_bounds(self):
        """(first_day, last_day) as strings, either may be None."""
        if self.date_exact:
            day = str(self.date_exact)[:10]
            return day, day
        start = str(self.date_range_start)[:10] if self.date_range_start else None
        end = str(self.date_range_end)[:10] if self.date_range_end else None
        return start, end

    @property
    def branch_filter(self) -> Optional[str]:
        if self.branch_id is None or str(self.branch_id).lower() in ("", "all"):
            return None
        return str(self.branch_id)


@dataclass
class FetchResult:
    """Rows or an error. rows is always a (possibly empty) coerced frame."""
    rows: pd.DataFrame
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# SOURCES
# =============================================================================

class TaskRowSource(ABC):
    """Capability: fetch task rows matching a query."""

    name = "base"

    @abstractmethod
    def fetch(self, query: RowQuery) -> pd.DataFrame:
        """Return raw rows or raise DataSourceError."""


def _apply_query(df: pd.DataFrame, query: RowQuery) -> pd.DataFrame:
    """Branch and date narrowing for sources without a query engine."""
    df = apply_column_aliases(df)
    mask = pd.Series(True, index=df.index)

    start, end = query.date_bounds()
    if "date_started" in df.columns:
        dates = df["date_started"].astype(str).str[:10]
        if start:
            mask &= dates >= start
        if end:
            mask &= dates <= end

    branch = query.branch_filter
    if branch and "branch_id" in df.columns:
        mask &= df["branch_id"].map(normalise_id) == branch

    return df[mask]


class SyntheticSource(TaskRowSource):
    """Seeded generator with the live store's row shape."""

    name = "synthetic"

    def __init__(self, n_rows: int = 150, seed: Optional[int] = 42,
                 reference_date: Optional[date] = None):
        self.n_rows = n_rows
        self.seed = seed
        self.reference_date = reference_date

    def fetch(self, query: RowQuery) -> pd.DataFrame:
        df = generate_task_rows(self.n_rows, seed=self.seed, reference_date=self.reference_date)
        return _apply_query(df, query)


def _load_file(filepath: Path) -> Optional[pd.DataFrame]:
    """Load task_rows.parquet, else task_rows.csv; None when neither exists."""
    parquet_path = filepath.with_suffix(".parquet")
    csv_path = filepath.with_suffix(".csv")

    if parquet_path.exists():
        return pd.read_parquet(parquet_path)
    elif csv_path.exists():
        # keep ids, counts and times as text; coercion happens downstream
        return pd.read_csv(csv_path, dtype=str)
    return None


class FileSource(TaskRowSource):
    """task_rows.parquet / task_rows.csv under the processed data dir."""

    name = "file"

    def __init__(self, directory: Path, table: str = TABLE_FILES["task_rows"]):
        self.directory = Path(directory)
        self.table = table

    @property
    def path(self) -> Path:
        return self.directory / self.table

    def fetch(self, query: RowQuery) -> pd.DataFrame:
        try:
            df = _load_file(self.path)
        except Exception as exc:
            raise DataSourceError(f"Could not read {self.path}: {exc}") from exc
        if df is None:
            raise DataSourceError(f"Could not find {self.table}.parquet or .csv in {self.directory}")
        return _apply_query(df, query)


class SupabaseSource(TaskRowSource):
    """Live row store. Branch and date bounds are filtered server-side."""

    name = "supabase"

    def __init__(self, url: str = "", key: str = "", table: str = "sepprodutividade",
                 client: Any = None):
        self.url = url
        self.key = key
        self.table = table
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.url or not self.key:
                raise DataSourceError("Supabase credentials missing (SUPABASE_URL / SUPABASE_KEY)")
            self._client = create_client(self.url, self.key)
            logger.info("Supabase client created for table %s", self.table)
        return self._client

    def fetch(self, query: RowQuery) -> pd.DataFrame:
        request = self.client.table(self.table).select("*")

        branch = query.branch_filter
        if branch:
            request = request.eq(UPSTREAM_BRANCH_COL, branch)

        start, end = query.date_bounds()
        if start:
            request = request.gte(UPSTREAM_DATE_COL, start)
        if end:
            next_day = (date.fromisoformat(end) + timedelta(days=1)).isoformat()
            request = request.lt(UPSTREAM_DATE_COL, next_day)

        try:
            response = request.execute()
        except Exception as exc:
            raise DataSourceError(f"Supabase query on {self.table} failed: {exc}") from exc

        return pd.DataFrame(response.data or [])


def build_source(cfg: AppConfig = config) -> TaskRowSource:
    """Pick the source named by cfg.data_source."""
    name = cfg.data_source.lower()
    if name == "synthetic":
        return SyntheticSource(cfg.mock_row_count, seed=cfg.mock_seed)
    if name == "file":
        return FileSource(cfg.processed_dir)
    if name == "supabase":
        return SupabaseSource(cfg.supabase_url, cfg.supabase_key, cfg.supabase_table)
    raise ValueError(f"Unknown DATA_SOURCE '{cfg.data_source}' (expected synthetic, file or supabase)")


# =============================================================================
# FETCH
# =============================================================================

def _empty_rows() -> pd.DataFrame:
    return ensure_column_types(pd.DataFrame())


def _to_result(fetch: Callable[[], pd.DataFrame], label: str) -> FetchResult:
    try:
        raw = fetch()
    except DataSourceError as exc:
        logger.error("Fetch from %s failed: %s", label, exc)
        return FetchResult(rows=_empty_rows(), error=str(exc))

    rows = ensure_column_types(raw)
    result = validate_schema(raw, "task_rows", strict=False)
    if len(raw) and not result["is_valid"]:
        logger.warning("%s rows missing required columns: %s", label, result["missing_required"])
    if result["empty_required"]:
        logger.warning("%s rows have blank required columns: %s", label, result["empty_required"])

    logger.info("Fetched %d task rows from %s", len(rows), label)
    return FetchResult(rows=rows)


def _apply_worker_search(rows: pd.DataFrame, term: Optional[str]) -> pd.DataFrame:
    if not term:
        return rows
    names = rows["worker_name"].astype(str).str.upper()
    return rows[names.str.contains(term.strip().upper(), regex=False)]


def fetch_task_rows(source: TaskRowSource, query: RowQuery) -> FetchResult:
    """
    Fetch and coerce rows. Worker-name search is applied in memory.

    Never raises on source failure; check FetchResult.error.
    """
    result = _to_result(lambda: source.fetch(query), source.name)
    if result.ok:
        result.rows = _apply_worker_search(result.rows, query.worker_name_contains)
    return result


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def _cached_fetch(source_name: str, date_exact: Optional[str], date_range_start: Optional[str],
                  date_range_end: Optional[str], branch_id: Optional[str]) -> pd.DataFrame:
    # Failures raise and are therefore not cached
    source = build_source(config)
    return source.fetch(RowQuery(
        date_exact=date_exact,
        date_range_start=date_range_start,
        date_range_end=date_range_end,
        branch_id=branch_id,
    ))


def load_task_rows(query: RowQuery) -> FetchResult:
    """Cached fetch through the configured source, for the app."""
    result = _to_result(
        lambda: _cached_fetch(
            config.data_source,
            query.date_exact,
            query.date_range_start,
            query.date_range_end,
            query.branch_filter,
        ),
        config.data_source,
    )
    if result.ok:
        result.rows = _apply_worker_search(result.rows, query.worker_name_contains)
    return result


def get_data_status(cfg: AppConfig = config) -> Dict[str, Any]:
    """Describe the configured source and whether it looks usable."""
    name = cfg.data_source.lower()
    status = {"source": name, "ready": False, "detail": ""}

    if name == "synthetic":
        status["ready"] = True
        status["detail"] = f"{cfg.mock_row_count} generated rows (seed {cfg.mock_seed})"
    elif name == "file":
        base = cfg.processed_dir / TABLE_FILES["task_rows"]
        parquet_exists = base.with_suffix(".parquet").exists()
        csv_exists = base.with_suffix(".csv").exists()
        status["ready"] = parquet_exists or csv_exists
        status["detail"] = f"{base}.(parquet|csv)"
    elif name == "supabase":
        status["ready"] = bool(cfg.supabase_url and cfg.supabase_key)
        status["detail"] = f"table {cfg.supabase_table}"
    else:
        status["detail"] = "unknown source"

    return status
