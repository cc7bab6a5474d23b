"""
Schema validation, column alias mapping and lenient type coercion.
"""
import logging

import numpy as np
import pandas as pd
from typing import List, Tuple, Dict

from src.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS, UNKNOWN_WORKER
from src.metrics.time_arithmetic import normalise_time_of_day

logger = logging.getLogger(__name__)


# Upstream (row store) column names -> canonical names
COLUMN_ALIASES = {
    "CODPRODUTIVO": "worker_id",
    "PRODUTIVO": "worker_name",
    "NROEMPRESA": "branch_id",
    "LINHA_SEPARACAO": "line",
    "EQUIPE": "team",
    "QTDVOLUME": "volume_count",
    "QTD_VISITAS": "visit_count",
    "DTAINICIO": "date_started",
    "HORAINICIO": "time_start",
    "Hora Inicio": "time_start",
    "HORAFIM": "time_end",
}


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


def apply_column_aliases(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename upstream columns to canonical names.

    When both an alias and its canonical column exist the canonical one wins.
    """
    renames = {}
    for source, target in COLUMN_ALIASES.items():
        if source in df.columns and target not in df.columns and target not in renames.values():
            renames[source] = target
    if not renames:
        return df
    return df.rename(columns=renames)


def _is_blank(series: pd.Series) -> pd.Series:
    return series.isna() | (series.astype(str).str.strip() == "")


def validate_required_columns(df: pd.DataFrame, table_name: str) -> Tuple[bool, List[str]]:
    """(is_valid, missing) for the table's required columns, after aliasing."""
    names = set(apply_column_aliases(df).columns)
    missing = [col for col in REQUIRED_COLUMNS.get(table_name, []) if col not in names]
    return not missing, missing


def check_optional_columns(df: pd.DataFrame, table_name: str) -> List[str]:
    """Optional columns absent after aliasing; these are filled with blanks."""
    names = set(apply_column_aliases(df).columns)
    return [col for col in OPTIONAL_COLUMNS.get(table_name, []) if col not in names]


def validate_schema(df: pd.DataFrame, table_name: str, strict: bool = True) -> Dict:
    """
    Check a raw frame (upstream or canonical headers) against a table's columns.

    Args:
        df: raw rows as returned by a source
        table_name: key into REQUIRED_COLUMNS / OPTIONAL_COLUMNS
        strict: raise SchemaValidationError when a required column is missing

    Returns:
        Dict with is_valid, missing_required, missing_optional, aliased
        (upstream -> canonical renames applied), empty_required (present but
        entirely blank), total_columns and total_rows.
    """
    aliased = apply_column_aliases(df)
    is_valid, missing_required = validate_required_columns(aliased, table_name)

    renamed = [c for c in df.columns if c not in aliased.columns]
    empty_required = [
        col for col in REQUIRED_COLUMNS.get(table_name, [])
        if col in aliased.columns and len(aliased) and _is_blank(aliased[col]).all()
    ]

    result = {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": check_optional_columns(aliased, table_name),
        "aliased": {c: COLUMN_ALIASES[c] for c in renamed},
        "empty_required": empty_required,
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }

    if strict and not is_valid:
        raise SchemaValidationError(f"{table_name} is missing required columns: {missing_required}")

    return result


_LEADING_NUMBER = r"^\s*([+-]?\d+(?:\.\d+)?)"


def leading_number(series: pd.Series) -> pd.Series:
    """Leading decimal number of each value as float ("12 un" -> 12.0), NaN when there is none."""
    text = series.astype(str).str.extract(_LEADING_NUMBER, expand=False)
    return pd.to_numeric(text, errors="coerce").astype("float64")


def parse_count(series: pd.Series) -> pd.Series:
    """
    Lenient integer parse of a count, read like parseInt.

    "12" -> 12, "12.7" -> 12, "12abc" -> 12, "1e3" -> 1, "abc" / None -> 0.
    Counts are non-negative: a negative value is read as 0.
    """
    numeric = leading_number(series).fillna(0).clip(lower=0)
    return np.trunc(numeric).astype("int64")


def truncate_date(series: pd.Series) -> pd.Series:
    """First 10 characters of an ISO-like date/timestamp string."""
    return series.map(lambda v: "" if pd.isna(v) else str(v)[:10])


def ensure_column_types(df: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce task rows into canonical types without ever raising.

    - counts: lenient integer parse, 0 on failure
    - date_started: "YYYY-MM-DD"
    - time_start / time_end: zero-padded "HH:MM:SS", "" when unusable
    - worker_name: placeholder when absent
    """
    df = apply_column_aliases(df).copy()

    for col in REQUIRED_COLUMNS["task_rows"] + OPTIONAL_COLUMNS["task_rows"]:
        if col not in df.columns:
            df[col] = None

    for col in ["volume_count", "visit_count"]:
        df[col] = parse_count(df[col])

    df["date_started"] = truncate_date(df["date_started"])

    for col in ["time_start", "time_end"]:
        df[col] = df[col].map(normalise_time_of_day)

    df["worker_name"] = df["worker_name"].where(df["worker_name"].notna(), UNKNOWN_WORKER)
    df["worker_name"] = df["worker_name"].astype(str).replace("", UNKNOWN_WORKER)

    missing_times = (df["time_start"] == "") | (df["time_end"] == "")
    if missing_times.any():
        logger.debug("%d task rows have a missing or malformed time", int(missing_times.sum()))

    return df
