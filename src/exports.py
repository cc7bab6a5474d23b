"""
Export utilities for aggregate tables and task rows.
"""
import pandas as pd
from typing import Optional, Dict, Sequence
from datetime import datetime
from io import BytesIO

from src.config import COLUMN_LABELS


def select_export_columns(df: pd.DataFrame,
                          columns: Optional[Sequence[str]] = None,
                          labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    Restrict to the requested columns (in the given order) and relabel headers.

    Unknown columns are skipped. None keeps every column.
    """
    if columns is None:
        columns = list(df.columns)
    keep = [c for c in dict.fromkeys(columns) if c in df.columns]

    if labels is None:
        labels = COLUMN_LABELS

    return df[keep].rename(columns={c: labels.get(c, c) for c in keep})


def export_aggregates_csv(df: pd.DataFrame,
                          columns: Optional[Sequence[str]] = None,
                          labels: Optional[Dict[str, str]] = None,
                          filename: Optional[str] = None) -> tuple:
    """
    Export the worker ranking (or any table) to CSV bytes.

    Returns: (csv_bytes, filename)
    """
    if filename is None:
        filename = format_export_filename("productivity")

    export_df = select_export_columns(df, columns, labels)
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")

    return csv_bytes, filename


def export_aggregates_excel(df: pd.DataFrame,
                            columns: Optional[Sequence[str]] = None,
                            labels: Optional[Dict[str, str]] = None,
                            filename: Optional[str] = None,
                            sheet_name: str = "Productivity") -> tuple:
    """
    Export the worker ranking to Excel bytes.

    Returns: (excel_bytes, filename)
    """
    if filename is None:
        filename = format_export_filename("productivity", extension="xlsx")

    export_df = select_export_columns(df, columns, labels)

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        export_df.to_excel(writer, sheet_name=sheet_name, index=False)

    return buffer.getvalue(), filename


def format_export_filename(base_name: str, extension: str = "csv",
                           include_timestamp: bool = True) -> str:
    """Generate formatted export filename."""
    if include_timestamp:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return f"{base_name}_{timestamp}.{extension}"
    return f"{base_name}.{extension}"
