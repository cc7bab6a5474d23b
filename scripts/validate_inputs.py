#!/usr/bin/env python
"""
Check that the configured data source returns usable task rows.

Reports missing columns, counts that will be read as 0 and tasks whose
times cannot be parsed (their workers fall back to the 1 hour floor).

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --source file --data-dir /path/to/data
    python scripts/validate_inputs.py --start 2024-03-01 --end 2024-03-31 --branch 101
"""
import argparse
import sys
from dataclasses import replace
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
from src.config import config
from src.data.loader import RowQuery, DataSourceError, build_source
from src.data.schema import apply_column_aliases, validate_schema, ensure_column_types, leading_number
from src.metrics.time_arithmetic import time_of_day_to_decimal_hours


def summarise_rows(raw: pd.DataFrame) -> dict:
    """Quality counters for one batch of raw rows."""
    aliased = apply_column_aliases(raw)
    schema = validate_schema(raw, "task_rows", strict=False)
    rows = ensure_column_types(raw)

    unparseable = {}
    for col in ["volume_count", "visit_count"]:
        if col in aliased.columns:
            parsed = leading_number(aliased[col])
            unparseable[col] = int(((parsed.isna() | (parsed < 0)) & aliased[col].notna()).sum())

    start_h = rows["time_start"].map(time_of_day_to_decimal_hours)
    end_h = rows["time_end"].map(time_of_day_to_decimal_hours)
    has_times = (rows["time_start"] != "") & (rows["time_end"] != "")

    return {
        "schema": schema,
        "rows": len(rows),
        "workers": rows["worker_id"].nunique(),
        "days": sorted(d for d in rows["date_started"].unique() if d),
        "unparseable": unparseable,
        "missing_times": int((~has_times).sum()),
        "overnight": int((has_times & (end_h < start_h)).sum()),
        "unknown_names": int((rows["worker_name"] == "Unknown").sum()),
    }


def main():
    parser = argparse.ArgumentParser(description="Validate task rows from the configured source")
    parser.add_argument("--source", choices=["synthetic", "file", "supabase"], default=None,
                        help="Override DATA_SOURCE")
    parser.add_argument("--data-dir", type=str, default=None, help="Override data directory")
    parser.add_argument("--start", type=str, default=None, help="First day (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, default=None, help="Last day (YYYY-MM-DD)")
    parser.add_argument("--branch", type=str, default=None, help="Branch id")

    args = parser.parse_args()

    cfg = config
    if args.source:
        cfg = replace(cfg, data_source=args.source)
    if args.data_dir:
        cfg = replace(cfg, data_dir=Path(args.data_dir))

    source = build_source(cfg)
    query = RowQuery(date_range_start=args.start, date_range_end=args.end, branch_id=args.branch)

    print("=" * 60)
    print("Task Rows Validation")
    print("=" * 60)
    print(f"Source: {source.name}")
    if args.start or args.end or args.branch:
        print(f"Query: {args.start or '...'} to {args.end or '...'}, branch {args.branch or 'all'}")
    print()

    try:
        raw = source.fetch(query)
    except DataSourceError as e:
        print(f"✗ Fetch failed: {e}")
        sys.exit(1)

    summary = summarise_rows(raw)
    schema = summary["schema"]

    print(f"  Rows: {summary['rows']:,}")
    print(f"  Workers: {summary['workers']:,}")
    if summary["days"]:
        print(f"  Days: {summary['days'][0]} to {summary['days'][-1]} ({len(summary['days'])})")

    ok = schema["is_valid"]
    if ok:
        print("  ✓ Required columns present")
    else:
        print(f"  ✗ Missing required: {schema['missing_required']}")
    if schema["aliased"]:
        print(f"  ℹ Upstream columns mapped: {len(schema['aliased'])}")
    if schema["empty_required"]:
        print(f"  ✗ Required columns present but blank: {schema['empty_required']}")
        ok = False
    if schema["missing_optional"]:
        print(f"  ⚠ Missing optional: {schema['missing_optional']}")

    for col, n in summary["unparseable"].items():
        if n:
            print(f"  ⚠ {col}: {n:,} values will be read as 0")
    if summary["missing_times"]:
        print(f"  ⚠ {summary['missing_times']:,} tasks without a usable start/end time")
    if summary["unknown_names"]:
        print(f"  ⚠ {summary['unknown_names']:,} tasks without a worker name")
    if summary["overnight"]:
        print(f"  ℹ {summary['overnight']:,} tasks cross midnight")

    if summary["rows"] == 0:
        print("  ⚠ No rows returned for this query")

    print()
    print("=" * 60)
    if ok:
        print("✓ Validation passed")
        sys.exit(0)
    print("✗ Validation failed - see errors above")
    sys.exit(1)


if __name__ == "__main__":
    main()
