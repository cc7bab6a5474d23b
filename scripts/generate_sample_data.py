#!/usr/bin/env python
"""
Write a synthetic task rows file for DATA_SOURCE=file.

Usage:
    python scripts/generate_sample_data.py
    python scripts/generate_sample_data.py --rows 500 --days 14 --format csv
"""
import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import config, TABLE_FILES
from src.data.synthetic import generate_task_rows


def main():
    parser = argparse.ArgumentParser(description="Generate sample task rows")
    parser.add_argument("--data-dir", type=str, default=None, help="Override data directory")
    parser.add_argument("--rows", type=int, default=config.mock_row_count, help="Number of task rows")
    parser.add_argument("--days", type=int, default=7, help="Days of history ending today")
    parser.add_argument("--seed", type=int, default=config.mock_seed, help="Random seed")
    parser.add_argument("--format", choices=["parquet", "csv"], default="parquet")

    args = parser.parse_args()

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    processed_dir = data_dir / "processed"
    processed_dir.mkdir(parents=True, exist_ok=True)

    df = generate_task_rows(args.rows, seed=args.seed, days=args.days)
    path = processed_dir / f"{TABLE_FILES['task_rows']}.{args.format}"

    try:
        if args.format == "parquet":
            df.to_parquet(path, index=False)
        else:
            df.to_csv(path, index=False)
    except Exception as e:
        print(f"ERROR writing {path}: {e}")
        sys.exit(1)

    print(f"✓ Wrote {len(df):,} rows to {path}")
    print("  Set DATA_SOURCE=file to use it.")


if __name__ == "__main__":
    main()
