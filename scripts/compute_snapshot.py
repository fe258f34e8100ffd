#!/usr/bin/env python3
"""Compute an analytics snapshot from CSV exports and print it as JSON."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_engine import compute_snapshot, configure_logging, get_logger

logger = get_logger('finance_engine.scripts.compute_snapshot')

COLUMN_ALIASES = {
    'transaction date': 'date',
    'date': 'date',
    'amount': 'amount',
    'category': 'category',
}


def load_records(path: Optional[Path]) -> List[Dict[str, Any]]:
    """Read a CSV with date, amount and category columns into records."""
    if path is None:
        return []
    df = pd.read_csv(path)
    df = df.rename(columns=lambda col: COLUMN_ALIASES.get(str(col).strip().lower(), col))
    missing = {'date', 'amount', 'category'} - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing columns {', '.join(sorted(missing))}")
    # Bank exports use local formats such as 01/31/2024.
    df['date'] = pd.to_datetime(df['date'], errors='coerce', utc=True, format='mixed')
    return df[['date', 'amount', 'category']].to_dict('records')


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Compute an analytics snapshot from CSV files.')
    parser.add_argument('--user', default='local', help='User id recorded on the snapshot')
    parser.add_argument('--expenses', type=Path, required=True, help='Expenses CSV')
    parser.add_argument('--income', type=Path, help='Income CSV')
    parser.add_argument('--period-type', default='monthly',
                        choices=['weekly', 'monthly', 'quarterly', 'yearly'])
    parser.add_argument('--reference', help='Date inside the period to analyse (YYYY-MM-DD)')
    parser.add_argument('--history', type=int, help='Trailing periods to use as history')
    parser.add_argument('--log-level', help='Logging level (default: FINENGINE_LOG_LEVEL or INFO)')
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        expenses = load_records(args.expenses)
        income = load_records(args.income)
    except (OSError, ValueError) as exc:
        logger.error("Could not read input: %s", exc)
        return 1

    reference = pd.Timestamp(args.reference).to_pydatetime() if args.reference else None
    snapshot = compute_snapshot(
        args.user,
        expenses,
        income,
        period_type=args.period_type,
        reference=reference,
        history_periods=args.history,
    )
    print(json.dumps(snapshot.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
