"""Conversion of input records into analysis DataFrames.

Every analyzer works on the same frame layout: ``Transaction Date``,
``Amount``, ``Category`` plus the derived ``Weekday`` and ``Month``
columns. Records may be the engine dataclasses or plain mappings coming
straight from the storage layer (``amount``, ``category`` and one of
``occurred_at`` / ``date`` / ``createdAt``).
"""

from __future__ import annotations

import dataclasses
import datetime as dt
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from .logging_setup import get_logger
from .periods import to_naive

logger = get_logger(__name__)

FRAME_COLUMNS = ['Transaction Date', 'Amount', 'Category', 'Weekday', 'Month']
_DATE_KEYS = ('occurred_at', 'date', 'createdAt', 'created_at')


def _row(record: Any) -> dict:
    if dataclasses.is_dataclass(record):
        data: Mapping[str, Any] = dataclasses.asdict(record)
    elif isinstance(record, Mapping):
        data = record
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    when = next((data[key] for key in _DATE_KEYS if data.get(key) is not None), None)
    if isinstance(when, (dt.datetime, dt.date)):
        when = to_naive(when)
    return {
        'Transaction Date': when,
        'Amount': data.get('amount'),
        'Category': data.get('category'),
    }


def _prepare(frame: pd.DataFrame) -> pd.DataFrame:
    """Coerce types and add time-based columns."""
    raw_dates = frame['Transaction Date']
    # Storage mixes bare dates with full timestamps, so no single format is inferred.
    frame['Transaction Date'] = pd.to_datetime(raw_dates, errors='coerce', utc=True, format='ISO8601')
    unparsed = int((raw_dates.notna() & frame['Transaction Date'].isna()).sum())
    if unparsed:
        logger.warning("Dropping %d record(s) with unparseable dates", unparsed)
    frame['Transaction Date'] = frame['Transaction Date'].dt.tz_localize(None)

    # Non-numeric and negative amounts are neutralised, not rejected.
    frame['Amount'] = pd.to_numeric(frame['Amount'], errors='coerce').fillna(0.0).clip(lower=0.0)

    frame['Category'] = frame['Category'].fillna('Uncategorized').astype(str)
    frame.loc[frame['Category'].str.strip() == '', 'Category'] = 'Uncategorized'

    frame['Weekday'] = frame['Transaction Date'].dt.day_name()
    frame['Month'] = frame['Transaction Date'].dt.month
    return frame


def records_frame(records: Optional[Iterable[Any]]) -> pd.DataFrame:
    """Build an analysis frame from expense or income records."""
    rows = [_row(record) for record in (records or [])]
    if not rows:
        return empty_frame()
    return _prepare(pd.DataFrame(rows, columns=['Transaction Date', 'Amount', 'Category']))


expenses_frame = records_frame
income_frame = records_frame


def empty_frame() -> pd.DataFrame:
    frame = pd.DataFrame({
        'Transaction Date': pd.Series(dtype='datetime64[ns]'),
        'Amount': pd.Series(dtype=float),
        'Category': pd.Series(dtype=object),
        'Weekday': pd.Series(dtype=object),
        'Month': pd.Series(dtype=float),
    })
    return frame[FRAME_COLUMNS]


def filter_period(frame: pd.DataFrame, start: dt.datetime, end: dt.datetime) -> pd.DataFrame:
    """Rows with ``start <= Transaction Date < end``."""
    if frame.empty:
        return frame.copy()
    dates = frame['Transaction Date']
    mask = (dates >= pd.Timestamp(start)) & (dates < pd.Timestamp(end))
    return frame[mask].copy()


def total(frame: pd.DataFrame) -> float:
    if frame.empty:
        return 0.0
    return float(frame['Amount'].sum())


def as_frame(data: Any) -> pd.DataFrame:
    """Accept either a prepared frame or a sequence of records."""
    if isinstance(data, pd.DataFrame):
        return data
    return records_frame(data)
