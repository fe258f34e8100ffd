"""Period reports: summary figures, category tables, trend series and comparisons.

Reports cover an arbitrary ``[start, end)`` window or a single period key and
return plain dictionaries ready for JSON output. Expenses and income may be
record sequences or prepared frames.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .frames import as_frame, filter_period, total
from .logging_setup import get_logger
from .models import PeriodType
from .periods import PeriodTypeLike, bounds, coerce_period_type, previous, resolve, to_naive
from .stats import mean, median, percent_change, percentage

logger = get_logger(__name__)

DateLike = Union[dt.datetime, dt.date]

TREND_CHANGE_THRESHOLD = 10.0
DAY_FORMAT = '%Y-%m-%d'


def _expense_entry(row: pd.Series) -> Dict[str, Any]:
    when = row['Transaction Date']
    return {
        'amount': float(row['Amount']),
        'category': row['Category'],
        'date': None if pd.isna(when) else when.to_pydatetime(),
    }


def period_summary(expenses: Any, income: Any) -> Dict[str, Any]:
    """Totals, savings rate and per-transaction figures for one window.

    Args:
        expenses: Expenses already limited to the window
        income: Income already limited to the window

    Returns:
        Dict with totals, ``savings_rate`` (percent of income, 0 without
        income), average and median transaction, and the largest and smallest
        expense (``None`` when there are no expenses)
    """
    expense_frame = as_frame(expenses)
    income_frame = as_frame(income)
    spent = total(expense_frame)
    earned = total(income_frame)
    net = earned - spent

    amounts = expense_frame['Amount'].tolist()
    largest = smallest = None
    if not expense_frame.empty:
        largest = _expense_entry(expense_frame.loc[expense_frame['Amount'].idxmax()])
        smallest = _expense_entry(expense_frame.loc[expense_frame['Amount'].idxmin()])

    return {
        'total_expenses': spent,
        'total_income': earned,
        'net_cash_flow': net,
        'savings_rate': percentage(net, earned),
        'transaction_count': len(expense_frame),
        'income_transaction_count': len(income_frame),
        'average_transaction': mean(amounts),
        'median_transaction': median(amounts),
        'largest_expense': largest,
        'smallest_expense': smallest,
    }


def category_trend(expenses: pd.DataFrame) -> str:
    """``increasing``, ``decreasing`` or ``stable`` across calendar months.

    Monthly totals are split into an earlier and a later half; a change of
    more than 10% between the half averages sets the direction.
    """
    dated = expenses.dropna(subset=['Transaction Date'])
    if len(dated) < 2:
        return 'stable'
    monthly = dated.groupby(dated['Transaction Date'].dt.strftime('%Y-%m'))['Amount'].sum().sort_index()
    if len(monthly) < 2:
        return 'stable'

    values = monthly.tolist()
    middle = len(values) // 2
    change = percent_change(mean(values[middle:]), mean(values[:middle]))
    if change > TREND_CHANGE_THRESHOLD:
        return 'increasing'
    if change < -TREND_CHANGE_THRESHOLD:
        return 'decreasing'
    return 'stable'


def category_report(expenses: Any) -> List[Dict[str, Any]]:
    """Per-category amount, count, share, average amount and trend.

    Ordered by amount (largest first), ties by category name.
    """
    frame = as_frame(expenses)
    if frame.empty:
        return []

    overall = total(frame)
    rows = []
    for category, group in frame.groupby('Category'):
        amount = float(group['Amount'].sum())
        count = len(group)
        rows.append({
            'category': category,
            'amount': amount,
            'count': count,
            'percentage': percentage(amount, overall),
            'average_amount': amount / count,
            'trend': category_trend(group),
        })
    rows.sort(key=lambda row: (-row['amount'], row['category']))
    return rows


def _daily_sums(frame: pd.DataFrame, days: pd.Index) -> pd.DataFrame:
    if frame.empty:
        return pd.DataFrame({'amount': 0.0, 'transactions': 0}, index=days)
    grouped = frame.groupby(frame['Transaction Date'].dt.strftime(DAY_FORMAT))['Amount'].agg(
        amount='sum', transactions='count',
    )
    return grouped.reindex(days, fill_value=0)


def _series(daily: pd.DataFrame, key: str) -> List[Dict[str, Any]]:
    grouped = daily.groupby(key, sort=False)[['expenses', 'income', 'transactions']].sum()
    return [
        {
            key: label,
            'expenses': float(row['expenses']),
            'income': float(row['income']),
            'transactions': int(row['transactions']),
        }
        for label, row in grouped.iterrows()
    ]


def trend_series(expenses: Any, income: Any, start: DateLike, end: DateLike) -> Dict[str, List[Dict[str, Any]]]:
    """Daily, weekly (ISO ``YYYY-WW``) and monthly (``YYYY-MM``) series.

    Every day of ``[start, end)`` appears, with zeros where nothing happened.
    Records outside the window are ignored.

    Example:
        >>> trend_series(expenses, income, dt.date(2024, 3, 1), dt.date(2024, 4, 1))['monthly']
        [{'month': '2024-03', 'expenses': 1250.0, 'income': 3000.0, 'transactions': 2}]
    """
    start, end = to_naive(start), to_naive(end)
    days = pd.date_range(pd.Timestamp(start).normalize(), pd.Timestamp(end), freq='D', inclusive='left')
    day_keys = days.strftime(DAY_FORMAT)
    spent = _daily_sums(filter_period(as_frame(expenses), start, end), day_keys)
    earned = _daily_sums(filter_period(as_frame(income), start, end), day_keys)

    daily = pd.DataFrame({
        'date': day_keys,
        'week': [resolve(PeriodType.WEEKLY, day) for day in days],
        'month': days.strftime('%Y-%m'),
        'expenses': spent['amount'].to_numpy(dtype=float),
        'income': earned['amount'].to_numpy(dtype=float),
        'transactions': spent['transactions'].to_numpy(dtype=int),
    })
    return {
        'daily': _series(daily, 'date'),
        'weekly': _series(daily, 'week'),
        'monthly': _series(daily, 'month'),
    }


def _frequency(counts: pd.Series) -> Dict[str, float]:
    return {
        'average': mean(counts.tolist()),
        'max': int(counts.max()) if not counts.empty else 0,
        'active_periods': len(counts),
    }


def frequency_stats(expenses: Any) -> Dict[str, Dict[str, float]]:
    """Transactions per active day, ISO week and month.

    Only periods with at least one expense count towards the average.
    """
    frame = as_frame(expenses).dropna(subset=['Transaction Date'])
    dates = frame['Transaction Date']
    weeks = dates.map(lambda when: resolve(PeriodType.WEEKLY, when))
    return {
        'daily': _frequency(frame.groupby(dates.dt.strftime(DAY_FORMAT)).size()),
        'weekly': _frequency(frame.groupby(weeks).size()),
        'monthly': _frequency(frame.groupby(dates.dt.strftime('%Y-%m')).size()),
    }


def _comparison(spent: float, earned: float, previous_spent: float, previous_earned: float) -> Dict[str, Any]:
    net = earned - spent
    previous_net = previous_earned - previous_spent
    return {
        'expenses': {
            'current': spent,
            'previous': previous_spent,
            'change': percent_change(spent, previous_spent),
            'change_amount': spent - previous_spent,
        },
        'income': {
            'current': earned,
            'previous': previous_earned,
            'change': percent_change(earned, previous_earned),
            'change_amount': earned - previous_earned,
        },
        # A deficit baseline gives no meaningful relative change.
        'net_cash_flow': {
            'current': net,
            'previous': previous_net,
            'change': percent_change(net, previous_net) if previous_net > 0 else 0.0,
        },
    }


def _window_totals(expenses: pd.DataFrame, income: pd.DataFrame, start: dt.datetime, end: dt.datetime):
    return total(filter_period(expenses, start, end)), total(filter_period(income, start, end))


def compare_windows(expenses: Any, income: Any, start: DateLike, end: DateLike) -> Dict[str, Any]:
    """Compare ``[start, end)`` with the equally long window right before it."""
    start, end = to_naive(start), to_naive(end)
    expense_frame, income_frame = as_frame(expenses), as_frame(income)
    spent, earned = _window_totals(expense_frame, income_frame, start, end)
    previous_spent, previous_earned = _window_totals(expense_frame, income_frame, start - (end - start), start)
    return _comparison(spent, earned, previous_spent, previous_earned)


def compare_periods(expenses: Any, income: Any, key: str, period_type: PeriodTypeLike) -> Dict[str, Any]:
    """Compare period ``key`` with the calendar period before it.

    Raises:
        InvalidPeriodKeyError: If ``key`` is not a valid key for the type
    """
    period_type = coerce_period_type(period_type)
    expense_frame, income_frame = as_frame(expenses), as_frame(income)
    spent, earned = _window_totals(expense_frame, income_frame, *bounds(key, period_type))
    previous_spent, previous_earned = _window_totals(
        expense_frame, income_frame, *bounds(previous(key, period_type), period_type),
    )
    return _comparison(spent, earned, previous_spent, previous_earned)


def _report(expenses: pd.DataFrame, income: pd.DataFrame, start: dt.datetime, end: dt.datetime) -> Dict[str, Any]:
    current_expenses = filter_period(expenses, start, end)
    current_income = filter_period(income, start, end)
    return {
        'period': {'start': start, 'end': end, 'duration_days': (end - start).days},
        'summary': period_summary(current_expenses, current_income),
        'categories': category_report(current_expenses),
        'trends': trend_series(current_expenses, current_income, start, end),
        'frequency': frequency_stats(current_expenses),
    }


def generate_report(
    expenses: Any,
    income: Any,
    start: DateLike,
    end: DateLike,
    include_comparison: bool = False,
) -> Dict[str, Any]:
    """Full report for the window ``[start, end)``.

    Args:
        expenses: Expense records or frame, any date range
        income: Income records or frame, any date range
        start: First instant of the window
        end: Instant just past the window
        include_comparison: Add a comparison against the preceding window
            of equal length

    Returns:
        Dict with ``period``, ``summary``, ``categories``, ``trends``,
        ``frequency`` and ``comparison`` (``None`` unless requested)
    """
    start, end = to_naive(start), to_naive(end)
    expense_frame, income_frame = as_frame(expenses), as_frame(income)
    report = _report(expense_frame, income_frame, start, end)
    report['comparison'] = (
        compare_windows(expense_frame, income_frame, start, end) if include_comparison else None
    )
    logger.info("Generated report for %s to %s", start.date(), end.date())
    return report


def period_report(
    expenses: Any,
    income: Any,
    key: str,
    period_type: PeriodTypeLike = PeriodType.MONTHLY,
    include_comparison: bool = True,
) -> Dict[str, Any]:
    """Report for a single period key, compared with the previous period."""
    period_type = coerce_period_type(period_type)
    start, end = bounds(key, period_type)
    expense_frame, income_frame = as_frame(expenses), as_frame(income)
    report = _report(expense_frame, income_frame, start, end)
    report['period']['key'] = key
    report['period']['period_type'] = period_type.value
    report['comparison'] = (
        compare_periods(expense_frame, income_frame, key, period_type) if include_comparison else None
    )
    logger.info("Generated %s report for %s", period_type.value, key)
    return report


def latest_report(
    expenses: Any,
    income: Any,
    period_type: PeriodTypeLike = PeriodType.MONTHLY,
    reference: Optional[DateLike] = None,
) -> Dict[str, Any]:
    """Report for the period containing ``reference`` (defaults to now, UTC)."""
    if reference is None:
        reference = dt.datetime.now(dt.timezone.utc)
    return period_report(expenses, income, resolve(period_type, reference), period_type)
