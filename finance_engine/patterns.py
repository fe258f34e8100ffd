"""Spending pattern analysis for a single period."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from .frames import as_frame, total
from .logging_setup import get_logger
from .models import CategoryShare, DailyAverages, SpendingPatterns
from .presets import get_config_value
from .stats import percent_change, percentage

logger = get_logger(__name__)

WEEKDAY_ORDER = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
WEEKEND_DAYS = {'Saturday', 'Sunday'}


def category_breakdown(expenses: pd.DataFrame) -> Dict[str, CategoryShare]:
    """Amount, share of total and transaction count per category.

    Ordered by amount (largest first), ties by category name.
    """
    if expenses.empty:
        return {}

    grouped = expenses.groupby('Category')['Amount'].agg(spent='sum', transactions='count').reset_index()
    grouped = grouped.sort_values(['spent', 'Category'], ascending=[False, True])
    overall = float(grouped['spent'].sum())

    breakdown: Dict[str, CategoryShare] = {}
    for row in grouped.itertuples(index=False):
        amount = float(row.spent)
        breakdown[row.Category] = CategoryShare(
            category=row.Category,
            amount=amount,
            percentage=percentage(amount, overall),
            transaction_count=int(row.transactions),
        )
    return breakdown


def daily_averages(expenses: pd.DataFrame) -> DailyAverages:
    """Mean expense amount on weekdays (Mon-Fri) and weekends (Sat-Sun)."""
    if expenses.empty:
        return DailyAverages(weekdays=0.0, weekends=0.0)

    dated = expenses.dropna(subset=['Transaction Date'])
    is_weekend = dated['Weekday'].isin(WEEKEND_DAYS)
    weekday_amounts = dated.loc[~is_weekend, 'Amount']
    weekend_amounts = dated.loc[is_weekend, 'Amount']
    return DailyAverages(
        weekdays=float(weekday_amounts.mean()) if not weekday_amounts.empty else 0.0,
        weekends=float(weekend_amounts.mean()) if not weekend_amounts.empty else 0.0,
    )


def peak_spending_days(expenses: pd.DataFrame, count: Optional[int] = None) -> List[str]:
    """Weekday names with the highest total spend, Monday-first on ties."""
    if count is None:
        count = int(get_config_value('analytics', 'patterns', 'peak_day_count', default=3))
    if expenses.empty:
        return []

    totals = expenses.dropna(subset=['Transaction Date']).groupby('Weekday')['Amount'].sum()
    ranked = sorted(
        totals.items(),
        key=lambda item: (-item[1], WEEKDAY_ORDER.index(item[0])),
    )
    return [day for day, _ in ranked[:count]]


def analyze_spending_patterns(
    expenses: Any,
    income: Any,
    previous_expenses: Any = None,
) -> SpendingPatterns:
    """Totals, category breakdown, weekday/weekend behaviour and velocity.

    Args:
        expenses: Current-period expenses (records or prepared frame)
        income: Current-period income (records or prepared frame)
        previous_expenses: Expenses of the preceding period, used for velocity

    Returns:
        SpendingPatterns for the period. ``spending_velocity`` is the percent
        change in total spend versus the previous period, 0 without one.
    """
    expense_frame = as_frame(expenses)
    income_frame = as_frame(income)
    previous_frame = as_frame(previous_expenses)

    breakdown = category_breakdown(expense_frame)
    total_expenses = float(sum(share.amount for share in breakdown.values()))
    total_income = total(income_frame)
    previous_total = total(previous_frame)

    logger.debug(
        "Analyzing %d expenses across %d categories (previous total %.2f)",
        len(expense_frame), len(breakdown), previous_total,
    )

    return SpendingPatterns(
        total_expenses=total_expenses,
        total_income=total_income,
        net_cash_flow=total_income - total_expenses,
        category_breakdown=breakdown,
        daily_averages=daily_averages(expense_frame),
        peak_spending_days=peak_spending_days(expense_frame),
        spending_velocity=percent_change(total_expenses, previous_total),
    )
