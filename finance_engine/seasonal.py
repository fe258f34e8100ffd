"""Seasonal spending multipliers per calendar month."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .models import MonthlyMultiplier, PeriodType, SeasonalTrends
from .periods import PeriodTypeLike, coerce_period_type, period_month
from .stats import mean


def seasonal_multipliers(
    period_totals: Sequence[Tuple[str, float]],
    period_type: PeriodTypeLike = PeriodType.MONTHLY,
) -> SeasonalTrends:
    """How each calendar month compares with the overall average.

    Args:
        period_totals: ``(period key, total spend)`` pairs, ideally 12 or more
        period_type: Type of the keys; each period maps to the month it starts in

    Returns:
        SeasonalTrends with exactly 12 entries. ``multiplier = month average /
        overall average``; months without data and a zero overall average
        both give 1.
    """
    period_type = coerce_period_type(period_type)
    by_month: Dict[int, List[float]] = {}
    for key, amount in period_totals:
        by_month.setdefault(period_month(key, period_type), []).append(float(amount))

    overall = mean([amount for _, amount in period_totals])
    multipliers = []
    for month in range(1, 13):
        values = by_month.get(month)
        month_average = mean(values) if values else overall
        multipliers.append(MonthlyMultiplier(
            month=month,
            multiplier=month_average / overall if overall > 0 else 1.0,
        ))
    return SeasonalTrends(monthly_multipliers=multipliers)
