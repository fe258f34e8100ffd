"""Assembly of the per-user analytics snapshot."""

from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, List, Optional, Sequence, Union

import pandas as pd

from .anomalies import AnomalyDetector, historical_category_stats, sort_anomalies
from .config import get_history_periods
from .forecast import generate_predictions
from .frames import as_frame, filter_period, total
from .health import compute_metrics
from .logging_setup import get_logger
from .models import AnalyticsSnapshot
from .patterns import analyze_spending_patterns
from .periods import PeriodTypeLike, bounds, coerce_period_type, last_n, previous, to_naive
from .seasonal import seasonal_multipliers

logger = get_logger(__name__)


def _window(frame: pd.DataFrame, key: str, period_type) -> pd.DataFrame:
    start, end = bounds(key, period_type)
    return filter_period(frame, start, end)


def compute_snapshot(
    user_id: str,
    expenses: Any,
    income: Any,
    budgets: Sequence[Any] = (),
    *,
    period_type: PeriodTypeLike = 'monthly',
    reference: Optional[Union[dt.datetime, dt.date]] = None,
    history_periods: Optional[int] = None,
    debt_categories: Optional[Iterable[str]] = None,
    detector: Optional[AnomalyDetector] = None,
) -> AnalyticsSnapshot:
    """Compute every analytic for the period containing ``reference``.

    Args:
        user_id: Owner of the records
        expenses: All expenses available for the user (records or frame);
            only those inside the analysed windows are used
        income: All income available for the user (records or frame)
        budgets: Budgets counted towards budget adherence
        period_type: weekly, monthly, quarterly or yearly
        reference: Instant inside the current period (defaults to now, UTC)
        history_periods: Trailing periods, current included (default from config)
        debt_categories: Categories counted as debt payments
        detector: Anomaly detector to use instead of the preset-configured one

    Returns:
        AnalyticsSnapshot keyed by ``(user_id, period, period_type)``. Nothing
        is returned if any step fails; the error is logged and re-raised.
    """
    period_type = coerce_period_type(period_type)
    reference = to_naive(reference) if reference is not None else (
        dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    )
    n_periods = history_periods if history_periods is not None else get_history_periods()

    try:
        expense_frame = as_frame(expenses)
        income_frame = as_frame(income)

        history_keys: List[str] = last_n(period_type, max(n_periods, 1), reference)
        current_key = history_keys[-1]
        previous_key = previous(current_key, period_type)

        current_expenses = _window(expense_frame, current_key, period_type)
        current_income = _window(income_frame, current_key, period_type)
        previous_expenses = _window(expense_frame, previous_key, period_type)
        history_expenses = [_window(expense_frame, key, period_type) for key in history_keys]
        history_income = [_window(income_frame, key, period_type) for key in history_keys]

        logger.debug(
            "Snapshot inputs for %s %s: %d current expenses, %d history periods",
            user_id, current_key, len(current_expenses), len(history_keys),
        )

        stats = historical_category_stats(history_expenses)
        detector = detector or AnomalyDetector()

        snapshot = AnalyticsSnapshot(
            user_id=user_id,
            period=current_key,
            period_type=period_type,
            spending_patterns=analyze_spending_patterns(current_expenses, current_income, previous_expenses),
            anomalies=sort_anomalies(detector.detect(current_expenses, stats)),
            predictions=generate_predictions(
                history_expenses, history_income, current_expenses, current_income,
            ),
            seasonal_trends=seasonal_multipliers(
                [(key, total(frame)) for key, frame in zip(history_keys, history_expenses)],
                period_type,
            ),
            metrics=compute_metrics(
                current_expenses, current_income, previous_expenses, budgets, debt_categories,
            ),
            computed_at=dt.datetime.now(dt.timezone.utc).replace(tzinfo=None),
        )
    except Exception:
        logger.exception("Failed to compute %s analytics for user %s", period_type.value, user_id)
        raise

    logger.info(
        "Computed %s analytics for user %s, period %s (%d anomalies, health score %d)",
        period_type.value, user_id, snapshot.period,
        len(snapshot.anomalies), snapshot.metrics.financial_health_score,
    )
    return snapshot
