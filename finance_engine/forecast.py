"""Next-period spending forecast, budget risk and savings potential."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .frames import as_frame, total
from .logging_setup import get_logger
from .models import BudgetRisk, ExpenseForecast, Predictions, RiskLevel, SavingsPotential
from .patterns import category_breakdown
from .presets import get_analytics_config
from .stats import (
    mean,
    percent_change,
    predict_next,
    prediction_interval,
    regression_confidence,
)

logger = get_logger(__name__)


def _forecast_presets() -> Dict[str, Any]:
    return get_analytics_config()['forecast']


def predict_total(totals: Sequence[float]) -> float:
    """Linear-trend prediction for the period after ``totals`` (oldest first).

    Empty history predicts 0 and a single value predicts itself. Spend cannot
    be negative, so a steep downward trend is floored at 0.
    """
    if not totals:
        return 0.0
    return max(predict_next(totals), 0.0)


def forecast_expenses(history: Sequence[Any]) -> ExpenseForecast:
    """Predicted total with confidence, interval and category split.

    Args:
        history: Expenses per period, oldest first (records or frames)

    Returns:
        ExpenseForecast. With fewer than ``min_points_for_interval`` periods
        the confidence is the preset constant and the interval collapses
        onto the prediction.
    """
    presets = _forecast_presets()
    frames = [as_frame(period) for period in history]
    totals = [total(frame) for frame in frames]
    predicted = predict_total(totals)

    if len(totals) >= presets['min_points_for_interval']:
        lower, upper = prediction_interval(totals, z=presets['interval_z'])
        lower, upper = max(lower, 0.0), max(upper, 0.0)
    else:
        lower = upper = predicted

    return ExpenseForecast(
        predicted=predicted,
        confidence=regression_confidence(totals, default=presets['confidence']),
        lower=lower,
        upper=upper,
        breakdown=predict_category_breakdown(frames, predicted),
    )


def predict_category_breakdown(history: Sequence[Any], predicted_total: float) -> Dict[str, float]:
    """Split a predicted total by each category's average share of spend.

    A category's share is averaged over the periods in which it appeared;
    periods with no spend are ignored.
    """
    shares: Dict[str, List[float]] = {}
    for period in history:
        breakdown = category_breakdown(as_frame(period))
        for category, share in breakdown.items():
            shares.setdefault(category, []).append(share.percentage)

    return {
        category: predicted_total * mean(percentages) / 100
        for category, percentages in shares.items()
    }


def assess_budget_risk(predicted_total: float, current_expenses: Any) -> BudgetRisk:
    """Grade the predicted change against the current period's spend.

    ``(predicted - current) / current * 100`` above 20% is High risk, above
    10% Medium, otherwise Low. Without current spend the change is 0.
    """
    presets = _forecast_presets()
    frame = as_frame(current_expenses)
    breakdown = category_breakdown(frame)
    current_total = float(sum(share.amount for share in breakdown.values()))
    increase = percent_change(predicted_total, current_total)

    level, probability = RiskLevel.LOW, presets['default_risk_probability']
    for band in presets['risk_levels']:
        if increase > band['above_percent']:
            level, probability = RiskLevel(band['level']), band['probability']
            break

    return BudgetRisk(
        level=level,
        probability=probability,
        categories=list(breakdown)[:presets['risk_category_count']],
        increase_percent=increase,
    )


def _savings_rate(income: float, expenses: float) -> Optional[float]:
    if income <= 0:
        return None
    return (income - expenses) / income * 100


def savings_potential(
    current_income: float,
    current_expenses: float,
    history_income: Sequence[float] = (),
    history_expenses: Sequence[float] = (),
) -> SavingsPotential:
    """Extra saving needed to reach the target savings rate.

    The target rate is ``max(historical average rate + 5, 20)`` percent.
    The potential is ``income * target - (income - expenses)``, floored at
    0. Recommendations are only produced when there is something to save.
    """
    presets = _forecast_presets()
    rates = [
        rate
        for rate in (
            _savings_rate(income, expenses)
            for income, expenses in zip(history_income, history_expenses)
        )
        if rate is not None
    ]
    target_rate = max(mean(rates) + presets['savings_target_bump'], presets['savings_target_floor'])
    current_rate = _savings_rate(current_income, current_expenses) or 0.0

    potential = 0.0
    if current_income > 0:
        potential = current_income * target_rate / 100 - (current_income - current_expenses)
    amount = max(potential, 0.0)

    recommendations: List[str] = []
    if amount > 0:
        recommendations = [
            f"Reduce spending by {amount:.2f} to reach {target_rate:.1f}% savings rate",
            'Consider reviewing discretionary expenses',
            'Look for subscription services you can cancel',
        ]

    return SavingsPotential(
        amount=amount,
        target_rate=target_rate,
        current_rate=current_rate,
        recommendations=recommendations,
    )


def generate_predictions(
    history_expenses: Sequence[Any],
    history_income: Sequence[Any],
    current_expenses: Any,
    current_income: Any,
) -> Predictions:
    """Forecast, budget risk and savings potential in one pass.

    Args:
        history_expenses: Expenses per trailing period, oldest first
        history_income: Income per trailing period, aligned with ``history_expenses``
        current_expenses: Current-period expenses
        current_income: Current-period income
    """
    forecast = forecast_expenses(history_expenses)
    logger.debug(
        "Forecast %.2f from %d periods (confidence %.2f)",
        forecast.predicted, len(history_expenses), forecast.confidence,
    )
    return Predictions(
        next_period_expenses=forecast,
        budget_risk=assess_budget_risk(forecast.predicted, current_expenses),
        savings_potential=savings_potential(
            total(as_frame(current_income)),
            total(as_frame(current_expenses)),
            [total(as_frame(period)) for period in history_income],
            [total(as_frame(period)) for period in history_expenses],
        ),
    )
