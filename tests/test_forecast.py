import datetime as dt

import pytest

from finance_engine.forecast import (
    assess_budget_risk,
    forecast_expenses,
    generate_predictions,
    predict_category_breakdown,
    predict_total,
    savings_potential,
)
from finance_engine.models import ExpenseRecord, IncomeRecord, RiskLevel


def _period(month, **amounts):
    return [
        ExpenseRecord(amount=amount, category=category, occurred_at=dt.datetime(2024, month, 10))
        for category, amount in amounts.items()
    ]


def test_predict_total_degenerate_cases():
    assert predict_total([]) == 0.0
    assert predict_total([1234.5]) == 1234.5


def test_predict_total_follows_trend_and_floors_at_zero():
    assert predict_total([100, 200, 300]) == pytest.approx(400.0)
    assert predict_total([300, 100, 0]) == 0.0


def test_forecast_with_short_history_uses_default_confidence():
    forecast = forecast_expenses([_period(1, Food=100)])
    assert forecast.predicted == pytest.approx(100.0)
    assert forecast.confidence == pytest.approx(0.75)
    assert forecast.lower == forecast.upper == forecast.predicted


def test_forecast_interval_with_enough_history():
    history = [_period(m, Food=100 + 10 * m, Rent=1000) for m in (1, 2, 3, 4)]
    forecast = forecast_expenses(history)
    assert forecast.predicted == pytest.approx(1150.0)
    assert forecast.lower <= forecast.predicted <= forecast.upper
    assert forecast.confidence == pytest.approx(1.0)
    assert sum(forecast.breakdown.values()) == pytest.approx(forecast.predicted)


def test_category_breakdown_prediction_uses_average_share():
    history = [_period(1, Rent=750, Food=250), _period(2, Rent=500, Food=500)]
    breakdown = predict_category_breakdown(history, 1000)
    assert breakdown['Rent'] == pytest.approx(625.0)
    assert breakdown['Food'] == pytest.approx(375.0)


@pytest.mark.parametrize('predicted, level, probability', [
    (1250, RiskLevel.HIGH, 0.8),
    (1150, RiskLevel.MEDIUM, 0.5),
    (1090, RiskLevel.LOW, 0.2),
    (500, RiskLevel.LOW, 0.2),
])
def test_budget_risk_levels(predicted, level, probability):
    risk = assess_budget_risk(predicted, _period(5, Rent=700, Food=200, Fun=60, Misc=40))
    assert risk.level is level
    assert risk.probability == pytest.approx(probability)
    assert risk.categories == ['Rent', 'Food', 'Fun']


def test_budget_risk_without_current_spend_is_low():
    risk = assess_budget_risk(5000, [])
    assert risk.level is RiskLevel.LOW
    assert risk.increase_percent == 0.0
    assert risk.categories == []


def test_savings_potential_targets_at_least_twenty_percent():
    potential = savings_potential(current_income=5000, current_expenses=4500)
    assert potential.target_rate == pytest.approx(20.0)
    assert potential.current_rate == pytest.approx(10.0)
    assert potential.amount == pytest.approx(500.0)
    assert len(potential.recommendations) == 3


def test_savings_potential_raises_target_above_history():
    potential = savings_potential(
        current_income=1000, current_expenses=500,
        history_income=[1000, 1000], history_expenses=[700, 700],
    )
    assert potential.target_rate == pytest.approx(35.0)
    assert potential.amount == 0.0
    assert potential.recommendations == []


def test_savings_potential_without_income():
    potential = savings_potential(current_income=0, current_expenses=300)
    assert potential.amount == 0.0
    assert potential.current_rate == 0.0


def test_generate_predictions_combines_parts():
    history = [_period(m, Food=100) for m in (1, 2, 3)]
    income = [[IncomeRecord(amount=1000, category='Salary', occurred_at=dt.datetime(2024, m, 1))] for m in (1, 2, 3)]
    predictions = generate_predictions(history, income, history[-1], income[-1])
    assert predictions.next_period_expenses.predicted == pytest.approx(100.0)
    assert predictions.budget_risk.level is RiskLevel.LOW
    assert predictions.savings_potential.current_rate == pytest.approx(90.0)
