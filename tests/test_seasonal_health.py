import datetime as dt

import pytest

from finance_engine.budgets import create_traditional
from finance_engine.health import (
    budget_adherence,
    compute_metrics,
    debt_to_income,
    growth_rate,
    health_score,
    savings_rate,
)
from finance_engine.models import ExpenseRecord, IncomeRecord
from finance_engine.seasonal import seasonal_multipliers


def _expense(amount, category='Food'):
    return ExpenseRecord(amount=amount, category=category, occurred_at=dt.datetime(2024, 6, 3))


def test_seasonal_multipliers_relative_to_overall_average():
    totals = [('2024-01', 200.0), ('2024-02', 100.0), ('2024-03', 100.0), ('2024-04', 0.0)]
    trends = seasonal_multipliers(totals)
    assert len(trends.monthly_multipliers) == 12
    assert trends.multiplier_for(1) == pytest.approx(2.0)
    assert trends.multiplier_for(2) == pytest.approx(1.0)
    assert trends.multiplier_for(4) == pytest.approx(0.0)
    # Months without data sit at the overall average.
    assert trends.multiplier_for(9) == pytest.approx(1.0)


def test_seasonal_multipliers_average_repeated_months():
    trends = seasonal_multipliers([('2023-01', 100.0), ('2024-01', 300.0), ('2024-02', 200.0)])
    assert trends.multiplier_for(1) == pytest.approx(1.0)


def test_seasonal_multipliers_without_spend():
    trends = seasonal_multipliers([])
    assert [m.multiplier for m in trends.monthly_multipliers] == [1.0] * 12
    assert seasonal_multipliers([('2024-05', 0.0)]).multiplier_for(5) == 1.0


def test_quarterly_keys_map_to_start_month():
    trends = seasonal_multipliers([('2024-Q1', 300.0), ('2024-Q3', 100.0)], 'quarterly')
    assert trends.multiplier_for(1) == pytest.approx(1.5)
    assert trends.multiplier_for(7) == pytest.approx(0.5)


def test_perfect_health_score():
    assert health_score(25, 100, -5, 0.05) == 100


@pytest.mark.parametrize('savings, adherence, growth, debt, expected', [
    (20, 0, 0, 0.1, 75),
    (10, 50, 5, 0.3, 68),
    (5, 0, 10, 0.5, 30),
    (4.9, 0, 10.1, 0.6, 0),
])
def test_health_score_bands(savings, adherence, growth, debt, expected):
    assert health_score(savings, adherence, growth, debt) == expected


@pytest.mark.parametrize('inputs', [
    (-500, -300, 900, 50),
    (1e9, 1e9, -1e9, -1),
    (float('nan'), float('inf'), float('-inf'), float('nan')),
])
def test_health_score_is_bounded(inputs):
    score = health_score(*inputs)
    assert isinstance(score, int)
    assert 0 <= score <= 100


def test_budget_adherence():
    assert budget_adherence([], 5000) == 100.0
    assert budget_adherence([1000, 1000], 500) == pytest.approx(75.0)
    assert budget_adherence([1000], 1500) == 0.0
    assert budget_adherence([0], 10) == 0.0


def test_rates_guard_zero_baselines():
    assert savings_rate(0, 100) == 0.0
    assert savings_rate(1000, 800) == pytest.approx(20.0)
    assert growth_rate(100, 0) == 0.0


def test_debt_to_income_uses_debt_categories():
    expenses = [_expense(300, 'Loan Payment'), _expense(200, 'credit card'), _expense(500, 'Food')]
    assert debt_to_income(expenses, 2000) == pytest.approx(0.25)
    assert debt_to_income(expenses, 2000, ['Food']) == pytest.approx(0.25)
    assert debt_to_income(expenses, 0) == 0.0


def test_compute_metrics():
    metrics = compute_metrics(
        current_expenses=[_expense(800), _expense(100, 'Mortgage')],
        current_income=[IncomeRecord(amount=1000, category='Salary', occurred_at=dt.datetime(2024, 6, 1))],
        previous_expenses=[_expense(1000)],
        budgets=[create_traditional('Food', 'Food', 1800)],
    )
    assert metrics.savings_rate == pytest.approx(10.0)
    assert metrics.budget_adherence == pytest.approx(50.0)
    assert metrics.expense_growth_rate == pytest.approx(-10.0)
    assert metrics.debt_to_income_ratio == pytest.approx(0.1)
    # 20 (savings) + 12.5 (adherence) + 25 (growth) + 20 (debt)
    assert metrics.financial_health_score == 78


def test_metrics_without_any_data_are_neutral():
    metrics = compute_metrics([], [])
    assert metrics.savings_rate == 0.0
    assert metrics.budget_adherence == 100.0
    assert metrics.expense_growth_rate == 0.0
    assert metrics.debt_to_income_ratio == 0.0
    assert 0 <= metrics.financial_health_score <= 100


def test_compute_metrics_reads_budget_mappings():
    metrics = compute_metrics(
        current_expenses=[_expense(100)],
        current_income=[],
        budgets=[{'amount': 300, 'category': 'Food'}, {'amount': 200}, 0],
    )
    assert metrics.budget_adherence == pytest.approx(80.0)
