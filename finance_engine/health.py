"""Financial health metrics and the composite 0-100 health score.

Score bands:

* savings rate (max 30): >=20% -> 30, >=10% -> 20, >=5% -> 10
* budget adherence (max 25): adherence% / 100 * 25
* expense growth (max 25): <=0% -> 25, <=5% -> 20, <=10% -> 10
* debt-to-income (max 20): <=0.1 -> 20, <=0.3 -> 15, <=0.5 -> 10
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional, Sequence

from .frames import as_frame, total
from .models import Metrics
from .presets import get_config_value
from .stats import percent_change

SAVINGS_BANDS = ((20.0, 30), (10.0, 20), (5.0, 10))
GROWTH_BANDS = ((0.0, 25), (5.0, 20), (10.0, 10))
DEBT_BANDS = ((0.1, 20), (0.3, 15), (0.5, 10))
ADHERENCE_WEIGHT = 25


def _finite(value: float) -> float:
    return value if isinstance(value, (int, float)) and math.isfinite(value) else 0.0


def health_score(
    savings_rate: float,
    budget_adherence_percent: float,
    expense_growth_rate: float,
    debt_to_income_ratio: float,
) -> int:
    """Weighted composite score, clamped to [0, 100]."""
    score = 0.0

    savings_rate = _finite(savings_rate)
    score += next((points for floor, points in SAVINGS_BANDS if savings_rate >= floor), 0)

    score += _finite(budget_adherence_percent) / 100 * ADHERENCE_WEIGHT

    growth = _finite(expense_growth_rate)
    score += next((points for ceiling, points in GROWTH_BANDS if growth <= ceiling), 0)

    debt = _finite(debt_to_income_ratio)
    score += next((points for ceiling, points in DEBT_BANDS if debt <= ceiling), 0)

    return int(round(min(100.0, max(0.0, score))))


def savings_rate(income: float, expenses: float) -> float:
    if income <= 0:
        return 0.0
    return (income - expenses) / income * 100


def growth_rate(current_expenses: float, previous_expenses: float) -> float:
    return percent_change(current_expenses, previous_expenses)


def budget_adherence(budget_amounts: Sequence[float], total_spent: float) -> float:
    """Percentage of the combined budget left unspent, floored at 0.

    No budgets at all counts as full adherence (100); budgets that add up to
    nothing give 0.
    """
    if not budget_amounts:
        return 100.0
    total_budget = float(sum(budget_amounts))
    if total_budget <= 0:
        return 0.0
    return max(0.0, (total_budget - total_spent) / total_budget * 100)


def debt_to_income(
    expenses: Any,
    income_total: float,
    debt_categories: Optional[Iterable[str]] = None,
) -> float:
    """Debt payments as a fraction of income.

    Debt payments are expenses in ``debt_categories`` (case-insensitive,
    defaulting to the analytics presets). No income gives 0.
    """
    if income_total <= 0:
        return 0.0
    if debt_categories is None:
        debt_categories = get_config_value('analytics', 'metrics', 'debt_categories', default=[])
    wanted = {c.strip().lower() for c in debt_categories}
    frame = as_frame(expenses)
    if frame.empty or not wanted:
        return 0.0
    mask = frame['Category'].str.strip().str.lower().isin(wanted)
    return float(frame.loc[mask, 'Amount'].sum()) / income_total


def _budget_amount(budget: Any) -> float:
    if isinstance(budget, (int, float)):
        return float(budget)
    if isinstance(budget, Mapping):
        return float(budget.get('amount', 0) or 0)
    return float(budget.amount)


def compute_metrics(
    current_expenses: Any,
    current_income: Any,
    previous_expenses: Any = None,
    budgets: Sequence[Any] = (),
    debt_categories: Optional[Iterable[str]] = None,
) -> Metrics:
    """Savings rate, adherence, growth, debt ratio and health score for a period.

    Args:
        current_expenses: Current-period expenses
        current_income: Current-period income
        previous_expenses: Expenses of the preceding period
        budgets: Budgets in force (budget objects, mappings or plain amounts)
        debt_categories: Categories counted as debt payments
    """
    expense_frame = as_frame(current_expenses)
    spent = total(expense_frame)
    earned = total(as_frame(current_income))
    previous = total(as_frame(previous_expenses))

    rate = savings_rate(earned, spent)
    adherence = budget_adherence([_budget_amount(b) for b in budgets], spent)
    growth = growth_rate(spent, previous)
    debt_ratio = debt_to_income(expense_frame, earned, debt_categories)

    return Metrics(
        budget_adherence=adherence,
        savings_rate=rate,
        expense_growth_rate=growth,
        debt_to_income_ratio=debt_ratio,
        financial_health_score=health_score(rate, adherence, growth, debt_ratio),
    )
