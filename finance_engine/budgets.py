"""Budget methodologies: creation, spend tracking and analysis.

Four variants are supported:

* traditional: one amount against one category
* 50/30/20: income split into needs / wants / savings buckets
* zero-based: every unit of income assigned to an explicit allocation
* envelope: named virtual envelopes that deplete as matching spend occurs

Budgets are frozen dataclasses. ``update_spending`` returns a new budget
whose spent figures are recomputed from the full expense list, so calling it
twice with the same expenses gives the same result.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import UnknownBudgetTypeError
from .frames import as_frame
from .logging_setup import get_logger
from .models import (
    Allocation,
    Budget,
    BudgetAnalysis,
    BudgetType,
    Bucket,
    Envelope,
    EnvelopeBudget,
    FiftyThirtyTwentyBudget,
    TraditionalBudget,
    ZeroBasedBudget,
)
from .presets import get_budget_config
from .stats import percentage

logger = get_logger(__name__)

BUCKET_NAMES = ('needs', 'wants', 'savings')


def _alert_threshold(value: Optional[float]) -> float:
    if value is not None:
        return value
    return get_budget_config()['settings']['alert_threshold']


def spend_by_category(expenses: Any) -> Dict[str, float]:
    """Total spend per category for a set of expenses."""
    frame = as_frame(expenses)
    if frame.empty:
        return {}
    return {str(k): float(v) for k, v in frame.groupby('Category')['Amount'].sum().items()}


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_traditional(
    name: str,
    category: str,
    amount: float,
    alert_threshold: Optional[float] = None,
) -> TraditionalBudget:
    return TraditionalBudget(
        name=name,
        category=category,
        amount=float(amount),
        alert_threshold=_alert_threshold(alert_threshold),
    )


def create_fifty_thirty_twenty(
    total_income: float,
    name: str = '50/30/20 Budget',
    categories: Optional[Mapping[str, Iterable[str]]] = None,
    alert_threshold: Optional[float] = None,
) -> FiftyThirtyTwentyBudget:
    """Allocate income into needs (50%), wants (30%) and savings (20%).

    Args:
        total_income: Income to allocate
        name: Display name
        categories: Optional per-bucket category lists overriding the presets

    Returns:
        FiftyThirtyTwentyBudget with nothing spent yet

    Example:
        >>> budget = create_fifty_thirty_twenty(25000)
        >>> budget.needs.allocated, budget.wants.allocated, budget.savings.allocated
        (12500.0, 7500.0, 5000.0)
    """
    preset = get_budget_config()['fifty_thirty_twenty']
    bucket_categories = dict(preset['categories'])
    if categories:
        bucket_categories.update(categories)

    buckets = {
        bucket: Bucket(
            allocated=float(total_income) * preset['ratios'][bucket],
            categories=tuple(bucket_categories.get(bucket, ())),
        )
        for bucket in BUCKET_NAMES
    }
    return FiftyThirtyTwentyBudget(
        name=name,
        amount=float(total_income),
        alert_threshold=_alert_threshold(alert_threshold),
        **buckets,
    )


def create_zero_based(
    total_income: float,
    allocations: Sequence[Any],
    name: str = 'Zero-Based Budget',
    alert_threshold: Optional[float] = None,
) -> ZeroBasedBudget:
    """Assign income to explicit allocations.

    ``allocations`` may hold :class:`Allocation` objects or mappings with
    ``category``, ``amount`` and optional ``priority`` / ``is_fixed`` /
    ``description``. The unallocated remainder can be negative; an
    over-allocated budget is accepted and logged.
    """
    items = tuple(
        alloc if isinstance(alloc, Allocation) else Allocation(
            category=alloc['category'],
            amount=float(alloc['amount']),
            priority=int(alloc.get('priority', 5)),
            is_fixed=bool(alloc.get('is_fixed', False)),
            description=alloc.get('description', ''),
        )
        for alloc in allocations
    )
    unallocated = float(total_income) - sum(item.amount for item in items)
    if unallocated < 0:
        logger.warning("Zero-based budget %r is over-allocated by %.2f", name, -unallocated)

    return ZeroBasedBudget(
        name=name,
        total_income=float(total_income),
        allocations=items,
        unallocated=unallocated,
        alert_threshold=_alert_threshold(alert_threshold),
    )


def create_envelope(
    envelopes: Sequence[Any],
    name: str = 'Envelope Budget',
    alert_threshold: Optional[float] = None,
) -> EnvelopeBudget:
    """Create an envelope budget; every envelope starts full."""
    items = []
    for env in envelopes:
        if isinstance(env, Envelope):
            items.append(replace(env, current_amount=env.budget_amount, overspent=0.0))
            continue
        items.append(Envelope(
            name=env['name'],
            budget_amount=float(env['budget_amount']),
            categories=tuple(env.get('categories', ())),
            color=env.get('color', '#007bff'),
            is_virtual=bool(env.get('is_virtual', True)),
        ))
    return EnvelopeBudget(
        name=name,
        envelopes=tuple(items),
        alert_threshold=_alert_threshold(alert_threshold),
    )


# ---------------------------------------------------------------------------
# Spend tracking
# ---------------------------------------------------------------------------

def _update_traditional(budget: TraditionalBudget, spending: Dict[str, float]) -> TraditionalBudget:
    return replace(budget, spent=spending.get(budget.category, 0.0))


def _update_fifty_thirty_twenty(
    budget: FiftyThirtyTwentyBudget, spending: Dict[str, float]
) -> FiftyThirtyTwentyBudget:
    spent = {bucket: 0.0 for bucket in BUCKET_NAMES}
    unclassified: Dict[str, float] = {}
    buckets = budget.buckets()
    for category, amount in spending.items():
        # First matching bucket wins when a category is listed twice.
        bucket = next((b for b in BUCKET_NAMES if category in buckets[b].categories), None)
        if bucket is None:
            unclassified[category] = amount
        else:
            spent[bucket] += amount

    if unclassified:
        logger.warning(
            "Budget %r: %.2f spent in categories outside every bucket: %s",
            budget.name, sum(unclassified.values()), ', '.join(sorted(unclassified)),
        )

    return replace(
        budget,
        needs=replace(budget.needs, spent=spent['needs']),
        wants=replace(budget.wants, spent=spent['wants']),
        savings=replace(budget.savings, spent=spent['savings']),
        unclassified=float(sum(unclassified.values())),
        unclassified_categories=tuple(sorted(unclassified)),
    )


def _update_zero_based(budget: ZeroBasedBudget, spending: Dict[str, float]) -> ZeroBasedBudget:
    return replace(budget, allocations=tuple(
        replace(alloc, spent=spending.get(alloc.category, 0.0))
        for alloc in budget.allocations
    ))


def _update_envelope(budget: EnvelopeBudget, spending: Dict[str, float]) -> EnvelopeBudget:
    envelopes = []
    for env in budget.envelopes:
        spent = sum(spending.get(category, 0.0) for category in env.categories)
        overspent = max(0.0, spent - env.budget_amount)
        if overspent > 0:
            logger.warning("Envelope %r overspent by %.2f", env.name, overspent)
        envelopes.append(replace(
            env,
            current_amount=max(0.0, env.budget_amount - spent),
            overspent=overspent,
        ))
    return replace(budget, envelopes=tuple(envelopes))


_UPDATERS = {
    BudgetType.TRADITIONAL: _update_traditional,
    BudgetType.FIFTY_THIRTY_TWENTY: _update_fifty_thirty_twenty,
    BudgetType.ZERO_BASED: _update_zero_based,
    BudgetType.ENVELOPE: _update_envelope,
}


def _budget_type(budget: Any) -> BudgetType:
    budget_type = getattr(budget, 'budget_type', None)
    if budget_type not in _UPDATERS:
        raise UnknownBudgetTypeError(f"Unsupported budget: {type(budget).__name__}")
    return budget_type


def update_spending(budget: Budget, expenses: Any) -> Budget:
    """Recompute spent figures from the complete expense list.

    Args:
        budget: Any budget variant
        expenses: Every expense in the budget's window (records or frame)

    Returns:
        A new budget of the same variant. The input budget is not modified.

    Raises:
        UnknownBudgetTypeError: If ``budget`` is not a known variant
    """
    updater = _UPDATERS[_budget_type(budget)]
    return updater(budget, spend_by_category(expenses))


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def _line(allocated: float, spent: float) -> Dict[str, float]:
    return {
        'allocated': allocated,
        'spent': spent,
        'remaining': allocated - spent,
        'percentage': percentage(spent, allocated),
    }


def _performance(budget: Budget) -> Dict[str, Any]:
    if isinstance(budget, TraditionalBudget):
        return {budget.category: _line(budget.amount, budget.spent)}

    if isinstance(budget, FiftyThirtyTwentyBudget):
        performance: Dict[str, Any] = {
            name: _line(bucket.allocated, bucket.spent) for name, bucket in budget.buckets().items()
        }
        performance['unclassified'] = {
            'spent': budget.unclassified,
            'categories': list(budget.unclassified_categories),
        }
        return performance

    if isinstance(budget, ZeroBasedBudget):
        return {
            'total_income': budget.total_income,
            'total_allocated': sum(a.amount for a in budget.allocations),
            'total_spent': sum(a.spent for a in budget.allocations),
            'unallocated': budget.unallocated,
            'categories': [
                dict(
                    _line(a.amount, a.spent),
                    category=a.category,
                    priority=a.priority,
                    is_fixed=a.is_fixed,
                )
                for a in budget.allocations
            ],
        }

    envelopes = []
    for env in budget.envelopes:
        spent = env.budget_amount - env.current_amount + env.overspent
        envelopes.append(dict(
            _line(env.budget_amount, spent),
            name=env.name,
            current_amount=env.current_amount,
            overspent=env.overspent,
            categories=list(env.categories),
            color=env.color,
        ))
    return {
        'total_budget': budget.amount,
        'total_remaining': sum(env.current_amount for env in budget.envelopes),
        'envelopes': envelopes,
    }


def _recommendations(budget: Budget, performance: Dict[str, Any]) -> List[str]:
    if not isinstance(budget, FiftyThirtyTwentyBudget):
        return []
    messages = get_budget_config()['recommendations']
    recommendations = []
    if performance['needs']['percentage'] > 100:
        recommendations.append(messages['needs_over'])
    if performance['wants']['percentage'] > 100:
        recommendations.append(messages['wants_over'])
    if performance['savings']['percentage'] < 50:
        recommendations.append(messages['savings_low'])
    return recommendations


def _tracked_lines(budget: Budget, performance: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    if isinstance(budget, TraditionalBudget):
        return [(budget.category, performance[budget.category])]
    if isinstance(budget, FiftyThirtyTwentyBudget):
        return [(name, performance[name]) for name in BUCKET_NAMES]
    if isinstance(budget, ZeroBasedBudget):
        return [(line['category'], line) for line in performance['categories']]
    return [(line['name'], line) for line in performance['envelopes']]


def _alerts(budget: Budget, performance: Dict[str, Any]) -> List[Dict[str, Any]]:
    threshold = budget.alert_threshold * 100
    alerts = []
    for label, line in _tracked_lines(budget, performance):
        if line['allocated'] > 0 and line['percentage'] >= threshold:
            alerts.append({
                'type': 'danger' if line['percentage'] > 100 else 'warning',
                'message': f"{label[:1].upper()}{label[1:]} spending is at {line['percentage']:.1f}% of budget",
                'category': label,
            })
    return alerts


def analyze_budget(budget: Budget) -> BudgetAnalysis:
    """Performance per bucket / allocation / envelope with recommendations and alerts.

    Alerts fire for every tracked line whose spend reaches
    ``alert_threshold`` of its allocation (``danger`` once over 100%).

    Raises:
        UnknownBudgetTypeError: If ``budget`` is not a known variant
    """
    budget_type = _budget_type(budget)
    performance = _performance(budget)
    return BudgetAnalysis(
        budget_type=budget_type,
        performance=performance,
        recommendations=_recommendations(budget, performance),
        alerts=_alerts(budget, performance),
    )
