"""Savings goal progress."""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, Optional, Sequence

from .models import Goal, GoalProgress
from .periods import to_naive
from .stats import percentage

AVERAGE_DAYS_PER_MONTH = 30.44


def _days_remaining(target_date: dt.date, reference: dt.datetime) -> int:
    target = dt.datetime.combine(target_date, dt.time.min)
    return math.ceil((target - reference).total_seconds() / 86400)


def _status(goal: Goal, progress: float, days_remaining: int) -> str:
    if goal.status == 'completed':
        return 'Completed'
    if days_remaining < 0:
        return 'Overdue'
    if progress >= 75:
        return 'On Track'
    if progress >= 50:
        return 'Progressing'
    if days_remaining <= 30:
        return 'Behind'
    return 'Started'


def goal_progress(
    goal: Goal,
    reference: Optional[dt.datetime] = None,
    monthly_savings: float = 0.0,
) -> GoalProgress:
    """Progress of a single goal as of ``reference`` (default: now, UTC).

    Args:
        goal: The goal
        reference: Point in time to measure from
        monthly_savings: Current monthly saving used for ``months_to_goal``

    Returns:
        GoalProgress. Progress is capped at 100%; ``months_to_goal`` is
        infinite when nothing is being saved; the required monthly
        contribution is the whole remainder once the target date has passed.
    """
    reference = to_naive(reference) if reference is not None else (
        dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    )
    if goal.target_amount > 0:
        progress = min(goal.current_amount / goal.target_amount * 100, 100.0)
    else:
        progress = 100.0
    remaining = max(goal.target_amount - goal.current_amount, 0.0)
    days_remaining = _days_remaining(goal.target_date, reference)

    months_left = days_remaining / AVERAGE_DAYS_PER_MONTH
    required = remaining / months_left if months_left >= 1 else remaining
    if remaining == 0:
        months_to_goal = 0.0
    else:
        months_to_goal = remaining / monthly_savings if monthly_savings > 0 else float('inf')

    return GoalProgress(
        title=goal.title,
        progress_percentage=progress,
        remaining_amount=remaining,
        days_remaining=days_remaining,
        status=_status(goal, progress, days_remaining),
        required_monthly_contribution=required,
        months_to_goal=months_to_goal,
    )


def goals_summary(goals: Sequence[Goal]) -> Dict[str, Any]:
    total_target = float(sum(goal.target_amount for goal in goals))
    total_current = float(sum(goal.current_amount for goal in goals))
    return {
        'total': len(goals),
        'active': sum(1 for goal in goals if goal.status == 'active'),
        'completed': sum(1 for goal in goals if goal.status == 'completed'),
        'total_target': total_target,
        'total_current': total_current,
        'overall_progress': percentage(total_current, total_target),
    }
