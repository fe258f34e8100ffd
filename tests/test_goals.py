import datetime as dt
import math

import pytest

from finance_engine.goals import goal_progress, goals_summary
from finance_engine.models import Goal

TODAY = dt.datetime(2024, 1, 1, 12, 0)


def _goal(current, target=1000, days=90, status='active'):
    return Goal(
        title='Emergency fund',
        target_amount=target,
        target_date=(TODAY + dt.timedelta(days=days)).date(),
        current_amount=current,
        status=status,
    )


@pytest.mark.parametrize('goal, expected', [
    (_goal(100, status='completed'), 'Completed'),
    (_goal(900, days=-3), 'Overdue'),
    (_goal(800), 'On Track'),
    (_goal(500), 'Progressing'),
    (_goal(100, days=20), 'Behind'),
    (_goal(100), 'Started'),
])
def test_goal_status(goal, expected):
    assert goal_progress(goal, TODAY).status == expected


def test_progress_is_capped_and_remaining_floored():
    progress = goal_progress(_goal(1500), TODAY)
    assert progress.progress_percentage == 100.0
    assert progress.remaining_amount == 0.0
    assert progress.months_to_goal == 0.0


def test_days_remaining_rounds_up():
    # Target date midnight is 89.5 days after noon on the reference day.
    assert goal_progress(_goal(0), TODAY).days_remaining == 90


def test_required_contribution_and_months_to_goal():
    goal = Goal(title='Trip', target_amount=1200, target_date=dt.date(2025, 1, 1), current_amount=0)
    progress = goal_progress(goal, dt.datetime(2024, 1, 1), monthly_savings=200)
    assert progress.required_monthly_contribution == pytest.approx(1200 / (366 / 30.44))
    assert progress.months_to_goal == pytest.approx(6.0)
    assert math.isinf(goal_progress(goal, dt.datetime(2024, 1, 1)).months_to_goal)


def test_overdue_goal_needs_whole_remainder():
    progress = goal_progress(_goal(400, days=-10), TODAY)
    assert progress.required_monthly_contribution == pytest.approx(600)


def test_goals_summary():
    summary = goals_summary([
        _goal(250, target=1000),
        _goal(1000, target=1000, status='completed'),
    ])
    assert summary['total'] == 2
    assert summary['active'] == 1
    assert summary['completed'] == 1
    assert summary['overall_progress'] == pytest.approx(62.5)
    assert goals_summary([])['overall_progress'] == 0.0
