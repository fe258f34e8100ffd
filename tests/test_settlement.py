import datetime as dt
from collections import defaultdict

import pytest

from finance_engine.exceptions import SplitMismatchError, UnknownParticipantError
from finance_engine.models import Payment, SharedExpense, SharedExpenseStatus, Split, SplitType
from finance_engine.settlement import (
    amount_split,
    compute_balances,
    create_shared_expense,
    equal_split,
    group_balances,
    is_fully_settled,
    mark_split_paid,
    percentage_split,
    settle,
    settle_group,
    shares_split,
    validate_splits,
)


def _flows(transfers):
    outgoing, incoming = defaultdict(float), defaultdict(float)
    for transfer in transfers:
        outgoing[transfer.from_participant] += transfer.amount
        incoming[transfer.to_participant] += transfer.amount
    return outgoing, incoming


def test_three_way_dinner_scenario():
    expense = create_shared_expense('Dinner', 900, 'A', ['A', 'B', 'C'])
    balances = compute_balances(expense)
    assert balances == {'A': 600, 'B': -300, 'C': -300}

    transfers = settle(balances)
    assert [(t.from_participant, t.to_participant, t.amount) for t in transfers] == [
        ('B', 'A', 300),
        ('C', 'A', 300),
    ]


def test_settlement_conserves_balances():
    balances = {'A': 125.5, 'B': -40.25, 'C': 74.75, 'D': -100.0, 'E': -60.0}
    outgoing, incoming = _flows(settle(balances))
    for participant, balance in balances.items():
        if balance < 0:
            assert outgoing[participant] == pytest.approx(-balance, abs=0.01)
        else:
            assert incoming[participant] == pytest.approx(balance, abs=0.01)


def test_settle_ignores_residuals_within_tolerance():
    assert settle({'A': 0.005, 'B': -0.005}) == []
    assert settle({}) == []


def test_equal_split_distributes_cents():
    splits = equal_split(100, ['a', 'b', 'c'])
    assert [s.amount for s in splits] == [33.34, 33.33, 33.33]
    assert sum(s.amount for s in splits) == pytest.approx(100)
    assert equal_split(50, []) == ()


def test_percentage_and_shares_split():
    by_percent = percentage_split(200, {'a': 25, 'b': 75})
    assert [(s.amount, s.percentage) for s in by_percent] == [(50, 25), (150, 75)]

    by_shares = shares_split(90, {'a': 1, 'b': 2})
    assert [(s.amount, s.shares) for s in by_shares] == [(30, 1), (60, 2)]


def test_create_shared_expense_with_each_split_type():
    assert create_shared_expense('x', 60, 'a', {'a': 50, 'b': 50}, SplitType.PERCENTAGE).splits[1].amount == 30
    assert create_shared_expense('x', 60, 'a', {'a': 10, 'b': 50}, 'amount').splits[0].amount == 10
    assert create_shared_expense('x', 60, 'a', {'a': 1, 'b': 1, 'c': 1}, 'shares').split_type is SplitType.SHARES


def test_split_mismatch_is_rejected():
    with pytest.raises(SplitMismatchError):
        create_shared_expense('x', 100, 'a', {'a': 40, 'b': 50}, SplitType.AMOUNT)
    with pytest.raises(SplitMismatchError):
        create_shared_expense('x', 100, 'a', {'a': 40, 'b': 40}, SplitType.PERCENTAGE)


def test_split_exactly_at_tolerance_is_accepted():
    thirds = {'a': 33.33, 'b': 33.33, 'c': 33.33}
    expense = create_shared_expense('Groceries', 100, 'a', thirds, SplitType.PERCENTAGE)
    assert sum(split.amount for split in expense.splits) == pytest.approx(99.99)
    create_shared_expense('Groceries', 100, 'a', thirds, SplitType.AMOUNT)
    with pytest.raises(SplitMismatchError):
        create_shared_expense('Groceries', 100, 'a', {'a': 33.33, 'b': 33.33, 'c': 33.32}, SplitType.AMOUNT)


def test_validate_splits_tolerance():
    expense = SharedExpense(
        name='Taxi', amount=30.0, paid_by=Payment('a', 30.0),
        splits=(Split('a', 15.0), Split('b', 15.005)),
    )
    validate_splits(expense)
    with pytest.raises(SplitMismatchError) as excinfo:
        validate_splits(expense, tolerance=0.001)
    assert excinfo.value.expected == 30.0


def test_payer_outside_splits():
    expense = SharedExpense(
        name='Gift', amount=100.0, paid_by=Payment('p', 100.0),
        splits=(Split('a', 50.0), Split('b', 50.0)),
    )
    assert compute_balances(expense) == {'a': -50, 'b': -50, 'p': 100}


def test_group_settlement_across_expenses():
    expenses = [
        create_shared_expense('Groceries', 90, 'A', ['A', 'B', 'C']),
        create_shared_expense('Fuel', 60, 'B', ['B', 'C']),
    ]
    settlement = settle_group(expenses, members=['A', 'B', 'C', 'D'])
    balances = {b.participant_id: b for b in settlement.balances}

    assert balances['A'].net_balance == pytest.approx(60)
    assert balances['B'].total_paid == pytest.approx(60)
    assert balances['B'].total_owed == pytest.approx(60)
    assert balances['C'].net_balance == pytest.approx(-60)
    assert balances['D'].net_balance == 0
    assert [b.participant_id for b in settlement.balances][0] == 'A'

    assert settlement.total_expenses == 150
    assert settlement.total_transactions == 2
    assert [(t.from_participant, t.to_participant) for t in settlement.transfers] == [('C', 'A')]
    assert settlement.transfers[0].amount == pytest.approx(60)


def test_group_balances_without_expenses():
    assert [b.net_balance for b in group_balances([], ['A', 'B'])] == [0, 0]


def test_mark_split_paid_settles_when_everyone_paid():
    expense = create_shared_expense('Dinner', 90, 'A', ['A', 'B'])
    paid_at = dt.datetime(2024, 5, 1, 12)

    partly = mark_split_paid(expense, 'B', paid_at=paid_at)
    assert partly.splits[1].is_paid
    assert partly.splits[1].paid_at == paid_at
    assert partly.status is SharedExpenseStatus.PENDING
    assert not expense.splits[1].is_paid

    fully = mark_split_paid(partly, 'A', paid_at=paid_at)
    assert is_fully_settled(fully)
    assert fully.status is SharedExpenseStatus.SETTLED
    assert mark_split_paid(fully, 'A') == fully


def test_mark_split_paid_unknown_participant():
    expense = create_shared_expense('Dinner', 90, 'A', ['A', 'B'])
    with pytest.raises(UnknownParticipantError):
        mark_split_paid(expense, 'Z')
