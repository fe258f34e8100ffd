"""Shared expense splitting, balances and settlement transfers.

Balances are signed: positive means the participant is owed money, negative
means they owe. Settlement pairs creditors with debtors greedily:

1. creditors sorted by balance (largest first), debtors by balance (most
   negative first)
2. the current creditor and debtor exchange ``min(credit, |debt|)``
3. anyone whose residual balance is within the tolerance (0.01) is done

Every transfer moves money from a debtor to a creditor, so net balances are
conserved and the loop ends after at most ``creditors + debtors`` transfers.
The greedy pairing does not always find the smallest possible number of
transfers.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import SplitMismatchError, UnknownParticipantError
from .logging_setup import get_logger
from .models import (
    GroupSettlement,
    ParticipantBalance,
    Payment,
    SettlementTransfer,
    SharedExpense,
    SharedExpenseStatus,
    Split,
    SplitType,
)
from .presets import get_config_value

logger = get_logger(__name__)


def _tolerance(tolerance: Optional[float]) -> float:
    if tolerance is not None:
        return tolerance
    return float(get_config_value('analytics', 'settlement', 'tolerance', default=0.01))


# ---------------------------------------------------------------------------
# Split construction
# ---------------------------------------------------------------------------

def equal_split(amount: float, participants: Sequence[str]) -> Tuple[Split, ...]:
    """Split ``amount`` evenly; leftover cents go to the first participants.

    Example:
        >>> [s.amount for s in equal_split(100, ['a', 'b', 'c'])]
        [33.34, 33.33, 33.33]
    """
    if not participants:
        return ()
    cents = int(round(amount * 100))
    base, remainder = divmod(cents, len(participants))
    return tuple(
        Split(participant_id=pid, amount=(base + (1 if i < remainder else 0)) / 100)
        for i, pid in enumerate(participants)
    )


def percentage_split(amount: float, percentages: Mapping[str, float]) -> Tuple[Split, ...]:
    return tuple(
        Split(participant_id=pid, amount=amount * pct / 100, percentage=pct)
        for pid, pct in percentages.items()
    )


def amount_split(amount: float, amounts: Mapping[str, float]) -> Tuple[Split, ...]:
    # ``amount`` is unused here; the split sum is checked by validate_splits.
    return tuple(Split(participant_id=pid, amount=float(value)) for pid, value in amounts.items())


def shares_split(amount: float, shares: Mapping[str, float]) -> Tuple[Split, ...]:
    """Split proportionally to each participant's share count."""
    total_shares = sum(shares.values())
    return tuple(
        Split(
            participant_id=pid,
            amount=amount * count / total_shares if total_shares > 0 else 0.0,
            shares=count,
        )
        for pid, count in shares.items()
    )


_BUILDERS = {
    SplitType.PERCENTAGE: percentage_split,
    SplitType.AMOUNT: amount_split,
    SplitType.SHARES: shares_split,
}


def validate_splits(expense: SharedExpense, tolerance: Optional[float] = None) -> None:
    """Reject an expense whose splits do not add up to its amount.

    Raises:
        SplitMismatchError: If ``|sum(splits) - amount|`` exceeds the tolerance
    """
    tolerance = _tolerance(tolerance)
    if not expense.splits:
        return
    split_total = sum(split.amount for split in expense.splits)
    difference = abs(split_total - expense.amount)
    # A difference sitting on the tolerance is accepted despite float noise.
    if difference > tolerance and not math.isclose(difference, tolerance):
        raise SplitMismatchError(expense.amount, split_total, tolerance)


def create_shared_expense(
    name: str,
    amount: float,
    paid_by: str,
    participants,
    split_type: SplitType = SplitType.EQUAL,
    category: str = 'Other',
    occurred_at: Optional[dt.datetime] = None,
) -> SharedExpense:
    """Build a validated shared expense paid in full by ``paid_by``.

    Args:
        name: Description of the expense
        amount: Total amount
        paid_by: Participant who paid
        participants: Participant ids for an equal split, otherwise a mapping
            of participant id to percentage, amount or share count
        split_type: How ``participants`` is interpreted

    Raises:
        SplitMismatchError: If the resulting splits do not add up to ``amount``
    """
    split_type = SplitType(split_type)
    if split_type is SplitType.EQUAL:
        splits = equal_split(amount, list(participants))
    else:
        splits = _BUILDERS[split_type](amount, participants)

    expense = SharedExpense(
        name=name,
        amount=float(amount),
        paid_by=Payment(participant_id=paid_by, amount=float(amount)),
        splits=splits,
        category=category,
        occurred_at=occurred_at,
        split_type=split_type,
    )
    validate_splits(expense)
    return expense


# ---------------------------------------------------------------------------
# Balances and transfers
# ---------------------------------------------------------------------------

def compute_balances(expense: SharedExpense) -> Dict[str, float]:
    """Net balance per participant for a single expense.

    Every split participant starts at ``-split.amount``; the payer is then
    credited with what they paid.
    """
    balances: Dict[str, float] = {}
    for split in expense.splits:
        balances[split.participant_id] = balances.get(split.participant_id, 0.0) - split.amount
    payer = expense.paid_by.participant_id
    balances[payer] = balances.get(payer, 0.0) + expense.paid_by.amount
    return balances


def settle(balances: Mapping[str, float], tolerance: Optional[float] = None) -> List[SettlementTransfer]:
    """Greedy transfers that bring every balance back to zero.

    Args:
        balances: Signed net balance per participant (positive is owed money)
        tolerance: Residual treated as settled (default 0.01)

    Returns:
        Transfers from debtors to creditors, in the order they were matched
    """
    tolerance = _tolerance(tolerance)
    creditors = sorted(
        ([pid, bal] for pid, bal in balances.items() if bal > tolerance),
        key=lambda item: -item[1],
    )
    debtors = sorted(
        ([pid, bal] for pid, bal in balances.items() if bal < -tolerance),
        key=lambda item: item[1],
    )

    transfers: List[SettlementTransfer] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        amount = min(creditor[1], -debtor[1])
        transfers.append(SettlementTransfer(
            from_participant=debtor[0],
            to_participant=creditor[0],
            amount=amount,
        ))
        creditor[1] -= amount
        debtor[1] += amount
        if creditor[1] <= tolerance:
            i += 1
        if -debtor[1] <= tolerance:
            j += 1

    logger.debug("Settled %d balances with %d transfers", len(balances), len(transfers))
    return transfers


def group_balances(
    expenses: Iterable[SharedExpense],
    members: Sequence[str] = (),
) -> List[ParticipantBalance]:
    """Paid, owed and net balance per participant across many expenses.

    ``members`` are always reported, even without any expense. The result is
    ordered by net balance, largest credit first.
    """
    paid: Dict[str, float] = {pid: 0.0 for pid in members}
    owed: Dict[str, float] = {pid: 0.0 for pid in members}
    for expense in expenses:
        payer = expense.paid_by.participant_id
        paid[payer] = paid.get(payer, 0.0) + expense.paid_by.amount
        owed.setdefault(payer, 0.0)
        for split in expense.splits:
            owed[split.participant_id] = owed.get(split.participant_id, 0.0) + split.amount
            paid.setdefault(split.participant_id, 0.0)

    balances = [
        ParticipantBalance(
            participant_id=pid,
            total_paid=paid[pid],
            total_owed=owed[pid],
            net_balance=paid[pid] - owed[pid],
        )
        for pid in paid
    ]
    return sorted(balances, key=lambda b: -b.net_balance)


def settle_group(
    expenses: Sequence[SharedExpense],
    members: Sequence[str] = (),
    tolerance: Optional[float] = None,
) -> GroupSettlement:
    """Balances and settlement transfers for a group of shared expenses."""
    balances = group_balances(expenses, members)
    transfers = settle({b.participant_id: b.net_balance for b in balances}, tolerance)
    return GroupSettlement(
        balances=balances,
        transfers=transfers,
        total_expenses=float(sum(expense.amount for expense in expenses)),
        total_transactions=len(expenses),
    )


# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------

def is_fully_settled(expense: SharedExpense) -> bool:
    return all(split.is_paid for split in expense.splits)


def mark_split_paid(
    expense: SharedExpense,
    participant_id: str,
    paid_at: Optional[dt.datetime] = None,
) -> SharedExpense:
    """Return a copy with ``participant_id``'s split paid.

    The expense status becomes ``settled`` once every split is paid. Marking
    an already paid split again returns the expense unchanged.

    Raises:
        UnknownParticipantError: If the participant has no split
    """
    if not any(split.participant_id == participant_id for split in expense.splits):
        raise UnknownParticipantError(f"{participant_id!r} is not part of {expense.name!r}")
    if paid_at is None:
        paid_at = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)

    splits = tuple(
        replace(split, is_paid=True, paid_at=paid_at)
        if split.participant_id == participant_id and not split.is_paid else split
        for split in expense.splits
    )
    updated = replace(expense, splits=splits)
    if is_fully_settled(updated):
        updated = replace(updated, status=SharedExpenseStatus.SETTLED)
    return updated
