"""
Settlement figures and rules for a pot's expenses.

These are all plain functions over expense values; nothing is cached, callers
re-evaluate them whenever the expense list changes.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .errors import AlreadyPaidError, PaymentMismatchError
from .models import Expense, Split

SignedAmount = Callable[[Expense], int]


@dataclass(frozen=True)
class PotSummary:
    balance: int
    expense_count: int
    can_delete: bool
    can_archive: bool


def _total_amount(expense: Expense) -> int:
    return expense.total_amount


def net_balance(expenses: Sequence[Expense], key: Optional[SignedAmount] = None) -> int:
    """
    Flat pot-level total of the expenses' signed amounts, in cents.

    ``key`` picks the signed amount of one expense (``total_amount`` by
    default). It is not a per-user ledger and nets nothing between participants.
    """
    amount = key or _total_amount
    return sum(amount(expense) for expense in expenses)


def paid_ratio(expense: Expense) -> Tuple[int, int]:
    paid = sum(1 for split in expense.splits if split.is_paid)
    return paid, len(expense.splits)


def may_settle(current_user_id: Optional[str], split: Split, expense_owner_id: str) -> bool:
    """Whether the user has rights over the split at all, paid or not."""
    if current_user_id is None:
        return False
    return current_user_id in (split.participant_id, expense_owner_id)


def can_mark_paid(current_user_id: Optional[str], split: Split, expense_owner_id: str, archived: bool = False) -> bool:
    """Only the split's own participant or the expense owner may settle an open split of a live pot."""
    if split.is_paid or archived:
        return False
    return may_settle(current_user_id, split, expense_owner_id)


def mark_paid(split: Split) -> Split:
    if split.is_paid:
        raise AlreadyPaidError()
    return dataclasses.replace(split, is_paid=True)


def viewer_balance(expense: Expense, viewer_id: str) -> int:
    """
    What ``viewer_id`` is owed (positive) or owes (negative) on one expense.

    Only open splits of people other than the owner count: the owner is owed
    all of them, any other viewer owes just their own.
    """
    total = 0
    for split in expense.splits:
        if split.is_paid or split.participant_id == expense.owner_id:
            continue
        if viewer_id == expense.owner_id:
            total += split.amount
        elif split.participant_id == viewer_id:
            total -= split.amount
    return total


def can_delete(expenses: Sequence[Expense], archived: bool = False, key: Optional[SignedAmount] = None) -> bool:
    if archived:
        return False
    return not expenses or net_balance(expenses, key) == 0


def can_archive(expenses: Sequence[Expense], archived: bool = False, key: Optional[SignedAmount] = None) -> bool:
    if archived:
        return False
    return net_balance(expenses, key) == 0


def summarize_pot(expenses: Sequence[Expense], viewer_id: str, archived: bool = False) -> PotSummary:
    def signed(expense: Expense) -> int:
        return viewer_balance(expense, viewer_id)

    return PotSummary(
        balance=net_balance(expenses, signed),
        expense_count=len(expenses),
        can_delete=can_delete(expenses, archived, signed),
        can_archive=can_archive(expenses, archived, signed),
    )


def find_payable_split(expense: Expense, user_id: str) -> Optional[Split]:
    own = [split for split in expense.splits if split.participant_id == user_id]
    for split in own:
        if not split.is_paid:
            return split
    return own[0] if own else None


def check_payment(split: Split, sum_paid: int) -> None:
    if sum_paid > split.amount:
        raise PaymentMismatchError("overpay")
    if sum_paid < split.amount:
        raise PaymentMismatchError("underpay")
