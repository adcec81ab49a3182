from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .allocator import resolve_weights
from .errors import InvalidInputError
from .ledger import PotSummary, can_mark_paid, paid_ratio, viewer_balance
from .models import Currency, Equal, Expense, Pot, SinglePayer, Split, SplitPolicy, Weighted
from .money import from_cents


def amount_to_json(cents: int) -> str:
    # strings keep every cent; floats drop digits past 2**53
    return str(from_cents(cents))


def parse_policy(payload: Mapping[str, Any]) -> SplitPolicy:
    kind = str(payload.get("policy") or "equal").strip().lower()

    if kind == "equal":
        return Equal()
    if kind == "single_payer":
        payer_id = payload.get("payer_id")
        if payer_id is None or str(payer_id) == "":
            raise InvalidInputError("payer_not_participant")
        return SinglePayer(str(payer_id))
    if kind == "weighted":
        weights = payload.get("weights")
        if not isinstance(weights, Mapping) or not weights:
            raise InvalidInputError("zero_weights")
        return Weighted(dict(resolve_weights(weights)))
    raise InvalidInputError("unknown_policy")


def split_to_json(split: Split) -> Dict[str, Any]:
    return {
        "user_id": split.participant_id,
        "amount": amount_to_json(split.amount),
        "is_paid": split.is_paid,
    }


def expense_payload(currency_id: Optional[int], description: str, splits: List[Split]) -> Dict[str, Any]:
    return {
        "currency_id": currency_id,
        "description": description,
        "splits": [split_to_json(split) for split in splits],
    }


def pay_payload(expense_id: int, split: Split) -> Dict[str, Any]:
    return {
        "expense_id": expense_id,
        "user_id": split.participant_id,
        "sum_paid": amount_to_json(split.amount),
    }


def expense_view(expense: Expense, viewer_id: str, archived: bool = False) -> Dict[str, Any]:
    paid, total = paid_ratio(expense)
    splits = []
    for split in expense.splits:
        item = split_to_json(split)
        item["id"] = split.id
        item["can_mark_paid"] = can_mark_paid(viewer_id, split, expense.owner_id, archived)
        splits.append(item)

    return {
        "id": expense.id,
        "description": expense.description,
        "currency_id": expense.currency_id,
        "owner_id": expense.owner_id,
        "amount": amount_to_json(expense.total_amount),
        "sum": amount_to_json(viewer_balance(expense, viewer_id)),
        "paid": paid,
        "total": total,
        "splits": splits,
    }


def pot_view(pot: Pot, summary: PotSummary) -> Dict[str, Any]:
    return {
        "id": pot.id,
        "name": pot.name,
        "owner_id": pot.owner_id,
        "default_currency_id": pot.default_currency_id,
        "users": list(pot.participants),
        "archived": pot.archived,
        "balance": amount_to_json(summary.balance),
        "expense_count": summary.expense_count,
        "can_delete": summary.can_delete,
        "can_archive": summary.can_archive,
    }


def currency_to_json(currency: Currency) -> Dict[str, Any]:
    return {"id": currency.id, "name": currency.name, "symbol": currency.symbol}
