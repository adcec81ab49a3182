"""
Split allocation: turn an expense total into exact per-participant cent amounts.

All arithmetic is done on integer cents (and exact fractions for weights), so
the splits of an expense always add back up to its total.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, List, Mapping, Optional, Sequence

from .errors import InvalidInputError
from .models import Equal, Participant, SinglePayer, Split, SplitPolicy, Weighted


def allocate(
    total_amount: int,
    participants: Sequence[Participant],
    policy: SplitPolicy,
    owner_id: Optional[str] = None,
) -> List[Split]:
    """
    Allocate ``total_amount`` cents among ``participants``.

    ``owner_id`` is the pot owner, who absorbs the remainder of an equal split.
    Splits come back in participant order; only a single payer's split starts
    out paid.
    """
    if isinstance(total_amount, bool) or not isinstance(total_amount, int) or total_amount <= 0:
        raise InvalidInputError("invalid_amount")
    if not participants:
        raise InvalidInputError("empty_participants")

    ids = [p.id for p in participants]
    if len(set(ids)) != len(ids):
        raise InvalidInputError("duplicate_participant")

    if isinstance(policy, Weighted):
        weights = [_weight(policy.weights.get(p.id, p.weight)) for p in participants]
        amounts = weighted_shares(total_amount, weights)
        return [Split(pid, amount) for pid, amount in zip(ids, amounts)]

    if isinstance(policy, SinglePayer):
        if policy.payer_id not in ids:
            raise InvalidInputError("payer_not_participant")
        amounts = equal_shares(total_amount, ids, policy.payer_id)
        return [
            Split(pid, amount, is_paid=pid == policy.payer_id)
            for pid, amount in zip(ids, amounts)
        ]

    if isinstance(policy, Equal):
        amounts = equal_shares(total_amount, ids, remainder_holder(ids, owner_id))
        return [Split(pid, amount) for pid, amount in zip(ids, amounts)]

    raise InvalidInputError("unknown_policy")


def remainder_holder(ids: Sequence[str], owner_id: Optional[str]) -> str:
    """The pot owner takes the leftover cents of an equal split, else the first participant."""
    if owner_id is not None and owner_id in ids:
        return owner_id
    return ids[0]


def equal_shares(total: int, ids: Sequence[str], holder: str) -> List[int]:
    base = total // len(ids)
    remainder = total - base * len(ids)
    return [base + remainder if pid == holder else base for pid in ids]


def leftover_order(ratios: Sequence[Fraction]) -> List[int]:
    """Indices by descending ratio; equal ratios keep their input order."""
    return sorted(range(len(ratios)), key=lambda i: -ratios[i])


def weighted_shares(total: int, weights: Sequence[Decimal]) -> List[int]:
    # Decimal addition rounds at context precision; Fractions keep the sum exact
    exact = [Fraction(w) for w in weights]
    total_weight = sum(exact, Fraction(0))
    if total_weight <= 0:
        raise InvalidInputError("zero_weights")

    ratios = [w / total_weight for w in exact]
    cents = [total * r.numerator // r.denominator for r in ratios]

    leftover = total - sum(cents)
    if not 0 <= leftover < len(cents):
        raise RuntimeError(f"weighted split left {leftover} cents over {len(cents)} shares")
    for index in leftover_order(ratios)[:leftover]:
        cents[index] += 1
    return cents


def _weight(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInputError("invalid_weight")
    try:
        weight = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError("invalid_weight") from None
    if not weight.is_finite():
        raise InvalidInputError("invalid_weight")
    if weight < 0:
        raise InvalidInputError("negative_weight")
    return weight


def resolve_weights(raw: Mapping[str, Any]) -> Mapping[str, Decimal]:
    return {str(key): _weight(value) for key, value in raw.items()}
