"""
Slider state for weighted splits.

Weights are percentages at 0.01 precision that always add up to 100. Moving
one slider spreads the rest over everyone else; nothing here raises, a bad
input just leaves the state as it was.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

WEIGHT_TOTAL = Decimal("100")
WEIGHT_STEP = Decimal("0.01")
SLIDER_TOLERANCE = Decimal("0.1")


def equal_weights(ids: Sequence[str]) -> Dict[str, Decimal]:
    if not ids:
        return {}
    share = (WEIGHT_TOTAL / len(ids)).quantize(WEIGHT_STEP, rounding=ROUND_DOWN)
    weights = {pid: share for pid in ids}
    _absorb_residual(weights, ids)
    return weights


def redistribute(weights: Mapping[str, Any], changed_id: str, new_weight: Any) -> Dict[str, Decimal]:
    current = {pid: _as_weight(value) or Decimal(0) for pid, value in weights.items()}
    target = _as_weight(new_weight)
    if changed_id not in current or target is None:
        return current

    target = min(target, WEIGHT_TOTAL).quantize(WEIGHT_STEP, rounding=ROUND_HALF_UP)
    others = [pid for pid in current if pid != changed_id]
    if not others:
        return {changed_id: WEIGHT_TOTAL}

    remaining = WEIGHT_TOTAL - target
    others_total = sum((current[pid] for pid in others), Decimal(0))

    result: Dict[str, Decimal] = {}
    for pid in current:
        if pid == changed_id:
            result[pid] = target
        elif others_total > 0:
            result[pid] = (remaining * current[pid] / others_total).quantize(WEIGHT_STEP, rounding=ROUND_DOWN)
        else:
            result[pid] = (remaining / len(others)).quantize(WEIGHT_STEP, rounding=ROUND_DOWN)

    _absorb_residual(result, others)
    return result


def _absorb_residual(weights: Dict[str, Decimal], candidates: Iterable[str]) -> None:
    # rounding down only ever leaves a non-negative residual
    residual = WEIGHT_TOTAL - sum(weights.values(), Decimal(0))
    if residual:
        holder = max(candidates, key=lambda pid: weights[pid])
        weights[holder] += residual


def _as_weight(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        weight = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not weight.is_finite():
        return None
    return max(weight, Decimal(0))
