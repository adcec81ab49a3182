"""
Data models for pots, expenses and their splits
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class Participant:
    """Someone taking part in an expense, with a relative weight"""
    id: str
    weight: Decimal = Decimal("1")


@dataclass(frozen=True)
class Equal:
    """Equal shares, the pot owner absorbs the rounding remainder"""


@dataclass(frozen=True)
class SinglePayer:
    """Equal shares, but the payer has already settled their own"""
    payer_id: str


@dataclass(frozen=True)
class Weighted:
    """Shares proportional to weights; missing ids fall back to Participant.weight"""
    weights: Dict[str, Decimal] = field(default_factory=dict, hash=False)


SplitPolicy = Union[Equal, SinglePayer, Weighted]


@dataclass(frozen=True)
class Split:
    """One participant's share of an expense. Amount is in cents and never changes."""
    participant_id: str
    amount: int
    is_paid: bool = False
    id: Optional[int] = None


@dataclass
class Expense:
    id: Optional[int]
    description: str
    total_amount: int  # cents
    owner_id: str
    splits: List[Split] = field(default_factory=list)
    pot_id: Optional[int] = None
    currency_id: Optional[int] = None


@dataclass
class Pot:
    id: Optional[int]
    owner_id: str
    default_currency_id: Optional[int]
    participants: List[str] = field(default_factory=list)
    name: str = ""
    archived: bool = False
    expenses: List[Expense] = field(default_factory=list)

    def has_member(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.participants


@dataclass(frozen=True)
class Currency:
    id: Optional[int]
    name: str
    symbol: str
