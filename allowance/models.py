"""Value types exchanged between the calculation stages.

Items are hashed by identity: two items with the same attributes are still
distinct keys in a result mapping. ``item_id`` is the stable identifier used
when results leave the process (reports, logs).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from allowance.utils import to_decimal


@dataclass(frozen=True, eq=False)
class Item:
    group: str
    category: str
    weight: Decimal = Decimal(0)
    exempt: bool = False
    item_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.weight, Decimal):
            object.__setattr__(self, "weight", to_decimal(self.weight))
        if self.weight < 0:
            raise ValueError(f"weight must be non-negative, got {self.weight}")

    @property
    def key(self) -> LookupKey:
        return LookupKey(self.group, self.category)


@dataclass(frozen=True)
class LookupKey:
    group: str
    category: str


@dataclass(frozen=True)
class LookupRequest:
    key: LookupKey


@dataclass(frozen=True)
class LookupResponse:
    max_allowed: Decimal

    def __post_init__(self):
        if not isinstance(self.max_allowed, Decimal):
            object.__setattr__(self, "max_allowed", to_decimal(self.max_allowed))


@dataclass(frozen=True)
class KeyedResponse:
    key: LookupKey
    response: LookupResponse


@dataclass(frozen=True)
class Result:
    allowed_weight: Decimal
    excess: Decimal


ResultSet = Dict[Item, Result]
