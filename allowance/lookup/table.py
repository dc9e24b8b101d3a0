from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Mapping

from allowance.lookup.errors import LookupFailed
from allowance.models import LookupKey, LookupResponse
from allowance.utils import to_decimal


class StaticLookup:
    """In-memory allowance table. Records how often each key was asked for."""

    def __init__(self, table: Mapping[LookupKey, Any]):
        self._table = {k: LookupResponse(max_allowed=to_decimal(v)) for k, v in table.items()}
        self.calls: Counter = Counter()

    @classmethod
    def from_config(cls, rows: List[Dict[str, Any]]) -> "StaticLookup":
        table = {}
        for row in rows:
            table[LookupKey(str(row["group"]), str(row["category"]))] = row["max_allowed"]
        return cls(table)

    async def get(self, key: LookupKey) -> LookupResponse:
        self.calls[key] += 1
        try:
            return self._table[key]
        except KeyError:
            raise LookupFailed(key, "no allowance configured") from None
