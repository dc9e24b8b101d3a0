from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set

from allowance.models import Item, KeyedResponse, LookupRequest, Result
from allowance.stages.fanout import LookupCall, combine_calls
from allowance.stages.mapper import TOLERANCE, map_results
from allowance.stages.prepare import prepare_requests
from allowance.utils import get_logger, to_decimal

logger = get_logger(__name__)


def _as_call(lookup: Any) -> LookupCall:
    get = getattr(lookup, "get", None)
    if callable(get):
        return get
    if callable(lookup):
        return lookup
    raise ValueError(f"lookup must provide an async get(key) or be callable, got {type(lookup).__name__}")


class Calculator:
    """Flags items whose weight exceeds the allowance for their group/category.

    ``lookup`` is either an object with ``async get(key) -> LookupResponse``
    or an async callable with the same signature.
    """

    def __init__(self, lookup: Any, *, tolerance: Decimal = TOLERANCE):
        if lookup is None:
            raise ValueError("lookup is required")
        self._call = _as_call(lookup)
        self.tolerance = to_decimal(tolerance)

    def prepare_requests(self, items: Iterable[Item]) -> Set[LookupRequest]:
        return prepare_requests(items)

    async def combine_calls(self, requests: Iterable[LookupRequest], call: Optional[LookupCall] = None) -> List[KeyedResponse]:
        return await combine_calls(requests, call or self._call)

    def map_results(self, items: Iterable[Item], responses: Iterable[KeyedResponse]) -> Dict[Item, Result]:
        return map_results(items, responses, tolerance=self.tolerance)

    async def calculate(self, items: Iterable[Item]) -> Dict[Item, Result]:
        items = list(items)
        t0 = time.monotonic()
        requests = self.prepare_requests(items)
        responses = await self.combine_calls(requests)
        results = self.map_results(items, responses)
        logger.info(
            "calculate: items=%d lookups=%d flagged=%d took_ms=%d",
            len(items), len(requests), len(results), int((time.monotonic() - t0) * 1000),
        )
        return results
