from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable

from allowance.models import Item, KeyedResponse, LookupKey, LookupResponse, Result
from allowance.stages.prepare import eligible_items
from allowance.utils import get_logger

logger = get_logger(__name__)

TOLERANCE = Decimal(5)


def _index_responses(responses: Iterable[KeyedResponse]) -> Dict[LookupKey, LookupResponse]:
    # first response per key wins
    index: Dict[LookupKey, LookupResponse] = {}
    for kr in responses:
        index.setdefault(kr.key, kr.response)
    return index


def map_results(
    items: Iterable[Item],
    responses: Iterable[KeyedResponse],
    *,
    tolerance: Decimal = TOLERANCE,
) -> Dict[Item, Result]:
    eligible = eligible_items(items)
    index = _index_responses(responses)

    results: Dict[Item, Result] = {}
    for it in eligible:
        match = index.get(it.key)
        if match is None:
            continue
        if it.weight > match.max_allowed + tolerance:
            results[it] = Result(
                allowed_weight=match.max_allowed,
                excess=it.weight - match.max_allowed,
            )

    logger.info("mapper: results=%d eligible=%d", len(results), len(eligible))
    return results
