from __future__ import annotations

from typing import Dict, Iterable, List, Set

from allowance.models import Item, LookupKey, LookupRequest
from allowance.utils import get_logger

logger = get_logger(__name__)


def eligible_items(items: Iterable[Item]) -> List[Item]:
    """Items that take part in lookups and results (everything not exempt)."""
    return [it for it in items if not it.exempt]


def group_items(items: Iterable[Item]) -> Dict[LookupKey, List[Item]]:
    groups: Dict[LookupKey, List[Item]] = {}
    for it in eligible_items(items):
        groups.setdefault(it.key, []).append(it)
    return groups


def prepare_requests(items: Iterable[Item]) -> Set[LookupRequest]:
    items = list(items)
    requests = {LookupRequest(key) for key in group_items(items)}
    logger.info("prepare: requests=%d from=%d", len(requests), len(items))
    return requests
