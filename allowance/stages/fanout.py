from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List

from allowance.models import KeyedResponse, LookupKey, LookupRequest, LookupResponse
from allowance.utils import get_logger

logger = get_logger(__name__)

LookupCall = Callable[[LookupKey], Awaitable[LookupResponse]]


async def _keyed_call(request: LookupRequest, call: LookupCall) -> KeyedResponse:
    response = await call(request.key)
    return KeyedResponse(key=request.key, response=response)


async def combine_calls(requests: Iterable[LookupRequest], call: LookupCall) -> List[KeyedResponse]:
    """Run ``call`` once per request concurrently and wait for all of them.

    Each task pairs its response with its own request key, so completion
    order does not matter. If any call fails (or this coroutine is
    cancelled) the remaining calls are cancelled and the error propagates.
    """
    tasks = [asyncio.ensure_future(_keyed_call(r, call)) for r in requests]
    if not tasks:
        return []
    logger.info("fanout: calls=%d", len(tasks))
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        pending = [t for t in tasks if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise
