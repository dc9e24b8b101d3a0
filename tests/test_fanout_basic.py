import asyncio
from collections import Counter
from decimal import Decimal

import pytest

from allowance.models import LookupKey, LookupRequest, LookupResponse
from allowance.stages.fanout import combine_calls


def _requests(*pairs):
    return [LookupRequest(LookupKey(g, c)) for g, c in pairs]


def test_combine_calls_pairs_each_response_with_its_key():
    reqs = _requests(("Ducks", "Birds"), ("Parrots", "Birds"), ("Cows", "Mammals"))

    async def call(key):
        return LookupResponse(max_allowed=Decimal(len(key.group) * 10))

    out = asyncio.run(combine_calls(reqs, call))
    assert len(out) == 3
    by_key = {kr.key: kr.response.max_allowed for kr in out}
    assert by_key[LookupKey("Ducks", "Birds")] == Decimal(50)
    assert by_key[LookupKey("Parrots", "Birds")] == Decimal(70)
    assert by_key[LookupKey("Cows", "Mammals")] == Decimal(40)


def test_combine_calls_out_of_order_completion():
    reqs = _requests(*[("G%d" % i, "C") for i in range(6)])
    finished = []

    async def call(key):
        idx = int(key.group[1:])
        # later requests finish first
        await asyncio.sleep(0.01 * (6 - idx))
        finished.append(idx)
        return LookupResponse(max_allowed=Decimal(idx))

    out = asyncio.run(combine_calls(reqs, call))
    assert finished == [5, 4, 3, 2, 1, 0]
    assert all(kr.response.max_allowed == Decimal(int(kr.key.group[1:])) for kr in out)


def test_combine_calls_runs_concurrently():
    reqs = _requests(("A", "x"), ("B", "x"), ("C", "x"))
    state = {"active": 0, "peak": 0}

    async def call(key):
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        return LookupResponse(max_allowed=Decimal(1))

    asyncio.run(combine_calls(reqs, call))
    assert state["peak"] == 3


def test_combine_calls_one_call_per_request():
    reqs = _requests(("A", "x"), ("B", "x"))
    calls = Counter()

    async def call(key):
        calls[key] += 1
        return LookupResponse(max_allowed=Decimal(1))

    asyncio.run(combine_calls(reqs, call))
    assert calls == Counter({LookupKey("A", "x"): 1, LookupKey("B", "x"): 1})


def test_combine_calls_empty_makes_no_calls():
    async def call(key):
        raise AssertionError("should not be called")

    assert asyncio.run(combine_calls([], call)) == []


def test_combine_calls_failure_propagates_and_cancels_others():
    reqs = _requests(("ok", "x"), ("bad", "x"))
    cancelled = []

    async def call(key):
        if key.group == "bad":
            raise RuntimeError("boom")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(key)
            raise
        return LookupResponse(max_allowed=Decimal(1))

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(combine_calls(reqs, call))
    assert cancelled == [LookupKey("ok", "x")]


def test_combine_calls_outer_cancel_cancels_calls():
    reqs = _requests(("A", "x"), ("B", "x"))
    cancelled = []

    async def call(key):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(key)
            raise
        return LookupResponse(max_allowed=Decimal(1))

    async def run():
        task = asyncio.ensure_future(combine_calls(reqs, call))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert sorted(k.group for k in cancelled) == ["A", "B"]
