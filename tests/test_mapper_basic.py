from decimal import Decimal

from allowance.models import Item, KeyedResponse, LookupKey, LookupResponse
from allowance.stages.mapper import map_results


def _resp(group, category, max_allowed):
    return KeyedResponse(LookupKey(group, category), LookupResponse(Decimal(max_allowed)))


def test_map_results_calculates_excess():
    items = [
        Item(group="Ducks", category="Birds", weight=15),
        Item(group="Ducks", category="Birds", weight=5),
        Item(group="Cows", category="Mammals", weight=1500),
        Item(group="Ducks", category="Birds", weight=100, exempt=True),
    ]
    responses = [_resp("Ducks", "Birds", 8), _resp("Cows", "Mammals", 1000)]

    results = map_results(items, responses)

    assert len(results) == 2
    assert results[items[0]].allowed_weight == Decimal(8)
    assert results[items[0]].excess == Decimal(7)
    assert results[items[2]].allowed_weight == Decimal(1000)
    assert results[items[2]].excess == Decimal(500)
    assert items[1] not in results
    assert items[3] not in results


def test_map_results_tolerance_boundary_is_exclusive():
    at = Item(group="Ducks", category="Birds", weight=Decimal("13"))
    above = Item(group="Ducks", category="Birds", weight=Decimal("13.0001"))
    results = map_results([at, above], [_resp("Ducks", "Birds", 8)])
    assert at not in results
    assert results[above].excess == Decimal("5.0001")


def test_map_results_omits_items_without_response():
    item = Item(group="Unknown", category="Nothing", weight=1000)
    assert map_results([item], [_resp("Ducks", "Birds", 8)]) == {}


def test_map_results_first_matching_response_wins():
    item = Item(group="Ducks", category="Birds", weight=100)
    responses = [_resp("Ducks", "Birds", 20), _resp("Ducks", "Birds", 1)]
    assert map_results([item], responses)[item].allowed_weight == Decimal(20)


def test_map_results_identical_items_are_separate_entries():
    a = Item(group="Ducks", category="Birds", weight=30)
    b = Item(group="Ducks", category="Birds", weight=30)
    results = map_results([a, b], [_resp("Ducks", "Birds", 8)])
    assert len(results) == 2
    assert results[a] == results[b]


def test_map_results_custom_tolerance():
    item = Item(group="Ducks", category="Birds", weight=9)
    responses = [_resp("Ducks", "Birds", 8)]
    assert map_results([item], responses) == {}
    assert map_results([item], responses, tolerance=Decimal(0))[item].excess == Decimal(1)


def test_map_results_accepts_int_and_float_allowances():
    duck = Item(group="Ducks", category="Birds", weight=15)
    cow = Item(group="Cows", category="Mammals", weight="1500.5")
    responses = [
        KeyedResponse(LookupKey("Ducks", "Birds"), LookupResponse(8.0)),
        KeyedResponse(LookupKey("Cows", "Mammals"), LookupResponse(1000)),
    ]
    results = map_results([duck, cow], responses)
    assert results[duck].allowed_weight == Decimal(8)
    assert results[duck].excess == Decimal(7)
    assert results[cow].excess == Decimal("500.5")
