from typing import Optional

import pytest

from payloadtools.errors import ValidationError
from payloadtools.hydrate.engine import MAX_DEPTH, MUST_BE_ARRAY, Hydrator
from payloadtools.records import Record, field
from payloadtools.records.loader import build_records
from payloadtools.settings import HydratorSettings


class OrderItem(Record):
    product: str = field(rules="required|string")
    qty: int = field(rules="required|integer")
    internal: str = field(exclude=True, default="x")


class Order(Record):
    items: list = field(rules="required|array", items=OrderItem)
    notes: Optional[list] = field(items=OrderItem)


class Guest(Record):
    name: str = field(rules="required|string|not_in:{banned}")


class Party(Record):
    guests: list = field(rules="required|array", items=Guest)


def test_nested_items_collect_every_row_error():
    payload = {"items": [{"product": "", "qty": 3}, {"product": "X", "qty": ""}]}

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, payload)

    assert sorted(exc.value.errors) == ["items.0.product", "items.1.qty"]
    assert exc.value.errors["items.0.product"] == [{"rule": "required", "params": []}]


def test_nested_items_become_flattened_rows():
    payload = {"items": [{"product": "A", "qty": "2"}, {"product": "B", "qty": 5}]}

    order = Hydrator().hydrate(Order, payload)

    assert order.items == [{"product": "A", "qty": 2}, {"product": "B", "qty": 5}]
    assert not order.has("notes")


def test_non_object_rows_are_marked():
    payload = {"items": ["oops", {"product": "A", "qty": 1}, 7]}

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, payload)

    assert exc.value.errors == {
        "items.0": [{"rule": MUST_BE_ARRAY, "params": []}],
        "items.2": [{"rule": MUST_BE_ARRAY, "params": []}],
    }


def test_rows_keyed_by_position_are_validated():
    payload = {"items": {"0": {"product": "", "qty": 3}, "1": {"product": "X", "qty": ""}}}

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, payload)

    assert sorted(exc.value.errors) == ["items.0.product", "items.1.qty"]


def test_rows_keyed_by_position_become_a_list():
    payload = {"items": {"0": {"product": "A", "qty": "2"}, "1": "oops"}}

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, payload)
    assert exc.value.errors == {"items.1": [{"rule": MUST_BE_ARRAY, "params": []}]}

    order = Hydrator().hydrate(Order, {"items": {"0": {"product": "A", "qty": "2"}}})
    assert order.items == [{"product": "A", "qty": 2}]


def test_errors_from_several_fields_are_merged():
    payload = {
        "items": [{"product": "A"}],
        "notes": [{"qty": 1, "product": "B"}, "bad"],
    }

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, payload)

    assert set(exc.value.errors) == {"items.0.qty", "notes.1"}


def test_context_reaches_nested_rows():
    payload = {"guests": [{"name": "ann"}, {"name": "bob"}]}

    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Party, payload, {"banned": "bob"})

    assert exc.value.errors == {"guests.1.name": [{"rule": "not_in", "params": ["bob"]}]}


def test_top_level_rules_run_before_rows():
    with pytest.raises(ValidationError) as exc:
        Hydrator().hydrate(Order, {"items": []})

    assert exc.value.errors == {"items": [{"rule": "required", "params": []}]}


# ==========================================================
# DEPTH LIMIT
# ==========================================================

TREE = build_records({
    "records": {
        "Node": {
            "fields": {
                "name": {"type": "str", "rules": "required|string"},
                "children": {"type": "list", "items": "Node"},
            },
        },
    },
})["Node"]


def _chain(depth):
    node = {"name": f"n{depth}"}
    for i in range(depth - 1, -1, -1):
        node = {"name": f"n{i}", "children": [node]}
    return node


def test_self_referencing_records_hydrate_recursively():
    rec = Hydrator().hydrate(TREE, _chain(2))

    assert rec.children == [{"name": "n1", "children": [{"name": "n2"}]}]


def test_depth_limit_is_a_validation_error():
    h = Hydrator(settings=HydratorSettings(max_depth=2))

    with pytest.raises(ValidationError) as exc:
        h.hydrate(TREE, _chain(3))

    assert exc.value.errors == {
        "children.0.children.0.children": [{"rule": MAX_DEPTH, "params": ["2"]}],
    }


def test_empty_list_at_depth_limit_is_fine():
    h = Hydrator(settings=HydratorSettings(max_depth=1))

    rec = h.hydrate(TREE, {"name": "root", "children": [{"name": "leaf", "children": []}]})

    assert rec.children == [{"name": "leaf", "children": []}]
