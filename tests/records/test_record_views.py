from typing import Any, Dict, Optional

import pytest

from payloadtools.errors import GroupCollisionError, UnsetFieldError
from payloadtools.records import FieldState, Record, field, flatten, group_values


class Listing(Record):
    q: Optional[str] = field(group="criteria")
    sort: Optional[Dict[str, Any]] = field(group="criteria")
    filter: Optional[Dict[str, Any]] = field(group="criteria")
    page: int = field(group="paging", map_to="offset")
    token: str = field(exclude=True)


class Child(Listing):
    limit: int = 20


# ==========================================================
# PRESENCE
# ==========================================================

def test_unset_field_raises_on_read():
    rec = Listing()

    assert not rec.has("q")
    assert rec.state_of("q") is FieldState.UNSET
    assert rec.get("q", "fallback") == "fallback"

    with pytest.raises(UnsetFieldError, match="Listing.q"):
        rec.q


def test_none_is_a_populated_value():
    rec = Listing(q=None)

    assert rec.has("q")
    assert rec.q is None
    assert rec.state_of("q") is FieldState.VALUE


def test_assignment_marks_field_as_value():
    rec = Listing()
    rec.page = 3

    assert rec.page == 3
    assert list(rec.populated()) == ["page"]


def test_undeclared_attribute_is_a_plain_attribute_error():
    with pytest.raises(AttributeError) as exc:
        Listing().nope

    assert not isinstance(exc.value, UnsetFieldError)


def test_subclass_inherits_parent_fields():
    assert list(Child.__declared_fields__) == ["q", "sort", "filter", "page", "token", "limit"]


def test_equality_compares_populated_values():
    assert Listing(q="a") == Listing(q="a")
    assert Listing(q="a") != Listing(q="b")
    assert Listing(q="a") != Child(q="a")


# ==========================================================
# FLATTEN
# ==========================================================

def test_flatten_skips_unset_and_excluded_fields():
    rec = Listing(q="shoes", token="s3cr3t", page=2)

    assert flatten(rec) == {"q": "shoes", "page": 2}
    assert rec.to_dict() == flatten(rec)


# ==========================================================
# GROUPS
# ==========================================================

def test_group_merges_mapping_fields_and_adds_scalars():
    rec = Listing(q="shoes", sort={"created_at": "DESC"}, filter={"status": "open"})

    assert group_values(rec, "criteria") == {
        "q": "shoes",
        "created_at": "DESC",
        "status": "open",
    }


def test_group_uses_map_to_alias():
    assert Listing(page=4).group("paging") == {"offset": 4}


def test_group_skips_unpopulated_fields():
    assert Listing(q="x").group("criteria") == {"q": "x"}
    assert Listing().group("missing") == {}


def test_group_collision_names_the_second_field():
    rec = Listing(sort={"status": "ASC"}, filter={"status": "open"})

    with pytest.raises(GroupCollisionError) as exc:
        rec.group("criteria")

    assert exc.value.key == "status"
    assert exc.value.field == "filter"
    assert "Duplicate key 'status' in group 'criteria' from field 'filter'" in str(exc.value)


def test_group_collision_is_a_value_error():
    rec = Listing(q="x", sort={"q": "ASC"})

    with pytest.raises(ValueError):
        rec.group("criteria")
