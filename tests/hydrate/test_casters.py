from datetime import date, datetime, timezone

import pytest

from payloadtools.hydrate.casters import BuiltInCaster, canonical_tag, cast, is_built_in


# ==========================================================
# BOOLEAN
# ==========================================================

@pytest.mark.parametrize(
    "value, expected",
    [
        ("Yes", True),
        ("", False),
        ("banana", True),
        ("off", False),
        ("FALSE", False),
        ("1", True),
        (0, False),
        (True, True),
    ],
)
def test_bool_cast(value, expected):
    assert cast("bool", value) is expected


def test_bool_cast_of_none_is_none():
    assert cast("boolean", None) is None


# ==========================================================
# NUMBERS / STRINGS
# ==========================================================

@pytest.mark.parametrize(
    "tag, value, expected",
    [
        ("int", "42", 42),
        ("integer", " 7 ", 7),
        ("int", "3.9", 3),
        ("int", "abc", None),
        ("float", "10.5", 10.5),
        ("double", 3, 3.0),
        ("float", "abc", None),
        ("string", 12, "12"),
        ("str", [1, 2], "[1, 2]"),
        ("int", "", None),
        ("string", None, None),
    ],
)
def test_scalar_casts(tag, value, expected):
    assert cast(tag, value) == expected


# ==========================================================
# ARRAY
# ==========================================================

@pytest.mark.parametrize(
    "value, expected",
    [
        ([1, 2], [1, 2]),
        ('["a", "b"]', ["a", "b"]),
        ('{"k": 1}', {"k": 1}),
        ("a, b,c", ["a", "b", "c"]),
        ("solo", ["solo"]),
        (5, [5]),
    ],
)
def test_array_cast(value, expected):
    assert cast("array", value) == expected


def test_array_cast_of_empty_string_short_circuits():
    assert cast("array", "") is None


# ==========================================================
# DATE / TIME
# ==========================================================

def test_datetime_iso():
    assert cast("datetime", "2024-05-01T10:30:00") == datetime(2024, 5, 1, 10, 30)


def test_datetime_with_format():
    assert cast("datetime:%d/%m/%Y", "01/05/2024") == datetime(2024, 5, 1)


def test_datetime_immutable_flag_with_format():
    assert cast("datetime:immutable:%H:%M", "10:30") == datetime(1900, 1, 1, 10, 30)


def test_date_tag_returns_date():
    assert cast("date", "2024-05-01") == date(2024, 5, 1)


def test_datetime_from_timestamp_is_utc():
    assert cast("datetime", 0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["not a date", "32/13/2024", object()])
def test_datetime_failures_degrade_to_none(value):
    assert cast("datetime:%d/%m/%Y", value) is None


# ==========================================================
# TAGS
# ==========================================================

@pytest.mark.parametrize(
    "tag, canonical",
    [
        ("INT", "int"),
        ("boolean", "bool"),
        ("list", "array"),
        ("datetime:immutable", "datetime"),
        ("date:%Y", "date"),
        ("money", None),
        (None, None),
    ],
)
def test_canonical_tag(tag, canonical):
    assert canonical_tag(tag) == canonical
    assert is_built_in(tag) is (canonical is not None)


def test_unknown_tag_raises():
    with pytest.raises(ValueError, match="Unknown cast type"):
        BuiltInCaster().cast("money", "5")
