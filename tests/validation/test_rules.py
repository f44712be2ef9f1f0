import pytest

from payloadtools.errors import ConfigurationError
from payloadtools.validation import RuleValidator, parse_rules


validator = RuleValidator()


def _rules_failed(value, rules):
    return [e["rule"] for e in validator.check_field("f", value, rules, {})]


# ==========================================================
# PARSING
# ==========================================================

@pytest.mark.parametrize(
    "text, parsed",
    [
        ("required|integer", [("required", []), ("integer", [])]),
        ("between:1, 10", [("between", ["1", "10"])]),
        ("in:a,b,c", [("in", ["a", "b", "c"])]),
        ("required||string", [("required", []), ("string", [])]),
        ("string|regex:/^(a|b)$/", [("string", []), ("regex", ["/^(a|b)$/"])]),
    ],
)
def test_parse_rules(text, parsed):
    assert parse_rules(text) == parsed


# ==========================================================
# CHECKS
# ==========================================================

@pytest.mark.parametrize(
    "value, rules, failed",
    [
        ("abc", "required|string", []),
        (5, "string", ["string"]),
        ("12", "integer", []),
        ("1.5", "integer", ["integer"]),
        (True, "integer", ["integer"]),
        ("1e3", "numeric", []),
        ("x", "numeric|min:2", ["numeric", "min"]),
        ("10", "numeric|min:0|max:9", ["max"]),
        ("abcd", "string|min:5", ["min"]),
        ([1, 2, 3], "array|max:2", ["max"]),
        (7, "between:1,10", []),
        ("yes", "boolean", ["boolean"]),
        ("false", "boolean", []),
        ("a@b.io", "email", []),
        ("a@b", "email", ["email"]),
        ("3f1e4d3c-1234-4d2a-9abc-0123456789ab", "uuid", []),
        ("2024-05-01", "date", []),
        ("tomorrow", "date", ["date"]),
        ("abc", "alpha", []),
        ("ab1", "alpha_num", []),
        ("ab-1", "alpha_num", ["alpha_num"]),
        ("b", "in:a,b", []),
        ("c", "in:a,b", ["in"]),
        (["a", "c"], "in:a,b", ["in"]),
        ("b", "not_in:a,b", ["not_in"]),
        ("B", "regex:/^(a|b)$/i", []),
        ("c", "regex:/^(a|b)$/", ["regex"]),
    ],
)
def test_checks(value, rules, failed):
    assert _rules_failed(value, rules) == failed


# ==========================================================
# BLANK VALUES
# ==========================================================

@pytest.mark.parametrize("value", [None, "", "   ", [], {}])
def test_blank_required_reports_only_required(value):
    assert _rules_failed(value, "required|string|min:3") == ["required"]


@pytest.mark.parametrize("value", [None, ""])
def test_blank_optional_passes(value):
    assert _rules_failed(value, "nullable|string|min:3") == []


# ==========================================================
# VALIDATE
# ==========================================================

def test_validate_collects_per_field_errors():
    errors = validator.validate(
        {"name": "", "age": "x", "email": "a@b.io"},
        {"name": "required", "age": "integer|min:18", "email": "email"},
    )

    assert errors == {
        "name": [{"rule": "required", "params": []}],
        "age": [{"rule": "integer", "params": []}, {"rule": "min", "params": ["18"]}],
    }


def test_missing_data_key_is_treated_as_null():
    assert validator.validate({}, {"name": "required"}) == {"name": [{"rule": "required", "params": []}]}


def test_messages_field_rule_beats_rule():
    messages = {
        "age.min": "{{ field }} must be at least {{ params[0] }}",
        "min": "too small",
    }

    errors = validator.validate({"age": 3, "size": 1}, {"age": "integer|min:18", "size": "min:2"}, messages)

    assert errors["age"][0]["message"] == "age must be at least 18"
    assert errors["size"][0]["message"] == "too small"


def test_unknown_rule_raises():
    with pytest.raises(ConfigurationError, match="unknown validation rule 'shiny'"):
        validator.validate({"a": "x"}, {"a": "shiny"})


def test_bad_numeric_parameter_raises():
    with pytest.raises(ConfigurationError):
        validator.validate({"a": "x"}, {"a": "min:lots"})
