"""
Default rule engine for "required|integer|min:1"-style rule strings.

Implements the Validator contract consumed by the hydration engine:

    validate(data, rules, messages) -> {field: [{"rule": ..., "params": [...]}]}

An empty result means success. Any validator with the same call shape can be
passed to Hydrator instead.
"""

from __future__ import annotations

import functools
import math
import re
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from jinja2 import Template

from payloadtools.errors import ConfigurationError

Rule = Tuple[str, List[str]]
ErrorEntry = Dict[str, Any]


class Validator(Protocol):
    def validate(
        self,
        data: Mapping[str, Any],
        rules: Mapping[str, str],
        messages: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, List[ErrorEntry]]: ...


# ============================================================================
# Parsing
# ============================================================================

def parse_rules(rules: str) -> List[Rule]:
    """
    "required|integer|between:1,10" -> [("required", []), ("integer", []), ("between", ["1", "10"])]

    A regex rule swallows the remainder of the string so patterns may contain "|".
    """
    out: List[Rule] = []
    parts = rules.split("|")
    for i, part in enumerate(parts):
        part = part.strip()
        if not part:
            continue
        name, _, arg = part.partition(":")
        name = name.strip()
        if name == "regex":
            out.append((name, ["|".join([arg] + parts[i + 1:])]))
            break
        params = [p.strip() for p in arg.split(",")] if arg else []
        out.append((name, params))
    return out


# ============================================================================
# Checks
# ============================================================================

_INT_RE = re.compile(r"^[+-]?\d+$")
_NUM_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_integer(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, int):
        return True
    if isinstance(v, float):
        return v.is_integer()
    return isinstance(v, str) and bool(_INT_RE.match(v.strip()))


def _is_numeric(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    if isinstance(v, (int, float)):
        return not (isinstance(v, float) and (math.isnan(v) or math.isinf(v)))
    return isinstance(v, str) and bool(_NUM_RE.match(v.strip()))


def _is_boolean(v: Any) -> bool:
    if isinstance(v, bool):
        return True
    if isinstance(v, int):
        return v in (0, 1)
    return isinstance(v, str) and v.strip().lower() in {"0", "1", "true", "false"}


def _is_uuid(v: Any) -> bool:
    if not isinstance(v, str):
        return False
    try:
        uuid.UUID(v)
    except ValueError:
        return False
    return len(v.replace("-", "")) == 32


def _is_date(v: Any) -> bool:
    if isinstance(v, (date, datetime)):
        return True
    if not isinstance(v, str):
        return False
    try:
        datetime.fromisoformat(v.strip())
    except ValueError:
        return False
    return True


def _size(v: Any, numeric: bool) -> Optional[float]:
    if numeric and _is_numeric(v):
        return float(v)
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, (str, list, dict, tuple)):
        return float(len(v))
    return None


def _num_param(params: List[str], i: int) -> float:
    try:
        return float(params[i])
    except (IndexError, ValueError) as e:
        raise ConfigurationError("invalid_rule_param", "validator", None, f"bad numeric parameter in {params}") from e


def _bounded(v: Any, numeric: bool, low: Optional[float] = None, high: Optional[float] = None) -> bool:
    size = _size(v, numeric)
    if size is None:
        return False
    if low is not None and size < low:
        return False
    if high is not None and size > high:
        return False
    return True


def _in(v: Any, params: List[str]) -> bool:
    if isinstance(v, list):
        return all(str(x) in params for x in v)
    if isinstance(v, bool):
        return ("1" if v else "0") in params or str(v).lower() in params
    return str(v) in params


def _regex(v: Any, params: List[str]) -> bool:
    pattern = params[0] if params else ""
    if len(pattern) >= 2 and pattern.startswith("/"):
        # /pattern/flags
        body, _, flags = pattern[1:].rpartition("/")
        pattern = body
        re_flags = re.IGNORECASE if "i" in flags else 0
    else:
        re_flags = 0
    return isinstance(v, (str, int, float)) and re.search(pattern, str(v), re_flags) is not None


Check = Callable[[Any, List[str], bool], bool]

CHECKS: Dict[str, Check] = {
    "string": lambda v, p, n: isinstance(v, str),
    "integer": lambda v, p, n: _is_integer(v),
    "numeric": lambda v, p, n: _is_numeric(v),
    "boolean": lambda v, p, n: _is_boolean(v),
    "array": lambda v, p, n: isinstance(v, (list, dict)),
    "email": lambda v, p, n: isinstance(v, str) and bool(_EMAIL_RE.match(v)),
    "uuid": lambda v, p, n: _is_uuid(v),
    "date": lambda v, p, n: _is_date(v),
    "alpha": lambda v, p, n: isinstance(v, str) and v.isalpha(),
    "alpha_num": lambda v, p, n: isinstance(v, str) and v.isalnum(),
    "min": lambda v, p, n: _bounded(v, n, low=_num_param(p, 0)),
    "max": lambda v, p, n: _bounded(v, n, high=_num_param(p, 0)),
    "between": lambda v, p, n: _bounded(v, n, low=_num_param(p, 0), high=_num_param(p, 1)),
    "in": lambda v, p, n: _in(v, p),
    "not_in": lambda v, p, n: not _in(v, p),
    "regex": lambda v, p, n: _regex(v, p),
}

_FLAGS = {"required", "nullable"}


def _is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return v.strip() == ""
    if isinstance(v, (list, dict, tuple)):
        return len(v) == 0
    return False


@functools.lru_cache(maxsize=256)
def _template(text: str) -> Template:
    return Template(text)


# ============================================================================
# Validator
# ============================================================================

class RuleValidator:
    """Evaluates rule strings field by field and collects every failure."""

    def validate(
        self,
        data: Mapping[str, Any],
        rules: Mapping[str, str],
        messages: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, List[ErrorEntry]]:
        messages = messages or {}
        errors: Dict[str, List[ErrorEntry]] = {}
        for name, rule_str in rules.items():
            found = self.check_field(name, data.get(name), rule_str, messages)
            if found:
                errors[name] = found
        return errors

    def check_field(
        self,
        name: str,
        value: Any,
        rule_str: str,
        messages: Mapping[str, str],
    ) -> List[ErrorEntry]:
        parsed = parse_rules(rule_str)
        names = {r for r, _ in parsed}
        for r in names:
            if r not in CHECKS and r not in _FLAGS:
                raise ConfigurationError.unknown_rule(r)

        if _is_blank(value):
            if "required" in names:
                return [self._entry(name, "required", [], value, messages)]
            # Optional blank values (and explicit nulls) pass untouched
            return []

        numeric = "numeric" in names or "integer" in names
        out: List[ErrorEntry] = []
        for rule, params in parsed:
            if rule in _FLAGS:
                continue
            if not CHECKS[rule](value, params, numeric):
                out.append(self._entry(name, rule, params, value, messages))
        return out

    def _entry(
        self,
        name: str,
        rule: str,
        params: List[str],
        value: Any,
        messages: Mapping[str, str],
    ) -> ErrorEntry:
        entry: ErrorEntry = {"rule": rule, "params": list(params)}
        text = messages.get(f"{name}.{rule}") or messages.get(rule)
        if text:
            entry["message"] = _template(text).render(field=name, rule=rule, params=params, value=value)
        return entry
