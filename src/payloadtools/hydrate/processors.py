"""
Built-in processors and generators.

Processors take a value (and optionally a config dict) and return a new
value. Generators ignore the input entirely and produce a value from an
options dict. All of them are registered by name in the default Registry.
"""

from __future__ import annotations

import itertools
import json
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional


# ============================================================================
# String transforms
# ============================================================================

def trim(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def lower(v: Any) -> Any:
    return v.lower() if isinstance(v, str) else v


def upper(v: Any) -> Any:
    return v.upper() if isinstance(v, str) else v


def slug(v: Any, config: Optional[Dict[str, Any]] = None) -> Any:
    if not isinstance(v, str):
        return v
    sep = (config or {}).get("separator", "-")
    s = v.strip().lower()
    s = re.sub(r"[^a-z0-9]+", sep, s).strip(sep)
    return s


def json_decode(v: Any) -> Any:
    """Decode a JSON string; malformed input is returned unchanged for the rules to reject."""
    if not isinstance(v, str):
        return v
    try:
        return json.loads(v)
    except ValueError:
        return v


# ============================================================================
# Listing parameters (?sort=-created_at&search=...&filter[status]=open)
# ============================================================================

def sort(v: Any) -> Optional[Dict[str, str]]:
    """"name" -> {"name": "ASC"}, "-created_at" -> {"created_at": "DESC"}."""
    if not v:
        return None
    text = str(v)
    if text.startswith("-"):
        return {text[1:]: "DESC"}
    return {text: "ASC"}


def search(v: Any) -> List[Any]:
    if not v:
        return []
    if isinstance(v, list):
        return v
    if isinstance(v, dict):
        return list(v.values())
    return [v]


def filter_(v: Any) -> Dict[str, Any]:
    if not v:
        return {}
    if isinstance(v, dict):
        return {"filter": v}
    if isinstance(v, list):
        return {"filter": v}
    return {"filter": [v]}


def bool_int(v: Any) -> int:
    """Boolean-like value -> 0/1 (for storage layers without a bool type)."""
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, str):
        lowered = v.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return 1
        if lowered in {"false", "0", "no", "off", ""}:
            return 0
    return int(bool(v))


# ============================================================================
# Generators
# ============================================================================

class UuidGenerator:
    """uuid4 string; options: {"hex": True} for the 32-char form."""

    def generate(self, options: Dict[str, Any]) -> str:
        value = uuid.uuid4()
        return value.hex if options.get("hex") else str(value)


class TimestampGenerator:
    """Current UTC time; options: {"format": "%Y-%m-%d"} returns a string."""

    def generate(self, options: Dict[str, Any]) -> Any:
        now = datetime.now(timezone.utc)
        fmt = options.get("format")
        return now.strftime(fmt) if fmt else now


class SequenceGenerator:
    """
    In-process integer ids, one counter per "table" option.

    Stateful: relies on the registry caching a single instance.
    """

    def __init__(self) -> None:
        self._counters: Dict[str, Iterator[int]] = {}
        self._lock = threading.Lock()

    def generate(self, options: Dict[str, Any]) -> int:
        table = str(options.get("table", "default"))
        with self._lock:
            if table not in self._counters:
                self._counters[table] = itertools.count(int(options.get("start", 1)))
            return next(self._counters[table])


BUILT_IN_PROCESSORS = {
    "trim": trim,
    "lower": lower,
    "upper": upper,
    "slug": slug,
    "json": json_decode,
    "sort": sort,
    "search": search,
    "filter": filter_,
    "bool_int": bool_int,
}

BUILT_IN_GENERATORS = {
    "uuid": UuidGenerator,
    "timestamp": TimestampGenerator,
    "sequence": SequenceGenerator,
}
