from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, FrozenSet, Optional, Tuple

logger = logging.getLogger(__name__)

# tag -> canonical tag
BUILT_IN_TAGS: Dict[str, str] = {
    "int": "int",
    "integer": "int",
    "float": "float",
    "double": "float",
    "bool": "bool",
    "boolean": "bool",
    "str": "string",
    "string": "string",
    "array": "array",
    "list": "array",
}

# canonical tag -> declared type names a cast result may be assigned to
CAST_TARGETS: Dict[str, FrozenSet[str]] = {
    "int": frozenset({"int"}),
    "float": frozenset({"float", "int"}),
    "bool": frozenset({"bool"}),
    "string": frozenset({"str"}),
    "array": frozenset({"list", "dict"}),
    "datetime": frozenset({"datetime", "date"}),
    "date": frozenset({"date"}),
}

# declared type name -> implicit cast tag
IMPLICIT_TAGS: Dict[str, str] = {
    "int": "int",
    "float": "float",
    "bool": "bool",
    "str": "string",
    "list": "array",
    "datetime": "datetime",
    "date": "date",
}

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def _split_temporal(tag: str) -> Tuple[str, bool, Optional[str]]:
    """
    "datetime"                     -> ("datetime", False, None)
    "datetime:%Y-%m-%d"            -> ("datetime", False, "%Y-%m-%d")
    "datetime:immutable:%H:%M"     -> ("datetime", True, "%H:%M")
    "date:%d.%m.%Y"                -> ("date", False, "%d.%m.%Y")
    """
    head, _, rest = tag.partition(":")
    immutable = False
    if rest == "immutable":
        immutable, rest = True, ""
    elif rest.startswith("immutable:"):
        immutable, rest = True, rest[len("immutable:"):]
    return head.lower(), immutable, (rest or None)


def canonical_tag(tag: str) -> Optional[str]:
    """Canonical built-in tag for `tag`, or None when it is not built in."""
    if not isinstance(tag, str):
        return None
    lowered = tag.lower()
    if lowered in BUILT_IN_TAGS:
        return BUILT_IN_TAGS[lowered]
    head = lowered.partition(":")[0]
    if head in ("datetime", "date"):
        return head
    return None


def is_built_in(tag: Any) -> bool:
    return canonical_tag(tag) is not None


# ---------------------------------------------------------------------------
# Scalar coercions
# ---------------------------------------------------------------------------

def to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        logger.debug("int cast failed for %r", value)
        return None


def to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("float cast failed for %r", value)
        return None


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        return True
    return bool(value)


def to_string(value: Any) -> str:
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_array(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return value
    if isinstance(value, tuple):
        return list(value)
    if isinstance(value, str):
        if value == "":
            return []
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = None
        if isinstance(decoded, (list, dict)):
            return decoded
        if "," in value:
            return [s.strip() for s in value.split(",")]
        return [value]
    return [value]


def to_temporal(tag: str, value: Any) -> Any:
    """Best effort date/time parsing; failures degrade to None."""
    kind, _immutable, fmt = _split_temporal(tag)

    if isinstance(value, datetime):
        return value.date() if kind == "date" else value
    if isinstance(value, date):
        return value if kind == "date" else datetime(value.year, value.month, value.day)

    parsed: Optional[datetime] = None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.strptime(text, fmt) if fmt else datetime.fromisoformat(text)
        except ValueError:
            logger.debug("%s cast failed for %r (format=%s)", kind, value, fmt)
            return None
    else:
        return None

    return parsed.date() if kind == "date" else parsed


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class BuiltInCaster:
    """Coerces raw input values to Python types for the built-in cast tags."""

    def is_built_in(self, tag: Any) -> bool:
        return is_built_in(tag)

    def cast(self, tag: str, value: Any) -> Any:
        canonical = canonical_tag(tag)
        if canonical is None:
            raise ValueError(f"Unknown cast type: {tag}")
        if value is None:
            return None
        if isinstance(value, str) and value == "":
            # A blank boolean is an explicit "off" (unchecked box)
            return False if canonical == "bool" else None

        if canonical == "int":
            return to_int(value)
        if canonical == "float":
            return to_float(value)
        if canonical == "bool":
            return to_bool(value)
        if canonical == "string":
            return to_string(value)
        if canonical == "array":
            return to_array(value)
        return to_temporal(tag, value)


_DEFAULT_CASTER = BuiltInCaster()


def cast(tag: str, value: Any) -> Any:
    return _DEFAULT_CASTER.cast(tag, value)
