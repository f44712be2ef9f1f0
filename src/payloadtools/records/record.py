from __future__ import annotations

import inspect
from typing import Any, ClassVar, Dict, Iterator, Mapping, get_origin

from payloadtools.errors import GroupCollisionError, UnsetFieldError
from payloadtools.records.types import NOT_SET, FieldInfo, FieldState


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is ClassVar or get_origin(annotation) is ClassVar


class Record:
    """
    Base class for hydrated records.

    Every annotated public class attribute is a field. A field is either
    UNSET (never touched; reading it raises UnsetFieldError) or populated
    with a DEFAULT or a VALUE, even when that value is None.

    Example:
        class ProductRequest(Record):
            name: str = field(rules="required|string")
            description: Optional[str] = field(rules="nullable|string", default=None)
            page: int = 1
    """

    __declared_fields__: ClassVar[Dict[str, FieldInfo]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declared: Dict[str, FieldInfo] = dict(getattr(cls, "__declared_fields__", {}))

        for name, annotation in inspect.get_annotations(cls).items():
            if name.startswith("_") or _is_classvar(annotation):
                continue
            value = cls.__dict__.get(name, NOT_SET)
            if isinstance(value, FieldInfo):
                info = value
            elif value is NOT_SET:
                info = FieldInfo()
            else:
                info = FieldInfo(default=value)
            if name in cls.__dict__:
                # Defaults live on the descriptor, not on the class
                delattr(cls, name)
            declared[name] = info

        cls.__declared_fields__ = declared

    def __init__(self, **values: Any) -> None:
        object.__setattr__(self, "_values", {})
        object.__setattr__(self, "_states", {})
        for name, value in values.items():
            setattr(self, name, value)

    # ------------------------------------------------------------------
    # Attribute protocol
    # ------------------------------------------------------------------
    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in type(self).__declared_fields__:
            values = self.__dict__.get("_values", {})
            if name in values:
                return values[name]
            raise UnsetFieldError(type(self).__name__, name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).__declared_fields__:
            self._populate(name, value, FieldState.VALUE)
        else:
            object.__setattr__(self, name, value)

    def _populate(self, name: str, value: Any, state: FieldState) -> None:
        self._values[name] = value
        self._states[name] = state

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    def has(self, name: str) -> bool:
        """True when the field was populated (present, cleared, defaulted or generated)."""
        return name in self._values

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def state_of(self, name: str) -> FieldState:
        return self._states.get(name, FieldState.UNSET)

    def populated(self) -> Iterator[str]:
        for name in type(self).__declared_fields__:
            if name in self._values:
                yield name

    def to_dict(self) -> Dict[str, Any]:
        return flatten(self)

    def group(self, tag: str) -> Dict[str, Any]:
        return group_values(self, tag)

    @classmethod
    def messages(cls) -> Dict[str, str]:
        """
        Custom validation messages, keyed "field.rule" or "rule".

        Override in subclasses:

            @classmethod
            def messages(cls):
                return {"email.required": "Please provide your email address"}
        """
        return {}

    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"{type(self).__name__}({body})"


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def flatten(record: Record) -> Dict[str, Any]:
    """Plain dict of the populated, non-excluded fields (declaration order)."""
    declared = type(record).__declared_fields__
    return {
        name: record.get(name)
        for name in record.populated()
        if not declared[name].exclude
    }


def group_values(record: Record, tag: str) -> Dict[str, Any]:
    """
    Merge every populated field tagged `tag` into one dict.

    Mapping values are merged key by key; any other value is added under
    the field name (or its `map_to` alias). Duplicate keys raise.
    """
    out: Dict[str, Any] = {}
    for name, info in type(record).__declared_fields__.items():
        if info.group != tag or not record.has(name):
            continue
        value = record.get(name)
        if isinstance(value, Mapping):
            for key, v in value.items():
                if key in out:
                    raise GroupCollisionError(tag, str(key), name)
                out[key] = v
        else:
            key = info.map_to or name
            if key in out:
                raise GroupCollisionError(tag, key, name)
            out[key] = value
    return out
