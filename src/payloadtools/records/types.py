from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple


class _NotSet:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_SET"

    def __bool__(self) -> bool:
        return False


NOT_SET: Any = _NotSet()


class FieldState(str, enum.Enum):
    """Tri-state presence of a field on a hydrated record."""

    UNSET = "unset"
    DEFAULT = "default"
    VALUE = "value"


# ---------------------------------------------------------------------------
# Declaration side (what the user writes on the class)
# ---------------------------------------------------------------------------

@dataclass
class FieldInfo:
    rules: Optional[str] = None
    cast: Any = None                    # built-in tag ("int", "datetime:%Y-%m-%d") or caster ref
    map_from: Optional[str] = None      # dot path into the raw input
    pre_process: Any = None
    post_process: Any = None
    post_process_config: Dict[str, Any] = dc_field(default_factory=dict)
    group: Optional[str] = None
    generator: Any = None
    generator_options: Dict[str, Any] = dc_field(default_factory=dict)
    exclude: bool = False
    items: Any = None                   # Record subclass for list-of-objects fields
    map_to: Optional[str] = None        # alias used by Record.group()
    default: Any = NOT_SET
    default_factory: Optional[Callable[[], Any]] = None

    @property
    def has_default(self) -> bool:
        return self.default is not NOT_SET or self.default_factory is not None


def field(
    *,
    rules: Optional[str] = None,
    cast: Any = None,
    map_from: Optional[str] = None,
    pre_process: Any = None,
    post_process: Any = None,
    post_process_config: Optional[Dict[str, Any]] = None,
    group: Optional[str] = None,
    generator: Any = None,
    generator_options: Optional[Dict[str, Any]] = None,
    exclude: bool = False,
    items: Any = None,
    map_to: Optional[str] = None,
    default: Any = NOT_SET,
    default_factory: Optional[Callable[[], Any]] = None,
) -> Any:
    """
    Configure one record field.

    Example:
        class ProductRequest(Record):
            name: str = field(rules="required|string")
            price: float = field(rules="required|numeric|min:0", cast="float")
            user_id: int = field(rules="integer", map_from="user.id")
            page: int = field(rules="integer|min:1", default=1)
    """
    if default is not NOT_SET and default_factory is not None:
        raise ValueError("cannot specify both default and default_factory")
    return FieldInfo(
        rules=rules,
        cast=cast,
        map_from=map_from,
        pre_process=pre_process,
        post_process=post_process,
        post_process_config=dict(post_process_config or {}),
        group=group,
        generator=generator,
        generator_options=dict(generator_options or {}),
        exclude=exclude,
        items=items,
        map_to=map_to,
        default=default,
        default_factory=default_factory,
    )


# ---------------------------------------------------------------------------
# Compiled side (what the metadata builder produces)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeInfo:
    """Normalized view of a field annotation."""

    names: FrozenSet[str]       # e.g. {"int"}, {"int", "float"}, {"list"}; empty when untyped
    nullable: bool
    display: str

    @property
    def known(self) -> bool:
        return bool(self.names)

    @property
    def single(self) -> Optional[str]:
        return next(iter(self.names)) if len(self.names) == 1 else None

    def accepts_any(self, allowed) -> bool:
        return bool(self.names & set(allowed))


@dataclass(frozen=True)
class Handler:
    """A resolved processor, caster or generator, ready to be called."""

    ref: str
    kind: str                   # function | processor | caster | generator | method
    target: Callable[..., Any]

    def __call__(self, *args: Any) -> Any:
        return self.target(*args)


@dataclass(frozen=True)
class FieldDescriptor:
    """Immutable per-field configuration compiled from a record declaration."""

    name: str
    source_path: str
    type: TypeInfo
    rules: Optional[str] = None
    cast_type: Optional[str] = None         # built-in tag only
    caster: Optional[Handler] = None        # custom caster when cast is not built-in
    pre_processor: Optional[Handler] = None
    post_processor: Optional[Handler] = None
    post_process_config: Tuple[Tuple[str, Any], ...] = ()
    generator: Optional[Handler] = None
    generator_options: Tuple[Tuple[str, Any], ...] = ()
    items_type: Optional[type] = None
    group: Optional[str] = None
    has_default: bool = False
    default_value: Any = None
    default_factory: Optional[Callable[[], Any]] = None
    is_required: bool = False
    exclude: bool = False
    map_to: Optional[str] = None

    def make_default(self) -> Any:
        """Fresh copy of the default so mutable defaults are never shared."""
        if self.default_factory is not None:
            return self.default_factory()
        return copy.deepcopy(self.default_value)

    @property
    def post_config(self) -> Dict[str, Any]:
        return dict(self.post_process_config)

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self.generator_options)

    def describe(self) -> Dict[str, Any]:
        def _ref(h: Optional[Handler]) -> Optional[str]:
            return h.ref if h is not None else None

        return {
            "name": self.name,
            "source_path": self.source_path,
            "type": self.type.display,
            "nullable": self.type.nullable,
            "rules": self.rules,
            "cast": self.cast_type or _ref(self.caster),
            "pre_process": _ref(self.pre_processor),
            "post_process": _ref(self.post_processor),
            "generator": _ref(self.generator),
            "items": self.items_type.__name__ if self.items_type is not None else None,
            "group": self.group,
            "has_default": self.has_default,
            "default": self.default_value if self.default_factory is None else "<factory>",
            "required": self.is_required,
            "exclude": self.exclude,
            "map_to": self.map_to,
        }


@dataclass(frozen=True)
class RecordMetadata:
    record_type: type
    fields: Dict[str, FieldDescriptor]

    @property
    def name(self) -> str:
        return self.record_type.__name__

    def groups(self, tag: str) -> List[FieldDescriptor]:
        return [d for d in self.fields.values() if d.group == tag]
