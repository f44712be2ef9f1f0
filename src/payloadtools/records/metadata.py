from __future__ import annotations

import logging
import re
import threading
import types as _pytypes
import typing
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional, Union, get_args, get_origin

from payloadtools.errors import ConfigurationError
from payloadtools.hydrate.casters import CAST_TARGETS, canonical_tag
from payloadtools.hydrate.registry import Registry, default_registry
from payloadtools.records.record import Record, _is_classvar
from payloadtools.records.types import FieldDescriptor, FieldInfo, RecordMetadata, TypeInfo

logger = logging.getLogger(__name__)

_TYPE_NAMES = {
    int: "int",
    float: "float",
    str: "str",
    bool: "bool",
    list: "list",
    tuple: "tuple",
    set: "set",
    dict: "dict",
    datetime: "datetime",
    date: "date",
    Decimal: "decimal",
}

_UNTYPED = TypeInfo(frozenset(), True, "Any")

# Public Record API members; not usable as field names
RESERVED_NAMES = frozenset(n for n in dir(Record) if not n.startswith("_"))


def _has_rule(rules: Optional[str], name: str) -> bool:
    return rules is not None and re.search(rf"\b{name}\b", rules) is not None


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    if origin is Union:
        return True
    union_type = getattr(_pytypes, "UnionType", None)
    return union_type is not None and origin is union_type


def _display(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def analyze_type(tp: Any) -> TypeInfo:
    """Reduce an annotation to the set of base type names plus nullability."""
    if tp is None or tp is type(None):
        return TypeInfo(frozenset(), True, "None")
    if tp is Any:
        return _UNTYPED

    if _is_union(tp):
        names: set = set()
        nullable = False
        for arg in get_args(tp):
            if arg is type(None):
                nullable = True
                continue
            sub = analyze_type(arg)
            if not sub.known:
                return TypeInfo(frozenset(), True, _display(tp))
            names |= sub.names
            nullable = nullable or sub.nullable
        return TypeInfo(frozenset(names), nullable, _display(tp))

    origin = get_origin(tp)
    base = origin if origin is not None else tp
    if base is typing.Literal:
        literal_types = {type(v) for v in get_args(tp)}
        names = frozenset(_TYPE_NAMES.get(t, t.__name__) for t in literal_types if t is not type(None))
        return TypeInfo(names, type(None) in literal_types, _display(tp))
    if isinstance(base, type):
        return TypeInfo(frozenset({_TYPE_NAMES.get(base, base.__name__)}), False, _display(tp))
    return TypeInfo(frozenset(), True, _display(tp))


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class MetadataBuilder:
    """
    Compiles a Record subclass into RecordMetadata.

    Every configuration check happens here, once per type:
      1. 'nullable' rule requires a None-accepting type
      2. 'required' rule excludes a default
      3. built-in cast tag must be assignable to the declared type
      4. items and generator are mutually exclusive
      5. items requires a list-typed field
      6. every processor / generator / caster reference must resolve
         (a post-processor with config must accept it)

    Field names that shadow the Record API are rejected up front.
    """

    def __init__(self, registry: Optional[Registry] = None):
        self.registry = registry if registry is not None else default_registry

    def build(self, record_type: type) -> RecordMetadata:
        if not (isinstance(record_type, type) and issubclass(record_type, Record)):
            raise ConfigurationError(
                "not_a_record", getattr(record_type, "__name__", repr(record_type)), None,
                "record types must subclass payloadtools.records.Record",
            )

        hints = self._type_hints(record_type)
        fields: Dict[str, FieldDescriptor] = {}
        for name, info in record_type.__declared_fields__.items():
            fields[name] = self._build_field(record_type, name, info, hints.get(name, Any))

        logger.debug("built metadata for %s (%d fields)", record_type.__name__, len(fields))
        return RecordMetadata(record_type=record_type, fields=fields)

    # ------------------------------------------------------------------
    def _type_hints(self, record_type: type) -> Dict[str, Any]:
        try:
            hints = typing.get_type_hints(record_type)
        except (NameError, TypeError) as e:
            raise ConfigurationError(
                "unresolvable_type", record_type.__name__, None, f"cannot resolve annotations: {e}"
            ) from e
        return {k: v for k, v in hints.items() if not _is_classvar(v)}

    def _build_field(self, owner: type, name: str, info: FieldInfo, annotation: Any) -> FieldDescriptor:
        record = owner.__name__
        tinfo = analyze_type(annotation)
        rules = info.rules or None
        is_required = _has_rule(rules, "required")

        if name in RESERVED_NAMES:
            raise ConfigurationError.reserved_name(record, name)

        # 1. nullable rule vs. type
        if _has_rule(rules, "nullable") and tinfo.known and not tinfo.nullable:
            raise ConfigurationError.nullable_rule_with_non_nullable_type(record, name, tinfo.display)

        # 2. required + default
        if is_required and info.has_default:
            raise ConfigurationError.required_with_default(record, name)

        # 3. cast compatibility / custom caster resolution
        cast_type: Optional[str] = None
        caster = None
        if info.cast is not None:
            canonical = canonical_tag(info.cast)
            if canonical is not None:
                if tinfo.known and not tinfo.accepts_any(CAST_TARGETS[canonical]):
                    raise ConfigurationError.cast_type_mismatch(record, name, str(info.cast), tinfo.display)
                cast_type = info.cast
            else:
                caster = self.registry.resolve_caster(info.cast, owner)
                if caster is None:
                    raise ConfigurationError.invalid_caster(record, name, _ref_name(info.cast))

        # 4./5. nested items
        items_type = None
        if info.items is not None:
            if info.generator is not None:
                raise ConfigurationError.items_with_generator(record, name)
            if not (isinstance(info.items, type) and issubclass(info.items, Record)):
                raise ConfigurationError.invalid_items(
                    record, name, _ref_name(info.items), "must be a Record subclass"
                )
            if not tinfo.accepts_any({"list"}):
                raise ConfigurationError.items_requires_list_type(record, name, tinfo.display)
            items_type = info.items

        # 6. processors and generators
        pre = post = generator = None
        if info.pre_process is not None:
            pre = self.registry.resolve_processor(info.pre_process, owner)
            if pre is None:
                raise ConfigurationError.invalid_processor(record, name, "pre_process", _ref_name(info.pre_process))
        if info.post_process is not None:
            needs_config = bool(info.post_process_config)
            post = self.registry.resolve_processor(info.post_process, owner, needs_config)
            if post is None:
                reason = self.registry.processor_error(info.post_process, owner) if needs_config else None
                raise ConfigurationError.invalid_processor(
                    record, name, "post_process", _ref_name(info.post_process), reason
                )
        if info.generator is not None:
            generator = self.registry.resolve_generator(info.generator, owner)
            if generator is None:
                raise ConfigurationError.invalid_generator(
                    record, name, _ref_name(info.generator), self.registry.generator_error(info.generator, owner)
                )

        default_value = None if info.default_factory is not None or not info.has_default else info.default
        return FieldDescriptor(
            name=name,
            source_path=info.map_from or name,
            type=tinfo,
            rules=rules,
            cast_type=cast_type,
            caster=caster,
            pre_processor=pre,
            post_processor=post,
            post_process_config=tuple(info.post_process_config.items()),
            generator=generator,
            generator_options=tuple(info.generator_options.items()),
            items_type=items_type,
            group=info.group,
            has_default=info.has_default,
            default_value=default_value,
            default_factory=info.default_factory,
            is_required=is_required,
            exclude=info.exclude,
            map_to=info.map_to,
        )


def _ref_name(ref: Any) -> str:
    if isinstance(ref, str):
        return ref
    return getattr(ref, "__qualname__", None) or repr(ref)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class MetadataCache:
    """
    Lazily built, process-wide RecordMetadata per record type.

    Reads are lock-free once a type is cached. clear() must be serialized
    against in-flight hydration by the caller (long-lived workers).
    """

    def __init__(self, builder: Optional[MetadataBuilder] = None):
        self.builder = builder if builder is not None else MetadataBuilder()
        self._cache: Dict[type, RecordMetadata] = {}
        self._lock = threading.Lock()

    def get(self, record_type: type) -> RecordMetadata:
        meta = self._cache.get(record_type)
        if meta is not None:
            return meta
        with self._lock:
            meta = self._cache.get(record_type)
            if meta is None:
                meta = self.builder.build(record_type)
                self._cache[record_type] = meta
                logger.info("cached metadata for %s", record_type.__name__)
        return meta

    def __contains__(self, record_type: type) -> bool:
        return record_type in self._cache

    def cached_types(self) -> FrozenSet[type]:
        return frozenset(self._cache)

    def clear(self, record_type: Optional[type] = None) -> None:
        with self._lock:
            if record_type is None:
                self._cache.clear()
            else:
                self._cache.pop(record_type, None)
