from __future__ import annotations

import enum
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from payloadtools.errors import ValidationError
from payloadtools.hydrate.casters import IMPLICIT_TAGS, BuiltInCaster
from payloadtools.hydrate.registry import Registry
from payloadtools.hydrate.resolver import RequestData, resolve
from payloadtools.records.metadata import MetadataBuilder, MetadataCache
from payloadtools.records.record import Record, flatten
from payloadtools.records.types import FieldDescriptor, FieldState
from payloadtools.settings import HydratorSettings
from payloadtools.validation.rules import RuleValidator, Validator

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

# Error marker for a nested item that is not an object
MUST_BE_ARRAY = "must_be_array"
MAX_DEPTH = "max_depth"


class FieldOutcome(str, enum.Enum):
    GENERATED = "generated"
    ABSENT_WITH_DEFAULT = "absent_with_default"
    ABSENT_REQUIRED = "absent_required"
    ABSENT_OPTIONAL = "absent_optional"
    CLEARED = "cleared"
    PRESENT = "present"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def replace_placeholders(rules: Mapping[str, str], context: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Substitute "{key}" tokens in rule strings with context values.

    Single pass, longest key first, so substituted text is never rescanned:
        {"email": "unique:users,email,{id}"} + {"id": 7} -> "unique:users,email,7"
    """
    if not context:
        return dict(rules)
    replacements = {"{" + str(k) + "}": str(v) for k, v in context.items()}
    pattern = re.compile("|".join(re.escape(k) for k in sorted(replacements, key=len, reverse=True)))
    return {name: pattern.sub(lambda m: replacements[m.group(0)], rule) for name, rule in rules.items()}


class Hydrator:
    """
    Turns raw key/value input into validated, typed Record instances.

    Usage:
        hydrator = Hydrator(RuleValidator())
        order = hydrator.hydrate(OrderRequest, RequestData("POST", query, body), {"id": 42})
        order.to_dict()
    """

    def __init__(
        self,
        validator: Optional[Validator] = None,
        *,
        settings: Optional[HydratorSettings] = None,
        registry: Optional[Registry] = None,
        cache: Optional[MetadataCache] = None,
    ):
        self.validator = validator if validator is not None else RuleValidator()
        self.settings = settings if settings is not None else HydratorSettings()
        if cache is not None:
            self.cache = cache
            self.registry = cache.builder.registry
        else:
            self.registry = registry if registry is not None else Registry()
            self.cache = MetadataCache(MetadataBuilder(self.registry))
        self.caster = BuiltInCaster()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def hydrate(
        self,
        record_type: Type[R],
        raw_input: Union[RequestData, Mapping[str, Any]],
        context: Optional[Mapping[str, Any]] = None,
    ) -> R:
        if isinstance(raw_input, RequestData):
            data = raw_input.merged(self.settings.input_priority)
        elif isinstance(raw_input, Mapping):
            data = raw_input
        else:
            raise TypeError(f"raw input must be RequestData or a mapping, got {type(raw_input).__name__}")
        return self.hydrate_from_map(record_type, data, context)

    def hydrate_from_map(
        self,
        record_type: Type[R],
        data: Mapping[str, Any],
        context: Optional[Mapping[str, Any]] = None,
    ) -> R:
        return self._hydrate(record_type, data, dict(context or {}), depth=0)

    def clear_cache(self, record_type: Optional[type] = None) -> None:
        self.cache.clear(record_type)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _hydrate(self, record_type: Type[R], data: Mapping[str, Any], context: Dict[str, Any], depth: int) -> R:
        meta = self.cache.get(record_type)

        pending: Dict[str, Any] = {}            # goes through cast / post-process / items
        states: Dict[str, FieldState] = {}
        defaults: Dict[str, Any] = {}           # written as-is
        v_data: Dict[str, Any] = {}
        v_rules: Dict[str, str] = {}

        for desc in meta.fields.values():
            outcome, value = self.classify(desc, data)
            logger.debug("%s.%s: %s", meta.name, desc.name, outcome.value)

            if outcome is FieldOutcome.GENERATED:
                pending[desc.name] = value
                states[desc.name] = FieldState.VALUE

            elif outcome is FieldOutcome.ABSENT_WITH_DEFAULT:
                defaults[desc.name] = value

            elif outcome is FieldOutcome.ABSENT_REQUIRED:
                v_data[desc.name] = None
                v_rules[desc.name] = desc.rules

            elif outcome is FieldOutcome.CLEARED:
                if desc.has_default:
                    pending[desc.name] = desc.make_default()
                    states[desc.name] = FieldState.DEFAULT
                else:
                    pending[desc.name] = None
                    states[desc.name] = FieldState.VALUE
                if desc.is_required and desc.rules:
                    v_data[desc.name] = value
                    v_rules[desc.name] = desc.rules

            elif outcome is FieldOutcome.PRESENT:
                if desc.pre_processor is not None:
                    value = desc.pre_processor(value, None)
                if desc.rules:
                    v_data[desc.name] = value
                    v_rules[desc.name] = desc.rules
                pending[desc.name] = value
                states[desc.name] = FieldState.VALUE

        if v_rules:
            rules = replace_placeholders(v_rules, context)
            errors = self.validator.validate(v_data, rules, record_type.messages())
            if errors:
                logger.debug("%s: validation failed for %s", meta.name, ", ".join(errors))
                raise ValidationError(errors)

        resolved: Dict[str, Any] = {}
        nested_errors: Dict[str, List[Any]] = {}
        for name, value in pending.items():
            desc = meta.fields[name]
            if desc.items_type is not None and isinstance(value, (list, tuple, Mapping)):
                resolved[name] = self._hydrate_items(desc, value, context, depth, nested_errors)
            elif desc.post_processor is not None:
                resolved[name] = desc.post_processor(value, desc.post_config)
            else:
                resolved[name] = self.cast_value(desc, value)

        if nested_errors:
            raise ValidationError(nested_errors)

        return self._populate(record_type, meta.fields, resolved, states, defaults)

    def classify(self, desc: FieldDescriptor, data: Mapping[str, Any]) -> Tuple[FieldOutcome, Any]:
        """Decide what happens to one field; returns the outcome and the value to carry."""
        if desc.generator is not None:
            return FieldOutcome.GENERATED, desc.generator(desc.options)

        value, present = resolve(data, desc.source_path)
        if self.settings.auto_trim and isinstance(value, str):
            value = value.strip()

        if _is_empty(value) and not present:
            if desc.has_default:
                return FieldOutcome.ABSENT_WITH_DEFAULT, desc.make_default()
            if desc.is_required and desc.rules:
                return FieldOutcome.ABSENT_REQUIRED, None
            return FieldOutcome.ABSENT_OPTIONAL, None

        if _is_empty(value):
            return FieldOutcome.CLEARED, value

        return FieldOutcome.PRESENT, value

    def cast_value(self, desc: FieldDescriptor, value: Any) -> Any:
        if value is None:
            return None
        if desc.cast_type is not None:
            return self.caster.cast(desc.cast_type, value)
        if desc.caster is not None:
            return desc.caster(value)
        tag = IMPLICIT_TAGS.get(desc.type.single) if desc.type.single else None
        if tag is not None:
            return self.caster.cast(tag, value)
        return value

    # ------------------------------------------------------------------
    # Nested items
    # ------------------------------------------------------------------
    def _hydrate_items(
        self,
        desc: FieldDescriptor,
        rows: Any,
        context: Dict[str, Any],
        depth: int,
        errors: Dict[str, List[Any]],
    ) -> List[Dict[str, Any]]:
        """
        Hydrate every row; failures are collected into `errors`, never raised here.

        Rows may arrive as a list or as a mapping keyed by position (form-encoded
        `items[0][product]=...`); errors are keyed by index or mapping key.
        """
        if rows and depth + 1 > self.settings.max_depth:
            errors[desc.name] = [{"rule": MAX_DEPTH, "params": [str(self.settings.max_depth)]}]
            return []

        out: List[Dict[str, Any]] = []
        pairs = rows.items() if isinstance(rows, Mapping) else enumerate(rows)
        for idx, row in pairs:
            key = f"{desc.name}.{idx}"
            if not isinstance(row, Mapping):
                errors[key] = [{"rule": MUST_BE_ARRAY, "params": []}]
                continue
            try:
                child = self._hydrate(desc.items_type, row, context, depth + 1)
            except ValidationError as e:
                for sub, entries in e.errors.items():
                    errors[f"{key}.{sub}"] = entries
                continue
            out.append(flatten(child))
        return out

    # ------------------------------------------------------------------
    def _populate(
        self,
        record_type: Type[R],
        fields: Mapping[str, FieldDescriptor],
        resolved: Dict[str, Any],
        states: Dict[str, FieldState],
        defaults: Dict[str, Any],
    ) -> R:
        record = record_type()
        for name, desc in fields.items():
            if name in defaults:
                value, state = defaults[name], FieldState.DEFAULT
            elif name in resolved:
                value, state = resolved[name], states.get(name, FieldState.VALUE)
            else:
                continue
            if value is None and desc.type.known and not desc.type.nullable:
                logger.warning("%s.%s: skipping None for non-nullable type %s", record_type.__name__, name, desc.type.display)
                continue
            record._populate(name, value, state)
        return record
