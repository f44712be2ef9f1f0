"""
Exception types raised by payloadtools.

Three disjoint families:

- ConfigurationError: the record declaration itself is wrong (developer defect)
- ValidationError: the client payload failed its rules (recoverable, 422)
- GroupCollisionError / UnsetFieldError: misuse of a hydrated record
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class PayloadToolsError(Exception):
    """Base class for every payloadtools error."""


# ---------------------------------------------------------------------------
# Declaration / configuration
# ---------------------------------------------------------------------------

class ConfigurationError(PayloadToolsError):
    """Invalid record declaration detected while building metadata."""

    def __init__(self, kind: str, record: str, field: Optional[str], reason: str):
        self.kind = kind
        self.record = record
        self.field = field
        self.reason = reason
        where = f"{record}.{field}" if field else record
        super().__init__(f"{where}: {reason}")

    # -- named constructors, one per declaration check --------------------

    @classmethod
    def nullable_rule_with_non_nullable_type(cls, record: str, field: str, type_name: str) -> "ConfigurationError":
        return cls(
            "nullable_mismatch",
            record,
            field,
            f"has 'nullable' in rules but type '{type_name}' doesn't allow None. "
            f"Change type to 'Optional[{type_name}]' or remove 'nullable' from rules.",
        )

    @classmethod
    def required_with_default(cls, record: str, field: str) -> "ConfigurationError":
        return cls(
            "required_with_default",
            record,
            field,
            "has 'required' in rules but also declares a default. "
            "Remove 'required' or remove the default.",
        )

    @classmethod
    def cast_type_mismatch(cls, record: str, field: str, cast: str, type_name: str) -> "ConfigurationError":
        return cls(
            "cast_mismatch",
            record,
            field,
            f"has cast type '{cast}' which is incompatible with type '{type_name}'.",
        )

    @classmethod
    def invalid_processor(
        cls, record: str, field: str, slot: str, ref: str, reason: Optional[str] = None
    ) -> "ConfigurationError":
        if reason:
            return cls("invalid_processor", record, field, f"has invalid {slot} '{ref}': {reason}.")
        return cls(
            "invalid_processor",
            record,
            field,
            f"has invalid {slot} '{ref}'. Processor must be a registered name, a callable, "
            "an object implementing process()/cast(), or a static method on the record type.",
        )

    @classmethod
    def reserved_name(cls, record: str, field: str) -> "ConfigurationError":
        return cls(
            "reserved_name",
            record,
            field,
            f"shadows the Record API member '{field}'. Rename the field and use map_from='{field}'.",
        )

    @classmethod
    def invalid_caster(cls, record: str, field: str, ref: str) -> "ConfigurationError":
        return cls(
            "invalid_caster",
            record,
            field,
            f"has cast '{ref}' which is neither a built-in cast tag nor a caster implementing cast().",
        )

    @classmethod
    def invalid_items(cls, record: str, field: str, items: str, reason: str) -> "ConfigurationError":
        return cls("invalid_items", record, field, f"has invalid items type '{items}': {reason}.")

    @classmethod
    def items_requires_list_type(cls, record: str, field: str, type_name: str) -> "ConfigurationError":
        return cls(
            "items_requires_list",
            record,
            field,
            f"has 'items' but type is '{type_name}'. Fields with 'items' must be typed 'list' or 'Optional[list]'.",
        )

    @classmethod
    def items_with_generator(cls, record: str, field: str) -> "ConfigurationError":
        return cls("items_with_generator", record, field, "has both 'items' and 'generator'; they are mutually exclusive.")

    @classmethod
    def invalid_generator(cls, record: str, field: str, ref: str, reason: str) -> "ConfigurationError":
        return cls("invalid_generator", record, field, f"has invalid generator '{ref}': {reason}.")

    @classmethod
    def unknown_rule(cls, rule: str) -> "ConfigurationError":
        return cls("unknown_rule", "validator", None, f"unknown validation rule '{rule}'")


class DeclarationError(PayloadToolsError):
    """A YAML declaration document is structurally malformed."""


# ---------------------------------------------------------------------------
# Client payload
# ---------------------------------------------------------------------------

class ValidationError(PayloadToolsError):
    """
    The payload failed validation.

    `errors` maps a field path (``name`` or ``items.0.product`` for nested
    items) to a list of error entries ``{"rule": ..., "params": [...]}``.
    """

    status_code = 422

    def __init__(self, errors: Optional[Dict[str, List[Any]]] = None):
        self.errors: Dict[str, List[Any]] = dict(errors or {})
        if self.errors:
            message = "Validation failed: " + ", ".join(self.errors)
        else:
            message = "Validation failed"
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": str(self), "errors": self.errors}


# ---------------------------------------------------------------------------
# Record access
# ---------------------------------------------------------------------------

class GroupCollisionError(PayloadToolsError, ValueError):
    """Two fields of one group produced the same output key."""

    def __init__(self, group: str, key: str, field: str):
        self.group = group
        self.key = key
        self.field = field
        super().__init__(f"Duplicate key '{key}' in group '{group}' from field '{field}'")


class UnsetFieldError(PayloadToolsError, AttributeError):
    """A declared field was read before it was ever populated."""

    def __init__(self, record: str, field: str):
        self.record = record
        self.field = field
        super().__init__(f"Field {record}.{field} was not present in the input and has no value")
