from payloadtools.errors import (
    ConfigurationError,
    DeclarationError,
    GroupCollisionError,
    PayloadToolsError,
    UnsetFieldError,
    ValidationError,
)
from payloadtools.records import FieldState, Record, field, flatten, group_values
from payloadtools.records.metadata import MetadataBuilder, MetadataCache
from payloadtools.hydrate.engine import Hydrator
from payloadtools.hydrate.registry import Registry
from payloadtools.hydrate.resolver import RequestData, resolve
from payloadtools.settings import HydratorSettings
from payloadtools.validation import RuleValidator

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DeclarationError",
    "FieldState",
    "GroupCollisionError",
    "Hydrator",
    "HydratorSettings",
    "MetadataBuilder",
    "MetadataCache",
    "PayloadToolsError",
    "Record",
    "Registry",
    "RequestData",
    "RuleValidator",
    "UnsetFieldError",
    "ValidationError",
    "field",
    "flatten",
    "group_values",
    "resolve",
]
