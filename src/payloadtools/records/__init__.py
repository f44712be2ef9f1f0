from .types import NOT_SET, FieldDescriptor, FieldInfo, FieldState, RecordMetadata, TypeInfo, field
from .record import Record, flatten, group_values

__all__ = [
    "NOT_SET",
    "FieldDescriptor",
    "FieldInfo",
    "FieldState",
    "Record",
    "RecordMetadata",
    "TypeInfo",
    "field",
    "flatten",
    "group_values",
]
