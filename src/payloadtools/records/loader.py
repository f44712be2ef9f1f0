from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema
import yaml

from payloadtools.errors import DeclarationError
from payloadtools.records.record import Record
from payloadtools.records.types import FieldInfo

TYPE_NAMES: Dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": list,
    "dict": dict,
    "datetime": datetime,
    "date": date,
    "any": Any,
}

_FIELD_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "type": {"enum": sorted(TYPE_NAMES)},
        "nullable": {"type": "boolean"},
        "rules": {"type": "string"},
        "cast": {"type": "string"},
        "map_from": {"type": "string"},
        "pre_process": {"type": "string"},
        "post_process": {"type": "string"},
        "post_process_config": {"type": "object"},
        "group": {"type": "string"},
        "generator": {"type": "string"},
        "generator_options": {"type": "object"},
        "exclude": {"type": "boolean"},
        "items": {"type": "string"},
        "map_to": {"type": "string"},
        "default": {},
    },
}

DECLARATION_SCHEMA = {
    "type": "object",
    "required": ["records"],
    "properties": {
        "version": {"type": ["string", "integer"]},
        "records": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": {
                "type": "object",
                "required": ["fields"],
                "additionalProperties": False,
                "properties": {
                    "messages": {"type": "object", "additionalProperties": {"type": "string"}},
                    "fields": {"type": "object", "additionalProperties": _FIELD_SCHEMA},
                },
            },
        },
    },
}


def validate_declaration(doc: Any) -> None:
    try:
        jsonschema.validate(instance=doc, schema=DECLARATION_SCHEMA)
    except jsonschema.ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise DeclarationError(f"{where}: {e.message}") from e


def _annotation(spec: Dict[str, Any]) -> Any:
    tp = TYPE_NAMES[spec.get("type", "any")]
    if spec.get("nullable") and tp is not Any:
        return Optional[tp]
    return tp


def _field_info(spec: Dict[str, Any]) -> FieldInfo:
    info = FieldInfo(
        rules=spec.get("rules"),
        cast=spec.get("cast"),
        map_from=spec.get("map_from"),
        pre_process=spec.get("pre_process"),
        post_process=spec.get("post_process"),
        post_process_config=dict(spec.get("post_process_config") or {}),
        group=spec.get("group"),
        generator=spec.get("generator"),
        generator_options=dict(spec.get("generator_options") or {}),
        exclude=bool(spec.get("exclude", False)),
        map_to=spec.get("map_to"),
    )
    if "default" in spec:
        info.default = spec["default"]
    return info


def _make_record(name: str, spec: Dict[str, Any]) -> type:
    fields = spec.get("fields") or {}
    messages = dict(spec.get("messages") or {})

    ns: Dict[str, Any] = {
        "__module__": __name__,
        "__qualname__": name,
        "__annotations__": {fname: _annotation(fspec or {}) for fname, fspec in fields.items()},
        "messages": classmethod(lambda cls: dict(messages)),
    }
    for fname, fspec in fields.items():
        ns[fname] = _field_info(fspec or {})
    return type(name, (Record,), ns)


def build_records(doc: Dict[str, Any]) -> Dict[str, type]:
    """
    Build Record subclasses from a declaration document.

    records:
      OrderItem:
        fields:
          product: {type: str, rules: "required|string"}
          qty:     {type: int, rules: "required|integer|min:1"}
      Order:
        fields:
          id:    {type: str, generator: uuid}
          items: {type: list, rules: "required|array", items: OrderItem}
    """
    validate_declaration(doc)
    specs = doc["records"]

    classes: Dict[str, type] = {name: _make_record(name, spec) for name, spec in specs.items()}

    # second pass: items may reference any record in the document, itself included
    for name, spec in specs.items():
        for fname, fspec in (spec.get("fields") or {}).items():
            ref = (fspec or {}).get("items")
            if ref is None:
                continue
            if ref not in classes:
                raise DeclarationError(f"records.{name}.fields.{fname}.items: unknown record '{ref}'")
            classes[name].__declared_fields__[fname].items = classes[ref]

    return classes


def load_declarations(source: Union[str, Path, Dict[str, Any]]) -> Dict[str, type]:
    """Load a YAML declaration file (or an already parsed dict)."""
    if isinstance(source, dict):
        return build_records(source)

    path = Path(source).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as f:
        try:
            doc = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise DeclarationError(f"{path}: invalid YAML") from e
    return build_records(doc or {})
