from pathlib import Path

import pytest
import yaml

from payloadtools.errors import DeclarationError
from payloadtools.records import Record
from payloadtools.records.loader import build_records, load_declarations
from payloadtools.records.metadata import MetadataBuilder


ORDER_DECL = {
    "version": 1,
    "records": {
        "OrderItem": {
            "fields": {
                "product": {"type": "str", "rules": "required|string"},
                "qty": {"type": "int", "rules": "required|integer|min:1"},
            },
        },
        "Order": {
            "messages": {"items.required": "An order needs at least one line"},
            "fields": {
                "id": {"type": "str", "generator": "uuid"},
                "note": {"type": "str", "nullable": True, "rules": "nullable|string"},
                "page": {"type": "int", "default": 1},
                "items": {"type": "list", "rules": "required|array", "items": "OrderItem"},
            },
        },
    },
}


def _write(tmp_path: Path, doc) -> Path:
    path = tmp_path / "records.yaml"
    path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
    return path


def test_load_declarations_from_yaml(tmp_path: Path):
    records = load_declarations(_write(tmp_path, ORDER_DECL))

    assert set(records) == {"OrderItem", "Order"}

    order = records["Order"]
    assert issubclass(order, Record)
    assert order.__name__ == "Order"
    assert order.messages() == {"items.required": "An order needs at least one line"}
    assert records["OrderItem"].messages() == {}


def test_declared_records_compile(tmp_path: Path):
    records = load_declarations(_write(tmp_path, ORDER_DECL))

    meta = MetadataBuilder().build(records["Order"])

    assert list(meta.fields) == ["id", "note", "page", "items"]
    assert meta.fields["items"].items_type is records["OrderItem"]
    assert meta.fields["note"].type.nullable
    assert meta.fields["page"].default_value == 1
    assert meta.fields["id"].generator is not None


def test_self_referencing_items():
    records = build_records({
        "records": {
            "Node": {
                "fields": {
                    "name": {"type": "str"},
                    "children": {"type": "list", "items": "Node"},
                },
            },
        },
    })

    node = records["Node"]
    assert node.__declared_fields__["children"].items is node


@pytest.mark.parametrize(
    "doc, match",
    [
        ({}, "'records' is a required property"),
        ({"records": {}}, "records"),
        ({"records": {"A": {"fields": {"x": {"type": "complex"}}}}}, r"records\.A\.fields\.x\.type"),
        ({"records": {"A": {"fields": {"x": {"colour": "red"}}}}}, "colour"),
        ({"records": {"A": {"fields": {"x": {"items": "Missing", "type": "list"}}}}}, "unknown record 'Missing'"),
    ],
)
def test_malformed_declarations(doc, match):
    with pytest.raises(DeclarationError, match=match):
        build_records(doc)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_declarations(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("records: [unclosed", encoding="utf-8")

    with pytest.raises(DeclarationError, match="invalid YAML"):
        load_declarations(path)
