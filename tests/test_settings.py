from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from payloadtools.settings import HydratorSettings


def test_defaults():
    s = HydratorSettings()

    assert s.auto_trim is True
    assert s.max_depth == 16
    assert s.input_priority == "body"


def test_from_mapping_accepts_hydrator_block():
    s = HydratorSettings.from_mapping({"hydrator": {"max_depth": 4, "input_priority": "query"}})

    assert s.max_depth == 4
    assert s.input_priority == "query"
    assert HydratorSettings.from_mapping(None) == HydratorSettings()


def test_from_yaml(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text("hydrator:\n  auto_trim: false\n", encoding="utf-8")

    assert HydratorSettings.from_yaml(path).auto_trim is False


def test_from_yaml_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        HydratorSettings.from_yaml(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "cfg",
    [
        {"max_depth": 0},
        {"input_priority": "cookies"},
    ],
)
def test_invalid_settings(cfg):
    with pytest.raises(PydanticValidationError):
        HydratorSettings.from_mapping(cfg)
