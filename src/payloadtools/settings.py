from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field


class HydratorSettings(BaseModel):
    # Global hydration policy
    auto_trim: bool = Field(default=True)
    max_depth: int = Field(default=16, ge=1)
    input_priority: Literal["body", "query"] = Field(default="body")

    @classmethod
    def from_mapping(cls, cfg: Optional[Dict[str, Any]]) -> "HydratorSettings":
        """
        Build from a config block:

        hydrator:
          auto_trim: true
          max_depth: 8
          input_priority: query
        """
        if cfg is None:
            return cls()
        cfg = dict(cfg)
        if "hydrator" in cfg and isinstance(cfg["hydrator"], dict):
            cfg = dict(cfg["hydrator"])
        return cls(**cfg)

    @classmethod
    def from_yaml(cls, path: Path) -> "HydratorSettings":
        path = Path(path).expanduser().resolve()
        if not path.is_file():
            raise FileNotFoundError(path)
        with path.open("r", encoding="utf-8") as f:
            return cls.from_mapping(yaml.safe_load(f) or {})
