from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

_QUERY_ONLY_METHODS = {"GET", "HEAD"}


def _split_path(path: str):
    return path.split(".")


def resolve(raw: Mapping[str, Any], source_path: str) -> Tuple[Any, bool]:
    """
    Walk `source_path` ("user.profile.email") through nested mappings.

    Returns (value, True) when every segment exists, (None, False) as soon as
    a segment is missing or a non-mapping is met mid-path. A present key
    holding None is still present.
    """
    cur: Any = raw
    for key in _split_path(source_path):
        if not isinstance(cur, Mapping) or key not in cur:
            return None, False
        cur = cur[key]
    return cur, True


@dataclass
class RequestData:
    """
    Raw input as it arrives from a transport: query string plus parsed body.

    Only the query is used for GET/HEAD; otherwise both are merged, with
    `priority` deciding which side wins on key collisions.
    """

    method: str = "GET"
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = None

    def merged(self, priority: str = "body") -> Dict[str, Any]:
        query = dict(self.query or {})
        if self.method.upper() in _QUERY_ONLY_METHODS:
            return query
        body = dict(self.body) if isinstance(self.body, Mapping) else {}
        if priority == "query":
            return {**body, **query}
        return {**query, **body}
