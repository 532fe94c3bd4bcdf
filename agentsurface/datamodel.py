"""Path-addressed data model tree."""

from __future__ import annotations

from typing import Any

from agentsurface.schemas import DataEntry


def path_segments(path: str | None) -> list[str]:
    """Split a ``/``-delimited path, dropping empty segments."""
    return [part for part in str(path or "").split("/") if part]


def split_path(full_path: str | None) -> tuple[str, str] | None:
    """Split a full path into (base, key).

    >>> split_path("/flights/selectedIndex")
    ('/flights', 'selectedIndex')
    >>> split_path("/query")
    ('/', 'query')
    """
    parts = path_segments(full_path)
    if not parts:
        return None
    return "/" + "/".join(parts[:-1]), parts[-1]


def join_path(base: str, key: str) -> str:
    return (base if base.endswith("/") else base + "/") + key


class DataModel:
    """Nested-dict data model addressed by paths.

    Writes overwrite the leaf at the full path and create intermediate
    branches as needed. There is no merge and no delete.
    """

    def __init__(self) -> None:
        self.root: dict[str, Any] = {}

    def get(self, path: str | None, default: Any = None) -> Any:
        cur: Any = self.root
        parts = path_segments(path)
        if not parts:
            return default
        for part in parts:
            if not isinstance(cur, dict) or part not in cur:
                return default
            cur = cur[part]
        return cur

    def set(self, path: str | None, value: Any) -> None:
        parts = path_segments(path)
        if not parts:
            return
        cur = self.root
        for part in parts[:-1]:
            nxt = cur.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[part] = nxt
            cur = nxt
        cur[parts[-1]] = value

    def apply(self, base_path: str, contents: list[DataEntry]) -> None:
        """Apply one mutation unit."""
        base = base_path or "/"
        for entry in contents:
            self.set(join_path(base, entry.key), entry.value())

    def snapshot(self) -> dict[str, Any]:
        return dict(self.root)
