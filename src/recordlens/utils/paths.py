"""Flattened field paths over JSON-like values.

A flattened path joins object keys and array indices with ``_``
(``users_0_name``). A segment made of ASCII digits is always an array index,
so an object key such as ``"0"`` cannot be reached. Keys that themselves
contain ``_`` are likewise split. Both limits are part of the path format.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, List, Tuple

PATH_DELIMITER = "_"

_MISSING = object()


def _is_index(segment: str) -> bool:
    return segment.isascii() and segment.isdigit()


def resolve_path(value: Any, path: str) -> Tuple[bool, Any]:
    """Walk ``value`` along ``path``.

    Returns ``(True, node)`` when every segment resolves and ``(False, None)``
    otherwise.
    """
    current = value
    for segment in path.split(PATH_DELIMITER):
        if _is_index(segment):
            if not isinstance(current, list):
                return False, None
            index = int(segment)
            if index >= len(current):
                return False, None
            current = current[index]
        else:
            if not isinstance(current, dict):
                return False, None
            current = current.get(segment, _MISSING)
            if current is _MISSING:
                return False, None
    return True, current


def _iter_leaves(value: Any, prefix: str) -> Iterator[str]:
    if isinstance(value, dict):
        children = ((str(key), child) for key, child in value.items())
    elif isinstance(value, list):
        children = ((str(index), child) for index, child in enumerate(value))
    else:
        if prefix:
            yield prefix
        return

    for segment, child in children:
        yield from _iter_leaves(child, f"{prefix}{PATH_DELIMITER}{segment}" if prefix else segment)


def flatten(value: Any) -> List[str]:
    """Return every leaf path of ``value`` in discovery order."""
    return list(_iter_leaves(value, ""))


def collect_columns(values: Iterable[Any]) -> List[str]:
    """Union of leaf paths over ``values``, sorted lexicographically."""
    seen: Dict[str, None] = {}
    for value in values:
        for path in _iter_leaves(value, ""):
            seen.setdefault(path, None)
    return sorted(seen)


def to_json_text(value: Any) -> str:
    """Compact JSON text, as stored in ``Record.raw_text`` for array items."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def render_cell(value: Any) -> str:
    """String form of a value for tabular output and match lists."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return to_json_text(value)


def flat_value(value: Any, path: str) -> str:
    """Resolve ``path`` and render it, or ``""`` when it is absent."""
    found, node = resolve_path(value, path)
    return render_cell(node) if found else ""
