"""Sort keys for heterogeneous JSON values.

Every value maps to exactly one of four key kinds. Nulls always sort last;
among the other kinds dates come before numbers and numbers before strings.
A descending sort reverses everything except the placement of nulls, and
equal keys are ordered by their original record id.
"""

from __future__ import annotations

import calendar
import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any, Optional, Union

from recordlens.utils.paths import resolve_path

TIMEZONE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
)

NAIVE_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)

# strptime reads at most six fraction digits.
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")

ARRAY_MARKER = "[Array]"
OBJECT_MARKER = "[Object]"


class KeyKind(IntEnum):
    # Order of declaration is the cross-type precedence.
    DATE = 0
    NUMBER = 1
    STRING = 2
    NULL = 3


@dataclass(frozen=True, slots=True)
class SortKey:
    kind: KeyKind
    value: Union[None, float, int, str] = None

    @classmethod
    def null(cls) -> "SortKey":
        return cls(KeyKind.NULL)

    @classmethod
    def number(cls, value: float) -> "SortKey":
        return cls(KeyKind.NUMBER, float(value))

    @classmethod
    def date(cls, timestamp: int) -> "SortKey":
        return cls(KeyKind.DATE, int(timestamp))

    @classmethod
    def string(cls, value: str) -> "SortKey":
        return cls(KeyKind.STRING, value)

    @property
    def is_null(self) -> bool:
        return self.kind is KeyKind.NULL


def parse_timestamp(text: str) -> Optional[int]:
    """Epoch seconds for an ISO-8601-like timestamp, or ``None``.

    All accepted patterns are read as UTC. Fractional seconds beyond
    microseconds are truncated.
    """
    text = _EXTRA_FRACTION.sub(r"\1", text, count=1)
    for fmt in TIMEZONE_FORMATS + NAIVE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return calendar.timegm(parsed.utctimetuple())
    return None


def _parse_number(text: str) -> Optional[float]:
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_sort_key(value: Any) -> SortKey:
    if value is None:
        return SortKey.null()
    if isinstance(value, bool):
        return SortKey.number(1.0 if value else 0.0)
    if isinstance(value, (int, float)):
        try:
            return SortKey.number(value)
        except OverflowError:
            return SortKey.number(math.inf if value > 0 else -math.inf)
    if isinstance(value, str):
        timestamp = parse_timestamp(value)
        if timestamp is not None:
            return SortKey.date(timestamp)
        number = _parse_number(value)
        if number is not None:
            return SortKey.number(number)
        return SortKey.string(value)
    if isinstance(value, list):
        return SortKey.string(ARRAY_MARKER)
    return SortKey.string(OBJECT_MARKER)


def extract_sort_key(value: Any, path: str) -> SortKey:
    """Sort key of the value at ``path``; absent paths give a null key."""
    found, node = resolve_path(value, path)
    return to_sort_key(node) if found else SortKey.null()


def _sign(a: Union[float, int, str], b: Union[float, int, str]) -> int:
    return (a > b) - (a < b)


def compare_keys(a: SortKey, b: SortKey, descending: bool = False) -> int:
    """Three-way comparison of two keys: negative, zero or positive."""
    if a.is_null or b.is_null:
        return int(a.is_null) - int(b.is_null)

    if a.kind is not b.kind:
        result = _sign(a.kind, b.kind)
    elif a.kind is KeyKind.NUMBER:
        if math.isnan(a.value) or math.isnan(b.value):
            result = 0
        else:
            result = _sign(a.value, b.value)
    elif a.kind is KeyKind.DATE:
        result = _sign(a.value, b.value)
    else:
        result = _sign(a.value.lower(), b.value.lower())

    return -result if descending else result
