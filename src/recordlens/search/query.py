"""Per-record evaluation of a search query."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, List, Optional

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from recordlens.models import Record, SearchQuery
from recordlens.utils.paths import resolve_path, to_json_text

LOGGER = logging.getLogger(__name__)

Locator = Callable[[Any], List[Any]]


def stringify(value: Any) -> str:
    """Match text for a located value: strings verbatim, everything else as JSON."""
    return value if isinstance(value, str) else to_json_text(value)


def _compile_locator(path: str) -> Optional[Locator]:
    """Build a value locator for ``path``.

    Paths starting with ``$`` are JSONPath expressions; anything else is a
    flattened ``_``-joined path.
    """
    if not path.startswith("$"):

        def locate_flat(value: Any) -> List[Any]:
            found, node = resolve_path(value, path)
            return [node] if found else []

        return locate_flat

    try:
        expression = parse_jsonpath(path)
    except (JSONPathError, ValueError) as exc:
        LOGGER.warning("Invalid JSONPath %r: %s", path, exc)
        return None

    def locate_jsonpath(value: Any) -> List[Any]:
        try:
            return [match.value for match in expression.find(value)]
        except (TypeError, KeyError, AttributeError):
            return []

    return locate_jsonpath


class QueryMatcher:
    """Compiled form of a :class:`SearchQuery`.

    The regex and the path are compiled once per search. A pattern that
    fails to compile makes the matcher match nothing.
    """

    def __init__(self, query: SearchQuery) -> None:
        self.query = query
        self.valid = True
        self._pattern: Optional[re.Pattern[str]] = None
        self._needle: Optional[str] = None
        self._locator: Optional[Locator] = None

        text = query.text or None
        if text is not None:
            if query.use_regex:
                flags = 0 if query.case_sensitive else re.IGNORECASE
                try:
                    self._pattern = re.compile(text, flags)
                except re.error as exc:
                    LOGGER.warning("Invalid regex %r: %s", text, exc)
                    self.valid = False
            else:
                self._needle = text if query.case_sensitive else text.casefold()

        if query.path:
            self._locator = _compile_locator(query.path)
            if self._locator is None:
                self.valid = False

        if query.is_empty:
            self.valid = False

    def _text_matches(self, text: str) -> bool:
        if self._pattern is not None:
            return self._pattern.search(text) is not None
        haystack = text if self.query.case_sensitive else text.casefold()
        return self._needle in haystack

    def _scan_text(self, text: str) -> List[str]:
        if self._pattern is not None:
            return [found.group(0) for found in self._pattern.finditer(text)]
        if self._text_matches(text):
            return [self.query.text]
        return []

    def match(self, record: Record) -> List[str]:
        """Matched strings for ``record`` in discovery order."""
        if not self.valid:
            return []

        if self._locator is None:
            return self._scan_text(record.raw_text)

        values = [stringify(value) for value in self._locator(record.value)]
        if self.query.text:
            values = [value for value in values if self._text_matches(value)]
        return values
