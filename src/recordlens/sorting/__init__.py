from recordlens.sorting.engine import (
    sort_file,
    sort_records,
    sort_results,
    sort_search_results,
)
from recordlens.sorting.keys import KeyKind, SortKey, compare_keys, extract_sort_key, to_sort_key

__all__ = [
    "KeyKind",
    "SortKey",
    "compare_keys",
    "extract_sort_key",
    "sort_file",
    "sort_records",
    "sort_results",
    "sort_search_results",
    "to_sort_key",
]
