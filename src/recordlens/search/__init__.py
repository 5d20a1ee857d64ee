from recordlens.search.engine import Searcher, search
from recordlens.search.query import QueryMatcher

__all__ = ["QueryMatcher", "Searcher", "search"]
