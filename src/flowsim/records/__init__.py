"""
Reference record store and structured query options.
"""

from .query import OrderClause, QueryOptions, apply_query, build_query_options, parse_filter
from .store import InMemoryRecordStore, StoredFile, primary_key

__all__ = [
    "InMemoryRecordStore",
    "OrderClause",
    "QueryOptions",
    "StoredFile",
    "apply_query",
    "build_query_options",
    "parse_filter",
    "primary_key",
]
