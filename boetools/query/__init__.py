"""
Query module: Paged and unpaged repository queries.

Provides:
- QueryEngine: Raw, bounded, find-one and page streaming
- QueryCursor: Immutable page position for one query
- Builders and lookups: Query strings and single-object helpers
"""

from boetools.query.cursor import QueryCursor
from boetools.query.engine import QueryEngine
from boetools.query.builders import (
    escape_quotes,
    in_clause,
    split_values,
    cuid_query,
    format_query_date,
)
from boetools.query.lookups import (
    find_by_cuid,
    find_by_id,
    find_by_name,
    find_by_name_in_parent,
    first_of_kind,
)

__all__ = [
    "QueryCursor",
    "QueryEngine",
    # Builders
    "escape_quotes",
    "in_clause",
    "split_values",
    "cuid_query",
    "format_query_date",
    # Lookups
    "find_by_cuid",
    "find_by_id",
    "find_by_name",
    "find_by_name_in_parent",
    "first_of_kind",
]
