"""
Query string helpers for the repository query language.

Pure string construction: nothing here parses or validates queries.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from typing import Final, Iterable, Optional, Union

# =============================================================================
# URI PROTOCOLS AND PATHS
# =============================================================================
PATH_PROTOCOL: Final[str] = "path://"
CUID_PROTOCOL: Final[str] = "cuid://"
SEARCH_PROTOCOL: Final[str] = "search://"
QUERY_PROTOCOL: Final[str] = "query://"

GROUP_QUERY_PREFIX: Final[str] = PATH_PROTOCOL + "SystemObjects/User Groups/"
USER_QUERY_PREFIX: Final[str] = PATH_PROTOCOL + "SystemObjects/Users/"
INFO_OBJECT_QUERY_PREFIX: Final[str] = PATH_PROTOCOL + "InfoObjects/Root Folder/"

# Appended to a path query to match every descendant
ALL_CHILDREN_SUFFIX: Final[str] = "/**/*"

# Enough to identify and place an object
MINIMAL_COLUMNS: Final[str] = "SI_ID, SI_NAME, SI_KIND, SI_CUID, SI_PARENTID"

ALL_OBJECT_TABLES: Final[str] = "CI_INFOOBJECTS, CI_SYSTEMOBJECTS, CI_APPOBJECTS"

QUERY_DATE_FORMAT: Final[str] = "%Y.%m.%d.%H.%M.%S"

COMMA_SEPARATED_VALUES = re.compile(r"\s*,\s*")


def escape_quotes(value: str) -> str:
    """Double single quotes for use inside a quoted literal."""
    return value.replace("'", "''")


def split_values(text: str) -> list[str]:
    """Split a comma separated list, ignoring whitespace around commas."""
    return COMMA_SEPARATED_VALUES.split(text.strip())


def in_clause(values: Union[str, Iterable[object]], quoted: bool = True) -> str:
    """
    Build an IN clause body such as `` ('a','b') ``.

    A string argument is treated as a comma separated list. Single quotes
    inside values are always doubled.

    Raises:
        ValueError: If there are no values
    """
    if isinstance(values, str):
        values = split_values(values)
    rendered = [escape_quotes(str(v)) for v in values]
    if not rendered:
        raise ValueError("IN clause needs at least one value")
    if quoted:
        rendered = [f"'{v}'" for v in rendered]
    return " (" + ",".join(rendered) + ") "


def cuid_query(cuid: str, columns: Optional[str] = None) -> str:
    """``cuid://<CUID>`` query, optionally restricted to ``columns``."""
    query = f"{CUID_PROTOCOL}<{cuid}>"
    if columns is not None:
        query += f"@{columns}"
    return query


def format_query_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """
    Render a datetime the way the repository compares dates.

    Naive values are taken to be in ``tz`` (UTC when not given). The
    output is always in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or timezone.utc)
    return value.astimezone(timezone.utc).strftime(QUERY_DATE_FORMAT)
