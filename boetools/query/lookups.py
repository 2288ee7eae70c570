"""
Single-object lookups over a QueryEngine.

Every lookup returns the first matching object or None when nothing
matches. Names and kinds are quote-escaped before being embedded.
"""

from __future__ import annotations

from typing import Optional

from boetools.core.types import RepositoryObject
from boetools.query.builders import ALL_OBJECT_TABLES, cuid_query, escape_quotes
from boetools.query.engine import QueryEngine

# A CUID is unique, but the server may hand back more than one row per object
CUID_LOOKUP_LIMIT = 10


def find_by_cuid(
    engine: QueryEngine,
    cuid: str,
    columns: Optional[str] = None,
) -> Optional[RepositoryObject]:
    """Object with the given CUID; ``columns`` restricts the returned properties."""
    return engine.execute_bounded(cuid_query(cuid, columns), CUID_LOOKUP_LIMIT).first()


def find_by_id(
    engine: QueryEngine,
    object_id: int,
    columns: str = "*",
) -> Optional[RepositoryObject]:
    query = f"SELECT {columns} FROM {ALL_OBJECT_TABLES} WHERE SI_ID = {int(object_id)}"
    return engine.find_one(query, raw=True)


def find_by_name(
    engine: QueryEngine,
    name: str,
    kind: str,
    no_instances: bool = True,
) -> Optional[RepositoryObject]:
    """
    First object with the given name and kind.

    Scheduled instances share their parent's name, so they are excluded
    unless ``no_instances`` is False.
    """
    query = (
        f"SELECT * FROM {ALL_OBJECT_TABLES} "
        f"WHERE SI_NAME = '{escape_quotes(name)}' AND SI_KIND = '{escape_quotes(kind)}'"
    )
    if no_instances:
        query += " AND SI_INSTANCE=0"
    return engine.find_one(query, raw=True)


def find_by_name_in_parent(
    engine: QueryEngine,
    name: str,
    parent_id: int,
) -> Optional[RepositoryObject]:
    query = (
        f"SELECT * FROM {ALL_OBJECT_TABLES} "
        f"WHERE SI_NAME = '{escape_quotes(name)}' AND SI_PARENTID = {int(parent_id)}"
    )
    return engine.find_one(query, raw=True)


def first_of_kind(engine: QueryEngine, kind: str) -> Optional[RepositoryObject]:
    query = f"SELECT TOP 1 * FROM {ALL_OBJECT_TABLES} WHERE SI_KIND='{escape_quotes(kind)}'"
    return engine.find_one(query, raw=True)
