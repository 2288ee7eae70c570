"""
Query Engine: Raw, Bounded and Streaming Repository Queries

Provides:
- execute_raw: one unpaged request, everything the server returns
- execute_bounded: first page only, page size = result limit
- find_one: first object or None
- for_each_page: stream every object to a visitor, one page at a time

Memory:
    for_each_page holds at most one page of objects. Each page is fetched
    and visited inside its own call frame, so the previous page's batch
    is unreachable before the next fetch starts. Page size is the
    engine's max batch size unless the caller gives one.

Errors:
    Transport failures surface as QueryFailed carrying the page index
    (None before any page is known). Visitor exceptions propagate
    unchanged and abandon the remaining pages.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from boetools.core import constants as C
from boetools.core.config import QueryConfig
from boetools.core.errors import ErrorCode, NoActiveSession, QueryFailed
from boetools.core.types import ObjectBatch, RepositoryObject
from boetools.observability.logging import StructuredLogger, log_context
from boetools.observability.metrics import MetricsCollector
from boetools.query.cursor import QueryCursor
from boetools.session.manager import SessionManager
from boetools.transport.protocols import TransportSession

logger = logging.getLogger(__name__)

Visitor = Callable[[RepositoryObject], Any]

_FAILURE_STAGES = {
    ErrorCode.QUERY_CURSOR_OPEN_FAILED: "cursor_open",
    ErrorCode.QUERY_DESCRIPTOR_FETCH_FAILED: "descriptor",
    ErrorCode.QUERY_PAGE_FETCH_FAILED: "page_fetch",
    ErrorCode.QUERY_RAW_FAILED: "raw",
}


def _default_batch_size() -> int:
    loaded = QueryConfig.from_env()
    if loaded.is_err():
        logger.error(
            "Unable to read max batch size, using %d: %s",
            C.DEFAULT_MAX_BATCH_SIZE, loaded.error,
        )
        return C.DEFAULT_MAX_BATCH_SIZE
    return loaded.unwrap().max_batch_size


class QueryEngine:
    """
    Runs repository queries over the session held by a SessionManager.

    Usage:
        engine = QueryEngine(manager)
        delivered = engine.for_each_page(
            "SELECT SI_ID, SI_NAME FROM CI_INFOOBJECTS WHERE SI_KIND='Folder'",
            lambda obj: print(obj["SI_NAME"]),
        )
    """

    __slots__ = (
        "_manager",
        "_max_batch_size",
        "_log",
        "_pages",
        "_objects",
        "_failures",
        "_page_seconds",
    )

    def __init__(
        self,
        manager: SessionManager,
        *,
        max_batch_size: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if max_batch_size is None:
            max_batch_size = _default_batch_size()
        elif max_batch_size < 1:
            raise ValueError(f"max_batch_size must be >= 1, got {max_batch_size}")

        self._manager = manager
        self._max_batch_size = max_batch_size
        self._log = StructuredLogger(__name__)

        metrics = metrics or MetricsCollector.get_instance()
        self._pages = metrics.counter(
            "boetools_query_pages_total",
            help_text="Pages fetched by paged queries",
        )
        self._objects = metrics.counter(
            "boetools_query_objects_total",
            help_text="Objects returned to callers",
        )
        self._failures = metrics.counter(
            "boetools_query_failures_total",
            ["stage"],
            "Query failures by stage",
        )
        self._page_seconds = metrics.histogram(
            "boetools_query_page_seconds",
            help_text="Descriptor plus fetch time per page",
        )

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    # =========================================================================
    # SINGLE-SHOT QUERIES
    # =========================================================================

    def execute_raw(self, query: str) -> ObjectBatch:
        """Run ``query`` unpaged and return every object the server sends."""
        session = self._require_session("execute_raw")
        try:
            items = list(session.query(query))
        except Exception as e:
            raise self._failed(QueryFailed.raw_query(query, e))
        self._objects.inc(len(items))
        return ObjectBatch(items=items)

    def execute_bounded(self, query: str, max_results: int) -> ObjectBatch:
        """
        Return at most ``max_results`` objects: the first page of a paged
        query whose page size is ``max_results``.
        """
        if max_results < 1:
            raise ValueError(f"max_results must be >= 1, got {max_results}")
        session = self._require_session("execute_bounded")

        cursor = self._open(session, query, max_results)
        if cursor.exhausted:
            return ObjectBatch.empty()

        batch = self._fetch(session, cursor)
        self._objects.inc(batch.count)
        return batch

    def find_one(self, query: str, raw: bool = False) -> Optional[RepositoryObject]:
        """First object ``query`` returns, or None."""
        if raw:
            return self.execute_raw(query).first()
        return self.execute_bounded(query, 1).first()

    # =========================================================================
    # STREAMING
    # =========================================================================

    def for_each_page(
        self,
        query: str,
        visitor: Visitor,
        batch_size: Optional[int] = None,
    ) -> int:
        """
        Deliver every object of ``query`` to ``visitor`` in server order.

        Pages are fetched in ascending order and each page is released
        before the next is requested.

        Returns:
            Number of objects delivered.
        """
        size = self._max_batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError(f"batch_size must be >= 1, got {size}")
        session = self._require_session("for_each_page")

        with log_context(node=session.node, query=query[:200]):
            cursor = self._open(session, query, size)
            self._log.debug(
                "Streaming paged query",
                page_count=cursor.page_count,
                batch_size=size,
            )

            delivered = 0
            while not cursor.exhausted:
                delivered += self._visit_page(session, cursor, visitor)
                cursor = cursor.advance()

            self._log.debug("Paged query complete", delivered=delivered)
            return delivered

    def _visit_page(
        self,
        session: TransportSession,
        cursor: QueryCursor,
        visitor: Visitor,
    ) -> int:
        batch = self._fetch(session, cursor)
        for obj in batch:
            visitor(obj)
        self._objects.inc(batch.count)
        return batch.count

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _require_session(self, operation: str) -> TransportSession:
        session = self._manager.session
        if session is None:
            raise NoActiveSession.for_operation(operation)
        return session.handle

    def _open(self, session: TransportSession, query: str, batch_size: int) -> QueryCursor:
        opened = QueryCursor.open(session, query, batch_size)
        if opened.is_err():
            raise self._failed(opened.error)
        return opened.unwrap()

    def _fetch(self, session: TransportSession, cursor: QueryCursor) -> ObjectBatch:
        with self._page_seconds.time():
            fetched = cursor.fetch_page(session)
        if fetched.is_err():
            raise self._failed(fetched.error)
        self._pages.inc()
        self._log.debug("Fetched page", page=cursor.page_index, of=cursor.page_count)
        return fetched.unwrap()

    def _failed(self, error: QueryFailed) -> QueryFailed:
        self._failures.inc(stage=_FAILURE_STAGES.get(error.code, "other"))
        self._log.warning(error.message, page=error.page_index)
        return error
