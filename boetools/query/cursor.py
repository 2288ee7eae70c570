"""
Query Cursor: Page Position Over a Server-Side Paged Query

Provides:
- Immutable cursor state (query, batch size, page count, position)
- Advancing by returning a new cursor, so the batch size can never
  change once the cursor exists
- Page fetch as a Result: descriptor round trip, then statement round trip

Design:
    The server decides page boundaries when the query is opened; the
    cursor only records how many pages there are and which one is next.
    Nothing is cached between pages or between queries.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Optional

from boetools.core.errors import QueryFailed
from boetools.core.types import Err, ObjectBatch, Ok, Result
from boetools.transport.protocols import PagedQueryHandle, TransportSession


@dataclass(frozen=True)
class QueryCursor:
    """Position within one paged query execution."""

    query: str
    batch_size: int
    page_count: int
    page_index: int = 0
    handle: Optional[PagedQueryHandle] = field(default=None, compare=False, repr=False)

    @classmethod
    def open(
        cls,
        session: TransportSession,
        query: str,
        batch_size: int,
    ) -> Result[QueryCursor, QueryFailed]:
        """Open a paged query on the server and learn its page count."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        try:
            handle = session.open_paged_query(query, batch_size)
            page_count = handle.page_count
        except Exception as e:
            return Err(QueryFailed.cursor_open(query, e))
        return Ok(cls(query=query, batch_size=batch_size, page_count=page_count, handle=handle))

    @property
    def exhausted(self) -> bool:
        return self.page_index >= self.page_count

    def advance(self) -> QueryCursor:
        """Cursor positioned on the next page."""
        return dataclasses.replace(self, page_index=self.page_index + 1)

    def fetch_page(self, session: TransportSession) -> Result[ObjectBatch, QueryFailed]:
        """
        Materialize the current page.

        Two round trips: the page descriptor, then the statement it
        converts to. Errors carry the page index.
        """
        if self.handle is None or self.exhausted:
            return Err(QueryFailed.page_fetch(
                self.query,
                self.page_index,
                IndexError(f"page {self.page_index} of {self.page_count}"),
            ))

        try:
            descriptor = self.handle.page_descriptor(self.page_index)
            statement = descriptor.to_fetch_statement()
        except Exception as e:
            return Err(QueryFailed.descriptor_fetch(self.query, self.page_index, e))

        try:
            items = list(session.query(statement))
        except Exception as e:
            return Err(QueryFailed.page_fetch(self.query, self.page_index, e))

        return Ok(ObjectBatch(items=items, page_index=self.page_index))
