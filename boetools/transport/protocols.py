"""
Transport Protocol Definitions: Repository Capability Interfaces

Structural subtyping protocols (PEP 544) for the client that actually
talks to the repository cluster. The session and query layers depend
only on these interfaces; any SDK binding that satisfies them can be
plugged in.

Error contract:
    Every failed round trip raises a TransportError subclass
    (boetools.core.errors). ServerRejection marks a request the server
    received and refused; SessionExpired marks a session the server no
    longer recognises; anything else is a plain TransportError.

Query strings are opaque at this layer and are passed through unmodified.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


# =============================================================================
# PAGED QUERY PROTOCOLS
# =============================================================================
@runtime_checkable
class PageDescriptor(Protocol):
    """
    Stateless handle for one page of a paged query.

    Converting it to a fetch statement is local; executing that statement
    is a separate round trip through TransportSession.query().
    """

    def to_fetch_statement(self) -> str:
        """Concrete statement that materializes this page's objects."""
        ...


@runtime_checkable
class PagedQueryHandle(Protocol):
    """
    Server-side paging state for one query execution.

    The page count is known as soon as the handle is returned.
    """

    @property
    def page_count(self) -> int:
        ...

    def page_descriptor(self, page_index: int) -> PageDescriptor:
        """Fetch the descriptor for a 0-based page index."""
        ...


# =============================================================================
# SESSION PROTOCOL
# =============================================================================
@runtime_checkable
class TransportSession(Protocol):
    """An authenticated connection to exactly one cluster node."""

    @property
    def node(self) -> str:
        ...

    def query(self, statement: str) -> Sequence[Any]:
        """Execute a statement with no paging or result limit."""
        ...

    def open_paged_query(self, query: str, batch_size: int) -> PagedQueryHandle:
        """Open a paged query with a fixed batch size."""
        ...

    def issue_token(self, valid_minutes: int, valid_uses: int) -> str:
        """Create a logon token with the given limits."""
        ...

    def release_token(self, token: str) -> None:
        """Invalidate a logon token server side."""
        ...

    def logoff(self) -> None:
        """End the session server side."""
        ...


# =============================================================================
# CLIENT PROTOCOL
# =============================================================================
@runtime_checkable
class TransportClient(Protocol):
    """
    Entry point that performs logons against a named cluster node.

    One method per credential kind; boetools.session.credentials.logon()
    selects among them.
    """

    def logon_password(
        self,
        user: str,
        password: str,
        node: str,
        auth_type: str,
    ) -> TransportSession:
        ...

    def logon_trusted(self, user: str, secret: str, node: str) -> TransportSession:
        ...

    def logon_token(self, token: str, node: str) -> TransportSession:
        ...
