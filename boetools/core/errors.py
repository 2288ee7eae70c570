"""
Error Hierarchy for BOE Administration Tooling

Design Principles:
- Every failure surfaced to a caller is a BOEToolsError carrying a
  message and, where one exists, the underlying cause
- Transport failures are classified by type and rejection kind so that
  callers (and the session liveness probe) can tell a server that
  answered "no" from a server that did not answer at all
- Carry full error context for debugging and audit trails, but never
  credentials or complete token values

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlation with log records

Usage:
    try:
        manager.acquire_session(nodes, 0, credential)
    except AuthenticationFailed as exc:
        log.error("logon failed", extra=exc.to_dict())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Sequence
from uuid import uuid4

from boetools.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Session errors
    - 2xxx: Query errors
    - 3xxx: Token errors
    - 4xxx: Transport errors
    """

    # Session errors (1xxx)
    SESSION_AUTHENTICATION_FAILED = 1001
    SESSION_NOT_ACTIVE = 1002

    # Query errors (2xxx)
    QUERY_CURSOR_OPEN_FAILED = 2001
    QUERY_DESCRIPTOR_FETCH_FAILED = 2002
    QUERY_PAGE_FETCH_FAILED = 2003
    QUERY_RAW_FAILED = 2004

    # Token errors (3xxx)
    TOKEN_RELEASE_FAILED = 3001

    # Transport errors (4xxx)
    TRANSPORT_NODE_UNREACHABLE = 4001
    TRANSPORT_CONNECTION_LOST = 4002
    TRANSPORT_SERVER_REJECTION = 4003
    TRANSPORT_SESSION_EXPIRED = 4004


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass(eq=False)
class BOEToolsError(Exception):
    """
    Base class for all boetools errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp for correlation
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[BaseException] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging."""
        data: dict[str, Any] = {
            "error_id": self.error_id,
            "error_type": type(self).__name__,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# SESSION ERRORS
# =============================================================================
@dataclass(eq=False)
class AuthenticationFailed(BOEToolsError):
    """
    Every node in the failover list rejected logon.

    Only the last node's failure is carried as the cause; earlier
    failures are logged during acquisition and then discarded.
    """

    @classmethod
    def all_nodes_failed(
        cls,
        nodes: Sequence[str],
        last_node: str,
        cause: Optional[BaseException],
    ) -> AuthenticationFailed:
        detail = str(cause) if cause is not None else "no error reported"
        return cls(
            code=ErrorCode.SESSION_AUTHENTICATION_FAILED,
            message=(
                f"Logon failed on all {len(nodes)} node(s); "
                f"last node {last_node!r}: {detail}"
            ),
            cause=cause,
            context={"nodes": list(nodes), "last_node": last_node},
        )

    @property
    def last_node(self) -> Optional[str]:
        return self.context.get("last_node")


@dataclass(eq=False)
class NoActiveSession(BOEToolsError):
    """Token or query operation attempted with no live session."""

    @classmethod
    def for_operation(cls, operation: str) -> NoActiveSession:
        return cls(
            code=ErrorCode.SESSION_NOT_ACTIVE,
            message=f"No active session for operation '{operation}'",
            context={"operation": operation},
        )


# =============================================================================
# QUERY ERRORS
# =============================================================================
@dataclass(eq=False)
class QueryFailed(BOEToolsError):
    """
    Transport or server failure while running a query.

    Carries the page index being processed when the failure happened,
    or None when it happened before any page was known.
    """

    @classmethod
    def cursor_open(cls, query: str, cause: BaseException) -> QueryFailed:
        return cls(
            code=ErrorCode.QUERY_CURSOR_OPEN_FAILED,
            message=f"Failed to open paged query: {cause}",
            cause=cause,
            context={"query": query[:200], "page_index": None},
        )

    @classmethod
    def descriptor_fetch(
        cls,
        query: str,
        page_index: int,
        cause: BaseException,
    ) -> QueryFailed:
        return cls(
            code=ErrorCode.QUERY_DESCRIPTOR_FETCH_FAILED,
            message=f"Failed to fetch descriptor for page {page_index}: {cause}",
            cause=cause,
            context={"query": query[:200], "page_index": page_index},
        )

    @classmethod
    def page_fetch(
        cls,
        query: str,
        page_index: int,
        cause: BaseException,
    ) -> QueryFailed:
        return cls(
            code=ErrorCode.QUERY_PAGE_FETCH_FAILED,
            message=f"Failed to fetch page {page_index}: {cause}",
            cause=cause,
            context={"query": query[:200], "page_index": page_index},
        )

    @classmethod
    def raw_query(cls, query: str, cause: BaseException) -> QueryFailed:
        return cls(
            code=ErrorCode.QUERY_RAW_FAILED,
            message=f"Query failed: {cause}",
            cause=cause,
            context={"query": query[:200], "page_index": None},
        )

    @property
    def page_index(self) -> Optional[int]:
        return self.context.get("page_index")

    @property
    def query(self) -> Optional[str]:
        return self.context.get("query")


# =============================================================================
# TOKEN ERRORS
# =============================================================================
@dataclass(eq=False)
class TokenReleaseFailed(BOEToolsError):
    """
    Best-effort token release during session teardown failed.

    Only ever logged; teardown continues regardless.
    """

    @classmethod
    def during_teardown(
        cls,
        token_hint: str,
        cause: BaseException,
    ) -> TokenReleaseFailed:
        return cls(
            code=ErrorCode.TOKEN_RELEASE_FAILED,
            message=f"Failed to release logon token {token_hint} during logoff: {cause}",
            cause=cause,
            context={"token": token_hint},
        )


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================
class RejectionKind(Enum):
    """
    Why the server refused a request it did receive and process.

    MALFORMED_QUERY is what the repository answers for an empty query
    string; the session liveness probe relies on it.
    """

    MALFORMED_QUERY = auto()
    LOGON_DENIED = auto()
    INVALID_TOKEN = auto()
    PERMISSION_DENIED = auto()
    OTHER = auto()


@dataclass(eq=False)
class TransportError(BOEToolsError):
    """
    Failure raised by a transport implementation.

    Transports raise this (or a subclass) for every failed round trip.
    """

    @classmethod
    def node_unreachable(
        cls,
        node: str,
        cause: Optional[BaseException] = None,
    ) -> TransportError:
        return cls(
            code=ErrorCode.TRANSPORT_NODE_UNREACHABLE,
            message=f"Node {node!r} is unreachable",
            cause=cause,
            context={"node": node},
        )

    @classmethod
    def connection_lost(
        cls,
        node: str,
        operation: str,
        cause: Optional[BaseException] = None,
    ) -> TransportError:
        return cls(
            code=ErrorCode.TRANSPORT_CONNECTION_LOST,
            message=f"Connection to {node!r} lost during {operation}",
            cause=cause,
            context={"node": node, "operation": operation},
        )


@dataclass(eq=False)
class ServerRejection(TransportError):
    """The server processed the request and refused it."""

    kind: RejectionKind = RejectionKind.OTHER

    @classmethod
    def malformed_query(cls, query: str) -> ServerRejection:
        return cls(
            code=ErrorCode.TRANSPORT_SERVER_REJECTION,
            message=f"Query is malformed or empty: {query[:100]!r}",
            kind=RejectionKind.MALFORMED_QUERY,
            context={"query": query[:100]},
        )

    @classmethod
    def logon_denied(cls, user: str, node: str, reason: str) -> ServerRejection:
        return cls(
            code=ErrorCode.TRANSPORT_SERVER_REJECTION,
            message=f"Logon denied for {user!r} on {node!r}: {reason}",
            kind=RejectionKind.LOGON_DENIED,
            context={"user": user, "node": node, "reason": reason},
        )

    @classmethod
    def invalid_token(cls, reason: str) -> ServerRejection:
        return cls(
            code=ErrorCode.TRANSPORT_SERVER_REJECTION,
            message=f"Logon token rejected: {reason}",
            kind=RejectionKind.INVALID_TOKEN,
            context={"reason": reason},
        )

    @classmethod
    def permission_denied(cls, operation: str) -> ServerRejection:
        return cls(
            code=ErrorCode.TRANSPORT_SERVER_REJECTION,
            message=f"Permission denied for {operation}",
            kind=RejectionKind.PERMISSION_DENIED,
            context={"operation": operation},
        )


@dataclass(eq=False)
class SessionExpired(TransportError):
    """The server no longer recognises the session."""

    @classmethod
    def for_node(cls, node: str) -> SessionExpired:
        return cls(
            code=ErrorCode.TRANSPORT_SESSION_EXPIRED,
            message=f"Session on {node!r} has expired",
            context={"node": node},
        )

