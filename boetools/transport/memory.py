"""
In-Memory Repository Transport

A TransportClient that keeps the whole repository in process memory.
Used by the test suite and by ``python -m boetools``; it behaves like a
small cluster so failover, token and paging code paths can be exercised
without a server.

Features:
    - Named nodes that can be taken down and brought back
    - Users with passwords and authentication types, plus a trusted secret
    - Logon tokens with minute and use limits enforced on logon
    - Opaque registered queries, paged through generated single-use fetch statements
    - Empty query rejected as malformed, like the real repository
    - Session expiry and per-operation failure injection
    - Call counters for assertions

Thread Safety:
    Shared state is guarded by a threading.Lock so several managers can
    share one repository.

Example:
    repo = InMemoryRepository(["cms1", "cms2"])
    repo.add_user("Administrator", "secret")
    repo.register_query("SELECT * FROM CI_INFOOBJECTS", objects)
    session = repo.logon_password("Administrator", "secret", "cms2", "secEnterprise")
"""

from __future__ import annotations

import itertools
import math
import secrets
import threading
import time
from collections import Counter as CallCounter
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

from boetools.core.errors import (
    ServerRejection,
    SessionExpired,
    TransportError,
)
from boetools.core.types import AuthType

QuerySource = Union[Sequence[Any], Callable[[], Sequence[Any]]]

PAGE_STATEMENT_PREFIX = "page://"


# =============================================================================
# INTERNAL RECORDS
# =============================================================================
@dataclass
class _UserRecord:
    name: str
    password: str = field(repr=False)
    auth_type: str = AuthType.ENTERPRISE.value


@dataclass
class _TokenRecord:
    user: str
    expires_at: float
    uses_left: int


@dataclass(frozen=True)
class _PageStatement:
    query: str
    page_index: int
    batch_size: int


# =============================================================================
# PAGED QUERY HANDLES
# =============================================================================
@dataclass(frozen=True)
class InMemoryPageDescriptor:
    """Descriptor whose fetch statement is an opaque generated string."""

    statement: str
    page_index: int

    def to_fetch_statement(self) -> str:
        return self.statement


class InMemoryPagedQuery:
    """Paging state for one query, sized when it is opened."""

    __slots__ = ("_session", "_query", "_batch_size", "_page_count", "_handle_id")

    def __init__(
        self,
        session: InMemorySession,
        query: str,
        batch_size: int,
        page_count: int,
        handle_id: int,
    ) -> None:
        self._session = session
        self._query = query
        self._batch_size = batch_size
        self._page_count = page_count
        self._handle_id = handle_id

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def page_descriptor(self, page_index: int) -> InMemoryPageDescriptor:
        return self._session.repository._describe_page(
            self._session, self._handle_id, self._query, self._batch_size,
            self._page_count, page_index,
        )


# =============================================================================
# SESSION
# =============================================================================
class InMemorySession:
    """Session bound to one node of an InMemoryRepository."""

    __slots__ = ("repository", "_node", "user", "session_id", "expired", "logged_off")

    def __init__(self, repository: InMemoryRepository, node: str, user: str) -> None:
        self.repository = repository
        self._node = node
        self.user = user
        self.session_id = secrets.token_hex(8)
        self.expired = False
        self.logged_off = False

    @property
    def node(self) -> str:
        return self._node

    def query(self, statement: str) -> list[Any]:
        return self.repository._execute(self, statement)

    def open_paged_query(self, query: str, batch_size: int) -> InMemoryPagedQuery:
        return self.repository._open_paged(self, query, batch_size)

    def issue_token(self, valid_minutes: int, valid_uses: int) -> str:
        return self.repository._issue_token(self, valid_minutes, valid_uses)

    def release_token(self, token: str) -> None:
        self.repository._release_token(self, token)

    def logoff(self) -> None:
        self.repository._logoff(self)

    def __repr__(self) -> str:
        return f"InMemorySession(node={self._node!r}, user={self.user!r}, id={self.session_id})"


# =============================================================================
# REPOSITORY
# =============================================================================
class InMemoryRepository:
    """
    In-process stand-in for a repository cluster.

    Implements the TransportClient protocol.
    """

    def __init__(
        self,
        nodes: Sequence[str],
        *,
        trusted_secret: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._nodes_up: dict[str, bool] = {node: True for node in nodes}
        self._node_errors: dict[str, TransportError] = {}
        self._users: dict[str, _UserRecord] = {}
        self._trusted_secret = trusted_secret
        self._tokens: dict[str, _TokenRecord] = {}
        self._queries: dict[str, QuerySource] = {}
        self._statements: dict[str, _PageStatement] = {}
        self._sessions: dict[str, InMemorySession] = {}
        self._failures: dict[tuple[str, Optional[int]], BaseException] = {}
        self._handle_ids = itertools.count(1)
        self._clock = clock
        self._lock = threading.Lock()

        self.logon_attempts: list[str] = []
        self.calls: CallCounter[str] = CallCounter()

    # -------------------------------------------------------------------------
    # SETUP
    # -------------------------------------------------------------------------

    def add_node(self, node: str) -> None:
        with self._lock:
            self._nodes_up[node] = True

    def take_down(self, node: str, error: Optional[TransportError] = None) -> None:
        """Make logons and live sessions on ``node`` fail."""
        with self._lock:
            self._nodes_up[node] = False
            if error is not None:
                self._node_errors[node] = error

    def bring_up(self, node: str) -> None:
        with self._lock:
            self._nodes_up[node] = True
            self._node_errors.pop(node, None)

    def add_user(
        self,
        name: str,
        password: str,
        auth_type: Union[AuthType, str] = AuthType.ENTERPRISE,
    ) -> None:
        auth = auth_type.value if isinstance(auth_type, AuthType) else auth_type
        with self._lock:
            self._users[name] = _UserRecord(name=name, password=password, auth_type=auth)

    def register_query(self, query: str, source: QuerySource) -> None:
        """
        Register the result of an opaque query string.

        ``source`` is either a sequence or a zero-argument callable that
        returns a fresh sequence each time the query is evaluated.
        """
        with self._lock:
            self._queries[query] = source

    def expire_sessions(self) -> None:
        """Expire every live session server side."""
        with self._lock:
            for session in self._sessions.values():
                session.expired = True
            self._sessions.clear()

    def inject_failure(
        self,
        operation: str,
        error: BaseException,
        page_index: Optional[int] = None,
    ) -> None:
        """
        Make ``operation`` raise ``error`` until cleared.

        Operations: "query", "open_paged_query", "page_descriptor",
        "page_fetch", "issue_token", "release_token", "logoff".
        ``page_index`` narrows page_descriptor/page_fetch to one page.
        """
        with self._lock:
            self._failures[(operation, page_index)] = error

    def clear_failures(self) -> None:
        with self._lock:
            self._failures.clear()

    # -------------------------------------------------------------------------
    # INSPECTION
    # -------------------------------------------------------------------------

    @property
    def active_sessions(self) -> list[InMemorySession]:
        with self._lock:
            return list(self._sessions.values())

    @property
    def pending_statements(self) -> int:
        """Page statements described but not yet fetched."""
        with self._lock:
            return len(self._statements)

    def token_uses_left(self, token: str) -> Optional[int]:
        with self._lock:
            record = self._tokens.get(token)
            return record.uses_left if record else None

    # -------------------------------------------------------------------------
    # TransportClient Implementation
    # -------------------------------------------------------------------------

    def logon_password(
        self,
        user: str,
        password: str,
        node: str,
        auth_type: str,
    ) -> InMemorySession:
        with self._lock:
            self._begin_logon(node)
            record = self._users.get(user)
            if record is None or record.password != password:
                raise ServerRejection.logon_denied(user, node, "invalid user name or password")
            if record.auth_type != auth_type:
                raise ServerRejection.logon_denied(
                    user, node, f"authentication type {auth_type!r} not enabled for user",
                )
            return self._open_session(node, user)

    def logon_trusted(self, user: str, secret: str, node: str) -> InMemorySession:
        with self._lock:
            self._begin_logon(node)
            if self._trusted_secret is None or secret != self._trusted_secret:
                raise ServerRejection.logon_denied(user, node, "trusted authentication rejected")
            if user not in self._users:
                raise ServerRejection.logon_denied(user, node, "unknown user")
            return self._open_session(node, user)

    def logon_token(self, token: str, node: str) -> InMemorySession:
        with self._lock:
            self._begin_logon(node)
            record = self._tokens.get(token)
            if record is None:
                raise ServerRejection.invalid_token("unknown or released token")
            if self._clock() >= record.expires_at:
                del self._tokens[token]
                raise ServerRejection.invalid_token("token expired")
            record.uses_left -= 1
            if record.uses_left <= 0:
                del self._tokens[token]
            return self._open_session(node, record.user)

    # -------------------------------------------------------------------------
    # SESSION OPERATIONS (called by InMemorySession)
    # -------------------------------------------------------------------------

    def _execute(self, session: InMemorySession, statement: str) -> list[Any]:
        with self._lock:
            page = self._statements.pop(statement, None)
            operation = "page_fetch" if page is not None else "query"
            self._check_session(session, operation)
            self._raise_injected(operation, page.page_index if page else None)

            if page is not None:
                results = self._resolve(page.query)
                start = page.page_index * page.batch_size
                return list(results[start:start + page.batch_size])

            if not statement.strip():
                raise ServerRejection.malformed_query(statement)
            return list(self._resolve(statement))

    def _open_paged(
        self,
        session: InMemorySession,
        query: str,
        batch_size: int,
    ) -> InMemoryPagedQuery:
        with self._lock:
            self._check_session(session, "open_paged_query")
            self._raise_injected("open_paged_query", None)
            if not query.strip():
                raise ServerRejection.malformed_query(query)
            if batch_size < 1:
                raise ServerRejection.malformed_query(f"{query} (batch size {batch_size})")
            total = len(self._resolve(query))
            page_count = math.ceil(total / batch_size)
            return InMemoryPagedQuery(session, query, batch_size, page_count, next(self._handle_ids))

    def _describe_page(
        self,
        session: InMemorySession,
        handle_id: int,
        query: str,
        batch_size: int,
        page_count: int,
        page_index: int,
    ) -> InMemoryPageDescriptor:
        with self._lock:
            self._check_session(session, "page_descriptor")
            self._raise_injected("page_descriptor", page_index)
            if not 0 <= page_index < page_count:
                raise ServerRejection.malformed_query(f"page {page_index} of {page_count}")
            statement = f"{PAGE_STATEMENT_PREFIX}{handle_id}/{page_index}"
            self._statements[statement] = _PageStatement(query, page_index, batch_size)
            return InMemoryPageDescriptor(statement=statement, page_index=page_index)

    def _issue_token(self, session: InMemorySession, valid_minutes: int, valid_uses: int) -> str:
        with self._lock:
            self._check_session(session, "issue_token")
            self._raise_injected("issue_token", None)
            token = f"{session.node}@@{secrets.token_urlsafe(24)}"
            self._tokens[token] = _TokenRecord(
                user=session.user,
                expires_at=self._clock() + valid_minutes * 60,
                uses_left=valid_uses,
            )
            return token

    def _release_token(self, session: InMemorySession, token: str) -> None:
        with self._lock:
            self._check_session(session, "release_token")
            self._raise_injected("release_token", None)
            if self._tokens.pop(token, None) is None:
                raise ServerRejection.invalid_token("unknown or already released token")

    def _logoff(self, session: InMemorySession) -> None:
        with self._lock:
            self.calls["logoff"] += 1
            self._raise_injected("logoff", None)
            session.logged_off = True
            self._sessions.pop(session.session_id, None)

    # -------------------------------------------------------------------------
    # HELPERS (lock held)
    # -------------------------------------------------------------------------

    def _begin_logon(self, node: str) -> None:
        self.logon_attempts.append(node)
        self.calls["logon"] += 1
        if node not in self._nodes_up:
            raise TransportError.node_unreachable(node)
        if not self._nodes_up[node]:
            raise self._node_errors.get(node) or TransportError.node_unreachable(node)

    def _open_session(self, node: str, user: str) -> InMemorySession:
        session = InMemorySession(self, node, user)
        self._sessions[session.session_id] = session
        return session

    def _check_session(self, session: InMemorySession, operation: str) -> None:
        self.calls[operation] += 1
        if not self._nodes_up.get(session.node, False):
            raise TransportError.connection_lost(session.node, operation)
        if session.expired or session.logged_off:
            raise SessionExpired.for_node(session.node)

    def _raise_injected(self, operation: str, page_index: Optional[int]) -> None:
        error = self._failures.get((operation, page_index))
        if error is None and page_index is not None:
            error = self._failures.get((operation, None))
        if error is not None:
            raise error

    def _resolve(self, query: str) -> Sequence[Any]:
        source = self._queries.get(query, ())
        return source() if callable(source) else source
