"""
Session Manager: Failover Logon and Logon Token Lifecycle

Owns at most one authenticated session against a repository cluster.

Failover:
    Nodes are tried circularly, starting from a caller supplied index
    (normalized modulo the node count, negatives allowed), each node
    exactly once. The first node that accepts the logon wins. When every
    node fails only the last node's error is reported; earlier errors
    are logged and discarded. A failed acquisition leaves any previously
    held session untouched.

Liveness:
    is_valid() sends the empty query. The repository rejects it as
    malformed, which proves the session is still recognised; any other
    outcome means the session is dead.

Tokens:
    A default token (one day, ten uses unless configured otherwise) can
    be cached and reused. Releasing a token clears the cached copy
    before the server is asked to invalidate it.

Thread Safety:
    Not safe for concurrent mutation. Use one manager per thread.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from boetools.core import constants as C
from boetools.core.config import SessionConfig
from boetools.core.errors import (
    AuthenticationFailed,
    NoActiveSession,
    RejectionKind,
    ServerRejection,
    TokenReleaseFailed,
)
from boetools.core.types import LogonToken, NodeList
from boetools.observability.logging import log_context
from boetools.observability.metrics import MetricsCollector
from boetools.session.credentials import Credential, describe, logon
from boetools.transport.protocols import TransportClient, TransportSession

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """An authenticated session bound to one cluster node."""

    node: str
    index: int
    handle: TransportSession
    valid: bool = True


class SessionManager:
    """
    Acquires, probes and releases a single repository session.

    Usage:
        manager = SessionManager(InMemoryRepository(["cms1", "cms2"]))
        session, index = manager.acquire_session(["cms1", "cms2"], 0, credential)
        token = manager.issue_default_token(reuse_existing=True)
        manager.release(release_token=True)
    """

    __slots__ = (
        "_transport",
        "_config",
        "_session",
        "_default_token",
        "_logon_attempts",
        "_tokens_issued",
        "_session_active",
    )

    def __init__(
        self,
        transport: TransportClient,
        *,
        config: Optional[SessionConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._transport = transport
        self._config = config or SessionConfig()
        self._session: Optional[Session] = None
        self._default_token: Optional[LogonToken] = None

        metrics = metrics or MetricsCollector.get_instance()
        self._logon_attempts = metrics.counter(
            "boetools_logon_attempts_total",
            ["outcome"],
            "Logon attempts against cluster nodes",
        )
        self._tokens_issued = metrics.counter(
            "boetools_tokens_issued_total",
            help_text="Logon tokens issued by the server",
        )
        self._session_active = metrics.gauge(
            "boetools_session_active",
            help_text="1 while a session is held",
        )

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def default_token(self) -> Optional[LogonToken]:
        return self._default_token

    # =========================================================================
    # LOGON
    # =========================================================================

    def acquire_session(
        self,
        nodes: Union[NodeList, str, Sequence[str]],
        start_index: int,
        credential: Credential,
    ) -> tuple[Session, int]:
        """
        Log on to the first node that accepts the credential.

        Args:
            nodes: Candidate nodes in failover order
            start_index: Position to start from; taken modulo len(nodes)
            credential: Password, trusted or token credential

        Returns:
            The new session and the index of the node that accepted it.

        Raises:
            ValueError: If the node list is empty
            AuthenticationFailed: If every node failed; carries the last
                node's error as its cause
        """
        node_list = NodeList.of(nodes)
        last_error: Optional[BaseException] = None
        last_node = node_list[node_list.normalize(start_index)]

        for index, node in node_list.rotation(start_index):
            last_node = node
            with log_context(node=node, node_index=index):
                logger.debug("Attempting logon as %s", describe(credential))
                try:
                    handle = logon(self._transport, credential, node)
                except Exception as e:
                    self._logon_attempts.inc(outcome="failure")
                    logger.warning("Logon to node %s failed: %s", node, e)
                    last_error = e
                    continue

            self._logon_attempts.inc(outcome="success")
            session = Session(node=node, index=index, handle=handle)
            self._session = session
            self._session_active.set(1)
            logger.info("Logged on to node %s (index %d)", node, index)
            return session, index

        raise AuthenticationFailed.all_nodes_failed(node_list.nodes, last_node, last_error)

    def is_valid(self) -> bool:
        """
        Probe the held session with one round trip.

        Returns False when no session is held. A session found dead is
        marked invalid.
        """
        session = self._session
        if session is None:
            return False

        try:
            session.handle.query(C.LIVENESS_PROBE_QUERY)
        except ServerRejection as e:
            if e.kind is RejectionKind.MALFORMED_QUERY:
                session.valid = True
                return True
            logger.debug("Liveness probe rejected on %s: %s", session.node, e)
        except Exception as e:
            logger.debug("Liveness probe failed on %s: %s", session.node, e)
        else:
            logger.debug("Liveness probe on %s was not rejected", session.node)

        session.valid = False
        return False

    # =========================================================================
    # TOKENS
    # =========================================================================

    def issue_token(self, valid_minutes: int, valid_uses: int) -> LogonToken:
        """Ask the server for a new logon token with the given limits."""
        session = self._require_session("issue_token")
        value = session.handle.issue_token(valid_minutes, valid_uses)
        self._tokens_issued.inc()
        token = LogonToken(value=value, valid_minutes=valid_minutes, valid_uses=valid_uses)
        logger.debug(
            "Issued logon token %s (%d minutes, %d uses)",
            token.hint, valid_minutes, valid_uses,
        )
        return token

    def issue_default_token(self, reuse_existing: bool = False) -> LogonToken:
        """
        Issue a token with the default limits.

        With ``reuse_existing`` a cached default token is returned without
        contacting the server, even when no session is held; a freshly
        issued one is cached for next time.
        """
        if reuse_existing and self._default_token is not None:
            return self._default_token
        session = self._require_session("issue_default_token")

        token = self.issue_token(
            self._config.default_token_minutes,
            self._config.default_token_uses,
        )
        if reuse_existing:
            token = dataclasses.replace(token, cached=True)
            self._default_token = token
            logger.debug("Cached default token %s for node %s", token.hint, session.node)
        return token

    def release_token(self, token: Union[LogonToken, str]) -> None:
        """
        Invalidate a token server side.

        The cached default token is forgotten first when it matches, even
        if the server call then fails.
        """
        session = self._require_session("release_token")
        value = token.value if isinstance(token, LogonToken) else token

        if self._default_token is not None and self._default_token.value == value:
            self._default_token = None

        session.handle.release_token(value)

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def release(self, release_token: bool = False) -> None:
        """
        Log off and drop the held session.

        With ``release_token`` the cached default token is released first;
        a failure there is logged and ignored. A logoff failure propagates,
        but the session is cleared regardless. No-op without a session.
        """
        session = self._session
        if session is None:
            return

        if release_token and self._default_token is not None:
            cached = self._default_token
            self._default_token = None
            try:
                session.handle.release_token(cached.value)
            except Exception as e:
                error = TokenReleaseFailed.during_teardown(cached.hint, e)
                logger.warning(error.message, extra={"error": error.to_dict()})

        try:
            session.handle.logoff()
            logger.info("Logged off from node %s", session.node)
        finally:
            self._session = None
            self._session_active.set(0)

    def _require_session(self, operation: str) -> Session:
        if self._session is None:
            raise NoActiveSession.for_operation(operation)
        return self._session
