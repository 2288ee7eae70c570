"""
Session manager tests.

Covers:
- Failover order, reported index and last-error-wins
- No state change when every node fails
- Liveness probe classification
- Default token caching and release ordering
- Teardown with and without token release

Run: python -m pytest boetools/tests/test_session_manager.py -v
"""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from boetools.core.config import SessionConfig
from boetools.core.errors import (
    AuthenticationFailed,
    NoActiveSession,
    ServerRejection,
    TransportError,
)
from boetools.observability.metrics import MetricsCollector
from boetools.session.credentials import PasswordCredential, TokenCredential
from boetools.session.manager import Session, SessionManager

from conftest import NODES


class TestFailover:
    """Circular failover across the node list."""

    def test_first_node_accepts(self, manager, credential, repo):
        session, index = manager.acquire_session(NODES, 0, credential)

        assert index == 0
        assert session.node == "A"
        assert manager.session is session
        assert repo.logon_attempts == ["A"]

    def test_wraps_to_front_of_list(self, manager, credential, repo):
        """Start at B, B and C down: A accepts, index 0 reported."""
        repo.take_down("B")
        repo.take_down("C")

        session, index = manager.acquire_session(NODES, 1, credential)

        assert session.node == "A"
        assert index == 0
        assert repo.logon_attempts == ["B", "C", "A"]

    def test_start_index_is_normalized(self, manager, credential, repo):
        session, index = manager.acquire_session(NODES, 5, credential)
        assert (session.node, index) == ("C", 2)

        session, index = manager.acquire_session(NODES, -1, credential)
        assert (session.node, index) == ("C", 2)

    def test_each_node_tried_once(self, manager, credential, repo):
        for node in NODES:
            repo.take_down(node)

        with pytest.raises(AuthenticationFailed):
            manager.acquire_session(NODES, 2, credential)

        assert repo.logon_attempts == ["C", "A", "B"]

    def test_last_error_wins(self, manager, credential, repo):
        a_error = TransportError.node_unreachable("A")
        b_error = TransportError.connection_lost("B", "logon")
        repo.take_down("A", a_error)
        repo.take_down("B", b_error)
        repo.take_down("C")

        with pytest.raises(AuthenticationFailed) as exc_info:
            manager.acquire_session(NODES, 2, credential)

        assert exc_info.value.cause is b_error
        assert exc_info.value.__cause__ is b_error
        assert exc_info.value.last_node == "B"

    def test_failure_keeps_previous_session(self, manager, credential, repo):
        previous, _ = manager.acquire_session(NODES, 0, credential)
        for node in NODES:
            repo.take_down(node)

        with pytest.raises(AuthenticationFailed):
            manager.acquire_session(NODES, 0, credential)

        assert manager.session is previous

    def test_rejected_password_fails_over_then_reports(self, manager, repo):
        bad = PasswordCredential("Administrator", "wrong")

        with pytest.raises(AuthenticationFailed) as exc_info:
            manager.acquire_session(NODES, 0, bad)

        assert isinstance(exc_info.value.cause, ServerRejection)
        assert len(repo.logon_attempts) == 3

    def test_empty_node_list(self, manager, credential):
        with pytest.raises(ValueError):
            manager.acquire_session([], 0, credential)

    def test_comma_separated_nodes(self, manager, credential, repo):
        session, index = manager.acquire_session(" A , B ,C", 1, credential)
        assert (session.node, index) == ("B", 1)

    def test_relogon_replaces_session(self, manager, credential):
        first, _ = manager.acquire_session(NODES, 0, credential)
        second, _ = manager.acquire_session(NODES, 1, credential)

        assert manager.session is second
        assert second is not first

    def test_attempt_metrics(self, manager, credential, repo, metrics):
        repo.take_down("A")
        manager.acquire_session(NODES, 0, credential)

        attempts = metrics.counter("boetools_logon_attempts_total", ["outcome"])
        assert attempts.get(outcome="failure") == 1
        assert attempts.get(outcome="success") == 1
        assert metrics.gauge("boetools_session_active").get() == 1


class TestLiveness:
    """Empty-query probe classification."""

    def test_no_session(self, manager):
        assert manager.is_valid() is False

    def test_malformed_rejection_means_live(self, logged_on):
        assert logged_on.is_valid() is True
        assert logged_on.session.valid is True

    def test_expired_session_is_dead(self, logged_on, repo):
        repo.expire_sessions()

        assert logged_on.is_valid() is False
        assert logged_on.session.valid is False

    def test_lost_node_is_dead(self, logged_on, repo):
        repo.take_down("A")
        assert logged_on.is_valid() is False

    def test_other_rejection_is_dead(self, logged_on, repo):
        repo.inject_failure("query", ServerRejection.permission_denied("query"))
        assert logged_on.is_valid() is False

    def test_unexpected_error_is_dead(self, logged_on, repo):
        repo.inject_failure("query", RuntimeError("socket closed"))
        assert logged_on.is_valid() is False

    def test_probe_answered_normally_is_dead(self, metrics):
        handle = MagicMock()
        handle.query.return_value = []
        manager = SessionManager(MagicMock(), metrics=metrics)
        manager.acquire_session(["only"], 0, PasswordCredential("u", "p"))
        manager.session.handle = handle

        assert manager.is_valid() is False
        handle.query.assert_called_once_with("")


class TestTokens:
    """Token issue, caching and release."""

    def test_issue_requires_session(self, manager):
        with pytest.raises(NoActiveSession):
            manager.issue_token(5, 1)
        with pytest.raises(NoActiveSession):
            manager.issue_default_token()
        with pytest.raises(NoActiveSession):
            manager.release_token("token")

    def test_issue_token_limits(self, logged_on, repo):
        token = logged_on.issue_token(30, 3)

        assert token.valid_minutes == 30
        assert token.valid_uses == 3
        assert token.cached is False
        assert repo.token_uses_left(token.value) == 3

    def test_default_token_limits(self, logged_on):
        token = logged_on.issue_default_token()

        assert (token.valid_minutes, token.valid_uses) == (1440, 10)
        assert logged_on.default_token is None

    def test_configured_default_limits(self, repo, credential, metrics):
        manager = SessionManager(
            repo,
            config=SessionConfig(default_token_minutes=60, default_token_uses=2),
            metrics=metrics,
        )
        manager.acquire_session(NODES, 0, credential)

        token = manager.issue_default_token()
        assert (token.valid_minutes, token.valid_uses) == (60, 2)

    def test_reuse_issues_once(self, logged_on, repo, metrics):
        first = logged_on.issue_default_token(reuse_existing=True)
        second = logged_on.issue_default_token(reuse_existing=True)

        assert second is first
        assert first.cached is True
        assert repo.calls["issue_token"] == 1
        assert metrics.counter("boetools_tokens_issued_total").get() == 1

    def test_without_reuse_always_issues(self, logged_on, repo):
        cached = logged_on.issue_default_token(reuse_existing=True)
        fresh = logged_on.issue_default_token()

        assert fresh.value != cached.value
        assert logged_on.default_token is cached
        assert repo.calls["issue_token"] == 2

    def test_release_clears_cache_before_server_call(self, logged_on, repo):
        token = logged_on.issue_default_token(reuse_existing=True)
        repo.inject_failure("release_token", TransportError.connection_lost("A", "release_token"))

        with pytest.raises(TransportError):
            logged_on.release_token(token)

        assert logged_on.default_token is None

    def test_release_other_token_keeps_cache(self, logged_on, repo):
        cached = logged_on.issue_default_token(reuse_existing=True)
        other = logged_on.issue_token(5, 1)

        logged_on.release_token(other.value)

        assert logged_on.default_token is cached
        assert repo.token_uses_left(other.value) is None

    def test_token_logon(self, logged_on, repo):
        token = logged_on.issue_token(10, 2)
        logged_on.release()

        session, index = logged_on.acquire_session(NODES, 1, TokenCredential(token.value))

        assert (session.node, index) == ("B", 1)
        assert repo.token_uses_left(token.value) == 1

    def test_token_repr_hides_value(self, logged_on):
        token = logged_on.issue_token(10, 2)
        assert token.value not in repr(token)


class TestRelease:
    """Teardown semantics."""

    def test_noop_without_session(self, manager, repo):
        manager.release(release_token=True)
        assert repo.calls["logoff"] == 0

    def test_logoff_clears_session(self, logged_on, repo, metrics):
        logged_on.release()

        assert logged_on.session is None
        assert repo.active_sessions == []
        assert metrics.gauge("boetools_session_active").get() == 0

    def test_release_false_keeps_token(self, logged_on, repo):
        token = logged_on.issue_default_token(reuse_existing=True)

        logged_on.release(release_token=False)

        assert logged_on.default_token is token
        assert repo.token_uses_left(token.value) == 10

    def test_cached_token_available_after_logoff(self, logged_on, repo):
        """Cached default token is handed back without a session, for relogon by token."""
        token = logged_on.issue_default_token(reuse_existing=True)
        logged_on.release(release_token=False)

        cached = logged_on.issue_default_token(reuse_existing=True)

        assert cached is token
        assert repo.calls["issue_token"] == 1
        session, _ = logged_on.acquire_session(NODES, 1, TokenCredential(cached.value))
        assert session.node == "B"

    def test_uncached_default_token_requires_session(self, logged_on):
        logged_on.release()

        with pytest.raises(NoActiveSession):
            logged_on.issue_default_token(reuse_existing=True)

    def test_release_true_invalidates_token(self, logged_on, repo):
        token = logged_on.issue_default_token(reuse_existing=True)

        logged_on.release(release_token=True)

        assert logged_on.default_token is None
        assert repo.token_uses_left(token.value) is None

    def test_token_release_failure_is_logged_not_raised(self, logged_on, repo, caplog):
        logged_on.issue_default_token(reuse_existing=True)
        repo.inject_failure("release_token", ServerRejection.invalid_token("gone"))

        with caplog.at_level(logging.WARNING, logger="boetools.session.manager"):
            logged_on.release(release_token=True)

        assert logged_on.session is None
        assert repo.calls["logoff"] == 1
        assert any("Failed to release logon token" in r.getMessage() for r in caplog.records)

    def test_logoff_failure_propagates_and_clears(self, logged_on, repo):
        repo.inject_failure("logoff", TransportError.connection_lost("A", "logoff"))

        with pytest.raises(TransportError):
            logged_on.release()

        assert logged_on.session is None


class TestSessionRecord:
    def test_session_fields(self):
        handle: Any = object()
        session = Session(node="A", index=0, handle=handle)
        assert session.valid is True
        assert session.handle is handle

    def test_default_metrics_registry(self):
        manager = SessionManager(MagicMock())
        assert manager.session is None
        assert isinstance(MetricsCollector.get_instance(), MetricsCollector)
