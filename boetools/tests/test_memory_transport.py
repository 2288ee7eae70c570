"""
In-memory repository transport tests.

Run: python -m pytest boetools/tests/test_memory_transport.py -v
"""

from __future__ import annotations

import pytest

from boetools.core.errors import (
    RejectionKind,
    ServerRejection,
    SessionExpired,
    TransportError,
)
from boetools.transport.memory import InMemoryRepository
from boetools.transport.protocols import PagedQueryHandle, TransportClient, TransportSession

from conftest import PASSWORD, USER, make_objects


class TestLogon:
    def test_satisfies_protocols(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")

        assert isinstance(repo, TransportClient)
        assert isinstance(session, TransportSession)

    def test_unknown_node(self, repo):
        with pytest.raises(TransportError) as exc_info:
            repo.logon_password(USER, PASSWORD, "Z", "secEnterprise")
        assert not isinstance(exc_info.value, ServerRejection)

    def test_bad_password(self, repo):
        with pytest.raises(ServerRejection) as exc_info:
            repo.logon_password(USER, "nope", "A", "secEnterprise")
        assert exc_info.value.kind is RejectionKind.LOGON_DENIED

    def test_bring_up(self, repo):
        repo.take_down("A")
        with pytest.raises(TransportError):
            repo.logon_password(USER, PASSWORD, "A", "secEnterprise")

        repo.bring_up("A")
        assert repo.logon_password(USER, PASSWORD, "A", "secEnterprise").node == "A"

    def test_trusted_requires_secret(self):
        repo = InMemoryRepository(["A"])
        repo.add_user("u", "p")

        with pytest.raises(ServerRejection):
            repo.logon_trusted("u", "anything", "A")


class TestTokens:
    def test_uses_are_consumed(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        token = session.issue_token(10, 2)

        repo.logon_token(token, "B")
        repo.logon_token(token, "C")

        with pytest.raises(ServerRejection) as exc_info:
            repo.logon_token(token, "A")
        assert exc_info.value.kind is RejectionKind.INVALID_TOKEN

    def test_expiry(self):
        now = [1000.0]
        repo = InMemoryRepository(["A"], clock=lambda: now[0])
        repo.add_user("u", "p")
        token = repo.logon_password("u", "p", "A", "secEnterprise").issue_token(1, 5)

        now[0] += 61

        with pytest.raises(ServerRejection):
            repo.logon_token(token, "A")

    def test_release_unknown_token(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        with pytest.raises(ServerRejection):
            session.release_token("never-issued")


class TestQueries:
    def test_empty_query_is_malformed(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")

        with pytest.raises(ServerRejection) as exc_info:
            session.query("")
        assert exc_info.value.kind is RejectionKind.MALFORMED_QUERY

    def test_unregistered_query_is_empty(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        assert session.query("SELECT * FROM CI_INFOOBJECTS") == []

    def test_paging(self, repo):
        repo.register_query("q", make_objects(5))
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")

        handle = session.open_paged_query("q", 2)
        pages = [
            [o["SI_ID"] for o in session.query(handle.page_descriptor(i).to_fetch_statement())]
            for i in range(handle.page_count)
        ]

        assert isinstance(handle, PagedQueryHandle)
        assert pages == [[0, 1], [2, 3], [4]]
        assert repo.pending_statements == 0

    def test_fetch_statement_is_single_use(self, repo):
        repo.register_query("q", make_objects(3))
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        statement = session.open_paged_query("q", 2).page_descriptor(0).to_fetch_statement()
        assert repo.pending_statements == 1

        assert len(session.query(statement)) == 2
        assert repo.pending_statements == 0
        assert session.query(statement) == []

    def test_descriptor_out_of_range(self, repo):
        repo.register_query("q", make_objects(1))
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")

        with pytest.raises(ServerRejection):
            session.open_paged_query("q", 5).page_descriptor(1)

    def test_expired_session(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        repo.expire_sessions()

        with pytest.raises(SessionExpired):
            session.query("q")

    def test_logged_off_session(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        session.logoff()

        with pytest.raises(SessionExpired):
            session.issue_token(1, 1)

    def test_clear_failures(self, repo):
        session = repo.logon_password(USER, PASSWORD, "A", "secEnterprise")
        repo.inject_failure("query", RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            session.query("q")

        repo.clear_failures()
        assert session.query("q") == []
