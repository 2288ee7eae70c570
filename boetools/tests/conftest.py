"""
Shared fixtures: an in-memory three-node cluster, a manager bound to it,
and an isolated metrics registry per test.
"""

from __future__ import annotations

import pytest

from boetools.core.config import SessionConfig
from boetools.observability.metrics import MetricsCollector
from boetools.query.engine import QueryEngine
from boetools.session.credentials import PasswordCredential
from boetools.session.manager import SessionManager
from boetools.transport.memory import InMemoryRepository

NODES = ("A", "B", "C")
USER = "Administrator"
PASSWORD = "s3cret"


def make_objects(count: int) -> list[dict]:
    return [{"SI_ID": i, "SI_NAME": f"obj-{i}", "SI_KIND": "Folder"} for i in range(count)]


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def repo() -> InMemoryRepository:
    repository = InMemoryRepository(NODES, trusted_secret="shared-secret")
    repository.add_user(USER, PASSWORD)
    return repository


@pytest.fixture
def credential() -> PasswordCredential:
    return PasswordCredential(USER, PASSWORD)


@pytest.fixture
def manager(repo: InMemoryRepository, metrics: MetricsCollector) -> SessionManager:
    return SessionManager(repo, config=SessionConfig(), metrics=metrics)


@pytest.fixture
def logged_on(manager: SessionManager, credential: PasswordCredential) -> SessionManager:
    manager.acquire_session(NODES, 0, credential)
    return manager


@pytest.fixture
def engine(logged_on: SessionManager, metrics: MetricsCollector) -> QueryEngine:
    return QueryEngine(logged_on, max_batch_size=2, metrics=metrics)
