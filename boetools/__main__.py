#!/usr/bin/env python3
"""
BOE Administration Tooling

Entry point demonstrating failover logon, node rotation, paged
streaming and logon tokens against an in-memory repository.

Usage:
    python -m boetools

    # Or with custom config
    BOETOOLS_CMS="cms-a:6400, cms-b:6400" BOETOOLS_MAX_BATCH=3 python -m boetools
"""

from __future__ import annotations

import sys

from boetools.core.config import BOEToolsConfig
from boetools.core.errors import BOEToolsError
from boetools.observability.logging import LogLevel, setup_logging
from boetools.observability.metrics import MetricsCollector
from boetools.query.builders import MINIMAL_COLUMNS
from boetools.query.engine import QueryEngine
from boetools.query.lookups import find_by_name
from boetools.session.credentials import PasswordCredential, TokenCredential
from boetools.session.manager import SessionManager
from boetools.session.node_index import acquire_with_rotation, store_from_config
from boetools.transport.memory import InMemoryRepository

DEMO_NODES = ("cms-a:6400", "cms-b:6400", "cms-c:6400")
DEMO_USER = "Administrator"
DEMO_PASSWORD = "demo"
FOLDER_QUERY = f"SELECT {MINIMAL_COLUMNS} FROM CI_INFOOBJECTS WHERE SI_KIND='Folder'"


def build_repository(nodes: tuple[str, ...]) -> InMemoryRepository:
    """Small repository: one user, a few folders, the first node down."""
    repo = InMemoryRepository(nodes)
    repo.add_user(DEMO_USER, DEMO_PASSWORD)

    folders = [
        {"SI_ID": 1000 + i, "SI_NAME": f"Folder {i}", "SI_KIND": "Folder",
         "SI_CUID": f"AX{i:06d}", "SI_PARENTID": 23}
        for i in range(7)
    ]
    repo.register_query(FOLDER_QUERY, folders)
    repo.register_query(
        "SELECT * FROM CI_INFOOBJECTS, CI_SYSTEMOBJECTS, CI_APPOBJECTS "
        "WHERE SI_NAME = 'Folder 3' AND SI_KIND = 'Folder' AND SI_INSTANCE=0",
        [folders[3]],
    )
    repo.take_down(nodes[0])
    return repo


def main() -> int:
    print("\n" + "=" * 60)
    print("BOE Administration Tooling - In-Memory Demo")
    print("=" * 60 + "\n")

    config_result = BOEToolsConfig.from_env()
    if config_result.is_err():
        print(f"Configuration error: {config_result.error}")
        return 1
    config = config_result.unwrap()

    validation = config.validate()
    if validation.is_err():
        print(f"Validation error: {validation.error}")
        return 1

    setup_logging(
        LogLevel.parse(config.observability.log_level),
        json_output=config.observability.log_json,
    )
    metrics = MetricsCollector.get_instance()

    nodes = config.cluster_nodes or DEMO_NODES
    print("✓ Configuration loaded and validated")
    print(f"  Nodes: {', '.join(nodes)}")
    print(f"  Max batch: {config.query.max_batch_size}")

    repo = build_repository(tuple(nodes))
    manager = SessionManager(repo, config=config.session, metrics=metrics)
    credential = PasswordCredential(DEMO_USER, DEMO_PASSWORD, config.session.auth_type)

    try:
        store = store_from_config(config.node_index)
        session, index = acquire_with_rotation(manager, nodes, credential, store)
        print(f"\n✓ Logged on to {session.node} (index {index})")
        print(f"  Session valid: {manager.is_valid()}")

        engine = QueryEngine(
            manager,
            max_batch_size=config.query.max_batch_size,
            metrics=metrics,
        )
        names: list[str] = []
        delivered = engine.for_each_page(
            FOLDER_QUERY,
            lambda obj: names.append(obj["SI_NAME"]),
            batch_size=min(3, config.query.max_batch_size),
        )
        print(f"\n✓ Streamed {delivered} folders: {', '.join(names)}")

        folder = find_by_name(engine, "Folder 3", "Folder")
        print(f"  Lookup by name: {folder['SI_CUID'] if folder else None}")

        token = manager.issue_default_token(reuse_existing=True)
        print(f"\n✓ Issued default token {token.hint}")

        manager.release(release_token=False)
        cached = manager.issue_default_token(reuse_existing=True)
        session, index = manager.acquire_session(nodes, index, TokenCredential(cached.value))
        print(f"  Re-logged on with token to {session.node}")

        manager.release(release_token=True)
        print("✓ Logged off and released token")
    except BOEToolsError as e:
        print(f"\nError: {e}")
        return 1

    if config.observability.metrics_enabled:
        print("\n" + "-" * 60)
        print(metrics.export_prometheus())
    return 0


if __name__ == "__main__":
    sys.exit(main())
