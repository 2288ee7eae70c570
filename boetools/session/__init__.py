"""
Session module: Failover logon, liveness and logon tokens.

Provides:
- SessionManager: Single-session owner with circular node failover
- Credential variants: Password, trusted and token logons
- Node index stores: Rotate the starting node across runs
"""

from boetools.session.credentials import (
    Credential,
    PasswordCredential,
    TrustedCredential,
    TokenCredential,
    logon,
)
from boetools.session.manager import Session, SessionManager
from boetools.session.node_index import (
    NodeIndexStore,
    FileNodeIndexStore,
    RedisNodeIndexStore,
    store_from_config,
    acquire_with_rotation,
)

__all__ = [
    # Credentials
    "Credential",
    "PasswordCredential",
    "TrustedCredential",
    "TokenCredential",
    "logon",
    # Manager
    "Session",
    "SessionManager",
    # Node index
    "NodeIndexStore",
    "FileNodeIndexStore",
    "RedisNodeIndexStore",
    "store_from_config",
    "acquire_with_rotation",
]
