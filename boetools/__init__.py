"""
BOE Administration Tooling

Session and query plumbing for scripts that administer a clustered
BusinessObjects Enterprise repository:
- Session Manager: Failover logon across cluster nodes, liveness probe,
  logon token issue, caching and release
- Query Engine: Raw, bounded, find-one and constant-memory paged
  streaming of repository objects
- Transport: Protocols for the repository client plus an in-memory
  repository for tests and demos

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from boetools.core.types import (
    Result,
    Ok,
    Err,
    AuthType,
    NodeList,
    LogonToken,
    ObjectBatch,
)
from boetools.core.errors import (
    BOEToolsError,
    AuthenticationFailed,
    NoActiveSession,
    QueryFailed,
    TransportError,
    ServerRejection,
    SessionExpired,
)
from boetools.core.config import BOEToolsConfig

from boetools.session import (
    PasswordCredential,
    TrustedCredential,
    TokenCredential,
    Session,
    SessionManager,
    acquire_with_rotation,
)
from boetools.query import QueryEngine
from boetools.transport import InMemoryRepository

__all__ = [
    "__version__",
    # Core
    "Result",
    "Ok",
    "Err",
    "AuthType",
    "NodeList",
    "LogonToken",
    "ObjectBatch",
    "BOEToolsConfig",
    # Errors
    "BOEToolsError",
    "AuthenticationFailed",
    "NoActiveSession",
    "QueryFailed",
    "TransportError",
    "ServerRejection",
    "SessionExpired",
    # Session
    "PasswordCredential",
    "TrustedCredential",
    "TokenCredential",
    "Session",
    "SessionManager",
    "acquire_with_rotation",
    # Query
    "QueryEngine",
    # Transport
    "InMemoryRepository",
]
