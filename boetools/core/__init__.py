"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions shared by the
session and query layers:
- Result/Either monads for explicit error returns
- Error hierarchy with codes, causes and log-safe context
- Configuration management with validation
"""

from boetools.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
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
    TokenReleaseFailed,
    TransportError,
    ServerRejection,
    SessionExpired,
    RejectionKind,
)
from boetools.core.config import BOEToolsConfig, QueryConfig, SessionConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "AuthType",
    "NodeList",
    "LogonToken",
    "ObjectBatch",
    "BOEToolsError",
    "AuthenticationFailed",
    "NoActiveSession",
    "QueryFailed",
    "TokenReleaseFailed",
    "TransportError",
    "ServerRejection",
    "SessionExpired",
    "RejectionKind",
    "BOEToolsConfig",
    "QueryConfig",
    "SessionConfig",
]
