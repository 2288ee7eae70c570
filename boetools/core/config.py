"""
Configuration Management for BOE Administration Tooling

Provides validated configuration with sensible defaults.
Values are read from BOETOOLS_* environment variables once, by the
owning process, and handed to components as plain values.

Design:
- Immutable after validation
- Fail-fast on invalid configuration (as a Result, not an exception)
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from boetools.core import constants as C
from boetools.core.types import AuthType, Err, Ok, Result

_COMMA_SEPARATED = re.compile(r"\s*,\s*")
_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = int(raw.strip())
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value}")
    return value


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class SessionConfig:
    """Logon and token defaults."""

    auth_type: AuthType = AuthType.ENTERPRISE
    default_token_minutes: int = C.DEFAULT_TOKEN_VALID_MINUTES
    default_token_uses: int = C.DEFAULT_TOKEN_VALID_USES


@dataclass(frozen=True)
class QueryConfig:
    """Query engine configuration."""

    max_batch_size: int = C.DEFAULT_MAX_BATCH_SIZE

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
    ) -> Result[QueryConfig, str]:
        """
        Load BOETOOLS_MAX_BATCH.

        A missing variable yields the default; an unparsable or
        non-positive one is an error.
        """
        env = os.environ if env is None else env
        try:
            return Ok(cls(
                max_batch_size=_env_int(env, C.ENV_MAX_BATCH, C.DEFAULT_MAX_BATCH_SIZE),
            ))
        except ValueError as e:
            return Err(f"Configuration error: {e}")


@dataclass(frozen=True)
class NodeIndexConfig:
    """Where the last successful node index is persisted between runs."""

    backend: str = "file"  # "file" or "redis"
    path: Path = field(default_factory=lambda: Path(C.DEFAULT_NODE_INDEX_PATH))
    redis_url: str = "redis://localhost:6379/0"
    key: str = C.DEFAULT_NODE_INDEX_KEY


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    metrics_enabled: bool = True


@dataclass(frozen=True)
class BOEToolsConfig:
    """Root configuration."""

    cluster_nodes: tuple[str, ...] = ()
    session: SessionConfig = field(default_factory=SessionConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    node_index: NodeIndexConfig = field(default_factory=NodeIndexConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
    ) -> Result[BOEToolsConfig, str]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with BOETOOLS_.
        Example: BOETOOLS_CMS="cms1:6400, cms2:6400", BOETOOLS_MAX_BATCH=500
        """
        env = os.environ if env is None else env

        query = QueryConfig.from_env(env)
        if query.is_err():
            return Err(query.error)

        auth = AuthType.parse(env.get("BOETOOLS_AUTH_TYPE", AuthType.ENTERPRISE.value))
        if auth.is_err():
            return Err(f"Configuration error: {auth.error}")

        raw_nodes = env.get(C.ENV_CLUSTER_NODES, "").strip()
        nodes = tuple(n for n in _COMMA_SEPARATED.split(raw_nodes) if n) if raw_nodes else ()

        try:
            session = SessionConfig(
                auth_type=auth.unwrap(),
                default_token_minutes=_env_int(
                    env, "BOETOOLS_TOKEN_MINUTES", C.DEFAULT_TOKEN_VALID_MINUTES,
                ),
                default_token_uses=_env_int(
                    env, "BOETOOLS_TOKEN_USES", C.DEFAULT_TOKEN_VALID_USES,
                ),
            )

            node_index = NodeIndexConfig(
                backend=env.get("BOETOOLS_NODE_INDEX_BACKEND", "file").strip().lower(),
                path=Path(env.get("BOETOOLS_NODE_INDEX_PATH", C.DEFAULT_NODE_INDEX_PATH)),
                redis_url=env.get("BOETOOLS_NODE_INDEX_REDIS_URL", "redis://localhost:6379/0"),
                key=env.get("BOETOOLS_NODE_INDEX_KEY", C.DEFAULT_NODE_INDEX_KEY),
            )

            observability = ObservabilityConfig(
                log_level=env.get("BOETOOLS_LOG_LEVEL", "INFO").strip().upper(),
                log_json=_env_bool(env, "BOETOOLS_LOG_JSON", True),
                metrics_enabled=_env_bool(env, "BOETOOLS_METRICS_ENABLED", True),
            )
        except ValueError as e:
            return Err(f"Configuration error: {e}")

        return Ok(cls(
            cluster_nodes=nodes,
            session=session,
            query=query.unwrap(),
            node_index=node_index,
            observability=observability,
        ))

    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if self.node_index.backend not in ("file", "redis"):
            return Err(f"Unknown node index backend: {self.node_index.backend!r}")
        if self.observability.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return Err(f"Unknown log level: {self.observability.log_level!r}")
        if self.query.max_batch_size < 1:
            return Err("max_batch_size must be >= 1")
        return Ok(None)
