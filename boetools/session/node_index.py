"""
Node Index Persistence: Spread Logons Across Runs

Short-lived tools that always start failover at node 0 pile every
session onto the first node. Persisting the index of the last node that
accepted a logon lets the next run start one past it.

Backends:
    FileNodeIndexStore  - plain text integer in a local file
    RedisNodeIndexStore - single key in Redis, shared between hosts

Both return Result values; a store failure never prevents a logon.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

import redis

from boetools.core.config import NodeIndexConfig
from boetools.core.types import Err, NodeList, Ok, Result
from boetools.session.credentials import Credential
from boetools.session.manager import Session, SessionManager

logger = logging.getLogger(__name__)


@runtime_checkable
class NodeIndexStore(Protocol):
    """Persists the index of the last node that accepted a logon."""

    def load(self) -> Result[int, str]:
        """Stored index, or 0 when nothing has been stored yet."""
        ...

    def save(self, index: int) -> Result[None, str]:
        ...


def _parse_index(raw: Union[str, bytes, None], source: str) -> Result[int, str]:
    if raw is None:
        return Ok(0)
    try:
        text = raw.decode("ascii") if isinstance(raw, bytes) else raw
    except UnicodeDecodeError:
        return Err(f"Corrupt node index in {source}: {raw[:20]!r}")
    text = text.strip()
    if not text:
        return Ok(0)
    try:
        return Ok(int(text))
    except ValueError:
        return Err(f"Corrupt node index in {source}: {text[:20]!r}")


# =============================================================================
# FILE BACKEND
# =============================================================================
class FileNodeIndexStore:
    """Node index kept as a decimal integer in a text file."""

    __slots__ = ("_path",)

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Result[int, str]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return Ok(0)
        except OSError as e:
            return Err(f"Failed to read node index {self._path}: {e}")
        return _parse_index(raw, str(self._path))

    def save(self, index: int) -> Result[None, str]:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(f"{index}\n", encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            return Err(f"Failed to write node index {self._path}: {e}")
        return Ok(None)


# =============================================================================
# REDIS BACKEND
# =============================================================================
class RedisNodeIndexStore:
    """
    Node index kept under one Redis key.

    Example:
        >>> store = RedisNodeIndexStore.from_url("redis://localhost:6379/0")
        >>> store.save(2)
    """

    __slots__ = ("_client", "_key")

    def __init__(self, client: redis.Redis, key: str) -> None:
        self._client = client
        self._key = key

    @classmethod
    def from_url(cls, url: str, key: str) -> RedisNodeIndexStore:
        return cls(redis.Redis.from_url(url), key)

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> Result[int, str]:
        try:
            raw = self._client.get(self._key)
        except redis.RedisError as e:
            return Err(f"Redis error: {e}")
        return _parse_index(raw, f"redis key {self._key}")

    def save(self, index: int) -> Result[None, str]:
        try:
            self._client.set(self._key, str(index))
        except redis.RedisError as e:
            return Err(f"Redis error: {e}")
        return Ok(None)


def store_from_config(config: NodeIndexConfig) -> NodeIndexStore:
    """Build the store selected by ``config.backend``."""
    if config.backend == "redis":
        return RedisNodeIndexStore.from_url(config.redis_url, config.key)
    if config.backend == "file":
        return FileNodeIndexStore(config.path)
    raise ValueError(f"Unknown node index backend: {config.backend!r}")


def acquire_with_rotation(
    manager: SessionManager,
    nodes: Union[NodeList, str, Sequence[str]],
    credential: Credential,
    store: Optional[NodeIndexStore],
) -> tuple[Session, int]:
    """
    Acquire a session starting one past the last stored node index, then
    store the index of the node that accepted the logon.

    Load and save failures are logged; they never fail the logon.
    AuthenticationFailed from the manager propagates.
    """
    start = 0
    if store is not None:
        loaded = store.load()
        if loaded.is_ok():
            start = loaded.unwrap() + 1
        else:
            logger.warning("Could not load node index, starting at 0: %s", loaded.error)

    session, index = manager.acquire_session(nodes, start, credential)

    if store is not None:
        saved = store.save(index)
        if saved.is_err():
            logger.warning("Could not save node index %d: %s", index, saved.error)

    return session, index
