"""
Core Type Definitions for BOE Administration Tooling

Implements Result/Either monads for explicit error returns on the
internal fetch paths, plus the small value types shared by the session
and query layers.

Design Principles:
- Never use null for absence (use Optional or Result)
- Value types are immutable once validated
- Repository objects stay opaque: no schema is imposed on them
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Generic,
    Iterator,
    Literal,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


# =============================================================================
# RESULT MONAD
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries full error context for exhaustive handling.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIMESTAMP
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """
    Nanosecond timestamp used to stamp errors and tokens.
    """

    nanos: int

    @classmethod
    def now(cls) -> Timestamp:
        return cls(nanos=time.time_ns())

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


# =============================================================================
# AUTHENTICATION TYPES
# =============================================================================
class AuthType(Enum):
    """
    Authentication plugins understood by the repository.

    Values are the identifiers the server expects on a password logon.
    """

    ENTERPRISE = "secEnterprise"
    LDAP = "secLDAP"
    WINDOWS_AD = "secWinAD"

    @classmethod
    def parse(cls, value: str) -> Result[AuthType, str]:
        """Accept either the server identifier or the member name."""
        for member in cls:
            if value == member.value or value.upper() == member.name:
                return Ok(member)
        return Err(f"Unknown authentication type: {value!r}")


# =============================================================================
# CLUSTER NODE LIST
# =============================================================================
@dataclass(frozen=True, slots=True)
class NodeList:
    """
    Ordered, non-empty set of candidate cluster nodes for failover.

    Node identifiers are stripped of surrounding whitespace on
    construction. Immutable for the duration of a logon attempt.
    """

    nodes: tuple[str, ...]

    def __post_init__(self) -> None:
        cleaned = tuple(str(node).strip() for node in self.nodes)
        if not cleaned:
            raise ValueError("Node list must contain at least one node")
        for position, node in enumerate(cleaned):
            if not node:
                raise ValueError(f"Node at position {position} is empty")
        object.__setattr__(self, "nodes", cleaned)

    @classmethod
    def of(cls, nodes: Union[NodeList, str, Sequence[str]]) -> NodeList:
        """
        Coerce a sequence, a comma separated string, or an existing
        NodeList into a NodeList.
        """
        if isinstance(nodes, NodeList):
            return nodes
        if isinstance(nodes, str):
            return cls(nodes=tuple(part for part in nodes.split(",")))
        return cls(nodes=tuple(nodes))

    def normalize(self, index: int) -> int:
        """Map any integer (negative included) onto a valid position."""
        return index % len(self.nodes)

    def rotation(self, start_index: int) -> Iterator[tuple[int, str]]:
        """
        Yield (index, node) pairs circularly, starting at the normalized
        start index and visiting every node exactly once.
        """
        size = len(self.nodes)
        start = self.normalize(start_index)
        for offset in range(size):
            index = (start + offset) % size
            yield index, self.nodes[index]

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> str:
        return self.nodes[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)


# =============================================================================
# LOGON TOKEN
# =============================================================================
def token_hint(value: str) -> str:
    """
    Mask a token value down to its first and last four characters.

    Applying it to an existing hint returns the hint unchanged.
    """
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


@dataclass(frozen=True, slots=True)
class LogonToken:
    """
    Reusable, time and use limited credential derived from a live session.

    Expiry and remaining uses are enforced by the server; the limits
    requested at creation are kept here for reference only.
    """

    value: str = field(repr=False)
    valid_minutes: int
    valid_uses: int
    cached: bool = False
    issued_at: Timestamp = field(default_factory=Timestamp.now, compare=False)

    @property
    def hint(self) -> str:
        """Short, log-safe identifier for the token."""
        return token_hint(self.value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return (
            f"LogonToken({self.hint}, minutes={self.valid_minutes}, "
            f"uses={self.valid_uses}, cached={self.cached})"
        )


# =============================================================================
# OBJECT BATCH
# =============================================================================
RepositoryObject = Any


@dataclass(slots=True)
class ObjectBatch:
    """
    One page (or one unpaged result) of repository objects.

    Items keep the order the server returned them in. Owned by the
    caller once returned; the query engine keeps no reference.
    """

    items: list[RepositoryObject] = field(default_factory=list)
    page_index: Optional[int] = None

    @classmethod
    def empty(cls) -> ObjectBatch:
        return cls(items=[])

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    def first(self) -> Optional[RepositoryObject]:
        """First object, or None for an empty batch."""
        return self.items[0] if self.items else None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[RepositoryObject]:
        return iter(self.items)

    def __getitem__(self, index: int) -> RepositoryObject:
        return self.items[index]
