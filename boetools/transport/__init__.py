"""
Transport module: Repository client interfaces and the in-memory backend.
"""

from boetools.transport.protocols import (
    PageDescriptor,
    PagedQueryHandle,
    TransportSession,
    TransportClient,
)
from boetools.transport.memory import InMemoryRepository, InMemorySession

__all__ = [
    "PageDescriptor",
    "PagedQueryHandle",
    "TransportSession",
    "TransportClient",
    "InMemoryRepository",
    "InMemorySession",
]
