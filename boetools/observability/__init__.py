"""
Observability module: In-process metrics and structured logging.
"""

from boetools.observability.metrics import MetricsCollector, Counter, Gauge, Histogram
from boetools.observability.logging import (
    StructuredLogger,
    LogLevel,
    log_context,
    setup_logging,
)

__all__ = [
    "MetricsCollector",
    "Counter",
    "Gauge",
    "Histogram",
    "StructuredLogger",
    "LogLevel",
    "log_context",
    "setup_logging",
]
