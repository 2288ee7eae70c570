"""
System-Wide Constants for BOE Administration Tooling

All magic numbers and configuration defaults centralized here.
"""

from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
MINUTES_PER_DAY: Final[int] = 24 * 60

# =============================================================================
# LOGON TOKENS
# =============================================================================
DEFAULT_TOKEN_VALID_MINUTES: Final[int] = MINUTES_PER_DAY
DEFAULT_TOKEN_VALID_USES: Final[int] = 10

# =============================================================================
# PAGINATION
# =============================================================================
DEFAULT_MAX_BATCH_SIZE: Final[int] = 1000

# Empty query: cheapest round trip the repository will answer, with a rejection.
LIVENESS_PROBE_QUERY: Final[str] = ""

# =============================================================================
# ENVIRONMENT
# =============================================================================
ENV_PREFIX: Final[str] = "BOETOOLS_"
ENV_MAX_BATCH: Final[str] = ENV_PREFIX + "MAX_BATCH"
ENV_CLUSTER_NODES: Final[str] = ENV_PREFIX + "CMS"

# =============================================================================
# NODE INDEX PERSISTENCE
# =============================================================================
DEFAULT_NODE_INDEX_PATH: Final[str] = "./.boetools/node_index"
DEFAULT_NODE_INDEX_KEY: Final[str] = "boetools:node_index"
