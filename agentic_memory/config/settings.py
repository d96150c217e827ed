"""
Memory Settings
===============

Configuration for the memory orchestrator, retention sweeps and health
derivation.

Every field can be overridden by an environment variable; a YAML file can
also be loaded with MemoryConfig.from_yaml().

Environment Variables:
    AGENTIC_MEMORY_COLLECTION: Vector collection name (default: agent_memory)
    AGENTIC_MEMORY_GRAPH: Graph name (default: agent_memory)
    AGENTIC_MEMORY_EMBEDDING_DIM: Embedding dimension (default: 1024)
    AGENTIC_MEMORY_SEARCH_LIMIT: Default search limit (default: 10)
    AGENTIC_MEMORY_MAX_SCAN: Ceiling for bulk reads (default: 10000)
    AGENTIC_MEMORY_TRACK_ACCESS: Update access bookkeeping on reads (default: true)
    AGENTIC_MEMORY_HEALTH_ERROR_RATE: Degraded above this error rate (default: 0.05)
    AGENTIC_MEMORY_HEALTH_LATENCY_MS: Degraded above this avg latency (default: 5000)

YAML layout:
    collection: agent_memory
    graph_name: agent_memory
    retention:
      max_per_thread: 200
      eviction_strategy: lru
    health:
      error_rate: 0.05
      latency_ms: 5000
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from agentic_memory.config.env import (
    get_env_bool,
    get_env_float,
    get_env_int,
    get_env_str,
)
from agentic_memory.config.environments import EnvironmentConfig
from agentic_memory.errors import MemoryConfigurationError, MemoryErrorContext


class EvictionStrategy(str, Enum):
    LRU = "lru"
    LFU = "lfu"
    FIFO = "fifo"
    IMPORTANCE = "importance"


class ImportanceStrategy(str, Enum):
    KEEP_ABOVE = "keep_above"
    KEEP_TOP_N = "keep_top_n"


def _config_error(message: str, **metadata: Any) -> MemoryConfigurationError:
    return MemoryConfigurationError(
        message, MemoryErrorContext(operation="configure", metadata=metadata)
    )


@dataclass
class RetentionPolicy:
    """
    Retention rules applied by cleanup().

    Attributes:
        max_age_seconds: Entries older than this are evicted
        max_per_thread: Keep at most N entries per thread
        max_total: Keep at most N entries overall
        cleanup_interval_seconds: Period of the background sweep (None = off)
        eviction_strategy: Ordering used to pick what goes when a limit is hit
        importance_strategy: With eviction_strategy=importance, either drop
                             entries below importance_threshold (keep_above) or
                             keep only the importance_top_n best (keep_top_n)
        importance_threshold: Threshold for keep_above
        importance_top_n: N for keep_top_n

    Persistent entries are never evicted, whatever the rule.
    """
    max_age_seconds: Optional[float] = None
    max_per_thread: Optional[int] = None
    max_total: Optional[int] = None
    cleanup_interval_seconds: Optional[float] = None
    eviction_strategy: EvictionStrategy = EvictionStrategy.LRU
    importance_strategy: Optional[ImportanceStrategy] = None
    importance_threshold: Optional[float] = None
    importance_top_n: Optional[int] = None

    def __post_init__(self):
        try:
            self.eviction_strategy = EvictionStrategy(self.eviction_strategy)
            if self.importance_strategy is not None:
                self.importance_strategy = ImportanceStrategy(self.importance_strategy)
        except ValueError as e:
            raise _config_error(str(e)) from e

        for name in ("max_age_seconds", "max_per_thread", "max_total", "cleanup_interval_seconds"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise _config_error(f"{name} must be > 0, got {value}", field=name)

        if self.importance_strategy == ImportanceStrategy.KEEP_ABOVE:
            if self.importance_threshold is None or not 0 <= self.importance_threshold <= 1:
                raise _config_error(
                    f"importance_threshold must be in [0, 1], got {self.importance_threshold}",
                    field="importance_threshold",
                )
        if self.importance_strategy == ImportanceStrategy.KEEP_TOP_N:
            if self.importance_top_n is None or self.importance_top_n < 0:
                raise _config_error(
                    f"importance_top_n must be >= 0, got {self.importance_top_n}",
                    field="importance_top_n",
                )

    @classmethod
    def keep_top(cls, n: int) -> "RetentionPolicy":
        """Keep only the n most important entries."""
        return cls(
            eviction_strategy=EvictionStrategy.IMPORTANCE,
            importance_strategy=ImportanceStrategy.KEEP_TOP_N,
            importance_top_n=n,
        )

    @classmethod
    def keep_above(cls, threshold: float) -> "RetentionPolicy":
        """Drop entries whose importance is below threshold."""
        return cls(
            eviction_strategy=EvictionStrategy.IMPORTANCE,
            importance_strategy=ImportanceStrategy.KEEP_ABOVE,
            importance_threshold=threshold,
        )


@dataclass
class HealthThresholds:
    """
    Thresholds for the derived health status.

    healthy   : error rate and avg latency within thresholds
    degraded  : either above its threshold
    unhealthy : either above twice its threshold
    """
    error_rate: float = field(
        default_factory=lambda: get_env_float("AGENTIC_MEMORY_HEALTH_ERROR_RATE", 0.05)
    )
    latency_ms: float = field(
        default_factory=lambda: get_env_float("AGENTIC_MEMORY_HEALTH_LATENCY_MS", 5000.0)
    )
    slow_operation_ms: float = 2000.0

    def __post_init__(self):
        if not 0 <= self.error_rate <= 1:
            raise _config_error(f"error_rate must be in [0, 1], got {self.error_rate}")
        if self.latency_ms <= 0:
            raise _config_error(f"latency_ms must be > 0, got {self.latency_ms}")


@dataclass
class MemoryConfig:
    """
    Top-level configuration for the memory subsystem.

    Attributes:
        collection: Vector collection holding memory entries
        graph_name: Graph holding the derived relationships
        embedding_dimension: Vector size used when creating the collection
        default_search_limit: Limit used by search_for_context()
        max_scan: Ceiling for newest-first listings (retrieve, user patterns,
                  flow); cleanup and stats read the whole collection
        track_access: Bump access bookkeeping on retrieve()/search()
        importance_link_threshold: Importance above which same-thread entries
                                   get an important-with edge
        retention: RetentionPolicy for cleanup()
        health: HealthThresholds for the stats collector
    """
    collection: str = field(
        default_factory=lambda: get_env_str("AGENTIC_MEMORY_COLLECTION", "agent_memory")
    )
    graph_name: str = field(
        default_factory=lambda: get_env_str("AGENTIC_MEMORY_GRAPH", "agent_memory")
    )
    embedding_dimension: int = field(
        default_factory=lambda: get_env_int("AGENTIC_MEMORY_EMBEDDING_DIM", 1024)
    )
    default_search_limit: int = field(
        default_factory=lambda: get_env_int("AGENTIC_MEMORY_SEARCH_LIMIT", 10)
    )
    max_scan: int = field(
        default_factory=lambda: get_env_int("AGENTIC_MEMORY_MAX_SCAN", 10000)
    )
    track_access: bool = field(
        default_factory=lambda: get_env_bool("AGENTIC_MEMORY_TRACK_ACCESS", True)
    )
    importance_link_threshold: float = 0.7
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    health: HealthThresholds = field(default_factory=HealthThresholds)

    def __post_init__(self):
        if not self.collection:
            raise _config_error("collection must not be empty")
        if self.embedding_dimension < 1:
            raise _config_error(
                f"embedding_dimension must be >= 1, got {self.embedding_dimension}"
            )
        if self.default_search_limit < 1:
            raise _config_error(
                f"default_search_limit must be >= 1, got {self.default_search_limit}"
            )
        if not 0 <= self.importance_link_threshold <= 1:
            raise _config_error(
                f"importance_link_threshold must be in [0, 1], got {self.importance_link_threshold}"
            )
        if isinstance(self.retention, dict):
            self.retention = RetentionPolicy(**self.retention)
        if isinstance(self.health, dict):
            self.health = HealthThresholds(**self.health)

    @classmethod
    def from_environment(cls, env_config: EnvironmentConfig, **overrides: Any) -> "MemoryConfig":
        """
        Build a config bound to an environment's collection/graph names.

        Example:
            >>> from agentic_memory.config import get_current_environment
            >>> config = MemoryConfig.from_environment(get_current_environment())
        """
        return cls(
            collection=env_config.qdrant_collection,
            graph_name=env_config.falkordb_graph,
            **overrides,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise _config_error(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MemoryConfig":
        """Load a config from a YAML file (see module docstring for layout)."""
        config_path = Path(path)
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise _config_error(f"Config file not found: {config_path}", path=str(config_path)) from e
        except yaml.YAMLError as e:
            raise _config_error(f"Invalid YAML in {config_path}: {e}", path=str(config_path)) from e

        if not isinstance(data, dict):
            raise _config_error(f"Config root must be a mapping: {config_path}")
        return cls.from_dict(data)
