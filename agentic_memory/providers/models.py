"""
Provider Models
===============

Value objects produced by DatabaseProviderFactory.

All of them are frozen: a DetectionResult is computed once at boot and handed
to every dependent as a read-only feature-flag source.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ProviderType(str, Enum):
    """Backend roles known to the factory."""
    VECTOR = "vector"
    GRAPH = "graph"


VECTOR_CAPABILITIES = ("vector_storage", "semantic_search", "embeddings")
GRAPH_CAPABILITIES = ("graph_storage", "relationship_queries", "graph_traversal")

CAPABILITIES = {
    ProviderType.VECTOR: VECTOR_CAPABILITIES,
    ProviderType.GRAPH: GRAPH_CAPABILITIES,
}


@dataclass(frozen=True)
class ProviderCapability:
    """
    Snapshot of one healthy backend.

    `store` is the adapter itself, excluded from equality and serialization.
    """
    type: ProviderType
    engine: str
    available: bool
    healthy: bool
    capabilities: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)
    store: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "engine": self.engine,
            "available": self.available,
            "healthy": self.healthy,
            "capabilities": list(self.capabilities),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ProviderStatus:
    """Diagnostic record, one per known backend type."""
    type: ProviderType
    engine: Optional[str]
    available: bool
    healthy: bool
    capabilities: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["capabilities"] = list(self.capabilities)
        return data


@dataclass(frozen=True)
class VectorProviderSettings:
    engine: str
    collection: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphProviderSettings:
    engine: str
    database: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MemoryProviderConfig:
    """
    Recommended backend configuration.

    A section is present only when its backend was healthy; absent backends
    are omitted (None), never stubbed as disabled.
    """
    vector: Optional[VectorProviderSettings] = None
    graph: Optional[GraphProviderSettings] = None
    custom: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.vector is not None:
            data["vector"] = asdict(self.vector)
        if self.graph is not None:
            data["graph"] = asdict(self.graph)
        if self.custom:
            data["custom"] = dict(self.custom)
        return data


@dataclass(frozen=True)
class ProviderPreferences:
    """Caller overrides for create_memory_config()."""
    collection: Optional[str] = None
    database: Optional[str] = None
    vector_metadata: Dict[str, Any] = field(default_factory=dict)
    graph_metadata: Dict[str, Any] = field(default_factory=dict)
    custom: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MemoryFeatures:
    semantic_search: bool = False
    graph_traversal: bool = False
    persistent_memory: bool = False
    cross_thread_memory: bool = False

    @classmethod
    def derive(cls, has_vector: bool, has_graph: bool) -> "MemoryFeatures":
        return cls(
            semantic_search=has_vector,
            graph_traversal=has_graph,
            persistent_memory=has_vector or has_graph,
            cross_thread_memory=has_vector and has_graph,
        )

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class DetectionResult:
    """Capability snapshot computed once per process."""
    has_providers: bool
    vector_providers: Tuple[ProviderCapability, ...] = ()
    graph_providers: Tuple[ProviderCapability, ...] = ()
    recommended_config: Optional[MemoryProviderConfig] = None
    features: MemoryFeatures = field(default_factory=MemoryFeatures)

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls(has_providers=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_providers": self.has_providers,
            "vector_providers": [p.to_dict() for p in self.vector_providers],
            "graph_providers": [p.to_dict() for p in self.graph_providers],
            "recommended_config": (
                self.recommended_config.to_dict() if self.recommended_config else None
            ),
            "features": self.features.to_dict(),
        }
