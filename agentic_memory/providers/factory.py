"""
Database Provider Factory
=========================

Enumerates the memory backends, health-checks each and classifies them into
capability sets.

Detection never raises: a backend that is absent, unhealthy or whose health
check throws is simply excluded, which narrows the feature flags.

Usage:
    factory = DatabaseProviderFactory(vector_store=qdrant_adapter, graph_store=falkordb_adapter)

    detection = await factory.detect_memory_capabilities()
    if detection.features.semantic_search:
        ...

    for status in await factory.get_providers_status():
        print(status.type, status.healthy, status.error)
"""

from typing import Dict, List, Optional, Set, Union

import structlog

from agentic_memory.errors import extract_error_message
from agentic_memory.providers.models import (
    CAPABILITIES,
    DetectionResult,
    GraphProviderSettings,
    MemoryFeatures,
    MemoryProviderConfig,
    ProviderCapability,
    ProviderPreferences,
    ProviderStatus,
    ProviderType,
    VectorProviderSettings,
)
from agentic_memory.storage.interfaces import GraphStore, VectorStore

log = structlog.get_logger()

DEFAULT_COLLECTION = "agent_memory"
DEFAULT_DATABASE = "agent_memory"


class DatabaseProviderFactory:
    """
    Capability detection over the optional vector and graph backends.

    Args:
        vector_store: VectorStore adapter, or None when not configured
        graph_store: GraphStore adapter, or None when not configured
        default_collection: Collection name used when no preference is given
        default_database: Graph name used when no preference is given
    """

    known_types = (ProviderType.VECTOR, ProviderType.GRAPH)

    def __init__(
        self,
        vector_store: Optional[VectorStore] = None,
        graph_store: Optional[GraphStore] = None,
        default_collection: str = DEFAULT_COLLECTION,
        default_database: str = DEFAULT_DATABASE,
    ):
        self._stores: Dict[ProviderType, Optional[Union[VectorStore, GraphStore]]] = {
            ProviderType.VECTOR: vector_store,
            ProviderType.GRAPH: graph_store,
        }
        self.default_collection = default_collection
        self.default_database = default_database

        log.info(
            "DatabaseProviderFactory initialized",
            vector=self._engine(ProviderType.VECTOR) if self._bound(ProviderType.VECTOR) else None,
            graph=self._engine(ProviderType.GRAPH) if self._bound(ProviderType.GRAPH) else None,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_type(provider_type: Union[ProviderType, str]) -> Optional[ProviderType]:
        try:
            return ProviderType(provider_type)
        except ValueError:
            log.warning("Unknown provider type", provider_type=str(provider_type))
            return None

    def _bound(self, provider_type: ProviderType) -> bool:
        store = self._stores.get(provider_type)
        if store is None:
            return False
        try:
            return bool(store.is_available())
        except Exception as e:
            log.warning("Availability check failed", provider_type=provider_type.value, error=str(e))
            return False

    def _engine(self, provider_type: ProviderType) -> Optional[str]:
        store = self._stores.get(provider_type)
        return getattr(store, "provider_name", None) if store is not None else None

    async def _is_healthy(self, provider_type: ProviderType) -> bool:
        """Health gate shared by every lookup. Exceptions count as unhealthy."""
        if not self._bound(provider_type):
            return False
        try:
            healthy = await self._stores[provider_type].health_check()
        except Exception as e:
            log.warning(
                "Provider health check failed",
                provider_type=provider_type.value,
                engine=self._engine(provider_type),
                error=str(e),
            )
            return False
        if not healthy:
            log.warning(
                "Provider detected but not healthy",
                provider_type=provider_type.value,
                engine=self._engine(provider_type),
            )
        return bool(healthy)

    def _capability(self, provider_type: ProviderType) -> ProviderCapability:
        return ProviderCapability(
            type=provider_type,
            engine=self._engine(provider_type),
            available=True,
            healthy=True,
            capabilities=CAPABILITIES[provider_type],
            metadata={"engine": self._engine(provider_type)},
            store=self._stores[provider_type],
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_available_providers(self) -> List[ProviderCapability]:
        """Healthy providers only, in known-type order."""
        providers = []
        for provider_type in self.known_types:
            if await self._is_healthy(provider_type):
                providers.append(self._capability(provider_type))

        if not providers:
            log.warning("No database providers available - memory runs in degraded mode")
        else:
            log.info(f"Found {len(providers)} available database provider(s)")
        return providers

    async def get_provider(self, provider_type: Union[ProviderType, str]) -> Optional[ProviderCapability]:
        resolved = self._coerce_type(provider_type)
        if resolved is None:
            return None
        if await self._is_healthy(resolved):
            return self._capability(resolved)
        return None

    async def is_provider_available(self, provider_type: Union[ProviderType, str]) -> bool:
        return await self.get_provider(provider_type) is not None

    async def get_providers_status(self) -> List[ProviderStatus]:
        """
        One status record per known backend type. Never raises.

        Absent backends report available=False with an error description.
        """
        statuses = []
        for provider_type in self.known_types:
            engine = self._engine(provider_type)
            if not self._bound(provider_type):
                statuses.append(ProviderStatus(
                    type=provider_type,
                    engine=engine,
                    available=False,
                    healthy=False,
                    error=f"{provider_type.value} backend not configured",
                ))
                continue

            try:
                healthy = bool(await self._stores[provider_type].health_check())
            except Exception as e:
                statuses.append(ProviderStatus(
                    type=provider_type,
                    engine=engine,
                    available=False,
                    healthy=False,
                    error=extract_error_message(e),
                ))
                continue

            statuses.append(ProviderStatus(
                type=provider_type,
                engine=engine,
                available=True,
                healthy=healthy,
                capabilities=CAPABILITIES[provider_type],
                metadata={"engine": engine},
                error=None if healthy else f"{engine} health check failed",
            ))
        return statuses

    # ------------------------------------------------------------------
    # Configuration and detection
    # ------------------------------------------------------------------

    async def create_memory_config(
        self, preferences: Optional[ProviderPreferences] = None
    ) -> MemoryProviderConfig:
        """Populate a section only for backends that are healthy right now."""
        healthy = {provider.type for provider in await self.get_available_providers()}
        return self._build_config(healthy, preferences)

    def _build_config(
        self, healthy: Set[ProviderType], preferences: Optional[ProviderPreferences]
    ) -> MemoryProviderConfig:
        preferences = preferences or ProviderPreferences()

        vector = None
        if ProviderType.VECTOR in healthy:
            vector = VectorProviderSettings(
                engine=self._engine(ProviderType.VECTOR),
                collection=preferences.collection or self.default_collection,
                metadata=dict(preferences.vector_metadata),
            )

        graph = None
        if ProviderType.GRAPH in healthy:
            graph = GraphProviderSettings(
                engine=self._engine(ProviderType.GRAPH),
                database=preferences.database or self.default_database,
                metadata=dict(preferences.graph_metadata),
            )

        return MemoryProviderConfig(vector=vector, graph=graph, custom=dict(preferences.custom))

    async def detect_memory_capabilities(
        self, preferences: Optional[ProviderPreferences] = None
    ) -> DetectionResult:
        providers = await self.get_available_providers()

        vector_providers = tuple(p for p in providers if p.type == ProviderType.VECTOR)
        graph_providers = tuple(p for p in providers if p.type == ProviderType.GRAPH)
        has_providers = bool(providers)

        result = DetectionResult(
            has_providers=has_providers,
            vector_providers=vector_providers,
            graph_providers=graph_providers,
            recommended_config=(
                self._build_config({p.type for p in providers}, preferences) if has_providers else None
            ),
            features=MemoryFeatures.derive(bool(vector_providers), bool(graph_providers)),
        )

        log.info("Memory capabilities detected", **result.features.to_dict())
        return result
