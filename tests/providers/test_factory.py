"""
Tests for DatabaseProviderFactory

- health gating of lookups
- one status record per backend type, never raising
- recommended config sections only for healthy backends
- derived feature flags
"""

import pytest
from unittest.mock import AsyncMock

from agentic_memory.providers import (
    DatabaseProviderFactory,
    MemoryFeatures,
    ProviderPreferences,
    ProviderType,
)
from agentic_memory.storage.graph import FalkorDBGraphAdapter
from agentic_memory.storage.vectors import InMemoryVectorStore, QdrantVectorAdapter

from conftest import FailingGraphStore, RecordingGraphStore


class ExplodingVectorStore(InMemoryVectorStore):
    provider_name = "exploding"

    async def health_check(self) -> bool:
        raise RuntimeError("health check crashed")


class TestDetection:

    @pytest.mark.asyncio
    async def test_vector_only(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore(), FalkorDBGraphAdapter(None))

        result = await factory.detect_memory_capabilities()

        assert result.has_providers is True
        assert result.features == MemoryFeatures(
            semantic_search=True,
            graph_traversal=False,
            persistent_memory=True,
            cross_thread_memory=False,
        )
        assert result.recommended_config.vector.collection == "agent_memory"
        assert result.recommended_config.graph is None

    @pytest.mark.asyncio
    async def test_graph_only(self):
        factory = DatabaseProviderFactory(None, RecordingGraphStore())

        result = await factory.detect_memory_capabilities()

        assert result.features.semantic_search is False
        assert result.features.graph_traversal is True
        assert result.features.persistent_memory is True
        assert result.features.cross_thread_memory is False

    @pytest.mark.asyncio
    async def test_both_backends(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore(), RecordingGraphStore())

        result = await factory.detect_memory_capabilities()

        assert result.features.cross_thread_memory is True
        assert [p.engine for p in result.vector_providers] == ["inmemory"]
        assert [p.engine for p in result.graph_providers] == ["recording"]

    @pytest.mark.asyncio
    async def test_no_backends(self):
        factory = DatabaseProviderFactory(QdrantVectorAdapter(None), FalkorDBGraphAdapter(None))

        result = await factory.detect_memory_capabilities()

        assert result.has_providers is False
        assert result.recommended_config is None
        assert result.features == MemoryFeatures()

    @pytest.mark.asyncio
    async def test_detection_result_is_frozen(self):
        result = await DatabaseProviderFactory().detect_memory_capabilities()

        with pytest.raises(AttributeError):
            result.has_providers = True

    @pytest.mark.asyncio
    async def test_failing_health_check_excludes_only_that_backend(self):
        factory = DatabaseProviderFactory(ExplodingVectorStore(), RecordingGraphStore())

        providers = await factory.get_available_providers()

        assert [p.type for p in providers] == [ProviderType.GRAPH]

    @pytest.mark.asyncio
    async def test_config_agrees_with_features_when_health_flips(self):
        vector = InMemoryVectorStore()
        vector.health_check = AsyncMock(side_effect=[True, False])
        graph = RecordingGraphStore()
        graph.health_check = AsyncMock(side_effect=[False, True])
        factory = DatabaseProviderFactory(vector, graph)

        result = await factory.detect_memory_capabilities()

        assert vector.health_check.await_count == 1
        assert graph.health_check.await_count == 1
        assert result.features.semantic_search is True
        assert result.features.graph_traversal is False
        assert result.recommended_config.vector is not None
        assert result.recommended_config.graph is None


class TestLookups:

    @pytest.mark.asyncio
    async def test_get_provider_by_string(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore())

        provider = await factory.get_provider("vector")

        assert provider.type == ProviderType.VECTOR
        assert "semantic_search" in provider.capabilities
        assert await factory.is_provider_available(ProviderType.GRAPH) is False

    @pytest.mark.asyncio
    async def test_unknown_type(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore())

        assert await factory.get_provider("relational") is None

    @pytest.mark.asyncio
    async def test_unhealthy_backend_not_available(self):
        factory = DatabaseProviderFactory(None, FailingGraphStore())

        assert await factory.is_provider_available(ProviderType.GRAPH) is False


class TestProvidersStatus:

    @pytest.mark.asyncio
    async def test_one_record_per_type_when_absent(self):
        statuses = await DatabaseProviderFactory().get_providers_status()

        assert [s.type for s in statuses] == [ProviderType.VECTOR, ProviderType.GRAPH]
        assert all(s.available is False for s in statuses)
        assert statuses[0].error == "vector backend not configured"
        assert statuses[1].error == "graph backend not configured"

    @pytest.mark.asyncio
    async def test_unbound_adapter_reported_absent(self):
        factory = DatabaseProviderFactory(QdrantVectorAdapter(None), FalkorDBGraphAdapter(None))

        statuses = await factory.get_providers_status()

        assert [s.engine for s in statuses] == ["qdrant", "falkordb"]
        assert all(not s.available and s.error for s in statuses)

    @pytest.mark.asyncio
    async def test_mixed_health(self):
        factory = DatabaseProviderFactory(ExplodingVectorStore(), FailingGraphStore())

        vector, graph = await factory.get_providers_status()

        assert vector.available is False
        assert vector.error == "health check crashed"
        assert graph.available is True
        assert graph.healthy is False
        assert graph.error == "failing health check failed"

    @pytest.mark.asyncio
    async def test_healthy_backends_report_capabilities(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore(), RecordingGraphStore())

        statuses = await factory.get_providers_status()

        assert all(s.healthy and s.error is None for s in statuses)
        assert "graph_traversal" in statuses[1].capabilities
        assert statuses[1].to_dict()["type"] == "graph"


class TestMemoryConfig:

    @pytest.mark.asyncio
    async def test_preferences_override_names(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore(), RecordingGraphStore())

        config = await factory.create_memory_config(ProviderPreferences(
            collection="custom_collection",
            database="custom_graph",
            custom={"team": "support"},
        ))

        assert config.vector.collection == "custom_collection"
        assert config.graph.database == "custom_graph"
        assert config.to_dict()["custom"] == {"team": "support"}

    @pytest.mark.asyncio
    async def test_missing_backend_section_omitted(self):
        factory = DatabaseProviderFactory(InMemoryVectorStore(), FailingGraphStore())

        config = await factory.create_memory_config()

        assert config.graph is None
        assert "graph" not in config.to_dict()

    @pytest.mark.asyncio
    async def test_health_check_is_awaited_per_lookup(self):
        store = InMemoryVectorStore()
        store.health_check = AsyncMock(return_value=True)
        factory = DatabaseProviderFactory(store)

        await factory.is_provider_available(ProviderType.VECTOR)
        await factory.is_provider_available(ProviderType.VECTOR)

        assert store.health_check.await_count == 2
