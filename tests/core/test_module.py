"""
Tests for MemoryModule wiring: optional backends, one-shot detection,
in-memory fallback and shutdown.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from agentic_memory.config import MemoryConfig
from agentic_memory.core import MemoryModule, MemoryOrchestrator
from agentic_memory.errors import BackendUnavailableError
from agentic_memory.providers import ProviderType
from agentic_memory.storage.interfaces import GraphResult
from agentic_memory.storage.vectors import InMemoryVectorStore


@pytest.fixture
def offline_config():
    return MemoryConfig(collection="module_test", graph_name="module_test")


def _offline_module(config, **kwargs):
    kwargs.setdefault("use_qdrant", False)
    kwargs.setdefault("use_falkordb", False)
    return MemoryModule(config, use_embeddings=False, **kwargs)


class TestMemoryModule:

    def test_detection_empty_before_start(self, offline_config):
        module = _offline_module(offline_config)

        assert module.started is False
        assert module.detection.has_providers is False

    @pytest.mark.asyncio
    async def test_no_backends_disables_orchestrator(self, offline_config):
        module = _offline_module(offline_config)

        detection = await module.start()

        assert detection.has_providers is False
        assert detection.features.persistent_memory is False
        with pytest.raises(BackendUnavailableError):
            module.orchestrator
        await module.close()

    @pytest.mark.asyncio
    async def test_inmemory_fallback(self, offline_config):
        module = _offline_module(offline_config, inmemory_fallback=True)

        async with module:
            orchestrator = module.orchestrator
            assert isinstance(orchestrator, MemoryOrchestrator)
            assert isinstance(orchestrator.storage.vector_store, InMemoryVectorStore)
            assert orchestrator.detection is module.detection

            entry = await orchestrator.store("t1", "hello")
            assert entry.content == "hello"

        assert module.started is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, offline_config):
        module = _offline_module(offline_config, inmemory_fallback=True)

        first = await module.start()
        second = await module.start()

        assert first is second
        await module.close()

    @pytest.mark.asyncio
    async def test_falkordb_connection_failure_leaves_graph_absent(self, offline_config):
        client = MagicMock()
        client.connect = AsyncMock(side_effect=ConnectionError("refused"))

        with patch("agentic_memory.core.module.FalkorDBClient", return_value=client):
            module = _offline_module(offline_config, use_falkordb=True, inmemory_fallback=True)
            detection = await module.start()

        assert detection.graph_providers == ()
        assert module.orchestrator.graph.is_available() is False
        await module.close()

    @pytest.mark.asyncio
    async def test_healthy_falkordb_enables_graph(self, offline_config, mock_falkordb):
        mock_falkordb.execute = AsyncMock(return_value=GraphResult())

        with patch("agentic_memory.core.module.FalkorDBClient", return_value=mock_falkordb):
            module = _offline_module(offline_config, use_falkordb=True, inmemory_fallback=True)
            detection = await module.start()

        assert detection.features.graph_traversal is True
        assert detection.features.semantic_search is False
        assert module.orchestrator.graph.is_available() is True

        await module.close()
        mock_falkordb.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_providers_status_before_and_after_start(self, offline_config):
        module = _offline_module(offline_config)

        before = await module.get_providers_status()
        await module.start()
        after = await module.get_providers_status()

        assert [s.type for s in before] == [ProviderType.VECTOR, ProviderType.GRAPH]
        assert [s.type for s in after] == [ProviderType.VECTOR, ProviderType.GRAPH]
        assert all(not s.available and s.error for s in after)
        await module.close()

    @pytest.mark.asyncio
    async def test_scheduler_started_with_interval(self):
        config = MemoryConfig(collection="scheduled", retention={"cleanup_interval_seconds": 3600})
        module = _offline_module(config, inmemory_fallback=True)

        await module.start()
        assert module.scheduler is not None and module.scheduler.running

        await module.close()
        assert module.scheduler is None
