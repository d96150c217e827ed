"""
agentic_memory Test Configuration
=================================

Shared fixtures for all tests.
"""

import pytest
import pytest_asyncio
from typing import Any, List, Mapping, Optional, Tuple

from agentic_memory.storage.interfaces import (
    GraphCounters,
    GraphResult,
    GraphStore,
    GraphTransaction,
)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: needs live Qdrant/FalkorDB services (skipped when unreachable)"
    )


# ============================================================================
# Graph store doubles
# ============================================================================

class RecordingTransaction(GraphTransaction):
    def __init__(self, store: "RecordingGraphStore"):
        self.store = store
        self.committed = False
        self.rolled_back = False

    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> GraphResult:
        return await self.store.run(query, params)

    async def commit(self) -> None:
        self.committed = True
        self.store.commits += 1

    async def rollback(self) -> None:
        self.rolled_back = True
        self.store.rollbacks += 1


class RecordingGraphStore(GraphStore):
    """GraphStore double recording every (query, params) pair."""

    provider_name = "recording"

    def __init__(self, results: Optional[Mapping[str, GraphResult]] = None):
        self.calls: List[Tuple[str, dict]] = []
        self.commits = 0
        self.rollbacks = 0
        self._results = dict(results or {})

    def is_available(self) -> bool:
        return True

    async def health_check(self) -> bool:
        return True

    async def verify_connectivity(self) -> None:
        return None

    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None, read_only: bool = False) -> GraphResult:
        self.calls.append((query, dict(params or {})))
        return self._results.get(query, GraphResult(counters=GraphCounters()))

    async def begin_transaction(self, read_only: bool = False) -> GraphTransaction:
        return RecordingTransaction(self)

    def queries(self, statement: str) -> List[dict]:
        """Params of every call that ran `statement`."""
        return [params for query, params in self.calls if query == statement]


class FailingGraphStore(GraphStore):
    """GraphStore double whose every call raises."""

    provider_name = "failing"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or ConnectionError("graph connection refused")
        self.attempts = 0

    def is_available(self) -> bool:
        return True

    async def health_check(self) -> bool:
        return False

    async def verify_connectivity(self) -> None:
        raise self.error

    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None, read_only: bool = False) -> GraphResult:
        self.attempts += 1
        raise self.error

    async def begin_transaction(self, read_only: bool = False) -> GraphTransaction:
        self.attempts += 1
        raise self.error


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def memory_config():
    """MemoryConfig bound to test collection/graph names."""
    from agentic_memory.config import MemoryConfig

    return MemoryConfig(collection="test_memory", graph_name="test_memory_graph")


@pytest.fixture
def vector_store():
    from agentic_memory.storage.vectors import InMemoryVectorStore

    return InMemoryVectorStore()


@pytest.fixture
def recording_graph():
    return RecordingGraphStore()


@pytest.fixture
def failing_graph():
    return FailingGraphStore()


@pytest_asyncio.fixture
async def orchestrator(vector_store, recording_graph, memory_config):
    """Initialized orchestrator over the in-memory store and the recording graph."""
    from agentic_memory.core import MemoryOrchestrator

    orch = MemoryOrchestrator(vector_store, recording_graph, memory_config)
    await orch.initialize()
    return orch


@pytest_asyncio.fixture
async def degraded_orchestrator(vector_store, failing_graph, memory_config):
    """Initialized orchestrator whose graph backend fails on every call."""
    from agentic_memory.core import MemoryOrchestrator

    orch = MemoryOrchestrator(vector_store, failing_graph, memory_config)
    await orch.initialize()
    return orch


@pytest.fixture
def mock_falkordb():
    """Mock FalkorDBClient for unit tests."""
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.execute = AsyncMock(return_value=GraphResult())
    return client
