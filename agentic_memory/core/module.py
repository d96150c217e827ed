"""
Memory Module
=============

Process-level wiring: connects the configured backends, runs capability
detection once, and builds the orchestrator.

    MemoryModule.start()
        ├── QdrantClient        (optional, failure leaves it absent)
        ├── FalkorDBClient      (optional, failure leaves it absent)
        ├── EmbeddingService    (optional)
        ├── DatabaseProviderFactory.detect_memory_capabilities()
        │       -> DetectionResult (immutable for the process lifetime)
        ├── MemoryOrchestrator.initialize()
        └── CleanupScheduler    (when retention.cleanup_interval_seconds is set)

Backend topology is detected at start only. A backend that comes up later is
picked up by restarting the module; get_providers_status() reports live
health in the meantime.

Usage:
    module = MemoryModule(MemoryConfig.from_environment(get_current_environment()))
    await module.start()

    if module.detection.features.semantic_search:
        await module.orchestrator.store("t1", "hello")

    await module.close()
"""

from typing import List, Optional

import structlog

from agentic_memory.config.settings import MemoryConfig
from agentic_memory.errors import BackendUnavailableError
from agentic_memory.providers.factory import DatabaseProviderFactory
from agentic_memory.providers.models import DetectionResult, ProviderPreferences, ProviderStatus
from agentic_memory.core.orchestrator import MemoryOrchestrator
from agentic_memory.services.llm import OpenRouterClient
from agentic_memory.services.retention import CleanupScheduler
from agentic_memory.services.summarization import SummarizationService
from agentic_memory.storage.graph.adapter import FalkorDBGraphAdapter
from agentic_memory.storage.graph.client import FalkorDBClient
from agentic_memory.storage.graph.config import FalkorDBConfig
from agentic_memory.storage.interfaces import VectorStore
from agentic_memory.storage.vectors.config import QdrantConfig
from agentic_memory.storage.vectors.inmemory import InMemoryVectorStore
from agentic_memory.storage.vectors.qdrant import QdrantVectorAdapter

# Embeddings (optional, loaded lazily)
try:
    from agentic_memory.storage.vectors.embeddings import EmbeddingService
    HAS_EMBEDDING_SERVICE = True
except ImportError:
    HAS_EMBEDDING_SERVICE = False

# Qdrant (optional)
try:
    from qdrant_client import QdrantClient
    HAS_QDRANT = True
except ImportError:
    HAS_QDRANT = False

log = structlog.get_logger()


class MemoryModule:
    """
    Owns the backend clients and the orchestrator built on top of them.

    Args:
        config: MemoryConfig (collection, graph name, retention, health)
        qdrant_config: Qdrant connection settings (env defaults)
        falkordb_config: FalkorDB connection settings; graph name defaults to
                         config.graph_name
        use_qdrant: Try to connect to Qdrant
        use_falkordb: Try to connect to FalkorDB
        use_embeddings: Load the E5 embedding service for stores and queries
                        that carry no vectors
        inmemory_fallback: Use an InMemoryVectorStore when Qdrant is not
                           healthy (development only, nothing is persisted)
        llm: OpenRouterClient for summaries (from env when omitted)
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        qdrant_config: Optional[QdrantConfig] = None,
        falkordb_config: Optional[FalkorDBConfig] = None,
        use_qdrant: bool = True,
        use_falkordb: bool = True,
        use_embeddings: bool = True,
        inmemory_fallback: bool = False,
        llm: Optional[OpenRouterClient] = None,
    ):
        self.config = config or MemoryConfig()
        self.qdrant_config = qdrant_config or QdrantConfig()
        self.falkordb_config = falkordb_config or FalkorDBConfig(graph_name=self.config.graph_name)
        self.use_qdrant = use_qdrant
        self.use_falkordb = use_falkordb
        self.use_embeddings = use_embeddings
        self.inmemory_fallback = inmemory_fallback
        self.llm = llm or OpenRouterClient()

        self._qdrant: Optional["QdrantClient"] = None
        self._falkordb: Optional[FalkorDBClient] = None
        self._embedder = None
        self.factory: Optional[DatabaseProviderFactory] = None
        self.scheduler: Optional[CleanupScheduler] = None
        self._orchestrator: Optional[MemoryOrchestrator] = None
        self._detection: Optional[DetectionResult] = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _connect_qdrant(self) -> None:
        if not self.use_qdrant:
            return
        if not HAS_QDRANT:
            log.warning("qdrant-client not installed, vector backend disabled")
            return
        try:
            self._qdrant = QdrantClient(**self.qdrant_config.client_kwargs())
            log.info(f"Qdrant client created: {self.qdrant_config.endpoint}")
        except Exception as e:
            log.warning(f"Qdrant connection failed: {e}")
            self._qdrant = None

    async def _connect_falkordb(self) -> None:
        if not self.use_falkordb:
            return
        client = FalkorDBClient(self.falkordb_config)
        try:
            await client.connect()
            self._falkordb = client
        except Exception as e:
            log.warning(f"FalkorDB connection failed: {e}")
            self._falkordb = None

    def _load_embedder(self) -> None:
        if not self.use_embeddings:
            return
        if not HAS_EMBEDDING_SERVICE:
            log.warning("sentence-transformers not installed, stores without vectors will fail on Qdrant")
            return
        try:
            self._embedder = EmbeddingService.get_instance()
        except Exception as e:
            log.warning(f"Embedding service initialization failed: {e}")

    async def start(self, preferences: Optional[ProviderPreferences] = None) -> DetectionResult:
        """Connect, detect capabilities and build the orchestrator. Idempotent."""
        if self._started:
            log.warning("Memory module already started")
            return self._detection

        await self._connect_qdrant()
        await self._connect_falkordb()
        self._load_embedder()

        vector_store = QdrantVectorAdapter(
            self._qdrant, embedder=self._embedder, dimension=self.config.embedding_dimension,
        )
        graph_store = FalkorDBGraphAdapter(self._falkordb)

        self.factory = DatabaseProviderFactory(
            vector_store,
            graph_store,
            default_collection=self.config.collection,
            default_database=self.config.graph_name,
        )
        self._detection = await self.factory.detect_memory_capabilities(preferences)

        authoritative: Optional[VectorStore] = vector_store if self._detection.vector_providers else None
        if authoritative is None and self.inmemory_fallback:
            log.warning("No healthy vector backend, using in-memory store (nothing is persisted)")
            authoritative = InMemoryVectorStore(embedder=self._embedder)

        if authoritative is not None:
            self._orchestrator = MemoryOrchestrator(
                authoritative,
                graph_store if self._detection.graph_providers else None,
                self.config,
                summarizer=SummarizationService(self.llm),
                detection=self._detection,
            )
            await self._orchestrator.initialize()

            interval = self.config.retention.cleanup_interval_seconds
            if interval:
                self.scheduler = CleanupScheduler(self._orchestrator.cleanup, interval)
                self.scheduler.start()
        else:
            log.warning("No healthy vector backend, memory operations disabled")

        self._started = True
        log.info("Memory module started", **self._detection.features.to_dict())
        return self._detection

    async def close(self) -> None:
        """Stop the scheduler and release every client."""
        if self.scheduler is not None:
            await self.scheduler.stop()
            self.scheduler = None
        if self._falkordb is not None:
            await self._falkordb.close()
            self._falkordb = None
        if self._qdrant is not None:
            self._qdrant.close()
            self._qdrant = None
        await self.llm.close()

        self._orchestrator = None
        self._started = False
        log.info("Memory module closed")

    async def __aenter__(self) -> "MemoryModule":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    @property
    def detection(self) -> DetectionResult:
        """Capability snapshot taken at start; empty before start()."""
        return self._detection or DetectionResult.empty()

    @property
    def orchestrator(self) -> MemoryOrchestrator:
        if self._orchestrator is None:
            raise BackendUnavailableError("vector", "orchestrator")
        return self._orchestrator

    async def get_providers_status(self) -> List[ProviderStatus]:
        """Live status of every backend; never raises."""
        if self.factory is None:
            return await DatabaseProviderFactory().get_providers_status()
        return await self.factory.get_providers_status()
