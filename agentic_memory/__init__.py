"""
agentic_memory: persistent memory for agent workflows
=====================================================

Entries live in a vector store (system of record, similarity search). A graph
store, when present, keeps derived relationships between them: temporal
chains, summaries, preferences, shared topics. The graph is optional and its
failures never reach callers.

Quick Start:
    from agentic_memory import MemoryModule, MemoryConfig

    async with MemoryModule(MemoryConfig()) as module:
        memory = module.orchestrator
        await memory.store("t1", "User prefers short answers", {"type": "preference"})
        results = await memory.search("answer style", thread_id="t1")

Components:
- core: MemoryOrchestrator, MemoryModule
- providers: DatabaseProviderFactory, DetectionResult
- storage: VectorStore / GraphStore interfaces, Qdrant and FalkorDB adapters
- services: graph builder, retention, stats, summarization
"""

__version__ = "0.1.0"

from agentic_memory.config import MemoryConfig, RetentionPolicy
from agentic_memory.core import MemoryModule, MemoryOrchestrator
from agentic_memory.errors import (
    AgentMemoryError,
    BackendUnavailableError,
    MemoryRelationshipError,
    MemoryStorageError,
)
from agentic_memory.models import MemoryEntry, MemorySearchOptions, MemoryType
from agentic_memory.providers import DatabaseProviderFactory, DetectionResult

__all__ = [
    "__version__",
    "AgentMemoryError",
    "BackendUnavailableError",
    "DatabaseProviderFactory",
    "DetectionResult",
    "MemoryConfig",
    "MemoryEntry",
    "MemoryModule",
    "MemoryOrchestrator",
    "MemoryRelationshipError",
    "MemorySearchOptions",
    "MemoryStorageError",
    "MemoryType",
    "RetentionPolicy",
]
