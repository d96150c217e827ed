"""
Storage Layer
=============

Engine-neutral interfaces and the adapters bridging concrete engines to them.

    Orchestrator / Factory
            |
    +-------+--------+
    |                |
    v                v
 VectorStore      GraphStore          (interfaces.py)
    |                |
 Qdrant /         FalkorDB            (vectors/, graph/)
 in-memory
"""

from agentic_memory.storage.interfaces import (
    GraphCounters,
    GraphRecord,
    GraphResult,
    GraphStore,
    GraphTransaction,
    VectorDocument,
    VectorStore,
    matches_filter,
)

__all__ = [
    "GraphCounters",
    "GraphRecord",
    "GraphResult",
    "GraphStore",
    "GraphTransaction",
    "VectorDocument",
    "VectorStore",
    "matches_filter",
]
