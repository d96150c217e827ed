"""
Vector Storage
==============

VectorStore implementations.

Components:
- QdrantVectorAdapter: Qdrant engine (optional qdrant-client)
- InMemoryVectorStore: dict-backed store for development and tests
- QdrantConfig: connection settings

EmbeddingService (sentence-transformers) is imported from
agentic_memory.storage.vectors.embeddings, as it needs the optional
`embeddings` extra.

Example:
    from agentic_memory.storage.vectors import InMemoryVectorStore

    store = InMemoryVectorStore()
    await store.get_or_create_collection("agent_memory")
"""

from agentic_memory.storage.vectors.config import QdrantConfig
from agentic_memory.storage.vectors.inmemory import InMemoryVectorStore
from agentic_memory.storage.vectors.qdrant import HAS_QDRANT, QdrantVectorAdapter

__all__ = [
    "HAS_QDRANT",
    "InMemoryVectorStore",
    "QdrantConfig",
    "QdrantVectorAdapter",
]
