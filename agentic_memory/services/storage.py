"""
Memory Storage
==============

Vector-store side of the memory subsystem: the system of record.

Every method here talks to the VectorStore only and lets failures propagate;
the orchestrator decides how they surface to callers.
"""

import uuid
from datetime import timedelta
from typing import Any, List, Mapping, Optional, Sequence

import structlog

from agentic_memory.config.settings import MemoryConfig
from agentic_memory.models import MemoryEntry, MemoryMetadata, MemorySearchOptions, utcnow
from agentic_memory.storage.interfaces import VectorDocument, VectorStore

log = structlog.get_logger()

# Spacing between entries of one batch so creation order stays strict
BATCH_SPACING = timedelta(milliseconds=1)

# Payload field that orders entries by creation
ORDER_FIELD = "created_ts"


def new_memory_id() -> str:
    return str(uuid.uuid4())


def _validate_write(thread_id: str, content: Any) -> None:
    if not isinstance(thread_id, str) or not thread_id.strip():
        raise ValueError("thread_id must be a non-empty string")
    if not isinstance(content, str):
        raise ValueError(f"content must be a string, got {type(content).__name__}")


class MemoryStorage:
    """
    Stores and reads MemoryEntry records in one vector collection.

    Args:
        vector_store: VectorStore adapter
        config: MemoryConfig (collection name, dimension, scan ceiling)
    """

    def __init__(self, vector_store: VectorStore, config: MemoryConfig):
        self.vector_store = vector_store
        self.config = config
        self.collection = config.collection

    async def initialize(self) -> None:
        await self.vector_store.get_or_create_collection(
            self.collection, self.config.embedding_dimension
        )
        await self.vector_store.create_ordering_index(self.collection, ORDER_FIELD)
        log.info("Memory collection ready", collection=self.collection)

    @staticmethod
    def _to_entry(doc: VectorDocument) -> MemoryEntry:
        return MemoryEntry.from_payload(doc.id, doc.document, doc.metadata, doc.embedding, doc.score)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store(
        self,
        thread_id: str,
        content: str,
        metadata: Optional[Mapping[str, Any]] = None,
        embedding: Optional[List[float]] = None,
    ) -> MemoryEntry:
        _validate_write(thread_id, content)
        entry = MemoryEntry(
            id=new_memory_id(),
            thread_id=thread_id,
            content=content,
            metadata=MemoryMetadata.from_dict(metadata),
            embedding=embedding,
        )
        await self.vector_store.add_documents(
            self.collection,
            ids=[entry.id],
            documents=[entry.content],
            metadatas=[entry.to_payload()],
            embeddings=[embedding] if embedding is not None else None,
        )
        log.debug("Stored memory", memory_id=entry.id, thread_id=thread_id, type=entry.type.value)
        return entry

    async def store_batch(self, thread_id: str, items: Sequence[Mapping[str, Any]]) -> List[MemoryEntry]:
        """
        Store several entries with a single bulk write.

        Each item is a mapping with "content" and optional "metadata" and
        "embedding". Returned entries keep the input order.
        """
        if not items:
            return []

        base = utcnow()
        entries = []
        for index, item in enumerate(items):
            _validate_write(thread_id, item.get("content"))
            entries.append(MemoryEntry(
                id=new_memory_id(),
                thread_id=thread_id,
                content=item["content"],
                metadata=MemoryMetadata.from_dict(item.get("metadata")),
                created_at=base + BATCH_SPACING * index,
                embedding=item.get("embedding"),
            ))

        with_embeddings = all(entry.embedding is not None for entry in entries)
        await self.vector_store.add_documents(
            self.collection,
            ids=[entry.id for entry in entries],
            documents=[entry.content for entry in entries],
            metadatas=[entry.to_payload() for entry in entries],
            embeddings=[entry.embedding for entry in entries] if with_embeddings else None,
        )
        log.debug("Stored memory batch", thread_id=thread_id, batch_size=len(entries))
        return entries

    async def record_access(self, entries: Sequence[MemoryEntry]) -> None:
        """Bump access bookkeeping on the given entries (in place and in the store)."""
        if not entries:
            return
        now = utcnow()
        for entry in entries:
            entry.mark_accessed(now)
        await self.vector_store.update_documents(
            self.collection,
            ids=[entry.id for entry in entries],
            metadatas=[
                {
                    "access_count": entry.access_count,
                    "last_accessed_at": entry.last_accessed_at.isoformat(),
                    "last_accessed_ts": entry.last_accessed_at.timestamp(),
                }
                for entry in entries
            ],
        )

    async def delete(self, ids: Sequence[str]) -> None:
        if ids:
            await self.vector_store.delete_documents(self.collection, ids=list(ids))

    async def clear(self, thread_id: Optional[str] = None) -> int:
        """Delete one thread, or recreate the whole collection. Returns the count removed."""
        where = {"thread_id": thread_id} if thread_id is not None else None
        removed = await self.count(where)
        if where is not None:
            await self.vector_store.delete_documents(self.collection, where=where)
        else:
            await self.vector_store.delete_collection(self.collection)
            await self.initialize()
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, ids: Sequence[str]) -> List[MemoryEntry]:
        if not ids:
            return []
        docs = await self.vector_store.get_documents(self.collection, ids=list(ids))
        return [self._to_entry(doc) for doc in docs]

    async def list_entries(self, where: Optional[Mapping[str, Any]] = None, limit: Optional[int] = None) -> List[MemoryEntry]:
        """
        The newest entries matching `where`, returned oldest first.

        Reads at most max_scan entries, fewer when `limit` is smaller.
        """
        cap = min(limit, self.config.max_scan) if limit is not None else self.config.max_scan
        if cap <= 0:
            return []
        docs = await self.vector_store.get_documents(
            self.collection, where=where, limit=cap, order_by=ORDER_FIELD, descending=True,
        )
        if len(docs) == self.config.max_scan:
            log.warning(
                "Listing reached max_scan, older entries not read",
                collection=self.collection,
                max_scan=self.config.max_scan,
            )
        return [self._to_entry(doc) for doc in reversed(docs)]

    async def list_thread(self, thread_id: str, limit: Optional[int] = None) -> List[MemoryEntry]:
        return await self.list_entries({"thread_id": thread_id}, limit)

    async def all_entries(self, where: Optional[Mapping[str, Any]] = None) -> List[MemoryEntry]:
        """Every entry matching `where`, oldest first, paging through the whole collection."""
        docs = await self.vector_store.get_documents(self.collection, where=where, order_by=ORDER_FIELD)
        return [self._to_entry(doc) for doc in docs]

    async def count(self, where: Optional[Mapping[str, Any]] = None) -> int:
        return await self.vector_store.count(self.collection, where)

    async def search(self, options: MemorySearchOptions) -> List[MemoryEntry]:
        """
        Similarity search when options.query is set, filtered listing otherwise.

        Listing results are newest first.
        """
        where = options.to_filter()

        if not options.query:
            entries = await self.list_entries(where, limit=options.offset + options.limit)
            entries.reverse()
            return entries[options.offset:options.offset + options.limit]

        docs = await self.vector_store.query(
            self.collection,
            query_text=options.query,
            n_results=options.offset + options.limit,
            where=where,
        )
        entries = [self._to_entry(doc) for doc in docs]
        if options.min_relevance is not None:
            entries = [
                entry for entry in entries
                if entry.relevance_score is not None and entry.relevance_score >= options.min_relevance
            ]
        return entries[options.offset:options.offset + options.limit]

