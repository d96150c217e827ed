"""
Memory Orchestrator
===================

Single entry point for agent workflows. Coordinates the vector store (system
of record) and the graph store (derived relationships) under one rule:

    vector failures propagate, graph failures are logged and swallowed.

Every vector call goes through critical_call, every graph call through
best_effort_call, and every public operation is bracketed by the stats
collector.

Usage:
    orchestrator = MemoryOrchestrator(vector_store, graph_store, config)
    await orchestrator.initialize()

    entry = await orchestrator.store("t1", "hello", {"type": "conversation"})
    results = await orchestrator.search("hello", thread_id="t1")
"""

import time
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from agentic_memory.config.settings import MemoryConfig
from agentic_memory.core.guards import best_effort_call, critical_call
from agentic_memory.errors import MemoryErrorContext, MemoryStorageError
from agentic_memory.models import (
    ContextSearchResult,
    ConversationFlowItem,
    MemoryEntry,
    MemorySearchOptions,
    MemoryStats,
    MemoryType,
    SummarizationOptions,
    UserMemoryPatterns,
    clamp,
)
from agentic_memory.providers.models import DetectionResult
from agentic_memory.services.graph import MemoryGraphBuilder
from agentic_memory.services.retention import CleanupPreview, CleanupResult, RetentionManager
from agentic_memory.services.stats import MemoryStatsCollector
from agentic_memory.services.storage import MemoryStorage
from agentic_memory.services.summarization import SummarizationService
from agentic_memory.storage.interfaces import GraphStore, VectorStore

log = structlog.get_logger()

BatchItem = Union[str, Mapping[str, Any]]

TOP_TOPICS = 10
TOP_TYPES = 3
FLOW_SIMILAR = 2


class MemoryOrchestrator:
    """
    Memory façade.

    Args:
        vector_store: Authoritative VectorStore adapter
        graph_store: Optional GraphStore adapter; absence only disables
                     relationship features
        config: MemoryConfig (defaults from the current environment)
        summarizer: SummarizationService (fallback summaries when omitted)
        stats: MemoryStatsCollector to share with other components
        detection: DetectionResult computed at startup, exposed read-only
    """

    def __init__(
        self,
        vector_store: VectorStore,
        graph_store: Optional[GraphStore] = None,
        config: Optional[MemoryConfig] = None,
        summarizer: Optional[SummarizationService] = None,
        stats: Optional[MemoryStatsCollector] = None,
        detection: Optional[DetectionResult] = None,
    ):
        self.config = config or MemoryConfig()
        self.storage = MemoryStorage(vector_store, self.config)
        self.graph = MemoryGraphBuilder(graph_store, self.config.importance_link_threshold)
        self.retention = RetentionManager(self.config.retention)
        self.stats = stats or MemoryStatsCollector(self.config.health)
        self.summarizer = summarizer or SummarizationService()
        self._detection = detection

    @property
    def detection(self) -> Optional[DetectionResult]:
        return self._detection

    @property
    def provider(self) -> str:
        return self.storage.vector_store.provider_name

    def _context(self, operation: str, **kwargs: Any) -> MemoryErrorContext:
        return MemoryErrorContext(operation=operation, provider=self.provider, **kwargs)

    def _graph_context(self, operation: str, **kwargs: Any) -> MemoryErrorContext:
        graph_store = self.graph.graph_store
        provider = graph_store.provider_name if graph_store is not None else None
        return MemoryErrorContext(operation=operation, provider=provider, **kwargs)

    async def initialize(self) -> None:
        await critical_call(
            self.storage.initialize(),
            self._context("initialize"),
            MemoryStorageError.document_storage,
        )
        await best_effort_call(self.graph.initialize_schema(), self._graph_context("initialize_schema"), 0)
        log.info(
            "Memory orchestrator initialized",
            collection=self.storage.collection,
            vector_provider=self.provider,
            graph_available=self.graph.is_available(),
        )

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
        """Store one entry. Graph tracking never changes the returned entry."""
        with self.stats.track("store", thread_id) as op:
            entry = await critical_call(
                self.storage.store(thread_id, content, metadata, embedding),
                self._context("store", thread_id=thread_id),
                MemoryStorageError.document_storage,
            )
            op.metadata["memory_id"] = entry.id
            await best_effort_call(
                self.graph.track(entry),
                self._graph_context("track", thread_id=thread_id, memory_id=entry.id),
            )
        return entry

    async def store_batch(self, thread_id: str, entries: Sequence[BatchItem]) -> List[MemoryEntry]:
        """
        Store several entries with one bulk vector write.

        Items are content strings or mappings with "content" and optional
        "metadata" and "embedding". The result has one entry per item, in
        call order.
        """
        items = [{"content": item} if isinstance(item, str) else item for item in entries]
        with self.stats.track("store_batch", thread_id) as op:
            op.metadata["batch_size"] = len(items)
            stored = await critical_call(
                self.storage.store_batch(thread_id, items),
                self._context("store_batch", thread_id=thread_id, batch_size=len(items)),
                MemoryStorageError.document_storage,
            )
            await best_effort_call(
                self.graph.track_batch(stored),
                self._graph_context("track_batch", thread_id=thread_id, batch_size=len(stored)),
            )
        return stored

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _record_access(self, entries: Sequence[MemoryEntry], operation: str) -> None:
        if self.config.track_access and entries:
            await best_effort_call(
                self.storage.record_access(entries),
                self._context(operation, memory_count=len(entries)),
            )

    async def retrieve(self, thread_id: str, limit: Optional[int] = None) -> List[MemoryEntry]:
        """The thread's entries in creation order; with `limit`, only the most recent ones."""
        with self.stats.track("retrieve", thread_id):
            entries = await critical_call(
                self.storage.list_thread(thread_id, limit),
                self._context("retrieve", thread_id=thread_id),
                MemoryStorageError.document_retrieval,
            )
            await self._record_access(entries, "retrieve")
        return entries

    async def _search(self, options: MemorySearchOptions) -> List[MemoryEntry]:
        results = await critical_call(
            self.storage.search(options),
            self._context("search", thread_id=options.thread_id, user_id=options.user_id),
            MemoryStorageError.search_operation,
        )
        await self._record_access(results, "search")
        return results

    async def search(
        self,
        options: Union[MemorySearchOptions, str, None] = None,
        **kwargs: Any,
    ) -> List[MemoryEntry]:
        """
        Vector-only search.

        Accepts MemorySearchOptions or a query string plus option keywords:
            await orchestrator.search("deadline", thread_id="t1", limit=5)
        """
        if not isinstance(options, MemorySearchOptions):
            kwargs.setdefault("limit", self.config.default_search_limit)
            options = MemorySearchOptions(query=options, **kwargs)

        with self.stats.track("search", options.thread_id) as op:
            results = await self._search(options)
            op.metadata["result_count"] = len(results)
        return results

    async def search_for_context(
        self,
        query: str,
        thread_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> ContextSearchResult:
        """
        Search plus a confidence score and, for a given user, behavior patterns.

        Confidence is the top result's relevance clamped to [0, 1], 0.0 when
        nothing matched.
        """
        with self.stats.track("search_for_context", thread_id):
            options = MemorySearchOptions(
                query=query,
                thread_id=thread_id,
                limit=limit or self.config.default_search_limit,
            )
            results = await self._search(options)
            patterns = await self._user_patterns(user_id) if user_id else None

        top = results[0].relevance_score if results else None
        return ContextSearchResult(
            relevant_memories=results,
            user_patterns=patterns,
            confidence=clamp(top) if top is not None else 0.0,
        )

    async def summarize(self, thread_id: str, options: Optional[SummarizationOptions] = None) -> str:
        """
        Summarize a thread's non-summary entries.

        With options.store_summary the summary is stored back as a `summary`
        entry of the same thread.
        """
        options = options or SummarizationOptions()
        with self.stats.track("summarize", thread_id) as op:
            entries = await critical_call(
                self.storage.list_thread(thread_id),
                self._context("summarize", thread_id=thread_id),
                MemoryStorageError.document_retrieval,
            )
            entries = [entry for entry in entries if entry.type != MemoryType.SUMMARY]
            op.metadata["memory_count"] = len(entries)
            summary = await self.summarizer.summarize(entries, options)

        if options.store_summary and summary:
            await self.store(thread_id, summary, {"type": MemoryType.SUMMARY.value, "source": "summarization"})
        return summary

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def _delete_ids(self, ids: Sequence[str], context: MemoryErrorContext) -> None:
        if not ids:
            return
        await critical_call(self.storage.delete(ids), context, MemoryStorageError.document_storage)
        await best_effort_call(
            self.graph.remove(ids),
            self._graph_context("remove", thread_id=context.thread_id, memory_count=len(ids)),
        )

    async def delete(self, thread_id: str, ids: Sequence[str]) -> int:
        """
        Delete the given ids from a thread.

        Ids that do not exist or belong to another thread are ignored.

        Returns:
            Number of entries deleted
        """
        with self.stats.track("delete", thread_id) as op:
            context = self._context("delete", thread_id=thread_id, memory_count=len(ids))
            found = await critical_call(self.storage.get(ids), context, MemoryStorageError.document_retrieval)
            owned = [entry.id for entry in found if entry.thread_id == thread_id]
            await self._delete_ids(owned, context)
            op.metadata["deleted"] = len(owned)
        log.info("Deleted memories", thread_id=thread_id, requested=len(ids), deleted=len(owned))
        return len(owned)

    async def clear(self, thread_id: Optional[str] = None) -> int:
        """Delete one thread, or every memory when thread_id is None."""
        with self.stats.track("clear", thread_id):
            removed = await critical_call(
                self.storage.clear(thread_id),
                self._context("clear", thread_id=thread_id),
                MemoryStorageError.document_storage,
            )
            await best_effort_call(
                self.graph.remove_thread(thread_id),
                self._graph_context("clear", thread_id=thread_id),
            )
        log.info("Cleared memories", thread_id=thread_id, removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def preview_cleanup(self) -> CleanupPreview:
        """What cleanup() would delete right now, without deleting it."""
        entries = await critical_call(
            self.storage.all_entries(),
            self._context("preview_cleanup"),
            MemoryStorageError.document_retrieval,
        )
        return self.retention.preview(entries)

    async def cleanup(self) -> CleanupResult:
        """Apply the retention policy and delete the selected entries."""
        with self.stats.track("cleanup") as op:
            started = time.perf_counter()
            preview = await self.preview_cleanup()
            await self._delete_ids(preview.ids, self._context("cleanup", memory_count=len(preview.ids)))
            op.metadata["removed"] = len(preview.ids)
            return self.retention.record_cleanup(preview, (time.perf_counter() - started) * 1000)

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    async def build_semantic_relationships(self, thread_id: Optional[str] = None) -> Dict[str, int]:
        return await best_effort_call(
            self.graph.build_semantic_relationships(thread_id),
            self._graph_context("build_semantic_relationships", thread_id=thread_id),
            {"SIMILAR_TO": 0, "IMPORTANT_WITH": 0},
        )

    async def find_related_memories(
        self,
        memory_id: str,
        relationship_types: Optional[Sequence[str]] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        return await best_effort_call(
            self.graph.find_related_memories(memory_id, relationship_types, limit),
            self._graph_context("find_related_memories", memory_id=memory_id),
            [],
        )

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def _user_patterns(self, user_id: str) -> UserMemoryPatterns:
        entries = await critical_call(
            self.storage.list_entries({"user_id": user_id}),
            self._context("get_user_patterns", user_id=user_id),
            MemoryStorageError.document_retrieval,
        )
        tags = Counter(tag for entry in entries for tag in entry.metadata.tags)
        types = Counter(entry.type for entry in entries)
        sessions = len({entry.thread_id for entry in entries})

        return UserMemoryPatterns(
            user_id=user_id,
            common_topics=[tag for tag, _ in tags.most_common(TOP_TOPICS)],
            interaction_frequency=dict(tags),
            preferred_memory_types=[memory_type for memory_type, _ in types.most_common(TOP_TYPES)],
            average_session_length=len(entries) / sessions if sessions else 0.0,
            total_sessions=sessions,
        )

    async def get_user_patterns(self, user_id: str) -> UserMemoryPatterns:
        """Aggregate a user's entries. Read-only: access bookkeeping is not touched."""
        return await self._user_patterns(user_id)

    async def get_conversation_flow(self, thread_id: str) -> List[ConversationFlowItem]:
        """
        The thread in creation order, each step with its connections:
        previous and next entry, then up to two entries sharing the most tags.
        """
        entries = await critical_call(
            self.storage.list_thread(thread_id),
            self._context("get_conversation_flow", thread_id=thread_id),
            MemoryStorageError.document_retrieval,
        )

        flow = []
        for index, entry in enumerate(entries):
            connections = []
            if index > 0:
                connections.append(entries[index - 1].id)
            if index < len(entries) - 1:
                connections.append(entries[index + 1].id)

            tags = set(entry.metadata.tags)
            if tags:
                similar = [
                    (len(tags & set(other.metadata.tags)), position, other.id)
                    for position, other in enumerate(entries)
                    if other.id != entry.id and other.id not in connections
                ]
                similar = sorted((item for item in similar if item[0] > 0), key=lambda item: (-item[0], item[1]))
                connections.extend(memory_id for _, _, memory_id in similar[:FLOW_SIMILAR])

            flow.append(ConversationFlowItem(
                memory_id=entry.id,
                content=entry.content,
                type=entry.type,
                created_at=entry.created_at,
                connections=connections,
            ))
        return flow

    async def get_stats(self) -> MemoryStats:
        """
        Vector counts (authoritative), graph relationship counts (best-effort)
        and operation metrics.
        """
        context = self._context("get_stats")
        total = await critical_call(self.storage.count(), context, MemoryStorageError.document_retrieval)
        entries = await critical_call(self.storage.all_entries(), context, MemoryStorageError.document_retrieval)
        graph_stats = await best_effort_call(self.graph.get_graph_stats(), self._graph_context("get_stats"))

        sizes = [len(entry.content.encode("utf-8")) for entry in entries]
        searches = [
            metrics for metrics in (
                self.stats.get_operation_metrics("search"),
                self.stats.get_operation_metrics("search_for_context"),
            )
            if metrics is not None
        ]
        search_count = sum(metrics.count for metrics in searches)
        search_time = sum(metrics.total_latency_ms for metrics in searches)
        summaries = self.stats.get_operation_metrics("summarize")

        return MemoryStats(
            total_memories=total,
            active_threads=len({entry.thread_id for entry in entries}),
            total_relationships=graph_stats["relationships"] if graph_stats else 0,
            memory_types=dict(Counter(entry.type.value for entry in entries)),
            average_memory_size=sum(sizes) / len(sizes) if sizes else 0.0,
            total_storage_used=sum(sizes),
            search_count=search_count,
            average_search_time=search_time / search_count if search_count else 0.0,
            summarization_count=summaries.count if summaries else 0,
            total_operations=self.stats.total_operations,
            total_errors=self.stats.total_errors,
            error_rate=self.stats.error_rate,
            average_latency_ms=self.stats.average_latency_ms,
            health=self.stats.health(),
            operations=self.stats.operation_breakdown(),
        )
