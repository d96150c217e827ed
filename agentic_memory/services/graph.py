"""
Memory Graph Builder
====================

Maintains the derived relationships between memory entries in the graph
store. The graph is a rebuildable cache of the vector store: every write is a
MERGE, so replaying an entry or re-running a derivation never duplicates
nodes or edges.

Graph schema:
    (:Thread {id, created_ts, last_active_ts})
    (:Memory {id, thread_id, type, importance, tags, user_id, created_ts, preview})
        extra labels: :Summary, :Fact, :Context

    (Thread)-[:HAS_MEMORY]->(Memory)
    (Thread)-[:HAS_PREFERENCE]->(Memory)       preference entries
    (Memory)-[:FOLLOWED_BY]->(Memory)          temporal chain inside a thread
    (Memory)-[:SUMMARIZES]->(Memory)           summary -> earlier non-summary entries
    (Memory)-[:SIMILAR_TO {shared_tags}]->(Memory)   shared tags, lower id -> higher id
    (Memory)-[:IMPORTANT_WITH]->(Memory)       same thread, both above the threshold

Failures raise MemoryRelationshipError; the orchestrator swallows them. When
the graph backend is unavailable every method logs at debug level and returns
without touching it.
"""

from typing import Any, Dict, List, Optional, Sequence

import structlog

from agentic_memory.errors import MemoryErrorContext, MemoryRelationshipError
from agentic_memory.models import MemoryEntry, MemoryType
from agentic_memory.storage.interfaces import GraphStore, GraphTransaction

log = structlog.get_logger()

PREVIEW_LENGTH = 200

RELATIONSHIP_TYPES = (
    "HAS_MEMORY",
    "HAS_PREFERENCE",
    "FOLLOWED_BY",
    "SUMMARIZES",
    "SIMILAR_TO",
    "IMPORTANT_WITH",
)

TYPE_LABELS = {
    MemoryType.SUMMARY: "Summary",
    MemoryType.FACT: "Fact",
    MemoryType.CONTEXT: "Context",
}

SCHEMA_STATEMENTS = (
    "CREATE INDEX FOR (m:Memory) ON (m.id)",
    "CREATE INDEX FOR (m:Memory) ON (m.thread_id)",
    "CREATE INDEX FOR (m:Memory) ON (m.type)",
    "CREATE INDEX FOR (m:Memory) ON (m.created_ts)",
    "CREATE INDEX FOR (t:Thread) ON (t.id)",
)

UPSERT_MEMORY = """
MERGE (t:Thread {id: $thread_id})
ON CREATE SET t.created_ts = $created_ts
SET t.last_active_ts = CASE
    WHEN t.last_active_ts IS NULL OR t.last_active_ts < $created_ts THEN $created_ts
    ELSE t.last_active_ts END
MERGE (m:Memory {id: $id})
SET m.thread_id = $thread_id,
    m.type = $type,
    m.importance = $importance,
    m.tags = $tags,
    m.user_id = $user_id,
    m.created_ts = $created_ts,
    m.preview = $preview
MERGE (t)-[:HAS_MEMORY]->(m)
"""

LINK_PREVIOUS = """
MATCH (m:Memory {id: $id})
MATCH (p:Memory {thread_id: $thread_id})
WHERE p.id <> $id AND p.created_ts < $created_ts
WITH m, p ORDER BY p.created_ts DESC LIMIT 1
MERGE (p)-[:FOLLOWED_BY]->(m)
"""

LINK_SUMMARIZED = """
MATCH (s:Memory {id: $id})
MATCH (o:Memory {thread_id: $thread_id})
WHERE o.id <> $id AND o.created_ts < $created_ts AND o.type <> 'summary'
MERGE (s)-[:SUMMARIZES]->(o)
"""

LINK_PREFERENCE = """
MATCH (t:Thread {id: $thread_id})
MATCH (m:Memory {id: $id})
MERGE (t)-[:HAS_PREFERENCE]->(m)
"""

DELETE_MEMORIES = """
MATCH (m:Memory)
WHERE m.id IN $ids
DETACH DELETE m
"""

DELETE_ORPHAN_THREADS = """
MATCH (t:Thread)
OPTIONAL MATCH (t)-[r]-()
WITH t, count(r) AS degree
WHERE degree = 0
DELETE t
"""

DELETE_THREAD_MEMORIES = """
MATCH (m:Memory {thread_id: $thread_id})
DETACH DELETE m
"""

DELETE_THREAD = """
MATCH (t:Thread {id: $thread_id})
DETACH DELETE t
"""

DELETE_ALL = """
MATCH (n)
WHERE n:Memory OR n:Thread
DETACH DELETE n
"""

LINK_SIMILAR = """
MATCH (m1:Memory), (m2:Memory)
WHERE m1.id < m2.id
  AND ($thread_id IS NULL OR (m1.thread_id = $thread_id AND m2.thread_id = $thread_id))
WITH m1, m2, [tag IN m1.tags WHERE tag IN m2.tags] AS shared
WHERE size(shared) > 0
MERGE (m1)-[r:SIMILAR_TO]->(m2)
SET r.shared_tags = size(shared)
"""

LINK_IMPORTANT = """
MATCH (m1:Memory), (m2:Memory)
WHERE m1.id < m2.id
  AND m1.thread_id = m2.thread_id
  AND ($thread_id IS NULL OR m1.thread_id = $thread_id)
  AND m1.importance > $threshold
  AND m2.importance > $threshold
MERGE (m1)-[:IMPORTANT_WITH]->(m2)
"""

FIND_RELATED = """
MATCH (m:Memory {id: $id})-[r]-(o:Memory)
WHERE type(r) IN $types
RETURN DISTINCT o.id AS id, o.thread_id AS thread_id, o.type AS type,
       o.preview AS preview, type(r) AS relationship
LIMIT $limit
"""

COUNT_MEMORIES = "MATCH (m:Memory) RETURN count(m) AS count"
COUNT_THREADS = "MATCH (t:Thread) RETURN count(t) AS count"
COUNT_RELATIONSHIPS = "MATCH ()-[r]->() RETURN type(r) AS type, count(r) AS count"


def memory_params(entry: MemoryEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "thread_id": entry.thread_id,
        "type": entry.type.value,
        "importance": entry.metadata.importance,
        "tags": list(entry.metadata.tags),
        "user_id": entry.metadata.user_id,
        "created_ts": entry.created_ts,
        "preview": entry.content[:PREVIEW_LENGTH],
    }


class MemoryGraphBuilder:
    """
    Graph Relationship Builder.

    Args:
        graph_store: GraphStore adapter (may be unavailable)
        importance_threshold: Importance above which same-thread entries are
                              linked with IMPORTANT_WITH
    """

    def __init__(self, graph_store: Optional[GraphStore], importance_threshold: float = 0.7):
        self.graph_store = graph_store
        self.importance_threshold = importance_threshold

    def is_available(self) -> bool:
        return self.graph_store is not None and self.graph_store.is_available()

    def _skip(self, operation: str, **context: Any) -> bool:
        if self.is_available():
            return False
        log.debug("Graph backend unavailable, skipping", operation=operation, **context)
        return True

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def initialize_schema(self) -> int:
        """Create the lookup indexes. Existing indexes are left alone."""
        if self._skip("initialize_schema"):
            return 0

        created = 0
        for statement in SCHEMA_STATEMENTS:
            try:
                await self.graph_store.run(statement)
                created += 1
            except Exception as e:
                # FalkorDB errors when the index already exists
                log.debug("Index not created", statement=statement, error=str(e))
        log.info("Graph schema initialized", indexes_created=created)
        return created

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    async def _apply_rules(self, tx: GraphTransaction, entry: MemoryEntry) -> None:
        params = memory_params(entry)
        await tx.run(UPSERT_MEMORY, params)
        await tx.run(LINK_PREVIOUS, params)

        label = TYPE_LABELS.get(entry.type)
        if label:
            await tx.run(f"MATCH (m:Memory {{id: $id}}) SET m:{label}", {"id": entry.id})

        if entry.type == MemoryType.SUMMARY:
            await tx.run(LINK_SUMMARIZED, params)
        elif entry.type == MemoryType.PREFERENCE:
            await tx.run(LINK_PREFERENCE, params)

    async def track(self, entry: MemoryEntry) -> None:
        """Upsert the entry's node and its per-type relationships."""
        await self.track_batch([entry])

    async def track_batch(self, entries: Sequence[MemoryEntry]) -> None:
        """Track several entries inside one write transaction, in creation order."""
        if not entries or self._skip("track", batch_size=len(entries)):
            return

        ordered = sorted(entries, key=lambda entry: entry.created_ts)
        try:
            async with self.graph_store.write_transaction() as tx:
                for entry in ordered:
                    await self._apply_rules(tx, entry)
        except Exception as e:
            raise MemoryRelationshipError.graph_storage(
                f"Failed to track memories in graph: {e}",
                MemoryErrorContext(
                    operation="track",
                    thread_id=ordered[0].thread_id,
                    memory_id=ordered[0].id if len(ordered) == 1 else None,
                    batch_size=len(ordered),
                    provider=self.graph_store.provider_name,
                ),
            ) from e
        log.debug("Tracked memories in graph", count=len(ordered), thread_id=ordered[0].thread_id)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def remove(self, ids: Sequence[str]) -> None:
        """Detach-delete memory nodes, then drop threads left without edges."""
        if not ids or self._skip("remove", memory_count=len(ids)):
            return
        try:
            async with self.graph_store.write_transaction() as tx:
                await tx.run(DELETE_MEMORIES, {"ids": list(ids)})
                await tx.run(DELETE_ORPHAN_THREADS)
        except Exception as e:
            raise MemoryRelationshipError.graph_storage(
                f"Failed to remove memories from graph: {e}",
                MemoryErrorContext(
                    operation="remove", memory_count=len(ids), provider=self.graph_store.provider_name,
                ),
            ) from e

    async def remove_thread(self, thread_id: Optional[str] = None) -> None:
        """Remove one thread (or every memory and thread when thread_id is None)."""
        if self._skip("remove_thread", thread_id=thread_id):
            return
        try:
            if thread_id is None:
                await self.graph_store.run(DELETE_ALL)
            else:
                async with self.graph_store.write_transaction() as tx:
                    await tx.run(DELETE_THREAD_MEMORIES, {"thread_id": thread_id})
                    await tx.run(DELETE_THREAD, {"thread_id": thread_id})
        except Exception as e:
            raise MemoryRelationshipError.graph_storage(
                f"Failed to clear graph memories: {e}",
                MemoryErrorContext(
                    operation="clear", thread_id=thread_id, provider=self.graph_store.provider_name,
                ),
            ) from e

    # ------------------------------------------------------------------
    # Derived relationships
    # ------------------------------------------------------------------

    async def build_semantic_relationships(self, thread_id: Optional[str] = None) -> Dict[str, int]:
        """
        Derive SIMILAR_TO and IMPORTANT_WITH edges. Idempotent.

        Returns:
            Newly created edge counts by relationship type
        """
        if self._skip("build_semantic_relationships", thread_id=thread_id):
            return {"SIMILAR_TO": 0, "IMPORTANT_WITH": 0}

        try:
            similar = await self.graph_store.run(LINK_SIMILAR, {"thread_id": thread_id})
            important = await self.graph_store.run(
                LINK_IMPORTANT, {"thread_id": thread_id, "threshold": self.importance_threshold},
            )
        except Exception as e:
            raise MemoryRelationshipError.relationship_creation(
                f"Failed to build semantic relationships: {e}",
                MemoryErrorContext(
                    operation="build_semantic_relationships",
                    thread_id=thread_id,
                    provider=self.graph_store.provider_name,
                ),
            ) from e

        created = {
            "SIMILAR_TO": similar.counters.relationships_created,
            "IMPORTANT_WITH": important.counters.relationships_created,
        }
        log.info("Semantic relationships built", thread_id=thread_id, **created)
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def find_related_memories(
        self,
        memory_id: str,
        relationship_types: Optional[Sequence[str]] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Memories directly connected to `memory_id`, in either direction."""
        if self._skip("find_related_memories", memory_id=memory_id):
            return []

        types = list(relationship_types or RELATIONSHIP_TYPES)
        unknown = set(types) - set(RELATIONSHIP_TYPES)
        if unknown:
            raise ValueError(f"Unknown relationship types: {sorted(unknown)}")

        try:
            result = await self.graph_store.run(
                FIND_RELATED, {"id": memory_id, "types": types, "limit": limit}, read_only=True,
            )
        except Exception as e:
            raise MemoryRelationshipError.relationship_query(
                f"Failed to query related memories: {e}",
                MemoryErrorContext(
                    operation="find_related_memories",
                    memory_id=memory_id,
                    provider=self.graph_store.provider_name,
                ),
            ) from e
        return [record.to_dict() for record in result]

    async def get_graph_stats(self) -> Dict[str, Any]:
        """Node and relationship counts."""
        if self._skip("get_graph_stats"):
            return {"memories": 0, "threads": 0, "relationships": 0, "relationship_types": {}}

        try:
            async with self.graph_store.read_transaction() as tx:
                memories = await tx.run(COUNT_MEMORIES)
                threads = await tx.run(COUNT_THREADS)
                relationships = await tx.run(COUNT_RELATIONSHIPS)
        except Exception as e:
            raise MemoryRelationshipError.relationship_query(
                f"Failed to read graph stats: {e}",
                MemoryErrorContext(operation="get_graph_stats", provider=self.graph_store.provider_name),
            ) from e

        by_type = {record.get("type"): int(record.get("count") or 0) for record in relationships}
        return {
            "memories": int(memories.first().get("count")) if memories.first() else 0,
            "threads": int(threads.first().get("count")) if threads.first() else 0,
            "relationships": sum(by_type.values()),
            "relationship_types": by_type,
        }
