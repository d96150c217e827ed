"""
Memory Models
=============

Dataclasses for memory entries, search options and analysis results.

A MemoryEntry is the system-of-record unit: it lives in the vector store and
is mirrored (as a derived, rebuildable cache) into the graph store.

Payload layout in the vector store (flat, engine neutral):
    thread_id, type, source, tags, importance, persistent, user_id,
    created_at (ISO), created_ts (epoch seconds), last_accessed_at,
    last_accessed_ts, access_count, extra (dict)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class MemoryType(str, Enum):
    """Kinds of memory entries. Drives the graph relationship rules."""
    CONVERSATION = "conversation"
    FACT = "fact"
    PREFERENCE = "preference"
    SUMMARY = "summary"
    CONTEXT = "context"
    CUSTOM = "custom"


# Payload keys owned by MemoryMetadata; everything else goes to `extra`
_METADATA_KEYS = {"type", "source", "tags", "importance", "persistent", "user_id", "userId"}

DEFAULT_IMPORTANCE = 0.5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class MemoryMetadata:
    """
    Metadata attached to a memory entry.

    Attributes:
        type: MemoryType (accepts the string value too)
        source: Origin of the memory (agent name, tool, ...)
        tags: Topic tags, used for similar-to relationships and user patterns
        importance: Importance in [0, 1], clamped at construction
        persistent: Persistent entries are never evicted by cleanup()
        user_id: Owner of the entry, used by user pattern analysis
        extra: Any additional caller metadata
    """
    type: MemoryType = MemoryType.CONVERSATION
    source: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    importance: float = DEFAULT_IMPORTANCE
    persistent: bool = False
    user_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Raises ValueError for unknown types
        self.type = MemoryType(self.type)
        self.importance = clamp(
            float(self.importance if self.importance is not None else DEFAULT_IMPORTANCE)
        )
        self.tags = [str(tag) for tag in (self.tags or [])]
        self.persistent = bool(self.persistent)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MemoryMetadata":
        """
        Build metadata from a loose dict (caller input or stored payload).

        Unknown keys are preserved in `extra`.
        """
        if data is None:
            return cls()
        if isinstance(data, MemoryMetadata):
            return data

        extra = dict(data.get("extra") or {})
        extra.update({
            key: value for key, value in data.items()
            if key not in _METADATA_KEYS and key != "extra"
        })
        return cls(
            type=data.get("type") or MemoryType.CONVERSATION,
            source=data.get("source"),
            tags=list(data.get("tags") or []),
            importance=data.get("importance", DEFAULT_IMPORTANCE),
            persistent=data.get("persistent") or False,
            user_id=data.get("user_id") or data.get("userId"),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "source": self.source,
            "tags": list(self.tags),
            "importance": self.importance,
            "persistent": self.persistent,
            "user_id": self.user_id,
            "extra": dict(self.extra),
        }


@dataclass
class MemoryEntry:
    """
    A stored memory.

    Entries are immutable after creation except for access bookkeeping
    (access_count, last_accessed_at), which only mark_accessed() touches.
    """
    id: str
    thread_id: str
    content: str
    metadata: MemoryMetadata = field(default_factory=MemoryMetadata)
    created_at: datetime = field(default_factory=utcnow)
    embedding: Optional[List[float]] = None
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0
    relevance_score: Optional[float] = None

    @property
    def type(self) -> MemoryType:
        return self.metadata.type

    @property
    def created_ts(self) -> float:
        return self.created_at.timestamp()

    def mark_accessed(self, at: Optional[datetime] = None) -> None:
        self.access_count += 1
        self.last_accessed_at = at or utcnow()

    def to_payload(self) -> Dict[str, Any]:
        """Flat payload stored next to the document in the vector store."""
        payload = self.metadata.to_dict()
        payload.update({
            "thread_id": self.thread_id,
            "created_at": self.created_at.isoformat(),
            "created_ts": self.created_ts,
            "access_count": self.access_count,
            "last_accessed_at": (
                self.last_accessed_at.isoformat() if self.last_accessed_at else None
            ),
            "last_accessed_ts": (
                self.last_accessed_at.timestamp() if self.last_accessed_at else None
            ),
        })
        return payload

    @classmethod
    def from_payload(
        cls,
        memory_id: str,
        document: Optional[str],
        payload: Optional[Mapping[str, Any]],
        embedding: Optional[List[float]] = None,
        score: Optional[float] = None,
    ) -> "MemoryEntry":
        payload = dict(payload or {})
        created_at = (
            _parse_datetime(payload.get("created_at"))
            or _parse_datetime(payload.get("created_ts"))
            or utcnow()
        )
        metadata = MemoryMetadata.from_dict({
            key: value for key, value in payload.items()
            if key not in {
                "thread_id", "created_at", "created_ts", "access_count",
                "last_accessed_at", "last_accessed_ts", "document",
            }
        })
        return cls(
            id=str(memory_id),
            thread_id=payload.get("thread_id", ""),
            content=document or "",
            metadata=metadata,
            created_at=created_at,
            embedding=embedding,
            last_accessed_at=_parse_datetime(payload.get("last_accessed_at")),
            access_count=int(payload.get("access_count") or 0),
            relevance_score=score,
        )

    def __repr__(self) -> str:
        return (
            f"<MemoryEntry(id={self.id[:8]}..., thread={self.thread_id}, "
            f"type={self.metadata.type.value}, importance={self.metadata.importance:.2f})>"
        )


@dataclass
class MemorySearchOptions:
    """
    Options for MemoryOrchestrator.search().

    An empty query turns the search into a filtered listing (no similarity
    ranking, relevance_score left unset).
    """
    query: Optional[str] = None
    thread_id: Optional[str] = None
    user_id: Optional[str] = None
    limit: int = 10
    offset: int = 0
    min_relevance: Optional[float] = None
    tags: Optional[List[str]] = None
    type: Optional[MemoryType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.min_relevance is not None and not 0 <= self.min_relevance <= 1:
            raise ValueError(f"min_relevance must be in [0, 1], got {self.min_relevance}")
        if self.type is not None:
            self.type = MemoryType(self.type)

    def to_filter(self) -> Dict[str, Any]:
        """Translate to the neutral `where` filter understood by every VectorStore."""
        where: Dict[str, Any] = {}
        if self.thread_id:
            where["thread_id"] = self.thread_id
        if self.user_id:
            where["user_id"] = self.user_id
        if self.type is not None:
            where["type"] = self.type.value
        if self.tags:
            where["tags"] = {"$in": list(self.tags)}
        if self.start_date or self.end_date:
            created: Dict[str, float] = {}
            if self.start_date:
                created["$gte"] = _parse_datetime(self.start_date).timestamp()
            if self.end_date:
                created["$lte"] = _parse_datetime(self.end_date).timestamp()
            where["created_ts"] = created
        return where


class SummarizationStrategy(str, Enum):
    PROGRESSIVE = "progressive"
    BATCH = "batch"
    SLIDING_WINDOW = "sliding_window"


@dataclass
class SummarizationOptions:
    """
    Options for MemoryOrchestrator.summarize().

    Attributes:
        strategy: progressive (chunked then consolidated), batch (one call) or
                  sliding_window (older context + recent window)
        max_messages: Chunk/window size
        max_length: Truncate the final summary to this many characters
        custom_prompt: Instruction prepended to the LLM prompt
        store_summary: Persist the summary as a `summary` memory entry
    """
    strategy: SummarizationStrategy = SummarizationStrategy.PROGRESSIVE
    max_messages: int = 50
    max_length: Optional[int] = None
    custom_prompt: Optional[str] = None
    store_summary: bool = False

    def __post_init__(self):
        self.strategy = SummarizationStrategy(self.strategy)
        if self.max_messages < 1:
            raise ValueError(f"max_messages must be >= 1, got {self.max_messages}")


@dataclass
class UserMemoryPatterns:
    """Behavior patterns aggregated from a user's stored entries."""
    user_id: str
    common_topics: List[str] = field(default_factory=list)
    interaction_frequency: Dict[str, int] = field(default_factory=dict)
    preferred_memory_types: List[MemoryType] = field(default_factory=list)
    average_session_length: float = 0.0
    total_sessions: int = 0


@dataclass
class ContextSearchResult:
    relevant_memories: List[MemoryEntry]
    user_patterns: Optional[UserMemoryPatterns]
    confidence: float


@dataclass
class ConversationFlowItem:
    """One step of a thread's conversation flow, computed on read."""
    memory_id: str
    content: str
    type: MemoryType
    created_at: datetime
    connections: List[str] = field(default_factory=list)


@dataclass
class MemoryStats:
    """
    Aggregate statistics returned by MemoryOrchestrator.get_stats().

    total_memories and active_threads come from the vector store
    (authoritative); total_relationships comes from the graph store and stays 0
    when it is absent.
    """
    total_memories: int = 0
    active_threads: int = 0
    total_relationships: int = 0
    memory_types: Dict[str, int] = field(default_factory=dict)
    average_memory_size: float = 0.0
    total_storage_used: int = 0
    search_count: int = 0
    average_search_time: float = 0.0
    summarization_count: int = 0
    total_operations: int = 0
    total_errors: int = 0
    error_rate: float = 0.0
    average_latency_ms: float = 0.0
    health: str = "healthy"
    operations: Dict[str, Dict[str, Any]] = field(default_factory=dict)
