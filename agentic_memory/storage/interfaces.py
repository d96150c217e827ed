"""
Storage Interfaces
==================

Engine-neutral contracts for the two memory backends:

- VectorStore: similarity store and system of record for memory entries
- GraphStore: relationship store holding derived, rebuildable edges

Nothing outside an adapter may reference a concrete engine type. Filters are
expressed in a small neutral language that every adapter translates into its
own dialect:

    {"thread_id": "t1"}                       equality
    {"tags": {"$in": ["python", "async"]}}    any of (list fields: any overlap)
    {"created_ts": {"$gte": 1.7e9}}           range (also "$lte")
    {"type": {"$ne": "summary"}}              not equal

Graph transactions are async context managers:

    async with graph.write_transaction() as tx:
        await tx.run("MERGE (t:Thread {id: $id})", {"id": "t1"})
    # clean exit commits, an exception rolls back and re-raises
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, fields
from typing import Any, AsyncIterator, Dict, Iterator, List, Mapping, Optional, Sequence

FILTER_OPERATORS = {"$in", "$gte", "$lte", "$ne"}


# ============================================================================
# Neutral filter language
# ============================================================================

def validate_filter(where: Optional[Mapping[str, Any]]) -> None:
    """Raise ValueError if `where` uses operators outside the neutral language."""
    if not where:
        return
    for key, condition in where.items():
        if isinstance(condition, Mapping):
            unknown = set(condition) - FILTER_OPERATORS
            if unknown:
                raise ValueError(f"Unsupported filter operators for '{key}': {sorted(unknown)}")
            if "$in" in condition and not isinstance(condition["$in"], (list, tuple, set)):
                raise ValueError(f"'$in' for '{key}' expects a list")


def _matches_condition(value: Any, condition: Any) -> bool:
    if not isinstance(condition, Mapping):
        if isinstance(value, (list, tuple)):
            return condition in value
        return value == condition

    for op, operand in condition.items():
        if op == "$in":
            if isinstance(value, (list, tuple)):
                if not set(value) & set(operand):
                    return False
            elif value not in operand:
                return False
        elif op == "$ne":
            if value == operand:
                return False
        elif op == "$gte":
            if value is None or value < operand:
                return False
        elif op == "$lte":
            if value is None or value > operand:
                return False
    return True


def matches_filter(payload: Mapping[str, Any], where: Optional[Mapping[str, Any]]) -> bool:
    """Evaluate a neutral filter against a flat payload."""
    if not where:
        return True
    return all(
        _matches_condition(payload.get(key), condition)
        for key, condition in where.items()
    )


# ============================================================================
# Vector store
# ============================================================================

@dataclass
class VectorDocument:
    """A document as returned by a VectorStore."""
    id: str
    document: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None
    score: Optional[float] = None


class VectorStore(ABC):
    """
    Contract for a vector-similarity store.

    Adapters must make is_available() and health_check() safe to call in any
    state; every other method raises BackendUnavailableError when no engine
    client is bound.
    """

    provider_name: str = "vector"

    @abstractmethod
    def is_available(self) -> bool:
        """True when an engine client was bound at construction. Never raises."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight health check. Never raises; any failure becomes False."""

    # --- collections -------------------------------------------------------

    @abstractmethod
    async def create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        ...

    @abstractmethod
    async def get_or_create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def list_collections(self) -> List[str]:
        ...

    # --- documents ---------------------------------------------------------

    @abstractmethod
    async def add_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Sequence[str],
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        """Insert (or overwrite) documents in a single bulk call."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        query_text: Optional[str] = None,
        query_embedding: Optional[List[float]] = None,
        n_results: int = 10,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorDocument]:
        """Similarity query, best match first, `score` populated in [0, 1]."""

    @abstractmethod
    async def get_documents(
        self,
        collection: str,
        ids: Optional[Sequence[str]] = None,
        where: Optional[Mapping[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[VectorDocument]:
        """
        Fetch documents by id and/or filter, without similarity ranking.

        order_by names a numeric metadata field to sort on before offset and
        limit apply; without it the order is the engine's own.
        """

    async def create_ordering_index(self, collection: str, field: str) -> None:
        """Prepare `field` for order_by reads. Engines that sort in process need nothing."""

    @abstractmethod
    async def update_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Optional[Sequence[str]] = None,
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        """Update existing documents. Metadata is merged into the stored payload."""

    @abstractmethod
    async def delete_documents(
        self,
        collection: str,
        ids: Optional[Sequence[str]] = None,
        where: Optional[Mapping[str, Any]] = None,
    ) -> None:
        ...

    @abstractmethod
    async def count(self, collection: str, where: Optional[Mapping[str, Any]] = None) -> int:
        ...


# ============================================================================
# Graph store
# ============================================================================

@dataclass
class GraphCounters:
    """Write summary of a graph query."""
    nodes_created: int = 0
    nodes_deleted: int = 0
    relationships_created: int = 0
    relationships_deleted: int = 0
    properties_set: int = 0
    labels_added: int = 0
    labels_removed: int = 0

    def __add__(self, other: "GraphCounters") -> "GraphCounters":
        return GraphCounters(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    @property
    def contains_updates(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


class GraphRecord:
    """One row of a graph query result."""

    def __init__(self, values: Mapping[str, Any]):
        self._values = dict(values)

    @property
    def keys(self) -> List[str]:
        return list(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, GraphRecord):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"GraphRecord({self._values!r})"


@dataclass
class GraphResult:
    """Record set plus counters summary."""
    records: List[GraphRecord] = field(default_factory=list)
    counters: GraphCounters = field(default_factory=GraphCounters)

    def first(self) -> Optional[GraphRecord]:
        return self.records[0] if self.records else None

    def __iter__(self) -> Iterator[GraphRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


class GraphTransaction(ABC):
    """
    Transaction scope.

    commit() and rollback() on an already closed transaction are no-ops.
    """

    @abstractmethod
    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> GraphResult:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class GraphStore(ABC):
    """
    Contract for a graph-relationship store.

    Subclasses implement begin_transaction(); the read_transaction() /
    write_transaction() context managers are built on top of it.
    """

    provider_name: str = "graph"

    @abstractmethod
    def is_available(self) -> bool:
        """True when an engine client was bound at construction. Never raises."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight health check. Never raises; any failure becomes False."""

    @abstractmethod
    async def verify_connectivity(self) -> None:
        """Raise if the engine is unreachable."""

    @abstractmethod
    async def run(
        self,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        read_only: bool = False,
    ) -> GraphResult:
        """Execute a single parameterized query outside any transaction."""

    @abstractmethod
    async def begin_transaction(self, read_only: bool = False) -> GraphTransaction:
        ...

    @asynccontextmanager
    async def read_transaction(self) -> AsyncIterator[GraphTransaction]:
        async with self._transaction(read_only=True) as tx:
            yield tx

    @asynccontextmanager
    async def write_transaction(self) -> AsyncIterator[GraphTransaction]:
        async with self._transaction(read_only=False) as tx:
            yield tx

    @asynccontextmanager
    async def _transaction(self, read_only: bool) -> AsyncIterator[GraphTransaction]:
        tx = await self.begin_transaction(read_only=read_only)
        try:
            yield tx
        except BaseException:
            await tx.rollback()
            raise
        else:
            await tx.commit()
