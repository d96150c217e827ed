"""
Qdrant Vector Adapter
=====================

VectorStore implementation over qdrant-client.

The Qdrant client is optional: when qdrant-client is not installed, or no
client is passed in, the adapter reports is_available() == False and every
store method raises BackendUnavailableError.

Documents live in the point payload under the "document" key, next to the
flat memory metadata. Point ids must be UUID strings (or unsigned ints).

Usage:
    from qdrant_client import QdrantClient
    from agentic_memory.storage.vectors import QdrantVectorAdapter

    adapter = QdrantVectorAdapter(QdrantClient(host="localhost", port=6333),
                                  embedder=EmbeddingService.get_instance())
    await adapter.get_or_create_collection("agent_memory")
"""

import asyncio
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import structlog

from agentic_memory.errors import BackendUnavailableError, MemoryEmbeddingError, MemoryErrorContext
from agentic_memory.models import clamp
from agentic_memory.storage.interfaces import VectorDocument, VectorStore, matches_filter, validate_filter

# Qdrant (optional)
try:
    from qdrant_client.models import (
        Direction,
        Distance,
        FieldCondition,
        Filter,
        FilterSelector,
        MatchAny,
        MatchValue,
        OrderBy,
        PayloadSchemaType,
        PointIdsList,
        PointStruct,
        PointVectors,
        Range,
        VectorParams,
    )
    HAS_QDRANT = True
except ImportError:
    HAS_QDRANT = False

log = structlog.get_logger()

DOCUMENT_KEY = "document"
SCROLL_PAGE_SIZE = 256


def _sorted(documents: List[VectorDocument], order_by: Optional[str], descending: bool) -> List[VectorDocument]:
    if order_by is None:
        return documents
    return sorted(documents, key=lambda doc: doc.metadata.get(order_by, 0), reverse=descending)


def _window(documents: List[VectorDocument], offset: int, limit: Optional[int]) -> List[VectorDocument]:
    end = offset + limit if limit is not None else None
    return documents[offset:end]


def to_qdrant_filter(where: Optional[Mapping[str, Any]]) -> Optional["Filter"]:
    """Translate the neutral filter language into a Qdrant Filter."""
    validate_filter(where)
    if not where:
        return None

    must = []
    must_not = []
    for key, condition in where.items():
        if not isinstance(condition, Mapping):
            must.append(FieldCondition(key=key, match=MatchValue(value=condition)))
            continue

        if "$in" in condition:
            must.append(FieldCondition(key=key, match=MatchAny(any=list(condition["$in"]))))
        if "$ne" in condition:
            must_not.append(FieldCondition(key=key, match=MatchValue(value=condition["$ne"])))
        if "$gte" in condition or "$lte" in condition:
            must.append(FieldCondition(
                key=key,
                range=Range(gte=condition.get("$gte"), lte=condition.get("$lte")),
            ))

    return Filter(must=must or None, must_not=must_not or None)


class QdrantVectorAdapter(VectorStore):
    """
    Bridges an optional QdrantClient to the VectorStore contract.

    Args:
        client: qdrant_client.QdrantClient instance, or None when absent
        embedder: Object with encode_query_async(text) and
                  encode_batch_async(texts, is_query) (e.g. EmbeddingService);
                  used when callers pass no embeddings
        dimension: Vector size for collections created by this adapter
    """

    provider_name = "qdrant"

    def __init__(self, client: Optional[Any] = None, embedder: Optional[Any] = None, dimension: int = 1024):
        self._client = client if HAS_QDRANT else None
        self.embedder = embedder
        self.dimension = dimension

        if client is not None and not HAS_QDRANT:
            log.warning("qdrant-client not installed, Qdrant adapter disabled")

    def is_available(self) -> bool:
        return self._client is not None

    async def health_check(self) -> bool:
        if not self.is_available():
            return False
        try:
            await self._call(self._client.get_collections)
            return True
        except Exception as e:
            log.warning("Qdrant health check failed", error=str(e))
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, operation: str) -> Any:
        if self._client is None:
            raise BackendUnavailableError(self.provider_name, operation)
        return self._client

    async def _call(self, fn: Callable, *args, **kwargs) -> Any:
        """Run a blocking qdrant-client call in the default executor."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(fn, *args, **kwargs))

    async def _embed_documents(self, documents: Sequence[str], operation: str) -> List[List[float]]:
        if self.embedder is None:
            raise MemoryEmbeddingError(
                "No embeddings supplied and no embedder configured",
                MemoryErrorContext(operation=operation, provider=self.provider_name),
            )
        try:
            return await self.embedder.encode_batch_async(list(documents), is_query=False)
        except Exception as e:
            raise MemoryEmbeddingError(
                f"Failed to embed documents: {e}",
                MemoryErrorContext(operation=operation, provider=self.provider_name, batch_size=len(documents)),
            ) from e

    async def _embed_query(self, text: str) -> List[float]:
        if self.embedder is None:
            raise MemoryEmbeddingError(
                "No query embedding supplied and no embedder configured",
                MemoryErrorContext(operation="query", provider=self.provider_name),
            )
        try:
            return await self.embedder.encode_query_async(text)
        except Exception as e:
            raise MemoryEmbeddingError(
                f"Failed to embed query: {e}",
                MemoryErrorContext(operation="query", provider=self.provider_name),
            ) from e

    @staticmethod
    def _to_document(point: Any, with_score: bool = False) -> VectorDocument:
        payload = dict(point.payload or {})
        document = payload.pop(DOCUMENT_KEY, None)
        vector = getattr(point, "vector", None)
        return VectorDocument(
            id=str(point.id),
            document=document,
            metadata=payload,
            embedding=list(vector) if isinstance(vector, (list, tuple)) else None,
            score=clamp(float(point.score)) if with_score and point.score is not None else None,
        )

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        client = self._require("create_collection")
        await self._call(
            client.create_collection,
            collection_name=name,
            vectors_config=VectorParams(size=dimension or self.dimension, distance=Distance.COSINE),
        )
        log.info(f"Created Qdrant collection: {name}")

    async def delete_collection(self, name: str) -> None:
        client = self._require("delete_collection")
        await self._call(client.delete_collection, collection_name=name)
        log.info(f"Deleted Qdrant collection: {name}")

    async def list_collections(self) -> List[str]:
        client = self._require("list_collections")
        response = await self._call(client.get_collections)
        return [c.name for c in response.collections]

    async def get_or_create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        if name not in await self.list_collections():
            await self.create_collection(name, dimension)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def add_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Sequence[str],
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        client = self._require("add_documents")
        if not ids:
            return
        if embeddings is None:
            embeddings = await self._embed_documents(documents, "add_documents")
        metadatas = metadatas or [{} for _ in ids]

        points = [
            PointStruct(
                id=point_id,
                vector=list(vector),
                payload={**dict(metadata), DOCUMENT_KEY: document},
            )
            for point_id, document, metadata, vector in zip(ids, documents, metadatas, embeddings)
        ]
        await self._call(client.upsert, collection_name=collection, points=points, wait=True)
        log.debug(f"Upserted {len(points)} points into {collection}")

    async def query(
        self,
        collection: str,
        query_text: Optional[str] = None,
        query_embedding: Optional[List[float]] = None,
        n_results: int = 10,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorDocument]:
        client = self._require("query")
        if query_embedding is None:
            if not query_text:
                raise ValueError("query() needs query_text or query_embedding")
            query_embedding = await self._embed_query(query_text)

        response = await self._call(
            client.query_points,
            collection_name=collection,
            query=list(query_embedding),
            query_filter=to_qdrant_filter(where),
            limit=n_results,
            with_payload=True,
        )
        return [self._to_document(point, with_score=True) for point in response.points]

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
        client = self._require("get_documents")

        if ids is not None:
            if not ids:
                return []
            points = await self._call(
                client.retrieve, collection_name=collection, ids=list(ids), with_payload=True,
            )
            documents = [self._to_document(point) for point in points]
            if where:
                documents = [doc for doc in documents if matches_filter(doc.metadata, where)]
            return _window(_sorted(documents, order_by, descending), offset, limit)

        scroll_filter = to_qdrant_filter(where)
        if order_by is not None and limit is not None:
            # Ordered scrolls return a single page
            if offset + limit <= 0:
                return []
            points, _ = await self._call(
                client.scroll,
                collection_name=collection,
                scroll_filter=scroll_filter,
                limit=offset + limit,
                order_by=OrderBy(key=order_by, direction=Direction.DESC if descending else Direction.ASC),
                with_payload=True,
            )
            return [self._to_document(point) for point in points][offset:]

        # Scroll offsets are point ids, so integer offsets are applied client side
        wanted = offset + limit if limit is not None else None
        collected: List[VectorDocument] = []
        next_offset = None
        while True:
            page_size = SCROLL_PAGE_SIZE if wanted is None else min(SCROLL_PAGE_SIZE, wanted - len(collected))
            if page_size <= 0:
                break
            points, next_offset = await self._call(
                client.scroll,
                collection_name=collection,
                scroll_filter=scroll_filter,
                limit=page_size,
                offset=next_offset,
                with_payload=True,
            )
            collected.extend(self._to_document(point) for point in points)
            if next_offset is None:
                break
        if order_by is not None:
            return _window(_sorted(collected, order_by, descending), offset, limit)
        return collected[offset:wanted]

    async def create_ordering_index(self, collection: str, field: str) -> None:
        client = self._require("create_ordering_index")
        await self._call(
            client.create_payload_index,
            collection_name=collection,
            field_name=field,
            field_schema=PayloadSchemaType.FLOAT,
        )
        log.debug("Ordering index ready", collection=collection, field=field)

    async def update_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Optional[Sequence[str]] = None,
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        client = self._require("update_documents")
        if not ids:
            return

        if documents is not None and embeddings is None and self.embedder is not None:
            embeddings = await self._embed_documents(documents, "update_documents")

        for index, point_id in enumerate(ids):
            payload: Dict[str, Any] = {}
            if metadatas is not None:
                payload.update(metadatas[index])
            if documents is not None:
                payload[DOCUMENT_KEY] = documents[index]
            if payload:
                await self._call(
                    client.set_payload, collection_name=collection, payload=payload, points=[point_id],
                )

        if embeddings is not None:
            await self._call(
                client.update_vectors,
                collection_name=collection,
                points=[
                    PointVectors(id=point_id, vector=list(vector))
                    for point_id, vector in zip(ids, embeddings)
                ],
            )

    async def delete_documents(
        self,
        collection: str,
        ids: Optional[Sequence[str]] = None,
        where: Optional[Mapping[str, Any]] = None,
    ) -> None:
        client = self._require("delete_documents")
        if ids is not None:
            if not ids:
                return
            selector = PointIdsList(points=list(ids))
        elif where:
            selector = FilterSelector(filter=to_qdrant_filter(where))
        else:
            raise ValueError("delete_documents() needs ids or where")

        await self._call(client.delete, collection_name=collection, points_selector=selector, wait=True)

    async def count(self, collection: str, where: Optional[Mapping[str, Any]] = None) -> int:
        client = self._require("count")
        result = await self._call(
            client.count, collection_name=collection, count_filter=to_qdrant_filter(where), exact=True,
        )
        return result.count
