"""In-memory VectorStore for development and tests."""

import itertools
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import structlog

from agentic_memory.models import clamp
from agentic_memory.storage.interfaces import (
    VectorDocument,
    VectorStore,
    matches_filter,
    validate_filter,
)

log = structlog.get_logger()

_TOKEN_RE = re.compile(r"\w+")


def _tokens(text: Optional[str]) -> set:
    return set(_TOKEN_RE.findall((text or "").lower()))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


def token_overlap(query: Optional[str], document: Optional[str]) -> float:
    """Share of query tokens found in the document."""
    query_tokens = _tokens(query)
    if not query_tokens:
        return 0.0
    return len(query_tokens & _tokens(document)) / len(query_tokens)


@dataclass
class _Record:
    document: str
    metadata: Dict[str, Any]
    embedding: Optional[List[float]]
    seq: int = 0


@dataclass
class _Collection:
    dimension: Optional[int]
    records: Dict[str, _Record] = field(default_factory=dict)


class InMemoryVectorStore(VectorStore):
    """
    Dict-backed VectorStore.

    Uses linear scan for every query. Scores are cosine similarity when both
    sides carry embeddings, token overlap otherwise. Not suitable for
    production use.
    """

    provider_name = "inmemory"

    def __init__(self, embedder: Optional[Any] = None):
        self.embedder = embedder
        self._collections: Dict[str, _Collection] = {}
        self._seq = itertools.count()

    def is_available(self) -> bool:
        return True

    async def health_check(self) -> bool:
        return True

    def _get(self, name: str) -> _Collection:
        try:
            return self._collections[name]
        except KeyError:
            raise KeyError(f"Collection not found: {name}") from None

    @staticmethod
    def _to_document(doc_id: str, record: _Record, score: Optional[float] = None) -> VectorDocument:
        return VectorDocument(
            id=doc_id,
            document=record.document,
            metadata=dict(record.metadata),
            embedding=list(record.embedding) if record.embedding is not None else None,
            score=score,
        )

    # Collections

    async def create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        if name in self._collections:
            raise ValueError(f"Collection already exists: {name}")
        self._collections[name] = _Collection(dimension=dimension)

    async def delete_collection(self, name: str) -> None:
        self._collections.pop(name, None)

    async def get_or_create_collection(self, name: str, dimension: Optional[int] = None) -> None:
        if name not in self._collections:
            await self.create_collection(name, dimension)

    async def list_collections(self) -> List[str]:
        return list(self._collections)

    # Documents

    async def add_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Sequence[str],
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        target = self._get(collection)
        if embeddings is None and self.embedder is not None and documents:
            embeddings = await self.embedder.encode_batch_async(list(documents), is_query=False)

        for index, doc_id in enumerate(ids):
            target.records[doc_id] = _Record(
                document=documents[index],
                metadata=dict(metadatas[index]) if metadatas else {},
                embedding=list(embeddings[index]) if embeddings is not None else None,
                seq=next(self._seq),
            )

    async def query(
        self,
        collection: str,
        query_text: Optional[str] = None,
        query_embedding: Optional[List[float]] = None,
        n_results: int = 10,
        where: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorDocument]:
        validate_filter(where)
        target = self._get(collection)
        if query_embedding is None and query_text and self.embedder is not None:
            query_embedding = await self.embedder.encode_query_async(query_text)

        scored = []
        for doc_id, record in target.records.items():
            if not matches_filter(record.metadata, where):
                continue
            if query_embedding is not None and record.embedding is not None:
                score = cosine_similarity(query_embedding, record.embedding)
            else:
                score = token_overlap(query_text, record.document)
            scored.append((clamp(score), record.seq, doc_id, record))

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            self._to_document(doc_id, record, score)
            for score, _, doc_id, record in scored[:n_results]
        ]

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
        validate_filter(where)
        target = self._get(collection)
        if ids is not None:
            candidates = [(i, target.records[i]) for i in ids if i in target.records]
        else:
            candidates = sorted(target.records.items(), key=lambda item: item[1].seq)

        matched = [
            self._to_document(doc_id, record)
            for doc_id, record in candidates
            if matches_filter(record.metadata, where)
        ]
        if order_by is not None:
            matched.sort(key=lambda doc: doc.metadata.get(order_by, 0), reverse=descending)
        end = offset + limit if limit is not None else None
        return matched[offset:end]

    async def update_documents(
        self,
        collection: str,
        ids: Sequence[str],
        documents: Optional[Sequence[str]] = None,
        metadatas: Optional[Sequence[Mapping[str, Any]]] = None,
        embeddings: Optional[Sequence[List[float]]] = None,
    ) -> None:
        target = self._get(collection)
        for index, doc_id in enumerate(ids):
            record = target.records.get(doc_id)
            if record is None:
                log.debug("Skipping update of unknown document", collection=collection, id=doc_id)
                continue
            if documents is not None:
                record.document = documents[index]
            if metadatas is not None:
                record.metadata.update(metadatas[index])
            if embeddings is not None:
                record.embedding = list(embeddings[index])

    async def delete_documents(
        self,
        collection: str,
        ids: Optional[Sequence[str]] = None,
        where: Optional[Mapping[str, Any]] = None,
    ) -> None:
        validate_filter(where)
        target = self._get(collection)
        if ids is None and not where:
            raise ValueError("delete_documents() needs ids or where")

        candidates = list(ids) if ids is not None else list(target.records)
        for doc_id in candidates:
            record = target.records.get(doc_id)
            if record is not None and matches_filter(record.metadata, where):
                del target.records[doc_id]

    async def count(self, collection: str, where: Optional[Mapping[str, Any]] = None) -> int:
        validate_filter(where)
        target = self._get(collection)
        return sum(1 for record in target.records.values() if matches_filter(record.metadata, where))
