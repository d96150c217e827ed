"""
Tests for QdrantVectorAdapter with a mocked QdrantClient.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from qdrant_client.models import Direction, OrderBy, PayloadSchemaType

from agentic_memory.errors import BackendUnavailableError, MemoryEmbeddingError
from agentic_memory.storage.vectors.qdrant import DOCUMENT_KEY, QdrantVectorAdapter


def _point(point_id, document, score=None, **payload):
    return SimpleNamespace(id=point_id, payload={**payload, DOCUMENT_KEY: document}, score=score, vector=None)


@pytest.fixture
def client():
    mock = MagicMock()
    mock.get_collections.return_value = SimpleNamespace(collections=[SimpleNamespace(name="memories")])
    return mock


@pytest.fixture
def embedder():
    mock = MagicMock()
    mock.encode_batch_async = AsyncMock(return_value=[[0.1, 0.2]])
    mock.encode_query_async = AsyncMock(return_value=[0.3, 0.4])
    return mock


class TestAvailability:

    @pytest.mark.asyncio
    async def test_unbound(self):
        adapter = QdrantVectorAdapter()

        assert adapter.is_available() is False
        assert await adapter.health_check() is False
        with pytest.raises(BackendUnavailableError) as exc_info:
            await adapter.count("memories")
        assert exc_info.value.context.operation == "count"

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        assert await QdrantVectorAdapter(client).health_check() is True

        client.get_collections.side_effect = ConnectionError("refused")
        assert await QdrantVectorAdapter(client).health_check() is False


class TestCollections:

    @pytest.mark.asyncio
    async def test_get_or_create_existing(self, client):
        await QdrantVectorAdapter(client).get_or_create_collection("memories")
        client.create_collection.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_or_create_new(self, client):
        await QdrantVectorAdapter(client, dimension=8).get_or_create_collection("other")

        kwargs = client.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "other"
        assert kwargs["vectors_config"].size == 8


class TestDocuments:

    @pytest.mark.asyncio
    async def test_add_without_embedder(self, client):
        with pytest.raises(MemoryEmbeddingError):
            await QdrantVectorAdapter(client).add_documents("memories", ids=["a"], documents=["x"])
        client.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_embeds_and_upserts(self, client, embedder):
        adapter = QdrantVectorAdapter(client, embedder=embedder)

        await adapter.add_documents("memories", ids=["a"], documents=["x"], metadatas=[{"thread_id": "t1"}])

        embedder.encode_batch_async.assert_awaited_once_with(["x"], is_query=False)
        point = client.upsert.call_args.kwargs["points"][0]
        assert point.id == "a"
        assert point.vector == [0.1, 0.2]
        assert point.payload == {"thread_id": "t1", DOCUMENT_KEY: "x"}

    @pytest.mark.asyncio
    async def test_embedder_failure_wrapped(self, client, embedder):
        embedder.encode_batch_async = AsyncMock(side_effect=RuntimeError("cuda oom"))

        with pytest.raises(MemoryEmbeddingError, match="cuda oom"):
            await QdrantVectorAdapter(client, embedder=embedder).add_documents("memories", ids=["a"], documents=["x"])

    @pytest.mark.asyncio
    async def test_query(self, client, embedder):
        client.query_points.return_value = SimpleNamespace(points=[
            _point("a", "hello", score=1.2, thread_id="t1"),
            _point("b", "world", score=0.4, thread_id="t1"),
        ])
        adapter = QdrantVectorAdapter(client, embedder=embedder)

        docs = await adapter.query("memories", query_text="hi", n_results=2, where={"thread_id": "t1"})

        assert [(doc.id, doc.document, doc.score) for doc in docs] == [("a", "hello", 1.0), ("b", "world", 0.4)]
        assert docs[0].metadata == {"thread_id": "t1"}
        kwargs = client.query_points.call_args.kwargs
        assert kwargs["query"] == [0.3, 0.4]
        assert kwargs["limit"] == 2
        assert kwargs["query_filter"] is not None

    @pytest.mark.asyncio
    async def test_query_needs_text_or_vector(self, client):
        with pytest.raises(ValueError):
            await QdrantVectorAdapter(client).query("memories")

    @pytest.mark.asyncio
    async def test_scroll_pages(self, client):
        client.scroll.side_effect = [
            ([_point("a", "1"), _point("b", "2")], "next"),
            ([_point("c", "3")], None),
        ]

        docs = await QdrantVectorAdapter(client).get_documents("memories", offset=1)

        assert [doc.id for doc in docs] == ["b", "c"]
        assert client.scroll.call_args_list[1].kwargs["offset"] == "next"

    @pytest.mark.asyncio
    async def test_ordered_read_uses_server_order(self, client):
        client.scroll.return_value = ([_point("new", "2", created_ts=2.0), _point("old", "1", created_ts=1.0)], None)

        docs = await QdrantVectorAdapter(client).get_documents(
            "memories", limit=2, order_by="created_ts", descending=True,
        )

        assert [doc.id for doc in docs] == ["new", "old"]
        kwargs = client.scroll.call_args.kwargs
        assert kwargs["order_by"] == OrderBy(key="created_ts", direction=Direction.DESC)
        assert kwargs["limit"] == 2
        assert "offset" not in kwargs

    @pytest.mark.asyncio
    async def test_unlimited_ordered_read_sorts_every_page(self, client):
        client.scroll.side_effect = [
            ([_point("b", "2", created_ts=2.0), _point("c", "3", created_ts=3.0)], "next"),
            ([_point("a", "1", created_ts=1.0)], None),
        ]

        docs = await QdrantVectorAdapter(client).get_documents("memories", order_by="created_ts")

        assert [doc.id for doc in docs] == ["a", "b", "c"]
        assert client.scroll.call_count == 2

    @pytest.mark.asyncio
    async def test_create_ordering_index(self, client):
        await QdrantVectorAdapter(client).create_ordering_index("memories", "created_ts")

        client.create_payload_index.assert_called_once_with(
            collection_name="memories", field_name="created_ts", field_schema=PayloadSchemaType.FLOAT,
        )

    @pytest.mark.asyncio
    async def test_get_by_ids_filters_client_side(self, client):
        client.retrieve.return_value = [_point("a", "1", thread_id="t1"), _point("b", "2", thread_id="t2")]

        docs = await QdrantVectorAdapter(client).get_documents("memories", ids=["a", "b"], where={"thread_id": "t2"})

        assert [doc.id for doc in docs] == ["b"]

    @pytest.mark.asyncio
    async def test_update_sets_payload(self, client):
        await QdrantVectorAdapter(client).update_documents("memories", ids=["a"], metadatas=[{"access_count": 1}])

        client.set_payload.assert_called_once_with(
            collection_name="memories", payload={"access_count": 1}, points=["a"],
        )
        client.update_vectors.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_needs_selector(self, client):
        with pytest.raises(ValueError):
            await QdrantVectorAdapter(client).delete_documents("memories")

    @pytest.mark.asyncio
    async def test_count(self, client):
        client.count.return_value = SimpleNamespace(count=5)

        assert await QdrantVectorAdapter(client).count("memories", {"thread_id": "t1"}) == 5
        assert client.count.call_args.kwargs["exact"] is True
