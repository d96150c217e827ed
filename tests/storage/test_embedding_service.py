"""
Tests for EmbeddingService

The sentence-transformers model is replaced by a mock, so these tests check
the E5 prefixes, the shared instance and the async wrappers without a download.
"""

import pytest
from unittest.mock import MagicMock, patch

np = pytest.importorskip("numpy")
pytest.importorskip("sentence_transformers")

from agentic_memory.errors import MemoryEmbeddingError
from agentic_memory.storage.vectors import embeddings
from agentic_memory.storage.vectors.embeddings import EmbeddingConfig, EmbeddingService


@pytest.fixture(autouse=True)
def reset_singleton():
    EmbeddingService._instance = None
    yield
    EmbeddingService._instance = None


@pytest.fixture
def model():
    mock = MagicMock()
    mock.get_sentence_embedding_dimension.return_value = 3
    mock.encode.side_effect = lambda texts, **kwargs: np.array(
        [[float(i), 1.0, 0.0] for i, _ in enumerate(texts)]
    )
    return mock


@pytest.fixture
def service(model):
    with patch.object(embeddings, "SentenceTransformer", return_value=model):
        yield EmbeddingService(EmbeddingConfig(model_name="test-model", device="cpu", batch_size=8))


def test_env_config(monkeypatch):
    monkeypatch.setenv("EMBEDDING_MODEL", "env-model")
    monkeypatch.setenv("EMBEDDING_BATCH_SIZE", "4")
    monkeypatch.setenv("EMBEDDING_NORMALIZE", "false")

    config = EmbeddingConfig()

    assert config.model_name == "env-model"
    assert config.batch_size == 4
    assert config.normalize is False


def test_shared_instance():
    config = EmbeddingConfig(device="cpu")
    first = EmbeddingService.get_instance(config)

    assert EmbeddingService.get_instance() is first
    assert first.config is config


def test_lazy_loading(service):
    assert service.is_loaded is False

    assert service.embedding_dimension == 3
    assert service.is_loaded is True


def test_query_prefix(service, model):
    assert service.encode_query("what?") == [0.0, 1.0, 0.0]
    assert model.encode.call_args.args[0] == ["query: what?"]
    assert model.encode.call_args.kwargs["batch_size"] == 8


def test_document_prefix(service, model):
    service.encode_document("some text")
    assert model.encode.call_args.args[0] == ["passage: some text"]


def test_batch(service, model):
    vectors = service.encode_batch(["a", "b"], is_query=True)

    assert vectors == [[0.0, 1.0, 0.0], [1.0, 1.0, 0.0]]
    assert model.encode.call_args.args[0] == ["query: a", "query: b"]
    assert service.encode_batch([]) == []


@pytest.mark.asyncio
async def test_async_wrappers(service):
    assert await service.encode_query_async("q") == [0.0, 1.0, 0.0]
    assert len(await service.encode_batch_async(["a", "b", "c"])) == 3


def test_load_failure_raises_embedding_error():
    with patch.object(embeddings, "SentenceTransformer", side_effect=OSError("no such model")):
        service = EmbeddingService(EmbeddingConfig(model_name="missing", device="cpu"))
        with pytest.raises(MemoryEmbeddingError, match="no such model"):
            service.encode_query("x")
