"""
Memory Embeddings
=================

E5 sentence-transformers encoder used when memories are stored or searched
without precomputed vectors.

E5 models expect a role prefix: "query: " for search text and "passage: "
for stored content. The model is loaded on first encode, never on import,
and one process-wide instance is shared through get_instance().

Environment Variables:
    EMBEDDING_MODEL: Model name (default: intfloat/multilingual-e5-large)
    EMBEDDING_DEVICE: cpu / cuda (default: cuda when available)
    EMBEDDING_BATCH_SIZE: Encode batch size (default: 32)
    EMBEDDING_NORMALIZE: Normalize vectors for cosine search (default: true)
"""

import asyncio
from dataclasses import dataclass, field
from threading import Lock
from typing import List, Optional, Sequence

import structlog

try:
    from sentence_transformers import SentenceTransformer
    import torch
except ImportError:
    raise ImportError(
        "sentence-transformers and torch are required for EmbeddingService. "
        "Install with: pip install agentic-memory[embeddings]"
    )

from agentic_memory.config.env import get_env_bool, get_env_int, get_env_optional, get_env_str
from agentic_memory.errors import MemoryEmbeddingError, MemoryErrorContext

log = structlog.get_logger()

QUERY_PREFIX = "query: "
PASSAGE_PREFIX = "passage: "


@dataclass
class EmbeddingConfig:
    model_name: str = field(
        default_factory=lambda: get_env_str("EMBEDDING_MODEL", "intfloat/multilingual-e5-large")
    )
    device: Optional[str] = field(default_factory=lambda: get_env_optional("EMBEDDING_DEVICE"))
    batch_size: int = field(default_factory=lambda: get_env_int("EMBEDDING_BATCH_SIZE", 32))
    normalize: bool = field(default_factory=lambda: get_env_bool("EMBEDDING_NORMALIZE", True))


class EmbeddingService:
    """
    Lazily loaded E5 encoder.

    Usage:
        embedder = EmbeddingService.get_instance()
        vector = await embedder.encode_query_async("what did the user prefer?")
        vectors = await embedder.encode_batch_async(["note one", "note two"])
    """

    _instance: Optional["EmbeddingService"] = None
    _lock: Lock = Lock()

    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self.device = self.config.device or ("cuda" if torch.cuda.is_available() else "cpu")
        self._model: Optional[SentenceTransformer] = None
        log.info(
            "Embedding service configured",
            model=self.config.model_name,
            device=self.device,
            batch_size=self.config.batch_size,
        )

    @classmethod
    def get_instance(cls, config: Optional[EmbeddingConfig] = None) -> "EmbeddingService":
        """Shared instance; `config` only applies to the first call."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(config)
        return cls._instance

    @property
    def model(self) -> SentenceTransformer:
        if self._model is not None:
            return self._model
        with self._lock:
            if self._model is None:
                log.info(f"Loading embedding model {self.config.model_name} on {self.device}")
                try:
                    self._model = SentenceTransformer(self.config.model_name, device=self.device)
                except Exception as e:
                    raise MemoryEmbeddingError(
                        f"Failed to load embedding model: {e}",
                        MemoryErrorContext(operation="load_model", metadata={"model": self.config.model_name}),
                    ) from e
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def embedding_dimension(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    def _encode(self, texts: Sequence[str], prefix: str) -> List[List[float]]:
        vectors = self.model.encode(
            [prefix + text for text in texts],
            batch_size=self.config.batch_size,
            normalize_embeddings=self.config.normalize,
            convert_to_numpy=True,
        )
        return vectors.tolist()

    def encode_query(self, text: str) -> List[float]:
        return self._encode([text], QUERY_PREFIX)[0]

    def encode_document(self, text: str) -> List[float]:
        return self._encode([text], PASSAGE_PREFIX)[0]

    def encode_batch(self, texts: Sequence[str], is_query: bool = False) -> List[List[float]]:
        if not texts:
            return []
        log.debug("Encoding batch", count=len(texts), is_query=is_query)
        return self._encode(texts, QUERY_PREFIX if is_query else PASSAGE_PREFIX)

    async def _in_executor(self, fn, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def encode_query_async(self, text: str) -> List[float]:
        return await self._in_executor(self.encode_query, text)

    async def encode_document_async(self, text: str) -> List[float]:
        return await self._in_executor(self.encode_document, text)

    async def encode_batch_async(self, texts: Sequence[str], is_query: bool = False) -> List[List[float]]:
        return await self._in_executor(self.encode_batch, list(texts), is_query)

    def __repr__(self) -> str:
        return f"EmbeddingService(model={self.config.model_name}, device={self.device}, loaded={self.is_loaded})"
