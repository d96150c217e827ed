"""
Memory Errors
=============

Typed error families for the memory subsystem.

Hierarchy:
    AgentMemoryError
    ├── MemoryStorageError        vector path, always propagated to the caller
    ├── MemoryRelationshipError   graph path, caught and logged by the orchestrator
    ├── MemoryEmbeddingError
    ├── MemorySummarizationError
    ├── MemoryConfigurationError
    ├── MemoryTimeoutError
    └── BackendUnavailableError   adapter invoked without a bound client

Every error carries a MemoryErrorContext so failure logs can be emitted with
structured key/value pairs instead of interpolated strings.

Usage:
    from agentic_memory.errors import MemoryStorageError, MemoryErrorContext

    raise MemoryStorageError.document_storage(
        "Failed to store memory",
        MemoryErrorContext(operation="store", thread_id="t1"),
    )
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class MemoryErrorContext:
    """
    Structured context attached to every memory error.

    Attributes:
        operation: Orchestrator/service operation that failed
        thread_id: Thread the operation was scoped to
        user_id: User the operation was scoped to
        provider: Backend engine involved (qdrant, falkordb, ...)
        memory_id: Single memory entry involved
        batch_size: Size of the batch being written
        memory_count: Number of entries involved (delete/cleanup)
        metadata: Free-form extra context
    """
    operation: Optional[str] = None
    thread_id: Optional[str] = None
    user_id: Optional[str] = None
    provider: Optional[str] = None
    memory_id: Optional[str] = None
    batch_size: Optional[int] = None
    memory_count: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Return only the populated fields (suitable as log kwargs)."""
        return {
            key: value
            for key, value in asdict(self).items()
            if value is not None and value != {}
        }


class AgentMemoryError(Exception):
    """Base class for every error raised by the memory subsystem."""

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        context: Optional[MemoryErrorContext] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or MemoryErrorContext()
        self.code = code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context.to_dict(),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


class MemoryStorageError(AgentMemoryError):
    """Vector store failure (document storage, retrieval or search)."""

    default_code = "STORAGE_ERROR"

    @classmethod
    def document_storage(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryStorageError":
        return cls(message, context, "DOCUMENT_STORAGE_ERROR")

    @classmethod
    def document_retrieval(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryStorageError":
        return cls(message, context, "DOCUMENT_RETRIEVAL_ERROR")

    @classmethod
    def search_operation(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryStorageError":
        return cls(message, context, "SEARCH_OPERATION_ERROR")


class MemoryRelationshipError(AgentMemoryError):
    """Graph store failure. Never surfaced past the orchestrator."""

    default_code = "RELATIONSHIP_ERROR"

    @classmethod
    def graph_storage(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryRelationshipError":
        return cls(message, context, "GRAPH_STORAGE_ERROR")

    @classmethod
    def relationship_query(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryRelationshipError":
        return cls(message, context, "RELATIONSHIP_QUERY_ERROR")

    @classmethod
    def relationship_creation(
        cls, message: str, context: Optional[MemoryErrorContext] = None
    ) -> "MemoryRelationshipError":
        return cls(message, context, "RELATIONSHIP_CREATION_ERROR")


class MemoryEmbeddingError(AgentMemoryError):
    default_code = "EMBEDDING_ERROR"


class MemorySummarizationError(AgentMemoryError):
    default_code = "SUMMARIZATION_ERROR"


class MemoryConfigurationError(AgentMemoryError):
    default_code = "CONFIGURATION_ERROR"


class MemoryTimeoutError(AgentMemoryError):
    default_code = "TIMEOUT_ERROR"


class BackendUnavailableError(AgentMemoryError):
    """Raised by an adapter whose engine client was never bound."""

    default_code = "BACKEND_NOT_AVAILABLE"

    def __init__(self, provider: str, operation: Optional[str] = None):
        super().__init__(
            f"{provider} backend not available",
            MemoryErrorContext(operation=operation, provider=provider),
        )
        self.provider = provider


def extract_error_message(error: Any) -> str:
    """Extract a readable message from any raised value."""
    if isinstance(error, AgentMemoryError):
        return error.message
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


def is_memory_error(error: Any) -> bool:
    return isinstance(error, AgentMemoryError)


def wrap_memory_error(
    error: Any,
    context: Optional[MemoryErrorContext] = None,
    code: Optional[str] = None,
) -> AgentMemoryError:
    """
    Normalize any raised value into an AgentMemoryError.

    Memory errors are returned untouched; anything else becomes a base
    AgentMemoryError carrying the original message, with the original
    exception stored as __cause__.

    Args:
        error: The raised value
        context: Context to attach when wrapping
        code: Error code to attach when wrapping

    Returns:
        AgentMemoryError instance
    """
    if isinstance(error, AgentMemoryError):
        return error

    wrapped = AgentMemoryError(extract_error_message(error), context, code)
    if isinstance(error, BaseException):
        wrapped.__cause__ = error
    return wrapped
