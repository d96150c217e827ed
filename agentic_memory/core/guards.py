"""
Call Guards
===========

The two wrappers encoding the orchestrator's failure contract:

- critical_call: vector store calls. Failures are normalized into memory
  errors and re-raised to the caller.
- best_effort_call: graph store calls. Failures are normalized, logged with
  structured context and swallowed; the caller gets `default` back.

Usage:
    entry = await critical_call(
        storage.store(thread_id, content, metadata),
        MemoryErrorContext(operation="store", thread_id=thread_id),
        error_factory=MemoryStorageError.document_storage,
    )
    await best_effort_call(
        graph.track(entry),
        MemoryErrorContext(operation="track", thread_id=thread_id, memory_id=entry.id),
    )
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from agentic_memory.errors import (
    AgentMemoryError,
    MemoryErrorContext,
    extract_error_message,
    wrap_memory_error,
)

log = structlog.get_logger()

T = TypeVar("T")

ErrorFactory = Callable[[str, Optional[MemoryErrorContext]], AgentMemoryError]


async def critical_call(
    awaitable: Awaitable[T],
    context: MemoryErrorContext,
    error_factory: Optional[ErrorFactory] = None,
) -> T:
    """
    Await `awaitable`, re-raising every failure as an AgentMemoryError.

    Memory errors and invalid-argument errors (ValueError, TypeError) pass
    through untouched. Any other exception becomes
    `error_factory(message, context)` (or a base AgentMemoryError) chained to
    the original.
    """
    try:
        return await awaitable
    except (AgentMemoryError, ValueError, TypeError):
        raise
    except Exception as e:
        if error_factory is not None:
            raise error_factory(extract_error_message(e), context) from e
        raise wrap_memory_error(e, context) from e


async def best_effort_call(
    awaitable: Awaitable[T],
    context: MemoryErrorContext,
    default: Any = None,
) -> Optional[T]:
    """Await `awaitable`; on failure log with context and return `default`."""
    try:
        return await awaitable
    except Exception as e:
        error = wrap_memory_error(e, context)
        log.error(
            "Best-effort memory operation failed",
            error=error.message,
            error_type=type(e).__name__,
            code=error.code,
            **context.to_dict(),
        )
        return default
