"""
Tests for the call guards (critical_call / best_effort_call).
"""

import pytest

from agentic_memory.core.guards import best_effort_call, critical_call
from agentic_memory.errors import (
    AgentMemoryError,
    MemoryErrorContext,
    MemoryRelationshipError,
    MemoryStorageError,
)


async def _return(value):
    return value


async def _raise(error):
    raise error


class TestCriticalCall:

    @pytest.mark.asyncio
    async def test_returns_value(self):
        assert await critical_call(_return(42), MemoryErrorContext(operation="test")) == 42

    @pytest.mark.asyncio
    async def test_wraps_with_factory(self):
        context = MemoryErrorContext(operation="store", thread_id="t1")

        with pytest.raises(MemoryStorageError) as exc_info:
            await critical_call(_raise(OSError("disk full")), context, MemoryStorageError.document_storage)

        error = exc_info.value
        assert error.message == "disk full"
        assert error.code == "DOCUMENT_STORAGE_ERROR"
        assert error.context is context
        assert isinstance(error.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_wraps_without_factory(self):
        with pytest.raises(AgentMemoryError) as exc_info:
            await critical_call(_raise(RuntimeError("boom")), MemoryErrorContext(operation="x"))

        assert exc_info.value.message == "boom"

    @pytest.mark.asyncio
    async def test_memory_errors_pass_through(self):
        original = MemoryRelationshipError("graph broke")

        with pytest.raises(MemoryRelationshipError) as exc_info:
            await critical_call(_raise(original), MemoryErrorContext(), MemoryStorageError.document_storage)

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_invalid_arguments_pass_through(self):
        with pytest.raises(ValueError):
            await critical_call(_raise(ValueError("bad thread id")), MemoryErrorContext())


class TestBestEffortCall:

    @pytest.mark.asyncio
    async def test_returns_value(self):
        assert await best_effort_call(_return("ok"), MemoryErrorContext()) == "ok"

    @pytest.mark.asyncio
    async def test_swallows_and_returns_default(self):
        result = await best_effort_call(
            _raise(ConnectionError("refused")),
            MemoryErrorContext(operation="track", thread_id="t1"),
            default=[],
        )
        assert result == []

    @pytest.mark.asyncio
    async def test_swallows_memory_errors(self):
        result = await best_effort_call(_raise(MemoryRelationshipError("x")), MemoryErrorContext())
        assert result is None
