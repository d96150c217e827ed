"""
Tests for SummarizationService strategies and the deterministic fallback.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from agentic_memory.models import MemoryEntry, MemoryMetadata, SummarizationOptions
from agentic_memory.services.summarization import (
    CONSOLIDATE_PROMPT,
    DEFAULT_PROMPT,
    SummarizationService,
    fallback_summary,
    format_entries,
)


def _entries(*contents, **metadata):
    return [
        MemoryEntry(id=f"m{i}", thread_id="t1", content=content, metadata=MemoryMetadata(**metadata))
        for i, content in enumerate(contents)
    ]


@pytest.fixture
def llm():
    client = MagicMock()
    client.is_configured = True
    client.generate_completion = AsyncMock(return_value="LLM summary")
    return client


class TestFallback:

    def test_empty(self):
        assert fallback_summary([]) == ""

    def test_counts_topics_and_recent(self):
        entries = _entries("one", "two", "three", "four", tags=["python"], source="user")

        summary = fallback_summary(entries)

        assert summary.startswith("Conversation summary (4 memories total: 4 conversation)")
        assert "Topics: python" in summary
        assert "user: four" in summary
        assert "user: one" not in summary

    def test_long_content_truncated(self):
        summary = fallback_summary(_entries("x" * 300))
        assert "x" * 100 + "..." in summary

    def test_format_entries(self):
        assert format_entries(_entries("hi", source="agent")) == "[agent] hi"


class TestSummarizationService:

    @pytest.mark.asyncio
    async def test_no_llm_uses_fallback(self):
        service = SummarizationService()

        summary = await service.summarize(_entries("hello"))

        assert service.has_llm is False
        assert "1 memories total" in summary

    @pytest.mark.asyncio
    async def test_batch_single_call(self, llm):
        service = SummarizationService(llm)

        summary = await service.summarize(_entries("a", "b", "c"), SummarizationOptions(strategy="batch"))

        assert summary == "LLM summary"
        llm.generate_completion.assert_awaited_once()
        prompt = llm.generate_completion.await_args.args[0]
        assert prompt.startswith(DEFAULT_PROMPT)
        assert "[conversation] a" in prompt

    @pytest.mark.asyncio
    async def test_progressive_consolidates_chunks(self, llm):
        llm.generate_completion = AsyncMock(side_effect=["chunk 1", "chunk 2", "final"])
        service = SummarizationService(llm)

        summary = await service.summarize(
            _entries("a", "b", "c"), SummarizationOptions(strategy="progressive", max_messages=2),
        )

        assert summary == "final"
        assert llm.generate_completion.await_count == 3
        consolidate = llm.generate_completion.await_args_list[-1].args[0]
        assert consolidate.startswith(CONSOLIDATE_PROMPT)
        assert "chunk 1\n\nchunk 2" in consolidate

    @pytest.mark.asyncio
    async def test_sliding_window(self, llm):
        llm.generate_completion = AsyncMock(side_effect=["older part", "recent part"])
        service = SummarizationService(llm)

        summary = await service.summarize(
            _entries("a", "b", "c"), SummarizationOptions(strategy="sliding_window", max_messages=2),
        )

        assert summary == "Previous context: older part\n\nRecent conversation: recent part"

    @pytest.mark.asyncio
    async def test_custom_prompt(self, llm):
        service = SummarizationService(llm)

        await service.summarize(_entries("a"), SummarizationOptions(custom_prompt="List decisions only."))

        assert llm.generate_completion.await_args.args[0].startswith("List decisions only.")

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back(self, llm):
        llm.generate_completion = AsyncMock(side_effect=RuntimeError("rate limited"))
        service = SummarizationService(llm)

        summary = await service.summarize(_entries("hello"))

        assert summary.startswith("Conversation summary")

    @pytest.mark.asyncio
    async def test_max_length(self, llm):
        llm.generate_completion = AsyncMock(return_value="x" * 50)
        service = SummarizationService(llm)

        summary = await service.summarize(_entries("a"), SummarizationOptions(max_length=10))

        assert summary == "x" * 7 + "..."

    def test_invalid_options(self):
        with pytest.raises(ValueError):
            SummarizationOptions(max_messages=0)
        with pytest.raises(ValueError):
            SummarizationOptions(strategy="telepathy")
