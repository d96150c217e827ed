"""
Summarization Service
=====================

Summarizes a thread's entries with an LLM, falling back to a deterministic
summary when no LLM is configured or the LLM call fails.

Strategies:
    progressive     summarize chunks of max_messages, then consolidate
    batch           one call over all entries
    sliding_window  older entries and the last max_messages summarized apart
"""

from collections import Counter
from typing import List, Optional, Sequence

import structlog

from agentic_memory.errors import MemoryErrorContext, MemorySummarizationError
from agentic_memory.models import MemoryEntry, SummarizationOptions, SummarizationStrategy
from agentic_memory.services.llm import OpenRouterClient

log = structlog.get_logger()

DEFAULT_PROMPT = """Please provide a concise summary of the following conversation memories. Focus on:
1. Key topics discussed
2. Important decisions or conclusions reached
3. Action items or next steps mentioned
4. Main questions asked and answered

Keep the summary informative but brief, capturing the context needed to continue the conversation later."""

CONSOLIDATE_PROMPT = "Consolidate these summaries into a single coherent summary:"
OLDER_PROMPT = "Summarize this earlier part of the conversation:"
RECENT_PROMPT = "Summarize this recent part of the conversation:"

PREVIEW_LENGTH = 100


def _speaker(entry: MemoryEntry) -> str:
    return entry.metadata.source or entry.type.value


def format_entries(entries: Sequence[MemoryEntry]) -> str:
    return "\n".join(f"[{_speaker(entry)}] {entry.content}" for entry in entries)


def fallback_summary(entries: Sequence[MemoryEntry]) -> str:
    """Deterministic summary: counts, top tags and the last three entries."""
    if not entries:
        return ""

    types = Counter(entry.type.value for entry in entries)
    tags = Counter(tag for entry in entries for tag in entry.metadata.tags)

    type_part = ", ".join(f"{count} {name}" for name, count in types.most_common())
    lines = [f"Conversation summary ({len(entries)} memories total: {type_part})"]
    if tags:
        lines.append("Topics: " + ", ".join(tag for tag, _ in tags.most_common(5)))

    lines.append("")
    lines.append("Recent memories:")
    for entry in entries[-3:]:
        preview = entry.content[:PREVIEW_LENGTH]
        suffix = "..." if len(entry.content) > PREVIEW_LENGTH else ""
        lines.append(f"{_speaker(entry)}: {preview}{suffix}")
    return "\n".join(lines)


class SummarizationService:
    """
    Args:
        llm: OpenRouterClient; None (or an unconfigured client) means
             fallback summaries only
    """

    def __init__(self, llm: Optional[OpenRouterClient] = None):
        self.llm = llm

    @property
    def has_llm(self) -> bool:
        return self.llm is not None and self.llm.is_configured

    async def summarize(
        self,
        entries: Sequence[MemoryEntry],
        options: Optional[SummarizationOptions] = None,
    ) -> str:
        options = options or SummarizationOptions()
        entries = list(entries)
        if not entries:
            return ""

        if not self.has_llm:
            log.debug("No LLM configured, using fallback summary", count=len(entries))
            return self._truncate(fallback_summary(entries), options)

        log.debug(
            f"Creating summary for {len(entries)} memories using {options.strategy.value} strategy"
        )
        try:
            if options.strategy == SummarizationStrategy.BATCH:
                summary = await self._generate(entries, options.custom_prompt)
            elif options.strategy == SummarizationStrategy.SLIDING_WINDOW:
                summary = await self._sliding_window(entries, options)
            else:
                summary = await self._progressive(entries, options)
        except MemorySummarizationError as e:
            log.warning("LLM summarization failed, using fallback", error=e.message, count=len(entries))
            summary = fallback_summary(entries)

        return self._truncate(summary, options)

    @staticmethod
    def _truncate(summary: str, options: SummarizationOptions) -> str:
        if options.max_length and len(summary) > options.max_length:
            return summary[: max(options.max_length - 3, 0)] + "..."
        return summary

    async def _progressive(self, entries: List[MemoryEntry], options: SummarizationOptions) -> str:
        size = options.max_messages
        chunks = []
        for start in range(0, len(entries), size):
            chunks.append(await self._generate(entries[start:start + size], options.custom_prompt))

        if len(chunks) == 1:
            return chunks[0]
        return await self._complete(CONSOLIDATE_PROMPT, "\n\n".join(chunks))

    async def _sliding_window(self, entries: List[MemoryEntry], options: SummarizationOptions) -> str:
        window = options.max_messages
        if len(entries) <= window:
            return await self._generate(entries, options.custom_prompt)

        older = await self._generate(entries[:-window], OLDER_PROMPT)
        recent = await self._generate(entries[-window:], RECENT_PROMPT)
        return f"Previous context: {older}\n\nRecent conversation: {recent}"

    async def _generate(self, entries: Sequence[MemoryEntry], prompt: Optional[str]) -> str:
        return await self._complete(prompt or DEFAULT_PROMPT, format_entries(entries))

    async def _complete(self, prompt: str, text: str) -> str:
        try:
            return await self.llm.generate_completion(f"{prompt}\n\n{text}")
        except Exception as e:
            raise MemorySummarizationError(
                f"LLM summarization failed: {e}",
                MemoryErrorContext(operation="summarize", provider="openrouter"),
            ) from e
