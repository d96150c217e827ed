"""
Memory Retention
================

Decides which entries a cleanup sweep evicts, and runs sweeps periodically.

Rules, applied in order over the non-evicted remainder:
    1. age          entries older than max_age_seconds
    2. importance   keep_above: importance below the threshold
                    keep_top_n: everything outside the N most important
    3. thread_limit per-thread overflow beyond max_per_thread
    4. total_limit  overall overflow beyond max_total

Overflow victims are picked by the eviction strategy:
    lru         least recently accessed first (creation time when never accessed)
    lfu         lowest access_count first
    fifo        oldest first
    importance  lowest importance first

Persistent entries are never evicted. They still count toward the limits.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from agentic_memory.config.settings import EvictionStrategy, ImportanceStrategy, RetentionPolicy
from agentic_memory.models import MemoryEntry, utcnow

log = structlog.get_logger()

REASON_AGE = "age"
REASON_IMPORTANCE = "importance"
REASON_THREAD_LIMIT = "thread_limit"
REASON_TOTAL_LIMIT = "total_limit"


@dataclass
class EvictionCandidate:
    entry: MemoryEntry
    reason: str


@dataclass
class CleanupPreview:
    total_scanned: int
    candidates: List[EvictionCandidate] = field(default_factory=list)

    @property
    def ids(self) -> List[str]:
        return [candidate.entry.id for candidate in self.candidates]

    @property
    def by_reason(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for candidate in self.candidates:
            counts[candidate.reason] = counts.get(candidate.reason, 0) + 1
        return counts

    @property
    def affected_threads(self) -> List[str]:
        return sorted({candidate.entry.thread_id for candidate in self.candidates})


@dataclass
class CleanupResult:
    removed: int
    by_reason: Dict[str, int]
    affected_threads: List[str]
    duration_ms: float


@dataclass
class CleanupStats:
    total_cleanups_run: int = 0
    total_memories_removed: int = 0
    average_cleanup_time_ms: float = 0.0
    last_cleanup_at: Optional[datetime] = None


def eviction_key(strategy: EvictionStrategy):
    """Sort key putting the first entry to evict first."""
    if strategy == EvictionStrategy.LFU:
        return lambda entry: (entry.access_count, entry.created_ts)
    if strategy == EvictionStrategy.FIFO:
        return lambda entry: (entry.created_ts,)
    if strategy == EvictionStrategy.IMPORTANCE:
        return lambda entry: (entry.metadata.importance, entry.created_ts)
    return lambda entry: (
        entry.last_accessed_at.timestamp() if entry.last_accessed_at else entry.created_ts,
        entry.created_ts,
    )


def select_evictions(
    entries: Sequence[MemoryEntry],
    policy: RetentionPolicy,
    now: Optional[datetime] = None,
) -> List[EvictionCandidate]:
    """Pure selection of the entries a sweep would evict."""
    now_ts = (now or utcnow()).timestamp()
    order = eviction_key(policy.eviction_strategy)
    evicted: Dict[str, EvictionCandidate] = {}

    def evict(entry: MemoryEntry, reason: str) -> None:
        if not entry.metadata.persistent and entry.id not in evicted:
            evicted[entry.id] = EvictionCandidate(entry, reason)

    def remaining() -> List[MemoryEntry]:
        return [entry for entry in entries if entry.id not in evicted]

    if policy.max_age_seconds:
        cutoff = now_ts - policy.max_age_seconds
        for entry in entries:
            if entry.created_ts < cutoff:
                evict(entry, REASON_AGE)

    if policy.eviction_strategy == EvictionStrategy.IMPORTANCE:
        if policy.importance_strategy == ImportanceStrategy.KEEP_ABOVE:
            for entry in remaining():
                if entry.metadata.importance < policy.importance_threshold:
                    evict(entry, REASON_IMPORTANCE)
        elif policy.importance_strategy == ImportanceStrategy.KEEP_TOP_N:
            ranked = sorted(
                (entry for entry in remaining() if not entry.metadata.persistent),
                key=lambda entry: (-entry.metadata.importance, -entry.created_ts),
            )
            for entry in ranked[policy.importance_top_n:]:
                evict(entry, REASON_IMPORTANCE)

    if policy.max_per_thread:
        threads: Dict[str, List[MemoryEntry]] = {}
        for entry in remaining():
            threads.setdefault(entry.thread_id, []).append(entry)
        for thread_entries in threads.values():
            overflow = len(thread_entries) - policy.max_per_thread
            if overflow > 0:
                victims = sorted(
                    (entry for entry in thread_entries if not entry.metadata.persistent), key=order
                )
                for entry in victims[:overflow]:
                    evict(entry, REASON_THREAD_LIMIT)

    if policy.max_total:
        survivors = remaining()
        overflow = len(survivors) - policy.max_total
        if overflow > 0:
            victims = sorted((entry for entry in survivors if not entry.metadata.persistent), key=order)
            for entry in victims[:overflow]:
                evict(entry, REASON_TOTAL_LIMIT)

    return list(evicted.values())


class RetentionManager:
    """
    Applies a RetentionPolicy and keeps cleanup statistics.

    Deletion itself is done by the caller (the orchestrator's delete path),
    so graph edges are cascaded the same way as for explicit deletes.
    """

    def __init__(self, policy: Optional[RetentionPolicy] = None):
        self.policy = policy or RetentionPolicy()
        self.stats = CleanupStats()

    def preview(self, entries: Sequence[MemoryEntry], now: Optional[datetime] = None) -> CleanupPreview:
        return CleanupPreview(
            total_scanned=len(entries),
            candidates=select_evictions(entries, self.policy, now),
        )

    def record_cleanup(self, preview: CleanupPreview, duration_ms: float) -> CleanupResult:
        removed = len(preview.candidates)
        self.stats.total_cleanups_run += 1
        self.stats.total_memories_removed += removed
        runs = self.stats.total_cleanups_run
        self.stats.average_cleanup_time_ms += (duration_ms - self.stats.average_cleanup_time_ms) / runs
        self.stats.last_cleanup_at = utcnow()

        log.info(
            "Memory cleanup completed",
            removed=removed,
            scanned=preview.total_scanned,
            duration_ms=round(duration_ms, 1),
            **preview.by_reason,
        )
        return CleanupResult(
            removed=removed,
            by_reason=preview.by_reason,
            affected_threads=preview.affected_threads,
            duration_ms=duration_ms,
        )


class CleanupScheduler:
    """
    Runs a cleanup coroutine every `interval` seconds on the event loop.

    A failing sweep is logged and the schedule continues.

    Example:
        scheduler = CleanupScheduler(orchestrator.cleanup, interval=3600)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, cleanup: Callable[[], Awaitable[object]], interval: float):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self._cleanup = cleanup
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_event_loop().create_task(self._loop())
        log.info("Cleanup scheduler started", interval_seconds=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("Cleanup scheduler stopped", runs=self.runs)

    async def run_once(self) -> None:
        started = time.perf_counter()
        try:
            await self._cleanup()
        except Exception as e:
            log.error("Scheduled cleanup failed", error=str(e), error_type=type(e).__name__)
        finally:
            self.runs += 1
            log.debug("Scheduled cleanup finished", duration_ms=round((time.perf_counter() - started) * 1000, 1))

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
