"""
Tests for retention: eviction selection, cleanup bookkeeping, scheduler.
"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from agentic_memory.config import RetentionPolicy
from agentic_memory.errors import MemoryConfigurationError
from agentic_memory.models import MemoryEntry, MemoryMetadata
from agentic_memory.services.retention import (
    REASON_AGE,
    REASON_IMPORTANCE,
    REASON_THREAD_LIMIT,
    REASON_TOTAL_LIMIT,
    CleanupScheduler,
    RetentionManager,
    select_evictions,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _entry(memory_id, age_seconds=0, thread_id="t1", access_count=0, accessed_ago=None, **metadata):
    return MemoryEntry(
        id=memory_id,
        thread_id=thread_id,
        content=memory_id,
        metadata=MemoryMetadata(**metadata),
        created_at=NOW - timedelta(seconds=age_seconds),
        access_count=access_count,
        last_accessed_at=NOW - timedelta(seconds=accessed_ago) if accessed_ago is not None else None,
    )


def _evicted(entries, policy):
    return {c.entry.id: c.reason for c in select_evictions(entries, policy, NOW)}


class TestImportance:

    def test_keep_top_one(self):
        entries = [
            _entry("low", 30, importance=0.2),
            _entry("high", 20, importance=0.9),
            _entry("mid", 10, importance=0.5),
        ]

        assert _evicted(entries, RetentionPolicy.keep_top(1)) == {
            "low": REASON_IMPORTANCE,
            "mid": REASON_IMPORTANCE,
        }

    def test_keep_above(self):
        entries = [
            _entry("a", importance=0.2),
            _entry("b", importance=0.5),
            _entry("c", importance=0.9),
        ]

        assert _evicted(entries, RetentionPolicy.keep_above(0.5)) == {"a": REASON_IMPORTANCE}

    def test_persistent_never_evicted(self):
        entries = [
            _entry("kept", importance=0.1, persistent=True),
            _entry("gone", importance=0.9),
        ]

        assert _evicted(entries, RetentionPolicy.keep_top(0)) == {"gone": REASON_IMPORTANCE}


class TestLimits:

    def test_max_age(self):
        entries = [_entry("old", age_seconds=7200), _entry("new", age_seconds=60)]

        assert _evicted(entries, RetentionPolicy(max_age_seconds=3600)) == {"old": REASON_AGE}

    def test_per_thread_fifo(self):
        entries = [
            _entry("t1-oldest", 30),
            _entry("t1-middle", 20),
            _entry("t1-newest", 10),
            _entry("t2-only", 40, thread_id="t2"),
        ]
        policy = RetentionPolicy(max_per_thread=2, eviction_strategy="fifo")

        assert _evicted(entries, policy) == {"t1-oldest": REASON_THREAD_LIMIT}

    def test_total_lfu(self):
        entries = [_entry("popular", 30, access_count=5), _entry("ignored", 10, access_count=1)]
        policy = RetentionPolicy(max_total=1, eviction_strategy="lfu")

        assert _evicted(entries, policy) == {"ignored": REASON_TOTAL_LIMIT}

    def test_total_lru_uses_last_access(self):
        entries = [
            _entry("old-but-recently-read", 300, accessed_ago=5),
            _entry("new-never-read", 100),
        ]
        policy = RetentionPolicy(max_total=1, eviction_strategy="lru")

        assert _evicted(entries, policy) == {"new-never-read": REASON_TOTAL_LIMIT}

    def test_no_rules_no_evictions(self):
        assert _evicted([_entry("a"), _entry("b")], RetentionPolicy()) == {}

    def test_invalid_policy(self):
        with pytest.raises(MemoryConfigurationError):
            RetentionPolicy(max_total=0)
        with pytest.raises(MemoryConfigurationError):
            RetentionPolicy(eviction_strategy="random")


class TestRetentionManager:

    def test_preview_and_record(self):
        manager = RetentionManager(RetentionPolicy(max_per_thread=1, eviction_strategy="fifo"))
        entries = [_entry("a", 20), _entry("b", 10), _entry("c", 20, thread_id="t2")]

        preview = manager.preview(entries, NOW)
        result = manager.record_cleanup(preview, duration_ms=12.0)

        assert preview.total_scanned == 3
        assert preview.ids == ["a"]
        assert result.removed == 1
        assert result.by_reason == {REASON_THREAD_LIMIT: 1}
        assert result.affected_threads == ["t1"]
        assert manager.stats.total_cleanups_run == 1
        assert manager.stats.total_memories_removed == 1
        assert manager.stats.average_cleanup_time_ms == pytest.approx(12.0)
        assert manager.stats.last_cleanup_at is not None


class TestCleanupScheduler:

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            CleanupScheduler(lambda: None, interval=0)

    @pytest.mark.asyncio
    async def test_run_once_survives_failures(self):
        async def broken():
            raise RuntimeError("sweep failed")

        scheduler = CleanupScheduler(broken, interval=60)
        await scheduler.run_once()

        assert scheduler.runs == 1

    @pytest.mark.asyncio
    async def test_runs_periodically(self):
        calls = []

        async def sweep():
            calls.append(1)

        scheduler = CleanupScheduler(sweep, interval=0.01)
        scheduler.start()
        assert scheduler.running

        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert len(calls) >= 2
        assert scheduler.running is False
