"""
Tests for memory dataclasses and payload mapping.
"""

from datetime import datetime, timedelta, timezone

import pytest

from agentic_memory.models import (
    MemoryEntry,
    MemoryMetadata,
    MemorySearchOptions,
    MemoryType,
    clamp,
)


class TestMemoryMetadata:

    def test_defaults(self):
        metadata = MemoryMetadata()

        assert metadata.type == MemoryType.CONVERSATION
        assert metadata.importance == 0.5
        assert metadata.tags == []
        assert metadata.persistent is False

    @pytest.mark.parametrize("importance,expected", [(-1, 0.0), (0.3, 0.3), (7, 1.0), (None, 0.5)])
    def test_importance_clamped(self, importance, expected):
        assert MemoryMetadata(importance=importance).importance == expected

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            MemoryMetadata(type="dream")

    def test_from_dict_collects_extra(self):
        metadata = MemoryMetadata.from_dict({
            "type": "preference", "userId": "u1", "mood": "calm", "extra": {"lang": "it"},
        })

        assert metadata.type == MemoryType.PREFERENCE
        assert metadata.user_id == "u1"
        assert metadata.extra == {"lang": "it", "mood": "calm"}

    def test_from_dict_none(self):
        assert MemoryMetadata.from_dict(None) == MemoryMetadata()


class TestMemoryEntry:

    def test_payload_roundtrip(self):
        created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        entry = MemoryEntry(
            id="m1", thread_id="t1", content="hello",
            metadata=MemoryMetadata(type="fact", tags=["a"], user_id="u1", extra={"k": 1}),
            created_at=created,
        )

        payload = entry.to_payload()
        restored = MemoryEntry.from_payload("m1", "hello", payload, score=0.4)

        assert payload["created_ts"] == created.timestamp()
        assert payload["thread_id"] == "t1"
        assert restored.metadata == entry.metadata
        assert restored.created_at == created
        assert restored.relevance_score == 0.4

    def test_naive_created_at_assumed_utc(self):
        restored = MemoryEntry.from_payload("m1", "x", {"created_at": "2026-01-02T03:04:05"})
        assert restored.created_at.tzinfo == timezone.utc

    def test_created_ts_fallback(self):
        restored = MemoryEntry.from_payload("m1", "x", {"created_ts": 0})
        assert restored.created_at == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_mark_accessed(self):
        entry = MemoryEntry(id="m1", thread_id="t1", content="x")
        at = datetime(2026, 1, 1, tzinfo=timezone.utc)

        entry.mark_accessed(at)
        entry.mark_accessed(at)

        assert entry.access_count == 2
        assert entry.last_accessed_at == at


class TestMemorySearchOptions:

    def test_filter_translation(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        options = MemorySearchOptions(
            thread_id="t1", user_id="u1", type="fact", tags=["x"],
            start_date=start, end_date=start + timedelta(days=1),
        )

        assert options.to_filter() == {
            "thread_id": "t1",
            "user_id": "u1",
            "type": "fact",
            "tags": {"$in": ["x"]},
            "created_ts": {"$gte": start.timestamp(), "$lte": start.timestamp() + 86400},
        }

    def test_empty_filter(self):
        assert MemorySearchOptions().to_filter() == {}

    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"offset": -1}, {"min_relevance": 1.5}])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            MemorySearchOptions(**kwargs)


def test_clamp():
    assert clamp(2.0) == 1.0
    assert clamp(-2.0) == 0.0
    assert clamp(5, 0, 10) == 5
