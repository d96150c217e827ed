"""
Memory Stats Collector
======================

In-process latency and success tracking for orchestrator operations.

Every operation brackets a start/complete pair keyed by a generated operation
id. Health is derived from the aggregates on every read, never stored:

    healthy   : error rate <= threshold and avg latency <= threshold
    degraded  : either above its threshold
    unhealthy : either above twice its threshold

Usage:
    stats = MemoryStatsCollector(HealthThresholds())

    with stats.track("store", thread_id="t1") as op:
        entry = await storage.store(...)
        op.metadata["memory_id"] = entry.id

    stats.health()   # "healthy"
"""

import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

import structlog

from agentic_memory.config.settings import HealthThresholds
from agentic_memory.models import utcnow

log = structlog.get_logger()

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

# Operation type -> usage category
CATEGORIES = {
    "store": "storage",
    "store_batch": "storage",
    "retrieve": "retrieval",
    "search": "search",
    "search_for_context": "search",
    "summarize": "summarization",
    "delete": "deletion",
    "clear": "deletion",
    "cleanup": "deletion",
}

REALTIME_WINDOW_SECONDS = 60.0


@dataclass
class OperationHandle:
    """Yielded by track(); callers may add metadata before completion."""
    id: str
    type: str
    thread_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationMetrics:
    operation_type: str
    count: int = 0
    error_count: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = float("inf")
    max_latency_ms: float = 0.0
    last_executed_at: Optional[datetime] = None

    @property
    def average_latency_ms(self) -> float:
        return self.total_latency_ms / self.count if self.count else 0.0

    @property
    def success_rate(self) -> float:
        return (self.count - self.error_count) / self.count if self.count else 1.0

    def record(self, latency_ms: float, success: bool) -> None:
        self.count += 1
        self.total_latency_ms += latency_ms
        self.min_latency_ms = min(self.min_latency_ms, latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, latency_ms)
        self.last_executed_at = utcnow()
        if not success:
            self.error_count += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "error_count": self.error_count,
            "average_latency_ms": round(self.average_latency_ms, 3),
            "min_latency_ms": round(self.min_latency_ms, 3) if self.count else 0.0,
            "max_latency_ms": round(self.max_latency_ms, 3),
            "success_rate": self.success_rate,
            "last_executed_at": self.last_executed_at.isoformat() if self.last_executed_at else None,
        }


class MemoryStatsCollector:
    """
    Per-operation metrics and derived health.

    State is process-local.
    """

    def __init__(self, thresholds: Optional[HealthThresholds] = None):
        self.thresholds = thresholds or HealthThresholds()
        self.reset()

    def reset(self) -> None:
        self._active: Dict[str, Tuple[str, float, Optional[str]]] = {}
        self._operations: Dict[str, OperationMetrics] = {}
        self._categories: Dict[str, int] = {}
        self._recent: Deque[Tuple[float, bool]] = deque(maxlen=10000)
        self.total_operations = 0
        self.total_errors = 0
        self._total_latency_ms = 0.0
        self.started_at = utcnow()
        self._started_monotonic = time.monotonic()
        log.debug("Memory statistics reset")

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_operation(self, operation_type: str, thread_id: Optional[str] = None) -> str:
        operation_id = f"{operation_type}_{uuid.uuid4().hex[:12]}"
        self._active[operation_id] = (operation_type, time.perf_counter(), thread_id)
        log.debug("Operation started", operation=operation_type, operation_id=operation_id, thread_id=thread_id)
        return operation_id

    def complete_operation(
        self,
        operation_id: str,
        success: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[float]:
        """
        Record completion of a started operation.

        Returns:
            Latency in milliseconds, or None for an unknown operation id
        """
        started = self._active.pop(operation_id, None)
        if started is None:
            log.warning("No start time found for operation", operation_id=operation_id)
            return None

        operation_type, start, thread_id = started
        latency_ms = (time.perf_counter() - start) * 1000

        metrics = self._operations.setdefault(operation_type, OperationMetrics(operation_type))
        metrics.record(latency_ms, success)

        category = CATEGORIES.get(operation_type, "other")
        self._categories[category] = self._categories.get(category, 0) + 1
        self.total_operations += 1
        self._total_latency_ms += latency_ms
        if not success:
            self.total_errors += 1
        self._recent.append((time.monotonic(), success))

        if latency_ms > self.thresholds.slow_operation_ms:
            log.warning(
                "Slow memory operation",
                operation=operation_type,
                latency_ms=round(latency_ms, 1),
                thread_id=thread_id,
                **(metadata or {}),
            )
        return latency_ms

    @contextmanager
    def track(self, operation_type: str, thread_id: Optional[str] = None) -> Iterator[OperationHandle]:
        """Bracket a block; an exception marks the operation failed and propagates."""
        handle = OperationHandle(
            id=self.start_operation(operation_type, thread_id),
            type=operation_type,
            thread_id=thread_id,
        )
        try:
            yield handle
        except BaseException:
            self.complete_operation(handle.id, success=False, metadata=handle.metadata)
            raise
        else:
            self.complete_operation(handle.id, success=True, metadata=handle.metadata)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @property
    def error_rate(self) -> float:
        return self.total_errors / self.total_operations if self.total_operations else 0.0

    @property
    def average_latency_ms(self) -> float:
        return self._total_latency_ms / self.total_operations if self.total_operations else 0.0

    @property
    def active_operations(self) -> int:
        return len(self._active)

    def get_operation_metrics(self, operation_type: str) -> Optional[OperationMetrics]:
        return self._operations.get(operation_type)

    def operation_breakdown(self) -> Dict[str, Dict[str, Any]]:
        return {name: metrics.to_dict() for name, metrics in sorted(self._operations.items())}

    def category_totals(self) -> Dict[str, int]:
        return dict(self._categories)

    def health(self) -> str:
        error_rate = self.error_rate
        latency = self.average_latency_ms
        if error_rate > self.thresholds.error_rate * 2 or latency > self.thresholds.latency_ms * 2:
            return UNHEALTHY
        if error_rate > self.thresholds.error_rate or latency > self.thresholds.latency_ms:
            return DEGRADED
        return HEALTHY

    def slow_operations(self) -> List[Dict[str, Any]]:
        """Operation types whose average latency exceeds slow_operation_ms, slowest first."""
        slow = [
            {
                "operation": name,
                "average_latency_ms": round(metrics.average_latency_ms, 3),
                "count": metrics.count,
            }
            for name, metrics in self._operations.items()
            if metrics.average_latency_ms > self.thresholds.slow_operation_ms
        ]
        return sorted(slow, key=lambda item: item["average_latency_ms"], reverse=True)

    def throughput(self) -> float:
        """Operations per second since the last reset."""
        elapsed = time.monotonic() - self._started_monotonic
        return self.total_operations / elapsed if elapsed > 0 else 0.0

    def realtime_metrics(self) -> Dict[str, Any]:
        """Operations and error rate over the last minute."""
        cutoff = time.monotonic() - REALTIME_WINDOW_SECONDS
        window = [success for at, success in self._recent if at >= cutoff]
        errors = sum(1 for success in window if not success)
        return {
            "operations_per_minute": len(window),
            "current_error_rate": errors / len(window) if window else 0.0,
            "average_latency_ms": round(self.average_latency_ms, 3),
            "active_operations": self.active_operations,
        }

    def snapshot(self) -> Dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "total_errors": self.total_errors,
            "error_rate": self.error_rate,
            "average_latency_ms": self.average_latency_ms,
            "health": self.health(),
            "categories": self.category_totals(),
            "operations": self.operation_breakdown(),
        }

    def performance_report(self) -> str:
        realtime = self.realtime_metrics()
        slow = self.slow_operations()
        success_rate = (1 - self.error_rate) * 100

        lines = [
            "Memory Performance Report",
            "=========================",
            f"Generated: {utcnow().isoformat()}",
            "",
            "Operations Summary:",
            f"- Total Operations: {self.total_operations}",
            f"- Success Rate: {success_rate:.2f}%",
            f"- Average Latency: {self.average_latency_ms:.1f}ms",
            f"- Throughput: {self.throughput():.2f} ops/sec",
            f"- Health: {self.health()}",
            "",
            f"Active Operations: {realtime['active_operations']}",
            f"Operations (last minute): {realtime['operations_per_minute']}",
            "",
        ]
        if slow:
            lines.append("Slow Operations:")
            lines.extend(
                f"- {item['operation']}: {item['average_latency_ms']:.1f}ms ({item['count']} times)"
                for item in slow
            )
        else:
            lines.append("No slow operations detected")
        return "\n".join(lines)
