"""
Memory services used by the orchestrator.

- MemoryStorage: vector system of record
- MemoryGraphBuilder: derived graph relationships
- RetentionManager / CleanupScheduler: eviction
- MemoryStatsCollector: metrics and health
- SummarizationService / OpenRouterClient: thread summaries
"""

from agentic_memory.services.graph import MemoryGraphBuilder
from agentic_memory.services.llm import OpenRouterClient
from agentic_memory.services.retention import (
    CleanupPreview,
    CleanupResult,
    CleanupScheduler,
    RetentionManager,
    select_evictions,
)
from agentic_memory.services.stats import MemoryStatsCollector
from agentic_memory.services.storage import MemoryStorage
from agentic_memory.services.summarization import SummarizationService

__all__ = [
    "CleanupPreview",
    "CleanupResult",
    "CleanupScheduler",
    "MemoryGraphBuilder",
    "MemoryStatsCollector",
    "MemoryStorage",
    "OpenRouterClient",
    "RetentionManager",
    "SummarizationService",
    "select_evictions",
]
