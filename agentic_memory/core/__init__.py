"""
Core API: the orchestrator façade, its call guards and the process-level module.
"""

from agentic_memory.core.guards import best_effort_call, critical_call
from agentic_memory.core.module import MemoryModule
from agentic_memory.core.orchestrator import MemoryOrchestrator

__all__ = [
    "MemoryModule",
    "MemoryOrchestrator",
    "best_effort_call",
    "critical_call",
]
