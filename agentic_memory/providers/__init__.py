"""
Provider detection: which memory backends are present and healthy.
"""

from agentic_memory.providers.factory import DatabaseProviderFactory
from agentic_memory.providers.models import (
    DetectionResult,
    GraphProviderSettings,
    MemoryFeatures,
    MemoryProviderConfig,
    ProviderCapability,
    ProviderPreferences,
    ProviderStatus,
    ProviderType,
    VectorProviderSettings,
)

__all__ = [
    "DatabaseProviderFactory",
    "DetectionResult",
    "GraphProviderSettings",
    "MemoryFeatures",
    "MemoryProviderConfig",
    "ProviderCapability",
    "ProviderPreferences",
    "ProviderStatus",
    "ProviderType",
    "VectorProviderSettings",
]
