"""
Configuration module for agentic_memory.
"""

from .environments import (
    EnvironmentConfig,
    Environment,
    get_environment_config,
    get_current_environment,
    set_current_environment,
    TEST_ENV,
    PROD_ENV,
)
from .settings import (
    EvictionStrategy,
    HealthThresholds,
    ImportanceStrategy,
    MemoryConfig,
    RetentionPolicy,
)
from .logging import configure_logging

__all__ = [
    "EnvironmentConfig",
    "Environment",
    "get_environment_config",
    "get_current_environment",
    "set_current_environment",
    "TEST_ENV",
    "PROD_ENV",
    "EvictionStrategy",
    "HealthThresholds",
    "ImportanceStrategy",
    "MemoryConfig",
    "RetentionPolicy",
    "configure_logging",
]
