"""
Memory Environments
===================

Each environment owns its own Qdrant collection and FalkorDB graph, so
experiments and test runs never write into production memories.

The active environment is resolved in this order:
    1. AGENTIC_MEMORY_ENV ("test" / "prod", case insensitive)
    2. set_current_environment()
    3. test

Usage:
    from agentic_memory.config import get_current_environment, set_current_environment, PROD_ENV

    set_current_environment(PROD_ENV)
    env = get_current_environment()
    env.qdrant_collection   # "agent_memory"
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

ENVIRONMENT_VARIABLE = "AGENTIC_MEMORY_ENV"
BASE_NAME = "agent_memory"


class Environment(str, Enum):
    TEST = "test"
    PROD = "prod"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Environment"]:
        """Environment for a loose string, None when it names no environment."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


TEST_ENV = Environment.TEST
PROD_ENV = Environment.PROD


@dataclass(frozen=True)
class EnvironmentConfig:
    """
    Storage names bound to one environment.

    Attributes:
        name: Environment value ("test" or "prod")
        falkordb_graph: Graph holding memory relationships
        qdrant_collection: Collection holding memory entries
        description: Shown by diagnostics
    """
    name: str
    falkordb_graph: str
    qdrant_collection: str
    description: str


def _bind(env: Environment, suffix: str, description: str) -> EnvironmentConfig:
    storage_name = f"{BASE_NAME}{suffix}"
    return EnvironmentConfig(
        name=env.value,
        falkordb_graph=storage_name,
        qdrant_collection=storage_name,
        description=description,
    )


_ENVIRONMENTS: Dict[Environment, EnvironmentConfig] = {
    Environment.TEST: _bind(Environment.TEST, "_test", "Test memories, safe to wipe"),
    Environment.PROD: _bind(Environment.PROD, "", "Production agent memories"),
}

_selected: Environment = Environment.TEST


def get_environment_config(env: Environment) -> EnvironmentConfig:
    return _ENVIRONMENTS[env]


def get_current_environment() -> EnvironmentConfig:
    override = Environment.parse(os.environ.get(ENVIRONMENT_VARIABLE))
    return _ENVIRONMENTS[override or _selected]


def set_current_environment(env: Environment) -> None:
    global _selected
    _selected = Environment(env)


def get_all_environments() -> Dict[Environment, EnvironmentConfig]:
    return dict(_ENVIRONMENTS)
