"""
FalkorDB Configuration
======================

Connection settings for the FalkorDB graph engine.

Usage:
    from agentic_memory.storage.graph import FalkorDBConfig

    # Defaults (env vars or built-in values)
    config = FalkorDBConfig()

    # Explicit override
    config = FalkorDBConfig(host="localhost", port=6380, graph_name="agent_memory")

Environment Variables:
    FALKORDB_HOST: Server host (default: localhost)
    FALKORDB_PORT: Server port (default: 6380)
    FALKORDB_GRAPH_NAME: Graph name (default: current environment's graph)
    FALKORDB_PASSWORD: Password (default: empty)
    FALKORDB_MAX_CONNECTIONS: Max pool connections (default: 10)
    FALKORDB_TIMEOUT_MS: Operation timeout in ms (default: 5000)
"""

from dataclasses import dataclass, field
from typing import Optional

from agentic_memory.config.env import get_env_int, get_env_optional, get_env_str
from agentic_memory.config.environments import get_current_environment


def _default_graph_name() -> str:
    return get_env_str("FALKORDB_GRAPH_NAME", get_current_environment().falkordb_graph)


@dataclass
class FalkorDBConfig:
    """
    FalkorDB connection settings.

    All fields support environment variable overrides.

    Attributes:
        host: FalkorDB host
        port: Server port (6380 for the FalkorDB container)
        graph_name: Graph holding memory relationships
        max_connections: Pool size
        timeout_ms: Operation timeout in milliseconds
        password: Optional password
    """
    host: str = field(default_factory=lambda: get_env_str("FALKORDB_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("FALKORDB_PORT", 6380))
    graph_name: str = field(default_factory=_default_graph_name)
    max_connections: int = field(default_factory=lambda: get_env_int("FALKORDB_MAX_CONNECTIONS", 10))
    timeout_ms: int = field(default_factory=lambda: get_env_int("FALKORDB_TIMEOUT_MS", 5000))
    password: Optional[str] = field(default_factory=lambda: get_env_optional("FALKORDB_PASSWORD"))
