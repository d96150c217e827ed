"""
Graph Storage
=============

Relationship storage on FalkorDB (Cypher).

Components:
- FalkorDBClient: async client for FalkorDB
- FalkorDBConfig: connection settings
- FalkorDBGraphAdapter: GraphStore implementation with buffered write transactions

Example:
    from agentic_memory.storage.graph import FalkorDBClient, FalkorDBConfig, FalkorDBGraphAdapter

    client = FalkorDBClient(FalkorDBConfig(graph_name="agent_memory"))
    await client.connect()
    graph = FalkorDBGraphAdapter(client)
"""

from agentic_memory.storage.graph.adapter import FalkorDBGraphAdapter
from agentic_memory.storage.graph.client import FalkorDBClient
from agentic_memory.storage.graph.config import FalkorDBConfig

__all__ = [
    "FalkorDBClient",
    "FalkorDBConfig",
    "FalkorDBGraphAdapter",
]
