"""
FalkorDB Client
===============

Async wrapper around falkordb-py.

FalkorDB speaks the Redis protocol and executes Cypher. The driver is
blocking, so connect and every statement go through the default executor.
Result rows come back as plain dicts keyed by RETURN alias; nodes and edges
become {"id", "properties", "labels" | "type"} dicts.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional

import structlog
from falkordb import FalkorDB, Graph

from agentic_memory.storage.graph.config import FalkorDBConfig
from agentic_memory.storage.interfaces import GraphCounters, GraphRecord, GraphResult

log = structlog.get_logger()

_COUNTERS = (
    "nodes_created",
    "nodes_deleted",
    "relationships_created",
    "relationships_deleted",
    "properties_set",
    "labels_added",
    "labels_removed",
)


def _plain(value: Any) -> Any:
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if not hasattr(value, "properties"):
        return value

    entity = {"id": getattr(value, "id", None), "properties": dict(value.properties)}
    if hasattr(value, "labels"):
        entity["labels"] = list(value.labels or [])
    if hasattr(value, "relation"):
        entity["type"] = value.relation
    return entity


def to_graph_result(raw: Any) -> GraphResult:
    """Convert a falkordb QueryResult into a GraphResult."""
    # header entries are [column_type, alias]
    aliases = [
        column[1] if len(column) > 1 else f"col_{position}"
        for position, column in enumerate(raw.header or [])
    ]
    records: List[GraphRecord] = [
        GraphRecord({alias: _plain(cell) for alias, cell in zip(aliases, row)})
        for row in (raw.result_set or [])
    ]
    counters = GraphCounters(**{name: int(getattr(raw, name, 0) or 0) for name in _COUNTERS})
    return GraphResult(records=records, counters=counters)


class FalkorDBClient:
    """
    Connection to one FalkorDB graph.

    Example:
        client = FalkorDBClient(FalkorDBConfig(graph_name="agent_memory"))
        await client.connect()
        result = await client.execute(
            "MATCH (m:Memory {thread_id: $thread_id}) RETURN m.id AS id",
            {"thread_id": "t1"},
            read_only=True,
        )
        await client.close()
    """

    def __init__(self, config: Optional[FalkorDBConfig] = None):
        self.config = config or FalkorDBConfig()
        self._db: Optional[FalkorDB] = None
        self._graph: Optional[Graph] = None

        log.info(
            "FalkorDB client configured",
            host=self.config.host,
            port=self.config.port,
            graph=self.config.graph_name,
        )

    @property
    def is_connected(self) -> bool:
        return self._graph is not None

    async def _offload(self, fn, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def connect(self) -> None:
        if self.is_connected:
            return
        await self._offload(self._connect_sync)
        log.info(f"Connected to FalkorDB graph {self.config.graph_name}")

    def _connect_sync(self) -> None:
        timeout = self.config.timeout_ms / 1000
        db = FalkorDB(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            max_connections=self.config.max_connections,
        )
        graph = db.select_graph(self.config.graph_name)
        # select_graph does no I/O
        graph.ro_query("RETURN 1")
        self._db, self._graph = db, graph

    async def close(self) -> None:
        if not self.is_connected:
            return
        # the redis pool owns the sockets
        self._db = None
        self._graph = None
        log.info("FalkorDB client closed", graph=self.config.graph_name)

    async def execute(
        self,
        cypher: str,
        params: Optional[Mapping[str, Any]] = None,
        read_only: bool = False,
    ) -> GraphResult:
        """
        Run one Cypher statement.

        read_only=True routes through GRAPH.RO_QUERY, which FalkorDB rejects
        for statements that write.
        """
        if not self.is_connected:
            raise RuntimeError("Not connected to FalkorDB. Call connect() first.")
        return await self._offload(self._execute_sync, cypher, dict(params or {}), read_only)

    def _execute_sync(self, cypher: str, params: Dict[str, Any], read_only: bool) -> GraphResult:
        run = self._graph.ro_query if read_only else self._graph.query
        try:
            raw = run(cypher, params)
        except Exception as e:
            log.error("Cypher statement failed", cypher=cypher[:100], error=str(e))
            raise

        result = to_graph_result(raw)
        log.debug("Cypher executed", cypher=cypher[:100], records=len(result.records))
        return result

