"""
FalkorDB Graph Adapter
======================

GraphStore implementation over FalkorDBClient.

FalkorDB has no multi-statement client transactions. The write transaction
therefore buffers statements and submits them in order on commit; rollback
discards the buffer. Results of statements run inside a write transaction are
only available after commit (see BufferedWriteTransaction.results). Read
transactions execute read-only queries immediately.
"""

from typing import Any, List, Mapping, Optional, Tuple

import structlog

from agentic_memory.errors import BackendUnavailableError
from agentic_memory.storage.graph.client import FalkorDBClient
from agentic_memory.storage.interfaces import GraphResult, GraphStore, GraphTransaction

log = structlog.get_logger()


class ReadTransaction(GraphTransaction):
    def __init__(self, client: FalkorDBClient):
        self._client = client
        self._closed = False

    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> GraphResult:
        if self._closed:
            raise RuntimeError("Transaction already closed")
        return await self._client.execute(query, dict(params or {}), read_only=True)

    async def commit(self) -> None:
        self._closed = True

    async def rollback(self) -> None:
        self._closed = True


class BufferedWriteTransaction(GraphTransaction):
    """Collects statements and executes them in order on commit."""

    def __init__(self, client: FalkorDBClient):
        self._client = client
        self._statements: List[Tuple[str, dict]] = []
        self._closed = False
        self.results: List[GraphResult] = []

    async def run(self, query: str, params: Optional[Mapping[str, Any]] = None) -> GraphResult:
        if self._closed:
            raise RuntimeError("Transaction already closed")
        self._statements.append((query, dict(params or {})))
        return GraphResult()

    async def commit(self) -> None:
        if self._closed:
            return
        self._closed = True
        statements, self._statements = self._statements, []
        for query, params in statements:
            self.results.append(await self._client.execute(query, params))
        log.debug(f"Committed {len(statements)} graph statements")

    async def rollback(self) -> None:
        if self._closed:
            return
        self._closed = True
        log.debug(f"Rolled back {len(self._statements)} buffered graph statements")
        self._statements = []


class FalkorDBGraphAdapter(GraphStore):
    """
    Bridges an optional FalkorDBClient to the GraphStore contract.

    Args:
        client: Connected FalkorDBClient, or None when the engine is absent
    """

    provider_name = "falkordb"

    def __init__(self, client: Optional[FalkorDBClient] = None):
        self._client = client

    def is_available(self) -> bool:
        return self._client is not None

    def _require(self, operation: str) -> FalkorDBClient:
        if self._client is None:
            raise BackendUnavailableError(self.provider_name, operation)
        return self._client

    async def health_check(self) -> bool:
        if not self.is_available():
            return False
        try:
            await self.verify_connectivity()
            return True
        except Exception as e:
            log.warning("FalkorDB health check failed", error=str(e))
            return False

    async def verify_connectivity(self) -> None:
        client = self._require("verify_connectivity")
        await client.execute("RETURN 1", read_only=True)

    async def run(
        self,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        read_only: bool = False,
    ) -> GraphResult:
        client = self._require("run")
        return await client.execute(query, dict(params or {}), read_only=read_only)

    async def begin_transaction(self, read_only: bool = False) -> GraphTransaction:
        client = self._require("begin_transaction")
        if read_only:
            return ReadTransaction(client)
        return BufferedWriteTransaction(client)
