"""
Qdrant Configuration
====================

Connection settings for the Qdrant vector engine.

Usage:
    from agentic_memory.storage.vectors import QdrantConfig

    # Defaults (env vars or built-in values)
    config = QdrantConfig()

    # Explicit override
    config = QdrantConfig(host="qdrant", port=6333)

Environment Variables:
    QDRANT_URL: Full URL, wins over host/port (default: unset)
    QDRANT_HOST: Server host (default: localhost)
    QDRANT_PORT: HTTP port (default: 6333)
    QDRANT_API_KEY: API key (default: unset)
    QDRANT_PREFER_GRPC: Use gRPC transport (default: false)
    QDRANT_TIMEOUT: Request timeout in seconds (default: 10)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from agentic_memory.config.env import (
    get_env_bool,
    get_env_int,
    get_env_optional,
    get_env_str,
)


@dataclass
class QdrantConfig:
    """
    Qdrant connection settings.

    Attributes:
        host: Server host
        port: HTTP port
        url: Full URL (overrides host/port when set)
        api_key: API key for Qdrant Cloud
        prefer_grpc: Use the gRPC transport
        timeout: Request timeout in seconds
    """
    host: str = field(default_factory=lambda: get_env_str("QDRANT_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("QDRANT_PORT", 6333))
    url: Optional[str] = field(default_factory=lambda: get_env_optional("QDRANT_URL"))
    api_key: Optional[str] = field(default_factory=lambda: get_env_optional("QDRANT_API_KEY"))
    prefer_grpc: bool = field(default_factory=lambda: get_env_bool("QDRANT_PREFER_GRPC", False))
    timeout: int = field(default_factory=lambda: get_env_int("QDRANT_TIMEOUT", 10))

    def client_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for qdrant_client.QdrantClient."""
        kwargs: Dict[str, Any] = {
            "api_key": self.api_key,
            "prefer_grpc": self.prefer_grpc,
            "timeout": self.timeout,
        }
        if self.url:
            kwargs["url"] = self.url
        else:
            kwargs["host"] = self.host
            kwargs["port"] = self.port
        return kwargs

    @property
    def endpoint(self) -> str:
        return self.url or f"{self.host}:{self.port}"
