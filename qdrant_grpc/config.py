"""
Connection configuration for the Qdrant gRPC client.
"""

from collections.abc import (
    Sequence,
)
from dataclasses import (
    dataclass,
    field,
)
from typing import Any

from qdrant_grpc.health.config import (
    HealthCheckConfig,
)

API_KEY_HEADER = "api-key"

# Default server address
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6334

# Default pool sizes
DEFAULT_POOL_SIZE = 1
DEFAULT_CLOUD_POOL_SIZE = 3

# Default keepalive settings (seconds)
KEEP_ALIVE_TIME = 10
KEEP_ALIVE_TIMEOUT = 2
KEEP_ALIVE_DISABLED = -1


@dataclass
class Config:
    """
    Configuration options for the client.

    Attributes:
        host: Hostname of the Qdrant server. Default: "localhost"
        port: gRPC port of the Qdrant server. Default: 6334
        api_key: API key sent with every call. Default: None
        use_tls: Whether to use TLS for the connection. Default: False
        root_certificates: PEM-encoded root certificates used with TLS. When
                           omitted, gRPC picks the system defaults.
        grpc_options: Extra channel arguments. They are applied last so that
                      explicit options take precedence.
        skip_compatibility_check: Do not compare client and server versions
                                  when connecting. Default: False
        pool_size: Number of connections to open. 0 selects the default:
                   3 for cloud deployments, otherwise 1. Requests are spread
                   round-robin over the pool.
        cloud: Whether the server is a managed cloud cluster. Default: False
        keep_alive_time: Seconds of inactivity before the client pings the
                         server. 0 selects 10 seconds, -1 disables keepalive.
        keep_alive_timeout: Seconds to wait for a keepalive ack before the
                            transport is closed. 0 selects 2 seconds.
        health_check: Settings for connection pool health monitoring. None
                      disables monitoring.

    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_key: str | None = None
    use_tls: bool = False
    root_certificates: bytes | None = None
    grpc_options: Sequence[tuple[str, Any]] = field(default_factory=list)
    skip_compatibility_check: bool = False
    pool_size: int = 0
    cloud: bool = False
    keep_alive_time: int = 0
    keep_alive_timeout: int = 0
    health_check: HealthCheckConfig | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.port < 0 or self.port > 65535:
            raise ValueError("Port should be between 0 and 65535")

        if self.pool_size < 0:
            raise ValueError("Pool size should be non-negative")

        if self.keep_alive_time < KEEP_ALIVE_DISABLED:
            raise ValueError("Keepalive time should be positive, 0 or -1")

        if self.keep_alive_timeout < 0:
            raise ValueError("Keepalive timeout should be non-negative")

    def get_addr(self) -> str:
        host = self.host or DEFAULT_HOST
        port = self.port or DEFAULT_PORT
        return f"{host}:{port}"

    def resolved_pool_size(self) -> int:
        if self.pool_size:
            return self.pool_size
        return DEFAULT_CLOUD_POOL_SIZE if self.cloud else DEFAULT_POOL_SIZE

    def get_keep_alive_options(self) -> list[tuple[str, Any]]:
        if self.keep_alive_time == KEEP_ALIVE_DISABLED:
            return []

        keep_alive_time = self.keep_alive_time or KEEP_ALIVE_TIME
        keep_alive_timeout = self.keep_alive_timeout or KEEP_ALIVE_TIMEOUT
        return [
            ("grpc.keepalive_time_ms", keep_alive_time * 1000),
            ("grpc.keepalive_timeout_ms", keep_alive_timeout * 1000),
            # Send pings even with no active calls
            ("grpc.keepalive_permit_without_calls", 1),
        ]

    def get_channel_options(self, user_agent: str) -> list[tuple[str, Any]]:
        return [
            ("grpc.primary_user_agent", user_agent),
            *self.get_keep_alive_options(),
            *self.grpc_options,
        ]

    def get_call_metadata(self) -> tuple[tuple[str, str], ...]:
        if not self.api_key:
            return ()
        return ((API_KEY_HEADER, self.api_key),)
