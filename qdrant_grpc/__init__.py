"""Qdrant gRPC client with connection pool health monitoring."""

from qdrant_grpc.client import (
    Client,
    open_client,
)
from qdrant_grpc.config import (
    Config,
)
from qdrant_grpc.exceptions import (
    BaseQdrantError,
    ClientClosedError,
    HealthCheckProbeError,
    HealthWaitTimeoutError,
    QdrantError,
    ResourceExhaustedError,
)
from qdrant_grpc.grpc_client import (
    GrpcClient,
)
from qdrant_grpc.health import (
    ConnectionHealth,
    ConnectionState,
    HealthCheckConfig,
    HealthMonitor,
    PoolHealth,
    default_health_check_config,
)
from qdrant_grpc.utils.logging import (
    setup_logging,
)
from qdrant_grpc.version import (
    get_client_version,
)

# Initialize logging configuration
setup_logging()


def new_client(config: Config | None = None) -> Client:
    """
    Create a client without starting health monitoring.

    Use :func:`open_client` to also run the health monitor, or call
    :meth:`Client.start` with a nursery of your own.
    """
    return Client(config)


__all__ = [
    "BaseQdrantError",
    "Client",
    "ClientClosedError",
    "Config",
    "ConnectionHealth",
    "ConnectionState",
    "GrpcClient",
    "HealthCheckConfig",
    "HealthCheckProbeError",
    "HealthMonitor",
    "HealthWaitTimeoutError",
    "PoolHealth",
    "QdrantError",
    "ResourceExhaustedError",
    "default_health_check_config",
    "new_client",
    "open_client",
    "setup_logging",
]

__version__ = get_client_version()
