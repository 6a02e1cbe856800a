"""
High-level Qdrant client managing a pool of gRPC connections.
"""

from collections.abc import (
    AsyncIterator,
    Sequence,
)
from contextlib import (
    asynccontextmanager,
)
import dataclasses
import logging

import grpc
import trio

from qdrant_grpc.abc import (
    IConnection,
)
from qdrant_grpc.config import (
    Config,
)
from qdrant_grpc.exceptions import (
    ClientClosedError,
    HealthWaitTimeoutError,
    QdrantError,
    classify_rpc_error,
)
from qdrant_grpc.grpc_client import (
    GrpcClient,
)
from qdrant_grpc.health import (
    HealthMonitor,
    PoolHealth,
)
from qdrant_grpc.proto import (
    HealthCheckReply,
)
from qdrant_grpc.selector import (
    RoundRobinSelector,
)
from qdrant_grpc.utils.trio_timeout import (
    poll_until,
)

logger = logging.getLogger("qdrant_grpc.client")

# Poll period used while waiting for the pool to become healthy
WAIT_FOR_HEALTHY_INTERVAL = 0.1


class Client:
    """
    High-level client for Qdrant.

    Holds one connection or a pool of them, depending on
    ``Config.pool_size``. Calls are spread round-robin over the pool; with
    health monitoring enabled only the healthy connections are used unless
    none is left.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        connections: Sequence[IConnection] | None = None,
    ) -> None:
        """
        Create the client and its connections.

        Parameters
        ----------
        config : Config | None
            Client configuration. It is copied, later changes by the caller
            have no effect.
        connections : Sequence[IConnection] | None
            Already opened connections to use instead of dialing from
            ``config``. The client still closes them in :meth:`close`.

        """
        self.config = dataclasses.replace(config) if config is not None else Config()

        if connections is not None:
            self._connections = list(connections)
        else:
            self._connections = self._open_pool()

        self._health_monitor: HealthMonitor | None = None
        if self.config.health_check is not None:
            self._health_monitor = HealthMonitor(
                self._connections, self.config.health_check
            )

        self._selector = RoundRobinSelector(
            self._connections,
            (
                self._health_monitor.get_healthy_connections
                if self._health_monitor is not None
                else None
            ),
        )
        self._closed = False

    def _open_pool(self) -> list[IConnection]:
        connections: list[IConnection] = []
        for i in range(self.config.resolved_pool_size()):
            try:
                connections.append(GrpcClient.from_config(self.config))
            except Exception as e:
                # Close already opened connections before giving up
                for conn in connections:
                    conn.close()
                raise QdrantError(
                    "NewClient", e, f"failed to create client {i} in pool"
                ) from e
        return connections

    async def start(self, nursery: trio.Nursery) -> None:
        """Start health monitoring under ``nursery`` if it is enabled."""
        if self._health_monitor is not None:
            await self._health_monitor.start(nursery)

    async def check_compatibility(self) -> bool:
        """
        Compare client and server versions once for the whole pool.

        Mismatches are only logged.
        """
        if self.config.skip_compatibility_check:
            return True
        conn = self._connections[0]
        if not isinstance(conn, GrpcClient):
            return True
        return await trio.to_thread.run_sync(conn.check_compatibility)

    def get_grpc_client(self) -> IConnection:
        """
        Return the next connection of the pool.

        :raise ClientClosedError: If the client has been closed.
        """
        if self._closed:
            raise ClientClosedError("Client is closed")
        return self._selector.select()

    def get_channel(self) -> grpc.Channel:
        """Return the channel of the next connection, for other service stubs."""
        return self.get_grpc_client().channel

    @property
    def connections(self) -> tuple[IConnection, ...]:
        return tuple(self._connections)

    async def health_check(self) -> HealthCheckReply:
        """
        Check liveness of the service.

        :raise QdrantError: If the call fails.
        """
        conn = self.get_grpc_client()
        try:
            return await trio.to_thread.run_sync(conn.health_check)
        except grpc.RpcError as e:
            raise classify_rpc_error(e, "HealthCheck") from e

    def get_health_monitor(self) -> HealthMonitor | None:
        """Return the health monitor, or None when monitoring is disabled."""
        return self._health_monitor

    def get_pool_health(self) -> PoolHealth | None:
        """Return a snapshot of the pool's health, or None when disabled."""
        if self._health_monitor is None:
            return None
        return self._health_monitor.get_overall_health()

    def is_healthy(self) -> bool:
        """
        Whether at least one connection can carry traffic.

        Always True when health monitoring is disabled, and False once the
        client is closed.
        """
        if self._closed:
            return False
        if self._health_monitor is None:
            return True
        return self._health_monitor.get_overall_health().is_healthy()

    async def wait_for_healthy(self, timeout: float | None = None) -> None:
        """
        Block until at least one connection is healthy.

        Returns immediately when monitoring is disabled.

        :raise HealthWaitTimeoutError: If ``timeout`` expires first.
        :raise ClientClosedError: If the client has been closed.
        """
        if self._closed:
            raise ClientClosedError("Client is closed")
        if self._health_monitor is None:
            return
        await poll_until(
            self.is_healthy,
            WAIT_FOR_HEALTHY_INTERVAL,
            timeout,
            f"No healthy connection within {timeout}s",
            HealthWaitTimeoutError,
        )

    async def close(self) -> None:
        """Stop health monitoring, then tear down every connection."""
        if self._closed:
            return
        self._closed = True

        if self._health_monitor is not None:
            # Probes are bounded by their deadline, so the drain always ends.
            with trio.CancelScope(shield=True):
                await self._health_monitor.stop()
            self._health_monitor = None

        last_error: Exception | None = None
        for conn in self._connections:
            try:
                conn.close()
            except Exception as e:
                logger.warning(f"Error closing connection: {e}")
                last_error = e
        self._connections = []

        if last_error is not None:
            raise QdrantError("Close", last_error) from last_error


@asynccontextmanager
async def open_client(config: Config | None = None) -> AsyncIterator[Client]:
    """
    Open a client and run its health monitor in the background.

    The client is closed, and the monitor stopped, when the block exits.
    """
    client = Client(config)
    try:
        await client.check_compatibility()
        async with trio.open_nursery() as nursery:
            await client.start(nursery)
            try:
                yield client
            finally:
                await client.close()
    finally:
        await client.close()
