"""
Connection Health Monitor for the Qdrant gRPC client.

This module provides the HealthMonitor that periodically probes every pooled
connection, moves connections through their health states, drives automatic
recovery of unhealthy connections and answers pool-level health queries.
"""

from collections.abc import (
    Sequence,
)
import logging
import threading

import trio
from trio_typing import (
    TaskStatus,
)

from qdrant_grpc.abc import (
    IConnection,
)

from .config import (
    HealthCheckConfig,
    default_health_check_config,
)
from .data_structures import (
    ConnectionHealth,
    ConnectionState,
    HealthMonitorStatus,
    PoolHealth,
    ProbeResult,
    build_pool_health,
)
from .prober import (
    HealthCheckProber,
)

logger = logging.getLogger("qdrant_grpc.health.monitor")


class HealthMonitor:
    """
    Tracks the health of every connection in a pool.

    The monitor runs inside a trio nursery supplied by its owner. Each round
    probes all connections concurrently and waits for every probe before the
    next tick. Recovery sequences run as tasks of the monitor's own nursery,
    so :meth:`stop` only returns once every probe and recovery has exited.
    """

    def __init__(
        self,
        connections: Sequence[IConnection],
        config: HealthCheckConfig | None = None,
    ) -> None:
        """
        Initialize the health monitor.

        Parameters
        ----------
        connections : Sequence[IConnection]
            The pooled connections, in pool order. The monitor never opens,
            closes or replaces them.
        config : HealthCheckConfig | None
            Health check settings. Defaults are used when omitted.

        """
        self.config = config if config is not None else default_health_check_config()
        self._lock = threading.Lock()
        self._connections = [ConnectionHealth(conn) for conn in connections]
        self._prober = HealthCheckProber(self.config.timeout)

        self._running = False
        self._stop_event = trio.Event()
        self._stopped = trio.Event()
        self._nursery: trio.Nursery | None = None
        # Connection index -> token of the recovery sequence currently owning it
        self._active_recoveries: dict[int, object] = {}

    # Lifecycle

    async def start(self, nursery: trio.Nursery) -> None:
        """Run the monitoring loop under ``nursery`` and return once it is live."""
        if self._running:
            logger.warning("Health monitor already running")
            return

        self._running = True
        self._stop_event = trio.Event()
        self._stopped = trio.Event()
        await nursery.start(self._run)
        logger.info(
            f"Health monitor started (connections={len(self._connections)}, "
            f"interval={self.config.interval}s, timeout={self.config.timeout}s)"
        )

    async def stop(self) -> None:
        """Stop monitoring and wait until every spawned task has exited."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        if self._nursery is not None:
            self._nursery.cancel_scope.cancel()
        await self._stopped.wait()
        logger.info("Health monitor stopped")

    def is_running(self) -> bool:
        return self._running

    async def _run(
        self, *, task_status: TaskStatus[None] = trio.TASK_STATUS_IGNORED
    ) -> None:
        try:
            async with trio.open_nursery() as nursery:
                self._nursery = nursery
                task_status.started()
                await self._monitor_loop()
        finally:
            self._nursery = None
            self._active_recoveries.clear()
            self._running = False
            self._stopped.set()

    async def _monitor_loop(self) -> None:
        """Probe once immediately, then once per interval until stopped."""
        while not self._stop_event.is_set():
            next_round = trio.current_time() + self.config.interval
            await self._perform_health_checks()

            # Wait for either the next tick or the stop signal
            with trio.move_on_at(next_round):
                await self._stop_event.wait()

        logger.debug("Health monitoring loop exited")

    async def _perform_health_checks(self) -> None:
        """Fan out one probe per connection and wait for all of them."""
        with self._lock:
            records = list(enumerate(self._connections))

        async with trio.open_nursery() as nursery:
            for index, health in records:
                if health.state is ConnectionState.DISCONNECTED:
                    continue
                nursery.start_soon(self._check_connection, index, health)

    async def _probe_safely(self, index: int, health: ConnectionHealth) -> ProbeResult:
        try:
            return await self._prober.probe(health)
        except Exception as e:
            logger.error(f"Error checking connection {index}: {e}", exc_info=True)
            return ProbeResult(success=False, error=e)

    async def _check_connection(self, index: int, health: ConnectionHealth) -> ProbeResult:
        result = await self._probe_safely(index, health)
        if result.success:
            self._handle_success(index, health)
        else:
            self._handle_failure(index, health, result.error)
        return result

    async def check_connection_health(self, index: int) -> ProbeResult:
        """
        Probe one connection right away and apply the outcome.

        :raise IndexError: If ``index`` is outside the pool.
        """
        health = self.get_connection_health(index)
        if health is None:
            raise IndexError(f"No connection at index {index}")
        return await self._check_connection(index, health)

    # State machine

    def _handle_success(self, index: int, health: ConnectionHealth) -> None:
        successes = health.record_success()

        if successes >= self.config.recovery_threshold and health.mark_healthy():
            self._active_recoveries.pop(index, None)
            logger.info(
                f"Connection {index} recovered "
                f"(consecutive_successes={successes}, "
                f"recovery_threshold={self.config.recovery_threshold})"
            )

    def _handle_failure(
        self, index: int, health: ConnectionHealth, error: BaseException | None
    ) -> None:
        failures = health.record_failure(error)

        logger.warning(
            f"Health check failed for connection {index}: {error} "
            f"(consecutive_failures={failures}, state={health.state})"
        )

        if failures < self.config.failure_threshold:
            return
        if not health.compare_and_set_state(
            ConnectionState.HEALTHY, ConnectionState.UNHEALTHY
        ):
            return

        logger.error(
            f"Connection {index} marked as unhealthy "
            f"(consecutive_failures={failures}, "
            f"threshold={self.config.failure_threshold})"
        )
        if self.config.enable_auto_recovery:
            self._spawn_recovery(index, health)

    def _spawn_recovery(self, index: int, health: ConnectionHealth) -> None:
        if self._nursery is None or self._stop_event.is_set():
            logger.debug(f"Monitor not running, no recovery for connection {index}")
            return
        self._nursery.start_soon(self._attempt_recovery, index, health)

    async def _attempt_recovery(self, index: int, health: ConnectionHealth) -> None:
        """
        Retry an unhealthy connection until it recovers or runs out of attempts.

        Successful retries go through the regular success handler, which
        moves the connection to HEALTHY once ``recovery_threshold``
        consecutive successes are reached and ends the sequence. Only failed
        retries count against ``max_recovery_attempts``.
        """
        if not health.compare_and_set_state(
            ConnectionState.UNHEALTHY, ConnectionState.RECOVERING
        ):
            return

        token = object()
        self._active_recoveries[index] = token
        try:
            attempts = health.increment_recovery_attempts()
            logger.info(
                f"Starting recovery of connection {index} "
                f"(attempt={attempts}, "
                f"max_attempts={self.config.max_recovery_attempts})"
            )

            while attempts <= self.config.max_recovery_attempts:
                with trio.move_on_after(self.config.recovery_interval):
                    await self._stop_event.wait()
                if self._stop_event.is_set():
                    return
                # Recovered by a regular round, or reset by the pool
                if self._active_recoveries.get(index) is not token:
                    return

                result = await self._probe_safely(index, health)
                if self._stop_event.is_set():
                    return
                # The record may have been reset while the retry was in flight
                if self._active_recoveries.get(index) is not token:
                    return

                if result.success:
                    logger.info(
                        f"Recovery retry of connection {index} successful "
                        f"(attempt={attempts})"
                    )
                    self._handle_success(index, health)
                    if health.state is ConnectionState.HEALTHY:
                        return
                    # Keep retrying until enough consecutive successes
                    continue

                health.record_failure(result.error)
                attempts = health.increment_recovery_attempts()
                logger.warning(
                    f"Recovery attempt for connection {index} failed "
                    f"(attempt={attempts}): {result.error}"
                )

            if health.compare_and_set_state(
                ConnectionState.RECOVERING, ConnectionState.DISCONNECTED
            ):
                logger.error(
                    f"Recovery of connection {index} failed after "
                    f"{self.config.max_recovery_attempts} attempts, "
                    "marking it as disconnected"
                )
        finally:
            if self._active_recoveries.get(index) is token:
                del self._active_recoveries[index]

    # Queries

    def get_healthy_connections(self) -> list[int]:
        """Return the indices of usable connections in ascending order."""
        with self._lock:
            return [
                index
                for index, health in enumerate(self._connections)
                if health.is_healthy()
            ]

    def get_connection_health(self, index: int) -> ConnectionHealth | None:
        """Return the health record at ``index``, or None when out of range."""
        with self._lock:
            if index < 0 or index >= len(self._connections):
                return None
            return self._connections[index]

    def get_overall_health(self) -> PoolHealth:
        """Compute a fresh snapshot of the pool's health."""
        with self._lock:
            return build_pool_health(self._connections)

    def reset_connection(self, index: int) -> bool:
        """
        Clear the history of one connection after the pool rebuilt it.

        This is the only way out of DISCONNECTED. Any recovery sequence still
        attached to the connection is abandoned.
        """
        health = self.get_connection_health(index)
        if health is None:
            return False

        self._active_recoveries.pop(index, None)
        health.reset()
        logger.info(f"Health of connection {index} reset by the pool")
        return True

    def get_monitoring_status(self) -> HealthMonitorStatus:
        """Get current monitoring status and statistics."""
        return HealthMonitorStatus(
            enabled=True,
            running=self._running,
            check_interval_seconds=self.config.interval,
            total_connections=len(self._connections),
            healthy_connections=len(self.get_healthy_connections()),
        )
