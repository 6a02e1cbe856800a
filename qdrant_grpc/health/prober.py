"""
Liveness prober for pooled gRPC connections.
"""

import functools
import logging

import grpc
import trio

from qdrant_grpc.exceptions import (
    HealthCheckProbeError,
)

from .data_structures import (
    ConnectionHealth,
    ProbeResult,
)

logger = logging.getLogger("qdrant_grpc.health.prober")

# Channels in these states fail the probe without spending the RPC timeout.
DEAD_CHANNEL_STATES = frozenset(
    {
        grpc.ChannelConnectivity.SHUTDOWN,
        grpc.ChannelConnectivity.TRANSIENT_FAILURE,
    }
)


class HealthCheckProber:
    """
    Issues bounded-time liveness probes against single connections.

    The prober only stamps ``last_health_check`` on the record; turning the
    outcome into a state transition is left to the monitor.
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout

    async def probe(self, health: ConnectionHealth) -> ProbeResult:
        health.mark_checked()

        connectivity = health.connection.get_state()
        if connectivity in DEAD_CHANNEL_STATES:
            return ProbeResult(
                success=False, error=HealthCheckProbeError(connectivity)
            )

        try:
            # The gRPC deadline bounds the worker thread, so it is never abandoned.
            await trio.to_thread.run_sync(
                functools.partial(health.connection.health_check, timeout=self.timeout)
            )
        except Exception as e:
            logger.debug(f"Liveness probe failed: {e}")
            return ProbeResult(success=False, error=e)

        return ProbeResult(success=True)
