"""
Connection Health Data Structures for the Qdrant gRPC client.

This module provides the per-connection health record, the connection state
enumeration and the immutable pool-level snapshot consumed by the client's
connection selector.
"""

from dataclasses import (
    dataclass,
)
from enum import (
    Enum,
)
import logging
import threading
import time
from typing import (
    Any,
)

from qdrant_grpc.abc import (
    IConnection,
)

logger = logging.getLogger("qdrant_grpc.health.data_structures")


class ConnectionState(Enum):
    """Health classification of a single pooled connection."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    RECOVERING = "recovering"
    DISCONNECTED = "disconnected"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single liveness probe."""

    success: bool
    error: BaseException | None = None


@dataclass
class HealthMonitorStatus:
    """Status information for the health monitoring service."""

    # Basic status
    enabled: bool

    # Service status
    running: bool = False

    # Configuration
    check_interval_seconds: float = 0.0

    # Statistics
    total_connections: int = 0
    healthy_connections: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "running": self.running,
            "check_interval_seconds": self.check_interval_seconds,
            "total_connections": self.total_connections,
            "healthy_connections": self.healthy_connections,
        }


class ConnectionHealth:
    """
    Health record for one pooled connection.

    Every field is guarded by a per-record lock so that API callers can read
    a record while the monitor's tasks update it. Transitions made by the
    monitor go through :meth:`compare_and_set_state` and :meth:`mark_healthy`.
    """

    def __init__(self, connection: IConnection) -> None:
        # Non-owning: the pool manages the connection's lifetime.
        self.connection = connection
        self._lock = threading.Lock()
        self._state = ConnectionState.HEALTHY
        self._consecutive_failures = 0
        self._consecutive_successes = 0
        self._last_health_check = time.time()
        self._last_error: BaseException | None = None
        self._recovery_attempts = 0

    def __repr__(self) -> str:
        return (
            f"<ConnectionHealth state={self.state} "
            f"failures={self.consecutive_failures} "
            f"successes={self.consecutive_successes}>"
        )

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def consecutive_successes(self) -> int:
        with self._lock:
            return self._consecutive_successes

    @property
    def last_health_check(self) -> float:
        with self._lock:
            return self._last_health_check

    @property
    def last_error(self) -> BaseException | None:
        with self._lock:
            return self._last_error

    @property
    def recovery_attempts(self) -> int:
        with self._lock:
            return self._recovery_attempts

    def is_healthy(self) -> bool:
        """
        Check whether the connection may carry traffic.

        Recovering connections count as usable while they are re-validated.
        """
        return self.state in (ConnectionState.HEALTHY, ConnectionState.RECOVERING)

    def mark_checked(self, timestamp: float | None = None) -> None:
        """Record the start of a probe attempt."""
        with self._lock:
            self._last_health_check = (
                time.time() if timestamp is None else timestamp
            )

    def record_success(self) -> int:
        """Register a successful probe and return the consecutive success count."""
        with self._lock:
            self._last_error = None
            self._consecutive_successes += 1
            self._consecutive_failures = 0
            return self._consecutive_successes

    def record_failure(self, error: BaseException | None) -> int:
        """Register a failed probe and return the consecutive failure count."""
        with self._lock:
            self._last_error = error
            self._consecutive_failures += 1
            self._consecutive_successes = 0
            return self._consecutive_failures

    def increment_recovery_attempts(self) -> int:
        with self._lock:
            self._recovery_attempts += 1
            return self._recovery_attempts

    def compare_and_set_state(
        self, expected: ConnectionState, new: ConnectionState
    ) -> bool:
        """Atomically move from ``expected`` to ``new``; return False otherwise."""
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def mark_healthy(self) -> bool:
        """
        Return a degraded connection to HEALTHY and reset its recovery budget.

        DISCONNECTED is terminal and is left untouched; use :meth:`reset`.
        """
        with self._lock:
            if self._state in (ConnectionState.HEALTHY, ConnectionState.DISCONNECTED):
                return False
            self._state = ConnectionState.HEALTHY
            self._recovery_attempts = 0
            return True

    def reset(self) -> None:
        """Forget all history, as if the connection had just been added."""
        with self._lock:
            self._state = ConnectionState.HEALTHY
            self._consecutive_failures = 0
            self._consecutive_successes = 0
            self._last_error = None
            self._recovery_attempts = 0
            self._last_health_check = time.time()

    def get_health_summary(self) -> dict[str, Any]:
        """Get a consistent summary of the record."""
        with self._lock:
            return {
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "consecutive_successes": self._consecutive_successes,
                "last_health_check": self._last_health_check,
                "last_error": (
                    str(self._last_error) if self._last_error is not None else None
                ),
                "recovery_attempts": self._recovery_attempts,
            }


@dataclass(frozen=True)
class PoolHealth:
    """Immutable snapshot of the health of a whole connection pool."""

    total_connections: int = 0
    healthy_connections: int = 0
    unhealthy_connections: int = 0
    recovering_connections: int = 0
    disconnected_connections: int = 0

    def is_healthy(self) -> bool:
        """True if at least one connection can carry traffic."""
        return self.healthy_connections > 0 or self.recovering_connections > 0

    def health_ratio(self) -> float:
        """Share of HEALTHY connections, 0.0 for an empty pool."""
        if self.total_connections == 0:
            return 0.0
        return self.healthy_connections / self.total_connections

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_connections": self.total_connections,
            "healthy_connections": self.healthy_connections,
            "unhealthy_connections": self.unhealthy_connections,
            "recovering_connections": self.recovering_connections,
            "disconnected_connections": self.disconnected_connections,
            "health_ratio": self.health_ratio(),
            "is_healthy": self.is_healthy(),
        }


def build_pool_health(records: list[ConnectionHealth]) -> PoolHealth:
    """Classify every record into one of the four state buckets."""
    counts = {state: 0 for state in ConnectionState}
    for record in records:
        counts[record.state] += 1

    return PoolHealth(
        total_connections=len(records),
        healthy_connections=counts[ConnectionState.HEALTHY],
        unhealthy_connections=counts[ConnectionState.UNHEALTHY],
        recovering_connections=counts[ConnectionState.RECOVERING],
        disconnected_connections=counts[ConnectionState.DISCONNECTED],
    )
