"""
Configuration for connection pool health monitoring.

Defaults match the ones shipped by the other Qdrant clients.
"""

from dataclasses import (
    dataclass,
)

# Default health check settings (seconds)
HEALTH_CHECK_INTERVAL = 30.0
HEALTH_CHECK_TIMEOUT = 5.0
RECOVERY_INTERVAL = 10.0

# Default thresholds
FAILURE_THRESHOLD = 3
RECOVERY_THRESHOLD = 2
MAX_RECOVERY_ATTEMPTS = 5


@dataclass(frozen=True)
class HealthCheckConfig:
    """
    Configuration for the connection pool health monitor.

    The configuration is supplied wholesale when the monitor is built and is
    never updated afterwards.

    Attributes:
        interval: Seconds between two probing rounds. Default: 30.0
        timeout: Deadline in seconds for a single liveness probe. Default: 5.0
        failure_threshold: Consecutive failed probes before a healthy
                           connection is marked unhealthy. Default: 3
        recovery_threshold: Consecutive successful probes before a degraded
                            connection is marked healthy again. Default: 2
        enable_auto_recovery: Start a recovery sequence when a connection
                              becomes unhealthy. Default: True
        recovery_interval: Seconds between two recovery retries. Default: 10.0
        max_recovery_attempts: Failed recovery retries tolerated before the
                               connection is marked disconnected. Default: 5

    """

    interval: float = HEALTH_CHECK_INTERVAL
    timeout: float = HEALTH_CHECK_TIMEOUT
    failure_threshold: int = FAILURE_THRESHOLD
    recovery_threshold: int = RECOVERY_THRESHOLD
    enable_auto_recovery: bool = True
    recovery_interval: float = RECOVERY_INTERVAL
    max_recovery_attempts: int = MAX_RECOVERY_ATTEMPTS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_threshold < 1:
            raise ValueError("recovery_threshold must be at least 1")
        if self.recovery_interval <= 0:
            raise ValueError("recovery_interval must be positive")
        if self.max_recovery_attempts < 0:
            raise ValueError("max_recovery_attempts must be non-negative")


def default_health_check_config() -> HealthCheckConfig:
    """Return a new HealthCheckConfig populated with the default values."""
    return HealthCheckConfig()
