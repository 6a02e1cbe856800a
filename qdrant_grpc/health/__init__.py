"""
Connection pool health monitoring for the Qdrant gRPC client.

This package tracks the liveness of every pooled connection, moves
connections through their health states, drives automatic recovery and
exposes the healthy subset used by the client's connection selector.
"""

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
)
from .monitor import HealthMonitor
from .prober import HealthCheckProber

__all__ = [
    "ConnectionHealth",
    "ConnectionState",
    "HealthCheckConfig",
    "HealthCheckProber",
    "HealthMonitor",
    "HealthMonitorStatus",
    "PoolHealth",
    "ProbeResult",
    "default_health_check_config",
]
