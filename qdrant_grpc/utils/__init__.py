"""Utility functions for the Qdrant gRPC client."""

from qdrant_grpc.utils.trio_timeout import (
    poll_until,
)

__all__ = [
    "poll_until",
]
