from collections.abc import (
    Sequence,
)
from typing import (
    Any,
)

import grpc

RETRY_AFTER_KEY = "retry-after"


class BaseQdrantError(Exception):
    pass


class QdrantError(BaseQdrantError):
    r"""
    Wraps a failed RPC together with the name of the client operation that
    issued it, plus any extra context (for example a collection name).

    Example\:
    ---------
        >>> from qdrant_grpc.exceptions import QdrantError
        >>> err = QdrantError("GetCollection", ValueError("boom"), "my_collection")
        >>> print(err)
        GetCollection() failed: my_collection: boom

    """

    def __init__(self, operation: str, cause: BaseException, *contexts: str) -> None:
        self.operation = operation
        self.cause = cause
        self.context = ": ".join(contexts)
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.context:
            return f"{self.operation}() failed: {self.cause}"
        return f"{self.operation}() failed: {self.context}: {self.cause}"


class ResourceExhaustedError(QdrantError):
    """Raised when the server rate limits a call and says when to retry."""

    def __init__(
        self,
        operation: str,
        cause: BaseException,
        retry_after_s: int,
        *contexts: str,
    ) -> None:
        self.retry_after_s = retry_after_s
        super().__init__(operation, cause, *contexts)

    def __str__(self) -> str:
        return f"{super().__str__()} (retry after {self.retry_after_s}s)"


class HealthCheckProbeError(BaseQdrantError):
    """Synthesized probe failure for a channel known to be unusable."""

    def __init__(self, connectivity: grpc.ChannelConnectivity) -> None:
        super().__init__(f"gRPC connection in state: {connectivity.name}")
        self.connectivity = connectivity


class HealthWaitTimeoutError(BaseQdrantError):
    """Raised when no connection became healthy before the wait deadline."""


class ClientClosedError(BaseQdrantError):
    """Raised when a closed client is asked for a connection."""


def _retry_after(metadata: Sequence[Any] | None) -> int | None:
    for key, value in metadata or ():
        if key.lower() != RETRY_AFTER_KEY:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return None


def classify_rpc_error(
    err: BaseException, operation: str, *contexts: str
) -> QdrantError:
    """
    Convert a failed call into the library error hierarchy.

    ``RESOURCE_EXHAUSTED`` responses carrying an integer ``retry-after``
    trailer become :class:`ResourceExhaustedError`, everything else is a
    plain :class:`QdrantError`.
    """
    # Failed unary calls raise objects that are both RpcError and Call.
    if isinstance(err, grpc.RpcError) and hasattr(err, "code"):
        if err.code() == grpc.StatusCode.RESOURCE_EXHAUSTED:
            retry_after = _retry_after(err.trailing_metadata())
            if retry_after is not None:
                return ResourceExhaustedError(operation, err, retry_after, *contexts)
    return QdrantError(operation, err, *contexts)
