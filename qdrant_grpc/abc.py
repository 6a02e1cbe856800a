from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    TYPE_CHECKING,
)

import grpc

if TYPE_CHECKING:
    from qdrant_grpc.proto import HealthCheckReply

# -------------------------- connection interface.py --------------------------


class IConnection(ABC):
    """
    Interface for one pooled connection to the Qdrant server.

    The health subsystem only ever reads from a connection: it inspects the
    transport state and issues liveness probes. Opening, closing and
    replacing connections is the pool's job.
    """

    @property
    @abstractmethod
    def channel(self) -> grpc.Channel:
        """The underlying channel, for stubs of the other Qdrant services."""

    @abstractmethod
    def get_state(self) -> grpc.ChannelConnectivity:
        """
        Return the most recently observed connectivity state of the channel.

        :return: The current ``grpc.ChannelConnectivity`` value.
        """

    @abstractmethod
    def health_check(self, timeout: float | None = None) -> "HealthCheckReply":
        """
        Issue a blocking ``HealthCheck`` RPC against the server.

        :param timeout: Per-call deadline in seconds.
        :return: The server's health check reply.
        :raise grpc.RpcError: If the call fails or exceeds its deadline.
        """

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying channel."""
