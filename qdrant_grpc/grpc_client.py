"""
Lower level client owning a single gRPC channel to the Qdrant server.
"""

import logging
import threading

import grpc

from qdrant_grpc.abc import (
    IConnection,
)
from qdrant_grpc.config import (
    Config,
)
from qdrant_grpc.proto import (
    HEALTH_CHECK_METHOD,
    HealthCheckReply,
    HealthCheckRequest,
)
from qdrant_grpc.version import (
    UNKNOWN_VERSION,
    get_client_version,
    is_compatible,
)

logger = logging.getLogger("qdrant_grpc.grpc_client")

# Deadline for the one-off version lookup done when connecting
SERVER_VERSION_TIMEOUT = 60.0


def create_channel(config: Config) -> grpc.Channel:
    """Open a lazily connecting channel for ``config``."""
    options = config.get_channel_options(f"python-client/{get_client_version()}")

    if config.use_tls:
        credentials = grpc.ssl_channel_credentials(
            root_certificates=config.root_certificates
        )
        return grpc.secure_channel(config.get_addr(), credentials, options=options)

    if config.api_key:
        logger.warning(
            "API key is being used without TLS. It will be transmitted in plaintext."
        )
    return grpc.insecure_channel(config.get_addr(), options=options)


class GrpcClient(IConnection):
    """
    One pooled connection: a gRPC channel plus its observed connectivity.

    The connectivity state is tracked through ``channel.subscribe`` so that it
    can be read without triggering a connection attempt.
    """

    def __init__(
        self,
        channel: grpc.Channel,
        metadata: tuple[tuple[str, str], ...] = (),
    ) -> None:
        self._channel = channel
        self._metadata = metadata
        self._state_lock = threading.Lock()
        self._state = grpc.ChannelConnectivity.IDLE
        self._closed = False
        self._health_check = channel.unary_unary(
            HEALTH_CHECK_METHOD,
            request_serializer=HealthCheckRequest.SerializeToString,
            response_deserializer=HealthCheckReply.FromString,
        )
        channel.subscribe(self._on_connectivity_change, try_to_connect=False)

    @classmethod
    def from_config(cls, config: Config) -> "GrpcClient":
        return cls(create_channel(config), config.get_call_metadata())

    @classmethod
    def from_channel(
        cls, channel: grpc.Channel, api_key: str | None = None
    ) -> "GrpcClient":
        """Wrap an existing channel."""
        return cls(channel, Config(api_key=api_key).get_call_metadata())

    @property
    def channel(self) -> grpc.Channel:
        return self._channel

    def _on_connectivity_change(self, state: grpc.ChannelConnectivity) -> None:
        with self._state_lock:
            self._state = state

    def get_state(self) -> grpc.ChannelConnectivity:
        with self._state_lock:
            if self._closed:
                return grpc.ChannelConnectivity.SHUTDOWN
            return self._state

    def health_check(self, timeout: float | None = None) -> HealthCheckReply:
        return self._health_check(
            HealthCheckRequest(), timeout=timeout, metadata=self._metadata
        )

    def get_server_version(self) -> str:
        try:
            reply = self.health_check(timeout=SERVER_VERSION_TIMEOUT)
        except grpc.RpcError as e:
            logger.warning(
                f"Unable to get server version: {e}, "
                f"server version defaults to {UNKNOWN_VERSION!r}"
            )
            return UNKNOWN_VERSION
        return reply.version

    def check_compatibility(self) -> bool:
        """
        Compare the client and server versions and warn on mismatch.

        Only logs; an incompatible server is still usable.
        """
        client_version = get_client_version()
        server_version = self.get_server_version()

        if server_version == UNKNOWN_VERSION:
            logger.warning(
                "Failed to obtain server version. "
                "Unable to check client-server compatibility. "
                "Set skip_compatibility_check=True to skip version check."
            )
            return False

        if not is_compatible(client_version, server_version):
            logger.warning(
                f"Client version {client_version} is not compatible with "
                f"server version {server_version}. Major versions should match "
                "and minor version difference must not exceed 1. "
                "Set skip_compatibility_check=True to skip version check."
            )
            return False
        return True

    def close(self) -> None:
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        self._channel.unsubscribe(self._on_connectivity_change)
        self._channel.close()
