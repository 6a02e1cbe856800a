from unittest.mock import (
    Mock,
)

import grpc
import pytest

from qdrant_grpc import grpc_client as grpc_client_module
from qdrant_grpc.config import (
    Config,
)
from qdrant_grpc.grpc_client import (
    GrpcClient,
    create_channel,
)
from qdrant_grpc.proto import (
    HEALTH_CHECK_METHOD,
    HealthCheckReply,
    HealthCheckRequest,
)
from tests.utils.factories import (
    FakeRpcError,
)


@pytest.fixture
def channel():
    channel = Mock(spec=grpc.Channel)
    channel.unary_unary.return_value = Mock(
        return_value=HealthCheckReply(version="1.12.0")
    )
    return channel


def test_builds_health_check_stub(channel):
    GrpcClient(channel)

    args, kwargs = channel.unary_unary.call_args
    assert args[0] == HEALTH_CHECK_METHOD == "/qdrant.Qdrant/HealthCheck"
    assert kwargs["request_serializer"] == HealthCheckRequest.SerializeToString
    assert kwargs["response_deserializer"] == HealthCheckReply.FromString


def test_tracks_connectivity_without_connecting(channel):
    client = GrpcClient(channel)

    callback = channel.subscribe.call_args.args[0]
    assert channel.subscribe.call_args.kwargs == {"try_to_connect": False}
    assert client.get_state() is grpc.ChannelConnectivity.IDLE

    callback(grpc.ChannelConnectivity.READY)
    assert client.get_state() is grpc.ChannelConnectivity.READY

    callback(grpc.ChannelConnectivity.TRANSIENT_FAILURE)
    assert client.get_state() is grpc.ChannelConnectivity.TRANSIENT_FAILURE


def test_health_check_sends_api_key(channel):
    client = GrpcClient.from_channel(channel, api_key="secret")

    reply = client.health_check(timeout=2.5)

    assert reply.version == "1.12.0"
    stub = channel.unary_unary.return_value
    _, kwargs = stub.call_args
    assert kwargs["timeout"] == 2.5
    assert kwargs["metadata"] == (("api-key", "secret"),)


def test_close_is_idempotent(channel):
    client = GrpcClient(channel)

    client.close()
    client.close()

    assert client.get_state() is grpc.ChannelConnectivity.SHUTDOWN
    channel.unsubscribe.assert_called_once()
    channel.close.assert_called_once()


def test_server_version_unknown_on_error(channel):
    channel.unary_unary.return_value = Mock(side_effect=FakeRpcError())
    client = GrpcClient(channel)

    assert client.get_server_version() == "Unknown"
    assert not client.check_compatibility()


@pytest.mark.parametrize(
    "server_version, expected",
    [("1.12.3", True), ("1.13.0", True), ("1.15.0", False), ("2.12.0", False)],
)
def test_check_compatibility(channel, monkeypatch, server_version, expected):
    monkeypatch.setattr(grpc_client_module, "get_client_version", lambda: "1.12.0")
    channel.unary_unary.return_value = Mock(
        return_value=HealthCheckReply(version=server_version)
    )

    assert GrpcClient(channel).check_compatibility() is expected


def test_create_insecure_channel(monkeypatch):
    calls = []

    def insecure_channel(target, options=None):
        calls.append((target, options))
        return Mock(spec=grpc.Channel)

    monkeypatch.setattr(grpc_client_module.grpc, "insecure_channel", insecure_channel)
    create_channel(Config(host="qdrant.local", port=6335))

    target, options = calls[0]
    assert target == "qdrant.local:6335"
    assert options[0][0] == "grpc.primary_user_agent"
    assert options[0][1].startswith("python-client/")


def test_create_secure_channel(monkeypatch):
    credentials = object()
    calls = []

    monkeypatch.setattr(
        grpc_client_module.grpc,
        "ssl_channel_credentials",
        lambda root_certificates=None: credentials,
    )

    def secure_channel(target, creds, options=None):
        calls.append((target, creds))
        return Mock(spec=grpc.Channel)

    monkeypatch.setattr(grpc_client_module.grpc, "secure_channel", secure_channel)
    create_channel(Config(use_tls=True, api_key="secret"))

    assert calls == [("localhost:6334", credentials)]
