from concurrent import (
    futures,
)

import grpc
import pytest

from qdrant_grpc.config import (
    API_KEY_HEADER,
)
from qdrant_grpc.proto import (
    HealthCheckReply,
    HealthCheckRequest,
)

SERVER_VERSION = "1.12.0"
TEST_API_KEY = "<HEALTH_TEST>"


class QdrantHealthServicer:
    """Minimal ``qdrant.Qdrant`` service answering HealthCheck only."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key
        self.calls = 0

    def health_check(self, request, context):
        self.calls += 1
        if self.api_key is not None:
            metadata = dict(context.invocation_metadata())
            if metadata.get(API_KEY_HEADER) != self.api_key:
                context.abort(grpc.StatusCode.UNAUTHENTICATED, "invalid api key")
        return HealthCheckReply(
            title="qdrant - vector search engine", version=SERVER_VERSION
        )


@pytest.fixture
def qdrant_server():
    """Run an in-process gRPC server and yield ``(port, servicer)``."""
    servicer = QdrantHealthServicer(api_key=TEST_API_KEY)
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    handler = grpc.method_handlers_generic_handler(
        "qdrant.Qdrant",
        {
            "HealthCheck": grpc.unary_unary_rpc_method_handler(
                servicer.health_check,
                request_deserializer=HealthCheckRequest.FromString,
                response_serializer=HealthCheckReply.SerializeToString,
            )
        },
    )
    server.add_generic_rpc_handlers((handler,))
    port = server.add_insecure_port("localhost:0")
    server.start()
    try:
        yield port, servicer
    finally:
        server.stop(grace=None)
