"""
Protobuf messages for the ``qdrant.Qdrant`` service.

Only the liveness call is described here; everything else goes through
caller-supplied stubs on the channel returned by the client.
"""

from google.protobuf import (
    descriptor_pb2,
    descriptor_pool,
    message_factory,
)

PACKAGE = "qdrant"
HEALTH_CHECK_METHOD = f"/{PACKAGE}.Qdrant/HealthCheck"


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="qdrant_grpc/qdrant_health.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    file_proto.message_type.add(name="HealthCheckRequest")

    reply = file_proto.message_type.add(name="HealthCheckReply")
    for number, name in enumerate(("title", "version", "commit"), start=1):
        reply.field.add(
            name=name,
            number=number,
            type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
            label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
        )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())

HealthCheckRequest = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.HealthCheckRequest")
)
HealthCheckReply = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.HealthCheckReply")
)
