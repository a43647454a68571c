"""Greeter RPC contract

Message classes for ``protos/helloworld.proto`` are built from a descriptor
at import time, so the wire format matches the canonical hello-world service
without committing protoc output.
"""

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "helloworld"
SERVICE_NAME = f"{PACKAGE}.Greeter"
SAY_HELLO_METHOD = f"/{SERVICE_NAME}/SayHello"


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="helloworld.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    for message_name, field_name in (("HelloRequest", "name"), ("HelloReply", "message")):
        message = file_proto.message_type.add(name=message_name)
        message.field.add(
            name=field_name,
            json_name=field_name,
            number=1,
            type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
            label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
        )

    service = file_proto.service.add(name="Greeter")
    service.method.add(
        name="SayHello",
        input_type=f".{PACKAGE}.HelloRequest",
        output_type=f".{PACKAGE}.HelloReply",
    )
    return file_proto


# Private pool so another helloworld.proto in the default pool cannot clash
_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())

HelloRequest = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.HelloRequest"))
HelloReply = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.HelloReply"))


class GreeterStub:
    """Client stub for the Greeter service"""

    def __init__(self, channel: grpc.Channel):
        self.SayHello = channel.unary_unary(
            SAY_HELLO_METHOD,
            request_serializer=HelloRequest.SerializeToString,
            response_deserializer=HelloReply.FromString,
        )


def add_greeter_servicer_to_server(servicer, server: grpc.Server) -> None:
    """Register a servicer implementing ``SayHello(request, context)``"""
    rpc_method_handlers = {
        "SayHello": grpc.unary_unary_rpc_method_handler(
            servicer.SayHello,
            request_deserializer=HelloRequest.FromString,
            response_serializer=HelloReply.SerializeToString,
        ),
    }
    generic_handler = grpc.method_handlers_generic_handler(SERVICE_NAME, rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))
