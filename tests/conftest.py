"""Shared fixtures: an in-memory HTTP counter service and an in-process gRPC counter server."""

import json
from concurrent import futures
from types import SimpleNamespace
from typing import Dict, List

import grpc
import httpx
import pytest
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from grpc_reflection.v1alpha import reflection

from apiexpect.grpc_connection import GRPCConnection
from apiexpect.http_connection import HTTPConnection

BASE_URL = "http://counter.test"
SERVICE_NAME = "pkg.CounterService"


# ── HTTP counter ──


class HTTPCounterService:
    """Counter plus a tiny user store, served through httpx.MockTransport."""

    def __init__(self):
        self.count = 0
        self.users: Dict[str, dict] = {}
        self.calls: List[str] = []
        self.uploads: List[bytes] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(f"{request.method} {path}")

        if request.method == "POST" and path in ("/increment", "/decrement", "/zero"):
            if path == "/increment":
                self.count += 1
            elif path == "/decrement":
                self.count -= 1
            else:
                self.count = 0
            return httpx.Response(200, json={"count": self.count})

        if request.method == "POST" and path == "/users":
            data = json.loads(request.content or b"{}")
            uid = f"user-{len(self.users) + 1}"
            user = {"id": uid, **data}
            self.users[uid] = user
            return httpx.Response(201, json=user, headers={"Location": f"/users/{uid}"})

        if request.method == "GET" and path.startswith("/users/"):
            user = self.users.get(path[len("/users/"):])
            if user is None:
                return httpx.Response(404, text="user not found")
            return httpx.Response(200, json=user)

        if request.method == "POST" and path == "/upload":
            self.uploads.append(request.content)
            return httpx.Response(201, json={"size": len(request.content)})

        if path == "/ids":
            return httpx.Response(200, content=b"[1,2]", headers={"Content-Type": "application/json"})

        if path == "/ping":
            return httpx.Response(200, text="pong")

        if path == "/echo":
            return httpx.Response(200, json={
                "method": request.method,
                "query": dict(request.url.params),
                "headers": dict(request.headers),
                "body": request.content.decode("utf-8"),
            })

        if path == "/slow":
            raise httpx.ReadTimeout("timed out", request=request)

        return httpx.Response(404, text="no route")


@pytest.fixture
def http_counter() -> HTTPCounterService:
    return HTTPCounterService()


@pytest.fixture
def http_client(http_counter):
    client = httpx.Client(transport=httpx.MockTransport(http_counter.handle))
    yield client
    client.close()


@pytest.fixture
def http_conn(http_client) -> HTTPConnection:
    """Default (empty-named) connection to the counter service."""
    return HTTPConnection("", BASE_URL, client=http_client)


# ── gRPC counter ──


def _field(msg, name: str, number: int, type_: int, repeated: bool = False):
    FDP = descriptor_pb2.FieldDescriptorProto
    msg.field.add(
        name=name,
        number=number,
        json_name=name,
        type=type_,
        label=FDP.LABEL_REPEATED if repeated else FDP.LABEL_OPTIONAL,
    )


def _int32(msg, name: str, number: int):
    _field(msg, name, number, descriptor_pb2.FieldDescriptorProto.TYPE_INT32)


def _counter_files():
    # Empty lives in its own file so reflection clients must fetch the import by name.
    empty = descriptor_pb2.FileDescriptorProto(name="pkg/empty.proto", package="pkg", syntax="proto3")
    empty.message_type.add(name="Empty")

    counter = descriptor_pb2.FileDescriptorProto(name="pkg/counter.proto", package="pkg", syntax="proto3")
    counter.dependency.append("pkg/empty.proto")
    _int32(counter.message_type.add(name="AddRequest"), "n", 1)
    resp = counter.message_type.add(name="CounterResponse")
    _int32(resp, "count", 1)
    _field(resp, "caller", 2, descriptor_pb2.FieldDescriptorProto.TYPE_STRING)
    # 64-bit fields render as JSON strings in canonical protobuf JSON
    _field(resp, "ops", 3, descriptor_pb2.FieldDescriptorProto.TYPE_INT64)
    _field(resp, "history", 4, descriptor_pb2.FieldDescriptorProto.TYPE_SINT64, repeated=True)

    svc = counter.service.add(name="CounterService")
    svc.method.add(name="Add", input_type=".pkg.AddRequest", output_type=".pkg.CounterResponse")
    for name in ("Increment", "Decrement", "Zero"):
        svc.method.add(name=name, input_type=".pkg.Empty", output_type=".pkg.CounterResponse")
    return empty, counter


def _build_pool() -> descriptor_pool.DescriptorPool:
    pool = descriptor_pool.DescriptorPool()
    for fdp in _counter_files():
        pool.AddSerializedFile(fdp.SerializeToString())
    return pool


POOL = _build_pool()
COUNTER_TYPES = SimpleNamespace(
    AddRequest=message_factory.GetMessageClass(POOL.FindMessageTypeByName("pkg.AddRequest")),
    CounterResponse=message_factory.GetMessageClass(POOL.FindMessageTypeByName("pkg.CounterResponse")),
    Empty=message_factory.GetMessageClass(POOL.FindMessageTypeByName("pkg.Empty")),
)


class GRPCCounterService:
    """Counter served with generic handlers; no generated stubs involved."""

    def __init__(self):
        self.count = 0
        self.calls: List[str] = []
        self.history: List[int] = []

    def _reply(self, context) -> object:
        meta = dict(context.invocation_metadata())
        self.history.append(self.count)
        return COUNTER_TYPES.CounterResponse(
            count=self.count,
            caller=meta.get("x-caller", ""),
            ops=len(self.calls),
            history=self.history,
        )

    def add(self, request, context):
        self.calls.append("Add")
        if request.n < 0:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, "n must be non-negative")
        self.count += request.n
        return self._reply(context)

    def increment(self, request, context):
        self.calls.append("Increment")
        self.count += 1
        return self._reply(context)

    def decrement(self, request, context):
        self.calls.append("Decrement")
        self.count -= 1
        return self._reply(context)

    def zero(self, request, context):
        self.calls.append("Zero")
        self.count = 0
        return self._reply(context)

    def generic_handler(self) -> grpc.GenericRpcHandler:
        def unary(fn, request_type):
            return grpc.unary_unary_rpc_method_handler(
                fn,
                request_deserializer=request_type.FromString,
                response_serializer=lambda m: m.SerializeToString(),
            )

        return grpc.method_handlers_generic_handler(SERVICE_NAME, {
            "Add": unary(self.add, COUNTER_TYPES.AddRequest),
            "Increment": unary(self.increment, COUNTER_TYPES.Empty),
            "Decrement": unary(self.decrement, COUNTER_TYPES.Empty),
            "Zero": unary(self.zero, COUNTER_TYPES.Empty),
        })


@pytest.fixture
def counter_types() -> SimpleNamespace:
    """Message classes for pkg.AddRequest, pkg.CounterResponse and pkg.Empty."""
    return COUNTER_TYPES


@pytest.fixture
def grpc_counter():
    """Start the counter server on a free port; yields (service, address)."""
    service = GRPCCounterService()
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=4))
    server.add_generic_rpc_handlers((service.generic_handler(),))
    reflection.enable_server_reflection((SERVICE_NAME, reflection.SERVICE_NAME), server, pool=POOL)
    port = server.add_insecure_port("localhost:0")
    server.start()
    yield service, f"localhost:{port}"
    server.stop(None)


@pytest.fixture
def grpc_conn(grpc_counter):
    _, addr = grpc_counter
    conn = GRPCConnection("counter", addr)
    yield conn
    conn.close()
