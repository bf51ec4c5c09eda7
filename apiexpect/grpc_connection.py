# apiexpect/grpc_connection.py
"""
gRPC connection with runtime method resolution through server reflection.

A method path "/pkg.Service/Method" is resolved once per connection:
the reflection service is asked for the file containing "pkg.Service",
missing transitive dependencies are fetched by file name, the files are
loaded into a private DescriptorPool, and the MethodDescriptor is cached.
No compiled stubs are needed to call the method afterwards.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.descriptor import MethodDescriptor
from grpc_reflection.v1alpha import reflection_pb2, reflection_pb2_grpc

from apiexpect.connection import Connection
from apiexpect.types import ConnectionEstablishError, ConnectionKind, ProtocolResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedMethod:
    """A resolved method with message classes built from its descriptors."""
    full_method: str
    descriptor: MethodDescriptor
    input_type: type
    output_type: type


def split_full_method(full_method: str) -> Tuple[str, str]:
    """Split "/pkg.Service/Method" into ("pkg.Service", "Method")."""
    parts = full_method.lstrip("/").split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ProtocolResolutionError(f"invalid full method {full_method!r}")
    return parts[0], parts[1]


class MethodDescriptorCache:
    """
    Per-connection cache of resolved methods.
    The lock covers check, resolve and insert so a method is resolved once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._methods: Dict[str, ResolvedMethod] = {}

    def get(self, full_method: str) -> Optional[ResolvedMethod]:
        with self._lock:
            return self._methods.get(full_method)

    def get_or_resolve(self, full_method: str, resolver: Callable[[str], ResolvedMethod]) -> ResolvedMethod:
        with self._lock:
            cached = self._methods.get(full_method)
            if cached is not None:
                return cached
            resolved = resolver(full_method)
            self._methods[full_method] = resolved
            return resolved

    def __len__(self) -> int:
        with self._lock:
            return len(self._methods)


class GRPCConnection(Connection):
    """
    Connection to a gRPC service.

    Args:
        name: Connection name (empty name marks the default connection)
        addr: Dial target, e.g. "localhost:50051"
        credentials: Channel credentials; None dials an insecure channel
        options: Extra channel options passed to grpc
    """

    def __init__(
        self,
        name: str,
        addr: str,
        credentials: Optional[grpc.ChannelCredentials] = None,
        options: Optional[Sequence[Tuple[str, object]]] = None,
    ):
        super().__init__(name)
        self.addr = addr
        self.credentials = credentials
        self.options = list(options or [])
        self.methods = MethodDescriptorCache()
        self._channel: Optional[grpc.Channel] = None
        self._lock = threading.Lock()

    @property
    def kind(self) -> ConnectionKind:
        return ConnectionKind.GRPC

    def dial(self) -> grpc.Channel:
        """Open the channel on first use; later calls return the same channel."""
        with self._lock:
            if self._channel is not None:
                return self._channel
            try:
                if self.credentials is not None:
                    self._channel = grpc.secure_channel(self.addr, self.credentials, options=self.options)
                else:
                    self._channel = grpc.insecure_channel(self.addr, options=self.options)
            except Exception as e:
                raise ConnectionEstablishError(f"grpc dial {self.addr!r}: {e}") from e
            logger.debug(f"opened gRPC channel for {self.name or '(default)'} → {self.addr}")
            return self._channel

    def channel(self) -> grpc.Channel:
        """Return the raw channel, dialling if necessary."""
        return self.dial()

    def close(self) -> None:
        with self._lock:
            if self._channel is not None:
                self._channel.close()
                self._channel = None

    # ==================== Reflection ====================

    def resolve_method(self, full_method: str) -> ResolvedMethod:
        """Return the resolved method for full_method, using the cache when possible."""
        return self.methods.get_or_resolve(full_method, self._resolve_uncached)

    def _resolve_uncached(self, full_method: str) -> ResolvedMethod:
        service_symbol, method_name = split_full_method(full_method)
        stub = reflection_pb2_grpc.ServerReflectionStub(self.channel())

        files = self._fetch_files(stub, [reflection_pb2.ServerReflectionRequest(file_containing_symbol=service_symbol)])

        # Some servers return only the requested file; fetch missing imports by name.
        missing = _missing_dependencies(files)
        while missing:
            fetched = self._fetch_files(
                stub, [reflection_pb2.ServerReflectionRequest(file_by_filename=name) for name in missing]
            )
            for name, fdp in fetched.items():
                files.setdefault(name, fdp)
            still_missing = _missing_dependencies(files)
            if still_missing == missing:
                raise ProtocolResolutionError(f"reflection did not return dependencies {sorted(missing)}")
            missing = still_missing

        pool = descriptor_pool.DescriptorPool()
        try:
            for fdp in _dependency_order(files):
                pool.AddSerializedFile(fdp.SerializeToString())
        except Exception as e:
            raise ProtocolResolutionError(f"build file descriptors: {e}") from e

        try:
            service = pool.FindServiceByName(service_symbol)
        except KeyError as e:
            raise ProtocolResolutionError(f"find service {service_symbol!r}: {e}") from e

        method = service.methods_by_name.get(method_name)
        if method is None:
            raise ProtocolResolutionError(f"method {method_name!r} not found in service {service_symbol!r}")

        logger.info(f"🔎 resolved {full_method} via reflection ({len(files)} file(s))")
        return ResolvedMethod(
            full_method=full_method,
            descriptor=method,
            input_type=message_factory.GetMessageClass(method.input_type),
            output_type=message_factory.GetMessageClass(method.output_type),
        )

    @staticmethod
    def _fetch_files(
        stub: reflection_pb2_grpc.ServerReflectionStub,
        requests: List[reflection_pb2.ServerReflectionRequest],
    ) -> Dict[str, descriptor_pb2.FileDescriptorProto]:
        """Send requests on one reflection stream; return the files deduplicated by name."""
        files: Dict[str, descriptor_pb2.FileDescriptorProto] = {}
        try:
            responses = list(stub.ServerReflectionInfo(iter(requests)))
        except grpc.RpcError as e:
            raise ProtocolResolutionError(f"reflection stream: {e.code().name}: {e.details()}") from e

        for resp in responses:
            which = resp.WhichOneof("message_response")
            if which == "error_response":
                raise ProtocolResolutionError(f"reflection error: {resp.error_response.error_message}")
            if which != "file_descriptor_response":
                raise ProtocolResolutionError(f"unexpected reflection response type {which!r}")
            for raw in resp.file_descriptor_response.file_descriptor_proto:
                fdp = descriptor_pb2.FileDescriptorProto()
                try:
                    fdp.ParseFromString(raw)
                except Exception as e:
                    raise ProtocolResolutionError(f"unmarshal file descriptor: {e}") from e
                files.setdefault(fdp.name, fdp)
        return files


def _missing_dependencies(files: Dict[str, descriptor_pb2.FileDescriptorProto]) -> List[str]:
    return sorted({dep for fdp in files.values() for dep in fdp.dependency if dep not in files})


def _dependency_order(files: Dict[str, descriptor_pb2.FileDescriptorProto]) -> Iterable[descriptor_pb2.FileDescriptorProto]:
    """Yield files so every dependency precedes the files importing it."""
    done: set = set()

    def visit(name: str, stack: Tuple[str, ...]):
        if name in done:
            return
        if name in stack:
            raise ProtocolResolutionError(f"import cycle through {name!r}")
        fdp = files[name]
        for dep in fdp.dependency:
            yield from visit(dep, stack + (name,))
        done.add(name)
        yield fdp

    for name in files:
        yield from visit(name, ())


def GRPC(name: str, addr: str, **kwargs) -> GRPCConnection:
    """Convenience constructor for a GRPCConnection."""
    return GRPCConnection(name, addr, **kwargs)
