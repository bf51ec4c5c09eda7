# apiexpect/grpc_request.py
"""
Unary gRPC invocation and response expectations.

Two invocation modes:
- typed: `message` is a compiled protobuf message; the response class is
  `response_type` or, when omitted, resolved through server reflection
- dynamic: only `full_method` and a raw JSON `body`; both message shapes are
  resolved through server reflection

Responses are converted to canonical protobuf JSON so body assertions and
save entries work the same way as for HTTP.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import grpc
from google.protobuf import json_format
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import Message

from apiexpect.grpc_connection import GRPCConnection
from apiexpect.match import ExpectBody, SaveEntry, save_from_json
from apiexpect.types import ConnectionKind, ExpectError, ExpectationError, TransportError
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)

OK = "OK"

_INT64_TYPES = frozenset({
    FieldDescriptor.TYPE_INT64,
    FieldDescriptor.TYPE_UINT64,
    FieldDescriptor.TYPE_SINT64,
    FieldDescriptor.TYPE_FIXED64,
    FieldDescriptor.TYPE_SFIXED64,
})


@dataclass
class GRPCResult:
    """Outcome of a gRPC call: status code name, message, and JSON body on success."""
    code: str = OK
    message: str = ""
    body: Optional[bytes] = None

    @property
    def ok(self) -> bool:
        return self.code == OK

    def error(self) -> Optional[TransportError]:
        if self.ok:
            return None
        return TransportError(f"{self.code}: {self.message}", code=self.code)


def _int64_as_number(value: Any) -> Any:
    return int(value) if isinstance(value, str) else value


def _restore_int64(data: Dict[str, Any], descriptor: Descriptor) -> None:
    """
    Convert 64-bit integer fields back to JSON numbers in place.

    Protobuf JSON renders int64/uint64/fixed64 as strings; numeric matchers
    and exact patterns expect numbers. Well-known types keep their JSON form.
    """
    for fd in descriptor.fields:
        if fd.json_name not in data:
            continue
        value = data[fd.json_name]
        repeated = fd.label == FieldDescriptor.LABEL_REPEATED
        sub = fd.message_type

        if sub is None:
            if fd.type in _INT64_TYPES:
                data[fd.json_name] = [_int64_as_number(v) for v in value] if repeated else _int64_as_number(value)
            continue
        if sub.full_name.startswith("google.protobuf."):
            continue

        if sub.GetOptions().map_entry:
            value_fd = sub.fields_by_name["value"]
            for k, v in value.items():
                if value_fd.message_type is not None:
                    if isinstance(v, dict) and not value_fd.message_type.full_name.startswith("google.protobuf."):
                        _restore_int64(v, value_fd.message_type)
                elif value_fd.type in _INT64_TYPES:
                    value[k] = _int64_as_number(v)
        elif repeated:
            for item in value:
                if isinstance(item, dict):
                    _restore_int64(item, sub)
        elif isinstance(value, dict):
            _restore_int64(value, sub)


def _to_json_bytes(msg: Message) -> bytes:
    data = json_format.MessageToDict(msg, always_print_fields_with_no_presence=True)
    _restore_int64(data, msg.DESCRIPTOR)
    return json.dumps(data).encode("utf-8")


@dataclass
class GRPCRequest:
    """
    Unary gRPC request.

    full_method: "/package.Service/Method"; may hold {name} placeholders
    body: JSON request body for dynamic invocation; empty means {}
    message: compiled request message for typed invocation (wins over body)
    response_type: compiled response class for typed invocation
    headers: outgoing metadata; values may hold {name} placeholders
    timeout: optional per-call deadline in seconds; none by default
    """
    full_method: str
    body: Optional[bytes] = None
    message: Optional[Message] = None
    response_type: Optional[type] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None

    kind = ConnectionKind.GRPC

    def _metadata(self, vars: VarStore) -> Optional[Tuple[Tuple[str, str], ...]]:
        if not self.headers:
            return None
        return tuple((k.lower(), v) for k, v in vars.interpolate_map(self.headers).items())

    def run(self, conn: GRPCConnection, vars: VarStore) -> GRPCResult:
        """
        Invoke the method on conn.

        Connection and method-resolution errors are raised; errors returned by
        the remote call are captured in the result's status code.
        """
        channel = conn.channel()
        full_method = vars.interpolate(self.full_method)

        if self.message is not None:
            request = self.message
            response_type = self.response_type or conn.resolve_method(full_method).output_type
        else:
            resolved = conn.resolve_method(full_method)
            body = vars.interpolate_bytes(self.body) or b"{}"
            request = resolved.input_type()
            try:
                json_format.Parse(body, request)
            except json_format.ParseError as e:
                raise ExpectError(f"encode grpc request body for {full_method}: {e}") from e
            response_type = resolved.output_type

        call = channel.unary_unary(
            full_method,
            request_serializer=lambda m: m.SerializeToString(),
            response_deserializer=response_type.FromString,
        )
        logger.debug(f"→ grpc {full_method}")

        try:
            response = call(request, metadata=self._metadata(vars), timeout=self.timeout)
        except grpc.RpcError as e:
            code = e.code().name if e.code() is not None else "UNKNOWN"
            return GRPCResult(code=code, message=e.details() or "")

        return GRPCResult(body=_to_json_bytes(response))


@dataclass
class GRPCExpect:
    """
    Expected gRPC response.

    code: expected status code name (e.g. "OK", "NOT_FOUND"); when empty any
        non-OK result fails
    body: ExpectBody, exact or partial, checked against the JSON response
    save: fields to extract from the JSON response into the variable store
    """
    code: str = ""
    body: Optional[ExpectBody] = None
    save: List[SaveEntry] = field(default_factory=list)

    kind = ConnectionKind.GRPC

    def validate(self, result: GRPCResult, vars: Optional[VarStore]) -> None:
        if self.code:
            if result.code != self.code:
                raise ExpectationError(f"unexpected grpc code: {result.code} (expected {self.code})")
        elif not result.ok:
            raise ExpectationError(f"unexpected grpc error: {result.code}: {result.message}")

        if self.body is not None and result.body is not None:
            violation = self.body.validate(result.body)
            if violation:
                raise ExpectationError(violation)

        if self.save and vars is not None and result.body is not None:
            save_from_json(result.body, self.save, vars)
