# apiexpect/step.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from apiexpect.connection import Connection
from apiexpect.grpc_request import GRPCExpect, GRPCRequest
from apiexpect.http_request import HTTPExpect, HTTPRequest
from apiexpect.types import ConnectionKind, ConnectionMismatchError
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)

Request = Union[HTTPRequest, GRPCRequest]
Expect = Union[HTTPExpect, GRPCExpect]


@dataclass
class Step:
    """A single request/expectation pair bound to a named connection ("" = default)."""
    request: Optional[Request] = None
    expect: Optional[Expect] = None
    connection: str = ""

    def label(self, index: int) -> str:
        """Report label: 1-based index plus a protocol-specific description."""
        if self.request is None:
            return f"[{index + 1}] (no request)"
        if self.request.kind is ConnectionKind.HTTP:
            return f"[{index + 1}] {self.request.method} {self.request.path}"
        return f"[{index + 1}] grpc {self.request.full_method}"

    def run(self, conn: Optional[Connection], vars: VarStore) -> None:
        """
        Execute the request on conn and validate the expectation.

        Raises on the first failure: ConnectionMismatchError when request,
        expectation and connection disagree on protocol, TransportError and
        friends from the call, ExpectationError from validation.
        """
        if self.request is None:
            return
        kind = self.request.kind
        if conn is None:
            raise ConnectionMismatchError(f"no connection available for {kind.value} request")
        if conn.kind is not kind:
            raise ConnectionMismatchError(
                f"mismatched connection type for {kind.value} request: "
                f"{conn.name or '(default)'} is {conn.kind.value}"
            )
        if self.expect is not None and self.expect.kind is not kind:
            raise ConnectionMismatchError(
                f"mismatched expect type for {kind.value} request: {type(self.expect).__name__}"
            )

        if kind is ConnectionKind.HTTP:
            resp = self.request.run(conn, vars)
            try:
                if self.expect is not None:
                    self.expect.validate(resp, vars)
            finally:
                resp.close()
            return

        result = self.request.run(conn, vars)
        if self.expect is None:
            err = result.error()
            if err is not None:
                raise err
            return
        self.expect.validate(result, vars)
