# apiexpect/builder.py
"""
Fluent construction of steps.

    POST("/users").with_json({"name": "ada"}).expect_status(201).save("id", "user_id")
    GET("/users/{user_id}").expect_body({"name": "ada"})
    grpc_raw_call("counter", "/pkg.CounterService/Add", b'{"n": 5}').expect_grpc_body({"count": Gt(0)})
"""

from __future__ import annotations

import json
from typing import Any, Optional

from google.protobuf.message import Message

from apiexpect.grpc_request import GRPCExpect, GRPCRequest
from apiexpect.http_request import HTTPExpect, HTTPRequest
from apiexpect.match import ExpectBody, SaveEntry
from apiexpect.matchers import AnyOf
from apiexpect.step import Step


class StepBuilder:
    """Builds a Step; HTTP-only methods on a gRPC step (and vice versa) raise TypeError."""

    def __init__(self, step: Step):
        self._step = step

    # ==================== Shared ====================

    def with_connection(self, name: str) -> "StepBuilder":
        """Set which named connection this step uses."""
        self._step.connection = name
        return self

    def with_header(self, key: str, value: str) -> "StepBuilder":
        """Add a request header (HTTP) or outgoing metadata entry (gRPC)."""
        self._step.request.headers[key] = value
        return self

    def with_timeout(self, seconds: float) -> "StepBuilder":
        self._step.request.timeout = seconds
        return self

    def build(self) -> Step:
        return self._step

    # ==================== HTTP ====================

    def with_query(self, key: str, value: str) -> "StepBuilder":
        self._http_request().query[key] = value
        return self

    def with_body(self, body: Any) -> "StepBuilder":
        """Set the raw request body (bytes or str)."""
        self._http_request().body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def with_json(self, value: Any) -> "StepBuilder":
        """Serialize value as the request body and set Content-Type: application/json."""
        req = self._http_request()
        req.body = json.dumps(value).encode("utf-8")
        req.headers["Content-Type"] = "application/json"
        return self

    def expect_status(self, code: int) -> "StepBuilder":
        self._http_expect().status = code
        return self

    def expect_status_any(self, *codes: int) -> "StepBuilder":
        """Accept any of the given status codes (takes precedence over expect_status)."""
        self._http_expect().status_any = AnyOf(*codes)
        return self

    def expect_header(self, key: str, value: str) -> "StepBuilder":
        self._http_expect().headers[key] = value
        return self

    def expect_body(self, pattern: Any) -> "StepBuilder":
        """
        Set the expected body. pattern may be:
          - bytes or str: exact body (partial match when it is a JSON object)
          - a mapping: partial pattern, may contain matchers
        """
        self._http_expect().body = pattern if isinstance(pattern, ExpectBody) else ExpectBody(pattern)
        return self

    def save(self, field: str, as_: str) -> "StepBuilder":
        """Extract a field from the JSON response body into a variable for later steps."""
        self._http_expect().save.append(SaveEntry(field, as_))
        return self

    # ==================== gRPC ====================

    def expect_grpc_code(self, code: str) -> "StepBuilder":
        """Set the expected status code name (e.g. "OK", "NOT_FOUND")."""
        self._grpc_expect().code = code
        return self

    def expect_grpc_body(self, pattern: Any) -> "StepBuilder":
        self._grpc_expect().body = pattern if isinstance(pattern, ExpectBody) else ExpectBody(pattern)
        return self

    def save_grpc(self, field: str, as_: str) -> "StepBuilder":
        self._grpc_expect().save.append(SaveEntry(field, as_))
        return self

    # ==================== Internals ====================

    def _http_request(self) -> HTTPRequest:
        if not isinstance(self._step.request, HTTPRequest):
            raise TypeError("HTTP request option used on a gRPC step")
        return self._step.request

    def _http_expect(self) -> HTTPExpect:
        if not isinstance(self._step.expect, HTTPExpect):
            raise TypeError("HTTP expectation used on a gRPC step")
        return self._step.expect

    def _grpc_expect(self) -> GRPCExpect:
        if not isinstance(self._step.expect, GRPCExpect):
            raise TypeError("gRPC expectation used on an HTTP step")
        return self._step.expect


def http_step(method: str, path: str) -> StepBuilder:
    """Create a StepBuilder for an HTTP request with any method."""
    return StepBuilder(Step(request=HTTPRequest(method=method.upper(), path=path), expect=HTTPExpect()))


def GET(path: str) -> StepBuilder:
    return http_step("GET", path)


def POST(path: str) -> StepBuilder:
    return http_step("POST", path)


def PUT(path: str) -> StepBuilder:
    return http_step("PUT", path)


def PATCH(path: str) -> StepBuilder:
    return http_step("PATCH", path)


def DELETE(path: str) -> StepBuilder:
    return http_step("DELETE", path)


def grpc_call(
    connection: str,
    full_method: str,
    message: Message,
    response_type: Optional[type] = None,
) -> StepBuilder:
    """
    Create a step invoking full_method with a compiled request message.
    Without response_type the response shape is resolved through reflection.
    """
    return StepBuilder(Step(
        connection=connection,
        request=GRPCRequest(full_method=full_method, message=message, response_type=response_type),
        expect=GRPCExpect(),
    ))


def grpc_raw_call(connection: str, full_method: str, body: Any = None) -> StepBuilder:
    """Create a step invoking full_method with a raw JSON body (bytes, str, or a JSON-serializable value)."""
    if body is not None and not isinstance(body, (bytes, str)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    return StepBuilder(Step(
        connection=connection,
        request=GRPCRequest(full_method=full_method, body=body),
        expect=GRPCExpect(),
    ))
