# apiexpect/http_request.py
"""
HTTP request execution and response expectations.

The request is sent with stream=True so the body is only read when an
expectation needs it (status-only checks never consume the body). The body
is read at most once and shared between the body assertion and the save
entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from apiexpect.http_connection import DEFAULT_HTTP_TIMEOUT_S, HTTPConnection
from apiexpect.match import ExpectBody, SaveEntry, save_from_json
from apiexpect.matchers import AnyOf
from apiexpect.types import ConnectionKind, ExpectationError, TransportError
from apiexpect.vars import VarStore

logger = logging.getLogger(__name__)


@dataclass
class HTTPRequest:
    """Outbound HTTP request; string fields may hold {name} placeholders."""
    method: str
    path: str
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None  # seconds; None falls back to the connection

    kind = ConnectionKind.HTTP

    def resolve_timeout(self, conn: HTTPConnection) -> float:
        if self.timeout:
            return self.timeout
        if conn.timeout:
            return conn.timeout
        return DEFAULT_HTTP_TIMEOUT_S

    def run(self, conn: HTTPConnection, vars: VarStore) -> httpx.Response:
        """Send the request on conn and return the streamed, unread response."""
        path = vars.interpolate(self.path)
        url = conn.join(path)
        body = vars.interpolate_bytes(self.body)
        client = conn.client()

        request = client.build_request(
            self.method.upper(),
            url,
            content=body or None,
            headers=vars.interpolate_map(self.headers) or None,
            params=vars.interpolate_map(self.query) or None,
            timeout=httpx.Timeout(self.resolve_timeout(conn)),
        )
        logger.debug(f"→ {request.method} {request.url}")

        try:
            return client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise TransportError(f"{self.method.upper()} {url}: deadline exceeded: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.method.upper()} {url}: {e}") from e


@dataclass
class HTTPExpect:
    """
    Expected HTTP response.

    status: exact status code; 0 means unchecked
    status_any: allowed status codes; takes precedence over status when non-empty
    headers: response headers that must equal the given values
    body: ExpectBody, exact or partial
    save: fields to extract from the JSON body into the variable store
    """
    status: int = 0
    status_any: AnyOf = field(default_factory=AnyOf)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[ExpectBody] = None
    save: List[SaveEntry] = field(default_factory=list)

    kind = ConnectionKind.HTTP

    def needs_body(self) -> bool:
        return self.body is not None or bool(self.save)

    def validate(self, resp: httpx.Response, vars: Optional[VarStore]) -> None:
        """Check resp against this expectation; raise ExpectationError on the first violation."""
        if len(self.status_any) > 0:
            violation = self.status_any.match_status(resp.status_code)
            if violation:
                raise ExpectationError(violation)
        elif self.status and resp.status_code != self.status:
            raise ExpectationError(f"unexpected status code: {resp.status_code} (expected {self.status})")

        for key, expected in self.headers.items():
            actual = resp.headers.get(key, "")
            if actual != expected:
                raise ExpectationError(f"unexpected header {key}: {actual!r} (expected {expected!r})")

        if not self.needs_body():
            return

        try:
            body_bytes = resp.read()
        except httpx.HTTPError as e:
            raise TransportError(f"read response body: {e}") from e

        if self.body is not None:
            violation = self.body.validate(body_bytes)
            if violation:
                raise ExpectationError(violation)

        if self.save and vars is not None:
            save_from_json(body_bytes, self.save, vars)
