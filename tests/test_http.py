"""Tests for HTTP connections, request execution and response expectations."""

import json

import httpx
import pytest

from apiexpect.http_connection import DEFAULT_HTTP_TIMEOUT_S, HTTPConnection
from apiexpect.http_request import HTTPExpect, HTTPRequest
from apiexpect.match import ExpectBody, SaveEntry
from apiexpect.matchers import AnyOf
from apiexpect.types import ConnectionKind, ExpectationError, TransportError
from apiexpect.vars import VarStore


class TrackingStream(httpx.SyncByteStream):
    """Byte stream that records whether anyone consumed it."""

    def __init__(self, data: bytes):
        self.data = data
        self.consumed = False

    def __iter__(self):
        self.consumed = True
        yield self.data


# ── Connection ──


class TestHTTPConnection:

    def test_kind(self):
        assert HTTPConnection("api", "http://x").kind is ConnectionKind.HTTP

    @pytest.mark.parametrize("base, path", [
        ("http://x", "/a"),
        ("http://x/", "/a"),
        ("http://x/", "a"),
    ])
    def test_join(self, base, path):
        assert HTTPConnection("", base).join(path) == "http://x/a"

    def test_client_created_lazily_and_reused(self):
        conn = HTTPConnection("", "http://x")
        assert conn._client is None
        client = conn.client()
        assert conn.client() is client
        conn.close()
        assert conn._client is None

    def test_injected_client_not_closed(self, http_client):
        conn = HTTPConnection("", "http://x", client=http_client)
        conn.close()
        assert not http_client.is_closed


# ── Request ──


class TestHTTPRequest:

    def test_timeout_precedence(self):
        conn = HTTPConnection("", "http://x", timeout=5)
        assert HTTPRequest("GET", "/", timeout=2).resolve_timeout(conn) == 2
        assert HTTPRequest("GET", "/").resolve_timeout(conn) == 5
        assert HTTPRequest("GET", "/").resolve_timeout(HTTPConnection("", "http://x")) == DEFAULT_HTTP_TIMEOUT_S

    def test_interpolates_path_headers_query_and_body(self, http_conn):
        vars = VarStore(page=2, token="abc", name="ada")
        req = HTTPRequest(
            "post",
            "/echo",
            body=b'{"name": "{name}"}',
            headers={"Authorization": "Bearer {token}"},
            query={"page": "{page}"},
        )
        resp = req.run(http_conn, vars)
        try:
            data = json.loads(resp.read())
        finally:
            resp.close()

        assert data["method"] == "POST"
        assert data["query"] == {"page": "2"}
        assert data["headers"]["authorization"] == "Bearer abc"
        assert data["body"] == '{"name": "ada"}'

    def test_binary_body_sent_unchanged(self, http_conn, http_counter):
        payload = b"\x89PNG\xff\x00"
        resp = HTTPRequest("POST", "/upload", body=payload).run(http_conn, VarStore(a=1))
        resp.close()
        assert resp.status_code == 201
        assert http_counter.uploads == [payload]

    def test_timeout_maps_to_transport_error(self, http_conn):
        with pytest.raises(TransportError, match="deadline exceeded"):
            HTTPRequest("GET", "/slow").run(http_conn, VarStore())

    def test_network_error_maps_to_transport_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(refuse))
        conn = HTTPConnection("", "http://down.test", client=client)
        with pytest.raises(TransportError, match="connection refused"):
            HTTPRequest("GET", "/").run(conn, VarStore())
        client.close()


# ── Expectation ──


def _response(status=200, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", "http://x/"), **kwargs)


class TestHTTPExpect:

    def test_status_exact(self):
        HTTPExpect(status=200).validate(_response(200), None)
        with pytest.raises(ExpectationError, match="unexpected status code: 404"):
            HTTPExpect(status=200).validate(_response(404), None)

    def test_zero_status_is_unchecked(self):
        HTTPExpect().validate(_response(500), None)

    def test_status_any_takes_precedence(self):
        expect = HTTPExpect(status=500, status_any=AnyOf(200, 201))
        expect.validate(_response(201), None)
        with pytest.raises(ExpectationError, match="one of"):
            expect.validate(_response(500), None)

    def test_header_equality(self):
        resp = _response(200, headers={"X-Request-Id": "r1"})
        HTTPExpect(headers={"x-request-id": "r1"}).validate(resp, None)
        with pytest.raises(ExpectationError, match="unexpected header"):
            HTTPExpect(headers={"X-Request-Id": "r2"}).validate(resp, None)

    def test_missing_header_equals_empty_string(self):
        HTTPExpect(headers={"X-Absent": ""}).validate(_response(200), None)
        with pytest.raises(ExpectationError, match="unexpected header X-Absent"):
            HTTPExpect(headers={"X-Absent": "v"}).validate(_response(200), None)

    def test_body_partial(self):
        resp = _response(200, json={"count": 1, "other": True})
        HTTPExpect(body=ExpectBody({"count": 1})).validate(resp, None)

    def test_body_violation(self):
        with pytest.raises(ExpectationError, match="field 'count'"):
            HTTPExpect(body=ExpectBody({"count": 2})).validate(_response(200, json={"count": 1}), None)

    def test_save_writes_vars(self):
        vars = VarStore()
        HTTPExpect(save=[SaveEntry("id", "user_id")]).validate(_response(201, json={"id": "abc"}), vars)
        assert vars["user_id"] == "abc"

    def test_status_only_does_not_read_body(self):
        stream = TrackingStream(b'{"count": 1}')
        resp = httpx.Response(200, stream=stream, request=httpx.Request("GET", "http://x/"))
        HTTPExpect(status=200).validate(resp, None)
        assert not stream.consumed

    def test_body_and_save_share_one_read(self):
        stream = TrackingStream(b'{"id": "abc"}')
        resp = httpx.Response(200, stream=stream, request=httpx.Request("GET", "http://x/"))
        vars = VarStore()
        HTTPExpect(body=ExpectBody({"id": "abc"}), save=[SaveEntry("id", "id")]).validate(resp, vars)
        assert stream.consumed
        assert vars["id"] == "abc"

    def test_status_checked_before_body(self):
        stream = TrackingStream(b"{}")
        resp = httpx.Response(500, stream=stream, request=httpx.Request("GET", "http://x/"))
        with pytest.raises(ExpectationError, match="status"):
            HTTPExpect(status=200, body=ExpectBody({})).validate(resp, None)
        assert not stream.consumed
