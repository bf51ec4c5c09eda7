# apiexpect/http_connection.py
from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from apiexpect.connection import Connection
from apiexpect.types import ConnectionKind

logger = logging.getLogger(__name__)

# Applied to every HTTP request unless the request or the connection overrides it.
DEFAULT_HTTP_TIMEOUT_S = 30.0


class HTTPConnection(Connection):
    """
    Connection to an HTTP/HTTPS service.

    Args:
        name: Connection name (empty name marks the default connection)
        url: Base URL every request path is joined onto
        timeout: Per-request timeout in seconds; None means DEFAULT_HTTP_TIMEOUT_S
        client: Shared httpx.Client; when None one is created on first use and
            closed by close()
        verify_ssl: TLS verification for the client created on first use
    """

    def __init__(
        self,
        name: str,
        url: str,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
        verify_ssl: bool = True,
    ):
        super().__init__(name)
        self.url = url
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._client = client
        self._owns_client = client is None
        self._lock = threading.Lock()

    @property
    def kind(self) -> ConnectionKind:
        return ConnectionKind.HTTP

    def client(self) -> httpx.Client:
        """Return the httpx client, creating it on first use."""
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(verify=self.verify_ssl)
                self._owns_client = True
                logger.debug(f"opened HTTP client for {self.name or '(default)'} → {self.url}")
            return self._client

    def join(self, path: str) -> str:
        return self.url.rstrip("/") + "/" + path.lstrip("/")

    def close(self) -> None:
        with self._lock:
            if self._client is not None and self._owns_client:
                self._client.close()
                self._client = None


def HTTP(name: str, url: str, **kwargs) -> HTTPConnection:
    """Convenience constructor for an HTTPConnection."""
    return HTTPConnection(name, url, **kwargs)
