"""HTTP transport for OpenStack API calls.

Performs exactly one HTTP round trip per call and normalizes the outcome:
decoded JSON for 2xx, ServiceError for 4xx/5xx, the reason phrase otherwise.
The httpx client and JSON codec are injected so tests and callers can
substitute their own.
"""

import json
import logging
from typing import Any, Mapping, Optional, Protocol

import httpx

from .content_type import is_json_content_type
from .errors import (
    ConfigurationError,
    ContentTypeMismatchError,
    ProtocolError,
    ServiceError,
    classify_network_error,
)
from .models import Token

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain",
    "Accept-Encoding": "identity, gzip, deflate, compress",
    "Content-Type": "application/json",
}

AUTH_TOKEN_HEADER = "X-Auth-Token"


class JsonCodec(Protocol):
    """Anything with json-module style dumps/loads."""

    def dumps(self, obj: Any) -> str: ...

    def loads(self, s: str) -> Any: ...


def join_uri(base: str, path: str) -> str:
    """Join an endpoint base URI and a request path.

    Exactly one redundant slash is removed at the junction; slashes inside
    either part are left alone. Absolute http(s) paths are returned as is.
    """
    if path.startswith(("http://", "https://")):
        return path
    if not path:
        return base

    if base.endswith("/"):
        base = base[:-1]
    if path.startswith("/"):
        path = path[1:]

    return f"{base}/{path}"


def build_headers(
    overrides: Optional[Mapping[str, str]] = None, token: Optional[Token] = None
) -> httpx.Headers:
    """Compose request headers from defaults, caller overrides and the token."""
    headers = httpx.Headers(DEFAULT_HEADERS)

    for name, value in (overrides or {}).items():
        headers[name] = value

    if token is not None:
        headers[AUTH_TOKEN_HEADER] = token.id
    elif AUTH_TOKEN_HEADER in headers:
        del headers[AUTH_TOKEN_HEADER]

    return headers


class Transport:
    """Sends requests through an httpx.Client and classifies responses.

    Args:
        http: httpx client to send requests with; created and owned when omitted
        codec: JSON codec with dumps/loads (defaults to the json module)
        timeout: Timeout in seconds for an owned client
        verify: TLS verification setting for an owned client
    """

    def __init__(
        self,
        http: Optional[httpx.Client] = None,
        codec: Optional[JsonCodec] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ):
        self._owns_http = http is None
        if http is None:
            http = httpx.Client(timeout=timeout, verify=verify)
        self._http = http
        self.codec: JsonCodec = codec or json

    @property
    def http(self) -> httpx.Client:
        return self._http

    def request(
        self,
        method: str,
        base_uri: str,
        path: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        token: Optional[Token] = None,
    ) -> Any:
        """Perform one HTTP round trip.

        Args:
            method: One of GET, POST, PUT, PATCH, DELETE
            base_uri: Endpoint base URI
            path: Path relative to base_uri, or an absolute URL
            body: Value to send as JSON; None sends no payload
            headers: Header overrides
            token: Token to send as X-Auth-Token

        Returns:
            Decoded JSON for 2xx responses (None for an empty body), or the
            reason phrase for statuses outside 2xx/4xx/5xx

        Raises:
            ConfigurationError: If the method is not supported
            ServiceError: If the server answers 4xx or 5xx
            ContentTypeMismatchError: If a 2xx response is not JSON
            ProtocolError: If a JSON response cannot be decoded
            NetworkError: If the HTTP exchange fails
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise ConfigurationError(f"Unsupported HTTP method: {method}")

        url = join_uri(base_uri, path)
        request_headers = build_headers(headers, token)
        content = self.codec.dumps(body) if body is not None else None

        logger.debug(f"{method} {url}")

        try:
            response = self._http.request(
                method, url, headers=request_headers, content=content
            )
        except httpx.HTTPError as e:
            raise classify_network_error(e, url) from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        return self._classify(response)

    def _classify(self, response: httpx.Response) -> Any:
        status = response.status_code
        content_type = response.headers.get("Content-Type", "")

        if 200 <= status <= 299:
            if not response.content:
                return None

            if not is_json_content_type(content_type):
                raise ContentTypeMismatchError(content_type or "(none)", status)

            try:
                return self.codec.loads(response.text)
            except ValueError as e:
                raise ProtocolError(f"Invalid JSON in response: {e}", status) from e

        if 400 <= status <= 599:
            raise ServiceError(response.text, status)

        return response.reason_phrase

    def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_http and not self._http.is_closed:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
