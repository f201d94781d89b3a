"""Endpoint client bound to one OpenStack service endpoint."""

import logging
from typing import Any, Iterator, List, Mapping, Optional

from .errors import ConfigurationError
from .models import Token
from .pagination import (
    QueryParams,
    Visitor,
    collect_items,
    iterate_items,
    iterate_pages,
    visit_items,
    visit_pages,
)
from .transport import Transport

logger = logging.getLogger(__name__)


class EndpointClient:
    """Issue JSON requests against a single service endpoint.

    Holds nothing but the endpoint URI, a reference to the token shared with
    the authenticator that created it, and the transport to send through.

    Args:
        endpoint: Base URI of the service endpoint
        token: Token to authenticate requests with (optional)
        transport: Transport to send requests through; a private one is
            created when omitted
    """

    def __init__(
        self,
        endpoint: str,
        token: Optional[Token] = None,
        transport: Optional[Transport] = None,
    ):
        if not endpoint:
            raise ConfigurationError("No API endpoint provided")

        self._endpoint = endpoint
        self._token = token
        self._owns_transport = transport is None
        if transport is None:
            transport = Transport()
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def token(self) -> Optional[Token]:
        return self._token

    @property
    def transport(self) -> Transport:
        return self._transport

    def call(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Send one request relative to the endpoint and return the decoded result.

        Raises:
            ServiceError: If the service answers 4xx or 5xx
            ProtocolError: If a successful response is not valid JSON
            NetworkError: If the HTTP exchange fails
        """
        return self._transport.request(
            method, self._endpoint, path, body=body, headers=headers, token=self._token
        )

    def get(self, path: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        return self.call("GET", path, headers=headers)

    def post(
        self, path: str, body: Any = None, headers: Optional[Mapping[str, str]] = None
    ) -> Any:
        return self.call("POST", path, body=body, headers=headers)

    def put(
        self, path: str, body: Any = None, headers: Optional[Mapping[str, str]] = None
    ) -> Any:
        return self.call("PUT", path, body=body, headers=headers)

    def patch(
        self, path: str, body: Any = None, headers: Optional[Mapping[str, str]] = None
    ) -> Any:
        return self.call("PATCH", path, body=body, headers=headers)

    def delete(self, path: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        return self.call("DELETE", path, headers=headers)

    def pages(self, path: str, params: QueryParams = None) -> Iterator[Any]:
        """Iterate over decoded pages, following ``next`` links."""
        return iterate_pages(self.get, path, params)

    def items(
        self, path: str, attribute: str, params: QueryParams = None
    ) -> Iterator[Any]:
        """Iterate over the items under ``attribute`` of every page."""
        return iterate_items(self.get, path, attribute, params)

    def each(self, path: str, callback: Visitor, params: QueryParams = None) -> None:
        """Invoke ``callback`` with each decoded page.

        The callback may return PageAction.STOP to end pagination early.
        """
        visit_pages(self.get, path, callback, params)

    def every(
        self,
        path: str,
        attribute: str,
        callback: Visitor,
        params: QueryParams = None,
    ) -> None:
        """Invoke ``callback`` with each item listed under ``attribute``.

        Raises:
            MissingAttributeError: If a page has no ``attribute``
        """
        visit_items(self.get, path, attribute, callback, params)

    def all(self, path: str, attribute: str, params: QueryParams = None) -> List[Any]:
        """Return every item listed under ``attribute`` across all pages."""
        return collect_items(self.get, path, attribute, params)

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"EndpointClient(endpoint={self._endpoint!r})"
