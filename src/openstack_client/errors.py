"""Error taxonomy for the OpenStack catalog client.

Every failure raised by this package derives from OpenStackClientError so
callers can catch the whole family at one seam. Transport-level httpx
exceptions are translated into NetworkError subclasses by
classify_network_error().
"""

import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class OpenStackClientError(Exception):
    """Base exception for OpenStack client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(OpenStackClientError, ValueError):
    """Raised when a required credential, endpoint or setting is missing."""

    pass


class NotAuthenticatedError(OpenStackClientError):
    """Raised when a service is requested before authentication."""

    pass


class CatalogLookupError(OpenStackClientError):
    """Base exception for service catalog lookup failures."""

    pass


class UnknownServiceError(CatalogLookupError):
    """Raised when the service catalog has no entry for a service name."""

    def __init__(self, service: str):
        super().__init__(f"No service type '{service}' found")
        self.service = service


class NoMatchingEndpointError(CatalogLookupError):
    """Raised when no endpoint descriptor satisfies the selection criteria."""

    def __init__(self, service: str):
        super().__init__(
            f"Could not find appropriate endpoint for service type '{service}'"
        )
        self.service = service


class InvalidSelectionError(OpenStackClientError):
    """Raised when none of public, internal or admin access is selected."""

    pass


class ProtocolError(OpenStackClientError):
    """Raised when a successful response does not have the expected shape."""

    pass


class ContentTypeMismatchError(ProtocolError):
    """Raised when a 2xx response carries a non-JSON body."""

    def __init__(self, content_type: str, status_code: Optional[int] = None):
        super().__init__(f"Unexpected response type {content_type}", status_code)
        self.content_type = content_type


class MissingAttributeError(ProtocolError):
    """Raised when a result page lacks the requested result attribute."""

    def __init__(self, attribute: str, path: str):
        super().__init__(f"Response for {path} has no '{attribute}' attribute")
        self.attribute = attribute
        self.path = path


class ServiceError(OpenStackClientError):
    """Raised for 4xx and 5xx responses.

    The message is the remote body text exactly as received so operators can
    diagnose the remote failure.
    """

    def __init__(self, body: str, status_code: int):
        message = body if body else f"HTTP {status_code} error"
        super().__init__(message, status_code)
        self.body = body

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600


class NetworkError(OpenStackClientError):
    """Raised when the HTTP exchange itself fails."""

    pass


class NetworkConnectionError(NetworkError):
    """Raised for connection-related failures (refused, DNS, TLS)."""

    pass


class NetworkTimeoutError(NetworkError):
    """Raised when the request times out."""

    pass


_DNS_ERROR_PATTERNS = [
    r"name.*resolution.*failed",
    r"name.*or.*service.*not.*known",
    r"nodename.*nor.*servname.*provided",
    r"temporary.*failure.*in.*name.*resolution",
]

_SSL_ERROR_PATTERNS = [
    r"ssl.*certificate.*verification.*failed",
    r"certificate.*verify.*failed",
    r"ssl.*handshake.*failed",
    r"bad.*certificate",
]


def classify_network_error(error: httpx.HTTPError, url: str) -> NetworkError:
    """Translate an httpx exception into a NetworkError.

    Args:
        error: The original httpx exception
        url: Request URL, included in the message

    Returns:
        The NetworkError to raise in place of the httpx exception
    """
    error_message = str(error).lower()

    if isinstance(error, httpx.TimeoutException):
        if isinstance(error, httpx.ConnectTimeout):
            return NetworkTimeoutError(f"Connection to {url} timed out")
        return NetworkTimeoutError(f"Request to {url} timed out")

    if isinstance(error, httpx.ConnectError):
        if any(re.search(pattern, error_message) for pattern in _DNS_ERROR_PATTERNS):
            return NetworkConnectionError(f"Cannot resolve server address for {url}")
        if any(re.search(pattern, error_message) for pattern in _SSL_ERROR_PATTERNS):
            return NetworkConnectionError(
                f"SSL certificate verification failed for {url}"
            )
        return NetworkConnectionError(f"Connection failed to {url}: {error}")

    if isinstance(error, httpx.NetworkError):
        return NetworkConnectionError(f"Network error talking to {url}: {error}")

    logger.debug(f"Unclassified httpx error for {url}: {error!r}")
    return NetworkError(f"HTTP error talking to {url}: {error}")
