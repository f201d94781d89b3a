"""Minimal client for OpenStack-style cloud APIs.

Authenticates against a Keystone v2 identity endpoint, resolves service
endpoints from the returned catalog and issues JSON requests against them,
following ``next`` links for paginated listings.
"""

from .auth import CatalogAuthenticator, parse_catalog
from .client import EndpointClient
from .config import ClientConfig, load_config
from .errors import (
    CatalogLookupError,
    ConfigurationError,
    ContentTypeMismatchError,
    InvalidSelectionError,
    MissingAttributeError,
    NetworkConnectionError,
    NetworkError,
    NetworkTimeoutError,
    NoMatchingEndpointError,
    NotAuthenticatedError,
    OpenStackClientError,
    ProtocolError,
    ServiceError,
    UnknownServiceError,
)
from .models import (
    AccessClass,
    Credentials,
    EndpointDescriptor,
    SelectionCriteria,
    ServiceCatalogEntry,
    Token,
)
from .pagination import PageAction
from .transport import Transport

__version__ = "0.1.0"

__all__ = [
    # Authentication
    "CatalogAuthenticator",
    "parse_catalog",
    # Clients
    "EndpointClient",
    "Transport",
    "PageAction",
    # Configuration
    "ClientConfig",
    "load_config",
    # Data model
    "AccessClass",
    "Credentials",
    "EndpointDescriptor",
    "SelectionCriteria",
    "ServiceCatalogEntry",
    "Token",
    # Errors
    "OpenStackClientError",
    "ConfigurationError",
    "NotAuthenticatedError",
    "CatalogLookupError",
    "UnknownServiceError",
    "NoMatchingEndpointError",
    "InvalidSelectionError",
    "ProtocolError",
    "ContentTypeMismatchError",
    "MissingAttributeError",
    "ServiceError",
    "NetworkError",
    "NetworkConnectionError",
    "NetworkTimeoutError",
]
