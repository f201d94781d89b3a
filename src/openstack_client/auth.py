"""Keystone v2 authentication and service catalog resolution.

CatalogAuthenticator exchanges tenant/password credentials for a token and a
service catalog, then hands out one EndpointClient per service. The token is
obtained once per authenticator and shared read-only with every client.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .client import EndpointClient
from .config import ClientConfig
from .errors import (
    ConfigurationError,
    NoMatchingEndpointError,
    NotAuthenticatedError,
    ProtocolError,
    UnknownServiceError,
)
from .models import (
    Credentials,
    EndpointDescriptor,
    SelectionCriteria,
    ServiceCatalogEntry,
    Token,
)
from .transport import DEFAULT_TIMEOUT, JsonCodec, Transport

logger = logging.getLogger(__name__)

TOKENS_PATH = "/tokens"


def parse_catalog(entries: Any) -> Dict[str, ServiceCatalogEntry]:
    """Parse ``access.serviceCatalog`` into a mapping of service name to entry.

    Entries are keyed by ``type``, falling back to ``name``. Entries with
    neither are skipped; a later entry with the same key replaces an earlier
    one.
    """
    catalog: Dict[str, ServiceCatalogEntry] = {}

    if entries is None:
        return catalog
    if not isinstance(entries, list):
        raise ProtocolError("Service catalog in response is not a list")

    for raw_entry in entries:
        try:
            entry = ServiceCatalogEntry.model_validate(raw_entry)
        except ValidationError as e:
            raise ProtocolError(f"Invalid service catalog entry: {e}") from e

        if not entry.key:
            logger.warning("Skipping service catalog entry without type or name")
            continue

        catalog[entry.key] = entry

    return catalog


class CatalogAuthenticator:
    """Authenticate against an identity endpoint and resolve service clients.

    Args:
        endpoint: Identity endpoint URI, e.g. ``http://keystone:5000/v2.0``
        transport: Transport shared with every client produced (optional)
        http: httpx client for a transport created here (optional)
        codec: JSON codec for a transport created here (optional)
        timeout: Request timeout for an httpx client created here
        verify: TLS verification for an httpx client created here
    """

    def __init__(
        self,
        endpoint: str,
        *,
        transport: Optional[Transport] = None,
        http: Optional[httpx.Client] = None,
        codec: Optional[JsonCodec] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ):
        if not endpoint:
            raise ConfigurationError("No OpenStack authentication endpoint provided")

        self._transport = transport or Transport(
            http=http, codec=codec, timeout=timeout, verify=verify
        )
        self._identity = EndpointClient(endpoint, transport=self._transport)
        self._token: Optional[Token] = None
        self._response: Optional[Dict[str, Any]] = None
        self._catalog: Dict[str, ServiceCatalogEntry] = {}
        self._clients: Dict[str, EndpointClient] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ClientConfig) -> "CatalogAuthenticator":
        """Create an authenticator from configuration and authenticate it."""
        config.configure_logging()
        authenticator = cls(
            config.auth_url, timeout=config.timeout, verify=config.verify_tls
        )
        authenticator.authenticate(config.credentials())
        return authenticator

    @property
    def endpoint(self) -> str:
        return self._identity.endpoint

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def token(self) -> Optional[Token]:
        return self._token

    @property
    def response(self) -> Optional[Dict[str, Any]]:
        """Full decoded identity response."""
        return self._response

    @property
    def access(self) -> Optional[Dict[str, Any]]:
        return self._response["access"] if self._response else None

    @property
    def catalog(self) -> Dict[str, ServiceCatalogEntry]:
        return dict(self._catalog)

    def authenticate(self, credentials: Credentials) -> Token:
        """Obtain a token and service catalog from the identity endpoint.

        Returns the held token without contacting the identity service when
        already authenticated.

        Raises:
            ConfigurationError: If a credential is missing or empty
            ProtocolError: If the response carries no token
            ServiceError: If the identity service rejects the request
            NetworkError: If the HTTP exchange fails
        """
        credentials.validate()

        if self._token is not None:
            return self._token

        response = self._identity.post(TOKENS_PATH, body=credentials.to_auth_body())

        access = response.get("access") if isinstance(response, dict) else None
        raw_token = access.get("token") if isinstance(access, dict) else None
        if not isinstance(raw_token, dict) or not raw_token.get("id"):
            raise ProtocolError("No token found in response")

        try:
            token = Token.model_validate(raw_token)
        except ValidationError as e:
            raise ProtocolError(f"Invalid token in response: {e}") from e

        catalog = parse_catalog(access.get("serviceCatalog"))

        with self._lock:
            self._response = response
            self._catalog = catalog
            self._token = token

        logger.info(
            f"Authenticated tenant '{credentials.tenant}' as '{credentials.username}' "
            f"(token {token.masked()}, {len(catalog)} services)"
        )
        return token

    def list_services(self) -> List[str]:
        """Return the sorted service names in the catalog (empty before auth)."""
        return sorted(self._catalog)

    services = list_services

    def endpoints(self, name: str) -> List[EndpointDescriptor]:
        """Return the endpoint descriptors listed for a service."""
        if name not in self._catalog:
            raise UnknownServiceError(name)
        return list(self._catalog[name].endpoints)

    def resolve_service(
        self,
        name: str,
        criteria: Optional[SelectionCriteria] = None,
        **options: Any,
    ) -> EndpointClient:
        """Return the EndpointClient for a service, creating it on first use.

        Selection criteria may be given as a SelectionCriteria or as keyword
        options (uri, region, id, public, internal, admin). Once a client is
        cached for a name it is returned for every later call without a
        ``uri``, whatever criteria are passed.

        Raises:
            ConfigurationError: If an option name is unknown, or both criteria
                and options are given
            NotAuthenticatedError: If authenticate() has not succeeded
            UnknownServiceError: If the catalog has no such service
            InvalidSelectionError: If no access class is selected
            NoMatchingEndpointError: If no descriptor matches the criteria
        """
        if criteria is None:
            criteria = SelectionCriteria.from_options(**options)
        elif options:
            raise ConfigurationError(
                "Pass selection criteria either as an object or as options, not both"
            )

        if self._token is None:
            raise NotAuthenticatedError(
                f"Cannot resolve service '{name}' before authenticating"
            )
        if name not in self._catalog:
            raise UnknownServiceError(name)

        with self._lock:
            cached = self._clients.get(name)
            if cached is not None and criteria.uri is None:
                return cached

            if criteria.uri is not None:
                uri = criteria.uri
            else:
                uri = self._select_uri(name, criteria)

            client = EndpointClient(uri, token=self._token, transport=self._transport)
            self._clients[name] = client

        logger.info(f"Resolved service '{name}' to {uri}")
        return client

    service = resolve_service

    def _select_uri(self, name: str, criteria: SelectionCriteria) -> str:
        access = criteria.access_class()

        for descriptor in self._catalog[name].endpoints:
            if not criteria.matches(descriptor):
                continue
            uri = descriptor.url_for(access)
            if not uri:
                logger.debug(
                    f"Skipping {name} endpoint in region {descriptor.region!r}: "
                    f"no {access.value} URL"
                )
                continue
            return uri

        raise NoMatchingEndpointError(name)

    def close(self) -> None:
        """Release the transport's HTTP client if it was created here."""
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "authenticated" if self.is_authenticated else "unauthenticated"
        return f"CatalogAuthenticator(endpoint={self.endpoint!r}, {state})"
