"""Data model for identity tokens and the service catalog."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError, InvalidSelectionError


class AccessClass(str, Enum):
    """Which of an endpoint descriptor's URLs to use."""

    PUBLIC = "public"
    INTERNAL = "internal"
    ADMIN = "admin"


@dataclass(frozen=True)
class Credentials:
    """Keystone v2 password credentials scoped to a tenant."""

    tenant: str
    username: str
    password: str = field(repr=False)

    def validate(self) -> None:
        """Raise ConfigurationError unless every field is present and non-empty."""
        for name in ("tenant", "username", "password"):
            if not getattr(self, name):
                raise ConfigurationError(
                    f'No OpenStack {name} provided in "{name}"'
                )

    def to_auth_body(self) -> Dict[str, Any]:
        """Build the token request envelope expected by the identity service."""
        return {
            "auth": {
                "tenantName": self.tenant,
                "passwordCredentials": {
                    "username": self.username,
                    "password": self.password,
                },
            }
        }


class Token(BaseModel):
    """Authorization token returned by the identity service.

    Frozen so the instance shared by the authenticator and every endpoint
    client it produced cannot diverge.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., description="Opaque token identifier")
    expires: Optional[str] = Field(default=None, description="Expiry timestamp")
    issued_at: Optional[str] = Field(default=None, description="Issue timestamp")
    tenant: Optional[Dict[str, Any]] = Field(
        default=None, description="Tenant the token is scoped to"
    )

    def masked(self) -> str:
        """Token id shortened for log output."""
        return f"{self.id[:8]}..." if len(self.id) > 8 else "***"


class EndpointDescriptor(BaseModel):
    """One region's set of URLs for a service."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    region: Optional[str] = None
    id: Optional[str] = None
    public_url: Optional[str] = Field(default=None, alias="publicURL")
    internal_url: Optional[str] = Field(default=None, alias="internalURL")
    admin_url: Optional[str] = Field(default=None, alias="adminURL")

    @property
    def is_usable(self) -> bool:
        return bool(self.public_url or self.internal_url or self.admin_url)

    def url_for(self, access: AccessClass) -> Optional[str]:
        if access is AccessClass.ADMIN:
            return self.admin_url
        if access is AccessClass.INTERNAL:
            return self.internal_url
        return self.public_url


class ServiceCatalogEntry(BaseModel):
    """A catalog entry: service type/name and its endpoint descriptors in order."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    name: Optional[str] = None
    endpoints: List[EndpointDescriptor] = Field(default_factory=list)

    @property
    def key(self) -> Optional[str]:
        """Name the entry is filed under in the catalog: its type, else its name."""
        return self.type or self.name


@dataclass(frozen=True)
class SelectionCriteria:
    """Policy used to pick one endpoint descriptor for a service.

    Args:
        uri: Use this URI directly, bypassing the catalog
        region: Only consider descriptors in this region
        id: Only consider the descriptor with this identifier
        public: Select the public URL (the default)
        internal: Select the internal URL
        admin: Select the administrative URL
    """

    uri: Optional[str] = None
    region: Optional[str] = None
    id: Optional[str] = None
    public: bool = True
    internal: bool = False
    admin: bool = False

    @classmethod
    def from_options(cls, **options: Any) -> "SelectionCriteria":
        """Build criteria from keyword options, rejecting unknown names."""
        unknown = set(options) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown selection options: {sorted(unknown)}")
        return cls(**options)

    def access_class(self) -> AccessClass:
        # admin wins over internal, internal over public
        if self.admin:
            return AccessClass.ADMIN
        if self.internal:
            return AccessClass.INTERNAL
        if self.public:
            return AccessClass.PUBLIC
        raise InvalidSelectionError(
            'Neither "public", "internal" or "admin" specified in options'
        )

    def matches(self, descriptor: EndpointDescriptor) -> bool:
        if self.id is not None and descriptor.id != self.id:
            return False
        if self.region is not None and descriptor.region != self.region:
            return False
        return True
