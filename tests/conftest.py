"""
Shared pytest fixtures for OpenStack client tests.

Provides identity endpoint URLs, credentials and Keystone v2 token responses
used across the unit tests.
"""

from typing import Any, Callable, Dict, List, Optional

import pytest

from openstack_client import CatalogAuthenticator, Credentials

IDENTITY_URL = "http://keystone:5000/v2.0"
TOKENS_URL = f"{IDENTITY_URL}/tokens"


def build_identity_response(
    token_id: Optional[str] = "T1",
    catalog: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build a Keystone v2 token response body."""
    access: Dict[str, Any] = {"serviceCatalog": catalog or []}
    if token_id is not None:
        access["token"] = {
            "id": token_id,
            "expires": "2030-01-01T00:00:00Z",
            "tenant": {"id": "t-1", "name": "demo"},
        }
    return {"access": access}


@pytest.fixture
def identity_url() -> str:
    return IDENTITY_URL


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(tenant="demo", username="alice", password="s3cret")


@pytest.fixture
def service_catalog() -> List[Dict[str, Any]]:
    """Catalog with an image service in two regions and a compute service."""
    return [
        {
            "type": "image",
            "name": "glance",
            "endpoints": [
                {
                    "id": "img-1",
                    "region": "RegionOne",
                    "publicURL": "http://glance-one:9292",
                    "internalURL": "http://glance-one.internal:9292",
                    "adminURL": "http://glance-one.admin:9292",
                },
                {
                    "id": "img-2",
                    "region": "RegionTwo",
                    "publicURL": "http://glance-two:9292",
                    "internalURL": "http://glance-two.internal:9292",
                },
            ],
        },
        {
            "type": "compute",
            "name": "nova",
            "endpoints": [
                {
                    "id": "cmp-1",
                    "region": "RegionOne",
                    "publicURL": "http://nova:8774/v2/t-1",
                }
            ],
        },
    ]


@pytest.fixture
def identity_response() -> Callable[..., Dict[str, Any]]:
    return build_identity_response


@pytest.fixture
def authenticated(httpx_mock, credentials, service_catalog):
    """CatalogAuthenticator that has completed authentication."""
    httpx_mock.add_response(
        method="POST",
        url=TOKENS_URL,
        json=build_identity_response(catalog=service_catalog),
    )
    authenticator = CatalogAuthenticator(IDENTITY_URL)
    authenticator.authenticate(credentials)
    try:
        yield authenticator
    finally:
        authenticator.close()
