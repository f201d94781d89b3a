"""Unit tests for CatalogAuthenticator.

This module tests the Keystone v2 token exchange, service catalog parsing and
resolution of cached endpoint clients.
"""

import json
import threading

import httpx
import pytest

from openstack_client import (
    CatalogAuthenticator,
    ClientConfig,
    Credentials,
    SelectionCriteria,
)
from openstack_client.errors import (
    ConfigurationError,
    InvalidSelectionError,
    NoMatchingEndpointError,
    NotAuthenticatedError,
    ProtocolError,
    ServiceError,
    UnknownServiceError,
)

IDENTITY_URL = "http://keystone:5000/v2.0"
TOKENS_URL = f"{IDENTITY_URL}/tokens"


class TestAuthenticate:
    """Test the token exchange with the identity endpoint."""

    def test_requires_endpoint(self):
        """Test an empty identity endpoint is a configuration error."""
        with pytest.raises(ConfigurationError, match="authentication endpoint"):
            CatalogAuthenticator("")

    @pytest.mark.parametrize("missing", ["tenant", "username", "password"])
    def test_requires_every_credential(self, missing):
        """Test each empty credential field is rejected before any request."""
        values = {"tenant": "demo", "username": "alice", "password": "pw"}
        values[missing] = ""

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            with pytest.raises(ConfigurationError, match=missing):
                authenticator.authenticate(Credentials(**values))

    def test_request_envelope(
        self, httpx_mock, credentials, identity_response
    ):
        """Test the POST /tokens body matches the Keystone v2 envelope."""
        httpx_mock.add_response(
            method="POST", url=TOKENS_URL, json=identity_response()
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            authenticator.authenticate(credentials)

        request = httpx_mock.get_request()
        assert json.loads(request.content) == {
            "auth": {
                "tenantName": "demo",
                "passwordCredentials": {"username": "alice", "password": "s3cret"},
            }
        }
        assert "X-Auth-Token" not in request.headers

    def test_token_parsed(self, authenticated):
        """Test the token and its metadata are stored."""
        assert authenticated.is_authenticated
        assert authenticated.token.id == "T1"
        assert authenticated.token.expires == "2030-01-01T00:00:00Z"
        assert authenticated.access["token"]["id"] == "T1"
        assert "access" in authenticated.response

    def test_authenticate_is_idempotent(
        self, httpx_mock, credentials, identity_response
    ):
        """Test a second authenticate() returns the held token without a request."""
        httpx_mock.add_response(
            method="POST", url=TOKENS_URL, json=identity_response()
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            first = authenticator.authenticate(credentials)
            second = authenticator.authenticate(credentials)

        assert first is second
        assert len(httpx_mock.get_requests()) == 1

    def test_missing_token_is_protocol_error(
        self, httpx_mock, credentials, identity_response
    ):
        """Test a success response without access.token.id is rejected."""
        httpx_mock.add_response(
            method="POST", url=TOKENS_URL, json=identity_response(token_id=None)
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            with pytest.raises(ProtocolError, match="No token found in response"):
                authenticator.authenticate(credentials)

            assert not authenticator.is_authenticated

    def test_failure_leaves_authenticator_retryable(
        self, httpx_mock, credentials, identity_response
    ):
        """Test a rejected attempt leaves state unauthenticated so a retry works."""
        httpx_mock.add_response(
            method="POST",
            url=TOKENS_URL,
            status_code=401,
            text='{"error": {"message": "The request you have made requires authentication."}}',
        )
        httpx_mock.add_response(
            method="POST", url=TOKENS_URL, json=identity_response(token_id="T2")
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            with pytest.raises(ServiceError) as exc_info:
                authenticator.authenticate(credentials)

            assert exc_info.value.status_code == 401
            assert "requires authentication" in str(exc_info.value)
            assert not authenticator.is_authenticated
            assert authenticator.list_services() == []

            token = authenticator.authenticate(credentials)

        assert token.id == "T2"

    def test_injected_http_client(
        self, httpx_mock, credentials, identity_response
    ):
        """Test requests go through an injected httpx client."""
        httpx_mock.add_response(
            method="POST", url=TOKENS_URL, json=identity_response()
        )

        with httpx.Client() as http:
            authenticator = CatalogAuthenticator(IDENTITY_URL, http=http)
            authenticator.authenticate(credentials)
            authenticator.close()

            assert not http.is_closed


class TestCatalog:
    """Test service catalog parsing and listing."""

    def test_list_services_sorted(self, authenticated):
        assert authenticated.list_services() == ["compute", "image"]
        assert authenticated.services() == ["compute", "image"]

    def test_list_services_before_auth_is_empty(self):
        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            assert authenticator.list_services() == []

    def test_endpoints_preserve_catalog_order(self, authenticated):
        descriptors = authenticated.endpoints("image")

        assert [d.region for d in descriptors] == ["RegionOne", "RegionTwo"]
        assert descriptors[0].public_url == "http://glance-one:9292"
        assert descriptors[1].admin_url is None

    def test_entries_keyed_by_name_without_type(
        self, httpx_mock, credentials, identity_response
    ):
        """Test entries lacking a type are filed under their name."""
        catalog = [
            {
                "name": "image",
                "endpoints": [
                    {"region": "RegionOne", "publicURL": "http://glance:9292"}
                ],
            }
        ]
        httpx_mock.add_response(
            method="POST",
            url=TOKENS_URL,
            json=identity_response(catalog=catalog),
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            authenticator.authenticate(credentials)

            assert authenticator.list_services() == ["image"]

    def test_unknown_service_endpoints(self, authenticated):
        with pytest.raises(UnknownServiceError):
            authenticated.endpoints("volume")


class TestResolveService:
    """Test endpoint selection and client caching."""

    def test_scenario_image_region_one(self, httpx_mock, credentials):
        """Test the image service resolves to its RegionOne public URL with token T1."""
        httpx_mock.add_response(
            method="POST",
            url=TOKENS_URL,
            json={
                "access": {
                    "token": {"id": "T1"},
                    "serviceCatalog": [
                        {
                            "name": "image",
                            "endpoints": [
                                {
                                    "region": "RegionOne",
                                    "publicURL": "http://glance:9292",
                                }
                            ],
                        }
                    ],
                }
            },
        )

        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            authenticator.authenticate(credentials)
            client = authenticator.resolve_service("image", region="RegionOne")

            assert client.endpoint == "http://glance:9292"
            assert client.token.id == "T1"
            assert client.token is authenticator.token

    def test_requires_authentication(self):
        """Test resolving before authenticate() fails."""
        with CatalogAuthenticator(IDENTITY_URL) as authenticator:
            with pytest.raises(NotAuthenticatedError):
                authenticator.resolve_service("image")

    def test_unknown_service(self, authenticated):
        with pytest.raises(UnknownServiceError, match="No service type 'volume'"):
            authenticated.resolve_service("volume")

    def test_default_is_first_public_endpoint(self, authenticated):
        client = authenticated.resolve_service("image")

        assert client.endpoint == "http://glance-one:9292"

    def test_same_client_returned(self, authenticated):
        """Test repeated resolution returns the identical cached client."""
        first = authenticated.resolve_service("image")
        second = authenticated.resolve_service("image")

        assert first is second

    def test_cache_ignores_later_criteria(self, authenticated):
        """Test first resolution wins even when later criteria differ."""
        first = authenticated.resolve_service("image", region="RegionOne")
        second = authenticated.resolve_service("image", region="RegionTwo")

        assert second is first
        assert second.endpoint == "http://glance-one:9292"

    def test_region_filter(self, authenticated):
        client = authenticated.resolve_service("image", region="RegionTwo")

        assert client.endpoint == "http://glance-two:9292"

    def test_id_filter(self, authenticated):
        client = authenticated.resolve_service("image", id="img-2")

        assert client.endpoint == "http://glance-two:9292"

    @pytest.mark.parametrize(
        "options,expected",
        [
            ({"internal": True}, "http://glance-one.internal:9292"),
            ({"admin": True}, "http://glance-one.admin:9292"),
            ({"public": False, "internal": True}, "http://glance-one.internal:9292"),
        ],
    )
    def test_access_class(self, authenticated, options, expected):
        """Test internal and admin flags select the matching URL."""
        client = authenticated.resolve_service("image", **options)

        assert client.endpoint == expected

    def test_descriptor_without_requested_url_skipped(self, authenticated):
        """Test a region lacking an admin URL yields no match."""
        with pytest.raises(NoMatchingEndpointError):
            authenticated.resolve_service("image", region="RegionTwo", admin=True)

    def test_no_matching_region(self, authenticated):
        """Test an unmatched region raises instead of returning a client."""
        with pytest.raises(
            NoMatchingEndpointError, match="service type 'compute'"
        ):
            authenticated.resolve_service("compute", region="RegionNine")

    def test_no_access_class(self, authenticated):
        """Test zeroing public, internal and admin is an invalid selection."""
        with pytest.raises(InvalidSelectionError):
            authenticated.resolve_service("image", public=False)

    def test_uri_override(self, authenticated):
        """Test an explicit uri bypasses the catalog and replaces the cache."""
        cached = authenticated.resolve_service("image")
        override = authenticated.resolve_service("image", uri="http://localhost:9292")

        assert override is not cached
        assert override.endpoint == "http://localhost:9292"
        assert override.token is authenticated.token
        assert authenticated.resolve_service("image") is override

    def test_criteria_object(self, authenticated):
        client = authenticated.resolve_service(
            "image", SelectionCriteria(region="RegionTwo", internal=True)
        )

        assert client.endpoint == "http://glance-two.internal:9292"

    def test_criteria_object_and_options_rejected(self, authenticated):
        with pytest.raises(ConfigurationError):
            authenticated.resolve_service(
                "image", SelectionCriteria(), region="RegionOne"
            )

    def test_unknown_option_rejected(self, authenticated):
        """Test a misspelled option names itself in the error."""
        with pytest.raises(ConfigurationError, match="regoin"):
            authenticated.resolve_service("image", regoin="RegionOne")

    def test_concurrent_resolution_caches_one_client(self, authenticated):
        """Test racing threads all receive the same cached client."""
        results = []
        barrier = threading.Barrier(8)

        def resolve():
            barrier.wait()
            results.append(authenticated.resolve_service("compute"))

        threads = [threading.Thread(target=resolve) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(client is results[0] for client in results)

    def test_resolved_client_sends_token(self, authenticated, httpx_mock):
        """Test clients resolved from the catalog authenticate their requests."""
        httpx_mock.add_response(
            url="http://nova:8774/v2/t-1/servers", json={"servers": []}
        )

        nova = authenticated.resolve_service("compute")
        assert nova.all("/servers", "servers") == []

        request = httpx_mock.get_request(url="http://nova:8774/v2/t-1/servers")
        assert request.headers["X-Auth-Token"] == "T1"


class TestFromConfig:
    """Test building an authenticator from ClientConfig."""

    def test_from_config_authenticates(
        self, httpx_mock, service_catalog, identity_response
    ):
        httpx_mock.add_response(
            method="POST",
            url=TOKENS_URL,
            json=identity_response(catalog=service_catalog),
        )
        config = ClientConfig(
            auth_url=IDENTITY_URL + "/",
            tenant="demo",
            username="alice",
            password="pw",
            region="RegionTwo",
        )

        with CatalogAuthenticator.from_config(config) as authenticator:
            assert authenticator.is_authenticated
            client = authenticator.resolve_service("image", config.selection())

        assert client.endpoint == "http://glance-two:9292"
