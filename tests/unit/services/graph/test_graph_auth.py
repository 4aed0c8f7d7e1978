"""
Unit tests for the Azure AD client credentials flow.
"""

import ssl
from urllib.parse import parse_qs

import httpx
import pytest

from mailsub.core.exceptions import ConfigurationError, NetworkError, ProviderError
from mailsub.services.graph.auth import ClientSecretCredential, build_tls_context


def make_credential(transport, **overrides) -> ClientSecretCredential:
    kwargs = {
        "tenant_id": "tenant-1",
        "client_id": "client-1",
        "client_secret": "secret-1",
        "authority_host": "https://login.microsoftonline.com",
        "scope": "https://graph.microsoft.com/.default",
        "transport": transport,
    }
    kwargs.update(overrides)
    return ClientSecretCredential(**kwargs)


class TestClientSecretCredential:
    def test_missing_values_raise_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            make_credential(None, tenant_id=None, client_secret="  ")

        assert "MAILSUB_AZURE_TENANT_ID" in exc_info.value.message
        assert "MAILSUB_AZURE_CLIENT_SECRET" in exc_info.value.message
        assert "MAILSUB_AZURE_CLIENT_ID" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_posts_client_credentials_grant(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3599})

        credential = make_credential(httpx.MockTransport(handler))
        token = await credential.get_token()

        assert token.token == "tok"
        assert len(seen) == 1
        request = seen[0]
        assert str(request.url) == "https://login.microsoftonline.com/tenant-1/oauth2/v2.0/token"
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["client_credentials"]
        assert form["scope"] == ["https://graph.microsoft.com/.default"]
        assert form["client_id"] == ["client-1"]

    @pytest.mark.asyncio
    async def test_repr_hides_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "super-secret-token"})

        token = await make_credential(httpx.MockTransport(handler)).get_token()

        assert "super-secret-token" not in repr(token)

    @pytest.mark.asyncio
    async def test_error_response_raises_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                401,
                json={
                    "error": "invalid_client",
                    "error_description": "AADSTS7000215: Invalid client secret provided.",
                },
            )

        with pytest.raises(ProviderError) as exc_info:
            await make_credential(httpx.MockTransport(handler)).get_token()

        assert exc_info.value.code == "invalid_client"
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_non_numeric_expires_in_raises_provider_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "tok", "expires_in": "soon"})

        with pytest.raises(ProviderError, match="expires_in") as exc_info:
            await make_credential(httpx.MockTransport(handler)).get_token()

        assert exc_info.value.status == 200
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_transport_failure_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        with pytest.raises(NetworkError, match="login.microsoftonline.com"):
            await make_credential(httpx.MockTransport(handler)).get_token()


def test_tls_context_requires_tls12():
    assert build_tls_context().minimum_version == ssl.TLSVersion.TLSv1_2
