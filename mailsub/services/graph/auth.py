"""
Azure AD client credentials for Microsoft Graph.

Acquires app-only access tokens with the OAuth 2.0 client credentials grant
against the tenant's v2.0 token endpoint.
"""

import logging
import ssl
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx

from mailsub.core.exceptions import ConfigurationError, NetworkError, ProviderError

logger = logging.getLogger(__name__)

# Fallback when the token response omits expires_in
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


def build_tls_context() -> ssl.SSLContext:
    """SSL context that refuses anything older than TLS 1.2."""
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


@dataclass
class AccessToken:
    """Bearer token and its absolute expiry."""

    token: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"AccessToken(expires_at={self.expires_at.isoformat()})"


class ClientSecretCredential:
    """
    Client credentials grant against Azure AD.

    Args:
        tenant_id: Directory (tenant) ID
        client_id: Application (client) ID
        client_secret: Application secret
        authority_host: Authority host, e.g. https://login.microsoftonline.com
        scope: Requested scope (https://graph.microsoft.com/.default)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        tenant_id: str | None,
        client_id: str | None,
        client_secret: str | None,
        authority_host: str,
        scope: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        missing = [
            name
            for name, value in (
                ("MAILSUB_AZURE_TENANT_ID", tenant_id),
                ("MAILSUB_AZURE_CLIENT_ID", client_id),
                ("MAILSUB_AZURE_CLIENT_SECRET", client_secret),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} is not configured.")

        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self.scope = scope
        self.token_url = f"{authority_host.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._timeout = timeout
        self._transport = transport

    async def get_token(self) -> AccessToken:
        """
        Request a new access token.

        Raises:
            NetworkError: Token endpoint unreachable
            ProviderError: Azure AD rejected the request
        """
        requested_at = datetime.now(timezone.utc)
        logger.debug(f"Requesting Graph access token for client {self.client_id}")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=build_tls_context(),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self._client_secret,
                        "scope": self.scope,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.TransportError as e:
            logger.error(f"❌ Token request to {self.token_url} failed: {e}", exc_info=True)
            raise NetworkError(
                "Network error acquiring a Graph access token. "
                "Ensure outbound HTTPS connectivity to login.microsoftonline.com is available "
                f"(TLS 1.2+, DNS resolution). Error: {e}"
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_error or "access_token" not in data:
            error_code = data.get("error") or f"HTTP {response.status_code}"
            description = data.get("error_description") or "Token acquisition failed"
            logger.error(
                f"❌ Token acquisition failed. Code: {error_code}, Message: {description}",
                extra={"status_code": response.status_code},
            )
            raise ProviderError(
                f"Azure AD token request failed. Error Code: {error_code}, Message: {description}",
                code=error_code,
                provider_message=description,
                status=response.status_code,
            )

        try:
            expires_in = int(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Token response carried an invalid expires_in: {data.get('expires_in')!r}")
            raise ProviderError(
                "Azure AD returned a malformed token response (invalid expires_in).",
                code="invalid_token_response",
                status=response.status_code,
            ) from e
        token = AccessToken(
            token=data["access_token"],
            expires_at=requested_at + timedelta(seconds=expires_in),
        )
        logger.debug(f"✅ Access token acquired; expires at {token.expires_at.isoformat()}")
        return token
