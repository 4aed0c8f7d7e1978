"""
Microsoft Graph subscription client.

Creates and deletes mailbox change-notification subscriptions via
POST /subscriptions and DELETE /subscriptions/{id}.

Authentication:
- App-only token via the client credentials grant
- The authenticated HTTP client is cached for 50 minutes (under the
  ~60 minute token lifetime) and closed when evicted
- Concurrent cache misses share a single credential acquisition

Error translation:
- Graph OData error body      -> ProviderError (code, message, target)
- DNS/TLS/connect/timeouts    -> NetworkError
- Missing/invalid settings    -> ConfigurationError (before any I/O)
"""

import base64
import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator
from urllib.parse import quote, urlparse

import httpx
from pydantic import ValidationError

from mailsub import __version__
from mailsub.config import Settings, get_settings
from mailsub.core.cache import ExpiringResourceCache
from mailsub.core.cancellation import CancellationToken, run_cancellable
from mailsub.core.exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    NetworkError,
    ProviderError,
)
from mailsub.models.contracts.subscriptions import (
    GraphSubscriptionPayload,
    MailSubscriptionRecord,
)
from mailsub.services.graph.auth import ClientSecretCredential, build_tls_context

logger = logging.getLogger(__name__)

GRAPH_CLIENT_CACHE_KEY = "graph_service_client"

SUBSCRIPTION_CHANGE_TYPE = "created"

# OData error codes Graph uses for an unknown subscription id
NOT_FOUND_ERROR_CODES = frozenset({
    "ResourceNotFound",
    "ItemNotFound",
    "Request_ResourceNotFound",
})


def generate_client_state() -> str:
    """32 bytes from the OS CSPRNG, base64-encoded."""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def mailbox_messages_resource(user_id: str) -> str:
    """Graph resource path for a user's mailbox messages."""
    return f"/users/{user_id}/messages"


@dataclass
class AuthenticatedGraphSession:
    """
    Cached handle: a pooled HTTP client carrying a bearer token.

    Requests are tracked with ``track_request()``. Closing a session that
    still has requests in flight (expiry or 401 eviction racing another
    coroutine) only marks it; the last request to finish closes it.
    """

    http: httpx.AsyncClient
    token_expires_at: datetime
    created_at: datetime
    in_flight: int = 0
    close_requested: bool = False

    @asynccontextmanager
    async def track_request(self) -> AsyncIterator[httpx.AsyncClient]:
        self.in_flight += 1
        try:
            yield self.http
        finally:
            self.in_flight -= 1
            if self.close_requested and self.in_flight == 0:
                await self.http.aclose()

    async def aclose(self) -> None:
        self.close_requested = True
        if self.in_flight == 0:
            await self.http.aclose()


class GraphSubscriptionClient:
    """
    Microsoft Graph client for mail subscriptions.

    Example:
        async with GraphSubscriptionClient() as graph:
            record = await graph.create_subscription("alice@example.com")
            ...
            removed = await graph.delete_subscription(record.subscription_id)

    Args:
        settings: Configuration (defaults to get_settings())
        cache: Cache for the authenticated session (defaults to a 50 minute TTL cache)
        transport: Optional httpx transport shared by token and Graph requests (used by tests)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: ExpiringResourceCache[AuthenticatedGraphSession] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._cache = cache if cache is not None else ExpiringResourceCache(
            ttl_seconds=self.settings.graph_client_cache_seconds,
            on_evict=self._dispose_session,
        )

    async def __aenter__(self) -> "GraphSubscriptionClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Evict and close the cached session."""
        await self._cache.clear()

    # =========================================================================
    # Authenticated client
    # =========================================================================

    async def get_or_create_authenticated_client(
        self,
        cancel_token: CancellationToken | None = None,
    ) -> AuthenticatedGraphSession:
        """
        Return the cached authenticated session, creating one if missing or expired.

        Raises:
            ConfigurationError: Tenant id, client id or secret missing
            NetworkError: Token endpoint unreachable
            ProviderError: Azure AD rejected the credentials
            OperationCancelledError: cancel_token fired
        """
        return await run_cancellable(
            self._cache.get_or_create(GRAPH_CLIENT_CACHE_KEY, self._create_session),
            cancel_token,
            "get_or_create_authenticated_client",
        )

    async def _create_session(self) -> AuthenticatedGraphSession:
        logger.info("🔧 Creating new Graph client instance...")
        settings = self.settings

        credential = ClientSecretCredential(
            tenant_id=settings.azure_tenant_id,
            client_id=settings.azure_client_id,
            client_secret=settings.azure_client_secret,
            authority_host=settings.azure_authority_host,
            scope=settings.graph_scope,
            timeout=settings.graph_connect_timeout_seconds * 2,
            transport=self._transport,
        )
        token = await credential.get_token()

        http = httpx.AsyncClient(
            base_url=settings.graph_base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token.token}",
                "User-Agent": f"mailsub/{__version__}",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(
                settings.graph_http_timeout_seconds,
                connect=settings.graph_connect_timeout_seconds,
            ),
            limits=httpx.Limits(
                max_connections=settings.graph_max_connections,
                max_keepalive_connections=settings.graph_max_connections,
                keepalive_expiry=settings.graph_keepalive_expiry_seconds,
            ),
            verify=build_tls_context(),
            follow_redirects=True,
            transport=self._transport,
        )

        logger.info(
            f"✅ New Graph client created and cached for {settings.graph_client_cache_minutes} minutes. "
            "TLS 1.2+ enforced."
        )
        return AuthenticatedGraphSession(
            http=http,
            token_expires_at=token.expires_at,
            created_at=datetime.now(timezone.utc),
        )

    async def _dispose_session(
        self, key: str, session: AuthenticatedGraphSession, reason: str
    ) -> None:
        await session.aclose()
        logger.debug(f"✅ Graph client '{key}' disposed ({reason}).")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def create_subscription(
        self,
        user_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> MailSubscriptionRecord:
        """
        Create a Graph subscription on the user's mailbox messages.

        Nothing is persisted here; saving the returned record is the
        caller's responsibility.

        Args:
            user_id: Mailbox owner (object id or UPN)
            cancel_token: Optional cancellation signal

        Returns:
            The subscription as confirmed by Graph

        Raises:
            InvalidArgumentError: user_id is empty
            ConfigurationError: Notification URL or credentials invalid
            ProviderError: Graph rejected the request or returned no id
            NetworkError: Graph unreachable
            OperationCancelledError: cancel_token fired
        """
        if not user_id or not user_id.strip():
            raise InvalidArgumentError("user_id cannot be empty.")

        notification_url = self._validate_notification_url()
        logger.info(f"Creating Microsoft Graph subscription for UserId: {user_id}")

        session = await self.get_or_create_authenticated_client(cancel_token)

        now = datetime.now(timezone.utc)
        expiration = now + timedelta(hours=self.settings.graph_subscription_expiration_hours)
        client_state = generate_client_state()
        request = GraphSubscriptionPayload(
            change_type=SUBSCRIPTION_CHANGE_TYPE,
            resource=mailbox_messages_resource(user_id),
            notification_url=notification_url,
            expiration_date_time=expiration,
            client_state=client_state,
        )

        response = await self._send(
            session,
            "POST",
            "/subscriptions",
            operation="create_subscription",
            context_id=user_id,
            cancel_token=cancel_token,
            json=request.to_request_body(),
        )
        if response.is_error:
            raise await self._provider_error(response, "create_subscription", user_id)

        try:
            created = GraphSubscriptionPayload.model_validate(self._json_body(response))
        except ValidationError as e:
            logger.error(
                f"❌ Graph returned a malformed subscription for UserId: {user_id}. "
                f"Errors: {e.error_count()}"
            )
            raise ProviderError(
                "Graph API returned null or incomplete subscription response.",
                status=response.status_code,
            ) from e
        if not created.id:
            logger.error(f"❌ Graph returned a subscription without an id for UserId: {user_id}")
            raise ProviderError(
                "Graph API returned null or incomplete subscription response.",
                status=response.status_code,
            )

        logger.info(
            f"✅ Graph subscription created successfully. SubscriptionId: {created.id}, "
            f"Resource: {request.resource}, ExpiresAt: {created.expiration_date_time}",
            extra={"user_id": user_id, "subscription_id": created.id},
        )

        return MailSubscriptionRecord(
            subscription_id=created.id,
            user_id=user_id,
            subscription_start_time=now,
            subscription_expiration_time=created.expiration_date_time or expiration,
            notification_url=notification_url,
            client_state=created.client_state or client_state,
            created_at=now,
            last_renewed_at=now,
            change_type=SUBSCRIPTION_CHANGE_TYPE,
            application_id=self.settings.azure_client_id,
        )

    async def delete_subscription(
        self,
        subscription_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """
        Delete a Graph subscription.

        Returns:
            True if Graph deleted it, False if Graph no longer had it
            (expired or removed earlier)

        Raises:
            InvalidArgumentError: subscription_id is empty
            ProviderError: Graph rejected the request
            NetworkError: Graph unreachable
            OperationCancelledError: cancel_token fired
        """
        if not subscription_id or not subscription_id.strip():
            raise InvalidArgumentError("subscription_id cannot be empty.")

        logger.info(f"Deleting Microsoft Graph subscription {subscription_id}")
        session = await self.get_or_create_authenticated_client(cancel_token)

        response = await self._send(
            session,
            "DELETE",
            f"/subscriptions/{quote(subscription_id, safe='')}",
            operation="delete_subscription",
            context_id=subscription_id,
            cancel_token=cancel_token,
        )

        if response.status_code == 404:
            logger.warning(
                f"⚠️ Subscription {subscription_id} was not found in Graph (may have already expired)."
            )
            return False

        if response.is_error:
            error = await self._provider_error(response, "delete_subscription", subscription_id)
            if error.code in NOT_FOUND_ERROR_CODES:
                logger.warning(
                    f"⚠️ Subscription {subscription_id} was not found in Graph ({error.code})."
                )
                return False
            raise error

        logger.info(f"✅ Graph subscription {subscription_id} deleted.")
        return True

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate_notification_url(self) -> str:
        notification_url = self.settings.graph_notification_url
        if not notification_url:
            raise ConfigurationError(
                "MAILSUB_GRAPH_NOTIFICATION_URL is not configured. Please set it in configuration."
            )

        parsed = urlparse(notification_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ConfigurationError(
                f"MAILSUB_GRAPH_NOTIFICATION_URL must be a valid HTTPS URL. Current value: {notification_url}"
            )
        return notification_url

    async def _send(
        self,
        session: AuthenticatedGraphSession,
        method: str,
        url: str,
        operation: str,
        context_id: str,
        cancel_token: CancellationToken | None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            async with session.track_request() as http:
                return await run_cancellable(
                    http.request(method, url, **kwargs),
                    cancel_token,
                    operation,
                )
        except httpx.TransportError as e:
            logger.error(
                f"❌ HTTP request failed in {operation} for {context_id}. "
                f"ErrorType: {type(e).__name__}, Message: {e}",
                exc_info=True,
            )
            raise NetworkError(
                f"Network error in {operation}. "
                "Ensure outbound HTTPS connectivity to graph.microsoft.com is available "
                f"(TLS 1.2+, DNS resolution). Error: {type(e).__name__}: {e}"
            ) from e

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def _provider_error(
        self, response: httpx.Response, operation: str, context_id: str
    ) -> ProviderError:
        """Translate a Graph OData error response into ProviderError."""
        error = self._json_body(response).get("error") or {}
        if not isinstance(error, dict):
            error = {}

        error_code = error.get("code") or f"HTTP{response.status_code}"
        error_message = error.get("message") or response.reason_phrase or "Unknown error"
        error_target = error.get("target")
        inner = error.get("innerError") or {}
        details = ", ".join(f"{k}={v}" for k, v in inner.items()) if isinstance(inner, dict) else "None"

        if response.status_code == 401:
            # Token revoked or expired early: force a fresh credential next time
            await self._cache.invalidate(GRAPH_CLIENT_CACHE_KEY, reason="unauthorized")

        logger.error(
            f"❌ Graph API OData error in {operation} for {context_id}. "
            f"Code: {error_code}, Message: {error_message}, Target: {error_target or 'None'}, "
            f"Details: {details or 'None'}",
            extra={"status_code": response.status_code},
        )

        message = (
            f"Graph API error in {operation}. Error Code: {error_code}, Message: {error_message}"
        )
        if error_target:
            message += f", Target: {error_target}"
        return ProviderError(
            message,
            code=error_code,
            provider_message=error_message,
            target=error_target,
            status=response.status_code,
        )
