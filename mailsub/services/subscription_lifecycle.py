"""
Subscription Lifecycle Service

Coordinates Microsoft Graph and the subscription store:

- create: Graph first, then persist. A Graph failure leaves the store
  untouched. A persist failure after Graph succeeded is NOT compensated;
  the Graph subscription is left to expire on its own and the orphaned id
  is logged.
- delete: look up locally (unknown id -> NotFoundError, Graph is not
  called), delete in Graph ("not found" is fine, provider and network
  failures are logged), then always delete the local row.
- get / list / resolve_user_id: passthrough to the store.
"""

import logging

from mailsub.core.cancellation import CancellationToken
from mailsub.core.exceptions import (
    MailSubscriptionError,
    NetworkError,
    NotFoundError,
    ProviderError,
)
from mailsub.models.contracts.subscriptions import DeleteOutcome, MailSubscriptionRecord
from mailsub.services.graph.client import GraphSubscriptionClient
from mailsub.services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)


class SubscriptionLifecycleService:
    """
    Create, query and delete mailbox subscriptions.

    Args:
        graph_client: Client for the Graph subscriptions API
        store: Durable subscription store
    """

    def __init__(self, graph_client: GraphSubscriptionClient, store: SubscriptionStore):
        self.graph_client = graph_client
        self.store = store

    async def create(
        self,
        user_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> MailSubscriptionRecord:
        """
        Create a Graph subscription for the user's mailbox and persist it.

        Raises:
            Whatever the Graph client or the store raise, unchanged.
        """
        subscription = await self.graph_client.create_subscription(user_id, cancel_token)

        try:
            await self.store.save(subscription, cancel_token)
        except MailSubscriptionError as e:
            logger.error(
                f"❌ Graph subscription {subscription.subscription_id} was created for UserId: "
                f"{user_id} but could not be saved ({e.kind.value}). It is orphaned in Graph "
                f"until it expires at {subscription.subscription_expiration_time.isoformat()}.",
                extra={
                    "user_id": user_id,
                    "subscription_id": subscription.subscription_id,
                    "error_kind": e.kind.value,
                },
            )
            raise

        logger.info(
            f"✅ Subscription {subscription.subscription_id} created and persisted for UserId: {user_id}"
        )
        return subscription

    async def delete(
        self,
        subscription_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> DeleteOutcome:
        """
        Delete a subscription from Graph and from the store.

        The local row is removed even when Graph reports an error, so stale
        rows do not accumulate.

        Raises:
            NotFoundError: The subscription is not in the store
        """
        existing = await self.store.get_by_id(subscription_id, cancel_token)
        if existing is None:
            logger.warning(f"⚠️ Subscription {subscription_id} not found in database.")
            raise NotFoundError(f"Subscription '{subscription_id}' not found.")

        try:
            removed_from_provider = await self.graph_client.delete_subscription(
                subscription_id, cancel_token
            )
        except (ProviderError, NetworkError) as e:
            logger.warning(
                f"⚠️ Graph delete failed for subscription {subscription_id} "
                f"({e.kind.value}): {e.message}. Removing local record anyway.",
                extra={"subscription_id": subscription_id, "error_kind": e.kind.value},
            )
            removed_from_provider = False

        removed_from_store = await self.store.delete(subscription_id, cancel_token)

        logger.info(
            f"✅ Subscription {subscription_id} deleted. RemovedFromGraph: {removed_from_provider}, "
            f"RemovedFromDatabase: {removed_from_store}"
        )
        return DeleteOutcome(
            subscription_id=subscription_id,
            removed_from_provider=removed_from_provider,
            removed_from_store=removed_from_store,
        )

    async def get(
        self,
        subscription_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> MailSubscriptionRecord | None:
        return await self.store.get_by_id(subscription_id, cancel_token)

    async def list(
        self,
        user_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[MailSubscriptionRecord]:
        return await self.store.list(user_id, cancel_token)

    async def resolve_user_id(
        self,
        email: str,
        cancel_token: CancellationToken | None = None,
    ) -> str | None:
        """Look up the directory user id for an email address."""
        return await self.store.get_user_id_by_email(email, cancel_token)
