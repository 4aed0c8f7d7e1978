"""Services: Graph client, subscription store and lifecycle coordination."""

from mailsub.services.graph import GraphSubscriptionClient
from mailsub.services.subscription_lifecycle import SubscriptionLifecycleService
from mailsub.services.subscription_store import SubscriptionStore

__all__ = [
    "GraphSubscriptionClient",
    "SubscriptionLifecycleService",
    "SubscriptionStore",
]
