"""
Microsoft Graph services for mailsub.

This package provides:
- ClientSecretCredential for app-only token acquisition
- GraphSubscriptionClient for creating and deleting mail subscriptions
"""

from mailsub.services.graph.auth import AccessToken, ClientSecretCredential
from mailsub.services.graph.client import (
    AuthenticatedGraphSession,
    GraphSubscriptionClient,
    generate_client_state,
)

__all__ = [
    "AccessToken",
    "AuthenticatedGraphSession",
    "ClientSecretCredential",
    "GraphSubscriptionClient",
    "generate_client_state",
]
