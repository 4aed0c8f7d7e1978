"""
mailsub Models

ORM models (database tables):
    from mailsub.models import MailSubscription
    from mailsub.models.orm.subscriptions import MailSubscription  # Granular access

Pydantic contracts:
    from mailsub.models import MailSubscriptionRecord, DeleteOutcome
"""

from mailsub.models.contracts import (
    DeleteOutcome,
    GraphSubscriptionPayload,
    MailSubscriptionRecord,
)
from mailsub.models.orm import Base, DirectoryUser, MailSubscription

__all__ = [
    # ORM
    "Base",
    "DirectoryUser",
    "MailSubscription",
    # Contracts
    "DeleteOutcome",
    "GraphSubscriptionPayload",
    "MailSubscriptionRecord",
]
