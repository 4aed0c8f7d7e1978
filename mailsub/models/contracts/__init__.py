"""
Pydantic contracts for mailsub.
"""

from mailsub.models.contracts.subscriptions import (
    DeleteOutcome,
    GraphSubscriptionPayload,
    MailSubscriptionRecord,
)

__all__ = [
    "DeleteOutcome",
    "GraphSubscriptionPayload",
    "MailSubscriptionRecord",
]
