# Data access layer - PostgreSQL repositories
from mailsub.repositories.base import BaseRepository
from mailsub.repositories.subscriptions import MailSubscriptionRepository

__all__ = [
    "BaseRepository",
    "MailSubscriptionRepository",
]
