"""
SQLAlchemy ORM Models for mailsub

Pure database models using SQLAlchemy 2.0 declarative style.
For value objects passed between layers, see mailsub.models.contracts.
"""

from mailsub.models.orm.base import Base
from mailsub.models.orm.subscriptions import MailSubscription
from mailsub.models.orm.users import DirectoryUser

__all__ = [
    "Base",
    "DirectoryUser",
    "MailSubscription",
]
