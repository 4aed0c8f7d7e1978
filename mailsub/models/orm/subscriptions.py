"""
Mail subscription ORM model.

One row per Microsoft Graph change-notification subscription. The primary
key is the id assigned by Graph. Only ``last_renewed_at`` and
``subscription_expiration_time`` may change after insert.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mailsub.models.orm.base import Base


class MailSubscription(Base):
    """Graph subscription on a user's mailbox messages."""

    __tablename__ = "mail_subscriptions"

    subscription_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("org_users.id"), nullable=False
    )
    subscription_start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    subscription_expiration_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    notification_url: Mapped[str] = mapped_column(Text, nullable=False)
    client_state: Mapped[str] = mapped_column(String(255), nullable=False)

    # Audit
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_renewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    change_type: Mapped[str] = mapped_column(String(50), nullable=False, default="created")
    application_id: Mapped[str | None] = mapped_column(String(255), default=None)

    __table_args__ = (
        CheckConstraint(
            "subscription_expiration_time > subscription_start_time",
            name="expiration_after_start",
        ),
        Index("ix_mail_subscriptions_user_id", "user_id"),
        Index("ix_mail_subscriptions_expiration_time", "subscription_expiration_time"),
    )
