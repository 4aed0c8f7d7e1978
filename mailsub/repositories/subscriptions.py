"""
Mail Subscription Repository

Database operations for mail subscriptions:
- Idempotent upsert keyed by subscription id
- Point lookup, filtered listing and delete
- Directory lookup of a user id by email (UPN or mail)
"""

from typing import Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from mailsub.models.contracts.subscriptions import MailSubscriptionRecord
from mailsub.models.orm.subscriptions import MailSubscription
from mailsub.models.orm.users import DirectoryUser
from mailsub.repositories.base import BaseRepository

# Columns an upsert may overwrite; everything else is immutable after insert
UPSERT_MUTABLE_COLUMNS = ("last_renewed_at", "subscription_expiration_time")


class MailSubscriptionRepository(BaseRepository[MailSubscription]):
    """Repository for mail subscription rows."""

    model = MailSubscription

    async def upsert(self, record: MailSubscriptionRecord) -> int:
        """
        Insert the subscription, or on conflict update its renewal fields.

        Returns:
            Number of rows affected as reported by the driver
        """
        stmt = pg_insert(MailSubscription).values(**record.model_dump())
        stmt = stmt.on_conflict_do_update(
            index_elements=[MailSubscription.subscription_id],
            set_={column: stmt.excluded[column] for column in UPSERT_MUTABLE_COLUMNS},
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_by_subscription_id(self, subscription_id: str) -> MailSubscription | None:
        """Get a subscription by its Graph id."""
        return await self.get_by_id(subscription_id)

    async def list_subscriptions(self, user_id: str | None = None) -> Sequence[MailSubscription]:
        """
        List subscriptions, optionally for a single user.

        Ordered by creation time for stable output; callers must not rely on it.
        """
        stmt = select(MailSubscription)
        if user_id:
            stmt = stmt.where(MailSubscription.user_id == user_id)
        stmt = stmt.order_by(MailSubscription.created_at, MailSubscription.subscription_id)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def delete_by_subscription_id(self, subscription_id: str) -> bool:
        """Delete a subscription row. Returns whether a row was removed."""
        result = await self.session.execute(
            delete(MailSubscription).where(MailSubscription.subscription_id == subscription_id)
        )
        return (result.rowcount or 0) > 0

    async def get_user_id_by_email(self, email: str) -> str | None:
        """Resolve an email address to a directory user id (case-insensitive)."""
        normalized = email.strip().lower()
        result = await self.session.execute(
            select(DirectoryUser.id)
            .where(
                or_(
                    func.lower(DirectoryUser.user_principal_name) == normalized,
                    func.lower(DirectoryUser.mail) == normalized,
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
