"""Subscription test data builders."""

from datetime import datetime, timedelta, timezone

from mailsub.models.contracts.subscriptions import MailSubscriptionRecord

TEST_CLIENT_ID = "00000000-0000-0000-0000-00000000bbbb"
TEST_NOTIFICATION_URL = "https://hooks.example.com/api/mail/notifications"


def make_subscription(
    subscription_id: str = "sub-1",
    user_id: str = "alice@example.com",
    expires_in: timedelta = timedelta(hours=48),
    **overrides,
) -> MailSubscriptionRecord:
    """Build a subscription record starting now."""
    now = datetime.now(timezone.utc)
    data = {
        "subscription_id": subscription_id,
        "user_id": user_id,
        "subscription_start_time": now,
        "subscription_expiration_time": now + expires_in,
        "notification_url": TEST_NOTIFICATION_URL,
        "client_state": "c2VjcmV0LWNsaWVudC1zdGF0ZQ==",
        "created_at": now,
        "last_renewed_at": now,
        "change_type": "created",
        "application_id": TEST_CLIENT_ID,
    }
    data.update(overrides)
    return MailSubscriptionRecord(**data)
