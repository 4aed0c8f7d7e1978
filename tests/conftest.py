"""
Pytest fixtures for mailsub testing.

This module provides:
1. Settings fixtures (Azure AD and Graph configured, no real endpoints)
2. Common subscription test data
"""

import pytest

from mailsub.config import Settings
from mailsub.models.contracts.subscriptions import MailSubscriptionRecord
from tests.helpers.subscriptions import (
    TEST_CLIENT_ID,
    TEST_NOTIFICATION_URL,
    make_subscription,
)


# ==================== CONFIGURATION ====================

TEST_TENANT_ID = "00000000-0000-0000-0000-00000000aaaa"
TEST_CLIENT_SECRET = "test-client-secret"


@pytest.fixture
def settings() -> Settings:
    """Fully configured settings for unit tests."""
    return Settings(
        environment="testing",
        azure_tenant_id=TEST_TENANT_ID,
        azure_client_id=TEST_CLIENT_ID,
        azure_client_secret=TEST_CLIENT_SECRET,
        graph_notification_url=TEST_NOTIFICATION_URL,
        _env_file=None,
    )


# ==================== TEST DATA ====================


@pytest.fixture
def subscription_factory():
    """Factory fixture returning make_subscription."""
    return make_subscription


@pytest.fixture
def subscription(subscription_factory) -> MailSubscriptionRecord:
    return subscription_factory()
