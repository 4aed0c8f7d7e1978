"""
Unit tests for subscription contract models.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

from mailsub.models.contracts.subscriptions import (
    DeleteOutcome,
    GraphSubscriptionPayload,
    MailSubscriptionRecord,
    parse_graph_datetime,
)


class TestParseGraphDatetime:
    def test_parses_seven_fractional_digits_and_z(self):
        parsed = parse_graph_datetime("2026-10-19T18:23:45.9356913Z")

        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2026, 10, 19, 18)

    def test_naive_value_is_treated_as_utc(self):
        parsed = parse_graph_datetime("2026-10-19T18:23:45")

        assert parsed == datetime(2026, 10, 19, 18, 23, 45, tzinfo=timezone.utc)


class TestGraphSubscriptionPayload:
    def test_request_body_uses_graph_field_names(self):
        payload = GraphSubscriptionPayload(
            change_type="created",
            resource="/users/alice@example.com/messages",
            notification_url="https://hooks.example.com/notify",
            expiration_date_time=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
            client_state="abc",
        )

        body = payload.to_request_body()

        assert body == {
            "changeType": "created",
            "resource": "/users/alice@example.com/messages",
            "notificationUrl": "https://hooks.example.com/notify",
            "expirationDateTime": "2026-10-19T12:00:00Z",
            "clientState": "abc",
        }

    def test_parses_graph_response(self):
        payload = GraphSubscriptionPayload.model_validate(
            {
                "@odata.context": "https://graph.microsoft.com/v1.0/$metadata#subscriptions/$entity",
                "id": "sub-1",
                "resource": "/users/alice@example.com/messages",
                "changeType": "created",
                "clientState": "abc",
                "notificationUrl": "https://hooks.example.com/notify",
                "expirationDateTime": "2026-10-19T12:00:00.1234567Z",
            }
        )

        assert payload.id == "sub-1"
        assert payload.client_state == "abc"
        assert payload.expiration_date_time.tzinfo is not None


class TestMailSubscriptionRecord:
    def test_builds_from_orm_attributes(self):
        now = datetime.now(timezone.utc)
        row = SimpleNamespace(
            subscription_id="sub-1",
            user_id="alice@example.com",
            subscription_start_time=now,
            subscription_expiration_time=now,
            notification_url="https://hooks.example.com/notify",
            client_state="abc",
            created_at=now,
            last_renewed_at=None,
            change_type="created",
            application_id=None,
        )

        record = MailSubscriptionRecord.model_validate(row)

        assert record.subscription_id == "sub-1"
        assert record.last_renewed_at is None

    def test_delete_outcome_defaults(self):
        outcome = DeleteOutcome(subscription_id="sub-1", removed_from_provider=False)

        assert outcome.removed_from_store is True
