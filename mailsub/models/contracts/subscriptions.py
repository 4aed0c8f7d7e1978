"""
Subscription contract models for mailsub.

Value objects passed between the Graph client, the subscription store and
the lifecycle service, plus the Graph wire representation of a subscription.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ==================== GRAPH WIRE MODELS ====================


def parse_graph_datetime(value: str) -> datetime:
    """
    Parse a Graph ISO-8601 timestamp.

    Graph returns 7 fractional digits and a trailing Z (e.g.
    "2026-10-19T18:23:45.9356913Z"); the result is always timezone-aware UTC.
    """
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class GraphSubscriptionPayload(BaseModel):
    """
    Microsoft Graph subscription resource.
    POST /subscriptions request body and response.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, description="Subscription ID assigned by Graph")
    change_type: str | None = Field(default=None, alias="changeType")
    notification_url: str | None = Field(default=None, alias="notificationUrl")
    resource: str | None = Field(default=None, description="Graph resource path, e.g. /users/{id}/messages")
    expiration_date_time: datetime | None = Field(default=None, alias="expirationDateTime")
    client_state: str | None = Field(default=None, alias="clientState")

    @field_validator("expiration_date_time", mode="before")
    @classmethod
    def _parse_expiration(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_graph_datetime(value)
        return value

    def to_request_body(self) -> dict[str, str]:
        """Serialize for POST /subscriptions (camelCase, ISO-8601 UTC)."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"id"},
        )


# ==================== LIFECYCLE MODELS ====================


class MailSubscriptionRecord(BaseModel):
    """
    A mailbox change-notification subscription.

    Mirrors the mail_subscriptions table. Built by the Graph client from a
    successful create, persisted by the store, returned by lookups.
    """

    model_config = ConfigDict(from_attributes=True)

    subscription_id: str = Field(..., description="ID assigned by Graph (primary key)")
    user_id: str = Field(..., description="Mailbox owner")
    subscription_start_time: datetime
    subscription_expiration_time: datetime
    notification_url: str
    client_state: str = Field(..., description="Shared secret echoed on notifications")
    created_at: datetime
    last_renewed_at: datetime | None = None
    change_type: str = "created"
    application_id: str | None = Field(default=None, description="Calling application ID, for audit")


class DeleteOutcome(BaseModel):
    """Result of deleting a subscription."""

    subscription_id: str
    removed_from_provider: bool = Field(
        ..., description="Whether Graph still held the subscription when it was deleted"
    )
    removed_from_store: bool = Field(
        default=True, description="Whether a local row was removed"
    )
