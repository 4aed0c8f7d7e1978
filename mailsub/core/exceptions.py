"""
Core Exceptions

Error taxonomy for the mail subscription lifecycle.

Lower layers (Graph client, subscription store) translate vendor-specific
failures into exactly one of these kinds and re-raise. Callers branch on
``error.kind`` rather than on vendor exception types.

Boundary mapping (for the request-handling layer):
    invalid_argument -> 400
    not_found        -> 404
    cancelled        -> 408
    transient        -> 503
    everything else  -> 500
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Tag identifying which failure class an error belongs to."""
    INVALID_ARGUMENT = "invalid_argument"
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    PROVIDER = "provider"
    NETWORK = "network"
    CANCELLED = "cancelled"
    STORE = "store"

    @property
    def retryable(self) -> bool:
        """Whether a caller may safely retry the failed operation."""
        return self in (ErrorKind.CONFLICT, ErrorKind.TRANSIENT)


class MailSubscriptionError(Exception):
    """
    Base class for all errors raised by the subscription lifecycle.

    Attributes:
        message: Diagnostic message (may contain identifiers, never secrets)
        kind: Error tag
        status_code: Suggested response status for the boundary layer
        public_message: Stable message safe to return in a response body
    """

    kind: ErrorKind = ErrorKind.STORE
    status_code: int = 500
    public_message: str = "An internal error occurred."

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class InvalidArgumentError(MailSubscriptionError):
    """Caller-supplied input failed a precondition. Never retried."""

    kind = ErrorKind.INVALID_ARGUMENT
    status_code = 400
    public_message = "The request was invalid."


class ConfigurationError(MailSubscriptionError):
    """A required setting is missing or invalid. Raised before any I/O."""

    kind = ErrorKind.CONFIGURATION
    public_message = "The service is not configured correctly."


class NotFoundError(MailSubscriptionError):
    """Referenced entity is absent (unknown subscription id or directory user)."""

    kind = ErrorKind.NOT_FOUND
    status_code = 404
    public_message = "The requested resource was not found."


class ConflictError(MailSubscriptionError):
    """Uniqueness violation that the upsert should have prevented (race)."""

    kind = ErrorKind.CONFLICT


class TransientError(MailSubscriptionError):
    """Connection-level store failure. Safe to retry with backoff."""

    kind = ErrorKind.TRANSIENT
    status_code = 503
    public_message = "The service is temporarily unavailable."


class ProviderError(MailSubscriptionError):
    """
    Microsoft Graph rejected the request with a structured error.

    Carries the OData error code, message and target for diagnostics.
    """

    kind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        code: str | None = None,
        provider_message: str | None = None,
        target: str | None = None,
        status: int | None = None,
    ):
        self.code = code
        self.provider_message = provider_message
        self.target = target
        self.status = status
        super().__init__(message)


class NetworkError(MailSubscriptionError):
    """Transport-level failure reaching Microsoft Graph or the token endpoint."""

    kind = ErrorKind.NETWORK


class OperationCancelledError(MailSubscriptionError):
    """Operation aborted through its cancellation token or deadline."""

    kind = ErrorKind.CANCELLED
    status_code = 408
    public_message = "The request was cancelled or timed out."


class StoreError(MailSubscriptionError):
    """Store failure not matching a more specific kind."""

    kind = ErrorKind.STORE

    def __init__(self, message: str, sqlstate: str | None = None):
        self.sqlstate = sqlstate
        super().__init__(message)
