"""
Unit tests for the error taxonomy.
"""

import pytest

from mailsub.core.exceptions import (
    ConfigurationError,
    ConflictError,
    ErrorKind,
    InvalidArgumentError,
    MailSubscriptionError,
    NetworkError,
    NotFoundError,
    OperationCancelledError,
    ProviderError,
    StoreError,
    TransientError,
)


class TestErrorKinds:
    """Each error class carries exactly one kind and a boundary status."""

    @pytest.mark.parametrize(
        "error_cls,kind,status_code",
        [
            (InvalidArgumentError, ErrorKind.INVALID_ARGUMENT, 400),
            (ConfigurationError, ErrorKind.CONFIGURATION, 500),
            (NotFoundError, ErrorKind.NOT_FOUND, 404),
            (ConflictError, ErrorKind.CONFLICT, 500),
            (TransientError, ErrorKind.TRANSIENT, 503),
            (NetworkError, ErrorKind.NETWORK, 500),
            (OperationCancelledError, ErrorKind.CANCELLED, 408),
        ],
    )
    def test_kind_and_status(self, error_cls, kind, status_code):
        error = error_cls("boom")

        assert isinstance(error, MailSubscriptionError)
        assert error.kind is kind
        assert error.status_code == status_code
        assert error.message == "boom"
        assert str(error) == "boom"

    def test_only_conflict_and_transient_are_retryable(self):
        retryable = {kind for kind in ErrorKind if kind.retryable}

        assert retryable == {ErrorKind.CONFLICT, ErrorKind.TRANSIENT}
        assert TransientError("x").retryable is True
        assert ProviderError("x").retryable is False

    def test_public_message_never_contains_diagnostics(self):
        error = StoreError("password authentication failed for user mailsub", sqlstate="28P01")

        assert "mailsub" not in error.public_message
        assert error.sqlstate == "28P01"


class TestProviderError:
    def test_carries_odata_fields(self):
        error = ProviderError(
            "Graph API error",
            code="InvalidRequest",
            provider_message="Subscription validation request failed.",
            target="notificationUrl",
            status=400,
        )

        assert error.kind is ErrorKind.PROVIDER
        assert error.code == "InvalidRequest"
        assert error.provider_message == "Subscription validation request failed."
        assert error.target == "notificationUrl"
        assert error.status == 400

    def test_defaults_are_none(self):
        error = ProviderError("incomplete response")

        assert error.code is None
        assert error.target is None
