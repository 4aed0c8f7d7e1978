"""
Subscription Store

Durable persistence of mail subscriptions in PostgreSQL.

Each call acquires its own session (and pooled connection) and releases it
on every exit path, including errors and cancellation. Driver errors are
translated by SQLSTATE:

    23505 unique_violation       -> ConflictError
    23503 foreign_key_violation  -> NotFoundError (user not in directory)
    23514 check_violation        -> InvalidArgumentError
    08xxx connection exceptions  -> TransientError
    53xxx insufficient resources -> TransientError
    anything else                -> StoreError
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mailsub.core.cancellation import CancellationToken, run_cancellable
from mailsub.core.database import get_session_factory
from mailsub.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    MailSubscriptionError,
    NotFoundError,
    StoreError,
    TransientError,
)
from mailsub.models.contracts.subscriptions import MailSubscriptionRecord
from mailsub.repositories.subscriptions import MailSubscriptionRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

SQLSTATE_UNIQUE_VIOLATION = "23505"
SQLSTATE_FOREIGN_KEY_VIOLATION = "23503"
SQLSTATE_CHECK_VIOLATION = "23514"
SQLSTATE_CONNECTION_EXCEPTION_CLASS = "08"
# too_many_connections, out_of_memory, disk_full, ...
SQLSTATE_INSUFFICIENT_RESOURCES_CLASS = "53"
# admin_shutdown, crash_shutdown, cannot_connect_now
SQLSTATE_SHUTDOWN_CODES = frozenset({"57P01", "57P02", "57P03"})


def extract_sqlstate(error: BaseException) -> str | None:
    """
    Find the PostgreSQL SQLSTATE on a (possibly wrapped) driver error.

    asyncpg and psycopg expose ``sqlstate``; psycopg2 exposes ``pgcode``.
    SQLAlchemy wraps the driver error in ``orig``.
    """
    orig = getattr(error, "orig", None)
    candidates = [error, orig, getattr(orig, "__cause__", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def _is_connection_failure(error: BaseException, sqlstate: str | None) -> bool:
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    if sqlstate is not None:
        return (
            sqlstate.startswith(SQLSTATE_CONNECTION_EXCEPTION_CLASS)
            or sqlstate.startswith(SQLSTATE_INSUFFICIENT_RESOURCES_CLASS)
            or sqlstate in SQLSTATE_SHUTDOWN_CODES
        )
    return isinstance(
        error,
        (
            sa_exc.DisconnectionError,
            sa_exc.InterfaceError,
            sa_exc.OperationalError,
            sa_exc.TimeoutError,
            OSError,
        ),
    )


def translate_store_error(
    error: BaseException,
    operation: str,
    subscription_id: str | None = None,
    user_id: str | None = None,
) -> MailSubscriptionError:
    """Map a database error to exactly one error kind."""
    sqlstate = extract_sqlstate(error)
    constraint = getattr(getattr(error, "orig", None), "constraint_name", None)
    context = {"operation": operation, "subscription_id": subscription_id, "sqlstate": sqlstate}

    if sqlstate == SQLSTATE_UNIQUE_VIOLATION:
        logger.warning(
            f"⚠️ Duplicate subscription detected for SubscriptionId: {subscription_id}. "
            "ON CONFLICT clause should have handled this - check database constraints.",
            extra=context,
        )
        return ConflictError(
            f"Subscription with ID '{subscription_id}' already exists in the database. "
            "This may indicate a race condition or database constraint issue."
        )

    if sqlstate == SQLSTATE_FOREIGN_KEY_VIOLATION:
        logger.error(
            f"❌ Foreign key constraint violation for UserId: {user_id}. "
            f"User does not exist in the directory. ConstraintName: {constraint}",
            extra=context,
        )
        return NotFoundError(
            f"User '{user_id}' does not exist in the directory. "
            "Please ensure the user is created before creating subscriptions."
        )

    if sqlstate == SQLSTATE_CHECK_VIOLATION:
        logger.error(
            f"❌ Check constraint violation for SubscriptionId: {subscription_id}. "
            f"ConstraintName: {constraint}",
            extra=context,
        )
        return InvalidArgumentError(
            f"Subscription data violates database constraint '{constraint}'."
        )

    if _is_connection_failure(error, sqlstate):
        logger.error(
            f"❌ Database connection error in {operation}. SQL State: {sqlstate}, "
            f"ErrorType: {type(error).__name__}",
            extra=context,
        )
        return TransientError(
            "Database connection error. Please check database connectivity and retry."
        )

    logger.error(
        f"❌ PostgreSQL error in {operation}. SQL State: {sqlstate}, Message: {error}",
        extra=context,
    )
    return StoreError(
        f"Database error in {operation}: {error}. SQL State: {sqlstate}",
        sqlstate=sqlstate,
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_for_save(record: MailSubscriptionRecord) -> None:
    """
    Check preconditions before any I/O.

    Raises:
        InvalidArgumentError: empty ids or an expiration not in the future
    """
    if record is None:
        raise InvalidArgumentError("subscription cannot be None.")
    if not record.subscription_id or not record.subscription_id.strip():
        raise InvalidArgumentError("SubscriptionId cannot be empty.")
    if not record.user_id or not record.user_id.strip():
        raise InvalidArgumentError("UserId cannot be empty.")
    if _as_utc(record.subscription_expiration_time) <= datetime.now(timezone.utc):
        raise InvalidArgumentError("Expiration time must be in the future.")


class SubscriptionStore:
    """
    Persistence gateway for mail subscriptions.

    Args:
        session_factory: Async session factory (defaults to the process-wide one)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self._session_factory = session_factory if session_factory is not None else get_session_factory()

    async def save(
        self,
        record: MailSubscriptionRecord,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        """
        Insert the subscription or, if it exists, update its renewal fields.

        Raises:
            InvalidArgumentError: Precondition failed or check constraint violated
            NotFoundError: user_id not present in the directory
            ConflictError: Unique violation survived the upsert (race)
            TransientError: Connection-level failure
            StoreError: Any other database failure
            OperationCancelledError: cancel_token fired
        """
        validate_for_save(record)

        async def _save(repo: MailSubscriptionRepository) -> int:
            return await repo.upsert(record)

        rows_affected = await self._execute(
            "save",
            _save,
            cancel_token,
            write=True,
            subscription_id=record.subscription_id,
            user_id=record.user_id,
        )

        if rows_affected == 0:
            logger.warning(
                f"⚠️ No rows affected for SubscriptionId: {record.subscription_id}. "
                "This may indicate a database issue or constraint violation."
            )
        else:
            logger.info(
                f"✅ Subscription persisted successfully. UserId: {record.user_id}, "
                f"SubscriptionId: {record.subscription_id}, "
                f"ExpiresAt: {record.subscription_expiration_time.isoformat()}, "
                f"RowsAffected: {rows_affected}"
            )

    async def get_by_id(
        self,
        subscription_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> MailSubscriptionRecord | None:
        """Point lookup. Returns None when the subscription is unknown."""

        async def _get(repo: MailSubscriptionRepository) -> MailSubscriptionRecord | None:
            row = await repo.get_by_subscription_id(subscription_id)
            return MailSubscriptionRecord.model_validate(row) if row is not None else None

        return await self._execute(
            "get_by_id", _get, cancel_token, subscription_id=subscription_id
        )

    async def list(
        self,
        user_id: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> list[MailSubscriptionRecord]:
        """List all subscriptions, or those of one user."""

        async def _list(repo: MailSubscriptionRepository) -> list[MailSubscriptionRecord]:
            rows = await repo.list_subscriptions(user_id=user_id)
            return [MailSubscriptionRecord.model_validate(row) for row in rows]

        records = await self._execute("list", _list, cancel_token, user_id=user_id)
        logger.debug(f"Listed {len(records)} subscriptions (user filter: {user_id or 'none'})")
        return records

    async def delete(
        self,
        subscription_id: str,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """Delete the row if present. Returns whether a row was removed."""

        async def _delete(repo: MailSubscriptionRepository) -> bool:
            return await repo.delete_by_subscription_id(subscription_id)

        removed = await self._execute(
            "delete", _delete, cancel_token, write=True, subscription_id=subscription_id
        )
        if removed:
            logger.info(f"🗑️ Subscription {subscription_id} removed from database.")
        else:
            logger.info(f"Subscription {subscription_id} was not in the database.")
        return removed

    async def get_user_id_by_email(
        self,
        email: str,
        cancel_token: CancellationToken | None = None,
    ) -> str | None:
        """Resolve an email (UPN or mail) to a directory user id."""
        if not email or not email.strip():
            raise InvalidArgumentError("email cannot be empty.")

        async def _lookup(repo: MailSubscriptionRepository) -> str | None:
            return await repo.get_user_id_by_email(email)

        user_id = await self._execute("get_user_id_by_email", _lookup, cancel_token)
        if user_id is None:
            logger.warning(f"⚠️ User not found for email: {email}")
        else:
            logger.debug(f"✅ Resolved email {email} to UserId: {user_id}")
        return user_id

    async def _execute(
        self,
        operation: str,
        work: Callable[[MailSubscriptionRepository], Awaitable[T]],
        cancel_token: CancellationToken | None,
        write: bool = False,
        **context: Any,
    ) -> T:
        """Run ``work`` in a scoped session, translating database errors."""

        async def _run() -> T:
            async with self._session_factory() as session:
                repo = MailSubscriptionRepository(session)
                if not write:
                    return await work(repo)
                async with session.begin():
                    return await work(repo)

        try:
            return await run_cancellable(_run(), cancel_token, operation)
        except asyncio.CancelledError:
            logger.warning(f"⚠️ {operation} was cancelled ({context})")
            raise
        except (sa_exc.SQLAlchemyError, OSError) as e:
            raise translate_store_error(
                e,
                operation,
                subscription_id=context.get("subscription_id"),
                user_id=context.get("user_id"),
            ) from e
