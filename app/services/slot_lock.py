"""Per-slot serialization and retry of slot transactions."""

import asyncio
import hashlib
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy import BigInteger, func, insert, literal, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConcurrencyConflictException
from app.models.base import utcnow
from app.models.slot_locks import slot_locks
from app.services.slot_keys import SlotKey

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available, unique_violation
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03", "23505"})
RETRYABLE_SQLITE_MESSAGES = ("database is locked", "database table is locked", "unique constraint failed")


class SlotStateConflict(Exception):
    """Slot rows were observed in a state that breaks an invariant."""


def is_retryable_error(exc: DBAPIError) -> bool:
    """Tell storage serialization failures apart from genuine errors."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate in RETRYABLE_SQLSTATES

    message = str(orig).lower()
    if isinstance(exc, IntegrityError):
        return "unique constraint failed" in message
    return any(fragment in message for fragment in RETRYABLE_SQLITE_MESSAGES)


def advisory_lock_id(key: SlotKey) -> int:
    """Stable signed 64-bit id of a slot for ``pg_advisory_xact_lock``."""
    digest = hashlib.blake2b(key.lock_key.encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


async def lock_slots(db: AsyncSession, *keys: SlotKey) -> None:
    """
    Take the lock of every slot in ``keys`` inside the current transaction.

    Keys are locked in sorted order so two transactions touching the same
    pair of slots cannot deadlock. The lock lasts until commit or rollback.

    PostgreSQL uses transaction-scoped advisory locks, which leave nothing
    behind. Other backends bump a row in ``slot_locks``; those rows are one
    per slot ever booked and are never pruned.
    """
    ordered = sorted(set(keys))
    if db.get_bind().dialect.name == "postgresql":
        for key in ordered:
            lock_id = literal(advisory_lock_id(key), BigInteger)
            await db.execute(select(func.pg_advisory_xact_lock(lock_id)))
        return

    for key in ordered:
        result = await db.execute(
            update(slot_locks)
            .where(slot_locks.c.slot_key == key.lock_key)
            .values(version=slot_locks.c.version + 1, updated_at=utcnow())
        )
        if result.rowcount == 0:
            # First use of this slot; a racing creator surfaces as a unique violation
            await db.execute(insert(slot_locks).values(slot_key=key.lock_key, version=1))


async def run_slot_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    operation_name: str,
) -> T:
    """
    Run ``operation`` and commit, retrying the whole unit on serialization failures.

    ``operation`` must take its slot locks first and must not commit.
    Application errors roll back and propagate unchanged.

    Raises:
        ConcurrencyConflictException: If every attempt lost a race
    """
    max_attempts = settings.booking_max_retries

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except SlotStateConflict as e:
            await db.rollback()
            error = str(e)
        except DBAPIError as e:
            await db.rollback()
            if not is_retryable_error(e):
                raise
            error = str(e.orig)
        except (Exception, asyncio.CancelledError):
            await db.rollback()
            raise

        logger.warning(
            "booking_conflict_retry",
            operation=operation_name,
            attempt=attempt,
            max_attempts=max_attempts,
            error=error,
        )
        if attempt < max_attempts:
            await asyncio.sleep(settings.booking_retry_backoff_seconds * attempt)

    logger.error("booking_conflict_exhausted", operation=operation_name, attempts=max_attempts)
    raise ConcurrencyConflictException()
