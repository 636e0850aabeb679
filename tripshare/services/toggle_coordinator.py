"""
TripShare Backend — Like Toggle Coordinator
=============================================

What:  Flips a user's like on a post and keeps the post's `likes` counter
       equal to the number of like rows, under any amount of concurrency.
Why:   The naive sequence "does a like exist? → insert/delete it → bump the
       counter" is a check-then-act race. Two concurrent requests can both
       see "not liked", both insert, and both increment, or a delete and a
       decrement can land without each other.
How:   Each toggle runs as a two-state machine per (post, user) key:

    ┌──────────────┐  create → CREATED: +1         ┌──────────┐
    │ NOT_ENGAGED  │ ─────────────────────────────▶ │ ENGAGED  │
    │              │ ◀───────────────────────────── │          │
    └──────────────┘  remove → REMOVED: -1          └──────────┘

    Phase 1, observe: a short read finds the post (NotFoundError if missing)
             and the caller's current state.
    Phase 2, transition: one write transaction performs the conditional
             like write and, only if it actually changed a row, the relative
             counter adjustment. Commit or roll back as a unit.

    Races resolve inside phase 2. A create that loses to a concurrent create
    reports ALREADY_EXISTS; no increment happens and the caller gets the
    already-liked state. A remove that finds nothing reports NOT_PRESENT;
    no decrement happens. Neither case is an error for the caller, because
    the requested end state holds.

Concurrency model:
    No in-process locks. Serialization per key comes from the database:
    the unique index on (post_id, user_id) and the row lock taken by the
    relative counter UPDATE (PostgreSQL), or the database write lock
    (SQLite). Different keys never wait on each other beyond the brief
    counter row lock when they share a post.

    The transition is shielded from caller cancellation: once started it
    commits or rolls back on its own even if the client disconnects.

Retries:
    A detected transaction conflict (serialization failure, deadlock,
    SQLite lock timeout) is retried once on a fresh transaction via tenacity.
    If that also conflicts, the caller gets TransientStoreError.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from tripshare.config import settings
from tripshare.exceptions import (
    DatabaseError,
    InvariantViolationError,
    NotFoundError,
    TransientStoreError,
    TripShareError,
)
from tripshare.services.content_item_store import ContentItemStore, content_item_store
from tripshare.services.membership_store import (
    CreateOutcome,
    MembershipStore,
    RemoveOutcome,
    membership_store,
)

logger = logging.getLogger(__name__)

# SQLSTATEs for serialization_failure and deadlock_detected
_CONFLICT_SQLSTATES = {"40001", "40P01"}
_FOREIGN_KEY_VIOLATION = "23503"
_SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


class EngagementState(str, Enum):
    NOT_ENGAGED = "not_engaged"
    ENGAGED = "engaged"


@dataclass(frozen=True)
class ToggleResult:
    count: int
    state: EngagementState

    @property
    def is_engaged(self) -> bool:
        return self.state is EngagementState.ENGAGED


class TransactionConflict(Exception):
    """A transaction lost to a concurrent one and may be retried once."""


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def is_transaction_conflict(exc: DBAPIError) -> bool:
    if _sqlstate(exc) in _CONFLICT_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(text in message for text in _SQLITE_LOCK_MESSAGES)


class ToggleCoordinator:
    """
    The only component allowed to change a like row and the counter together.

    Holds no per-request state; every call opens its own sessions from the
    factory so a conflicting attempt can be discarded and retried.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        memberships: Optional[MembershipStore] = None,
        items: Optional[ContentItemStore] = None,
        retry_attempts: Optional[int] = None,
        retry_wait: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._memberships = memberships or membership_store
        self._items = items or content_item_store
        self.retry_attempts = (
            settings.toggle_retry_attempts if retry_attempts is None else retry_attempts
        )
        self.retry_wait = settings.toggle_retry_wait if retry_wait is None else retry_wait

    # ── Public operations ─────────────────────────────────────────────────

    async def toggle(self, item_id: str, user_id: str) -> ToggleResult:
        """
        Flip the caller's like on the post.

        Returns the new like count and whether the caller now likes the post.

        Raises:
            NotFoundError: the post does not exist
            TransientStoreError: storage unavailable, or conflicting after one retry
            InvariantViolationError: the counter disagrees with the like rows
            DatabaseError: any other persistence failure
        """
        return await self._with_retry(self._toggle_once, item_id, user_id)

    async def engage(self, item_id: str, user_id: str) -> ToggleResult:
        """Make sure the caller likes the post. Idempotent."""
        return await self._with_retry(self._engage_once, item_id, user_id)

    async def disengage(self, item_id: str, user_id: str) -> ToggleResult:
        """Make sure the caller does not like the post. Idempotent."""
        return await self._with_retry(self._disengage_once, item_id, user_id)

    async def engagement(self, item_id: str, user_id: str) -> ToggleResult:
        """
        Read the caller's current state and audit the post's counter.

        Raises InvariantViolationError if the stored counter differs from
        the number of like rows.
        """
        return await self._guard(self._read_engagement, item_id, user_id)

    # ── State machine ─────────────────────────────────────────────────────

    async def _read_engagement(self, item_id: str, user_id: str) -> ToggleResult:
        async with self._session_factory() as session:
            stored, actual = await self._items.count_with_cardinality(session, item_id)
            if stored != actual:
                raise InvariantViolationError(
                    context={"item_id": item_id, "stored": stored, "actual": actual},
                )
            engaged = await self._memberships.exists(session, item_id, user_id)
        state = EngagementState.ENGAGED if engaged else EngagementState.NOT_ENGAGED
        return ToggleResult(count=stored, state=state)

    async def _toggle_once(self, item_id: str, user_id: str) -> ToggleResult:
        observed = await self._observe(item_id, user_id)
        if observed is EngagementState.NOT_ENGAGED:
            return await self._shielded(self._transition_to_engaged(item_id, user_id))
        return await self._shielded(self._transition_to_not_engaged(item_id, user_id))

    async def _engage_once(self, item_id: str, user_id: str) -> ToggleResult:
        return await self._shielded(self._transition_to_engaged(item_id, user_id))

    async def _disengage_once(self, item_id: str, user_id: str) -> ToggleResult:
        return await self._shielded(self._transition_to_not_engaged(item_id, user_id))

    async def _observe(self, item_id: str, user_id: str) -> EngagementState:
        async with self._session_factory() as session:
            await self._items.get(session, item_id)
            engaged = await self._memberships.exists(session, item_id, user_id)
        return EngagementState.ENGAGED if engaged else EngagementState.NOT_ENGAGED

    async def _transition_to_engaged(self, item_id: str, user_id: str) -> ToggleResult:
        # The like write comes first in the transaction: on SQLite a read
        # before the first write would hold a shared lock and could deadlock
        # against another writer instead of waiting for it.
        async with self._session_factory() as session:
            async with session.begin():
                outcome = await self._memberships.create(session, item_id, user_id)
                if outcome is CreateOutcome.CREATED:
                    count = await self._items.adjust_count(session, item_id, +1)
                    logger.info("Post %s liked by %s (likes=%d)", item_id, user_id, count)
                else:
                    count = await self._items.read_count(session, item_id)
                    logger.info(
                        "Post %s already liked by %s; concurrent like absorbed", item_id, user_id
                    )
        return ToggleResult(count=count, state=EngagementState.ENGAGED)

    async def _transition_to_not_engaged(self, item_id: str, user_id: str) -> ToggleResult:
        async with self._session_factory() as session:
            async with session.begin():
                outcome = await self._memberships.remove(session, item_id, user_id)
                if outcome is RemoveOutcome.REMOVED:
                    count = await self._items.adjust_count(session, item_id, -1)
                    logger.info("Post %s unliked by %s (likes=%d)", item_id, user_id, count)
                else:
                    count = await self._items.read_count(session, item_id)
                    logger.info(
                        "Post %s not liked by %s; concurrent unlike absorbed", item_id, user_id
                    )
        return ToggleResult(count=count, state=EngagementState.NOT_ENGAGED)

    # ── Execution policy ──────────────────────────────────────────────────

    @staticmethod
    async def _shielded(transition: Awaitable[ToggleResult]) -> ToggleResult:
        return await asyncio.shield(transition)

    async def _with_retry(
        self,
        unit: Callable[[str, str], Awaitable[ToggleResult]],
        item_id: str,
        user_id: str,
    ) -> ToggleResult:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransactionConflict),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry_wait,
                max=self.retry_wait * 4,
                jitter=self.retry_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return await retrying(self._guard, unit, item_id, user_id)
        except TransactionConflict as e:
            logger.error(
                "Like toggle for post=%s user=%s still conflicting after %d attempts",
                item_id,
                user_id,
                self.retry_attempts,
            )
            raise TransientStoreError(
                context={"item_id": item_id, "attempts": self.retry_attempts},
            ) from e

    async def _guard(
        self,
        unit: Callable[[str, str], Awaitable[ToggleResult]],
        item_id: str,
        user_id: str,
    ) -> ToggleResult:
        """Translate driver errors into the application's error taxonomy."""
        try:
            return await unit(item_id, user_id)
        except TripShareError:
            raise
        except IntegrityError as e:
            # A like referencing a post that vanished mid-transaction
            if _sqlstate(e) == _FOREIGN_KEY_VIOLATION:
                raise NotFoundError(resource="post", resource_id=item_id) from e
            logger.error("Integrity error on post %s: %s", item_id, e.orig)
            raise DatabaseError(context={"item_id": item_id, "error_type": type(e).__name__}) from e
        except DBAPIError as e:
            if is_transaction_conflict(e):
                logger.warning("Transaction conflict on post %s: %s", item_id, e.orig)
                raise TransactionConflict(str(e.orig)) from e
            if e.connection_invalidated or isinstance(e.orig, OSError):
                raise TransientStoreError(context={"item_id": item_id}) from e
            logger.error("Database error on post %s: %s", item_id, e.orig, exc_info=True)
            raise DatabaseError(context={"item_id": item_id, "error_type": type(e).__name__}) from e
        except SQLAlchemyError as e:
            logger.error("Database error on post %s: %s", item_id, str(e), exc_info=True)
            raise DatabaseError(context={"item_id": item_id, "error_type": type(e).__name__}) from e
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("Storage unreachable for post %s: %s", item_id, str(e))
            raise TransientStoreError(context={"item_id": item_id}) from e
