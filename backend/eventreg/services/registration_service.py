"""
Registration service: admission control, cancellation and capacity stats.

CONCURRENCY STRATEGY: Pessimistic Row Lock
==========================================

Problem:
  Two users try to take the last seat simultaneously.
  Both count 9 registrations out of 10, both insert, both succeed.
  Result: 11 registrations for a 10-seat event.

Solution:
  Every admission runs as one transaction that starts by locking the event row.

  1. SELECT ... FROM events WHERE id = :event_id FOR UPDATE
  2. Reject if the event is missing or its date is before now
  3. SELECT COUNT(*) FROM registrations WHERE event_id = :event_id
  4. Reject if count >= capacity
  5. INSERT INTO registrations (event_id, user_id)
     - unique violation -> already registered
     - foreign key violation -> user does not exist
  6. COMMIT (or ROLLBACK on any rejection)

  Attempts on the same event queue at the row lock and run one at a time;
  attempts on different events never contend. Whoever gets the lock first
  takes the remaining capacity, there is no FIFO guarantee.

  Duplicates are not pre-checked. The (event_id, user_id) unique constraint
  decides, so there is no second check-then-act window to race through.

  There are no retries here. A conflict is a final answer, and retrying an
  internal fault is left to the caller.

Alternative approaches considered:
  - Optimistic locking (version column + compare-and-swap retry loop): higher
    throughput under low contention, but moves retry/backoff into this layer.
  - Denormalized seat counter: faster reads, but a second source of truth
    that cancellation has to keep in sync.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from eventreg.core.exceptions import (
    AppError,
    ConflictError,
    ConflictReason,
    InternalError,
    InvalidStateError,
    InvalidStateReason,
    NotFoundError,
    Resource,
)
from eventreg.core.logging import get_logger
from eventreg.core.metrics import record_cancellation, record_registration, registration_latency
from eventreg.db.base import utcnow
from eventreg.models import Registration
from eventreg.services.interfaces.store import (
    DuplicateRegistration,
    MissingReference,
    RegistrationStore,
    StoreError,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class EventStats:
    total_registrations: int
    remaining_capacity: int
    capacity_used_percentage: str


def compute_stats(capacity: int, registered: int) -> EventStats:
    """Derive seat usage. A zero capacity reports 0.00% instead of dividing by zero."""
    used = registered / capacity * 100 if capacity > 0 else 0
    return EventStats(
        total_registrations=registered,
        remaining_capacity=capacity - registered,
        capacity_used_percentage=f"{used:.2f}%",
    )


class RegistrationService:
    """
    Admission controller for event registrations.

    The store is injected so the same decision logic runs against PostgreSQL,
    SQLite or the in-memory store. `clock` supplies the evaluation instant;
    `timeout` bounds the whole transaction, lock wait included.
    """

    def __init__(
        self,
        store: RegistrationStore,
        clock: Callable[[], datetime] = utcnow,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.clock = clock
        self.timeout = timeout

    async def register(self, event_id: int, user_id: int) -> Registration:
        """
        Admit `user_id` to `event_id` or raise the reason it was refused.

        Raises:
            NotFoundError: event or user does not exist
            InvalidStateError: event date is in the past
            ConflictError: event is full, or the user is already registered
            InternalError: storage fault or timeout; nothing was written
        """
        start = time.perf_counter()
        try:
            # wait_for cancels the attempt on timeout; the transaction
            # context rolls back and releases the event lock on the way out.
            registration = await asyncio.wait_for(self._admit(event_id, user_id), self.timeout)
        except asyncio.TimeoutError as exc:
            record_registration("internal")
            logger.error("registration_timeout", event_id=event_id, user_id=user_id, timeout=self.timeout)
            raise InternalError("Registration timed out, nothing was written") from exc
        except AppError as exc:
            record_registration(exc.reason)
            raise
        finally:
            registration_latency.observe(time.perf_counter() - start)

        record_registration("admitted")
        return registration

    async def _admit(self, event_id: int, user_id: int) -> Registration:
        try:
            async with self.store.transaction() as tx:
                event = await tx.lock_event(event_id)
                if event is None:
                    raise NotFoundError(Resource.EVENT, event_id)

                # Captured once, after the lock, for this attempt
                now = self.clock()
                if event.date < now:
                    logger.info("registration_rejected", event_id=event_id, user_id=user_id, reason="event_expired")
                    raise InvalidStateError(
                        InvalidStateReason.EVENT_EXPIRED, "Cannot register for a past event"
                    )

                registered = await tx.count_registrations(event_id)
                if registered >= event.capacity:
                    logger.info(
                        "registration_rejected",
                        event_id=event_id,
                        user_id=user_id,
                        reason="event_full",
                        capacity=event.capacity,
                    )
                    raise ConflictError(ConflictReason.EVENT_FULL, "Event is full")

                try:
                    registration = await tx.add_registration(event_id, user_id)
                except DuplicateRegistration as exc:
                    logger.info("registration_rejected", event_id=event_id, user_id=user_id, reason="already_registered")
                    raise ConflictError(
                        ConflictReason.ALREADY_REGISTERED, "User is already registered for this event"
                    ) from exc
                except MissingReference as exc:
                    raise NotFoundError(Resource.USER, user_id) from exc
        except StoreError as exc:
            logger.error("registration_failed", event_id=event_id, user_id=user_id, error=str(exc))
            raise InternalError() from exc

        logger.info(
            "registration_admitted",
            registration_id=registration.id,
            event_id=event_id,
            user_id=user_id,
            seats_taken=registered + 1,
            capacity=event.capacity,
        )
        return registration

    async def cancel(self, event_id: int, user_id: int) -> None:
        """
        Delete the registration for the pair.

        Takes no event lock: removing a row can only relieve capacity.
        """
        try:
            async with self.store.transaction() as tx:
                removed = await tx.remove_registration(event_id, user_id)
        except StoreError as exc:
            record_cancellation("error")
            logger.error("cancellation_failed", event_id=event_id, user_id=user_id, error=str(exc))
            raise InternalError("Cancellation could not be completed") from exc

        if not removed:
            record_cancellation("not_found")
            raise NotFoundError(Resource.REGISTRATION)

        record_cancellation("cancelled")
        logger.info("registration_cancelled", event_id=event_id, user_id=user_id)

    async def stats(self, event_id: int) -> EventStats:
        """Capacity usage for an event. A consistent read, may trail in-flight registrations."""
        try:
            async with self.store.transaction() as tx:
                event = await tx.get_event(event_id)
                if event is None:
                    raise NotFoundError(Resource.EVENT, event_id)
                registered = await tx.count_registrations(event_id)
        except StoreError as exc:
            raise InternalError("Event statistics are unavailable") from exc

        return compute_stats(event.capacity, registered)
