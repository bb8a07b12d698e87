"""
Booking service for scheduled provider engagements.

Handles the booking lifecycle: create (pending), accept (confirmed),
complete, cancel. A booking must fit inside one of the provider's available
slots when it is made and must not collide with another active booking.
Amounts are fixed at creation and never recomputed.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable
from uuid import UUID, uuid4

from clients.store import RecordStore
from core.audit import AuditLogger, AuditAction
from core.event_bus import EventBus
from core.events import BookingCancelled, BookingCompleted, BookingConfirmed, BookingCreated
from core.exceptions import (
    InvalidRate,
    InvalidTransition,
    NotFound,
    NotOwner,
    OverlapError,
    SlotUnavailable,
)
from core.models import (
    ACTIVE_BOOKING_STATUSES,
    Actor,
    Booking,
    BookingCreate,
    BookingStatus,
    PricingType,
    Task,
    TaskStatus,
)
from core.projections import stale_pending
from core.retry import with_conflict_retry
from core.services.availability_service import AvailabilityService
from core.services.catalog_service import CatalogService
from core.transitions import ensure_transition
from utils.timezone import duration_between, intervals_overlap, now_utc, today_utc

logger = logging.getLogger(__name__)

_BOOKING_EVENTS = {
    BookingStatus.CONFIRMED: BookingConfirmed,
    BookingStatus.COMPLETED: BookingCompleted,
    BookingStatus.CANCELLED: BookingCancelled,
}


def hourly_amount_cents(hourly_rate_cents: int, start: time, end: time) -> int:
    """
    Rate x duration, rounded half-up to the cent.

    Seconds count, so 3500 cents/h for 10:00:30-11:00:00 is 3470.83 -> 3471.

    Example: 3500 cents/h for 1h20m -> 4666.67 -> 4667
    """
    span = duration_between(start, end)
    seconds = Decimal(span.days * 86400 + span.seconds) + Decimal(span.microseconds) / Decimal(1_000_000)
    exact = Decimal(hourly_rate_cents) * seconds / Decimal(3600)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BookingService:
    """Service for booking operations."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditLogger,
        event_bus: EventBus,
        availability: AvailabilityService,
        catalog: CatalogService,
        conflict_retries: int = 1,
        clock: Callable[[], date] = today_utc,
    ):
        self.store = store
        self.audit = audit
        self.event_bus = event_bus
        self.availability = availability
        self.catalog = catalog
        self.conflict_retries = conflict_retries
        self.clock = clock

    @with_conflict_retry
    def create_booking(
        self, actor: Actor, data: BookingCreate, today: date | None = None
    ) -> Booking:
        """
        Book a provider's offering for a window on a date.

        Args:
            actor: Customer making the booking
            data: Provider, offering, date, window and pricing
            today: Reference date (defaults to the service clock)

        Returns:
            Created booking in PENDING status

        Raises:
            NotOwner: If the actor is not a customer, or books themselves
            NotFound: If the offering (or linked task) is unknown
            InvalidRate: If a fixed price is missing or not positive, or an
                hourly window is too short to cost at least one cent
            SlotUnavailable: If the date is past, the offering is inactive,
                or no available slot covers the window
            OverlapError: If the window collides with an active booking
        """
        if not actor.is_customer:
            raise NotOwner("Only customers can create bookings")
        if actor.id == data.provider_id:
            raise NotOwner("Cannot book yourself")

        today = today or self.clock()
        if data.booking_date < today:
            raise SlotUnavailable(f"Booking date {data.booking_date} is in the past")

        offering = self.catalog.get(data.offering_id)
        if offering.provider_id != data.provider_id:
            raise NotFound("service_offering", data.offering_id)
        if not offering.is_active:
            raise SlotUnavailable(f"Offering {offering.id} is not active")

        if data.task_id is not None:
            self._check_task_link(actor, data)

        if data.pricing_type == PricingType.HOURLY:
            amount = hourly_amount_cents(offering.hourly_rate_cents, data.start_time, data.end_time)
            if amount <= 0:
                raise InvalidRate(
                    f"{data.start_time}-{data.end_time} at {offering.hourly_rate_cents} cents/h "
                    f"rounds to {amount} cents"
                )
        else:
            if data.agreed_price_cents is None or data.agreed_price_cents <= 0:
                raise InvalidRate("Fixed-price bookings need a positive agreed price")
            amount = data.agreed_price_cents

        with self.store.atomic():
            slot = self.availability.covering_slot(
                data.provider_id, data.booking_date, data.start_time, data.end_time
            )
            if slot is None:
                raise SlotUnavailable(
                    f"Provider {data.provider_id} has no available slot covering "
                    f"{data.booking_date} {data.start_time}-{data.end_time}"
                )

            for other in self._active_on(data.provider_id, data.booking_date):
                if intervals_overlap(other.start_time, other.end_time, data.start_time, data.end_time):
                    raise OverlapError(
                        f"{data.start_time}-{data.end_time} collides with booking {other.id}"
                    )

            now = now_utc()
            row = self.store.create("bookings", {
                "id": uuid4(),
                "customer_id": actor.id,
                "provider_id": data.provider_id,
                "offering_id": offering.id,
                "service_id": offering.service_id,
                "task_id": data.task_id,
                "booking_date": data.booking_date,
                "start_time": data.start_time,
                "end_time": data.end_time,
                "location": data.location,
                "status": BookingStatus.PENDING.value,
                "pricing_type": data.pricing_type.value,
                "total_amount_cents": amount,
                "description": data.description,
                "created_at": now,
                "updated_at": now,
            })

        booking = Booking.model_validate(row)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="booking",
            entity_id=booking.id,
            action=AuditAction.CREATE,
            changes={"created": booking.model_dump(mode="json")}
        )
        logger.info(
            f"Booking {booking.id} created: provider {booking.provider_id} "
            f"on {booking.booking_date} for {amount} cents"
        )
        self.event_bus.publish(BookingCreated(booking=booking, actor_id=actor.id))

        return booking

    def get(self, booking_id: UUID) -> Booking:
        """
        Get booking by ID.

        Raises:
            NotFound: If no booking has this id
        """
        row = self.store.get("bookings", booking_id)
        if row is None:
            raise NotFound("booking", booking_id)
        return Booking.model_validate(row)

    @with_conflict_retry
    def accept(self, actor: Actor, booking_id: UUID) -> Booking:
        """
        Provider accepts a pending booking.

        Raises:
            NotOwner: If the actor is not the booked provider
            InvalidTransition: If the booking is not pending
        """
        booking = self.get(booking_id)
        if actor.id != booking.provider_id:
            raise NotOwner(f"Only the provider can accept booking {booking_id}")

        return self._transition(actor, booking, BookingStatus.CONFIRMED)

    @with_conflict_retry
    def complete(self, actor: Actor, booking_id: UUID, today: date | None = None) -> Booking:
        """
        Mark a confirmed booking completed, on or after its date.

        Raises:
            NotOwner: If the actor is neither party
            InvalidTransition: If not confirmed, or the date has not arrived
        """
        booking = self.get(booking_id)
        self._require_party(actor, booking)

        today = today or self.clock()
        if booking.booking_date > today:
            raise InvalidTransition(
                f"Booking {booking_id} is on {booking.booking_date} and cannot complete before then"
            )

        return self._transition(actor, booking, BookingStatus.COMPLETED)

    @with_conflict_retry
    def cancel(self, actor: Actor, booking_id: UUID) -> Booking:
        """
        Either party cancels a pending or confirmed booking.

        Raises:
            NotOwner: If the actor is neither party
            InvalidTransition: If the booking is already completed or cancelled
        """
        booking = self.get(booking_id)
        self._require_party(actor, booking)

        return self._transition(actor, booking, BookingStatus.CANCELLED)

    def list_for_provider(self, provider_id: UUID, limit: int | None = None) -> list[Booking]:
        """List a provider's bookings, latest date first."""
        rows = self.store.list(
            "bookings",
            filters={"provider_id": provider_id},
            order_by=("-booking_date", "-start_time", "id"),
            limit=limit,
        )
        return [Booking.model_validate(row) for row in rows]

    def list_for_customer(self, customer_id: UUID, limit: int | None = None) -> list[Booking]:
        """List a customer's bookings, latest date first."""
        rows = self.store.list(
            "bookings",
            filters={"customer_id": customer_id},
            order_by=("-booking_date", "-start_time", "id"),
            limit=limit,
        )
        return [Booking.model_validate(row) for row in rows]

    def stale_pending(
        self, older_than: datetime, provider_id: UUID | None = None
    ) -> list[Booking]:
        """
        Pending bookings created before a cutoff.

        The core never expires bookings itself; an external job reads this
        and decides what to cancel.
        """
        filters = {"status": BookingStatus.PENDING.value}
        if provider_id is not None:
            filters["provider_id"] = provider_id
        rows = self.store.list("bookings", filters=filters)
        return stale_pending((Booking.model_validate(r) for r in rows), older_than)

    def _active_on(self, provider_id: UUID, on_date: date) -> list[Booking]:
        rows = self.store.list(
            "bookings",
            filters={
                "provider_id": provider_id,
                "booking_date": on_date,
                "status": [s.value for s in ACTIVE_BOOKING_STATUSES],
            },
        )
        return [Booking.model_validate(row) for row in rows]

    def _check_task_link(self, actor: Actor, data: BookingCreate) -> None:
        row = self.store.get("tasks", data.task_id)
        if row is None:
            raise NotFound("task", data.task_id)
        task = Task.model_validate(row)
        if task.customer_id != actor.id:
            raise NotOwner(f"Task {task.id} belongs to another customer")
        if task.status not in (TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS):
            raise InvalidTransition(f"Task {task.id} is {task.status.value}, not assigned")
        if task.assigned_provider_id != data.provider_id:
            raise InvalidTransition(f"Task {task.id} is assigned to a different provider")

    def _require_party(self, actor: Actor, booking: Booking) -> None:
        if not booking.involves(actor.id):
            logger.warning(f"Actor {actor.id} rejected on booking {booking.id}: not a party")
            raise NotOwner(f"Actor is not a party to booking {booking.id}")

    def _transition(self, actor: Actor, booking: Booking, target: BookingStatus) -> Booking:
        ensure_transition("booking", booking.id, booking.status, target)

        row = self.store.update(
            "bookings",
            booking.id,
            {"status": target.value, "updated_at": now_utc()},
            expected_version=booking.version,
        )
        updated = Booking.model_validate(row)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="booking",
            entity_id=booking.id,
            action=AuditAction.TRANSITION,
            changes={"status": {"old": booking.status.value, "new": target.value}}
        )
        logger.info(f"Booking {booking.id} moved {booking.status.value} -> {target.value}")
        self.event_bus.publish(_BOOKING_EVENTS[target](booking=updated, actor_id=actor.id))

        return updated
