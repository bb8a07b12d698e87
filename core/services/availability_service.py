"""
Availability service for providers' recurring weekly slots.

Slots are half-open [start, end) time-of-day windows in the provider's own
local time; no timezone conversion happens here. Two available slots of one
provider on the same weekday never overlap. Removal is a soft delete and is
refused while an active booking still sits inside the slot.
"""

import logging
from datetime import date, time
from uuid import UUID, uuid4

from clients.store import RecordStore
from core.audit import AuditLogger, AuditAction
from core.exceptions import InvalidTransition, NotFound, NotOwner, OverlapError, SlotInUse
from core.models import (
    ACTIVE_BOOKING_STATUSES,
    Actor,
    AvailabilitySlot,
    Booking,
    SlotCreate,
    TimeWindow,
)
from core.retry import with_conflict_retry
from utils.timezone import day_of_week, interval_contains, intervals_overlap, now_utc

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Service for provider availability slots."""

    def __init__(self, store: RecordStore, audit: AuditLogger, conflict_retries: int = 1):
        self.store = store
        self.audit = audit
        self.conflict_retries = conflict_retries

    @with_conflict_retry
    def add_slot(self, actor: Actor, provider_id: UUID, data: SlotCreate) -> AvailabilitySlot:
        """
        Add a recurring weekly slot.

        Args:
            actor: Provider adding the slot
            provider_id: Provider who will own the slot
            data: Day and time window

        Returns:
            Created slot, available

        Raises:
            NotOwner: If the actor is not that provider
            OverlapError: If the window intersects another available slot
                on the same day (an identical slot included)
        """
        self._require_provider(actor, provider_id)

        with self.store.atomic():
            self.check_overlap(provider_id, data.day_of_week, data.start_time, data.end_time)
            slot = self._insert(provider_id, data)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="availability_slot",
            entity_id=slot.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")}
        )
        logger.info(
            f"Slot {slot.id} added for provider {provider_id}: "
            f"day {slot.day_of_week} {slot.start_time}-{slot.end_time}"
        )
        return slot

    def get(self, slot_id: UUID) -> AvailabilitySlot:
        """
        Get slot by ID (removed slots included).

        Raises:
            NotFound: If no slot has this id
        """
        row = self.store.get("availability_slots", slot_id)
        if row is None:
            raise NotFound("availability_slot", slot_id)
        return AvailabilitySlot.model_validate(row)

    @with_conflict_retry
    def remove_slot(self, actor: Actor, slot_id: UUID) -> AvailabilitySlot:
        """
        Soft-remove a slot.

        Raises:
            NotOwner: If the actor does not own the slot
            SlotInUse: If a pending or confirmed booking falls inside it
        """
        slot = self.get(slot_id)
        self._require_provider(actor, slot.provider_id)

        if slot.is_removed:
            return slot

        with self.store.atomic():
            blocking = [
                b.id for b in self._active_bookings(slot.provider_id)
                if day_of_week(b.booking_date) == slot.day_of_week
                and intervals_overlap(slot.start_time, slot.end_time, b.start_time, b.end_time)
            ]
            if blocking:
                logger.warning(
                    f"Refused removal of slot {slot_id}: {len(blocking)} active booking(s)"
                )
                raise SlotInUse(slot_id, blocking)

            now = now_utc()
            row = self.store.update(
                "availability_slots",
                slot_id,
                {"is_available": False, "removed_at": now, "updated_at": now},
                expected_version=slot.version,
            )

        removed = AvailabilitySlot.model_validate(row)
        self.audit.log_change(
            actor_id=actor.id,
            entity_type="availability_slot",
            entity_id=slot_id,
            action=AuditAction.UPDATE,
            changes={"removed_at": {"old": None, "new": now.isoformat()}}
        )
        logger.info(f"Slot {slot_id} removed")
        return removed

    @with_conflict_retry
    def set_available(self, actor: Actor, slot_id: UUID, available: bool) -> AvailabilitySlot:
        """
        Withdraw or re-open a slot.

        Withdrawing leaves existing bookings untouched; it only stops new
        bookings from landing in the slot. Re-opening is checked for overlap
        like a fresh add.

        Raises:
            NotOwner: If the actor does not own the slot
            InvalidTransition: If the slot has been removed
            OverlapError: If re-opening would overlap another available slot
        """
        slot = self.get(slot_id)
        self._require_provider(actor, slot.provider_id)

        if slot.is_removed:
            raise InvalidTransition(f"Slot {slot_id} has been removed")
        if slot.is_available == available:
            return slot

        with self.store.atomic():
            if available:
                self.check_overlap(
                    slot.provider_id, slot.day_of_week, slot.start_time, slot.end_time,
                    ignore_id=slot.id,
                )
            row = self.store.update(
                "availability_slots",
                slot_id,
                {"is_available": available, "updated_at": now_utc()},
                expected_version=slot.version,
            )

        updated = AvailabilitySlot.model_validate(row)
        self.audit.log_change(
            actor_id=actor.id,
            entity_type="availability_slot",
            entity_id=slot_id,
            action=AuditAction.UPDATE,
            changes={"is_available": {"old": slot.is_available, "new": available}}
        )
        return updated

    def slots_for(self, provider_id: UUID, day: int | None = None) -> list[AvailabilitySlot]:
        """
        List a provider's slots that have not been removed.

        Args:
            provider_id: Provider UUID
            day: Restrict to one weekday (0 = Sunday), or None for all

        Returns:
            Slots ordered by day, then start time
        """
        filters = {"provider_id": provider_id, "removed_at": None}
        if day is not None:
            filters["day_of_week"] = day

        rows = self.store.list(
            "availability_slots",
            filters=filters,
            order_by=("day_of_week", "start_time", "end_time"),
        )
        return [AvailabilitySlot.model_validate(row) for row in rows]

    def covering_slot(
        self, provider_id: UUID, on_date: date, start: time, end: time
    ) -> AvailabilitySlot | None:
        """Available slot that fully contains [start, end) on that date's weekday."""
        for slot in self.slots_for(provider_id, day_of_week(on_date)):
            if slot.is_available and interval_contains(slot.start_time, slot.end_time, start, end):
                return slot
        return None

    def bookable_windows(self, provider_id: UUID, on_date: date) -> list[TimeWindow]:
        """
        Free windows on a date: available slots minus active bookings.

        Returns:
            Non-empty windows ordered by start time
        """
        taken = sorted(
            (b.start_time, b.end_time)
            for b in self._active_bookings(provider_id, on_date)
        )

        windows: list[TimeWindow] = []
        for slot in self.slots_for(provider_id, day_of_week(on_date)):
            if not slot.is_available:
                continue
            cursor = slot.start_time
            for start, end in taken:
                if end <= cursor or start >= slot.end_time:
                    continue
                if start > cursor:
                    windows.append(TimeWindow(start_time=cursor, end_time=start))
                cursor = max(cursor, end)
            if cursor < slot.end_time:
                windows.append(TimeWindow(start_time=cursor, end_time=slot.end_time))

        return windows

    def insert(self, provider_id: UUID, data: SlotCreate) -> AvailabilitySlot:
        """Write a slot whose overlap checks the caller has already done."""
        return self._insert(provider_id, data)

    def _insert(self, provider_id: UUID, data: SlotCreate) -> AvailabilitySlot:
        now = now_utc()
        row = self.store.create("availability_slots", {
            "id": uuid4(),
            "provider_id": provider_id,
            "day_of_week": data.day_of_week,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "is_available": True,
            "removed_at": None,
            "created_at": now,
            "updated_at": now,
        })
        return AvailabilitySlot.model_validate(row)

    def check_overlap(
        self,
        provider_id: UUID,
        day: int,
        start: time,
        end: time,
        ignore_id: UUID | None = None,
    ) -> None:
        for slot in self.slots_for(provider_id, day):
            if slot.id == ignore_id or not slot.is_available:
                continue
            if intervals_overlap(slot.start_time, slot.end_time, start, end):
                raise OverlapError(
                    f"{start}-{end} overlaps slot {slot.id} "
                    f"({slot.start_time}-{slot.end_time}) on day {day}"
                )

    def _active_bookings(self, provider_id: UUID, on_date: date | None = None) -> list[Booking]:
        filters = {
            "provider_id": provider_id,
            "status": [s.value for s in ACTIVE_BOOKING_STATUSES],
        }
        if on_date is not None:
            filters["booking_date"] = on_date
        return [Booking.model_validate(row) for row in self.store.list("bookings", filters=filters)]

    def _require_provider(self, actor: Actor, provider_id: UUID) -> None:
        if not actor.is_provider or actor.id != provider_id:
            raise NotOwner(f"Only provider {provider_id} can change these slots")
