"""Tests for AvailabilityService (weekly slots)."""

import pytest
from datetime import time
from uuid import uuid4

from core.exceptions import InvalidTransition, NotFound, NotOwner, OverlapError, SlotInUse
from core.models import BookingCreate, SlotCreate, TimeWindow


def _slot(day, start, end):
    return SlotCreate(day_of_week=day, start_time=start, end_time=end)


@pytest.fixture
def booking_in_slot(booking_service, customer, plumbing, monday_slot, next_monday):
    return booking_service.create_booking(customer, BookingCreate(
        provider_id=plumbing.provider_id,
        offering_id=plumbing.id,
        booking_date=next_monday,
        start_time=time(10),
        end_time=time(11),
        location="12 Elm St",
    ))


class TestAddSlot:

    def test_adds_available_slot(self, availability_service, provider):
        slot = availability_service.add_slot(provider, provider.id, _slot(2, time(8), time(12)))

        assert slot.is_available
        assert slot.day_of_week == 2
        assert slot.removed_at is None

    def test_identical_readd_rejected(self, availability_service, provider, monday_slot):
        with pytest.raises(OverlapError):
            availability_service.add_slot(provider, provider.id, _slot(1, time(9), time(17)))
        assert len(availability_service.slots_for(provider.id, 1)) == 1

    def test_partial_overlap_rejected(self, availability_service, provider, monday_slot):
        with pytest.raises(OverlapError):
            availability_service.add_slot(provider, provider.id, _slot(1, time(16), time(18)))

    def test_touching_slots_allowed(self, availability_service, provider, monday_slot):
        slot = availability_service.add_slot(provider, provider.id, _slot(1, time(17), time(20)))
        assert slot.start_time == time(17)

    def test_other_day_allowed(self, availability_service, provider, monday_slot):
        availability_service.add_slot(provider, provider.id, _slot(2, time(9), time(17)))
        assert len(availability_service.slots_for(provider.id)) == 2

    def test_other_provider_same_window_allowed(self, availability_service, provider_b, monday_slot):
        slot = availability_service.add_slot(provider_b, provider_b.id, _slot(1, time(9), time(17)))
        assert slot.provider_id == provider_b.id

    def test_overlap_with_withdrawn_slot_allowed(self, availability_service, provider, monday_slot):
        availability_service.set_available(provider, monday_slot.id, False)

        slot = availability_service.add_slot(provider, provider.id, _slot(1, time(10), time(12)))
        assert slot.is_available

    def test_cannot_add_for_someone_else(self, availability_service, provider, provider_b):
        with pytest.raises(NotOwner):
            availability_service.add_slot(provider, provider_b.id, _slot(1, time(9), time(10)))

    def test_customer_cannot_add(self, availability_service, customer):
        with pytest.raises(NotOwner):
            availability_service.add_slot(customer, customer.id, _slot(1, time(9), time(10)))

    def test_start_must_precede_end(self):
        with pytest.raises(ValueError):
            _slot(1, time(12), time(12))

    def test_day_out_of_range(self):
        with pytest.raises(ValueError):
            _slot(7, time(9), time(10))


class TestSlotsFor:

    def test_ordered_by_start_time(self, availability_service, provider):
        availability_service.add_slot(provider, provider.id, _slot(1, time(14), time(16)))
        availability_service.add_slot(provider, provider.id, _slot(1, time(8), time(10)))

        slots = availability_service.slots_for(provider.id, 1)
        assert [s.start_time for s in slots] == [time(8), time(14)]

    def test_excludes_removed(self, availability_service, provider, monday_slot):
        availability_service.remove_slot(provider, monday_slot.id)
        assert availability_service.slots_for(provider.id, 1) == []


class TestRemoveSlot:

    def test_soft_removes(self, availability_service, provider, monday_slot):
        removed = availability_service.remove_slot(provider, monday_slot.id)

        assert removed.is_removed
        assert not removed.is_available
        # Still retrievable by id
        assert availability_service.get(monday_slot.id).is_removed

    def test_blocked_by_confirmed_booking(
        self, availability_service, booking_service, provider, monday_slot, booking_in_slot
    ):
        booking_service.accept(provider, booking_in_slot.id)

        with pytest.raises(SlotInUse) as exc_info:
            availability_service.remove_slot(provider, monday_slot.id)
        assert exc_info.value.booking_ids == [booking_in_slot.id]
        assert not availability_service.get(monday_slot.id).is_removed

    def test_blocked_by_pending_booking(
        self, availability_service, provider, monday_slot, booking_in_slot
    ):
        with pytest.raises(SlotInUse):
            availability_service.remove_slot(provider, monday_slot.id)

    def test_allowed_with_only_cancelled_bookings(
        self, availability_service, booking_service, customer, provider,
        monday_slot, booking_in_slot
    ):
        booking_service.cancel(customer, booking_in_slot.id)

        removed = availability_service.remove_slot(provider, monday_slot.id)
        assert removed.is_removed

    def test_booking_on_other_weekday_does_not_block(
        self, availability_service, provider, monday_slot, booking_in_slot
    ):
        tuesday = availability_service.add_slot(provider, provider.id, _slot(2, time(9), time(17)))
        assert availability_service.remove_slot(provider, tuesday.id).is_removed

    def test_removing_twice_is_harmless(self, availability_service, provider, monday_slot):
        first = availability_service.remove_slot(provider, monday_slot.id)
        second = availability_service.remove_slot(provider, monday_slot.id)
        assert second.removed_at == first.removed_at

    def test_only_owner(self, availability_service, provider_b, monday_slot):
        with pytest.raises(NotOwner):
            availability_service.remove_slot(provider_b, monday_slot.id)

    def test_unknown_slot(self, availability_service, provider):
        with pytest.raises(NotFound):
            availability_service.remove_slot(provider, uuid4())


class TestSetAvailable:

    def test_withdraw_keeps_bookings(
        self, availability_service, booking_service, provider, monday_slot, booking_in_slot
    ):
        slot = availability_service.set_available(provider, monday_slot.id, False)

        assert not slot.is_available
        assert booking_service.get(booking_in_slot.id).status.value == "pending"

    def test_reopen_checks_overlap(self, availability_service, provider, monday_slot):
        availability_service.set_available(provider, monday_slot.id, False)
        availability_service.add_slot(provider, provider.id, _slot(1, time(12), time(13)))

        with pytest.raises(OverlapError):
            availability_service.set_available(provider, monday_slot.id, True)

    def test_reopen_without_overlap(self, availability_service, provider, monday_slot):
        availability_service.set_available(provider, monday_slot.id, False)
        slot = availability_service.set_available(provider, monday_slot.id, True)
        assert slot.is_available

    def test_removed_slot_cannot_change(self, availability_service, provider, monday_slot):
        availability_service.remove_slot(provider, monday_slot.id)

        with pytest.raises(InvalidTransition):
            availability_service.set_available(provider, monday_slot.id, True)


class TestBookableWindows:

    def test_whole_slot_when_free(self, availability_service, provider, monday_slot, next_monday):
        windows = availability_service.bookable_windows(provider.id, next_monday)
        assert windows == [TimeWindow(start_time=time(9), end_time=time(17))]

    def test_subtracts_active_bookings(
        self, availability_service, provider, monday_slot, booking_in_slot, next_monday
    ):
        windows = availability_service.bookable_windows(provider.id, next_monday)

        assert windows == [
            TimeWindow(start_time=time(9), end_time=time(10)),
            TimeWindow(start_time=time(11), end_time=time(17)),
        ]

    def test_nothing_on_other_weekday(self, availability_service, provider, monday_slot, today):
        assert availability_service.bookable_windows(provider.id, today) == []

    def test_withdrawn_slot_offers_nothing(
        self, availability_service, provider, monday_slot, next_monday
    ):
        availability_service.set_available(provider, monday_slot.id, False)
        assert availability_service.bookable_windows(provider.id, next_monday) == []
