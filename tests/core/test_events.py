"""Tests for domain event models."""

from dataclasses import FrozenInstanceError
from uuid import UUID, uuid4

import pytest

from core.events import (
    BookingConfirmed,
    BookingEvent,
    MarketplaceEvent,
    TaskAssigned,
    TaskEvent,
    TaskPosted,
)


class TestEventBase:

    def test_event_id_is_unique_uuid_string(self):
        first, second = TaskPosted(), TaskPosted()

        UUID(first.event_id)
        assert first.event_id != second.event_id

    def test_occurred_at_is_utc(self):
        event = BookingConfirmed()
        assert event.occurred_at.utcoffset().total_seconds() == 0

    def test_events_are_frozen(self):
        event = TaskAssigned(actor_id=uuid4())
        with pytest.raises(FrozenInstanceError):
            event.actor_id = uuid4()

    def test_payload_kept_by_identity(self):
        payload = object()
        assert TaskPosted(task=payload).task is payload
        assert BookingConfirmed(booking=payload).booking is payload

    def test_hierarchy(self):
        assert issubclass(TaskPosted, TaskEvent)
        assert issubclass(BookingConfirmed, BookingEvent)
        assert issubclass(TaskEvent, MarketplaceEvent)

    def test_keyword_only(self):
        with pytest.raises(TypeError):
            TaskPosted("positional")
