"""
Domain events for the marketplace.

Immutable event objects that represent lifecycle changes. Services publish
what happened; collaborators outside the core (notification delivery,
pending-booking expiry, analytics) subscribe without the publisher knowing
who is listening.

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class MarketplaceEvent:
    """Base class for all marketplace domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)
    actor_id: UUID | None = None


# =============================================================================
# TASK EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class TaskEvent(MarketplaceEvent):
    """Events related to task lifecycle."""
    task: Any = None  # Task; Any avoids a circular import


@dataclass(frozen=True, kw_only=True)
class TaskPosted(TaskEvent):
    """A customer posted a new open task."""


@dataclass(frozen=True, kw_only=True)
class TaskAssigned(TaskEvent):
    """Customer picked an application; other applications are now closed."""


@dataclass(frozen=True, kw_only=True)
class TaskStarted(TaskEvent):
    """Work on an assigned task began."""


@dataclass(frozen=True, kw_only=True)
class TaskCompleted(TaskEvent):
    """Customer marked the task done."""


@dataclass(frozen=True, kw_only=True)
class TaskCancelled(TaskEvent):
    """Customer cancelled the task."""


# =============================================================================
# BOOKING EVENTS
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class BookingEvent(MarketplaceEvent):
    """Events related to booking lifecycle."""
    booking: Any = None


@dataclass(frozen=True, kw_only=True)
class BookingCreated(BookingEvent):
    """A customer requested a booking; awaiting provider acceptance."""


@dataclass(frozen=True, kw_only=True)
class BookingConfirmed(BookingEvent):
    """Provider accepted a pending booking."""


@dataclass(frozen=True, kw_only=True)
class BookingCompleted(BookingEvent):
    """Booking was marked completed on or after its date."""


@dataclass(frozen=True, kw_only=True)
class BookingCancelled(BookingEvent):
    """Either party cancelled the booking."""
