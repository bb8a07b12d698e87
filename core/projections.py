"""
Pure dashboard projections over persisted entities.

Nothing here is stored. Each function takes the entity list and the
reference date explicitly, so tests and the HTTP layer compute identical
figures for the same inputs.
"""

from collections import Counter
from datetime import date, datetime
from typing import Iterable
from uuid import UUID

from pydantic import BaseModel

from core.models import (
    Application,
    ApplicationState,
    Booking,
    BookingStatus,
    Task,
    TaskStatus,
)

_CLOSED_BOOKING_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


def is_upcoming(booking: Booking, today: date) -> bool:
    """Not completed or cancelled, and dated today or later."""
    return booking.status not in _CLOSED_BOOKING_STATUSES and booking.booking_date >= today


def partition_bookings(
    bookings: Iterable[Booking], today: date
) -> tuple[list[Booking], list[Booking]]:
    """
    Split bookings into (upcoming, past).

    Every booking lands in exactly one of the two lists.
    """
    upcoming: list[Booking] = []
    past: list[Booking] = []
    for booking in bookings:
        (upcoming if is_upcoming(booking, today) else past).append(booking)
    return upcoming, past


def total_earnings(bookings: Iterable[Booking], provider_id: UUID) -> int:
    """Sum of completed booking amounts (cents) where the user is the provider."""
    return sum(
        b.total_amount_cents
        for b in bookings
        if b.provider_id == provider_id and b.status == BookingStatus.COMPLETED
    )


def total_spent(bookings: Iterable[Booking], customer_id: UUID) -> int:
    """Sum of completed booking amounts (cents) where the user is the customer."""
    return sum(
        b.total_amount_cents
        for b in bookings
        if b.customer_id == customer_id and b.status == BookingStatus.COMPLETED
    )


def status_counts(items: Iterable[Booking | Task]) -> dict[str, int]:
    """Count of entities per status value."""
    return dict(Counter(item.status.value for item in items))


def application_state(task: Task, application: Application) -> ApplicationState:
    """
    Derived state of an application.

    The chosen application is accepted. While the task is open every other
    application is pending; once it has left open they are closed.
    """
    if task.assigned_application_id == application.id:
        return ApplicationState.ACCEPTED
    if task.status == TaskStatus.OPEN:
        return ApplicationState.PENDING
    return ApplicationState.CLOSED


def stale_pending(bookings: Iterable[Booking], cutoff: datetime) -> list[Booking]:
    """Pending bookings created before cutoff, oldest first."""
    stale = [
        b for b in bookings
        if b.status == BookingStatus.PENDING and b.created_at < cutoff
    ]
    return sorted(stale, key=lambda b: (b.created_at, str(b.id)))


# =============================================================================
# DASHBOARD SUMMARIES
# =============================================================================


class ProviderDashboard(BaseModel):
    """Figures shown on a provider's dashboard."""

    provider_id: UUID
    upcoming: list[Booking]
    past: list[Booking]
    pending_count: int
    completed_count: int
    total_earnings_cents: int


class CustomerDashboard(BaseModel):
    """Figures shown on a customer's dashboard."""

    customer_id: UUID
    upcoming: list[Booking]
    past: list[Booking]
    completed_count: int
    total_spent_cents: int
    task_status_counts: dict[str, int]


def provider_dashboard(
    provider_id: UUID, bookings: Iterable[Booking], today: date
) -> ProviderDashboard:
    """Project a provider's bookings into dashboard figures."""
    own = [b for b in bookings if b.provider_id == provider_id]
    upcoming, past = partition_bookings(own, today)
    counts = status_counts(own)
    return ProviderDashboard(
        provider_id=provider_id,
        upcoming=upcoming,
        past=past,
        pending_count=counts.get(BookingStatus.PENDING.value, 0),
        completed_count=counts.get(BookingStatus.COMPLETED.value, 0),
        total_earnings_cents=total_earnings(own, provider_id),
    )


def customer_dashboard(
    customer_id: UUID,
    bookings: Iterable[Booking],
    tasks: Iterable[Task],
    today: date,
) -> CustomerDashboard:
    """Project a customer's bookings and tasks into dashboard figures."""
    own = [b for b in bookings if b.customer_id == customer_id]
    upcoming, past = partition_bookings(own, today)
    return CustomerDashboard(
        customer_id=customer_id,
        upcoming=upcoming,
        past=past,
        completed_count=status_counts(own).get(BookingStatus.COMPLETED.value, 0),
        total_spent_cents=total_spent(own, customer_id),
        task_status_counts=status_counts(t for t in tasks if t.customer_id == customer_id),
    )
