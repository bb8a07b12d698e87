"""
Lifecycle transition tables.

Task:    open -> assigned -> in_progress -> completed
         open | assigned | in_progress -> cancelled
Booking: pending -> confirmed -> completed
         pending | confirmed -> cancelled

Completed and cancelled are terminal for both.
"""

from enum import Enum
from typing import Mapping
from uuid import UUID

from core.exceptions import InvalidTransition
from core.models import BookingStatus, TaskStatus

TASK_TRANSITIONS: Mapping[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.OPEN: frozenset({TaskStatus.ASSIGNED, TaskStatus.CANCELLED}),
    TaskStatus.ASSIGNED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}

BOOKING_TRANSITIONS: Mapping[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

_TABLES: Mapping[type, Mapping] = {
    TaskStatus: TASK_TRANSITIONS,
    BookingStatus: BOOKING_TRANSITIONS,
}


def can_transition(current: Enum, target: Enum) -> bool:
    """Whether target is a legal successor of current."""
    table = _TABLES[type(current)]
    return target in table[current]


def is_terminal(status: Enum) -> bool:
    """Whether no transition leaves this status."""
    return not _TABLES[type(status)][status]


def ensure_transition(entity_type: str, entity_id: UUID, current: Enum, target: Enum) -> None:
    """
    Validate a status change.

    Raises:
        InvalidTransition: If target is not reachable from current in one step
    """
    if not can_transition(current, target):
        raise InvalidTransition(
            f"{entity_type.capitalize()} {entity_id} cannot move from "
            f"{current.value} to {target.value}"
        )
