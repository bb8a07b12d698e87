"""Typed exceptions for marketplace failures.

Every failure a caller can see is one of these. The HTTP layer maps each
class to a fixed error code, so nothing here should be raised as a bare
ValueError once it leaves a service.
"""

from uuid import UUID


class MarketplaceError(Exception):
    """Base class for all marketplace domain errors."""


class NotFound(MarketplaceError):
    """Entity id is unknown."""

    def __init__(self, entity_type: str, entity_id: UUID):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")


class NotOwner(MarketplaceError):
    """Actor lacks rights over the entity."""


class InvalidTransition(MarketplaceError):
    """State change is not legal from the entity's current status."""


class SlotUnavailable(InvalidTransition):
    """Requested booking window is not covered by an available slot."""


class OverlapError(MarketplaceError):
    """Time window collides with existing availability or bookings."""


class SlotInUse(MarketplaceError):
    """
    Slot removal blocked by a pending or confirmed booking.

    The booking must be cancelled or rescheduled first; there is no
    force-remove.
    """

    def __init__(self, slot_id: UUID, booking_ids: list[UUID]):
        self.slot_id = slot_id
        self.booking_ids = booking_ids
        super().__init__(
            f"Slot {slot_id} has {len(booking_ids)} active booking(s) inside it"
        )


class InvalidRate(MarketplaceError):
    """Price or rate is not positive."""


class Conflict(MarketplaceError):
    """
    Entity changed between read and write.

    Callers may re-read and re-validate. Service operations already retry
    once before this reaches them.
    """

    def __init__(self, table: str, entity_id: UUID):
        self.table = table
        self.entity_id = entity_id
        super().__init__(f"Concurrent update on {table} {entity_id}")


class StoreTimeout(MarketplaceError):
    """Backing store did not answer within the configured bound."""
