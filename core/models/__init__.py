"""Core domain models."""

from core.models.actor import Actor, UserType
from core.models.task import Task, TaskCreate, TaskStatus, PricingType, Application, ApplicationState
from core.models.booking import Booking, BookingCreate, BookingStatus, ACTIVE_BOOKING_STATUSES
from core.models.offering import ServiceOffering, OfferingUpsert
from core.models.availability import AvailabilitySlot, SlotCreate, TimeWindow
from core.models.profile import ProviderProfile
from core.models.search import SearchQuery, SortKey, DateWindow, ProviderMatch

__all__ = [
    # Actor
    "Actor", "UserType",
    # Task
    "Task", "TaskCreate", "TaskStatus", "PricingType", "Application", "ApplicationState",
    # Booking
    "Booking", "BookingCreate", "BookingStatus", "ACTIVE_BOOKING_STATUSES",
    # ServiceOffering
    "ServiceOffering", "OfferingUpsert",
    # Availability
    "AvailabilitySlot", "SlotCreate", "TimeWindow",
    # Profile
    "ProviderProfile",
    # Search
    "SearchQuery", "SortKey", "DateWindow", "ProviderMatch",
]
