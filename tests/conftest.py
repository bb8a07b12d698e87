"""Shared test fixtures for the marketplace test suite."""

from datetime import date, time
from uuid import UUID

import pytest

from clients.identity import InMemoryProfileDirectory
from clients.memory_store import InMemoryStore
from core.audit import AuditLogger
from core.event_bus import EventBus
from core.models import Actor, OfferingUpsert, SlotCreate, UserType


# =============================================================================
# TEST CONSTANTS
# =============================================================================

# Wednesday; day_of_week() == 3
TODAY = date(2025, 6, 11)
# day_of_week() == 1
NEXT_MONDAY = date(2025, 6, 16)
LAST_MONDAY = date(2025, 6, 9)

CUSTOMER_ID = UUID("00000000-0000-0000-0000-000000000001")
CUSTOMER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
PROVIDER_ID = UUID("00000000-0000-0000-0000-00000000000a")
PROVIDER_B_ID = UUID("00000000-0000-0000-0000-00000000000b")

EVENT_NAMES = (
    "TaskPosted", "TaskAssigned", "TaskStarted", "TaskCompleted", "TaskCancelled",
    "BookingCreated", "BookingConfirmed", "BookingCompleted", "BookingCancelled",
)


# =============================================================================
# ACTOR FIXTURES
# =============================================================================


@pytest.fixture
def customer() -> Actor:
    return Actor(id=CUSTOMER_ID, user_type=UserType.CUSTOMER)


@pytest.fixture
def customer_b() -> Actor:
    return Actor(id=CUSTOMER_B_ID, user_type=UserType.CUSTOMER)


@pytest.fixture
def provider() -> Actor:
    return Actor(id=PROVIDER_ID, user_type=UserType.PROVIDER)


@pytest.fixture
def provider_b() -> Actor:
    return Actor(id=PROVIDER_B_ID, user_type=UserType.PROVIDER)


# =============================================================================
# STORE & INFRASTRUCTURE FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return InMemoryStore(timeout_seconds=1.0)


@pytest.fixture
def audit(store):
    return AuditLogger(store)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every event published on the bus, in order."""
    received = []
    for name in EVENT_NAMES:
        event_bus.subscribe(name, received.append)
    return received


@pytest.fixture
def profiles():
    return InMemoryProfileDirectory()


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def task_service(store, audit, event_bus):
    from core.services.task_service import TaskService
    return TaskService(store, audit, event_bus)


@pytest.fixture
def availability_service(store, audit):
    from core.services.availability_service import AvailabilityService
    return AvailabilityService(store, audit)


@pytest.fixture
def catalog_service(store, audit):
    from core.services.catalog_service import CatalogService
    return CatalogService(store, audit)


@pytest.fixture
def booking_service(store, audit, event_bus, availability_service, catalog_service):
    from core.services.booking_service import BookingService
    return BookingService(
        store, audit, event_bus, availability_service, catalog_service,
        clock=lambda: TODAY,
    )


@pytest.fixture
def onboarding_service(store, audit, catalog_service, availability_service):
    from core.services.onboarding_service import OnboardingService
    return OnboardingService(store, audit, catalog_service, availability_service)


@pytest.fixture
def search_engine(store, profiles):
    from core.search import SearchEngine
    return SearchEngine(store, profiles)


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def plumbing(catalog_service, provider):
    """Provider's active plumbing offering at $35.00/h."""
    return catalog_service.upsert_offering(
        provider, provider.id,
        OfferingUpsert(service_id="plumbing", hourly_rate_cents=3500,
                       description="Leaks, taps and pipes", category_id="home"),
    )


@pytest.fixture
def monday_slot(availability_service, provider):
    """Provider available Mondays 09:00-17:00."""
    return availability_service.add_slot(
        provider, provider.id,
        SlotCreate(day_of_week=1, start_time=time(9), end_time=time(17)),
    )


# =============================================================================
# DATE FIXTURES
# =============================================================================


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def next_monday() -> date:
    return NEXT_MONDAY


@pytest.fixture
def last_monday() -> date:
    return LAST_MONDAY
