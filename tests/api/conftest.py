"""API test fixtures - bearer-authenticated TestClients over in-memory services."""

import logging
from datetime import date, time

import pytest
from starlette.testclient import TestClient

from clients.identity import InMemoryProfileDirectory, StaticTokenIdentity
from clients.memory_store import InMemoryStore
from core.config import MarketplaceConfig
from core.models import OfferingUpsert, ProviderProfile, SlotCreate
from main import build_services, create_app

# Wednesday
API_TODAY = date(2025, 6, 11)

CUSTOMER_TOKEN = "customer-token"
CUSTOMER_B_TOKEN = "customer-b-token"
PROVIDER_TOKEN = "provider-token"


# =============================================================================
# SERVICES
# =============================================================================


@pytest.fixture
def api_store():
    return InMemoryStore(timeout_seconds=1.0)


@pytest.fixture
def api_profiles(provider):
    return InMemoryProfileDirectory([
        ProviderProfile(id=provider.id, display_name="Pat the Plumber",
                        location="Brooklyn, NY", rating=4.8, review_count=12),
    ])


@pytest.fixture
def services(api_store, api_profiles):
    config = MarketplaceConfig(log_format="text")
    services = build_services(api_store, api_profiles, config)
    services["booking"].clock = lambda: API_TODAY
    return services


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def identity(customer, customer_b, provider):
    return StaticTokenIdentity({
        CUSTOMER_TOKEN: customer,
        CUSTOMER_B_TOKEN: customer_b,
        PROVIDER_TOKEN: provider,
    })


@pytest.fixture
def app(identity, services):
    """FastAPI app with actor middleware, error handlers, and data/actions routes."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level

    yield create_app(
        config=MarketplaceConfig(log_format="text"),
        identity=identity,
        services=services,
    )

    root.handlers[:] = handlers
    root.setLevel(level)


def _client(app, token=None):
    c = TestClient(app, raise_server_exceptions=False)
    if token:
        c.headers["Authorization"] = f"Bearer {token}"
    return c


@pytest.fixture
def client(app):
    """Client authenticated as the default customer."""
    return _client(app, CUSTOMER_TOKEN)


@pytest.fixture
def customer_b_client(app):
    return _client(app, CUSTOMER_B_TOKEN)


@pytest.fixture
def provider_client(app):
    return _client(app, PROVIDER_TOKEN)


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no Authorization header)."""
    return _client(app)


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def api_offering(services, provider):
    return services["catalog"].upsert_offering(
        provider, provider.id,
        OfferingUpsert(service_id="plumbing", hourly_rate_cents=3500,
                       description="Leaks and taps", category_id="home"),
    )


@pytest.fixture
def api_monday_slot(services, provider):
    return services["availability"].add_slot(
        provider, provider.id,
        SlotCreate(day_of_week=1, start_time=time(9), end_time=time(17)),
    )
