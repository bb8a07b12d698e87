"""
Application wiring.

    uvicorn main:create_app --factory

Uses PostgreSQL when MARKETPLACE_DATABASE_URL is set, otherwise the
in-memory store. Identity and profiles come from outside the core; the
defaults here are the in-memory versions.
"""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, RequestIDMiddleware
from clients.identity import (
    IdentityProvider,
    InMemoryProfileDirectory,
    ProfileDirectory,
    StaticTokenIdentity,
)
from clients.memory_store import InMemoryStore
from clients.postgres_client import PostgresClient
from clients.postgres_store import PostgresStore
from clients.store import RecordStore
from core.audit import AuditLogger
from core.config import MarketplaceConfig, load_config
from core.event_bus import EventBus
from core.events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    MarketplaceEvent,
    TaskAssigned,
    TaskCancelled,
    TaskCompleted,
    TaskPosted,
    TaskStarted,
)
from core.search import SearchEngine
from core.services.availability_service import AvailabilityService
from core.services.booking_service import BookingService
from core.services.catalog_service import CatalogService
from core.services.onboarding_service import OnboardingService
from core.services.task_service import TaskService
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

LOGGED_EVENTS = (
    TaskPosted, TaskAssigned, TaskStarted, TaskCompleted, TaskCancelled,
    BookingCreated, BookingConfirmed, BookingCompleted, BookingCancelled,
)


def log_event(event: MarketplaceEvent) -> None:
    """Record every published lifecycle event at INFO."""
    subject = getattr(event, "task", None) or getattr(event, "booking", None)
    logger.info(
        f"{event.__class__.__name__} {getattr(subject, 'id', None)} "
        f"by actor {event.actor_id} (event {event.event_id})"
    )


def create_store(config: MarketplaceConfig) -> RecordStore:
    if config.database_url:
        postgres = PostgresClient(
            config.database_url,
            timeout_seconds=config.store_timeout_seconds,
            min_connections=config.pool_min_connections,
            max_connections=config.pool_max_connections,
        )
        return PostgresStore(postgres)

    logger.warning("No database_url configured; using the in-memory store")
    return InMemoryStore(timeout_seconds=config.store_timeout_seconds)


def build_services(
    store: RecordStore,
    profiles: ProfileDirectory,
    config: MarketplaceConfig,
    event_bus: EventBus | None = None,
) -> dict:
    """Construct every service over one store. Keys match the action domains."""
    audit = AuditLogger(store)
    bus = event_bus or EventBus()
    for event_type in LOGGED_EVENTS:
        bus.subscribe(event_type.__name__, log_event)
    retries = config.conflict_retries

    availability = AvailabilityService(store, audit, conflict_retries=retries)
    catalog = CatalogService(store, audit, conflict_retries=retries)

    return {
        "task": TaskService(store, audit, bus, conflict_retries=retries),
        "booking": BookingService(
            store, audit, bus, availability, catalog, conflict_retries=retries
        ),
        "availability": availability,
        "catalog": catalog,
        "onboarding": OnboardingService(store, audit, catalog, availability),
        "search": SearchEngine(
            store,
            profiles,
            default_task_price_cents=config.default_task_price_cents,
            default_rating=config.default_rating,
        ),
        "event_bus": bus,
    }


def create_app(
    config: MarketplaceConfig | None = None,
    identity: IdentityProvider | None = None,
    profiles: ProfileDirectory | None = None,
    services: dict | None = None,
) -> FastAPI:
    """FastAPI app with actor middleware, error handlers, and data/actions routes."""
    config = config or load_config()
    setup_logging(config.log_level, config.log_format)

    if services is None:
        services = build_services(
            create_store(config), profiles or InMemoryProfileDirectory(), config
        )

    app = FastAPI(title="Local Services Marketplace")
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ActorMiddleware, identity=identity or StaticTokenIdentity())
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app

