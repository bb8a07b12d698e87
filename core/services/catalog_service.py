"""
Catalog service for provider service offerings.

Each provider has at most one offering per service. Offerings are never
deleted; deactivating one removes it from provider search while keeping it
attached to historical bookings.
"""

import logging
from uuid import UUID, uuid4

from clients.store import RecordStore
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import InvalidRate, NotFound, NotOwner
from core.models import Actor, OfferingUpsert, ServiceOffering
from core.retry import with_conflict_retry
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def validate_rate(hourly_rate_cents: int) -> None:
    """
    Raises:
        InvalidRate: If the rate is zero or negative
    """
    if hourly_rate_cents <= 0:
        raise InvalidRate(f"Hourly rate must be positive, got {hourly_rate_cents} cents")


class CatalogService:
    """Service for provider offering operations."""

    def __init__(self, store: RecordStore, audit: AuditLogger, conflict_retries: int = 1):
        self.store = store
        self.audit = audit
        self.conflict_retries = conflict_retries

    @with_conflict_retry
    def upsert_offering(
        self, actor: Actor, provider_id: UUID, data: OfferingUpsert
    ) -> ServiceOffering:
        """
        Create or replace a provider's offering of a service.

        An existing offering for the same service keeps its id and is
        re-activated with the new rate and description.

        Args:
            actor: Provider making the change
            provider_id: Provider who owns the offering
            data: Service, rate and description

        Returns:
            The stored offering

        Raises:
            NotOwner: If the actor is not that provider
            InvalidRate: If hourly_rate_cents <= 0
        """
        self._require_provider(actor, provider_id)
        validate_rate(data.hourly_rate_cents)

        with self.store.atomic():
            existing = self._find(provider_id, data.service_id)
            if existing is None:
                offering = self.insert(provider_id, data)
            else:
                row = self.store.update(
                    "service_offerings",
                    existing.id,
                    {
                        "hourly_rate_cents": data.hourly_rate_cents,
                        "description": data.description,
                        "category_id": data.category_id,
                        "is_active": True,
                        "updated_at": now_utc(),
                    },
                    expected_version=existing.version,
                )
                offering = ServiceOffering.model_validate(row)

        if existing is None:
            self.audit.log_change(
                actor_id=actor.id,
                entity_type="service_offering",
                entity_id=offering.id,
                action=AuditAction.CREATE,
                changes={"created": data.model_dump(mode="json")}
            )
            logger.info(f"Offering {offering.id} created for provider {provider_id}")
            return offering

        changes = compute_changes(
            existing.model_dump(mode="json"),
            offering.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                actor_id=actor.id,
                entity_type="service_offering",
                entity_id=offering.id,
                action=AuditAction.UPDATE,
                changes=changes
            )

        return offering

    def get(self, offering_id: UUID) -> ServiceOffering:
        """
        Get offering by ID.

        Raises:
            NotFound: If no offering has this id
        """
        row = self.store.get("service_offerings", offering_id)
        if row is None:
            raise NotFound("service_offering", offering_id)
        return ServiceOffering.model_validate(row)

    @with_conflict_retry
    def set_active(self, actor: Actor, offering_id: UUID, active: bool) -> ServiceOffering:
        """
        Activate or deactivate an offering.

        Raises:
            NotOwner: If the actor does not own the offering
        """
        current = self.get(offering_id)
        self._require_provider(actor, current.provider_id)

        if current.is_active == active:
            return current

        row = self.store.update(
            "service_offerings",
            offering_id,
            {"is_active": active, "updated_at": now_utc()},
            expected_version=current.version,
        )
        updated = ServiceOffering.model_validate(row)

        self.audit.log_change(
            actor_id=actor.id,
            entity_type="service_offering",
            entity_id=offering_id,
            action=AuditAction.UPDATE,
            changes={"is_active": {"old": current.is_active, "new": active}}
        )
        logger.info(f"Offering {offering_id} {'activated' if active else 'deactivated'}")

        return updated

    def offerings_for(self, provider_id: UUID) -> list[ServiceOffering]:
        """
        List all of a provider's offerings, active or not.

        Returns:
            Offerings ordered by service id
        """
        rows = self.store.list(
            "service_offerings",
            filters={"provider_id": provider_id},
            order_by=("service_id",),
        )
        return [ServiceOffering.model_validate(row) for row in rows]

    def active_offerings(self) -> list[ServiceOffering]:
        """
        List every active offering; the candidate set for provider search.

        Returns:
            Active offerings ordered by id
        """
        rows = self.store.list(
            "service_offerings", filters={"is_active": True}, order_by=("id",)
        )
        return [ServiceOffering.model_validate(row) for row in rows]

    def insert(self, provider_id: UUID, data: OfferingUpsert) -> ServiceOffering:
        """Write a new offering. Callers validate rate and uniqueness first."""
        now = now_utc()
        row = self.store.create("service_offerings", {
            "id": uuid4(),
            "provider_id": provider_id,
            "service_id": data.service_id,
            "category_id": data.category_id,
            "hourly_rate_cents": data.hourly_rate_cents,
            "description": data.description,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        })
        return ServiceOffering.model_validate(row)

    def _find(self, provider_id: UUID, service_id: str) -> ServiceOffering | None:
        rows = self.store.list(
            "service_offerings",
            filters={"provider_id": provider_id, "service_id": service_id},
        )
        return ServiceOffering.model_validate(rows[0]) if rows else None

    def _require_provider(self, actor: Actor, provider_id: UUID) -> None:
        if not actor.is_provider or actor.id != provider_id:
            raise NotOwner(f"Only provider {provider_id} can change these offerings")
