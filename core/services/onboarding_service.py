"""
Provider onboarding as a single batch commit.

A new provider collects offerings and weekly slots in a draft, then commits
them together. Every row is validated before anything is written, and the
writes happen inside one store.atomic() block, so a provider is never left
half onboarded.
"""

import logging
from dataclasses import dataclass, field
from datetime import time
from uuid import UUID

from clients.store import RecordStore
from core.audit import AuditLogger, AuditAction
from core.exceptions import InvalidTransition, NotOwner, OverlapError
from core.models import Actor, AvailabilitySlot, OfferingUpsert, ServiceOffering, SlotCreate
from core.services.availability_service import AvailabilityService
from core.services.catalog_service import CatalogService, validate_rate
from utils.timezone import intervals_overlap

logger = logging.getLogger(__name__)


@dataclass
class OnboardingDraft:
    """Offerings and slots collected before commit. Nothing is stored yet."""

    provider: Actor
    offerings: list[OfferingUpsert] = field(default_factory=list)
    slots: list[SlotCreate] = field(default_factory=list)

    def add_offering(
        self,
        service_id: str,
        hourly_rate_cents: int,
        description: str = "",
        category_id: str | None = None,
    ) -> "OnboardingDraft":
        self.offerings.append(OfferingUpsert(
            service_id=service_id,
            hourly_rate_cents=hourly_rate_cents,
            description=description,
            category_id=category_id,
        ))
        return self

    def add_slot(self, day_of_week: int, start_time: time, end_time: time) -> "OnboardingDraft":
        """Raises ValueError (pydantic) if start_time is not before end_time."""
        self.slots.append(SlotCreate(
            day_of_week=day_of_week, start_time=start_time, end_time=end_time
        ))
        return self


@dataclass
class OnboardingResult:
    offerings: list[ServiceOffering]
    slots: list[AvailabilitySlot]


class OnboardingService:
    """Validates and commits onboarding drafts."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditLogger,
        catalog: CatalogService,
        availability: AvailabilityService,
    ):
        self.store = store
        self.audit = audit
        self.catalog = catalog
        self.availability = availability

    def draft(self, actor: Actor) -> OnboardingDraft:
        """
        Start an empty draft for a provider.

        Raises:
            NotOwner: If the actor is not a provider
        """
        if not actor.is_provider:
            raise NotOwner("Only providers can onboard")
        return OnboardingDraft(provider=actor)

    def commit(self, draft: OnboardingDraft) -> OnboardingResult:
        """
        Write every row of the draft, or none of them.

        Args:
            draft: Draft built through draft()

        Returns:
            Stored offerings and slots, in draft order

        Raises:
            NotOwner: If the draft's actor is not a provider
            InvalidTransition: If the draft is empty, or names a service twice
                or one the provider already offers
            InvalidRate: If any rate is not positive
            OverlapError: If slots overlap each other or stored slots
        """
        actor = draft.provider
        if not actor.is_provider:
            raise NotOwner("Only providers can onboard")
        if not draft.offerings and not draft.slots:
            raise InvalidTransition("Onboarding draft is empty")

        for offering in draft.offerings:
            validate_rate(offering.hourly_rate_cents)
        self._check_services(actor.id, draft.offerings)
        self._check_draft_slots(draft.slots)

        with self.store.atomic():
            for slot in draft.slots:
                self.availability.check_overlap(
                    actor.id, slot.day_of_week, slot.start_time, slot.end_time
                )
            offerings = [self.catalog.insert(actor.id, o) for o in draft.offerings]
            slots = [self.availability.insert(actor.id, s) for s in draft.slots]

            for offering in offerings:
                self.audit.log_change(
                    actor_id=actor.id,
                    entity_type="service_offering",
                    entity_id=offering.id,
                    action=AuditAction.CREATE,
                    changes={"created": offering.model_dump(mode="json")}
                )
            for slot in slots:
                self.audit.log_change(
                    actor_id=actor.id,
                    entity_type="availability_slot",
                    entity_id=slot.id,
                    action=AuditAction.CREATE,
                    changes={"created": slot.model_dump(mode="json")}
                )

        logger.info(
            f"Provider {actor.id} onboarded with {len(offerings)} offering(s) "
            f"and {len(slots)} slot(s)"
        )
        return OnboardingResult(offerings=offerings, slots=slots)

    def _check_services(self, provider_id: UUID, offerings: list[OfferingUpsert]) -> None:
        existing = {o.service_id for o in self.catalog.offerings_for(provider_id)}
        seen: set[str] = set()
        for offering in offerings:
            if offering.service_id in seen:
                raise InvalidTransition(f"Service {offering.service_id} appears twice in the draft")
            if offering.service_id in existing:
                raise InvalidTransition(
                    f"Provider already offers {offering.service_id}; use upsert_offering"
                )
            seen.add(offering.service_id)

    @staticmethod
    def _check_draft_slots(slots: list[SlotCreate]) -> None:
        for i, a in enumerate(slots):
            for b in slots[i + 1:]:
                if a.day_of_week == b.day_of_week and intervals_overlap(
                    a.start_time, a.end_time, b.start_time, b.end_time
                ):
                    raise OverlapError(
                        f"Draft slots {a.start_time}-{a.end_time} and "
                        f"{b.start_time}-{b.end_time} overlap on day {a.day_of_week}"
                    )
