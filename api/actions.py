"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    Actor,
    BookingCreate,
    OfferingUpsert,
    SlotCreate,
    TaskCreate,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "task": TaskHandler(services["task"]),
        "booking": BookingHandler(services["booking"]),
        "availability": AvailabilityHandler(services["availability"]),
        "catalog": CatalogHandler(services["catalog"]),
        "onboarding": OnboardingHandler(services["onboarding"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(request.state.actor, dict(body.data))
        return success_response(
            result, getattr(request.state, "request_id", None)
        ).model_dump(mode="json")

    return router


def _uuid(data: dict, key: str) -> UUID:
    if key not in data:
        raise ValueError(f"'{key}' is required")
    return UUID(str(data[key]))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class TaskHandler:
    ALLOWED_ACTIONS = {"post", "apply", "assign", "start", "complete", "cancel"}

    def __init__(self, service):
        self.service = service

    def _handle_post(self, actor: Actor, data: dict):
        task = self.service.post_task(actor, TaskCreate(**data))
        return task.model_dump(mode="json")

    def _handle_apply(self, actor: Actor, data: dict):
        application = self.service.apply(actor, _uuid(data, "task_id"), data.get("message"))
        return application.model_dump(mode="json")

    def _handle_assign(self, actor: Actor, data: dict):
        task = self.service.assign_provider(
            actor, _uuid(data, "id"), _uuid(data, "application_id")
        )
        return task.model_dump(mode="json")

    def _handle_start(self, actor: Actor, data: dict):
        task = self.service.start_work(actor, _uuid(data, "id"))
        return task.model_dump(mode="json")

    def _handle_complete(self, actor: Actor, data: dict):
        task = self.service.complete(actor, _uuid(data, "id"))
        return task.model_dump(mode="json")

    def _handle_cancel(self, actor: Actor, data: dict):
        task = self.service.cancel(actor, _uuid(data, "id"))
        return task.model_dump(mode="json")


class BookingHandler:
    ALLOWED_ACTIONS = {"create", "accept", "complete", "cancel"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, actor: Actor, data: dict):
        booking = self.service.create_booking(actor, BookingCreate(**data))
        return booking.model_dump(mode="json")

    def _handle_accept(self, actor: Actor, data: dict):
        booking = self.service.accept(actor, _uuid(data, "id"))
        return booking.model_dump(mode="json")

    def _handle_complete(self, actor: Actor, data: dict):
        booking = self.service.complete(actor, _uuid(data, "id"))
        return booking.model_dump(mode="json")

    def _handle_cancel(self, actor: Actor, data: dict):
        booking = self.service.cancel(actor, _uuid(data, "id"))
        return booking.model_dump(mode="json")


class AvailabilityHandler:
    ALLOWED_ACTIONS = {"add_slot", "remove_slot", "set_available"}

    def __init__(self, service):
        self.service = service

    def _handle_add_slot(self, actor: Actor, data: dict):
        provider_id = _uuid(data, "provider_id") if "provider_id" in data else actor.id
        data.pop("provider_id", None)
        slot = self.service.add_slot(actor, provider_id, SlotCreate(**data))
        return slot.model_dump(mode="json")

    def _handle_remove_slot(self, actor: Actor, data: dict):
        slot = self.service.remove_slot(actor, _uuid(data, "id"))
        return slot.model_dump(mode="json")

    def _handle_set_available(self, actor: Actor, data: dict):
        if "available" not in data:
            raise ValueError("'available' is required")
        slot = self.service.set_available(actor, _uuid(data, "id"), bool(data["available"]))
        return slot.model_dump(mode="json")


class CatalogHandler:
    ALLOWED_ACTIONS = {"upsert", "set_active"}

    def __init__(self, service):
        self.service = service

    def _handle_upsert(self, actor: Actor, data: dict):
        provider_id = _uuid(data, "provider_id") if "provider_id" in data else actor.id
        data.pop("provider_id", None)
        offering = self.service.upsert_offering(actor, provider_id, OfferingUpsert(**data))
        return offering.model_dump(mode="json")

    def _handle_set_active(self, actor: Actor, data: dict):
        if "active" not in data:
            raise ValueError("'active' is required")
        offering = self.service.set_active(actor, _uuid(data, "id"), bool(data["active"]))
        return offering.model_dump(mode="json")


class OnboardingHandler:
    ALLOWED_ACTIONS = {"commit"}

    def __init__(self, service):
        self.service = service

    def _handle_commit(self, actor: Actor, data: dict):
        draft = self.service.draft(actor)
        for raw in data.get("offerings", []):
            o = OfferingUpsert(**raw)
            draft.add_offering(o.service_id, o.hourly_rate_cents, o.description, o.category_id)
        for raw in data.get("slots", []):
            s = SlotCreate(**raw)
            draft.add_slot(s.day_of_week, s.start_time, s.end_time)
        result = self.service.commit(draft)
        return {
            "offerings": [o.model_dump(mode="json") for o in result.offerings],
            "slots": [s.model_dump(mode="json") for s in result.slots],
        }
