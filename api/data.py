"""GET /api/data: read endpoints for search and dashboards."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.exceptions import NotOwner
from core.models import DateWindow, SearchQuery, SortKey
from core.projections import application_state, customer_dashboard, provider_dashboard


def _search_query(
    q: str | None,
    category_id: str | None,
    location: str | None,
    date_from: date | None,
    date_to: date | None,
    sort: SortKey,
) -> SearchQuery:
    window = None
    if date_from is not None or date_to is not None:
        if date_from is None or date_to is None:
            raise ValueError("'date_from' and 'date_to' must be given together")
        window = DateWindow(start=date_from, end=date_to)
    return SearchQuery(
        free_text=q,
        category_id=category_id,
        location=location,
        date_window=window,
        sort_key=sort,
    )


def _respond(request: Request, data):
    return success_response(
        data, getattr(request.state, "request_id", None)
    ).model_dump(mode="json")


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    search = services["search"]
    task_svc = services["task"]
    booking_svc = services["booking"]
    availability_svc = services["availability"]

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @router.get("/data/tasks")
    async def search_tasks(
        request: Request,
        q: str | None = Query(None),
        category_id: str | None = Query(None),
        location: str | None = Query(None),
        date_from: date | None = Query(None),
        date_to: date | None = Query(None),
        sort: SortKey = Query(SortKey.NEWEST),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        query = _search_query(q, category_id, location, date_from, date_to, sort)
        tasks = search.search_tasks(query).window(offset, limit)
        return _respond(request, [t.model_dump(mode="json") for t in tasks])

    @router.get("/data/providers")
    async def search_providers(
        request: Request,
        q: str | None = Query(None),
        category_id: str | None = Query(None),
        location: str | None = Query(None),
        date_from: date | None = Query(None),
        date_to: date | None = Query(None),
        sort: SortKey = Query(SortKey.RATING),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        query = _search_query(q, category_id, location, date_from, date_to, sort)
        matches = search.search_providers(query).window(offset, limit)
        return _respond(request, [m.model_dump(mode="json") for m in matches])

    # -------------------------------------------------------------------------
    # Task detail
    # -------------------------------------------------------------------------

    @router.get("/data/tasks/{task_id}/applications")
    async def task_applications(request: Request, task_id: UUID):
        actor = request.state.actor
        task = task_svc.get(task_id)
        if task.customer_id != actor.id:
            raise NotOwner(f"Task {task_id} belongs to another customer")

        data = []
        for application in task_svc.list_applications(task_id):
            row = application.model_dump(mode="json")
            row["state"] = application_state(task, application).value
            data.append(row)
        return _respond(request, data)

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    @router.get("/data/providers/{provider_id}/slots")
    async def provider_slots(
        request: Request,
        provider_id: UUID,
        day: int | None = Query(None, ge=0, le=6),
    ):
        slots = availability_svc.slots_for(provider_id, day)
        return _respond(request, [s.model_dump(mode="json") for s in slots])

    @router.get("/data/providers/{provider_id}/windows")
    async def provider_windows(request: Request, provider_id: UUID, on: date = Query(...)):
        windows = availability_svc.bookable_windows(provider_id, on)
        return _respond(request, [w.model_dump(mode="json") for w in windows])

    # -------------------------------------------------------------------------
    # Dashboards
    # -------------------------------------------------------------------------

    @router.get("/data/dashboard/provider")
    async def dashboard_provider(request: Request):
        actor = request.state.actor
        if not actor.is_provider:
            raise NotOwner("Provider dashboard is only available to providers")

        bookings = booking_svc.list_for_provider(actor.id)
        dashboard = provider_dashboard(actor.id, bookings, booking_svc.clock())
        return _respond(request, dashboard.model_dump(mode="json"))

    @router.get("/data/dashboard/customer")
    async def dashboard_customer(request: Request):
        actor = request.state.actor
        if not actor.is_customer:
            raise NotOwner("Customer dashboard is only available to customers")

        bookings = booking_svc.list_for_customer(actor.id)
        tasks = task_svc.list_for_customer(actor.id, limit=None)
        dashboard = customer_dashboard(actor.id, bookings, tasks, booking_svc.clock())
        return _respond(request, dashboard.model_dump(mode="json"))

    return router
