"""Tests for GET /api/data read endpoints."""

import pytest
from datetime import time

from core.models import BookingCreate, TaskCreate


def _post(services, actor, title, **kwargs):
    fields = {
        "description": "See photos",
        "category_id": "home",
        "location": "Brooklyn, NY",
    }
    fields.update(kwargs)
    return services["task"].post_task(actor, TaskCreate(title=title, **fields))


@pytest.fixture
def booking(services, customer, api_offering, api_monday_slot):
    from datetime import date

    return services["booking"].create_booking(customer, BookingCreate(
        provider_id=api_offering.provider_id,
        offering_id=api_offering.id,
        booking_date=date(2025, 6, 16),
        start_time=time(10),
        end_time=time(12),
        location="12 Elm St",
    ))


# =============================================================================
# SEARCH
# =============================================================================


class TestTaskSearch:

    def test_requires_auth(self, unauthed_client):
        assert unauthed_client.get("/api/data/tasks").status_code == 401

    def test_free_text(self, client, services, customer):
        match = _post(services, customer, "Assemble IKEA furniture")
        _post(services, customer, "Paint fence")

        response = client.get("/api/data/tasks", params={"q": "ikea"})

        assert response.status_code == 200
        assert [t["id"] for t in response.json()["data"]] == [str(match.id)]

    def test_sort_and_window(self, client, services, customer):
        for cents in (8000, 4500, 6000):
            _post(services, customer, f"Job {cents}", budget_max_cents=cents)

        response = client.get("/api/data/tasks", params={
            "sort": "price_low", "limit": 2, "offset": 1,
        })

        assert [t["budget_max_cents"] for t in response.json()["data"]] == [6000, 8000]

    def test_bad_sort_key(self, client):
        response = client.get("/api/data/tasks", params={"sort": "cheapest"})
        assert response.status_code == 422

    def test_limit_bounds(self, client):
        assert client.get("/api/data/tasks", params={"limit": 0}).status_code == 422
        assert client.get("/api/data/tasks", params={"limit": 101}).status_code == 422

    def test_half_date_window_rejected(self, client):
        response = client.get("/api/data/tasks", params={"date_from": "2025-06-01"})

        assert response.status_code == 400
        assert "together" in response.json()["error"]["message"]

    def test_reversed_date_window_rejected(self, client):
        response = client.get("/api/data/tasks", params={
            "date_from": "2025-06-10", "date_to": "2025-06-01",
        })
        assert response.status_code == 422


class TestProviderSearch:

    def test_returns_offering_with_profile(self, client, api_offering):
        response = client.get("/api/data/providers", params={"q": "plumber"})

        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["offering"]["id"] == str(api_offering.id)
        assert data[0]["profile"]["display_name"] == "Pat the Plumber"

    def test_date_window_uses_weekly_slots(self, client, api_offering, api_monday_slot):
        # Tuesday through Thursday: no Monday inside
        response = client.get("/api/data/providers", params={
            "date_from": "2025-06-17", "date_to": "2025-06-19",
        })
        assert response.json()["data"] == []

        response = client.get("/api/data/providers", params={
            "date_from": "2025-06-15", "date_to": "2025-06-17",
        })
        assert len(response.json()["data"]) == 1


# =============================================================================
# TASK APPLICATIONS
# =============================================================================


class TestTaskApplications:

    def test_owner_sees_states(self, client, services, customer, provider):
        task = _post(services, customer, "Hang mirror")
        application = services["task"].apply(provider, task.id, "Can do today")

        data = client.get(f"/api/data/tasks/{task.id}/applications").json()["data"]
        assert [a["state"] for a in data] == ["pending"]

        services["task"].assign_provider(customer, task.id, application.id)

        data = client.get(f"/api/data/tasks/{task.id}/applications").json()["data"]
        assert [a["state"] for a in data] == ["accepted"]

    def test_other_customer_forbidden(self, customer_b_client, services, customer):
        task = _post(services, customer, "Hang mirror")

        response = customer_b_client.get(f"/api/data/tasks/{task.id}/applications")
        assert response.status_code == 403

    def test_unknown_task(self, client):
        from uuid import uuid4

        response = client.get(f"/api/data/tasks/{uuid4()}/applications")
        assert response.status_code == 404


# =============================================================================
# AVAILABILITY
# =============================================================================


class TestAvailabilityReads:

    def test_slots_by_day(self, client, provider, api_monday_slot):
        monday = client.get(f"/api/data/providers/{provider.id}/slots", params={"day": 1})
        tuesday = client.get(f"/api/data/providers/{provider.id}/slots", params={"day": 2})

        assert [s["id"] for s in monday.json()["data"]] == [str(api_monday_slot.id)]
        assert tuesday.json()["data"] == []

    def test_day_out_of_range(self, client, provider):
        response = client.get(f"/api/data/providers/{provider.id}/slots", params={"day": 7})
        assert response.status_code == 422

    def test_windows_exclude_bookings(self, client, provider, booking):
        response = client.get(f"/api/data/providers/{provider.id}/windows", params={"on": "2025-06-16"})

        assert response.json()["data"] == [
            {"start_time": "09:00:00", "end_time": "10:00:00"},
            {"start_time": "12:00:00", "end_time": "17:00:00"},
        ]


# =============================================================================
# DASHBOARDS
# =============================================================================


class TestDashboards:

    def test_provider_dashboard(self, provider_client, services, provider, booking):
        services["booking"].accept(provider, booking.id)

        data = provider_client.get("/api/data/dashboard/provider").json()["data"]

        assert [b["id"] for b in data["upcoming"]] == [str(booking.id)]
        assert data["past"] == []
        assert data["total_earnings_cents"] == 0

    def test_customer_dashboard(self, client, services, customer, booking):
        _post(services, customer, "Fix gate")

        data = client.get("/api/data/dashboard/customer").json()["data"]

        assert data["task_status_counts"] == {"open": 1}
        assert [b["id"] for b in data["upcoming"]] == [str(booking.id)]
        assert data["total_spent_cents"] == 0

    def test_completed_booking_counts(self, client, services, customer, provider, booking):
        from datetime import date

        services["booking"].accept(provider, booking.id)
        services["booking"].complete(customer, booking.id, today=date(2025, 6, 16))

        data = client.get("/api/data/dashboard/customer").json()["data"]

        assert data["total_spent_cents"] == 7000
        assert [b["id"] for b in data["past"]] == [str(booking.id)]

    def test_wrong_role(self, client, provider_client):
        assert client.get("/api/data/dashboard/provider").status_code == 403
        assert provider_client.get("/api/data/dashboard/customer").status_code == 403
