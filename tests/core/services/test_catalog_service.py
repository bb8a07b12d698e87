"""Tests for CatalogService (provider offerings)."""

import threading
import time

import pytest
from uuid import uuid4

from core.exceptions import InvalidRate, NotFound, NotOwner
from core.models import OfferingUpsert


class TestUpsertOffering:

    def test_creates_active_offering(self, catalog_service, provider):
        offering = catalog_service.upsert_offering(
            provider, provider.id,
            OfferingUpsert(service_id="painting", hourly_rate_cents=4500, description="Interior"),
        )

        assert offering.is_active
        assert offering.hourly_rate_cents == 4500

    @pytest.mark.parametrize("rate", [0, -100])
    def test_non_positive_rate_rejected(self, catalog_service, provider, rate):
        with pytest.raises(InvalidRate):
            catalog_service.upsert_offering(
                provider, provider.id,
                OfferingUpsert(service_id="painting", hourly_rate_cents=rate),
            )
        assert catalog_service.offerings_for(provider.id) == []

    def test_second_upsert_replaces(self, catalog_service, provider, plumbing):
        updated = catalog_service.upsert_offering(
            provider, provider.id,
            OfferingUpsert(service_id="plumbing", hourly_rate_cents=4000, description="Emergency too"),
        )

        assert updated.id == plumbing.id
        assert updated.hourly_rate_cents == 4000
        assert updated.version == plumbing.version + 1
        assert len(catalog_service.offerings_for(provider.id)) == 1

    def test_upsert_reactivates(self, catalog_service, provider, plumbing):
        catalog_service.set_active(provider, plumbing.id, False)

        updated = catalog_service.upsert_offering(
            provider, provider.id,
            OfferingUpsert(service_id="plumbing", hourly_rate_cents=3500),
        )
        assert updated.is_active

    def test_update_is_audited_with_diff(self, catalog_service, audit, provider, plumbing):
        catalog_service.upsert_offering(
            provider, provider.id,
            OfferingUpsert(service_id="plumbing", hourly_rate_cents=3600,
                           description=plumbing.description, category_id="home"),
        )

        history = audit.get_entity_history("service_offering", plumbing.id)
        actions = sorted(h["action"] for h in history)
        assert actions == ["create", "update"]
        update = next(h for h in history if h["action"] == "update")
        assert update["changes"]["hourly_rate_cents"] == {"old": 3500, "new": 3600}

    def test_cannot_upsert_for_other_provider(self, catalog_service, provider, provider_b):
        with pytest.raises(NotOwner):
            catalog_service.upsert_offering(
                provider, provider_b.id,
                OfferingUpsert(service_id="painting", hourly_rate_cents=4500),
            )


class TestConcurrentUpsert:
    """Two upserts of the same service racing past the lookup."""

    def test_one_offering_per_provider_service(self, catalog_service, provider, monkeypatch):
        find = catalog_service._find

        def slow_find(provider_id, service_id):
            found = find(provider_id, service_id)
            time.sleep(0.2)
            return found

        monkeypatch.setattr(catalog_service, "_find", slow_find)
        errors = []

        def upsert(rate):
            try:
                catalog_service.upsert_offering(
                    provider, provider.id,
                    OfferingUpsert(service_id="painting", hourly_rate_cents=rate),
                )
            except Exception as e:
                errors.append(e)

        workers = [threading.Thread(target=upsert, args=(rate,)) for rate in (4000, 4500)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        assert errors == []
        offerings = catalog_service.offerings_for(provider.id)
        assert len(offerings) == 1
        assert offerings[0].version == 2
        assert offerings[0].hourly_rate_cents in (4000, 4500)


class TestSetActive:

    def test_deactivates(self, catalog_service, provider, plumbing):
        offering = catalog_service.set_active(provider, plumbing.id, False)

        assert not offering.is_active
        assert catalog_service.active_offerings() == []

    def test_no_change_keeps_version(self, catalog_service, provider, plumbing):
        offering = catalog_service.set_active(provider, plumbing.id, True)
        assert offering.version == plumbing.version

    def test_only_owner(self, catalog_service, provider_b, plumbing):
        with pytest.raises(NotOwner):
            catalog_service.set_active(provider_b, plumbing.id, False)

    def test_unknown(self, catalog_service, provider):
        with pytest.raises(NotFound):
            catalog_service.set_active(provider, uuid4(), False)


class TestListing:

    def test_offerings_for_includes_inactive(self, catalog_service, provider, plumbing):
        catalog_service.upsert_offering(
            provider, provider.id, OfferingUpsert(service_id="electrical", hourly_rate_cents=5000),
        )
        catalog_service.set_active(provider, plumbing.id, False)

        offerings = catalog_service.offerings_for(provider.id)
        assert [o.service_id for o in offerings] == ["electrical", "plumbing"]

    def test_active_offerings_across_providers(self, catalog_service, provider_b, plumbing):
        other = catalog_service.upsert_offering(
            provider_b, provider_b.id, OfferingUpsert(service_id="plumbing", hourly_rate_cents=3000),
        )

        ids = {o.id for o in catalog_service.active_offerings()}
        assert ids == {plumbing.id, other.id}
