"""
Tests for the domain HTTP endpoints, the cron trigger and host-based storefront resolution.
"""
import pytest
from fastapi import status

from core import config as core_config
from services import domains as domain_service
from services.vercel import VercelError


class TestConnectDomainEndpoint:

    def test_requires_auth(self, client, fake_vercel):
        response = client.post("/api/connect-domain", json={"domain": "shop.example.com"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert fake_vercel.calls == []

    def test_connect_normalizes(self, client, admin_headers, fake_vercel):
        response = client.post(
            "/api/connect-domain",
            json={"domain": "https://Shop.Example.com/"},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["domain"] == "shop.example.com"
        assert body["needsDNS"] is True

    def test_already_exists_still_succeeds(self, client, admin_headers, fake_vercel):
        fake_vercel.add_error = VercelError(409, "exists", "domain_already_exists")
        response = client.post("/api/connect-domain", json={"domain": "shop.example.com"}, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["domain"] == "shop.example.com"

    def test_invalid_domain(self, client, admin_headers, fake_vercel):
        response = client.post("/api/connect-domain", json={"domain": "not a domain"}, headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Invalid domain format"}

    def test_conflict_passes_through(self, client, admin_headers, fake_vercel):
        fake_vercel.add_error = VercelError(400, "in use", "domain_already_in_use")
        response = client.post("/api/connect-domain", json={"domain": "taken.example.com"}, headers=admin_headers)
        assert response.status_code == status.HTTP_409_CONFLICT
        assert "error" in response.json()

    def test_status_persists_for_owner(self, client, db, admin_headers, store, fake_vercel):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")
        fake_vercel.domains["shop.example.com"] = {"verified": True}

        response = client.get("/api/connect-domain", params={"domain": "shop.example.com"}, headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["verified"] is True
        assert store.domain_verified is True

    def test_delete_clears_link(self, client, db, admin_headers, store, fake_vercel):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")

        response = client.request(
            "DELETE", "/api/connect-domain", json={"domain": "shop.example.com"}, headers=admin_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["removed"] is True
        assert store.custom_domain is None

    def test_merchant_cannot_delete_another_stores_domain(self, client, db, other_headers, store, fake_vercel):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")

        response = client.request(
            "DELETE", "/api/connect-domain", json={"domain": "shop.example.com"}, headers=other_headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert fake_vercel.calls == []
        assert store.custom_domain == "shop.example.com"

    def test_merchant_cannot_connect_directly(self, client, auth_headers, fake_vercel):
        response = client.post("/api/connect-domain", json={"domain": "shop.example.com"}, headers=auth_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert fake_vercel.calls == []

    def test_merchant_cannot_read_status(self, client, auth_headers, fake_vercel):
        response = client.get("/api/connect-domain", params={"domain": "shop.example.com"}, headers=auth_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestCronRefresh:

    @pytest.fixture
    def cron_secret(self, monkeypatch):
        monkeypatch.setattr(core_config.settings, "CRON_SECRET", "s3cret")
        return "s3cret"

    def test_rejects_without_credentials(self, client, cron_secret, fake_vercel):
        response = client.get("/api/cron-refresh-domains")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Unauthorized"}

    def test_rejects_wrong_secret(self, client, cron_secret, fake_vercel):
        response = client.post("/api/cron-refresh-domains", headers={"x-cron-secret": "guess"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_accepts_secret(self, client, db, store, cron_secret, fake_vercel):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")

        response = client.post("/api/cron-refresh-domains", headers={"x-cron-secret": cron_secret})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["ok"] is True
        assert body["count"] == 1

    def test_accepts_platform_cron_header(self, client, cron_secret, fake_vercel):
        response = client.get("/api/cron-refresh-domains", headers={"x-vercel-cron": "1"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["count"] == 0

    def test_open_without_configured_secret(self, client, fake_vercel):
        response = client.get("/api/cron-refresh-domains")
        assert response.status_code == status.HTTP_200_OK

    def test_overlapping_run_conflict(self, client, db, fake_vercel):
        domain_service.acquire_sweep_lease(db)
        response = client.get("/api/cron-refresh-domains")
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["ok"] is False


class TestStoreDomainRoutes:

    def test_custom_domain_needs_plan_feature(self, client, auth_headers, store, free_plan, subscribe, fake_vercel):
        subscribe(store, free_plan)
        response = client.post(f"/stores/{store.id}/domain", json={"domain": "shop.example.com"}, headers=auth_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert fake_vercel.calls == []

    def test_connect_and_serve_by_host(self, client, auth_headers, store, business_plan, subscribe, fake_vercel):
        subscribe(store, business_plan)

        response = client.post(f"/stores/{store.id}/domain", json={"domain": "https://www.Shop.Example.com/"}, headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK

        store_body = client.get(f"/stores/{store.id}", headers=auth_headers).json()
        assert store_body["custom_domain"] == "shop.example.com"

        page = client.get("/storefront/", headers={"X-Store-Domain": "shop.example.com"})
        assert page.status_code == status.HTTP_200_OK
        assert page.json()["store"]["slug"] == store.slug

    def test_unknown_host_not_found(self, client):
        response = client.get("/storefront/", headers={"X-Store-Domain": "nobody.example.com"})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_other_merchant_cannot_touch_domain(self, client, other_headers, store, fake_vercel):
        response = client.post(f"/stores/{store.id}/domain", json={"domain": "x.example.com"}, headers=other_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_get_and_delete_store_domain(self, client, db, auth_headers, store, fake_vercel):
        response = client.get(f"/stores/{store.id}/domain", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")
        response = client.get(f"/stores/{store.id}/domain", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["domain"] == "shop.example.com"

        response = client.delete(f"/stores/{store.id}/domain", headers=auth_headers)
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert store.custom_domain is None


class TestAdminDomainRoutes:

    def test_admin_link_moves_domain(self, client, db, admin_headers, store, other_store):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shared.example.com")

        response = client.post(
            "/admin/domains/link",
            json={"store_id": other_store.id, "domain": "Shared.Example.com", "verified": True},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == other_store.id
        assert response.json()["domain_verified"] is True
        assert store.custom_domain is None

        listed = client.get("/admin/domains", headers=admin_headers).json()
        assert [s["custom_domain"] for s in listed] == ["shared.example.com"]

    def test_admin_link_unknown_store(self, client, admin_headers):
        response = client.post("/admin/domains/link", json={"store_id": 999, "domain": "a.example.com"}, headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_admin_refresh_one(self, client, db, admin_headers, store, fake_vercel):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")
        fake_vercel.domains["shop.example.com"] = {"verified": True}

        response = client.post("/admin/domains/refresh", params={"domain": "shop.example.com"}, headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["store_id"] == store.id
        assert store.domain_verified is True

    def test_admin_unlink(self, client, db, admin_headers, store):
        domain_service.link_domain_uniquely_to_store(db, store.id, "shop.example.com")
        assert client.delete(f"/admin/domains/{store.id}", headers=admin_headers).status_code == status.HTTP_204_NO_CONTENT
        assert client.delete(f"/admin/domains/{store.id}", headers=admin_headers).status_code == status.HTTP_404_NOT_FOUND

    def test_merchant_is_not_admin(self, client, auth_headers):
        response = client.get("/admin/domains", headers=auth_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
