"""
Tests for plan resolution, feature checks and advisory limits.
"""
import pytest
from fastapi import status

from models.product import Product
from models.product_variant import ProductVariant
from services import entitlements
from services.entitlements import (
    Features,
    LimitCheck,
    PlanInfo,
    PlanTableEntitlements,
    StaticEntitlements,
    enforce_limit,
    get_active_plan,
    get_entitlement_provider,
    get_store_usage,
    has_feature,
)


class TestLimits:

    @pytest.mark.parametrize("current,limit,expected", [
        (5, 5, LimitCheck(allowed=False, remaining=0)),
        (3, 5, LimitCheck(allowed=True, remaining=2)),
        (7, 5, LimitCheck(allowed=False, remaining=0)),
        (0, 0, LimitCheck(allowed=False, remaining=0)),
        (1000, None, LimitCheck(allowed=True, remaining=None)),
        (1000, entitlements.UNLIMITED, LimitCheck(allowed=True, remaining=None)),
    ])
    def test_enforce_limit(self, current, limit, expected):
        assert enforce_limit(current, limit) == expected

    def test_has_feature(self):
        info = PlanInfo(features=[Features.CUSTOM_DOMAIN])
        assert has_feature(info, Features.CUSTOM_DOMAIN) is True
        assert has_feature(info, Features.ANALYTICS) is False
        assert has_feature(PlanInfo(), Features.CUSTOM_DOMAIN) is False


class TestPlanTableEntitlements:

    def test_no_subscription_has_no_features(self, db, store):
        info = get_active_plan(db, store.id)
        assert info == PlanInfo()
        for feature in (Features.CUSTOM_DOMAIN, Features.PRODUCTS, Features.THEME_CUSTOMIZATION):
            assert has_feature(info, feature) is False
        assert enforce_limit(100, info.product_limit) == LimitCheck(allowed=True, remaining=None)

    def test_latest_subscription_wins(self, db, store, free_plan, business_plan, subscribe):
        subscribe(store, business_plan, days_ago=30)
        subscribe(store, free_plan, days_ago=1)

        info = get_active_plan(db, store.id)

        assert info.plan_name == "Free"
        assert info.product_limit == 5
        assert has_feature(info, Features.CUSTOM_DOMAIN) is False

    def test_plan_fields_copied(self, db, store, business_plan, subscribe):
        subscribe(store, business_plan, period="yearly")

        info = PlanTableEntitlements().get_active_plan(db, store.id)

        assert info.plan_id == business_plan.id
        assert info.period == "yearly"
        assert info.product_limit is None
        assert has_feature(info, Features.CUSTOM_DOMAIN) is True

    def test_subscriptions_are_per_store(self, db, store, other_store, business_plan, subscribe):
        subscribe(store, business_plan)
        assert get_active_plan(db, other_store.id) == PlanInfo()


class TestStaticEntitlements:

    def test_defaults_to_free(self, db, store):
        info = StaticEntitlements().get_active_plan(db, store.id)
        assert info.plan_name == "free"
        assert has_feature(info, Features.CUSTOM_DOMAIN) is False

    def test_reads_plan_from_store_settings(self, db, store):
        store.settings = {**(store.settings or {}), "plan": "business"}
        db.commit()

        info = StaticEntitlements().get_active_plan(db, store.id)

        assert info.plan_name == "business"
        assert has_feature(info, Features.CUSTOM_DOMAIN) is True

    def test_unknown_plan_name_falls_back(self, db, store):
        store.settings = {**(store.settings or {}), "plan": "platinum"}
        db.commit()
        assert StaticEntitlements().get_active_plan(db, store.id).plan_name == "free"

    def test_returned_info_is_a_copy(self, db, store):
        info = StaticEntitlements().get_active_plan(db, store.id)
        info.features.append(Features.CUSTOM_DOMAIN)
        assert Features.CUSTOM_DOMAIN not in entitlements.STATIC_PLANS["free"].features


class TestProviderSelection:

    def test_explicit_backend(self):
        assert isinstance(get_entitlement_provider("plans"), PlanTableEntitlements)
        assert isinstance(get_entitlement_provider("STATIC"), StaticEntitlements)

    def test_configured_backend(self, db, store, monkeypatch):
        monkeypatch.setattr(entitlements.settings, "ENTITLEMENT_BACKEND", "static")
        assert isinstance(get_entitlement_provider(), StaticEntitlements)
        assert get_active_plan(db, store.id).plan_name == "free"

    def test_unknown_backend(self):
        with pytest.raises(RuntimeError):
            get_entitlement_provider("ldap")


class TestUsageAndEndpoint:

    def _add_products(self, db, store, count):
        products = []
        for i in range(count):
            product = Product(store_id=store.id, name=f"Item {i}", price=10)
            db.add(product)
            products.append(product)
        db.commit()
        return products

    def test_store_usage(self, db, store, other_store):
        products = self._add_products(db, store, 3)
        self._add_products(db, other_store, 2)
        db.add(ProductVariant(product_id=products[0].id, selections={"size": "M"}, stock=1))
        db.commit()

        assert get_store_usage(db, store.id) == {"product_count": 3, "variant_count": 1}

    def test_entitlements_endpoint_reports_exhausted_limit(self, client, db, auth_headers, store, free_plan, subscribe):
        subscribe(store, free_plan)
        self._add_products(db, store, 5)

        response = client.get(f"/stores/{store.id}/entitlements", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["plan_name"] == "Free"
        assert body["usage"]["product_count"] == 5
        assert body["limits"]["products"] == {"allowed": False, "remaining": 0}

    def test_entitlements_endpoint_without_plan(self, client, auth_headers, store):
        body = client.get(f"/stores/{store.id}/entitlements", headers=auth_headers).json()
        assert body["features"] == []
        assert body["limits"]["products"] == {"allowed": True, "remaining": None}
