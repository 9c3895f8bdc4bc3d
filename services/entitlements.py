"""Plan entitlements for a store.

Two backends answer the same question ("which plan does this store have and
what does it unlock?"):

* ``PlanTableEntitlements`` joins the store's most recent subscription to its
  ``Plan`` row. A store without subscriptions gets an empty ``PlanInfo``: no
  extra features, no numeric limits, base functionality untouched.
* ``StaticEntitlements`` maps a plan name kept in the store settings onto a
  built-in table, for deployments that do not manage plans in the database.

``get_entitlement_provider`` picks one according to ``ENTITLEMENT_BACKEND``.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import settings
from models.plan import Plan
from models.product import Product
from models.product_variant import ProductVariant
from models.store import Store
from models.subscription import Subscription

logger = logging.getLogger(__name__)

# Sentinel some plan rows use instead of NULL for "unlimited"
UNLIMITED = -1


class Features:
    CATEGORIES = "categories"
    PRODUCTS = "products"
    THEME_CUSTOMIZATION = "theme_customization"
    ORDERS = "orders"
    ANALYTICS = "analytics"
    ADVANCED_SETTINGS = "advanced_settings"
    PAYMENTS = "payments"
    CUSTOM_DOMAIN = "custom_domain"


@dataclass
class PlanInfo:
    plan_id: Optional[int] = None
    plan_name: Optional[str] = None
    period: Optional[str] = None
    product_limit: Optional[int] = None
    variant_limit: Optional[int] = None
    storage_mb: Optional[int] = None
    features: List[str] = field(default_factory=list)


@dataclass
class LimitCheck:
    allowed: bool
    remaining: Optional[int]


def has_feature(info: PlanInfo, key: str) -> bool:
    return key in info.features


def enforce_limit(current_count: int, limit: Optional[int]) -> LimitCheck:
    """Advisory quota check; it informs callers and never blocks a write by itself."""
    if limit is None or limit == UNLIMITED:
        return LimitCheck(allowed=True, remaining=None)
    remaining = max(0, limit - current_count)
    return LimitCheck(allowed=remaining > 0, remaining=remaining)


class EntitlementProvider(ABC):
    name: str

    @abstractmethod
    def get_active_plan(self, db: Session, store_id: int) -> PlanInfo:
        ...


class PlanTableEntitlements(EntitlementProvider):
    name = "plans"

    def get_active_plan(self, db: Session, store_id: int) -> PlanInfo:
        sub = (
            db.query(Subscription)
            .filter(Subscription.store_id == store_id)
            .order_by(Subscription.starts_at.desc(), Subscription.id.desc())
            .first()
        )
        if not sub:
            return PlanInfo()

        plan = db.query(Plan).filter(Plan.id == sub.plan_id).one_or_none()
        if not plan:
            logger.warning("Subscription %s references missing plan %s", sub.id, sub.plan_id)
            return PlanInfo()

        return PlanInfo(
            plan_id=plan.id,
            plan_name=plan.name,
            period=sub.period,
            product_limit=plan.product_limit,
            variant_limit=plan.variant_limit,
            storage_mb=plan.storage_mb,
            features=list(plan.features) if isinstance(plan.features, list) else [],
        )


_BASE_FEATURES = [Features.CATEGORIES, Features.PRODUCTS, Features.ORDERS]

STATIC_PLANS: Dict[str, PlanInfo] = {
    "free": PlanInfo(
        plan_name="free",
        product_limit=50,
        variant_limit=0,
        storage_mb=100,
        features=list(_BASE_FEATURES),
    ),
    "pro": PlanInfo(
        plan_name="pro",
        product_limit=10000,
        variant_limit=50000,
        storage_mb=5000,
        features=_BASE_FEATURES + [
            Features.THEME_CUSTOMIZATION,
            Features.ANALYTICS,
            Features.ADVANCED_SETTINGS,
        ],
    ),
    "business": PlanInfo(
        plan_name="business",
        product_limit=100000,
        variant_limit=None,
        storage_mb=None,
        features=_BASE_FEATURES + [
            Features.THEME_CUSTOMIZATION,
            Features.ANALYTICS,
            Features.ADVANCED_SETTINGS,
            Features.PAYMENTS,
            Features.CUSTOM_DOMAIN,
        ],
    ),
}


class StaticEntitlements(EntitlementProvider):
    name = "static"

    def __init__(self, plans: Optional[Dict[str, PlanInfo]] = None):
        self.plans = plans or STATIC_PLANS

    def get_active_plan(self, db: Session, store_id: int) -> PlanInfo:
        store = db.query(Store).filter(Store.id == store_id).one_or_none()
        plan_key = ((store.settings or {}).get("plan") if store else None) or "free"
        template = self.plans.get(str(plan_key).lower()) or self.plans["free"]
        # Copy so callers cannot mutate the shared table
        return PlanInfo(
            plan_name=template.plan_name,
            product_limit=template.product_limit,
            variant_limit=template.variant_limit,
            storage_mb=template.storage_mb,
            features=list(template.features),
        )


_PROVIDERS = {
    PlanTableEntitlements.name: PlanTableEntitlements,
    StaticEntitlements.name: StaticEntitlements,
}


def get_entitlement_provider(backend: Optional[str] = None) -> EntitlementProvider:
    key = (backend or settings.ENTITLEMENT_BACKEND or "plans").lower()
    provider_cls = _PROVIDERS.get(key)
    if provider_cls is None:
        raise RuntimeError(f"Unknown entitlement backend: {key}")
    return provider_cls()


def get_active_plan(db: Session, store_id: int) -> PlanInfo:
    return get_entitlement_provider().get_active_plan(db, store_id)


def get_store_usage(db: Session, store_id: int) -> Dict[str, int]:
    """Current usage counts compared against plan limits."""
    product_count = db.query(func.count(Product.id)).filter(Product.store_id == store_id).scalar()
    variant_count = (
        db.query(func.count(ProductVariant.id))
        .join(Product, ProductVariant.product_id == Product.id)
        .filter(Product.store_id == store_id)
        .scalar()
    )
    return {
        "product_count": product_count or 0,
        "variant_count": variant_count or 0,
    }
