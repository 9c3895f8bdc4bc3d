from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from core import config as core_config
from core.db import Base, build_engine, get_db
from models.plan import Plan
from models.subscription import Subscription
from models.user import User
from schemas.store import StoreCreate
from security import jwt as jwt_utils
from security.password import hash_password
from services import stores as store_service
from services import vercel
from services.entitlements import Features


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.TESTING = True
    core_config.settings.ENTITLEMENT_BACKEND = "plans"
    core_config.settings.VERCEL_TOKEN = "test-token"
    core_config.settings.VERCEL_PROJECT_ID = "prj_test"
    core_config.settings.VERCEL_STORES_PROJECT_ID = "prj_test"
    core_config.settings.CRON_SECRET = ""
    yield


@pytest.fixture()
def db_session_override():
    engine = build_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture()
def db(db_session_override):
    return db_session_override


@pytest.fixture()
def client(db_session_override):
    with TestClient(app) as c:
        yield c


class FakeVercel:
    """Stands in for the hosting provider API; records every call."""

    def __init__(self):
        self.calls = []
        self.domains = {}
        self.add_error = None
        self.get_errors = {}

    def add_project_domain(self, domain):
        self.calls.append(("add", domain))
        if self.add_error:
            raise self.add_error
        self.domains.setdefault(domain, {"name": domain, "verified": False, "verification": []})
        return self.domains[domain]

    def verify_domain(self, domain):
        self.calls.append(("verify", domain))
        return self.domains.get(domain, {})

    def get_domain(self, domain):
        self.calls.append(("get", domain))
        if domain in self.get_errors:
            raise self.get_errors[domain]
        return self.domains.get(domain, {"name": domain, "verified": False})

    def remove_project_domain(self, domain):
        self.calls.append(("remove", domain))
        self.domains.pop(domain, None)
        return {}


@pytest.fixture()
def fake_vercel(monkeypatch):
    fake = FakeVercel()
    monkeypatch.setattr(vercel, "add_project_domain", fake.add_project_domain)
    monkeypatch.setattr(vercel, "verify_domain", fake.verify_domain)
    monkeypatch.setattr(vercel, "get_domain", fake.get_domain)
    monkeypatch.setattr(vercel, "remove_project_domain", fake.remove_project_domain)
    return fake


def _make_user(db, email, is_superadmin=False):
    user = User(
        first_name="Test",
        last_name="User",
        email=email,
        password_hash=hash_password("testpass123"),
        is_superadmin=is_superadmin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def merchant(db_session_override):
    return _make_user(db_session_override, "merchant@example.com")


@pytest.fixture
def other_merchant(db_session_override):
    return _make_user(db_session_override, "other@example.com")


@pytest.fixture
def admin_user(db_session_override):
    return _make_user(db_session_override, "admin@example.com", is_superadmin=True)


def _headers(user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(user.id))}"}


@pytest.fixture
def auth_headers(merchant):
    return _headers(merchant)


@pytest.fixture
def other_headers(other_merchant):
    return _headers(other_merchant)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def store(db_session_override, merchant):
    return store_service.create_store(
        db_session_override,
        merchant,
        StoreCreate(name="Test Shop", whatsapp_number="+1 (555) 010-2000"),
    )


@pytest.fixture
def other_store(db_session_override, other_merchant):
    return store_service.create_store(db_session_override, other_merchant, StoreCreate(name="Other Shop"))


@pytest.fixture
def free_plan(db_session_override):
    plan = Plan(
        name="Free",
        price_monthly=0,
        product_limit=5,
        variant_limit=0,
        features=[Features.CATEGORIES, Features.PRODUCTS, Features.ORDERS],
    )
    db_session_override.add(plan)
    db_session_override.commit()
    db_session_override.refresh(plan)
    return plan


@pytest.fixture
def business_plan(db_session_override):
    plan = Plan(
        name="Business",
        price_monthly=49,
        price_yearly=490,
        product_limit=None,
        variant_limit=None,
        features=[
            Features.CATEGORIES,
            Features.PRODUCTS,
            Features.ORDERS,
            Features.THEME_CUSTOMIZATION,
            Features.CUSTOM_DOMAIN,
        ],
    )
    db_session_override.add(plan)
    db_session_override.commit()
    db_session_override.refresh(plan)
    return plan


@pytest.fixture
def subscribe(db_session_override):
    """Attach a subscription; later ``starts_at`` values win."""

    def _subscribe(store, plan, days_ago=0, period="monthly"):
        sub = Subscription(
            store_id=store.id,
            plan_id=plan.id,
            period=period,
            starts_at=datetime.utcnow() - timedelta(days=days_ago),
            is_active=True,
        )
        db_session_override.add(sub)
        db_session_override.commit()
        db_session_override.refresh(sub)
        return sub

    return _subscribe
