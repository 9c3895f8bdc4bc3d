import logging
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.store import Store
from models.user import User
from schemas.store import StoreCreate, StoreSettings, StoreTheme, StoreUpdate
from services.slugs import generate_store_slug, is_reserved_slug, is_valid_slug

logger = logging.getLogger(__name__)


class StoreValidationError(ValueError):
    """Base class for store input the merchant has to correct."""


class DuplicateStoreName(StoreValidationError):
    pass


class DuplicateSlug(StoreValidationError):
    pass


class ReservedSlug(StoreValidationError):
    pass


class InvalidSlug(StoreValidationError):
    pass


def _slug_taken(db: Session, slug: str, exclude_store_id: int | None = None) -> bool:
    q = db.query(Store.id).filter(Store.slug == slug)
    if exclude_store_id is not None:
        q = q.filter(Store.id != exclude_store_id)
    return q.first() is not None


def _name_taken(db: Session, merchant_id: int, name: str, exclude_store_id: int | None = None) -> bool:
    q = db.query(Store.id).filter(Store.merchant_id == merchant_id, func.lower(Store.name) == name.lower())
    if exclude_store_id is not None:
        q = q.filter(Store.id != exclude_store_id)
    return q.first() is not None


def _check_explicit_slug(db: Session, slug: str, exclude_store_id: int | None = None) -> str:
    slug = slug.strip().lower()
    if not is_valid_slug(slug):
        raise InvalidSlug("Slug may only contain lowercase letters, digits and single hyphens")
    if is_reserved_slug(slug):
        raise ReservedSlug(f"'{slug}' is reserved, please choose another link")
    if _slug_taken(db, slug, exclude_store_id):
        raise DuplicateSlug("This store link is already taken, please choose another one")
    return slug


def _unique_generated_slug(db: Session, name: str) -> str:
    base = generate_store_slug(name)
    if not base:
        raise InvalidSlug("Store name must contain at least one letter or digit")
    candidate = base
    suffix = 2
    # Reserved words and other merchants' slugs get a numeric suffix
    while is_reserved_slug(candidate) or _slug_taken(db, candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def create_store(db: Session, merchant: User, data: StoreCreate) -> Store:
    name = data.name.strip()
    if _name_taken(db, merchant.id, name):
        raise DuplicateStoreName("You already have a store with this name")

    slug = _check_explicit_slug(db, data.slug) if data.slug else _unique_generated_slug(db, name)

    store = Store(
        merchant_id=merchant.id,
        name=name,
        slug=slug,
        description=data.description,
        logo_url=str(data.logo_url) if data.logo_url else None,
        whatsapp_number=data.whatsapp_number,
        theme=(data.theme or StoreTheme()).model_dump(),
        settings=(data.settings or StoreSettings()).model_dump(),
        is_active=True,
    )
    db.add(store)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race on the slug or (merchant, name) unique index
        db.rollback()
        raise DuplicateSlug("The store name or link is already in use, please choose another one")
    db.refresh(store)
    logger.info("Store %s created for merchant %s with slug %s", store.id, merchant.id, store.slug)
    return store


def update_store(db: Session, store: Store, data: StoreUpdate) -> Store:
    changes: Dict[str, Any] = data.model_dump(exclude_unset=True)

    if "name" in changes and changes["name"] is not None:
        name = changes["name"].strip()
        if _name_taken(db, store.merchant_id, name, exclude_store_id=store.id):
            raise DuplicateStoreName("You already have a store with this name")
        store.name = name
    if "slug" in changes and changes["slug"]:
        store.slug = _check_explicit_slug(db, changes["slug"], exclude_store_id=store.id)
    if "description" in changes:
        store.description = changes["description"]
    if "logo_url" in changes:
        store.logo_url = str(data.logo_url) if data.logo_url else None
    if "whatsapp_number" in changes:
        store.whatsapp_number = changes["whatsapp_number"]
    if data.theme is not None:
        store.theme = data.theme.model_dump()
    if data.settings is not None:
        # Keys the merchant did not send (and platform-managed ones like the plan) stay as they are
        store.settings = {**(store.settings or {}), **data.settings.model_dump(exclude_unset=True)}
    if data.is_active is not None:
        store.is_active = data.is_active

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateSlug("The store name or link is already in use, please choose another one")
    db.refresh(store)
    return store


def deactivate_store(db: Session, store: Store) -> Store:
    store.is_active = False
    db.commit()
    db.refresh(store)
    logger.info("Store %s deactivated", store.id)
    return store


def delete_store(db: Session, store: Store) -> None:
    """Hard delete; categories, products, orders, billing rows and the domain link go with it."""
    store_id = store.id
    db.delete(store)
    db.commit()
    logger.info("Store %s deleted", store_id)


def store_settings(store: Store) -> StoreSettings:
    """Business settings with defaults filled in for keys older rows lack."""
    return StoreSettings(**(store.settings or {}))


def set_store_plan(db: Session, store: Store, plan: str) -> Store:
    """Platform-managed plan name read by the static entitlement backend."""
    store.settings = {**(store.settings or {}), "plan": plan}
    db.commit()
    db.refresh(store)
    logger.info("Store %s moved to plan %s", store.id, plan)
    return store
