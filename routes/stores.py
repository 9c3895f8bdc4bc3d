import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from core.db import get_db
from core.tenancy import get_owned_store
from models.store import Store
from models.user import User
from routes.auth import get_current_user
from schemas.domain import DomainRequest
from schemas.entitlements import EntitlementsOut
from schemas.store import StoreCreate, StoreOut, StoreUpdate
from services import domains as domain_service
from services import stores as store_service
from services.entitlements import Features, enforce_limit, get_active_plan, get_store_usage, has_feature
from services.vercel import VercelError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])


def _store_error(exc: store_service.StoreValidationError) -> HTTPException:
    if isinstance(exc, (store_service.DuplicateStoreName, store_service.DuplicateSlug)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def ensure_feature(db: Session, store: Store, user: User, feature: str) -> None:
    if user.is_superadmin:
        return
    if not has_feature(get_active_plan(db, store.id), feature):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Your current plan does not include '{feature}'. Upgrade to unlock it.",
        )


@router.get("/", response_model=List[StoreOut])
def list_my_stores(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(Store).filter(Store.merchant_id == current_user.id).order_by(Store.created_at).all()


@router.post("/", response_model=StoreOut, status_code=201)
def create_store(data: StoreCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return store_service.create_store(db, current_user, data)
    except store_service.StoreValidationError as exc:
        raise _store_error(exc)


@router.get("/{store_id}", response_model=StoreOut)
def get_store(store: Store = Depends(get_owned_store)):
    return store


@router.patch("/{store_id}", response_model=StoreOut)
def update_store(
    data: StoreUpdate,
    store: Store = Depends(get_owned_store),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if data.theme is not None:
        ensure_feature(db, store, current_user, Features.THEME_CUSTOMIZATION)
    try:
        return store_service.update_store(db, store, data)
    except store_service.StoreValidationError as exc:
        raise _store_error(exc)


@router.post("/{store_id}/deactivate", response_model=StoreOut)
def deactivate_store(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    return store_service.deactivate_store(db, store)


@router.delete("/{store_id}", status_code=204)
def delete_store(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    store_service.delete_store(db, store)
    return None


@router.get("/{store_id}/entitlements", response_model=EntitlementsOut)
def get_entitlements(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    info = get_active_plan(db, store.id)
    usage = get_store_usage(db, store.id)
    return EntitlementsOut(
        **asdict(info),
        usage=usage,
        limits={
            "products": asdict(enforce_limit(usage["product_count"], info.product_limit)),
            "variants": asdict(enforce_limit(usage["variant_count"], info.variant_limit)),
        },
    )


@router.post("/{store_id}/domain")
def connect_domain(
    data: DomainRequest,
    store: Store = Depends(get_owned_store),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_feature(db, store, current_user, Features.CUSTOM_DOMAIN)
    try:
        result = domain_service.connect_store_domain(db, store, data.domain)
    except domain_service.DomainConflict as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except domain_service.DomainError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except VercelError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return {"success": True, **result}


@router.get("/{store_id}/domain")
def get_domain(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    link = store.domain_link
    if link is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No custom domain linked")
    try:
        result = domain_service.get_domain_status(link.domain)
    except VercelError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    domain_service.persist_domain_status_for_domain(db, link.domain, {"ok": True, **result})
    return {"success": True, **result}


@router.delete("/{store_id}/domain", status_code=204)
def disconnect_domain(store: Store = Depends(get_owned_store), db: Session = Depends(get_db)):
    try:
        removed = domain_service.disconnect_store_domain(db, store)
    except VercelError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No custom domain linked")
    return None
