import logging
from typing import List, Optional

import requests
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.db import get_db
from models.invoice import Invoice
from models.plan import Plan
from models.store import Store
from models.subscription import Subscription
from routes.auth import require_admin
from schemas.billing import InvoiceOut, InvoiceReject, SubscriptionOut
from schemas.domain import DomainLinkRequest
from schemas.plan import PlanCreate, PlanOut, PlanUpdate
from schemas.store import StoreOut
from services import billing as billing_service
from services import domains as domain_service
from services import stores as store_service
from services.entitlements import STATIC_PLANS
from services.vercel import VercelError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class StoreAdminUpdate(BaseModel):
    is_active: Optional[bool] = None
    # Plan name for the static entitlement backend
    plan: Optional[str] = None


def _get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


# Plans

@router.get("/plans", response_model=List[PlanOut])
def list_plans(db: Session = Depends(get_db)):
    return db.query(Plan).order_by(Plan.id).all()


@router.post("/plans", response_model=PlanOut, status_code=201)
def create_plan(data: PlanCreate, db: Session = Depends(get_db)):
    if db.query(Plan).filter(Plan.name == data.name.strip()).one_or_none():
        raise HTTPException(status_code=409, detail="A plan with this name already exists")
    plan = Plan(**{**data.model_dump(), "name": data.name.strip()})
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@router.patch("/plans/{plan_id}", response_model=PlanOut)
def update_plan(plan_id: int, data: PlanUpdate, db: Session = Depends(get_db)):
    plan = db.get(Plan, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(plan, field, value)
    db.commit()
    db.refresh(plan)
    return plan


# Invoices and subscriptions

@router.get("/invoices", response_model=List[InvoiceOut])
def list_pending_invoices(db: Session = Depends(get_db)):
    return billing_service.list_pending_invoices(db)


@router.post("/invoices/{invoice_id}/approve", response_model=SubscriptionOut)
def approve_invoice(invoice_id: int, db: Session = Depends(get_db)):
    invoice = _get_invoice(db, invoice_id)
    try:
        return billing_service.approve_invoice(db, invoice)
    except billing_service.InvoiceStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.post("/invoices/{invoice_id}/reject", response_model=InvoiceOut)
def reject_invoice(invoice_id: int, data: InvoiceReject, db: Session = Depends(get_db)):
    invoice = _get_invoice(db, invoice_id)
    try:
        return billing_service.reject_invoice(db, invoice, data.reason)
    except billing_service.InvoiceStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/subscriptions", response_model=List[SubscriptionOut])
def list_subscriptions(active: bool = True, db: Session = Depends(get_db)):
    qs = db.query(Subscription)
    if active:
        qs = qs.filter(Subscription.is_active.is_(True))
    return qs.order_by(Subscription.starts_at.desc()).all()


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionOut)
def cancel_subscription(subscription_id: int, db: Session = Depends(get_db)):
    subscription = db.get(Subscription, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return billing_service.cancel_subscription(db, subscription)


# Stores

@router.get("/stores", response_model=List[StoreOut])
def list_stores(limit: int = 100, db: Session = Depends(get_db)):
    return db.query(Store).order_by(Store.id).limit(limit).all()


@router.patch("/stores/{store_id}", response_model=StoreOut)
def update_store(store_id: int, data: StoreAdminUpdate, db: Session = Depends(get_db)):
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    if data.plan is not None:
        plan = data.plan.strip().lower()
        if plan not in STATIC_PLANS:
            raise HTTPException(status_code=400, detail=f"Unknown plan: {data.plan}")
        store_service.set_store_plan(db, store, plan)
    if data.is_active is not None:
        store.is_active = data.is_active
        db.commit()
        db.refresh(store)
    return store


# Domains

@router.get("/domains", response_model=List[StoreOut])
def list_domain_stores(limit: int = 500, db: Session = Depends(get_db)):
    return [link.store for link in domain_service.list_stores_with_domain(db, limit=limit)]


@router.post("/domains/link", response_model=StoreOut)
def link_domain(data: DomainLinkRequest, db: Session = Depends(get_db)):
    try:
        link = domain_service.link_domain_uniquely_to_store(db, data.store_id, data.domain, data.verified)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except domain_service.DomainConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except domain_service.DomainError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return link.store


@router.post("/domains/refresh")
def refresh_domain(domain: str, db: Session = Depends(get_db)):
    """Re-check one domain now and store the result on its owner."""
    try:
        result = domain_service.get_domain_status(domain)
    except domain_service.DomainError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except VercelError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    except requests.RequestException as exc:
        logger.exception("Hosting provider unreachable while refreshing %s", domain)
        raise HTTPException(status_code=502, detail=str(exc))
    owner = domain_service.persist_domain_status_for_domain(db, result["domain"], {"ok": True, **result})
    return {"success": True, "store_id": owner.store_id if owner else None, **result}


@router.delete("/domains/{store_id}", status_code=204)
def unlink_domain(store_id: int, db: Session = Depends(get_db)):
    if not domain_service.clear_store_custom_domain(db, store_id):
        raise HTTPException(status_code=404, detail="No custom domain linked")
    return None
