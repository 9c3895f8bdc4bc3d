from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from core.db import get_db
from core.tenancy import check_store_access
from models.invoice import Invoice
from models.plan import Plan
from models.store import Store
from models.user import User
from routes.auth import get_current_user
from schemas.billing import (
    InvoiceCreate,
    InvoiceOut,
    PaymentReferenceSubmit,
    ReceiptAttach,
    SubscriptionOut,
)
from schemas.plan import PlanOut
from services import billing as billing_service

router = APIRouter(prefix="/billing", tags=["billing"])


def _owned_store(db: Session, user: User, store_id: int) -> Store:
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    if not check_store_access(user, store):
        raise HTTPException(status_code=403, detail="You do not have access to this store")
    return store


def _owned_invoice(db: Session, user: User, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    _owned_store(db, user, invoice.store_id)
    return invoice


@router.get("/plans", response_model=List[PlanOut])
def list_plans(db: Session = Depends(get_db)):
    return db.query(Plan).filter(Plan.is_active.is_(True)).order_by(Plan.price_monthly, Plan.id).all()


@router.post("/invoices", response_model=InvoiceOut, status_code=201)
def create_invoice(data: InvoiceCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    store = _owned_store(db, current_user, data.store_id)
    plan = db.get(Plan, data.plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    try:
        return billing_service.create_invoice(db, store, plan, data.period)
    except billing_service.InvoiceStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/invoices", response_model=List[InvoiceOut])
def list_invoices(store_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    store = _owned_store(db, current_user, store_id)
    return (
        db.query(Invoice)
        .options(selectinload(Invoice.payments))
        .filter(Invoice.store_id == store.id)
        .order_by(Invoice.created_at.desc())
        .all()
    )


@router.post("/invoices/{invoice_id}/payment-reference", response_model=InvoiceOut)
def submit_payment_reference(
    invoice_id: int,
    data: PaymentReferenceSubmit,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = _owned_invoice(db, current_user, invoice_id)
    try:
        return billing_service.submit_payment_reference(
            db,
            invoice,
            reference_code=data.reference_code,
            paid_at=data.paid_at,
            amount=data.amount,
            payer_name=data.payer_name,
            note=data.note,
        )
    except billing_service.InvoiceStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.post("/invoices/{invoice_id}/receipt", response_model=InvoiceOut)
def attach_receipt(
    invoice_id: int,
    data: ReceiptAttach,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invoice = _owned_invoice(db, current_user, invoice_id)
    try:
        return billing_service.attach_receipt(db, invoice, data.filename)
    except billing_service.InvoiceStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.get("/stores/{store_id}/subscription", response_model=Optional[SubscriptionOut])
def current_subscription(store_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    store = _owned_store(db, current_user, store_id)
    return billing_service.get_active_subscription(db, store.id)
