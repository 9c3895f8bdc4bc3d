import calendar
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from core.config import settings
from models.invoice import Invoice
from models.invoice_payment import InvoicePayment
from models.plan import Plan
from models.store import Store
from models.subscription import Subscription

logger = logging.getLogger(__name__)

PENDING_RECEIPT = "pending_receipt"
UNDER_REVIEW = "under_review"
APPROVED = "approved"
REJECTED = "rejected"

_REVIEWABLE = (PENDING_RECEIPT, UNDER_REVIEW)


class InvoiceStateError(ValueError):
    pass


def _add_months(start: datetime, months: int) -> datetime:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp Jan 31 + 1 month to the end of February
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def period_end(starts_at: datetime, period: str) -> datetime:
    return _add_months(starts_at, 12 if period == "yearly" else 1)


def plan_price(plan: Plan, period: str) -> Decimal:
    if period == "yearly":
        if plan.price_yearly is not None:
            return Decimal(str(plan.price_yearly))
        return Decimal(str(plan.price_monthly)) * 12
    return Decimal(str(plan.price_monthly))


def create_invoice(db: Session, store: Store, plan: Plan, period: str) -> Invoice:
    if not plan.is_active:
        raise InvoiceStateError("This plan is no longer available")
    invoice = Invoice(
        store_id=store.id,
        plan_id=plan.id,
        period=period,
        amount=plan_price(plan, period),
        currency=plan.currency,
        status=PENDING_RECEIPT,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info("Invoice %s created for store %s (plan %s, %s)", invoice.id, store.id, plan.name, period)
    return invoice


def submit_payment_reference(
    db: Session,
    invoice: Invoice,
    reference_code: str,
    paid_at: Optional[datetime] = None,
    amount: Optional[float] = None,
    payer_name: Optional[str] = None,
    note: Optional[str] = None,
) -> Invoice:
    """Record a bank transfer reference and queue the invoice for admin review."""
    if invoice.status not in _REVIEWABLE:
        raise InvoiceStateError(f"Invoice is already {invoice.status}")
    db.add(InvoicePayment(
        invoice_id=invoice.id,
        store_id=invoice.store_id,
        reference_code=reference_code.strip(),
        paid_at=paid_at,
        amount=amount,
        payer_name=payer_name,
        note=note,
    ))
    invoice.status = UNDER_REVIEW
    db.commit()
    db.refresh(invoice)
    return invoice


def receipt_path(invoice: Invoice, filename: str, now: Optional[datetime] = None) -> str:
    stamp = int((now or datetime.utcnow()).timestamp() * 1000)
    safe_name = filename.replace("/", "_").replace("\\", "_")
    return f"{settings.RECEIPTS_BUCKET}/{invoice.store_id}/{invoice.id}-{stamp}-{safe_name}"


def attach_receipt(db: Session, invoice: Invoice, filename: str) -> Invoice:
    if invoice.status not in _REVIEWABLE:
        raise InvoiceStateError(f"Invoice is already {invoice.status}")
    invoice.receipt_url = receipt_path(invoice, filename)
    invoice.status = UNDER_REVIEW
    db.commit()
    db.refresh(invoice)
    return invoice


def list_pending_invoices(db: Session) -> List[Invoice]:
    return (
        db.query(Invoice)
        .options(selectinload(Invoice.payments))
        .filter(Invoice.status == UNDER_REVIEW)
        .order_by(Invoice.created_at.desc())
        .all()
    )


def approve_invoice(db: Session, invoice: Invoice, now: Optional[datetime] = None) -> Subscription:
    """Activate the requested plan: a new subscription row becomes the store's latest."""
    if invoice.status not in _REVIEWABLE:
        raise InvoiceStateError(f"Invoice is already {invoice.status}")
    starts_at = now or datetime.utcnow()
    subscription = Subscription(
        store_id=invoice.store_id,
        plan_id=invoice.plan_id,
        period=invoice.period,
        starts_at=starts_at,
        ends_at=period_end(starts_at, invoice.period),
        is_active=True,
    )
    db.add(subscription)
    invoice.status = APPROVED
    db.commit()
    db.refresh(subscription)
    logger.info("Invoice %s approved, subscription %s active for store %s", invoice.id, subscription.id, invoice.store_id)
    return subscription


def reject_invoice(db: Session, invoice: Invoice, reason: Optional[str] = None) -> Invoice:
    if invoice.status not in _REVIEWABLE:
        raise InvoiceStateError(f"Invoice is already {invoice.status}")
    invoice.status = REJECTED
    if reason:
        invoice.reason = reason
    db.commit()
    db.refresh(invoice)
    logger.info("Invoice %s rejected", invoice.id)
    return invoice


def get_active_subscription(db: Session, store_id: int) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.store_id == store_id, Subscription.is_active.is_(True))
        .order_by(Subscription.starts_at.desc(), Subscription.id.desc())
        .first()
    )


def cancel_subscription(db: Session, subscription: Subscription) -> Subscription:
    subscription.is_active = False
    subscription.ends_at = datetime.utcnow()
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription %s cancelled", subscription.id)
    return subscription
