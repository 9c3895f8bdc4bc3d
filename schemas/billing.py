from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class InvoiceCreate(BaseModel):
    store_id: int
    plan_id: int
    period: Literal["monthly", "yearly"] = "monthly"


class PaymentReferenceSubmit(BaseModel):
    reference_code: str = Field(min_length=3, max_length=100)
    paid_at: Optional[datetime] = None
    amount: Optional[float] = Field(default=None, ge=0)
    payer_name: Optional[str] = Field(default=None, max_length=200)
    note: Optional[str] = Field(default=None, max_length=1000)


class ReceiptAttach(BaseModel):
    filename: str = Field(min_length=1, max_length=200)


class InvoiceReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class InvoicePaymentOut(BaseModel):
    reference_code: str
    paid_at: Optional[datetime] = None
    amount: Optional[float] = None
    payer_name: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: int
    store_id: int
    plan_id: int
    period: str
    amount: float
    currency: str
    status: str
    receipt_url: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime
    payments: List[InvoicePaymentOut] = []

    class Config:
        from_attributes = True


class SubscriptionOut(BaseModel):
    id: int
    store_id: int
    plan_id: int
    period: str
    starts_at: datetime
    ends_at: Optional[datetime] = None
    is_active: bool

    class Config:
        from_attributes = True
