from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class CheckoutItem(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    customer_name: str = Field(min_length=2, max_length=200)
    customer_phone: str = Field(min_length=6, max_length=50)
    notes: Optional[str] = Field(default=None, max_length=1000)
    delivery_method: Literal["pickup", "delivery"] = "pickup"
    items: List[CheckoutItem]


class OrderLine(BaseModel):
    product_id: int
    product_name: str
    price: float
    quantity: int
    total: float


class OrderOut(BaseModel):
    id: int
    order_number: str
    items: List[OrderLine]
    subtotal: float
    delivery_fee: float
    total: float
    customer_name: str
    customer_phone: str
    notes: Optional[str] = None
    delivery_method: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class CheckoutResponse(BaseModel):
    order: OrderOut
    whatsapp_url: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "completed", "cancelled"]
