from datetime import datetime
from pydantic import BaseModel, AnyHttpUrl, Field
from typing import Any, Dict, Literal, Optional


DEFAULT_ORDER_MESSAGE_TEMPLATE = (
    "New order\n{orderDetails}\nTotal: {total}\n"
    "Name: {customerName}\nPhone: {customerPhone}\nNotes: {notes}"
)


class StoreTheme(BaseModel):
    primary_color: str = "#111827"
    secondary_color: str = "#6B7280"
    accent_color: str = "#F59E0B"
    background_color: str = "#FFFFFF"
    text_color: str = "#111827"
    font_family: str = "Inter"
    corner_radius: Optional[Literal["none", "sm", "md", "lg", "xl", "full"]] = None
    product_card_variant: Optional[Literal["minimal", "bordered", "shadow"]] = None
    header_style: Optional[Literal["simple", "centered", "split"]] = None
    hero_enabled: bool = True
    announcement_enabled: bool = False
    announcement_text: Optional[str] = None


class StoreSettings(BaseModel):
    currency: str = Field(default="USD", min_length=3, max_length=3)
    language: Literal["en", "ar"] = "en"
    allow_delivery: bool = False
    delivery_fee: float = Field(default=0, ge=0)
    minimum_order: float = Field(default=0, ge=0)
    order_message_template: str = DEFAULT_ORDER_MESSAGE_TEMPLATE


class StoreCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    logo_url: Optional[AnyHttpUrl] = None
    whatsapp_number: Optional[str] = Field(default=None, max_length=50)
    theme: Optional[StoreTheme] = None
    settings: Optional[StoreSettings] = None


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    logo_url: Optional[AnyHttpUrl] = None
    whatsapp_number: Optional[str] = Field(default=None, max_length=50)
    theme: Optional[StoreTheme] = None
    settings: Optional[StoreSettings] = None
    is_active: Optional[bool] = None


class StoreOut(BaseModel):
    id: int
    merchant_id: int
    name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    whatsapp_number: Optional[str] = None
    theme: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    is_active: bool
    custom_domain: Optional[str] = None
    domain_verified: bool = False
    domain_status: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
