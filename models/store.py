from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, JSON_TYPE


class Store(Base):
    __tablename__ = "stores"
    __table_args__ = (
        # A merchant cannot own two stores with the same name
        UniqueConstraint("merchant_id", "name", name="uq_stores_merchant_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    merchant_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(150), index=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    whatsapp_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Storefront appearance (colors, font, section toggles)
    theme: Mapped[dict | None] = mapped_column(JSON_TYPE, nullable=True)
    # Business settings: currency, delivery rules, order message template
    settings: Mapped[dict | None] = mapped_column(JSON_TYPE, nullable=True)

    # Soft delete
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    merchant = relationship("User", back_populates="stores")
    domain_link = relationship("StoreDomain", back_populates="store", uselist=False, cascade="all, delete-orphan")
    categories = relationship("Category", cascade="all, delete-orphan", passive_deletes=True)
    products = relationship("Product", cascade="all, delete-orphan", passive_deletes=True)
    orders = relationship("Order", cascade="all, delete-orphan", passive_deletes=True)
    subscriptions = relationship("Subscription", back_populates="store", cascade="all, delete-orphan", passive_deletes=True)
    invoices = relationship("Invoice", back_populates="store", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def custom_domain(self) -> str | None:
        return self.domain_link.domain if self.domain_link else None

    @property
    def domain_verified(self) -> bool:
        return bool(self.domain_link and self.domain_link.verified)

    @property
    def domain_status(self) -> dict | None:
        return self.domain_link.status if self.domain_link else None
