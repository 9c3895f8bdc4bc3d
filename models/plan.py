from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Text, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, JSON_TYPE


class Plan(Base):
    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_monthly: Mapped[float] = mapped_column(Numeric(12, 2), default=0)
    price_yearly: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # null (or -1) means unlimited
    product_limit: Mapped[int | None] = mapped_column(nullable=True)
    variant_limit: Mapped[int | None] = mapped_column(nullable=True)
    storage_mb: Mapped[int | None] = mapped_column(nullable=True)
    features: Mapped[list | None] = mapped_column(JSON_TYPE, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
