from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, JSON_TYPE


class StoreDomain(Base):
    """Custom domain registration for a store.

    Both ``store_id`` and ``domain`` are unique: a store links at most one
    domain and a normalized domain belongs to at most one store.
    """

    __tablename__ = "store_domains"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), unique=True, index=True)
    domain: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # Exact host registered with the provider (may keep a leading "www."); None means same as domain
    provider_domain: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    # Last provider response, e.g. {"domain": ..., "ok": true, "verified": false, "verification": [...]}
    status: Mapped[dict | None] = mapped_column(JSON_TYPE, nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    store = relationship("Store", back_populates="domain_link")

    @property
    def provider_host(self) -> str:
        return self.provider_domain or self.domain
