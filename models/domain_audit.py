from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


class DomainAudit(Base):
    __tablename__ = "domain_audit"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    action: Mapped[str] = mapped_column(String(50))  # cron_refresh, link, unlink
    domain: Mapped[str] = mapped_column(String(255), index=True)
    # Plain column: audit rows outlive the stores they mention
    store_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    ok: Mapped[bool] = mapped_column(Boolean, default=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
