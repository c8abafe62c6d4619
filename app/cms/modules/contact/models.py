from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.cms.models import Base


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"
    __table_args__ = (
        Index("idx_contact_submissions_created_at", "created_at"),
        Index("idx_contact_submissions_ip_email", "ip_address", "email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    submission_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    company: Mapped[str | None] = mapped_column(String(100), nullable=True)
    training_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    security_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    time_spent_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    webhook_status: Mapped[str | None] = mapped_column(String(32), nullable=True)  # skipped|sent|failed
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "training_type": self.training_type,
            "message": self.message,
            "ip_address": self.ip_address,
            "security_score": self.security_score,
            "time_spent_ms": self.time_spent_ms,
            "webhook_status": self.webhook_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
