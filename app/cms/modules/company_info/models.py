from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.cms.models import Base


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class CompanyInfo(Base):
    """Single-row table; the site always reads/writes id=1."""

    __tablename__ = "company_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slogan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    mission: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    students_trained_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    established_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_courses: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # contact block
    phone: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_hours: Mapped[str | None] = mapped_column(String(255), nullable=True)
    response_time: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    emergency_availability: Mapped[str | None] = mapped_column(String(255), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_name": self.company_name,
            "slogan": self.slogan,
            "description": self.description,
            "mission": self.mission,
            "total_experience": self.total_experience,
            "students_trained_count": self.students_trained_count,
            "established_year": self.established_year,
            "total_courses": self.total_courses,
            "phone": self.phone,
            "email": self.email,
            "location": self.location,
            "business_hours": self.business_hours,
            "response_time": self.response_time,
            "service_area": self.service_area,
            "emergency_availability": self.emergency_availability,
            "updated_at": _iso(self.updated_at),
        }


class CompanyValue(Base):
    __tablename__ = "company_values"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "display_order": self.display_order,
        }


class WhyChooseUs(Base):
    __tablename__ = "company_why_choose_us"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    point: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_alt: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "point": self.point,
            "display_order": self.display_order,
            "image_url": self.image_url,
            "image_alt": self.image_alt,
        }
