from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.cms.models import Base


class HeroSection(Base):
    """Single-row table (id=1)."""

    __tablename__ = "hero_section"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slogan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    main_heading: Mapped[str] = mapped_column(String(255), nullable=False)
    highlight_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subtitle: Mapped[str | None] = mapped_column(Text, nullable=True)
    background_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    background_image_alt: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_button_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
    primary_button_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    secondary_button_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
    secondary_button_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slogan": self.slogan,
            "main_heading": self.main_heading,
            "highlight_text": self.highlight_text,
            "subtitle": self.subtitle,
            "background_image_url": self.background_image_url,
            "background_image_alt": self.background_image_alt,
            "primary_button_text": self.primary_button_text,
            "primary_button_link": self.primary_button_link,
            "secondary_button_text": self.secondary_button_text,
            "secondary_button_link": self.secondary_button_link,
        }


class HeroStat(Base):
    __tablename__ = "hero_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    number_text: Mapped[str] = mapped_column(String(50), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number_text": self.number_text,
            "label": self.label,
            "description": self.description,
            "display_order": self.display_order,
        }


class HeroFeature(Base):
    __tablename__ = "hero_features"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "description": self.description, "display_order": self.display_order}
