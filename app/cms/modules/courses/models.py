from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.cms.models import Base


class CourseCategory(Base):
    __tablename__ = "course_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
        }


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (
        Index("idx_courses_category_id", "category_id"),
        Index("idx_courses_popular", "popular"),
        Index("idx_courses_published", "published"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    audience: Mapped[str | None] = mapped_column(String(100), nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("course_categories.id", ondelete="SET NULL"), nullable=True
    )
    popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_alt: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # long-form detail page content
    overview: Mapped[str | None] = mapped_column(Text, nullable=True)
    includes: Mapped[str | None] = mapped_column(Text, nullable=True)
    format: Mapped[str | None] = mapped_column(Text, nullable=True)
    passing_grade: Mapped[str | None] = mapped_column(String(100), nullable=True)
    what_youll_learn: Mapped[str | None] = mapped_column(Text, nullable=True)

    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    category: Mapped[CourseCategory | None] = relationship(lazy="joined")
    features: Mapped[list["CourseFeature"]] = relationship(
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseFeature.display_order",
        lazy="selectin",
    )

    def to_dict(self, *, include_features: bool = True) -> dict:
        data = {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "audience": self.audience,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else "Uncategorized",
            "popular": self.popular,
            "image_url": self.image_url,
            "image_alt": self.image_alt,
            "overview": self.overview,
            "includes": self.includes,
            "format": self.format,
            "passing_grade": self.passing_grade,
            "what_youll_learn": self.what_youll_learn,
            "published": self.published,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_features:
            data["features"] = [f.feature for f in self.features]
        return data


class CourseFeature(Base):
    __tablename__ = "course_features"
    __table_args__ = (Index("idx_course_features_course_id", "course_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    feature: Mapped[str] = mapped_column(String(500), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    course: Mapped[Course] = relationship(back_populates="features")
