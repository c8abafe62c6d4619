"""
Seed default site content (idempotent).

Only empty tables are filled, so edits made through the admin API survive
re-runs.

Usage:
  python scripts/seed_content.py
"""
from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.cms.models import (  # noqa: E402
    CompanyInfo,
    CompanyValue,
    CourseCategory,
    FooterBottomBadge,
    FooterCertification,
    FooterContent,
    FooterQuickLink,
    FooterStat,
    HeroFeature,
    HeroSection,
    HeroStat,
    WhyChooseUs,
)
from scripts._db_utils import resolve_database_url, script_session  # noqa: E402

COMPANY_INFO = {
    "company_name": "Karma Industrial Safety Training",
    "slogan": "Excellence in Industrial Safety Training",
    "description": "Practical, hands-on safety training for industrial teams across Northern British Columbia.",
    "mission": "Send every worker home safe by building real skills, not just paperwork.",
    "total_experience": 20,
    "students_trained_count": 2000,
    "established_year": 2017,
    "total_courses": 14,
    "phone": "(250) 555-0100",
    "email": "info@example.com",
    "location": "Prince George, BC",
    "business_hours": "Mon-Fri 8:00-17:00",
    "response_time": "Within one business day",
    "service_area": "Northern BC and on-site across Western Canada",
    "emergency_availability": "By arrangement",
}

COMPANY_VALUES = [
    ("Safety First", "Every course starts from the hazards your crew actually faces.", "shield"),
    ("Hands-On Learning", "Equipment time and realistic scenarios over slide decks.", "tool"),
    ("Certified Instructors", "Instructors with field experience and current certifications.", "award"),
]

WHY_CHOOSE_US = [
    "Training delivered on-site at your facility or in our classroom",
    "Course content mapped to WorkSafeBC requirements",
    "Flexible scheduling including evenings and weekends",
    "Certificates issued the same day the course is completed",
]

COURSE_CATEGORIES = [
    ("Safety Orientation", "Introductory and site-specific orientation courses."),
    ("Equipment Operation", "Operator training for mobile and lifting equipment."),
    ("Hazard Awareness", "WHMIS, fall protection, confined space and related awareness courses."),
]

HERO_SECTION = {
    "slogan": "Industrial safety training",
    "main_heading": "Build a safer crew",
    "highlight_text": "with hands-on training",
    "subtitle": "Certified courses delivered on your schedule, at your site or ours.",
    "primary_button_text": "View Courses",
    "primary_button_link": "/courses",
    "secondary_button_text": "Contact Us",
    "secondary_button_link": "/contact",
}
HERO_STATS = [("2000+", "Students Trained", None), ("14", "Courses", None), ("20+", "Years Experience", None)]
HERO_FEATURES = [
    ("Certified Instructors", "Field-experienced trainers."),
    ("On-Site Delivery", "We bring the course to your crew."),
    ("Same-Day Certificates", "Paperwork handled before you leave."),
]

FOOTER_CONTENT = {
    "company_name": "Karma Industrial Safety Training",
    "tagline": "Professional Safety Training",
    "slogan": "We believe the choices you make today will define your tomorrow",
    "description": "Industrial safety training for Northern BC.",
    "phone": "(250) 555-0100",
    "email": "info@example.com",
    "location": "Prince George, BC",
    "copyright_text": "Karma Industrial Safety Training. All rights reserved.",
    "tagline_bottom": "Safety training that sticks",
}
FOOTER_STATS = [("2000+", "Students Trained"), ("14", "Courses"), ("20+", "Years")]
FOOTER_QUICK_LINKS = [("About Us", "/about"), ("Courses", "/courses"), ("Contact", "/contact"), ("Privacy", "/privacy")]
FOOTER_CERTIFICATIONS = [("WorkSafeBC Compliant", "shield"), ("IVES Certified", "award")]
FOOTER_BOTTOM_BADGES = [("Certified Training", "check"), ("Locally Owned", "home")]


def _empty(s, model) -> bool:
    return s.query(model.id).first() is None


def seed_content(*, database_url: str | None = None) -> dict[str, int]:
    db_url = resolve_database_url(database_url)
    now = datetime.utcnow()
    seeded: dict[str, int] = {}

    with script_session(db_url) as s:
        if s.get(CompanyInfo, 1) is None:
            s.add(CompanyInfo(id=1, updated_at=now, **COMPANY_INFO))
            seeded["company_info"] = 1
        if _empty(s, CompanyValue):
            for idx, (title, description, icon) in enumerate(COMPANY_VALUES):
                s.add(CompanyValue(title=title, description=description, icon=icon, display_order=idx))
            seeded["company_values"] = len(COMPANY_VALUES)
        if _empty(s, WhyChooseUs):
            for idx, point in enumerate(WHY_CHOOSE_US):
                s.add(WhyChooseUs(point=point, display_order=idx))
            seeded["why_choose_us"] = len(WHY_CHOOSE_US)
        if _empty(s, CourseCategory):
            for idx, (name, description) in enumerate(COURSE_CATEGORIES):
                s.add(CourseCategory(name=name, description=description, display_order=idx))
            seeded["course_categories"] = len(COURSE_CATEGORIES)

        if s.get(HeroSection, 1) is None:
            s.add(HeroSection(id=1, updated_at=now, **HERO_SECTION))
            seeded["hero_section"] = 1
        if _empty(s, HeroStat):
            for idx, (number_text, label, description) in enumerate(HERO_STATS):
                s.add(HeroStat(number_text=number_text, label=label, description=description, display_order=idx))
            seeded["hero_stats"] = len(HERO_STATS)
        if _empty(s, HeroFeature):
            for idx, (title, description) in enumerate(HERO_FEATURES):
                s.add(HeroFeature(title=title, description=description, display_order=idx))
            seeded["hero_features"] = len(HERO_FEATURES)

        if s.get(FooterContent, 1) is None:
            s.add(FooterContent(id=1, updated_at=now, **FOOTER_CONTENT))
            seeded["footer_content"] = 1
        if _empty(s, FooterStat):
            for idx, (number_text, label) in enumerate(FOOTER_STATS):
                s.add(FooterStat(number_text=number_text, label=label, display_order=idx))
            seeded["footer_stats"] = len(FOOTER_STATS)
        if _empty(s, FooterQuickLink):
            for idx, (title, url) in enumerate(FOOTER_QUICK_LINKS):
                s.add(FooterQuickLink(title=title, url=url, display_order=idx, is_active=True))
            seeded["footer_quick_links"] = len(FOOTER_QUICK_LINKS)
        if _empty(s, FooterCertification):
            for idx, (title, icon) in enumerate(FOOTER_CERTIFICATIONS):
                s.add(FooterCertification(title=title, icon=icon, display_order=idx, is_active=True))
            seeded["footer_certifications"] = len(FOOTER_CERTIFICATIONS)
        if _empty(s, FooterBottomBadge):
            for idx, (title, icon) in enumerate(FOOTER_BOTTOM_BADGES):
                s.add(FooterBottomBadge(title=title, icon=icon, display_order=idx, is_active=True))
            seeded["footer_bottom_badges"] = len(FOOTER_BOTTOM_BADGES)

    for table, count in seeded.items():
        print(f"Seeded {table}: {count}")
    if not seeded:
        print("Content already present; nothing seeded.")
    return seeded


def main() -> None:
    seed_content(database_url=None)


if __name__ == "__main__":
    main()
