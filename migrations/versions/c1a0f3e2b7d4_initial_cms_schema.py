"""Initial CMS schema: admin auth, site content, media files, contact submissions.

Revision ID: c1a0f3e2b7d4
Revises:
Create Date: 2026-10-12

Tables are only created when missing so the revision can be stamped onto a
database that was bootstrapped with scripts/init_db.py.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "c1a0f3e2b7d4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return inspect(op.get_bind()).has_table(name)


def _timestamps(*names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.DateTime(), nullable=False, server_default=sa.func.now()) for n in names]


def upgrade() -> None:
    # --- admin auth ---
    if not _has_table("admin_users"):
        op.create_table(
            "admin_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(50), nullable=False),
            sa.Column("email", sa.String(254), nullable=False),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("role", sa.String(32), nullable=False, server_default="admin"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_login", sa.DateTime(), nullable=True),
            *_timestamps("created_at", "updated_at"),
            sa.UniqueConstraint("username"),
            sa.UniqueConstraint("email"),
        )

    if not _has_table("admin_sessions"):
        op.create_table(
            "admin_sessions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("token", sa.Text(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.Column("ip_address", sa.String(64), nullable=True),
            sa.Column("user_agent", sa.String(255), nullable=True),
            *_timestamps("created_at", "last_activity"),
            sa.ForeignKeyConstraint(["user_id"], ["admin_users.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("token"),
        )
        op.create_index("idx_admin_sessions_user_id", "admin_sessions", ["user_id"])
        op.create_index("idx_admin_sessions_expires_at", "admin_sessions", ["expires_at"])

    if not _has_table("csrf_tokens"):
        op.create_table(
            "csrf_tokens",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("scope", sa.String(16), nullable=False, server_default="admin"),
            sa.Column("session_id", sa.Integer(), nullable=False),
            sa.Column("token", sa.String(128), nullable=False),
            *_timestamps("created_at"),
        )
        op.create_index("idx_csrf_tokens_scope_session", "csrf_tokens", ["scope", "session_id"])

    if not _has_table("public_sessions"):
        op.create_table(
            "public_sessions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("session_token", sa.String(128), nullable=False),
            sa.Column("ip_address", sa.String(64), nullable=True),
            sa.Column("user_agent", sa.String(255), nullable=True),
            *_timestamps("created_at"),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("session_token"),
        )

    if not _has_table("failed_login_attempts"):
        op.create_table(
            "failed_login_attempts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(100), nullable=False),
            sa.Column("ip_address", sa.String(64), nullable=False),
            sa.Column("user_agent", sa.String(255), nullable=True),
            *_timestamps("attempted_at"),
        )
        op.create_index("idx_failed_login_username", "failed_login_attempts", ["username"])
        op.create_index("idx_failed_login_ip", "failed_login_attempts", ["ip_address"])
        op.create_index("idx_failed_login_attempted_at", "failed_login_attempts", ["attempted_at"])

    if not _has_table("audit_events"):
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            *_timestamps("created_at"),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), nullable=True),
            sa.Column("actor_username", sa.String(50), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.ForeignKeyConstraint(["actor_user_id"], ["admin_users.id"], ondelete="SET NULL"),
        )
        op.create_index("idx_audit_events_created_at", "audit_events", ["created_at"])
        op.create_index("idx_audit_events_action", "audit_events", ["action"])

    # --- company info ---
    if not _has_table("company_info"):
        op.create_table(
            "company_info",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("company_name", sa.String(255), nullable=False),
            sa.Column("slogan", sa.String(255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("mission", sa.Text(), nullable=True),
            sa.Column("total_experience", sa.Integer(), nullable=True),
            sa.Column("students_trained_count", sa.Integer(), nullable=True),
            sa.Column("established_year", sa.Integer(), nullable=True),
            sa.Column("total_courses", sa.Integer(), nullable=True),
            sa.Column("phone", sa.String(255), nullable=True),
            sa.Column("email", sa.String(255), nullable=True),
            sa.Column("location", sa.String(255), nullable=True),
            sa.Column("business_hours", sa.String(255), nullable=True),
            sa.Column("response_time", sa.String(255), nullable=True),
            sa.Column("service_area", sa.String(255), nullable=True),
            sa.Column("emergency_availability", sa.String(255), nullable=True),
            *_timestamps("updated_at"),
        )

    if not _has_table("company_values"):
        op.create_table(
            "company_values",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("icon", sa.String(100), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("created_at", "updated_at"),
            sa.UniqueConstraint("title"),
        )

    if not _has_table("company_why_choose_us"):
        op.create_table(
            "company_why_choose_us",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("point", sa.String(500), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("image_url", sa.String(500), nullable=True),
            sa.Column("image_alt", sa.String(255), nullable=True),
            *_timestamps("created_at", "updated_at"),
            sa.UniqueConstraint("point"),
        )

    # --- courses ---
    if not _has_table("course_categories"):
        op.create_table(
            "course_categories",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("created_at"),
            sa.UniqueConstraint("name"),
        )

    if not _has_table("courses"):
        op.create_table(
            "courses",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("slug", sa.String(100), nullable=False),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("duration", sa.String(100), nullable=True),
            sa.Column("audience", sa.String(100), nullable=True),
            sa.Column("category_id", sa.Integer(), nullable=True),
            sa.Column("popular", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("image_url", sa.String(500), nullable=True),
            sa.Column("image_alt", sa.String(255), nullable=True),
            sa.Column("overview", sa.Text(), nullable=True),
            sa.Column("includes", sa.Text(), nullable=True),
            sa.Column("format", sa.Text(), nullable=True),
            sa.Column("passing_grade", sa.String(100), nullable=True),
            sa.Column("what_youll_learn", sa.Text(), nullable=True),
            sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            *_timestamps("created_at", "updated_at"),
            sa.ForeignKeyConstraint(["category_id"], ["course_categories.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("slug"),
        )
        op.create_index("idx_courses_category_id", "courses", ["category_id"])
        op.create_index("idx_courses_popular", "courses", ["popular"])
        op.create_index("idx_courses_published", "courses", ["published"])

    if not _has_table("course_features"):
        op.create_table(
            "course_features",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("course_id", sa.Integer(), nullable=False),
            sa.Column("feature", sa.String(500), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        )
        op.create_index("idx_course_features_course_id", "course_features", ["course_id"])

    # --- people ---
    if not _has_table("team_members"):
        op.create_table(
            "team_members",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("role", sa.String(100), nullable=False),
            sa.Column("bio", sa.Text(), nullable=True),
            sa.Column("photo_url", sa.String(500), nullable=True),
            sa.Column("experience_years", sa.Integer(), nullable=True),
            sa.Column("specializations", sa.JSON(), nullable=True),
            sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("created_at", "updated_at"),
            sa.UniqueConstraint("name"),
        )
        op.create_index("idx_team_members_featured", "team_members", ["featured"])
        op.create_index("idx_team_members_display_order", "team_members", ["display_order"])

    if not _has_table("testimonials"):
        op.create_table(
            "testimonials",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_name", sa.String(100), nullable=False),
            sa.Column("client_role", sa.String(100), nullable=False),
            sa.Column("company", sa.String(150), nullable=False),
            sa.Column("industry", sa.String(100), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("rating", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("client_photo_url", sa.String(500), nullable=True),
            sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            *_timestamps("created_at", "updated_at"),
        )
        op.create_index("idx_testimonials_featured", "testimonials", ["featured"])
        op.create_index("idx_testimonials_created_at", "testimonials", ["created_at"])

    # --- footer ---
    if not _has_table("footer_content"):
        op.create_table(
            "footer_content",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("company_name", sa.String(255), nullable=False),
            sa.Column("tagline", sa.String(255), nullable=True),
            sa.Column("slogan", sa.String(255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("phone", sa.String(50), nullable=True),
            sa.Column("email", sa.String(254), nullable=True),
            sa.Column("location", sa.String(255), nullable=True),
            sa.Column("logo_url", sa.String(500), nullable=True),
            sa.Column("logo_alt", sa.String(255), nullable=True),
            sa.Column("copyright_text", sa.String(255), nullable=True),
            sa.Column("tagline_bottom", sa.String(255), nullable=True),
            *_timestamps("updated_at"),
        )

    if not _has_table("footer_stats"):
        op.create_table(
            "footer_stats",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("number_text", sa.String(50), nullable=False),
            sa.Column("label", sa.String(100), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("updated_at"),
        )

    for table, unique_icon in (
        ("footer_quick_links", None),
        ("footer_certifications", False),
        ("footer_bottom_badges", True),
    ):
        if _has_table(table):
            continue
        cols = [
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(100), nullable=False),
        ]
        if unique_icon is None:
            cols.append(sa.Column("url", sa.String(500), nullable=False))
        else:
            cols.append(sa.Column("icon", sa.String(100), nullable=True))
        cols += [
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            *_timestamps("updated_at"),
        ]
        if unique_icon:
            cols.append(sa.UniqueConstraint("icon"))
        op.create_table(table, *cols)

    # --- hero ---
    if not _has_table("hero_section"):
        op.create_table(
            "hero_section",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("slogan", sa.String(255), nullable=True),
            sa.Column("main_heading", sa.String(255), nullable=False),
            sa.Column("highlight_text", sa.String(255), nullable=True),
            sa.Column("subtitle", sa.Text(), nullable=True),
            sa.Column("background_image_url", sa.String(500), nullable=True),
            sa.Column("background_image_alt", sa.String(255), nullable=True),
            sa.Column("primary_button_text", sa.String(100), nullable=True),
            sa.Column("primary_button_link", sa.String(500), nullable=True),
            sa.Column("secondary_button_text", sa.String(100), nullable=True),
            sa.Column("secondary_button_link", sa.String(500), nullable=True),
            *_timestamps("updated_at"),
        )

    if not _has_table("hero_stats"):
        op.create_table(
            "hero_stats",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("number_text", sa.String(50), nullable=False),
            sa.Column("label", sa.String(100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("updated_at"),
        )

    if not _has_table("hero_features"):
        op.create_table(
            "hero_features",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps("updated_at"),
            sa.UniqueConstraint("title"),
        )

    # --- media + contact ---
    if not _has_table("files"):
        op.create_table(
            "files",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("filename", sa.String(255), nullable=False),
            sa.Column("original_name", sa.String(255), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=False),
            sa.Column("mime_type", sa.String(100), nullable=False),
            sa.Column("file_extension", sa.String(10), nullable=True),
            sa.Column("blob_url", sa.String(500), nullable=False),
            sa.Column("blob_pathname", sa.String(500), nullable=False),
            sa.Column("width", sa.Integer(), nullable=True),
            sa.Column("height", sa.Integer(), nullable=True),
            sa.Column("alt_text", sa.Text(), nullable=True),
            sa.Column("title", sa.String(255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("category", sa.String(50), nullable=False, server_default="general"),
            sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("status", sa.String(20), nullable=False, server_default="active"),
            sa.Column("uploaded_by", sa.Integer(), nullable=True),
            *_timestamps("uploaded_at", "updated_at"),
            sa.ForeignKeyConstraint(["uploaded_by"], ["admin_users.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("blob_pathname"),
        )
        op.create_index("idx_files_category", "files", ["category"])
        op.create_index("idx_files_status", "files", ["status"])
        op.create_index("idx_files_uploaded_at", "files", ["uploaded_at"])

    if not _has_table("contact_submissions"):
        op.create_table(
            "contact_submissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("submission_id", sa.String(64), nullable=False),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("email", sa.String(254), nullable=False),
            sa.Column("phone", sa.String(20), nullable=True),
            sa.Column("company", sa.String(100), nullable=True),
            sa.Column("training_type", sa.String(50), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("ip_address", sa.String(64), nullable=True),
            sa.Column("user_agent", sa.String(255), nullable=True),
            sa.Column("security_score", sa.Integer(), nullable=True),
            sa.Column("time_spent_ms", sa.Integer(), nullable=True),
            sa.Column("webhook_status", sa.String(32), nullable=True),
            *_timestamps("created_at"),
            sa.UniqueConstraint("submission_id"),
        )
        op.create_index("idx_contact_submissions_created_at", "contact_submissions", ["created_at"])
        op.create_index("idx_contact_submissions_ip_email", "contact_submissions", ["ip_address", "email"])


def downgrade() -> None:
    for table in (
        "contact_submissions",
        "files",
        "hero_features",
        "hero_stats",
        "hero_section",
        "footer_bottom_badges",
        "footer_certifications",
        "footer_quick_links",
        "footer_stats",
        "footer_content",
        "testimonials",
        "team_members",
        "course_features",
        "courses",
        "course_categories",
        "company_why_choose_us",
        "company_values",
        "company_info",
        "audit_events",
        "failed_login_attempts",
        "public_sessions",
        "csrf_tokens",
        "admin_sessions",
        "admin_users",
    ):
        op.drop_table(table)
