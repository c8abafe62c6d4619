import logging
import os
import uuid

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from app.cms.config import load_config
from app.cms.db import init_db, teardown_db_session
from app.cms.rate_limit import RateLimiter
from app.cms.validation import ConflictError, ValidationError
from app.cms.routes import bp as routes_bp
from app.cms.auth import bp as auth_bp, set_session_cookie
from app.cms.admin import bp as admin_bp
from app.cms.modules.company_info.admin import bp as company_info_bp
from app.cms.modules.courses.admin import bp as courses_bp
from app.cms.modules.team_members.admin import bp as team_members_bp
from app.cms.modules.testimonials.admin import bp as testimonials_bp
from app.cms.modules.footer.admin import bp as footer_bp
from app.cms.modules.hero_section.admin import bp as hero_section_bp
from app.cms.modules.files.admin import bp as files_bp
from app.cms.modules.contact.admin import bp as contact_admin_bp
from app.cms.modules.contact.public import bp as contact_bp


class CmsFlask(Flask):
    def log_exception(self, exc_info) -> None:
        self.logger.error(
            "Unhandled exception on %s [%s] (request_id=%s)",
            request.path,
            request.method,
            getattr(g, "request_id", None),
            exc_info=exc_info,
        )


ADMIN_API_PREFIX = "/api/admin"


def create_app(config_overrides: dict | None = None) -> Flask:
    load_dotenv()
    app = CmsFlask(__name__, template_folder="templates")
    app.config.from_mapping(load_config())
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL") or "INFO",
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Production guardrails (fail fast with clear logs)
    if app.config.get("IS_PRODUCTION"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("JWT_SECRET") or str(app.config["JWT_SECRET"]) in ("", "change-me"):
            raise RuntimeError("JWT_SECRET must be set to a strong value in production (not default).")

    # remote_addr becomes the address appended by the last trusted proxy hop
    proxy_count = int(app.config.get("TRUSTED_PROXY_COUNT") or 0)
    if proxy_count > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxy_count, x_proto=proxy_count)

    init_db(app)
    app.extensions["rate_limiter"] = RateLimiter()

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(contact_bp, url_prefix="/api/contact")
    for admin_api_bp in (
        auth_bp,
        admin_bp,
        company_info_bp,
        courses_bp,
        team_members_bp,
        testimonials_bp,
        footer_bp,
        hero_section_bp,
        files_bp,
        contact_admin_bp,
    ):
        app.register_blueprint(admin_api_bp, url_prefix=ADMIN_API_PREFIX)

    @app.before_request
    def _assign_request_id():
        g.request_id = (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex

    @app.after_request
    def _finish_response(response):
        from app.cms.security import apply_security_headers

        renewed = getattr(g, "renewed_token", None)
        if renewed:
            set_session_cookie(response, renewed)
            response.headers["X-Token-Refreshed"] = "true"
        if request.path.startswith(ADMIN_API_PREFIX):
            response.headers.setdefault("Cache-Control", "no-store")
        response.headers["X-Request-ID"] = getattr(g, "request_id", "") or ""
        return apply_security_headers(response, is_production=bool(app.config.get("IS_PRODUCTION")))

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ValidationError)
    def _err_validation(e: ValidationError):
        return jsonify({"error": "; ".join(e.errors), "details": e.errors}), 400

    @app.errorhandler(ConflictError)
    def _err_conflict(e: ConflictError):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(IntegrityError)
    def _err_integrity(e: IntegrityError):
        app.logger.warning("Integrity error (request_id=%s): %s", getattr(g, "request_id", None), e.orig)
        return jsonify({"error": "A record with the same unique value already exists."}), 409

    @app.errorhandler(413)
    def _err_413(e):
        return jsonify({"error": "File too large. Maximum upload size is 15MB."}), 413

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        return jsonify({"error": e.name}), e.code

    # the traceback is logged once by CmsFlask.log_exception
    @app.errorhandler(500)
    def _err_500(e):
        return jsonify({"error": "Internal server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")
    return app
