import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    jwt_secret: str
    env: str
    database_url: str
    log_level: str
    site_url: str
    trusted_proxy_count: int

    admin_cookie_name: str
    admin_token_lifetime_seconds: int
    session_max_age_seconds: int
    session_inactivity_seconds: int
    session_renew_threshold_seconds: int
    csrf_token_ttl_seconds: int

    contact_webhook_url: str

    storage_backend: str
    storage_local_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str
    s3_public_base_url: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    secret_key = _getenv("SECRET_KEY", "change-me")
    return Settings(
        secret_key=secret_key,
        jwt_secret=_getenv("JWT_SECRET", secret_key),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///cms.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        site_url=_getenv("SITE_URL", "http://localhost:5000").rstrip("/"),
        trusted_proxy_count=_getint("TRUSTED_PROXY_COUNT", 1),
        admin_cookie_name=_getenv("ADMIN_COOKIE_NAME", "admin_token"),
        admin_token_lifetime_seconds=_getint("ADMIN_TOKEN_LIFETIME_SECONDS", 2 * 60 * 60),
        session_max_age_seconds=_getint("SESSION_MAX_AGE_SECONDS", 24 * 60 * 60),
        session_inactivity_seconds=_getint("SESSION_INACTIVITY_SECONDS", 30 * 60),
        session_renew_threshold_seconds=_getint("SESSION_RENEW_THRESHOLD_SECONDS", 15 * 60),
        csrf_token_ttl_seconds=_getint("CSRF_TOKEN_TTL_SECONDS", 60 * 60),
        contact_webhook_url=_getenv("CONTACT_WEBHOOK_URL", ""),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_local_root=_getenv("STORAGE_LOCAL_ROOT", ""),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        s3_public_base_url=_getenv("S3_PUBLIC_BASE_URL", ""),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "JWT_SECRET": s.jwt_secret,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "SITE_URL": s.site_url,
        "TRUSTED_PROXY_COUNT": s.trusted_proxy_count,
        "IS_PRODUCTION": is_production,
        # admin sessions
        "ADMIN_COOKIE_NAME": s.admin_cookie_name,
        "ADMIN_TOKEN_LIFETIME_SECONDS": s.admin_token_lifetime_seconds,
        "SESSION_MAX_AGE_SECONDS": s.session_max_age_seconds,
        "SESSION_INACTIVITY_SECONDS": s.session_inactivity_seconds,
        "SESSION_RENEW_THRESHOLD_SECONDS": s.session_renew_threshold_seconds,
        "CSRF_TOKEN_TTL_SECONDS": s.csrf_token_ttl_seconds,
        "CONTACT_WEBHOOK_URL": s.contact_webhook_url,
        # storage
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_LOCAL_ROOT": s.storage_local_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "S3_PUBLIC_BASE_URL": s.s3_public_base_url,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Strict",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # uploads are capped at 15MB per file in the upload route
        "MAX_CONTENT_LENGTH": 20 * 1024 * 1024,
    }
