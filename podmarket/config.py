# -*- coding: utf-8 -*-
import os


def _normalize_db_url(url: str) -> str:
    """
    Normalize DATABASE_URL so SQLAlchemy loads the psycopg v3 driver.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg://" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _default_db_url() -> str:
    db_url = os.environ.get("DATABASE_URL")
    if db_url:
        return _normalize_db_url(db_url)
    db_path = os.path.join(os.path.dirname(__file__), "..", "instance", "podmarket.db")
    return f"sqlite:///{os.path.abspath(db_path)}"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = _default_db_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Payments
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "pln")

    # Sessions
    SESSION_COOKIE = os.getenv("SESSION_COOKIE", "podmarket_sid")
    SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", 24 * 7))
    SESSION_COOKIE_SECURE_FLAG = os.getenv("SESSION_COOKIE_SECURE", "1") == "1"

    # Object storage
    OBJECT_STORE_BACKEND = os.getenv("OBJECT_STORE_BACKEND", "local")
    OBJECT_STORE_ROOT = os.getenv(
        "OBJECT_STORE_ROOT",
        os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance", "objects")),
    )
    OBJECT_STORE_BUCKET = os.getenv("OBJECT_STORE_BUCKET", "podmarket-audio")
    S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")
    S3_REGION = os.getenv("S3_REGION")
    S3_ACCESS_KEY_ID = os.getenv("S3_ACCESS_KEY_ID")
    S3_SECRET_ACCESS_KEY = os.getenv("S3_SECRET_ACCESS_KEY")

    # Email (EmailLabs)
    EMAILLABS_APP_KEY = os.getenv("EMAILLABS_APP_KEY")
    EMAILLABS_SECRET_KEY = os.getenv("EMAILLABS_SECRET_KEY")
    EMAILLABS_FROM_EMAIL = os.getenv("EMAILLABS_FROM_EMAIL", "noreply@podmarket.local")
    EMAILLABS_FROM_NAME = os.getenv("EMAILLABS_FROM_NAME", "PodMarket")
    EMAILLABS_SMTP_ACCOUNT = os.getenv("EMAILLABS_SMTP_ACCOUNT", "1.default.smtp")
    FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:5000").rstrip("/")

    # HTTP surface
    CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5000,http://localhost:3000")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "1") == "1"
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "10 per minute")
    METRICS_ENABLED = os.getenv("PODMARKET_METRICS_ENABLED", "true").lower() == "true"
    DB_AUTOCREATE = os.getenv("PODMARKET_DB_AUTOCREATE", "true").lower() == "true"
