# backend/fieldsales/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fieldsales.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fieldsales.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor; tests lower this to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))
    # Dead sessions older than this are purged by `flask system cleanup-sessions`
    SESSION_RETENTION_DAYS = int(os.environ.get("SESSION_RETENTION_DAYS", "30"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    # Notification writes run on a small worker pool after the business commit.
    # Set NOTIFICATIONS_ASYNC=false to write them inline (still best-effort).
    NOTIFICATIONS_ASYNC = _env_bool("NOTIFICATIONS_ASYNC", True)
    NOTIFICATION_WORKERS = int(os.environ.get("NOTIFICATION_WORKERS", "2"))

    # Replays of a sale write after a lock timeout or version conflict
    SALE_WRITE_ATTEMPTS = int(os.environ.get("SALE_WRITE_ATTEMPTS", "3"))

    # Credential delivery providers (unset -> delivery reports "not configured")
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY")
    RESEND_FROM_EMAIL = os.environ.get("RESEND_FROM_EMAIL")
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
    TWILIO_FROM_NUMBER = os.environ.get("TWILIO_FROM_NUMBER")
    CREDENTIAL_DELIVERY_TIMEOUT = float(os.environ.get("CREDENTIAL_DELIVERY_TIMEOUT", "10"))
