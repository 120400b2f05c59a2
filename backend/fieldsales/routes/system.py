# Overview: Flask API routes for system health and version checks.

"""
System health and version endpoints (public).

Health reports database reachability and session table state; it never
exposes configuration values or credentials.
"""

import sys
import time
from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")

API_VERSION = "1.0.0"


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        admin_count = db.session.query(User).filter(User.role == "admin").count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"users": user_count, "admins": admin_count},
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Database error"}


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        active = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
        ).count()
        expired = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at < now,
        ).count()
        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {"active_sessions": active, "expired_pending_cleanup": expired},
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start_time), "error": "Session service error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all checks healthy
    - 503: one or more checks unhealthy
    """
    start_time = time.time()
    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
    }
    unhealthy = any(c["status"] == "unhealthy" for c in checks.values())

    return jsonify({
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(start_time),
        "notifications_async": bool(current_app.config.get("NOTIFICATIONS_ASYNC")),
        "checks": checks,
    }), 503 if unhealthy else 200


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return jsonify({
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    })
