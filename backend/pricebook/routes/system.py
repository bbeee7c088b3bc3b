# backend/pricebook/routes/system.py
"""
System health and version endpoints.

Provides health checks for the database, the session table and the change
feed, plus version information for deployment debugging.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, PriceHistoryEntry, User, SessionToken
from ..services.change_feed import feed
from pricebook.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        price_count = db.session.query(PriceHistoryEntry).count()
        user_count = db.session.query(User).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "products": product_count,
                "price_entries": price_count,
                "users": user_count,
            }
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    """
    Check session service health by verifying session table accessibility.
    """
    start_time = time.time()
    try:
        now = utcnow()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
        ).count()

        # Expired but never revoked (cleanup candidates)
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(False)
        ).count()

        return {
            "status": "healthy",
            "latency_ms": _elapsed_ms(start_time),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": _elapsed_ms(start_time),
            "error": "Session service error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()

    all_checks = [database_health, session_health]
    unhealthy = any(check["status"] == "unhealthy" for check in all_checks)

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(start_time),
        "checks": {
            "database": database_health,
            "session_service": session_health,
            "change_feed": {
                "status": "healthy",
                "details": {"user_subscribers": feed.subscriber_count("users")},
            },
        }
    }

    return response, 503 if unhealthy else 200


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
