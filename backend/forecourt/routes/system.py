# backend/forecourt/routes/system.py
"""
System health endpoint.

Checks database connectivity so load balancers and deploy scripts can tell
a running process from a usable one.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Location, PaymentMethod
from forecourt.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        location_count = db.session.query(Location).count()
        method_count = db.session.query(PaymentMethod).filter_by(is_active=True).count()

        elapsed_ms = (time.time() - start_time) * 1000

        if method_count == 0:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No active payment methods; run `flask system seed-payment-methods`",
                "details": {"locations": location_count, "payment_methods": 0},
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "locations": location_count,
                "payment_methods": method_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status
