# backend/restopos/routes/system.py
"""
System health and version endpoints.

Health checks the database and the ledger pointers the posting paths rely
on, so a misconfigured install shows up before the first order.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import ChartOfAccount, Ingredient, Order
from ..models.accounting import FY_ACTIVE
from ..services.accounting_service import get_current_financial_year
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        order_count = db.session.query(Order).count()
        ingredient_count = db.session.query(Ingredient).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "orders": order_count,
                "ingredients": ingredient_count,
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


def check_ledger_health() -> dict:
    """
    Degraded when there is no chart of accounts or no active financial year;
    voucher posting fails in either case.
    """
    start_time = time.time()
    try:
        account_count = db.session.query(ChartOfAccount).filter_by(is_active=True).count()
        fy = get_current_financial_year()

        elapsed_ms = (time.time() - start_time) * 1000
        details = {
            "accounts": account_count,
            "current_financial_year": fy.name if fy else None,
            "auto_post": bool(current_app.config.get("AUTO_POST_LEDGER")),
        }

        warnings = []
        if account_count == 0:
            warnings.append("chart of accounts not initialized")
        if fy is None or fy.status != FY_ACTIVE:
            warnings.append("no active financial year")

        if warnings:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": ", ".join(warnings),
                "details": details,
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Ledger health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Ledger error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (degraded is still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    ledger_health = check_ledger_health()

    all_checks = [database_health, ledger_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "ledger": ledger_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
