# Overview: Flask API routes for cashier sessions; parses input and returns JSON responses.

# backend/restopos/routes/cashier_sessions.py
"""
Cashier Session API Routes

Shift lifecycle: open -> close (immutable once closed). Closing records the
cash variance against opening cash plus cash sales; it never blocks.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import cashier_service, order_service
from ..decorators import require_actor
from ..time_utils import parse_iso_datetime


cashier_sessions_bp = Blueprint("cashier_sessions", __name__, url_prefix="/api/cashier-sessions")


@cashier_sessions_bp.post("/")
@cashier_sessions_bp.post("")
@require_actor
def open_session_route():
    """
    Open a session for the acting cashier.

    Request body:
    {
        "opening_cash_cents": 50000,
        "notes": "Morning shift"  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("opening_cash_cents") is None:
            return jsonify({"error": "opening_cash_cents required"}), 400

        session = cashier_service.open_session(
            cashier_id=g.actor_id,
            opening_cash_cents=data["opening_cash_cents"],
            notes=data.get("notes"),
        )
        return jsonify({"session": session.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to open cashier session")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.get("/active")
@require_actor
def active_session_route():
    session = cashier_service.get_active_session(g.actor_id)
    return jsonify({"session": session.to_dict() if session else None}), 200


@cashier_sessions_bp.get("/")
@cashier_sessions_bp.get("")
@require_actor
def list_sessions_route():
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    sessions = cashier_service.list_sessions(
        cashier_id=request.args.get("cashier_id"),
        start=start,
        end=end,
        limit=request.args.get("limit", 50, type=int),
    )
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200


@cashier_sessions_bp.get("/<int:session_id>/summary")
@require_actor
def session_summary_route(session_id: int):
    try:
        return jsonify(cashier_service.get_session_summary(session_id)), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@cashier_sessions_bp.get("/<int:session_id>/orders")
@require_actor
def session_orders_route(session_id: int):
    try:
        cashier_service.get_session(session_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    orders = order_service.list_session_orders(session_id)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@cashier_sessions_bp.post("/<int:session_id>/close")
@require_actor
def close_session_route(session_id: int):
    """
    Request body:
    {
        "closing_cash_cents": 61500,
        "notes": "..."  (optional)
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("closing_cash_cents") is None:
            return jsonify({"error": "closing_cash_cents required"}), 400

        session = cashier_service.close_session(
            session_id,
            counted_cash_cents=data["closing_cash_cents"],
            notes=data.get("notes"),
            actor_id=g.actor_id,
        )
        return jsonify({"session": session.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to close cashier session")
        return jsonify({"error": "Internal server error"}), 500
