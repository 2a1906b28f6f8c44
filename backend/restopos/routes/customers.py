# Overview: Flask API routes for customer credit accounts; parses input and returns JSON responses.

# backend/restopos/routes/customers.py

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import customer_service
from ..decorators import require_actor


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
@customers_bp.post("")
@require_actor
def create_customer_route():
    try:
        data = request.get_json() or {}
        customer = customer_service.create_customer(
            name=data.get("name"),
            phone=data.get("phone"),
            credit_limit_cents=data.get("credit_limit_cents", 0),
        )
        return jsonify({"customer": customer.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/credit")
@require_actor
def customers_with_credit_route():
    customers = customer_service.list_customers_with_credit()
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.get("/<int:customer_id>")
@require_actor
def get_customer_route(customer_id: int):
    try:
        return jsonify({"customer": customer_service.get_customer(customer_id).to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@customers_bp.get("/<int:customer_id>/credit-orders")
@require_actor
def credit_orders_route(customer_id: int):
    try:
        orders = customer_service.list_credit_orders(customer_id)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@customers_bp.post("/<int:customer_id>/credit-payments")
@require_actor
def credit_payment_route(customer_id: int):
    """
    Settle outstanding credit.

    Request body:
    {
        "amount_cents": 1500,
        "method": "CASH",
        "order_id": 12,      (optional, needs session_id)
        "session_id": 3,     (optional)
        "notes": "..."
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("amount_cents") is None or not data.get("method"):
            return jsonify({"error": "amount_cents and method required"}), 400

        result = customer_service.record_credit_payment(
            customer_id,
            amount_cents=data["amount_cents"],
            method=data["method"],
            actor_id=g.actor_id,
            order_id=data.get("order_id"),
            session_id=data.get("session_id"),
            notes=data.get("notes"),
        )
        return jsonify(result), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record credit payment")
        return jsonify({"error": "Internal server error"}), 500
