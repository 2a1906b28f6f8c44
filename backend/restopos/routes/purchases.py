# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

# backend/restopos/routes/purchases.py
"""
Purchase Receiving API Routes

LIFECYCLE: DRAFT -> RECEIVED (stock in) or DRAFT -> CANCELLED.
Only drafts may be deleted.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import purchase_service
from ..decorators import require_actor
from ..time_utils import parse_iso_datetime


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("/suppliers")
@require_actor
def create_supplier_route():
    try:
        data = request.get_json() or {}
        supplier = purchase_service.create_supplier(name=data.get("name"), phone=data.get("phone"))
        return jsonify({"supplier": supplier.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/")
@purchases_bp.post("")
@require_actor
def create_purchase_route():
    """
    Create a DRAFT purchase.

    Request body:
    {
        "supplier_id": 1,
        "invoice_no": "INV-9921",
        "purchase_date": "2025-01-10",   (optional)
        "tax_cents": 1300,
        "discount_cents": 0,
        "items": [
            {"ingredient_id": 3, "quantity": "10", "unit_price_cents": 1000}
        ]
    }
    """
    try:
        data = request.get_json() or {}

        if not data.get("supplier_id"):
            return jsonify({"error": "supplier_id required"}), 400

        purchase = purchase_service.create_purchase(
            supplier_id=data["supplier_id"],
            invoice_no=data.get("invoice_no"),
            items=data.get("items") or [],
            actor_id=g.actor_id,
            purchase_date=data.get("purchase_date"),
            tax_cents=data.get("tax_cents", 0),
            discount_cents=data.get("discount_cents", 0),
            notes=data.get("notes"),
        )
        return jsonify({"purchase": purchase_service.get_purchase_detail(purchase.id)}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/")
@purchases_bp.get("")
@require_actor
def list_purchases_route():
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    purchases = purchase_service.list_purchases(
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
        start=start,
        end=end,
        limit=request.args.get("limit", 100, type=int),
    )
    return jsonify({"purchases": [p.to_dict() for p in purchases]}), 200


@purchases_bp.get("/<int:purchase_id>")
@require_actor
def get_purchase_route(purchase_id: int):
    try:
        return jsonify({"purchase": purchase_service.get_purchase_detail(purchase_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@purchases_bp.post("/<int:purchase_id>/receive")
@require_actor
def receive_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.receive_purchase(purchase_id, actor_id=g.actor_id)
        return jsonify({"purchase": purchase.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to receive purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("/<int:purchase_id>/cancel")
@require_actor
def cancel_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.cancel_purchase(purchase_id, actor_id=g.actor_id)
        return jsonify({"purchase": purchase.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to cancel purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.delete("/<int:purchase_id>")
@require_actor
def delete_purchase_route(purchase_id: int):
    try:
        return jsonify(purchase_service.delete_purchase(purchase_id, actor_id=g.actor_id)), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete purchase")
        return jsonify({"error": "Internal server error"}), 500
