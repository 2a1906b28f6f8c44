# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/restopos/routes/orders.py
"""
Order API Routes

DESIGN:
- Orders are created against an open cashier session
- Item, discount and payment mutations recalculate totals server-side
- Completing an order fulfils it (stock, customer, ledger) in one transaction
- Bill and kitchen tickets are printed after commit; print failures never fail the request
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import order_service
from ..decorators import require_actor


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


# =============================================================================
# ORDER CREATION AND READS
# =============================================================================

@orders_bp.post("/")
@orders_bp.post("")
@require_actor
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "order_type": "DINE_IN",
        "session_id": 1,
        "table_id": 4,            (DINE_IN only)
        "customer_id": 7,         (optional)
        "waiter_id": "w-12",      (optional)
        "remarks": "...",         (optional)
        "service_charge_cents": 0 (optional)
    }
    """
    try:
        data = request.get_json() or {}

        order = order_service.create_order(
            order_type=data.get("order_type"),
            cashier_id=g.actor_id,
            session_id=data.get("session_id"),
            table_id=data.get("table_id"),
            customer_id=data.get("customer_id"),
            waiter_id=data.get("waiter_id"),
            remarks=data.get("remarks"),
            service_charge_cents=data.get("service_charge_cents", 0),
        )

        return jsonify({"order": order.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/active")
@require_actor
def list_active_orders_route():
    orders = order_service.list_active_orders()
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        return jsonify({"order": order_service.get_order_detail(order_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@orders_bp.get("/validate-discount")
@require_actor
def validate_discount_route():
    """Query: code, order_total_cents, order_type."""
    code = request.args.get("code", "")
    order_total_cents = request.args.get("order_total_cents", type=int)
    order_type = request.args.get("order_type", "")
    if order_total_cents is None:
        return jsonify({"error": "order_total_cents required"}), 400

    result = order_service.validate_discount_code(
        code,
        order_total_cents=order_total_cents,
        order_type=order_type,
    )
    return jsonify(result), 200


# =============================================================================
# ITEMS
# =============================================================================

@orders_bp.post("/<int:order_id>/items")
@require_actor
def add_item_route(order_id: int):
    """
    Request body:
    {
        "menu_item_id": 3,
        "quantity": 2,
        "notes": "no onion"  (optional; noted lines are never merged)
    }
    """
    try:
        data = request.get_json() or {}

        menu_item_id = data.get("menu_item_id")
        if not menu_item_id:
            return jsonify({"error": "menu_item_id required"}), 400

        item = order_service.add_item(
            order_id,
            menu_item_id=menu_item_id,
            quantity=data.get("quantity", 1),
            notes=data.get("notes"),
        )
        return jsonify({"item": item.to_dict(), "order": order_service.get_order_detail(order_id)}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to add order item")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/items/<int:item_id>")
@require_actor
def update_item_route(item_id: int):
    try:
        data = request.get_json() or {}
        if "quantity" not in data:
            return jsonify({"error": "quantity required"}), 400

        item = order_service.update_item_quantity(item_id, quantity=data["quantity"])
        if item is None:
            return jsonify({"success": True, "removed": True}), 200
        return jsonify({"item": item.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update order item")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/items/<int:item_id>")
@require_actor
def remove_item_route(item_id: int):
    try:
        return jsonify(order_service.remove_item(item_id)), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to remove order item")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# DISCOUNT AND STATUS
# =============================================================================

@orders_bp.post("/<int:order_id>/discount")
@require_actor
def apply_discount_route(order_id: int):
    """
    Request body:
    {
        "discount_id": 2,              (optional)
        "manual_discount_cents": 500   (optional override)
    }
    An empty body clears the discount.
    """
    try:
        data = request.get_json() or {}
        order = order_service.apply_discount(
            order_id,
            discount_id=data.get("discount_id"),
            manual_discount_cents=data.get("manual_discount_cents"),
        )
        return jsonify({"order": order.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to apply discount")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/status")
@require_actor
def update_status_route(order_id: int):
    try:
        data = request.get_json() or {}
        status = data.get("status")
        if not status:
            return jsonify({"error": "status required"}), 400

        order = order_service.update_status(order_id, status=status, actor_id=g.actor_id)
        return jsonify({"order": order.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/kitchen")
@require_actor
def send_to_kitchen_route(order_id: int):
    try:
        items = order_service.send_to_kitchen(order_id, actor_id=g.actor_id)
        return jsonify({"items": [i.to_dict() for i in items]}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to send order to kitchen")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS AND FULFILMENT
# =============================================================================

@orders_bp.post("/<int:order_id>/payments")
@require_actor
def record_payment_route(order_id: int):
    """
    Single tender:
        {"method": "CASH", "amount_cents": 1000, "reference": "..."}
    Split tender:
        {"payments": [{"method": "CASH", "amount_cents": 500}, {"method": "CARD", "amount_cents": 500}]}
    """
    try:
        data = request.get_json() or {}

        if "payments" in data:
            payments = order_service.record_split_payment(
                order_id,
                payments=data.get("payments") or [],
                actor_id=g.actor_id,
            )
        else:
            if not data.get("method") or data.get("amount_cents") is None:
                return jsonify({"error": "method and amount_cents required"}), 400
            payments = [order_service.record_payment(
                order_id,
                method=data["method"],
                amount_cents=data["amount_cents"],
                actor_id=g.actor_id,
                reference=data.get("reference"),
                notes=data.get("notes"),
            )]

        order = order_service.get_order(order_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "order": order.to_dict(),
        }), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/complete")
@require_actor
def complete_order_route(order_id: int):
    """
    Fulfil the order. With a body of {"method", "amount_cents"} the final
    tender is taken first and must cover the grand total.
    """
    try:
        data = request.get_json(silent=True) or {}

        if data.get("method"):
            order = order_service.complete_payment(
                order_id,
                method=data["method"],
                amount_cents=data.get("amount_cents"),
                actor_id=g.actor_id,
                reference=data.get("reference"),
            )
        else:
            order = order_service.complete_order(order_id, actor_id=g.actor_id)

        return jsonify({"order": order.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to complete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.cancel_order(order_id, reason=data.get("reason"), actor_id=g.actor_id)
        return jsonify({"order": order.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
