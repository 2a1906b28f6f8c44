# Overview: Flask API routes for ingredient stock; parses input and returns JSON responses.

# backend/restopos/routes/ingredients.py
"""
Ingredient Stock API Routes

Every stock change lands as one append-only StockMovement. Sales deductions
happen through order completion; these routes cover setup, manual
corrections and read-side audit.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import stock_service
from ..decorators import require_actor


ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.post("/")
@ingredients_bp.post("")
@require_actor
def create_ingredient_route():
    """
    Request body:
    {
        "name": "Chicken",
        "unit": "kg",
        "opening_stock": "12.5",
        "reorder_level": "2",
        "cost_per_unit_cents": 45000
    }
    """
    try:
        data = request.get_json() or {}

        ingredient = stock_service.create_ingredient(
            name=data.get("name"),
            unit=data.get("unit") or "unit",
            opening_stock=data.get("opening_stock", 0),
            reorder_level=data.get("reorder_level", 0),
            cost_per_unit_cents=data.get("cost_per_unit_cents", 0),
            actor_id=g.actor_id,
        )
        return jsonify({"ingredient": ingredient.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create ingredient")
        return jsonify({"error": "Internal server error"}), 500


@ingredients_bp.get("/")
@ingredients_bp.get("")
@require_actor
def list_ingredients_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    ingredients = stock_service.list_ingredients(include_inactive=include_inactive)
    return jsonify({"ingredients": [i.to_dict() for i in ingredients]}), 200


@ingredients_bp.get("/low-stock")
@require_actor
def low_stock_route():
    return jsonify({"ingredients": [i.to_dict() for i in stock_service.list_low_stock()]}), 200


@ingredients_bp.get("/<int:ingredient_id>")
@require_actor
def get_ingredient_route(ingredient_id: int):
    try:
        return jsonify({"ingredient": stock_service.get_ingredient(ingredient_id).to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@ingredients_bp.post("/<int:ingredient_id>/adjust")
@require_actor
def adjust_stock_route(ingredient_id: int):
    """
    Manual correction by a signed quantity.

    Request body:
    {
        "quantity": "-1.5",
        "reason": "Spoiled",
        "movement_type": "WASTE"   (ADJUSTMENT | WASTE | TRANSFER)
    }
    """
    try:
        data = request.get_json() or {}
        if data.get("quantity") is None:
            return jsonify({"error": "quantity required"}), 400

        movement = stock_service.adjust(
            ingredient_id,
            data["quantity"],
            reason=data.get("reason"),
            actor_id=g.actor_id,
            movement_type=(data.get("movement_type") or "ADJUSTMENT").upper(),
        )
        return jsonify({"movement": movement.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@ingredients_bp.get("/<int:ingredient_id>/movements")
@require_actor
def list_movements_route(ingredient_id: int):
    try:
        stock_service.get_ingredient(ingredient_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    movements = stock_service.list_movements(ingredient_id)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@ingredients_bp.get("/<int:ingredient_id>/audit")
@require_actor
def audit_stock_route(ingredient_id: int):
    """Replay the ingredient's movements from zero and compare with stored stock."""
    try:
        return jsonify(stock_service.replay_stock(ingredient_id)), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
