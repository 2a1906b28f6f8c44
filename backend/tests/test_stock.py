"""
Stock ledger tests.

Every change to an ingredient's stock lands as exactly one movement, and
replaying the movements from zero reproduces the stored stock.
"""

import pytest

from conftest import ACTOR
from restopos.errors import InsufficientStockError, NotFoundError, ValidationFailedError
from restopos.extensions import db
from restopos.models import StockMovement
from restopos.services import recipe_service, stock_service


class TestIngredientCreation:

    def test_opening_stock_is_a_movement(self, make_ingredient):
        ingredient = make_ingredient(name="Rice", opening_stock="12.5")

        movements = stock_service.list_movements(ingredient.id)
        assert len(movements) == 1
        assert movements[0].movement_type == "ADJUSTMENT"
        assert str(movements[0].quantity) == "12.500"
        assert str(movements[0].previous_stock) == "0.000"
        assert stock_service.replay_stock(ingredient.id)["consistent"] is True

    def test_zero_opening_stock_has_no_movement(self, make_ingredient):
        ingredient = make_ingredient(name="Salt", opening_stock=0)
        assert stock_service.list_movements(ingredient.id) == []

    def test_duplicate_name(self, make_ingredient):
        make_ingredient(name="Onion")
        with pytest.raises(ValidationFailedError):
            make_ingredient(name="Onion")

    def test_negative_opening_stock(self, make_ingredient):
        with pytest.raises(ValidationFailedError):
            make_ingredient(name="Garlic", opening_stock=-1)


class TestDeduct:

    def test_deduct_within_stock(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=10)

        movement = stock_service.deduct(ingredient.id, "2.25", reference_type="order", reference_id=7, actor_id=ACTOR)

        assert movement.movement_type == "SALE"
        assert str(movement.quantity) == "-2.250"
        assert str(movement.previous_stock) == "10.000"
        assert str(movement.new_stock) == "7.750"
        assert movement.requested_quantity is None
        assert movement.reference_id == "7"

    def test_reject_policy_raises_and_writes_nothing(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=10)

        with pytest.raises(InsufficientStockError) as exc:
            stock_service.deduct(ingredient.id, 15, actor_id=ACTOR)

        short = exc.value.details["items"][0]
        assert short["requested"] == "15.000"
        assert short["available"] == "10.000"
        assert len(stock_service.list_movements(ingredient.id)) == 1
        assert str(stock_service.get_ingredient(ingredient.id).current_stock) == "10.000"

    def test_clamp_policy_floors_at_zero(self, make_ingredient, clamp_policy):
        ingredient = make_ingredient(opening_stock=10)

        movement = stock_service.deduct(ingredient.id, 15, reference_type="order", reference_id=1, actor_id=ACTOR)

        assert str(movement.quantity) == "-10.000"
        assert str(movement.requested_quantity) == "-15.000"
        assert str(movement.new_stock) == "0.000"
        assert str(stock_service.get_ingredient(ingredient.id).current_stock) == "0.000"
        assert stock_service.replay_stock(ingredient.id)["consistent"] is True

    @pytest.mark.parametrize("quantity", [0, -3, "abc", None])
    def test_non_positive_or_invalid(self, make_ingredient, quantity):
        ingredient = make_ingredient(opening_stock=10)
        with pytest.raises(ValidationFailedError):
            stock_service.deduct(ingredient.id, quantity, actor_id=ACTOR)

    def test_unknown_ingredient(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.deduct(999, 1, actor_id=ACTOR)


class TestReceive:

    def test_receive_is_unbounded(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=1)

        movement = stock_service.receive(ingredient.id, 1000, reference_type="purchase", reference_id=3, actor_id=ACTOR)

        assert movement.movement_type == "PURCHASE"
        assert str(movement.new_stock) == "1001.000"


class TestAdjust:

    def test_positive_adjustment(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)
        movement = stock_service.adjust(ingredient.id, 3, reason="stock count", actor_id=ACTOR)

        assert movement.movement_type == "ADJUSTMENT"
        assert movement.notes == "stock count"
        assert str(movement.new_stock) == "5.000"

    def test_waste_must_be_negative(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)

        with pytest.raises(ValidationFailedError):
            stock_service.adjust(ingredient.id, 1, reason="spoiled", movement_type="WASTE", actor_id=ACTOR)

        movement = stock_service.adjust(ingredient.id, "-0.5", reason="spoiled", movement_type="WASTE", actor_id=ACTOR)
        assert str(movement.new_stock) == "1.500"

    def test_cannot_go_negative(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)
        with pytest.raises(ValidationFailedError):
            stock_service.adjust(ingredient.id, -3, reason="recount", actor_id=ACTOR)

    def test_reason_required(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)
        with pytest.raises(ValidationFailedError):
            stock_service.adjust(ingredient.id, 1, reason="  ", actor_id=ACTOR)

    def test_sale_is_not_a_manual_type(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)
        with pytest.raises(ValidationFailedError):
            stock_service.adjust(ingredient.id, -1, reason="x", movement_type="SALE", actor_id=ACTOR)

    def test_zero_rejected(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=2)
        with pytest.raises(ValidationFailedError):
            stock_service.adjust(ingredient.id, 0, reason="noop", actor_id=ACTOR)


class TestAuditReplay:

    def test_replay_after_mixed_movements(self, make_ingredient, clamp_policy):
        ingredient = make_ingredient(opening_stock=5)
        stock_service.receive(ingredient.id, "2.5", actor_id=ACTOR)
        stock_service.deduct(ingredient.id, 3, actor_id=ACTOR)
        stock_service.adjust(ingredient.id, "-1.25", reason="spill", movement_type="WASTE", actor_id=ACTOR)
        stock_service.deduct(ingredient.id, 100, actor_id=ACTOR)

        result = stock_service.replay_stock(ingredient.id)

        assert result == {
            "ingredient_id": ingredient.id,
            "replayed": "0.000",
            "current": "0.000",
            "consistent": True,
        }

    def test_movement_chain(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=5)
        stock_service.deduct(ingredient.id, 1, actor_id=ACTOR)
        stock_service.receive(ingredient.id, 4, actor_id=ACTOR)

        movements = stock_service.list_movements(ingredient.id)
        for prev, nxt in zip(movements, movements[1:]):
            assert prev.new_stock == nxt.previous_stock
        for m in movements:
            assert m.new_stock == m.previous_stock + m.quantity

    def test_movements_are_append_only(self, make_ingredient):
        ingredient = make_ingredient(opening_stock=5)
        movement = stock_service.list_movements(ingredient.id)[0]

        movement.notes = "rewritten"
        with pytest.raises(RuntimeError):
            db.session.flush()
        db.session.rollback()

        movement = db.session.get(StockMovement, movement.id)
        db.session.delete(movement)
        with pytest.raises(RuntimeError):
            db.session.flush()
        db.session.rollback()

        assert stock_service.list_movements(ingredient.id)[0].notes == "Opening stock"


class TestLowStock:

    def test_at_or_below_reorder_level(self, make_ingredient):
        make_ingredient(name="Butter", opening_stock=2, reorder_level=2)
        make_ingredient(name="Milk", opening_stock=1, reorder_level=3)
        make_ingredient(name="Sugar", opening_stock=9, reorder_level=3)

        assert [i.name for i in stock_service.list_low_stock()] == ["Butter", "Milk"]


class TestRecipeResolver:

    def test_scales_recipe_by_quantity(self, make_ingredient, make_menu_item):
        flour = make_ingredient(name="Flour", opening_stock=10)
        oil = make_ingredient(name="Oil", opening_stock=10)
        dish = make_menu_item(name="Puri", recipe=[(flour, "0.25"), (oil, "0.1")])

        lines = recipe_service.resolve(dish.id, 3)

        assert [(l["ingredient_id"], str(l["quantity"])) for l in lines] == [
            (flour.id, "0.750"),
            (oil.id, "0.300"),
        ]

    def test_item_without_recipe(self, make_menu_item):
        assert recipe_service.resolve(make_menu_item(name="Water").id, 2) == []

    def test_unknown_menu_item(self, db_session):
        with pytest.raises(NotFoundError):
            recipe_service.resolve(4040, 1)
