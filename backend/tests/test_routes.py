"""
HTTP API tests.

Verifies:
- Health and version are public
- Every other endpoint requires the X-Actor-Id header (401)
- Domain errors map to 400 / 404 / 409 with an error body
- A full dine-in order flow works end to end through the API
"""

import pytest

from conftest import ACTOR, account, actor_headers


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystem:

    def test_health_degraded_without_ledger(self, client, db_session):
        resp = client.get("/api/system/health")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["ledger"]["status"] == "degraded"

    def test_health_with_ledger(self, client, ledger):
        resp = client.get("/api/system/health")
        assert resp.get_json()["status"] == "healthy"

    def test_version(self, client):
        resp = client.get("/api/system/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == "1.0.0"


# =============================================================================
# ACTOR REQUIRED (401)
# =============================================================================


class TestActorRequired:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders"),
            ("GET", "/api/orders/active"),
            ("POST", "/api/orders/1/complete"),
            ("GET", "/api/ingredients"),
            ("POST", "/api/ingredients/1/adjust"),
            ("GET", "/api/purchases"),
            ("GET", "/api/accounting/trial-balance"),
            ("POST", "/api/accounting/transactions"),
            ("GET", "/api/cashier-sessions/active"),
            ("GET", "/api/customers/credit"),
        ],
    )
    def test_requires_actor(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_blank_actor_rejected(self, client, db_session):
        resp = client.get("/api/orders/active", headers={"X-Actor-Id": "   "})
        assert resp.status_code == 401


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:

    def test_not_found(self, client, db_session):
        resp = client.get("/api/orders/999", headers=actor_headers())
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Order not found"

    def test_validation_failed(self, client, ledger):
        resp = client.post(
            "/api/accounting/transactions",
            json={
                "voucher_type": "JOURNAL",
                "description": "Unbalanced",
                "entries": [
                    {"account_id": account("1100").id, "debit_cents": 500},
                    {"account_id": account("5100").id, "credit_cents": 400},
                ],
            },
            headers=actor_headers(),
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"]["total_debit_cents"] == 500

    def test_fractional_cents_rejected(self, client, ledger):
        resp = client.post(
            "/api/accounting/transactions",
            json={
                "voucher_type": "JOURNAL",
                "description": "Fractional",
                "entries": [
                    {"account_id": account("1100").id, "debit_cents": 500.9},
                    {"account_id": account("5100").id, "credit_cents": 500},
                ],
            },
            headers=actor_headers(),
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"]["index"] == 0

    def test_state_conflict(self, client, cashier_session):
        resp = client.post("/api/cashier-sessions", json={"opening_cash_cents": 0}, headers=actor_headers())
        assert resp.status_code == 409

    def test_insufficient_stock_is_conflict(self, client, cashier_session, make_ingredient, make_menu_item):
        cheese = make_ingredient(name="Cheese", opening_stock=1)
        pizza = make_menu_item(name="Pizza", price_cents=80000, recipe=[(cheese, 2)])
        order = client.post(
            "/api/orders",
            json={"order_type": "TAKEAWAY", "session_id": cashier_session.id},
            headers=actor_headers(),
        ).get_json()["order"]
        client.post(f"/api/orders/{order['id']}/items", json={"menu_item_id": pizza.id}, headers=actor_headers())

        resp = client.post(f"/api/orders/{order['id']}/complete", headers=actor_headers())

        assert resp.status_code == 409
        assert resp.get_json()["details"]["items"][0]["ingredient_name"] == "Cheese"


# =============================================================================
# END-TO-END FLOWS
# =============================================================================


class TestOrderFlow:

    def test_dine_in_order_to_close(self, client, db_session, make_ingredient, make_menu_item, make_table, make_discount, vat_13):
        chicken = make_ingredient(name="Chicken", opening_stock=10)
        momo = make_menu_item(name="Momo", price_cents=10000, recipe=[(chicken, "0.5")])
        table = make_table("T1")
        discount = make_discount()
        headers = actor_headers()

        resp = client.post("/api/cashier-sessions", json={"opening_cash_cents": 100000}, headers=headers)
        assert resp.status_code == 201
        session_id = resp.get_json()["session"]["id"]

        resp = client.post(
            "/api/orders",
            json={"order_type": "DINE_IN", "session_id": session_id, "table_id": table.id},
            headers=headers,
        )
        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["cashier_id"] == ACTOR

        resp = client.post(f"/api/orders/{order['id']}/items", json={"menu_item_id": momo.id, "quantity": 2}, headers=headers)
        assert resp.status_code == 201

        resp = client.post(f"/api/orders/{order['id']}/discount", json={"discount_id": discount.id}, headers=headers)
        assert resp.get_json()["order"]["grand_total_cents"] == 20340

        resp = client.post(f"/api/orders/{order['id']}/kitchen", headers=headers)
        assert resp.status_code == 200

        resp = client.post(f"/api/orders/{order['id']}/status", json={"status": "SERVED"}, headers=headers)
        assert resp.get_json()["order"]["status"] == "SERVED"

        resp = client.post(
            f"/api/orders/{order['id']}/complete",
            json={"method": "CASH", "amount_cents": 20340},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == "COMPLETED"
        assert resp.get_json()["order"]["payment_status"] == "PAID"

        resp = client.get(f"/api/ingredients/{chicken.id}/audit", headers=headers)
        assert resp.get_json()["consistent"] is True
        assert resp.get_json()["current"] == "9.000"

        resp = client.post(f"/api/cashier-sessions/{session_id}/close", json={"closing_cash_cents": 120340}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["session"]["cash_variance_cents"] == 0

    def test_update_item_to_zero_removes(self, client, cashier_session, make_menu_item):
        dish = make_menu_item()
        headers = actor_headers()
        order = client.post(
            "/api/orders", json={"order_type": "TAKEAWAY", "session_id": cashier_session.id}, headers=headers,
        ).get_json()["order"]
        item = client.post(
            f"/api/orders/{order['id']}/items", json={"menu_item_id": dish.id}, headers=headers,
        ).get_json()["item"]

        resp = client.patch(f"/api/orders/items/{item['id']}", json={"quantity": 0}, headers=headers)

        assert resp.get_json() == {"success": True, "removed": True}

    def test_validate_discount_query(self, client, make_discount):
        make_discount(code="TEN")
        resp = client.get(
            "/api/orders/validate-discount?code=TEN&order_total_cents=20000&order_type=TAKEAWAY",
            headers=actor_headers(),
        )
        assert resp.status_code == 200
        assert resp.get_json()["discount_cents"] == 2000


class TestInventoryAndLedgerFlow:

    def test_purchase_receive_via_api(self, client, supplier, make_ingredient):
        rice = make_ingredient(name="Rice", opening_stock=5)
        headers = actor_headers()

        resp = client.post(
            "/api/purchases",
            json={
                "supplier_id": supplier.id,
                "invoice_no": "INV-7",
                "items": [{"ingredient_id": rice.id, "quantity": 50, "unit_price_cents": 120}],
            },
            headers=headers,
        )
        assert resp.status_code == 201
        purchase_id = resp.get_json()["purchase"]["id"]

        assert client.post(f"/api/purchases/{purchase_id}/receive", headers=headers).status_code == 200
        assert client.post(f"/api/purchases/{purchase_id}/receive", headers=headers).status_code == 409

        resp = client.get(f"/api/ingredients/{rice.id}", headers=headers)
        assert resp.get_json()["ingredient"]["current_stock"] == "55.000"

    def test_manual_adjustment(self, client, make_ingredient):
        flour = make_ingredient(name="Flour", opening_stock=3)
        headers = actor_headers()

        resp = client.post(
            f"/api/ingredients/{flour.id}/adjust",
            json={"quantity": "-0.5", "reason": "spilled", "movement_type": "waste"},
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["movement"]["new_stock"] == "2.500"

        resp = client.get(f"/api/ingredients/{flour.id}/movements", headers=headers)
        assert len(resp.get_json()["movements"]) == 2

    def test_journal_and_trial_balance(self, client, ledger):
        headers = actor_headers()
        resp = client.post(
            "/api/accounting/transactions",
            json={
                "voucher_type": "JOURNAL",
                "description": "Opening capital",
                "entries": [
                    {"account_id": account("1100").id, "debit_cents": 500},
                    {"account_id": account("5100").id, "credit_cents": 500},
                ],
            },
            headers=headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["voucher_number"] == "JOU-00001"

        tb = client.get("/api/accounting/trial-balance", headers=headers).get_json()
        assert tb["is_balanced"] is True
        assert tb["total_debit_cents"] == 500

        years = client.get("/api/accounting/financial-years", headers=headers).get_json()
        assert years["current_id"] == ledger.id

    def test_close_year_via_api(self, client, ledger):
        resp = client.post(
            f"/api/accounting/financial-years/{ledger.id}/close",
            json={"carry_forward": False},
            headers=actor_headers(),
        )
        assert resp.status_code == 200

        resp = client.get("/api/accounting/financial-years/current", headers=actor_headers())
        assert resp.status_code == 200
        assert resp.get_json()["financial_year"] is None
