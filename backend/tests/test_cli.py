"""CLI command tests via Flask's CLI runner."""

from restopos.services import accounting_service, stock_service

from conftest import ACTOR


class TestLedgerCommands:

    def test_init_defaults_once(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["accounts", "init-defaults"])
        second = runner.invoke(args=["accounts", "init-defaults"])

        assert first.exit_code == 0
        assert "Created 25 accounts" in first.output
        assert second.exit_code != 0
        assert "already initialized" in second.output

    def test_fy_create_and_current(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "fy", "create", "--name", "FY 2025-2026",
            "--start", "2025-04-01", "--end", "2026-03-31T23:59:59", "--current",
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(args=["fy", "current"])
        assert "FY 2025-2026" in result.output
        assert accounting_service.get_current_financial_year().name == "FY 2025-2026"

    def test_fy_close_without_carry_forward(self, app, ledger):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["fy", "close", str(ledger.id), "--no-carry-forward", "--yes"])

        assert result.exit_code == 0, result.output
        assert accounting_service.get_current_financial_year() is None


class TestStockAudit:

    def test_consistent_stock_passes(self, app, make_ingredient):
        ingredient = make_ingredient(opening_stock=4)
        stock_service.deduct(ingredient.id, 1, actor_id=ACTOR)

        result = app.test_cli_runner().invoke(args=["stock", "audit"])

        assert result.exit_code == 0
        assert "1 ingredient(s) consistent" in result.output


class TestTaxCommand:

    def test_clear_tax(self, app, vat_13):
        runner = app.test_cli_runner()

        assert runner.invoke(args=["tax", "set-active", "--clear"]).exit_code == 0
        result = runner.invoke(args=["tax", "set-active", str(vat_13.id)])

        assert result.exit_code == 0
        assert "1300 bps" in result.output
