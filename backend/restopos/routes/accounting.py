# Overview: Flask API routes for the general ledger; parses input and returns JSON responses.

# backend/restopos/routes/accounting.py
"""
General Ledger API Routes

DESIGN:
- Chart of accounts setup and soft deactivation
- Balanced voucher posting (JOURNAL, PAYMENT, RECEIPT, CONTRA, SALES, PURCHASE)
- Financial years: create, set current, close with carry forward
- Read-only statements: ledger, trial balance, profit and loss, balance sheet
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError
from ..services import accounting_service, financial_year_service
from ..decorators import require_actor
from ..time_utils import parse_iso_datetime


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")


def _date_range():
    return parse_iso_datetime(request.args.get("start")), parse_iso_datetime(request.args.get("end"))


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================

@accounting_bp.get("/accounts")
@require_actor
def list_accounts_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    accounts = accounting_service.list_accounts(include_inactive=include_inactive)
    return jsonify({"accounts": [a.to_dict() for a in accounts]}), 200


@accounting_bp.post("/accounts")
@require_actor
def create_account_route():
    """
    Request body:
    {
        "code": "6600",
        "name": "Repairs",
        "account_type": "EXPENSE",
        "parent_id": 20   (optional)
    }
    """
    try:
        data = request.get_json() or {}
        account = accounting_service.create_account(
            code=data.get("code"),
            name=data.get("name"),
            account_type=data.get("account_type"),
            parent_id=data.get("parent_id"),
            actor_id=g.actor_id,
        )
        return jsonify({"account": account.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.post("/accounts/initialize")
@require_actor
def initialize_accounts_route():
    try:
        created = accounting_service.initialize_default_accounts(actor_id=g.actor_id)
        return jsonify({"success": True, "created": created}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to initialize chart of accounts")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.delete("/accounts/<int:account_id>")
@require_actor
def deactivate_account_route(account_id: int):
    try:
        accounting_service.deactivate_account(account_id, actor_id=g.actor_id)
        return jsonify({"success": True}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to deactivate account")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.get("/accounts/balances")
@require_actor
def account_balances_route():
    return jsonify({"accounts": accounting_service.get_account_balances()}), 200


@accounting_bp.get("/accounts/<int:account_id>/ledger")
@require_actor
def ledger_route(account_id: int):
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        entries = accounting_service.get_ledger_entries(account_id, start=start, end=end)
        return jsonify({"entries": entries}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


# =============================================================================
# VOUCHERS
# =============================================================================

@accounting_bp.post("/transactions")
@require_actor
def post_transaction_route():
    """
    Post a balanced voucher.

    Request body:
    {
        "voucher_type": "JOURNAL",
        "description": "Owner capital",
        "transaction_date": "2025-04-01T09:00:00Z",  (optional)
        "entries": [
            {"account_id": 2, "debit_cents": 100000},
            {"account_id": 14, "credit_cents": 100000}
        ]
    }
    """
    try:
        data = request.get_json() or {}

        txn = accounting_service.post_transaction(
            voucher_type=data.get("voucher_type"),
            description=data.get("description"),
            entries=data.get("entries") or [],
            actor_id=g.actor_id,
            transaction_date=data.get("transaction_date"),
            reference_type=data.get("reference_type"),
            reference_id=data.get("reference_id"),
        )
        return jsonify({
            "id": txn.id,
            "voucher_number": txn.voucher_number,
        }), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to post transaction")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.get("/transactions")
@require_actor
def recent_transactions_route():
    limit = request.args.get("limit", 10, type=int)
    return jsonify({"transactions": accounting_service.get_recent_transactions(limit)}), 200


@accounting_bp.get("/transactions/<int:transaction_id>")
@require_actor
def transaction_detail_route(transaction_id: int):
    try:
        return jsonify({"transaction": accounting_service.get_transaction_detail(transaction_id)}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


# =============================================================================
# STATEMENTS
# =============================================================================

@accounting_bp.get("/trial-balance")
@require_actor
def trial_balance_route():
    return jsonify(accounting_service.get_trial_balance()), 200


@accounting_bp.get("/profit-loss")
@require_actor
def profit_loss_route():
    try:
        start, end = _date_range()
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        return jsonify(accounting_service.get_profit_loss(start, end)), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status


@accounting_bp.get("/balance-sheet")
@require_actor
def balance_sheet_route():
    return jsonify(accounting_service.get_balance_sheet()), 200


# =============================================================================
# FINANCIAL YEARS
# =============================================================================

@accounting_bp.get("/financial-years")
@require_actor
def list_financial_years_route():
    years = financial_year_service.list_financial_years()
    current = accounting_service.get_current_financial_year()
    return jsonify({
        "financial_years": [fy.to_dict() for fy in years],
        "current_id": current.id if current else None,
    }), 200


@accounting_bp.get("/financial-years/current")
@require_actor
def current_financial_year_route():
    fy = accounting_service.get_current_financial_year()
    return jsonify({"financial_year": fy.to_dict() if fy else None}), 200


@accounting_bp.post("/financial-years")
@require_actor
def create_financial_year_route():
    """
    Request body:
    {
        "name": "FY 2025-2026",
        "start_date": "2025-04-01",
        "end_date": "2026-03-31T23:59:59",
        "set_current": true
    }
    """
    try:
        data = request.get_json() or {}
        fy = financial_year_service.create_financial_year(
            name=data.get("name"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            set_current=bool(data.get("set_current")),
            actor_id=g.actor_id,
        )
        return jsonify({"financial_year": fy.to_dict()}), 201

    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create financial year")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.post("/financial-years/<int:fy_id>/set-current")
@require_actor
def set_current_financial_year_route(fy_id: int):
    try:
        fy = financial_year_service.set_current_financial_year(fy_id, actor_id=g.actor_id)
        return jsonify({"financial_year": fy.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to set current financial year")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.post("/financial-years/<int:fy_id>/close")
@require_actor
def close_financial_year_route(fy_id: int):
    try:
        data = request.get_json(silent=True) or {}
        result = financial_year_service.close_financial_year(
            fy_id,
            actor_id=g.actor_id,
            carry_forward=data.get("carry_forward", True),
        )
        return jsonify(result), 200
    except DomainError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to close financial year")
        return jsonify({"error": "Internal server error"}), 500
