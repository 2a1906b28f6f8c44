# backend/restopos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; any SQLAlchemy URL works
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///restopos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # REJECT: raise InsufficientStockError. CLAMP: floor the ingredient at zero.
    STOCK_OVERSELL_POLICY = os.environ.get("STOCK_OVERSELL_POLICY", "REJECT").upper()

    # Post sales/COGS/purchase vouchers to the general ledger automatically
    AUTO_POST_LEDGER = _env_flag("AUTO_POST_LEDGER", default=False)

    # Posting role -> chart of accounts code (matches the default chart)
    LEDGER_ACCOUNT_CODES = {
        "cash": "1100",
        "bank": "1101",
        "receivable": "1200",
        "inventory": "1300",
        "payable": "3100",
        "tax": "3300",
        "sales": "5100",
        "service": "5300",
        "cogs": "6100",
        "retained_earnings": "4200",
    }

    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "3"))
