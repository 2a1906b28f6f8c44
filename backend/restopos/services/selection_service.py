# Overview: Single-row "current" pointers (financial year, active tax setting).

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError
from ..models import CurrentSelection, TaxSetting
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_in_transaction


KEY_FINANCIAL_YEAR = "financial_year"
KEY_TAX_SETTING = "tax_setting"


def get_current_id(key: str) -> int | None:
    row = db.session.query(CurrentSelection).filter_by(key=key).first()
    return row.target_id if row else None


def point_current(key: str, target_id: int | None, actor_id: str | None = None) -> CurrentSelection:
    """
    Repoint ``key`` inside the caller's transaction.

    There is one row per key, so moving the pointer can never leave two
    records flagged current.
    """
    row = lock_for_update(db.session.query(CurrentSelection).filter_by(key=key)).first()
    if row is None:
        row = CurrentSelection(key=key)
        db.session.add(row)
    row.target_id = target_id
    row.updated_by = actor_id
    db.session.flush()
    return row


def get_active_tax() -> TaxSetting | None:
    """Active tax record, or None (no tax is applied when none is active)."""
    tax_id = get_current_id(KEY_TAX_SETTING)
    if tax_id is None:
        return None
    return db.session.get(TaxSetting, tax_id)


def set_active_tax(tax_setting_id: int | None, *, actor_id: str | None = None) -> TaxSetting | None:
    """Activate a tax setting, or clear the active tax with ``None``."""
    def _op():
        tax = None
        if tax_setting_id is not None:
            tax = db.session.get(TaxSetting, tax_setting_id)
            if tax is None:
                raise NotFoundError("Tax setting not found", {"tax_setting_id": tax_setting_id})
        point_current(KEY_TAX_SETTING, tax_setting_id, actor_id)
        append_audit_event(
            event_type="TAX_SETTING_ACTIVATED",
            event_category="SETTINGS",
            entity_type="tax_setting",
            entity_id=tax_setting_id or 0,
            actor_id=actor_id,
        )
        return tax

    return run_in_transaction(_op)
