# Overview: Fire-and-forget printer dispatch for bills and kitchen order tickets.

from __future__ import annotations

from flask import current_app

PRINTER_EXTENSION_KEY = "restopos.printer"

KIND_BILL = "BILL"
KIND_KOT = "KOT"


def _log_only_printer(kind: str, payload: dict) -> None:
    current_app.logger.info("print %s: %s", kind, payload.get("order_number"))


def install_default_printer(app) -> None:
    app.extensions.setdefault(PRINTER_EXTENSION_KEY, _log_only_printer)


def dispatch(kind: str, payload: dict) -> bool:
    """
    Hand a print job to the configured printer callable.

    Call only after the owning transaction committed. Printer failures are
    logged and swallowed; they never affect the order.
    """
    printer = current_app.extensions.get(PRINTER_EXTENSION_KEY, _log_only_printer)
    try:
        printer(kind, payload)
    except Exception:
        current_app.logger.warning("printer dispatch failed for %s", kind, exc_info=True)
        return False
    return True
