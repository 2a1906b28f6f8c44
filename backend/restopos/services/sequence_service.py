# Overview: Strictly monotonic document numbers per (scope, document type).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


def next_sequence(*, scope: str, document_type: str) -> int:
    """
    Allocate the next number for (scope, document_type) inside the caller's
    transaction.

    The counter row is bumped with a single UPDATE so concurrent allocators
    serialize on it; the first allocation inserts the row under a savepoint
    and falls back to the UPDATE if another writer inserted it first.
    """
    if not scope:
        raise ValueError("scope is required")
    if not document_type:
        raise ValueError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.scope == scope,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(scope=scope, document_type=document_type, next_number=2))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(scope=scope, document_type=document_type)
        .scalar()
    )
    return current - 1


def format_order_number(day_key: str, number: int) -> str:
    return f"ORD-{day_key}-{number:06d}"


def format_voucher_number(voucher_type: str, number: int) -> str:
    return f"{voucher_type[:3].upper()}-{number:05d}"
