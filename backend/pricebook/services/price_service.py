# Overview: Service-layer operations for the price history ledger.

from __future__ import annotations

from datetime import date
from typing import Iterable

from sqlalchemy import func

from ..extensions import db
from ..models import Product, PriceHistoryEntry
from ..validation import NotFoundError, enforce_rules_price
from pricebook.time_utils import today
"""
Price History Invariants (authoritative)

- Append-only: no update or delete of existing entries in the supported flow.
- current price = entry with the greatest effdate; ties go to the greatest id
  (the later append). No entries -> 0.
- append_price flushes but does not commit; the caller owns the transaction.
"""


def append_price(
    *,
    code: str,
    price_cents: int,
    effective_date: date | None = None,
) -> PriceHistoryEntry:
    """
    Append one price history entry.

    Raises:
        ValidationError: price is negative or out of range
        NotFoundError: no product with this code
    """
    enforce_rules_price(price_cents)

    if db.session.get(Product, code) is None:
        raise NotFoundError(f"Product {code} not found")

    entry = PriceHistoryEntry(
        prodcode=code,
        effdate=effective_date or today(),
        unit_price_cents=price_cents,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_prices(code: str) -> list[PriceHistoryEntry]:
    """Entries for code, newest effective date first."""
    return (
        db.session.query(PriceHistoryEntry)
        .filter(PriceHistoryEntry.prodcode == code)
        .order_by(PriceHistoryEntry.effdate.desc(), PriceHistoryEntry.id.desc())
        .all()
    )


def current_price(code: str) -> int:
    """Current price in cents for code, or 0 when there is no history."""
    entry = (
        db.session.query(PriceHistoryEntry)
        .filter(PriceHistoryEntry.prodcode == code)
        .order_by(PriceHistoryEntry.effdate.desc(), PriceHistoryEntry.id.desc())
        .first()
    )
    return entry.unit_price_cents if entry else 0


def current_prices(codes: Iterable[str] | None = None) -> dict[str, int]:
    """
    Current price for many products in one round trip.

    Ranks each product's entries with ROW_NUMBER() and keeps rank 1.
    codes=None returns every product that has history. Codes without
    history are absent from the result (callers default to 0).
    """
    ranked = db.session.query(
        PriceHistoryEntry.prodcode.label("prodcode"),
        PriceHistoryEntry.unit_price_cents.label("unit_price_cents"),
        func.row_number().over(
            partition_by=PriceHistoryEntry.prodcode,
            order_by=(PriceHistoryEntry.effdate.desc(), PriceHistoryEntry.id.desc()),
        ).label("rn"),
    )
    if codes is not None:
        codes = list(codes)
        if not codes:
            return {}
        ranked = ranked.filter(PriceHistoryEntry.prodcode.in_(codes))

    sub = ranked.subquery()
    rows = db.session.query(sub.c.prodcode, sub.c.unit_price_cents).filter(sub.c.rn == 1).all()
    return {row.prodcode: row.unit_price_cents for row in rows}


def recent_price_changes(limit: int = 10) -> list[PriceHistoryEntry]:
    """Most recently appended entries across all products."""
    return (
        db.session.query(PriceHistoryEntry)
        .order_by(PriceHistoryEntry.id.desc())
        .limit(limit)
        .all()
    )
