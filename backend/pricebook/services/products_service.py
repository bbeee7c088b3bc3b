# backend/pricebook/services/products_service.py
"""
Product Registry Service

All product writes go through here. Each mutation is one transaction:
- create: product row + initial price entry + audit "created"
- update: description/unit (+ price entry when the price changed) + audit "edited"
- soft delete / recover: flag flip + audit "deleted" / "recovered"

The audit entry is written in a SAVEPOINT (see audit_service) so an audit
failure never rolls back the product change.

Hard delete (purge) is a legacy maintenance path, exposed only through the
CLI. It removes price history and the product row; audit rows remain.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, PriceHistoryEntry
from ..validation import ConflictError, NotFoundError, ReferentialConflictError, ValidationError
from . import audit_service, price_service

PRODUCT_MUTABLE_FIELDS = {"description", "unit"}

STATUS_ACTIVE = "active"
STATUS_DELETED = "deleted"
STATUS_ALL = "all"
PRODUCT_STATUSES = (STATUS_ACTIVE, STATUS_DELETED, STATUS_ALL)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _require_product(code: str) -> Product:
    p = db.session.get(Product, code)
    if p is None:
        raise NotFoundError(f"Product {code} not found")
    return p


STALE_WRITE_MESSAGE = "Product was modified by someone else. Reload and try again."


def _flush_product() -> None:
    """Write the product row now so a lost version_id race surfaces here."""
    try:
        db.session.flush()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError(STALE_WRITE_MESSAGE)


def _commit() -> None:
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError(STALE_WRITE_MESSAGE)


def list_products(search: str | None = None, status: str = STATUS_ACTIVE) -> dict:
    """
    Product listing with derived current price.

    Args:
        search: case-insensitive substring matched against code and description
        status: "active" (default), "deleted", or "all"

    Returns:
        Dict with 'items' and 'count'.
    """
    if status not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")

    query = db.session.query(Product)

    if status == STATUS_ACTIVE:
        query = query.filter(Product.is_deleted.is_(False))
    elif status == STATUS_DELETED:
        query = query.filter(Product.is_deleted.is_(True))

    term = (search or "").strip()
    if term:
        pattern = f"%{_escape_like(term.lower())}%"
        query = query.filter(
            or_(
                db.func.lower(Product.code).like(pattern, escape="\\"),
                db.func.lower(Product.description).like(pattern, escape="\\"),
            )
        )

    products = query.order_by(Product.code.asc()).all()

    # One query for every price on the page
    prices = price_service.current_prices(p.code for p in products)

    items = [p.to_dict(current_price_cents=prices.get(p.code, 0)) for p in products]
    return {"items": items, "count": len(items)}


def get_product(code: str) -> dict:
    p = _require_product(code)
    return p.to_dict(current_price_cents=price_service.current_price(code))


def get_product_detail(code: str) -> dict:
    """Product plus full price history and its audit trail."""
    product = get_product(code)
    return {
        "product": product,
        "price_history": [e.to_dict() for e in price_service.list_prices(code)],
        "audit_log": [e.to_dict() for e in audit_service.list_audit_entries(code=code)],
    }


def create_product(*, code: str, patch: dict, price_cents: int, actor: str) -> dict:
    """
    Create product with its initial price.

    Raises:
        ConflictError: If the code already exists (deleted products included)
    """
    if db.session.get(Product, code) is not None:
        raise ConflictError(f"Product code {code} already exists.")

    p = Product(code=code, is_deleted=False)
    apply_product_patch(p, patch)
    db.session.add(p)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Product code {code} already exists.")

    price_service.append_price(code=code, price_cents=price_cents)
    audit_service.record_product_action(
        code=code,
        description=p.description,
        action="created",
        actor=actor,
    )

    _commit()
    return p.to_dict(current_price_cents=price_cents)


def update_product(
    *,
    code: str,
    patch: dict,
    actor: str,
    price_cents: int | None = None,
    expected_version: int | None = None,
) -> dict:
    """
    Update description/unit; append a price entry when the price changed.

    Args:
        patch: description/unit values (code is immutable and ignored)
        price_cents: new price; None leaves the price alone
        expected_version: optional optimistic-concurrency check against version_id

    Raises:
        NotFoundError: unknown code
        ConflictError: expected_version does not match, or a concurrent write won
    """
    p = _require_product(code)

    if expected_version is not None and expected_version != p.version_id:
        raise ConflictError(STALE_WRITE_MESSAGE)

    apply_product_patch(p, patch)
    # Bumps version_id even when description/unit are unchanged
    p.updated_at = db.func.now()
    _flush_product()

    current = price_service.current_price(code)
    if price_cents is not None and price_cents != current:
        price_service.append_price(code=code, price_cents=price_cents)
        current = price_cents

    audit_service.record_product_action(
        code=code,
        description=p.description,
        action="edited",
        actor=actor,
    )

    _commit()
    return p.to_dict(current_price_cents=current)


def soft_delete_product(*, code: str, actor: str) -> dict:
    """
    Soft-delete a product: is_deleted=True, history kept.

    Raises:
        NotFoundError: unknown code
        ConflictError: a concurrent write won
    """
    p = _require_product(code)
    p.is_deleted = True
    _flush_product()

    audit_service.record_product_action(
        code=code,
        description=p.description,
        action="deleted",
        actor=actor,
    )

    _commit()
    return p.to_dict(current_price_cents=price_service.current_price(code))


def recover_product(*, code: str, actor: str) -> dict:
    """
    Clear the soft-delete flag.

    Raises:
        NotFoundError: unknown code
        ConflictError: a concurrent write won
    """
    p = _require_product(code)
    p.is_deleted = False
    _flush_product()

    audit_service.record_product_action(
        code=code,
        description=p.description,
        action="recovered",
        actor=actor,
    )

    _commit()
    return p.to_dict(current_price_cents=price_service.current_price(code))


def hard_delete_product(*, code: str) -> int:
    """
    Legacy purge: delete all price history for code, then the product row.

    Returns the number of price entries removed.

    Raises:
        NotFoundError: unknown code
        ReferentialConflictError: other rows still reference the product
    """
    p = _require_product(code)

    try:
        removed = (
            db.session.query(PriceHistoryEntry)
            .filter(PriceHistoryEntry.prodcode == code)
            .delete(synchronize_session=False)
        )
        db.session.delete(p)
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ReferentialConflictError(f"Product {code} is still referenced by other records.")

    db.session.commit()
    return removed


def count_products() -> dict:
    active = db.session.query(Product).filter(Product.is_deleted.is_(False)).count()
    deleted = db.session.query(Product).filter(Product.is_deleted.is_(True)).count()
    return {"active": active, "deleted": deleted, "total": active + deleted}
