from __future__ import annotations

from ..extensions import db
from pricebook.time_utils import to_utc_z
from pricebook.validation import format_cents


class Product(db.Model):
    """
    Product master data.

    CODE DESIGN DECISION:
    Product.code is the primary key and the only identifier.
    - Immutable after creation (never part of an update patch)
    - Never reused: soft-deleted products keep their row, so a duplicate
      insert is rejected even while the product is deleted

    Prices do not live on this row. The current price is derived from
    PriceHistoryEntry (latest effective date wins).
    """
    __tablename__ = "product"
    __table_args__ = (
        db.Index("ix_product_deleted_code", "is_deleted", "code"),
    )

    code = db.Column(db.String(64), primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    # Soft delete: the row is retained, history stays attached
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product code={self.code!r} description={self.description!r} deleted={self.is_deleted}>"

    def to_dict(self, current_price_cents: int | None = None) -> dict:
        data = {
            "code": self.code,
            "description": self.description,
            "unit": self.unit,
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if current_price_cents is not None:
            data["current_price_cents"] = current_price_cents
            data["current_price"] = format_cents(current_price_cents)
        return data


class PriceHistoryEntry(db.Model):
    """
    Append-only price history.

    IMMUTABLE: Rows are inserted on create and on price change, never updated.
    effdate is a calendar date; several entries may share one effdate, in
    which case the most recently appended (highest id) is current.
    """
    __tablename__ = "pricehist"
    __table_args__ = (
        db.CheckConstraint("unit_price_cents >= 0", name="ck_pricehist_price_nonneg"),
        db.Index("ix_pricehist_prodcode_effdate", "prodcode", "effdate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prodcode = db.Column(db.String(64), db.ForeignKey("product.code"), nullable=False, index=True)
    effdate = db.Column(db.Date, nullable=False)

    # Authoritative storage in cents (clients may send decimals)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("price_history", lazy=True))

    def __repr__(self) -> str:
        return f"<PriceHistoryEntry prodcode={self.prodcode!r} effdate={self.effdate} cents={self.unit_price_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prodcode": self.prodcode,
            "effdate": self.effdate.isoformat(),
            "unit_price_cents": self.unit_price_cents,
            "unit_price": format_cents(self.unit_price_cents),
            "created_at": to_utc_z(self.created_at),
        }
