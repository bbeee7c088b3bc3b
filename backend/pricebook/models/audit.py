from __future__ import annotations

from ..extensions import db
from pricebook.time_utils import to_utc_z

AUDIT_ACTIONS = ("created", "edited", "deleted", "recovered")


class ProductAuditLog(db.Model):
    """
    Product lifecycle audit trail.

    IMMUTABLE: Never update or delete. One row per mutating action.
    prodcode is not a foreign key; rows survive a product purge.
    """
    __tablename__ = "product_audit_log"
    __table_args__ = (
        db.CheckConstraint(
            "action IN ('created', 'edited', 'deleted', 'recovered')",
            name="ck_product_audit_log_action",
        ),
        db.Index("ix_product_audit_log_performed", "performed_at"),
        db.Index("ix_product_audit_log_prodcode_performed", "prodcode", "performed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    prodcode = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    action = db.Column(db.String(16), nullable=False)
    performed_by = db.Column(db.String(255), nullable=False)
    performed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prodcode": self.prodcode,
            "description": self.description,
            "action": self.action,
            "performed_by": self.performed_by,
            "performed_at": to_utc_z(self.performed_at),
        }
