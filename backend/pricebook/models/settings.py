from __future__ import annotations

from ..extensions import db


class AppSetting(db.Model):
    """
    Key-value application settings.

    Only keys present in services/settings_service.SETTING_DEFAULTS are
    accepted; values are stored as JSON text.
    """
    __tablename__ = "app_settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_app_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.Text, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
