# Overview: Service-layer operations for application settings.

from __future__ import annotations

import json

from ..extensions import db
from ..models import AppSetting
from ..validation import ValidationError, validate_email

# key -> default; the default's type is the accepted type
SETTING_DEFAULTS: dict[str, object] = {
    "company_name": "Acme Inc",
    "notification_email": "admin@example.com",
    "enable_notifications": True,
    "track_price_history": True,
    "price_change_alerts": True,
    "new_user_notifications": False,
}


def _validate_value(key: str, value):
    default = SETTING_DEFAULTS[key]
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be true or false")
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{key} cannot be blank")
    if key == "notification_email":
        return validate_email(value)
    if len(value) > 255:
        raise ValidationError(f"{key} exceeds max length 255")
    return value


def get_settings() -> dict:
    """Stored values merged over defaults."""
    values = dict(SETTING_DEFAULTS)
    for row in db.session.query(AppSetting).all():
        if row.key in SETTING_DEFAULTS and row.value is not None:
            values[row.key] = json.loads(row.value)
    return values


def update_settings(patch: dict, actor_id: int | None = None) -> dict:
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("Settings payload must be a non-empty object")

    cleaned = {}
    for key, value in patch.items():
        if key not in SETTING_DEFAULTS:
            raise ValidationError(f"Unknown setting: {key}")
        cleaned[key] = _validate_value(key, value)

    for key, value in cleaned.items():
        row = db.session.query(AppSetting).filter_by(key=key).first()
        if row is None:
            row = AppSetting(key=key)
            db.session.add(row)
        row.value = json.dumps(value)
        row.updated_by_user_id = actor_id

    db.session.commit()
    return get_settings()
