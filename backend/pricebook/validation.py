from __future__ import annotations
from decimal import Decimal, InvalidOperation
import re

from dataclasses import dataclass
from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class InvalidCredentials(ValueError):
    """401-level: missing or wrong email/password."""


class ForbiddenError(ValueError):
    """403-level: caller may not perform this action."""


class NotFoundError(ValueError):
    """404-level: the addressed record does not exist."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product code)."""


class ReferentialConflictError(ConflictError):
    """409-level: other records still reference the row being removed."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    if value is None:
        return None

    # Strings / Text
    if isinstance(col.type, (String, Text)):
        if isinstance(value, (dict, list, bool)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_price_cents(value: Any, field: str = "price") -> int:
    """
    Convert a decimal price ("12.50", 12.5, 10) into integer cents.

    At most two decimal places; floats go through str() so 12.5 is exact.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} cannot be blank")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a valid number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a valid number")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimal places")
    cents = int(amount * 100)
    enforce_rules_price(cents, field=field)
    return cents


def enforce_rules_price(price_cents: Any, field: str = "price") -> None:
    if not isinstance(price_cents, int) or isinstance(price_cents, bool):
        raise ValidationError(f"{field} must be an integer number of cents")
    if price_cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")


def extract_price_cents(payload: dict, *, required: bool) -> int | None:
    """
    Pop the price out of a product payload.

    Accepts either "price" (decimal) or "price_cents" (integer), not both.
    """
    has_price = "price" in payload
    has_cents = "price_cents" in payload
    if has_price and has_cents:
        raise ValidationError("Send either price or price_cents, not both")

    if has_price:
        return parse_price_cents(payload.pop("price"))
    if has_cents:
        raw = payload.pop("price_cents")
        enforce_rules_price(raw, field="price_cents")
        return raw
    if required:
        raise ValidationError("Missing required fields: price")
    return None


def format_cents(cents: int | None) -> str:
    """1250 -> "12.50"."""
    return f"{Decimal(cents or 0) / 100:.2f}"


def require_fields(data: dict, *fields: str) -> dict[str, str]:
    """
    Return stripped string values for the named fields; any empty one is a
    ValidationError.
    """
    values = {}
    missing = []
    for name in fields:
        raw = data.get(name)
        value = raw.strip() if isinstance(raw, str) else ""
        if not value:
            missing.append(name)
        values[name] = value
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")
    return values


def validate_email(email: str) -> str:
    email = email.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("email must be a valid email address")
    return email
