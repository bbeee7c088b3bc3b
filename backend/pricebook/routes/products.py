# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/pricebook/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to any signed-in user; only admins may list
  deleted products
- Write operations require the admin role
"""
from flask import Blueprint, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services import products_service, price_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    extract_price_cents,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"code", "description", "unit"},
    required_on_create={"code", "description", "unit"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "unit"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _unavailable():
    current_app.logger.exception("Product store unavailable")
    return {"error": "Product store is unavailable. Please try again."}, 503


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with current prices.

    Query params:
    - search: str (optional) - case-insensitive match on code or description
    - status: active (default) | deleted | all - deleted/all are admin-only
    """
    search = request.args.get("search")
    status = request.args.get("status", products_service.STATUS_ACTIVE)

    if status != products_service.STATUS_ACTIVE and not g.session_context.is_admin:
        return {"error": "Admin access required"}, 403

    try:
        return products_service.list_products(search=search, status=status)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except SQLAlchemyError:
        return _unavailable()


@products_bp.get("/<code>")
@require_auth
def get_product(code: str):
    try:
        product = products_service.get_product(code)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    if product["is_deleted"] and not g.session_context.is_admin:
        return {"error": f"Product {code} not found"}, 404
    return product


@products_bp.get("/<code>/prices")
@require_auth
def list_product_prices(code: str):
    """Price history, newest effective date first."""
    try:
        product = products_service.get_product(code)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    if product["is_deleted"] and not g.session_context.is_admin:
        return {"error": f"Product {code} not found"}, 404

    entries = price_service.list_prices(code)
    return {
        "prodcode": code,
        "current_price_cents": product["current_price_cents"],
        "current_price": product["current_price"],
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
    }


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a new product with its initial price.

    Body: code, description, unit, price (decimal) or price_cents (int).
    """
    payload = dict(request.get_json(silent=True) or {})

    try:
        price_cents = extract_price_cents(payload, required=True)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    code = patch.pop("code")

    try:
        created = products_service.create_product(
            code=code, patch=patch, price_cents=price_cents, actor=g.current_user.email
        )
    except ConflictError as e:
        return {"error": str(e)}, 409
    except SQLAlchemyError:
        return _unavailable()

    return created, 201


@products_bp.put("/<code>")
@require_auth
@require_admin
def update_product_route(code: str):
    """
    Update a product.

    Body: description, unit, optional price / price_cents, optional version_id.
    The code itself cannot change.
    """
    payload = dict(request.get_json(silent=True) or {})
    payload.pop("code", None)
    expected_version = payload.pop("version_id", None)

    try:
        if expected_version is not None and (
            not isinstance(expected_version, int) or isinstance(expected_version, bool)
        ):
            raise ValidationError("version_id must be an integer")
        price_cents = extract_price_cents(payload, required=False)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(
            code=code,
            patch=patch,
            actor=g.current_user.email,
            price_cents=price_cents,
            expected_version=expected_version,
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except SQLAlchemyError:
        return _unavailable()

    return updated, 200


@products_bp.delete("/<code>")
@require_auth
@require_admin
def delete_product_route(code: str):
    """Soft-delete a product. Price history is kept."""
    try:
        product = products_service.soft_delete_product(code=code, actor=g.current_user.email)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except SQLAlchemyError:
        return _unavailable()

    return product, 200


@products_bp.post("/<code>/recover")
@require_auth
@require_admin
def recover_product_route(code: str):
    """Clear the soft-delete flag."""
    try:
        product = products_service.recover_product(code=code, actor=g.current_user.email)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except SQLAlchemyError:
        return _unavailable()

    return product, 200
