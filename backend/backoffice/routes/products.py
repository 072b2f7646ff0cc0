# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations are open to any signed-in user
- Write operations require an admin role (global:owner or global:admin)
"""
from flask import Blueprint, request, current_app

from ..services.products_service import (
    list_products as list_products_service,
    get_product,
    create_product,
    update_product,
    delete_product,
    ProductNotFoundError,
)
from ..models import Product
from ..models.auth import ADMIN_ROLE_SLUGS
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "reference", "barcode", "category", "brand", "description",
        "stock", "min_stock", "price_with_tax", "base_price", "is_visible",
    },
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products.

    Query params:
    - search: str (optional) - substring of name, reference, barcode,
      category, brand or id
    """
    search = request.args.get("search")
    return list_products_service(search=search)


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = get_product(product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    return product.to_dict(), 200


@products_bp.post("")
@require_auth
@require_role(*ADMIN_ROLE_SLUGS)
def create_product_route():
    """
    Create a new product.

    Requires an admin role.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = create_product(patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(*ADMIN_ROLE_SLUGS)
def update_product_route(product_id: int):
    """
    Update a product.

    Price edits never change existing orders; each order keeps the price
    captured when it was created.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = update_product(product_id, patch)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(*ADMIN_ROLE_SLUGS)
def delete_product_route(product_id: int):
    """Delete a product. Requires an admin role."""
    try:
        deleted = delete_product(product_id)
    except ProductNotFoundError:
        return {"error": "Product not found"}, 404

    return {"ok": True, "product": deleted}, 200
