# backend/backoffice/services/products_service.py
"""
Products Service

Catalog CRUD used by the dashboard's inventory editor. Input arrives as a
patch already validated by validation.validate_payload.
"""
from __future__ import annotations

from sqlalchemy import String, cast, func, or_

from ..extensions import db
from ..models import Product
from ..validation import ConflictError

PRODUCT_MUTABLE_FIELDS = {
    "name", "reference", "barcode", "category", "brand", "description",
    "stock", "min_stock", "price_with_tax", "base_price", "is_visible",
}

SEARCH_LIMIT = 50


class ProductNotFoundError(Exception):
    """Raised when a product id does not exist."""


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_reference_free(reference: str | None, exclude_id: int | None = None) -> None:
    if not reference:
        return
    query = db.session.query(Product).filter(Product.reference == reference)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Product reference already exists: {reference}")


def list_products(search: str | None = None) -> dict:
    """
    List products, newest first.

    With search, matches name, reference, barcode, category, brand or id
    (case-insensitive substring), ordered by name and capped at SEARCH_LIMIT.
    """
    query = db.session.query(Product)

    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(term),
            func.lower(Product.reference).like(term),
            func.lower(Product.barcode).like(term),
            func.lower(Product.category).like(term),
            func.lower(Product.brand).like(term),
            cast(Product.id, String).like(term),
        )).order_by(Product.name.asc()).limit(SEARCH_LIMIT)
    else:
        query = query.order_by(Product.id.desc())

    products = query.all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If reference already exists
    """
    _ensure_reference_free(patch.get("reference"))

    product = Product()
    apply_product_patch(product, patch)

    db.session.add(product)
    db.session.commit()
    return product.to_dict()


def update_product(product_id: int, patch: dict) -> dict:
    product = get_product(product_id)

    if "reference" in patch:
        _ensure_reference_free(patch["reference"], exclude_id=product.id)

    apply_product_patch(product, patch)
    db.session.commit()
    return product.to_dict()


def delete_product(product_id: int) -> dict:
    """
    Delete a product.

    Orders keep their product_id and price snapshot; the reference is weak.
    """
    product = get_product(product_id)
    snapshot = product.to_dict()
    db.session.delete(product)
    db.session.commit()
    return snapshot
