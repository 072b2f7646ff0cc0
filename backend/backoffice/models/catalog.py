from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def money_str(value) -> str | None:
    """Decimal money columns serialize as strings to keep minor-unit precision."""
    if value is None:
        return None
    return f"{value:.2f}"


class Product(db.Model):
    """
    Catalog entry for the wholesale price list.

    price_with_tax is the tax-inclusive unit price that orders snapshot at
    creation time. Later edits to the product never change existing orders.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    reference = db.Column(db.String(64), nullable=True, unique=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    # Tax-inclusive sale price
    price_with_tax = db.Column(db.Numeric(12, 2), nullable=True)
    base_price = db.Column(db.Numeric(12, 2), nullable=True)

    is_visible = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "reference": self.reference,
            "barcode": self.barcode,
            "category": self.category,
            "brand": self.brand,
            "description": self.description,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "low_stock": self.stock <= self.min_stock,
            "price_with_tax": money_str(self.price_with_tax),
            "base_price": money_str(self.base_price),
            "is_visible": self.is_visible,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
