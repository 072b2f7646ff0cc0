from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import money_str

PAYMENT_STATUSES = ("pending", "paid", "failed", "cancelled")


class Order(db.Model):
    """
    Single-product wholesale order.

    unit_price is the product price captured inside the creation
    transaction; total is always unit_price * quantity.

    product_id is a weak reference: the product may be edited or deleted
    independently of the order.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_payment_status_created", "payment_status", "created_at"),
        db.CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    client_name = db.Column(db.String(80), nullable=False)
    client_phone = db.Column(db.String(20), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(14, 2), nullable=False)

    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "total": money_str(self.total),
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Payment(db.Model):
    """
    Payment attempt for an order through an external gateway (Wompi).

    status holds the gateway's own vocabulary (PENDING, APPROVED, DECLINED,
    VOIDED, ERROR); the order's payment_status holds ours.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    gateway = db.Column(db.String(32), nullable=False, default="wompi")
    payment_link = db.Column(db.String(512), nullable=True)
    reference = db.Column(db.String(128), nullable=True, unique=True, index=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    amount = db.Column(db.Numeric(14, 2), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("payments", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "gateway": self.gateway,
            "payment_link": self.payment_link,
            "reference": self.reference,
            "status": self.status,
            "amount": money_str(self.amount),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
