# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service - transactional order creation

WHY: An order's total must agree with the catalog price at the moment the
order is written. The price read and the order insert therefore happen in
one transaction, with the product row locked for update, and the price is
snapshotted on the order. Later price edits never touch existing orders.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..models import Order, Product
from ..models.orders import PAYMENT_STATUSES
from .concurrency import lock_for_update, run_with_retry

CENT = Decimal("0.01")

MAX_QUANTITY = 1_000_000
# orders.total is Numeric(14, 2)
MAX_TOTAL = Decimal("999999999999.99")
# Largest value an Integer primary key column can hold
MAX_ROW_ID = 2**31 - 1

ORDER_MUTABLE_FIELDS = {"client_name", "client_phone", "payment_status", "quantity"}


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidQuantity(OrderError):
    pass


class InvalidPaymentStatus(OrderError):
    pass


class ProductNotFound(OrderError):
    pass


class ProductHasNoPrice(OrderError):
    pass


class OrderNotFound(OrderError):
    pass


def parse_quantity(value) -> int:
    """
    Positive integer or InvalidQuantity.

    Accepts ints and ASCII digit-only strings; rejects bools, floats, zero,
    negatives and anything above MAX_QUANTITY.
    """
    if isinstance(value, bool):
        raise InvalidQuantity("quantity must be a positive integer", {"quantity": value})
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        qty = int(value.strip())
    else:
        raise InvalidQuantity("quantity must be a positive integer", {"quantity": value})

    if qty < 1:
        raise InvalidQuantity("quantity must be a positive integer", {"quantity": value})
    if qty > MAX_QUANTITY:
        raise InvalidQuantity(
            f"quantity cannot exceed {MAX_QUANTITY}",
            {"quantity": value, "max": MAX_QUANTITY},
        )
    return qty


def compute_total(unit_price: Decimal, quantity: int) -> Decimal:
    """unit_price * quantity rounded to the currency's minor unit."""
    total = (Decimal(unit_price) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)
    if total > MAX_TOTAL:
        raise InvalidQuantity(
            "order total is too large",
            {"quantity": quantity, "max_total": str(MAX_TOTAL)},
        )
    return total


def _check_order_id(order_id: int) -> None:
    if not 1 <= order_id <= MAX_ROW_ID:
        raise OrderNotFound("Order not found", {"order_id": order_id})


class OrderService:
    def __init__(self, store):
        self.store = store

    def create_order(self, client_name: str, client_phone: str, product_id: int, quantity) -> Order:
        """
        Create a pending order priced from the product's current tax-inclusive price.

        Steps run in one transaction: validate quantity, lock and read the
        product, compute the total, insert, commit. Any failure rolls the
        whole transaction back and re-raises.
        """
        qty = parse_quantity(quantity)
        if not 1 <= product_id <= MAX_ROW_ID:
            raise ProductNotFound("Product not found", {"product_id": product_id})

        def _op():
            try:
                product = lock_for_update(
                    self.store.query(Product).filter_by(id=product_id)
                ).first()
                if product is None:
                    raise ProductNotFound("Product not found", {"product_id": product_id})

                unit_price = product.price_with_tax
                if unit_price is None or Decimal(unit_price) <= 0:
                    raise ProductHasNoPrice("Product has no price", {"product_id": product_id})

                order = Order(
                    client_name=client_name,
                    client_phone=client_phone,
                    product_id=product.id,
                    quantity=qty,
                    unit_price=Decimal(unit_price),
                    total=compute_total(unit_price, qty),
                    payment_status="pending",
                )
                self.store.add(order)
                self.store.commit()
                return order
            except Exception:
                self.store.rollback()
                raise

        return run_with_retry(_op, self.store)

    def list_orders(self, payment_status: str | None = None) -> list[Order]:
        query = self.store.query(Order)
        if payment_status:
            query = query.filter(Order.payment_status == payment_status)
        return query.order_by(Order.id.desc()).all()

    def get_order(self, order_id: int) -> Order:
        _check_order_id(order_id)
        order = self.store.get(Order, order_id)
        if order is None:
            raise OrderNotFound("Order not found", {"order_id": order_id})
        return order

    def update_order(self, order_id: int, patch: dict) -> Order:
        """
        Apply an edit to an existing order.

        A quantity change recomputes the total from the order's own
        unit_price snapshot, not from the current catalog price.
        """
        if "payment_status" in patch and patch["payment_status"] not in PAYMENT_STATUSES:
            raise InvalidPaymentStatus(
                "payment_status is invalid",
                {"allowed": list(PAYMENT_STATUSES)},
            )
        _check_order_id(order_id)
        qty = parse_quantity(patch["quantity"]) if "quantity" in patch else None

        def _op():
            try:
                order = lock_for_update(self.store.query(Order).filter_by(id=order_id)).first()
                if order is None:
                    raise OrderNotFound("Order not found", {"order_id": order_id})

                for key, value in patch.items():
                    if key not in ORDER_MUTABLE_FIELDS or key == "quantity":
                        continue
                    setattr(order, key, value)

                if qty is not None:
                    order.quantity = qty
                    order.total = compute_total(order.unit_price, qty)

                self.store.commit()
                return order
            except Exception:
                self.store.rollback()
                raise

        return run_with_retry(_op, self.store)

    def update_payment_status(self, order_id: int, status: str) -> Order:
        return self.update_order(order_id, {"payment_status": status})

    def delete_order(self, order_id: int) -> dict:
        """Delete an order and its payments. Returns the deleted row as a dict."""
        _check_order_id(order_id)
        order = self.store.get(Order, order_id)
        if order is None:
            raise OrderNotFound("Order not found", {"order_id": order_id})
        snapshot = order.to_dict()
        self.store.delete(order)
        self.store.commit()
        return snapshot
