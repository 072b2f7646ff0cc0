# backend/backoffice/services/payments_service.py
"""Payments Service: payment attempts recorded against orders."""
from __future__ import annotations

from ..extensions import db
from ..models import Order, Payment
from ..validation import ConflictError, ValidationError

PAYMENT_MUTABLE_FIELDS = {"gateway", "payment_link", "reference", "status", "amount"}


class PaymentNotFoundError(Exception):
    """Raised when a payment id does not exist."""


def _ensure_reference_free(reference: str | None, exclude_id: int | None = None) -> None:
    if not reference:
        return
    query = db.session.query(Payment).filter(Payment.reference == reference)
    if exclude_id is not None:
        query = query.filter(Payment.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Payment reference already exists: {reference}")


def list_payments(order_id: int | None = None) -> list[dict]:
    query = db.session.query(Payment)
    if order_id is not None:
        query = query.filter(Payment.order_id == order_id)
    payments = query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    return [p.to_dict() for p in payments]


def get_payment(payment_id: int) -> Payment:
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise PaymentNotFoundError("Payment not found")
    return payment


def get_payment_by_reference(reference: str) -> Payment | None:
    return db.session.query(Payment).filter_by(reference=reference).first()


def create_payment(*, patch: dict) -> dict:
    """
    Record a payment attempt.

    Raises:
        ValidationError: If the order does not exist or amount is negative
        ConflictError: If reference already exists
    """
    order_id = patch.get("order_id")
    if order_id is None or db.session.get(Order, order_id) is None:
        raise ValidationError("order_id does not reference an existing order")
    if patch.get("amount") is not None and patch["amount"] < 0:
        raise ValidationError("amount must be >= 0")

    _ensure_reference_free(patch.get("reference"))

    payment = Payment(order_id=order_id)
    for k, v in patch.items():
        if k in PAYMENT_MUTABLE_FIELDS:
            setattr(payment, k, v)

    db.session.add(payment)
    db.session.commit()
    return payment.to_dict()


def update_payment(payment_id: int, patch: dict) -> dict:
    payment = get_payment(payment_id)

    if "reference" in patch:
        _ensure_reference_free(patch["reference"], exclude_id=payment.id)
    if patch.get("amount") is not None and patch["amount"] < 0:
        raise ValidationError("amount must be >= 0")

    for k, v in patch.items():
        if k in PAYMENT_MUTABLE_FIELDS:
            setattr(payment, k, v)

    db.session.commit()
    return payment.to_dict()


def delete_payment(payment_id: int) -> dict:
    payment = get_payment(payment_id)
    snapshot = payment.to_dict()
    db.session.delete(payment)
    db.session.commit()
    return snapshot
