# Overview: Wompi payment-event verification and status updates.

"""
Wompi Webhook Processing

Wompi signs each event with a checksum:

    SHA256( values of signature.properties looked up in data
            + timestamp
            + events secret )

The checksum is carried in the body (signature.checksum) and in the
X-Event-Checksum header. Both are checked against the value recomputed with
our events secret; a body that merely repeats the header is not enough.
"""

from __future__ import annotations

import hashlib
import hmac

from ..extensions import db
from .payments_service import get_payment_by_reference

# Wompi transaction status -> order payment_status
ORDER_STATUS_BY_WOMPI_STATUS = {
    "APPROVED": "paid",
    "DECLINED": "failed",
    "ERROR": "failed",
    "VOIDED": "cancelled",
    "PENDING": "pending",
}


class WebhookPayloadError(ValueError):
    """Event body is not a well-formed Wompi event (400)."""


class WebhookSignatureError(Exception):
    """Checksum missing or does not match (401)."""


def _lookup(data: dict, path: str):
    current = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            raise WebhookPayloadError(f"Signed property missing: {path}")
        current = current[part]
    return current


def compute_checksum(event: dict, secret: str) -> str:
    signature = event.get("signature")
    if not isinstance(signature, dict) or not isinstance(signature.get("properties"), list):
        raise WebhookPayloadError("Invalid event structure")
    if "timestamp" not in event:
        raise WebhookPayloadError("Event timestamp missing")

    data = event.get("data") or {}
    raw = "".join(str(_lookup(data, prop)) for prop in signature["properties"])
    raw += str(event["timestamp"]) + secret
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def verify_event(event: dict, header_checksum: str | None, secret: str) -> None:
    """Raise WebhookPayloadError or WebhookSignatureError unless the event is authentic."""
    if not isinstance(event, dict):
        raise WebhookPayloadError("Invalid event structure")

    signature = event.get("signature")
    body_checksum = signature.get("checksum") if isinstance(signature, dict) else None
    if not body_checksum:
        raise WebhookPayloadError("signature.checksum missing")

    data = event.get("data")
    transaction = data.get("transaction") if isinstance(data, dict) else None
    if not isinstance(transaction, dict):
        raise WebhookPayloadError("data.transaction missing")

    expected = compute_checksum(event, secret).upper()

    if not hmac.compare_digest(expected, str(body_checksum).upper()):
        raise WebhookSignatureError("Invalid signature")
    if header_checksum is not None and not hmac.compare_digest(expected, header_checksum.upper()):
        raise WebhookSignatureError("Invalid signature")


def process_event(event: dict, header_checksum: str | None, secret: str) -> dict:
    """
    Verify a Wompi event and apply the transaction status.

    The payment with the transaction's reference gets the raw Wompi status;
    its order gets the mapped payment_status. An unknown reference is
    acknowledged with matched=False so Wompi stops retrying.
    """
    verify_event(event, header_checksum, secret)

    transaction = event["data"]["transaction"]
    status = transaction.get("status")
    reference = transaction.get("reference")

    payment = None
    if reference:
        payment = get_payment_by_reference(reference)

    if payment is not None:
        payment.status = status
        order_status = ORDER_STATUS_BY_WOMPI_STATUS.get(status)
        if order_status and payment.order is not None:
            payment.order.payment_status = order_status
        db.session.commit()

    return {
        "received": True,
        "transaction_id": transaction.get("id"),
        "status": status,
        "matched": payment is not None,
        "order_id": payment.order_id if payment is not None else None,
    }
