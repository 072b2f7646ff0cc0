# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/backoffice/routes/payments.py
"""
Payment record routes.

Payments are usually created by the checkout flow when a Wompi payment link
is generated, and updated by the Wompi webhook. These routes let the
dashboard inspect and correct them.
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_role
from ..models import Payment
from ..models.auth import ADMIN_ROLE_SLUGS
from ..services.payments_service import (
    list_payments,
    get_payment,
    create_payment,
    update_payment,
    delete_payment,
    PaymentNotFoundError,
)
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"order_id", "gateway", "payment_link", "reference", "status", "amount"},
    required_on_create={"order_id", "amount"},
)

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


@payments_bp.get("")
@require_auth
def list_payments_route():
    """
    List payments, newest first.

    Query params:
    - order_id: int (optional) - only payments of this order
    """
    order_id = request.args.get("order_id", type=int)
    items = list_payments(order_id=order_id)
    return {"items": items, "count": len(items)}, 200


@payments_bp.get("/<int:payment_id>")
@require_auth
def get_payment_route(payment_id: int):
    try:
        payment = get_payment(payment_id)
    except PaymentNotFoundError:
        return {"error": "Payment not found"}, 404
    return payment.to_dict(), 200


@payments_bp.post("")
@require_auth
def create_payment_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=False)
        created = create_payment(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return {"error": "Internal server error"}, 500

    return created, 201


@payments_bp.put("/<int:payment_id>")
@require_auth
def update_payment_route(payment_id: int):
    payload = request.get_json(silent=True) or {}

    if isinstance(payload, dict) and "order_id" in payload:
        return {"error": "Field not allowed: order_id"}, 400

    try:
        patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=True)
        updated = update_payment(payment_id, patch)
    except PaymentNotFoundError:
        return {"error": "Payment not found"}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update payment")
        return {"error": "Internal server error"}, 500

    return updated, 200


@payments_bp.delete("/<int:payment_id>")
@require_auth
@require_role(*ADMIN_ROLE_SLUGS)
def delete_payment_route(payment_id: int):
    try:
        deleted = delete_payment(payment_id)
    except PaymentNotFoundError:
        return {"error": "Payment not found"}, 404

    return {"ok": True, "payment": deleted}, 200
