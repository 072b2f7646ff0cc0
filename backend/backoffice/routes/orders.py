# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/backoffice/routes/orders.py
"""
Order API routes

Orders are created by the dashboard and the WhatsApp automation flow. The
total is always computed server-side from the product price read inside the
creation transaction; a client-sent total is ignored.

Responses use the {success, data} / {success, error} envelope the
automation flow expects.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..models.auth import ADMIN_ROLE_SLUGS
from ..services import providers
from ..services.order_service import (
    OrderError,
    OrderNotFound,
    ProductNotFound,
)
from ..validation import ValidationError, coerce_int, validate_order_phone


orders_bp = Blueprint("orders", __name__, url_prefix="/orders")

CLIENT_NAME_MIN = 3
CLIENT_NAME_MAX = 80


def _error(message, status, details=None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def _validate_client_name(value) -> str:
    if not isinstance(value, str):
        raise ValidationError("client_name is required")
    name = value.strip()
    if not (CLIENT_NAME_MIN <= len(name) <= CLIENT_NAME_MAX):
        raise ValidationError(
            f"client_name must be between {CLIENT_NAME_MIN} and {CLIENT_NAME_MAX} characters"
        )
    return name


def _validate_product_id(value) -> int:
    product_id = coerce_int("product_id", value)
    if product_id < 1:
        raise ValidationError("product_id must be a positive integer")
    return product_id


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "client_name": "Tienda La 14",    // 3-80 characters
        "client_phone": "+573001234567",
        "product_id": 1,
        "quantity": 3                     // positive integer
    }

    Returns 201 {success: true, data: order}. The order starts pending.
    """
    data = request.get_json(silent=True) or {}

    try:
        client_name = _validate_client_name(data.get("client_name"))
        client_phone = validate_order_phone(data.get("client_phone"))
        product_id = _validate_product_id(data.get("product_id"))
    except ValidationError as e:
        return _error(str(e), 400)

    try:
        order = providers.order_service().create_order(
            client_name=client_name,
            client_phone=client_phone,
            product_id=product_id,
            quantity=data.get("quantity"),
        )
    except ProductNotFound as e:
        return _error(str(e), 404, e.details)
    except OrderError as e:
        return _error(str(e), 400, e.details)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return _error("Internal server error", 500)

    current_app.logger.info(
        "Order created",
        extra={"order_id": order.id, "product_id": order.product_id, "quantity": order.quantity},
    )
    return jsonify({"success": True, "data": order.to_dict()}), 201


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - payment_status: str (optional) - pending | paid | failed | cancelled
    """
    payment_status = request.args.get("payment_status")
    orders = providers.order_service().list_orders(payment_status=payment_status)
    return jsonify({"success": True, "data": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = providers.order_service().get_order(order_id)
    except OrderNotFound as e:
        return _error(str(e), 404)

    return jsonify({"success": True, "data": order.to_dict()}), 200


@orders_bp.put("/<int:order_id>")
@require_auth
def update_order_route(order_id: int):
    """
    Edit an order.

    Accepts client_name, client_phone, quantity and payment_status. A new
    quantity recomputes the total from the price captured at creation.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return _error("Invalid JSON payload", 400)

    allowed = {"client_name", "client_phone", "quantity", "payment_status"}
    unknown = sorted(k for k in data if k not in allowed)
    if unknown:
        return _error(f"Field not allowed: {unknown[0]}", 400)

    patch = dict(data)
    try:
        if "client_name" in patch:
            patch["client_name"] = _validate_client_name(patch["client_name"])
        if "client_phone" in patch:
            patch["client_phone"] = validate_order_phone(patch["client_phone"])
    except ValidationError as e:
        return _error(str(e), 400)

    try:
        order = providers.order_service().update_order(order_id, patch)
    except OrderNotFound as e:
        return _error(str(e), 404)
    except OrderError as e:
        return _error(str(e), 400, e.details)
    except Exception:
        current_app.logger.exception("Failed to update order")
        return _error("Internal server error", 500)

    return jsonify({"success": True, "data": order.to_dict()}), 200


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_role(*ADMIN_ROLE_SLUGS)
def delete_order_route(order_id: int):
    """Delete an order together with its payments. Requires an admin role."""
    try:
        deleted = providers.order_service().delete_order(order_id)
    except OrderNotFound as e:
        return _error(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return _error("Internal server error", 500)

    return jsonify({"success": True, "data": deleted}), 200
