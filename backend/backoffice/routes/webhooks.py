# Overview: Inbound webhook routes for third-party services.

# backend/backoffice/routes/webhooks.py
"""
Wompi webhook.

No bearer token: authenticity comes from the event checksum, computed with
WOMPI_EVENTS_SECRET. Wompi retries any non-2xx answer, so events for
unknown references are acknowledged with 200.
"""
from flask import Blueprint, request, current_app

from ..services.wompi_service import (
    process_event,
    WebhookPayloadError,
    WebhookSignatureError,
)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/webhooks")


@webhooks_bp.post("/wompi")
def wompi_webhook():
    secret = current_app.config.get("WOMPI_EVENTS_SECRET")
    if not secret:
        current_app.logger.error("WOMPI_EVENTS_SECRET is not configured; rejecting webhook")
        return {"error": "Webhook not configured"}, 500

    event = request.get_json(silent=True)
    if event is None:
        return {"error": "Invalid JSON payload"}, 400

    try:
        result = process_event(event, request.headers.get("X-Event-Checksum"), secret)
    except WebhookPayloadError as e:
        return {"error": str(e)}, 400
    except WebhookSignatureError:
        current_app.logger.warning(
            "Wompi webhook rejected: bad checksum",
            extra={"ip_address": request.remote_addr},
        )
        return {"error": "Invalid signature"}, 401
    except Exception:
        current_app.logger.exception("Failed to process Wompi webhook")
        return {"error": "Internal server error"}, 500

    if not result["matched"]:
        current_app.logger.info(
            "Wompi event for unknown reference",
            extra={"transaction_id": result["transaction_id"]},
        )

    return result, 200
