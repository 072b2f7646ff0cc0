"""
Wompi webhook tests.

Events are signed the way Wompi signs them: SHA256 over the values of
signature.properties, then the timestamp, then the events secret.
"""

import hashlib
from decimal import Decimal

import pytest

from backoffice.models import Order, Payment
from backoffice.services.order_service import OrderService
from backoffice.services.wompi_service import (
    WebhookPayloadError,
    WebhookSignatureError,
    compute_checksum,
    verify_event,
)
from conftest import WOMPI_TEST_SECRET


def make_event(reference="ORD-1", status="APPROVED", secret=WOMPI_TEST_SECRET):
    transaction = {
        "id": "1234-1610641025-49201",
        "amount_in_cents": 2000000,
        "reference": reference,
        "status": status,
    }
    timestamp = 1530291411
    raw = f"{transaction['id']}{transaction['status']}{transaction['amount_in_cents']}{timestamp}{secret}"
    return {
        "event": "transaction.updated",
        "data": {"transaction": transaction},
        "environment": "test",
        "signature": {
            "properties": ["transaction.id", "transaction.status", "transaction.amount_in_cents"],
            "checksum": hashlib.sha256(raw.encode("utf-8")).hexdigest().upper(),
        },
        "timestamp": timestamp,
    }


@pytest.fixture
def payment(db_session, product):
    order = OrderService(db_session).create_order("Tienda La 14", "+573001234567", product.id, 2)
    payment = Payment(order_id=order.id, reference="ORD-1", amount=Decimal("20000.00"))
    db_session.add(payment)
    db_session.commit()
    return payment


class TestChecksum:

    def test_matches_reference_algorithm(self):
        event = make_event()
        assert compute_checksum(event, WOMPI_TEST_SECRET).upper() == event["signature"]["checksum"]

    def test_wrong_secret(self):
        with pytest.raises(WebhookSignatureError):
            verify_event(make_event(secret="someone-elses-secret"), None, WOMPI_TEST_SECRET)

    def test_tampered_status(self):
        event = make_event(status="DECLINED")
        event["data"]["transaction"]["status"] = "APPROVED"
        with pytest.raises(WebhookSignatureError):
            verify_event(event, None, WOMPI_TEST_SECRET)

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda e: e.pop("signature"),
            lambda e: e.pop("timestamp"),
            lambda e: e["data"].pop("transaction"),
            lambda e: e["signature"]["properties"].append("transaction.missing"),
        ],
    )
    def test_malformed(self, mutate):
        event = make_event()
        mutate(event)
        with pytest.raises(WebhookPayloadError):
            verify_event(event, None, WOMPI_TEST_SECRET)


class TestWebhookRoute:

    def test_approved_marks_order_paid(self, client, db_session, payment):
        event = make_event(status="APPROVED")
        resp = client.post(
            "/webhooks/wompi",
            json=event,
            headers={"X-Event-Checksum": event["signature"]["checksum"]},
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["matched"] is True
        assert body["status"] == "APPROVED"

        db_session.expire_all()
        stored = db_session.get(Payment, payment.id)
        assert stored.status == "APPROVED"
        assert db_session.get(Order, stored.order_id).payment_status == "paid"

    @pytest.mark.parametrize("status,expected", [("DECLINED", "failed"), ("VOIDED", "cancelled"), ("ERROR", "failed")])
    def test_status_mapping(self, client, db_session, payment, status, expected):
        resp = client.post("/webhooks/wompi", json=make_event(status=status))
        assert resp.status_code == 200

        db_session.expire_all()
        order_id = db_session.get(Payment, payment.id).order_id
        assert db_session.get(Order, order_id).payment_status == expected

    def test_unknown_reference_is_acknowledged(self, client, db_session):
        resp = client.post("/webhooks/wompi", json=make_event(reference="NOPE"))
        assert resp.status_code == 200
        assert resp.get_json()["matched"] is False

    def test_bad_signature(self, client, db_session, payment):
        resp = client.post("/webhooks/wompi", json=make_event(secret="wrong"))
        assert resp.status_code == 401

        db_session.expire_all()
        assert db_session.get(Payment, payment.id).status == "PENDING"

    def test_header_must_match_body(self, client, db_session, payment):
        resp = client.post(
            "/webhooks/wompi",
            json=make_event(),
            headers={"X-Event-Checksum": "0" * 64},
        )
        assert resp.status_code == 401

    def test_not_json(self, client, db_session):
        resp = client.post("/webhooks/wompi", data="hello", content_type="text/plain")
        assert resp.status_code == 400

    def test_not_configured(self, app, client, db_session):
        app.config["WOMPI_EVENTS_SECRET"] = None
        try:
            resp = client.post("/webhooks/wompi", json=make_event())
        finally:
            app.config["WOMPI_EVENTS_SECRET"] = WOMPI_TEST_SECRET
        assert resp.status_code == 500
