import asyncio
from datetime import datetime

import httpx
import pytest

from schemas.checkout import CardPaymentData
from services.payment_service import (
    CARD_TOKEN_MISSING, PaymentServiceError, normalize_gateway_status,
)


def _card(**kw):
    data = {"method": "credit_card", "card_token": "tok_123", "brand": "Visa", "installments": 1}
    data.update(kw)
    return CardPaymentData(**data)


def test_pix_payment_is_normalized(payment_service, gateway):
    pix = asyncio.run(payment_service.create_pix_payment_direct(
        amount=49.9, description="Assinatura Essencial", email="a@example.com", external_reference="order_1",
    ))

    sent = gateway.created[0]
    assert sent["payment_method_id"] == "pix"
    assert sent["transaction_amount"] == 49.9
    assert sent["external_reference"] == "order_1"
    assert pix.payment_id == str(gateway.next_id)
    assert pix.pix_copy_paste == pix.qr_code
    assert pix.ticket_url.endswith("/ticket")
    assert pix.expiration_date is not None


@pytest.mark.parametrize("amount", [0, -1, float("nan"), float("inf")])
def test_pix_rejects_invalid_amounts_without_calling_gateway(payment_service, gateway, amount):
    with pytest.raises(PaymentServiceError):
        asyncio.run(payment_service.create_pix_payment_direct(
            amount=amount, description="x", email="a@example.com", external_reference="order_1",
        ))
    assert gateway.created == []


def test_pix_gateway_error_becomes_service_error(payment_service, gateway):
    gateway.fail_with = httpx.ConnectError("boom")

    with pytest.raises(PaymentServiceError):
        asyncio.run(payment_service.create_pix_payment_direct(
            amount=10, description="x", email="a@example.com", external_reference="order_1",
        ))


def test_card_without_token_never_reaches_gateway(payment_service, gateway):
    result = asyncio.run(payment_service.create_card_payment(
        amount=10, card=_card(card_token=None), email="a@example.com", external_reference="order_1",
        description="x",
    ))

    assert result.success is False
    assert result.error == CARD_TOKEN_MISSING
    assert gateway.created == []


def test_card_approved(payment_service, gateway):
    result = asyncio.run(payment_service.create_card_payment(
        amount=10, card=_card(), email="a@example.com", external_reference="order_1", description="x",
    ))

    assert result.success is True
    assert result.status == "approved"
    assert gateway.created[0]["token"] == "tok_123"
    assert gateway.created[0]["payment_method_id"] == "visa"


def test_card_rejection_uses_readable_message(payment_service, gateway):
    gateway.card_status = "rejected"
    gateway.card_status_detail = "cc_rejected_insufficient_amount"

    result = asyncio.run(payment_service.create_card_payment(
        amount=10, card=_card(), email="a@example.com", external_reference="order_1", description="x",
    ))

    assert result.success is False
    assert result.error == "Saldo insuficiente."
    assert result.transaction_id is not None


def test_card_in_process_is_pending(payment_service, gateway):
    gateway.card_status = "in_process"

    result = asyncio.run(payment_service.create_card_payment(
        amount=10, card=_card(), email="a@example.com", external_reference="order_1", description="x",
    ))

    assert result.success is True
    assert result.status == "pending"


@pytest.mark.parametrize("raw, normalized", [
    ("approved", "approved"),
    ("authorized", "pending"),
    ("in_mediation", "pending"),
    ("rejected", "rejected"),
    ("cancelled", "cancelled"),
    ("charged_back", "refunded"),
    (None, "pending"),
])
def test_normalize_gateway_status(raw, normalized):
    assert normalize_gateway_status(raw) == normalized


def test_get_payment_status_unknown_payment(payment_service):
    with pytest.raises(PaymentServiceError):
        asyncio.run(payment_service.get_payment_status("404"))


def test_recurring_subscription_starts_at_next_billing(payment_service, gateway):
    start = datetime(2026, 11, 1)

    result = asyncio.run(payment_service.create_recurring_subscription(
        card_token="tok_123", email="a@example.com", reason="Assinatura Essencial", amount=49.9,
        external_reference="order_7", start_date=start,
    ))

    assert result.success is True
    sent = gateway.preapprovals[result.preapproval_id]
    assert sent["status"] == "authorized"
    assert sent["card_token_id"] == "tok_123"
    assert sent["back_url"] == "http://localhost:3000/subscriptions"
    assert sent["auto_recurring"] == {
        "frequency": 1, "frequency_type": "months", "transaction_amount": 49.9, "currency_id": "BRL",
        "start_date": "2026-11-01T00:00:00.000+00:00",
    }


def test_recurring_subscription_gateway_error_is_a_result(payment_service, gateway):
    gateway.preapproval_fail_with = httpx.ConnectError("timeout")

    result = asyncio.run(payment_service.create_recurring_subscription(
        card_token="tok_123", email="a@example.com", reason="Assinatura", amount=49.9, external_reference="order_7",
    ))
    canceled = asyncio.run(payment_service.cancel_recurring_subscription("preapproval-1"))

    assert result.success is False
    assert result.preapproval_id is None
    assert canceled is False
