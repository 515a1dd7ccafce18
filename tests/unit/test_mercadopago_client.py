import asyncio
import json

import httpx
import pytest

from utils.mercadopago_client import MercadoPagoClient


def _client(settings, handler, **overrides):
    settings = settings.model_copy(update={"MP_ACCESS_TOKEN": "APP_USR-1", **overrides})
    return MercadoPagoClient(settings, transport=httpx.MockTransport(handler))


def test_create_payment_sends_auth_and_idempotency_headers(settings):
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(201, json={"id": 42, "status": "pending"})

    client = _client(settings, handler, BACKEND_URL="https://loja.example.com")
    data = asyncio.run(client.create_payment({"transaction_amount": 10.0}, idempotency_key="order-1"))

    request = seen["request"]
    body = json.loads(request.content)
    assert data["id"] == 42
    assert request.url.path == "/v1/payments"
    assert request.headers["Authorization"] == "Bearer APP_USR-1"
    assert request.headers["X-Idempotency-Key"] == "order-1"
    assert body["notification_url"] == "https://loja.example.com/webhooks/mercadopago"


def test_plain_http_backend_gets_no_notification_url(settings):
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": 1})

    client = _client(settings, handler, BACKEND_URL="http://127.0.0.1:8000")
    asyncio.run(client.create_payment({"transaction_amount": 10.0}))

    assert "notification_url" not in seen["body"]


def test_gateway_errors_are_raised(settings):
    client = _client(settings, lambda request: httpx.Response(400, json={"message": "invalid token"}))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.get_payment("99"))


def test_preapproval_create_and_cancel(settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"id": "2c938084", "status": "authorized"})

    client = _client(settings, handler, BACKEND_URL="https://loja.example.com")
    created = asyncio.run(client.create_preapproval({"reason": "Assinatura Essencial"}))
    asyncio.run(client.update_preapproval(created["id"], {"status": "cancelled"}))

    create, cancel = seen
    assert create.method == "POST"
    assert create.url.path == "/preapproval"
    assert create.headers["X-Idempotency-Key"]
    assert json.loads(create.content)["notification_url"] == "https://loja.example.com/webhooks/mercadopago"
    assert cancel.method == "PUT"
    assert cancel.url.path == "/preapproval/2c938084"
    assert json.loads(cancel.content) == {"status": "cancelled"}
