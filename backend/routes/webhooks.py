# backend/routes/webhooks.py
import hashlib
import hmac
import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from config import Settings, get_settings
from services.checkout_service import CheckoutService
from services.payment_service import PaymentServiceError
from services.providers import get_checkout_service

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = logging.getLogger(__name__)

def verify_mercadopago_signature(header_signature: str, request_id: str, data_id: str, secret: str) -> bool:
    """Verifies the x-signature header of a Mercado Pago notification."""
    try:
        parts = dict(p.strip().split("=", 1) for p in header_signature.split(",") if "=" in p)
    except (AttributeError, ValueError):
        return False

    ts, received = parts.get("ts"), parts.get("v1")
    if not ts or not received:
        return False

    manifest = f"id:{data_id};request-id:{request_id or ''};ts:{ts};"
    expected = hmac.new(secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)

@router.get("/mercadopago")
def mercadopago_health():
    return {"status": "ok"}

@router.post("/mercadopago")
async def mercadopago_notify(
    request: Request,
    x_signature: str = Header(None, alias="x-signature"),
    x_request_id: str = Header(None, alias="x-request-id"),
    settings: Settings = Depends(get_settings),
    service: CheckoutService = Depends(get_checkout_service),
):
    body = await request.body()
    try:
        notification = json.loads(body) if body else {}
    except ValueError:
        notification = {}

    params = request.query_params
    data_id = (notification.get("data") or {}).get("id") or params.get("data.id") or params.get("id")
    topic = notification.get("type") or notification.get("topic") or params.get("type") or params.get("topic")
    logger.info("Mercado Pago notification received. topic=%s data_id=%s", topic, data_id)

    if settings.MP_WEBHOOK_SECRET:
        if not x_signature or not verify_mercadopago_signature(
            x_signature, x_request_id, str(data_id or ""), settings.MP_WEBHOOK_SECRET
        ):
            logger.warning("Mercado Pago signature verification failed. header=%s", x_signature)
            raise HTTPException(status_code=403, detail="Signature verification failed")

    if topic not in (None, "payment") or not data_id:
        return {"received": True}

    # The notification body is not trusted: the payment state comes from the gateway
    try:
        gateway = await service.payment_service.get_payment_status(data_id)
    except PaymentServiceError:
        logger.exception("Could not fetch payment %s from Mercado Pago", data_id)
        return {"received": True}

    result = await service.handle_payment_webhook(str(data_id), gateway.status, gateway.transaction_id, gateway.payload)
    if not result.success:
        logger.warning("Webhook for payment %s not processed: %s", data_id, result.error)
    return {"received": True, "status": gateway.status}
