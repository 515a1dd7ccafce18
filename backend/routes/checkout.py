# backend/routes/checkout.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from models.users import User
from schemas.checkout import (
    CheckoutResult, ErrorCode, PaymentStatusOut, PendingPixOut, ProductCheckoutRequest,
    SubscriptionCheckoutRequest,
)
from services.checkout_service import CheckoutService
from services.payment_service import PaymentServiceError
from services.providers import get_checkout_service
from utils.audit import client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/checkout", tags=["Checkout"])
logger = logging.getLogger(__name__)

# Business failures are returned as data; only the HTTP status reflects them
def _respond(result: CheckoutResult):
    if result.success:
        return result
    status_code = 500 if result.error_code == ErrorCode.INTERNAL_ERROR else 400
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

@router.post("/subscription", response_model=CheckoutResult)
async def subscription_checkout(
    payload: SubscriptionCheckoutRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    logger.info("Subscription checkout: user=%s plan=%s method=%s ip=%s",
                current_user.id, payload.plan_slug, payload.payment_data.method, client_ip(request))
    result = await service.process_subscription_checkout(current_user.id, current_user, payload)
    return _respond(result)

@router.post("/cart", response_model=CheckoutResult)
async def cart_checkout(
    payload: ProductCheckoutRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    logger.info("Cart checkout: user=%s method=%s ip=%s",
                current_user.id, payload.payment_data.method, client_ip(request))
    result = await service.process_product_checkout(current_user.id, current_user, payload)
    return _respond(result)

@router.get("/pending-pix", response_model=PendingPixOut)
def pending_pix(
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    pending = service.find_pending_pix(current_user.id)
    if pending is None:
        raise HTTPException(status_code=404, detail="Nenhum PIX pendente")
    return pending

@router.get("/payment-status/{transaction_id}", response_model=PaymentStatusOut)
async def payment_status(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    try:
        found = await service.check_payment_status(current_user.id, transaction_id)
    except PaymentServiceError as e:
        logger.warning("Payment status lookup failed for %s: %s", transaction_id, e)
        raise HTTPException(status_code=502, detail="Não foi possível consultar o pagamento")
    if found is None:
        raise HTTPException(status_code=404, detail="Pagamento não encontrado")

    status, order = found
    return PaymentStatusOut(
        transaction_id=transaction_id, status=status, order_id=order.id, order_status=order.status.value,
    )
