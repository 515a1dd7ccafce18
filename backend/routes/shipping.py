# backend/routes/shipping.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from schemas.shipping import ShippingQuote, ShippingQuoteRequest
from services.providers import get_shipping_service
from services.shipping_service import ShippingService

router = APIRouter(prefix="/shipping", tags=["Shipping"])

@router.post("/quote", response_model=ShippingQuote)
async def quote_shipping(
    payload: ShippingQuoteRequest,
    service: ShippingService = Depends(get_shipping_service),
):
    quote = await service.calculate_shipping(
        payload.cep, payload.product_ids, payload.plan_id, payload.shipping_profile_id
    )
    if not quote.success:
        return JSONResponse(status_code=400, content=quote.model_dump(mode="json"))
    return quote
