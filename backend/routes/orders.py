# backend/routes/orders.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, UserRole
from repositories import order_repository
from repositories.order_repository import InvalidStatusTransition
from schemas.checkout import CheckoutResult, ErrorCode
from schemas.order import ApprovePaymentPayload, OrderResponse, OrdersPage, OrderStatusPatch
from services.checkout_service import CheckoutService
from services.providers import get_checkout_service
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user, require_admin

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

def _is_admin(user: User) -> bool:
    return (user.role or "").upper() == UserRole.ADMIN.value

def _raise_for(result: CheckoutResult):
    status_code = {
        ErrorCode.ORDER_NOT_FOUND: 404,
        ErrorCode.NOT_FOUND: 404,
        ErrorCode.INTERNAL_ERROR: 500,
        ErrorCode.PIX_CREATION_FAILED: 502,
    }.get(result.error_code, 400)
    raise HTTPException(status_code=status_code, detail=result.error)

# List the current user's orders, newest first
@router.get("", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows, total = order_repository.find_user_orders(db, current_user.id, page, page_size)
    return {"items": rows, "total": total, "page": page, "page_size": page_size}

@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = order_repository.find_order_by_id(db, order_id)
    if not order or (order.user_id != current_user.id and not _is_admin(current_user)):
        raise HTTPException(status_code=404, detail="Pedido não encontrado")
    return order

@router.post("/{order_id}/regenerate-pix", response_model=CheckoutResult)
async def regenerate_pix(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    result = await service.regenerate_pix(current_user.id, order_id, current_user)
    if not result.success:
        _raise_for(result)
    return result

# Shipment tracking updates from the back office
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    order = order_repository.find_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")

    old_status = order.status
    try:
        order_repository.update_order_status(db, order, payload.status, payload.carrier, payload.tracking_code)
    except InvalidStatusTransition as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
              ip=client_ip(request), meta={"order_id": order_id, "old": old_status.value, "new": payload.status.value})
    return order_repository.find_order_by_id(db, order_id)

# Manual reconciliation when a gateway notification never arrived
@router.post("/{order_id}/approve-payment", response_model=CheckoutResult)
async def approve_payment(
    order_id: int,
    payload: ApprovePaymentPayload,
    current_user: User = Depends(require_admin),
    service: CheckoutService = Depends(get_checkout_service),
):
    result = await service.approve_payment_manually(
        order_id, current_user.id, payload.transaction_id, payload.skip_gateway_check
    )
    if not result.success:
        _raise_for(result)
    return result
