# backend/routes/subscriptions.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from repositories import subscription_repository
from schemas.subscription import PlanOut, SubscriptionOut
from services.checkout_service import CheckoutService
from services.providers import get_checkout_service
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])

@router.get("/plans", response_model=List[PlanOut])
def list_plans(db: Session = Depends(get_db)):
    return subscription_repository.find_active_plans(db)

@router.get("/me", response_model=SubscriptionOut)
def my_subscription(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    subscription = subscription_repository.find_user_latest_subscription(db, current_user.id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Nenhuma assinatura encontrada")
    return subscription

@router.post("/me/cancel", response_model=SubscriptionOut)
async def cancel_my_subscription(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    subscription = subscription_repository.find_user_active_subscription(db, current_user.id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Nenhuma assinatura ativa")

    gateway_canceled = await service.cancel_subscription(subscription)
    write_log(db, user_id=current_user.id, action="SUBSCRIPTION_CANCEL", resource="subscriptions",
              ip=client_ip(request), meta={"subscription_id": subscription.id, "gateway_canceled": gateway_canceled})
    db.refresh(subscription)
    return subscription
