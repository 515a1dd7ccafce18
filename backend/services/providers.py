# backend/services/providers.py
from fastapi import Depends
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from services.cart_service import CartService
from services.checkout_service import CheckoutService
from services.payment_service import PaymentService
from services.shipping_service import ShippingService
from utils.mercadopago_client import MercadoPagoClient

# Services are built per request from explicit settings; tests override these providers

def get_mercadopago_client(settings: Settings = Depends(get_settings)) -> MercadoPagoClient:
    return MercadoPagoClient(settings)

def get_payment_service(
    client: MercadoPagoClient = Depends(get_mercadopago_client),
    settings: Settings = Depends(get_settings),
) -> PaymentService:
    return PaymentService(client, settings)

def get_shipping_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ShippingService:
    return ShippingService(db, settings)

def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)

def get_checkout_service(
    db: Session = Depends(get_db),
    payment_service: PaymentService = Depends(get_payment_service),
    shipping_service: ShippingService = Depends(get_shipping_service),
    cart_service: CartService = Depends(get_cart_service),
) -> CheckoutService:
    return CheckoutService(db, payment_service, shipping_service, cart_service)
