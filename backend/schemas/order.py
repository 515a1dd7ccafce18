from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from models.order import OrderKind, OrderStatus
from models.payment import PaymentProvider, PaymentStatus

class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    plan_id: Optional[int] = None
    title: str
    sku: Optional[str] = None
    quantity: int
    unit_price: float
    total_price: float

class AddressSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    full_name: str
    whatsapp: Optional[str] = None
    street: str
    number: str
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str
    zip_code: str
    country: str

class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider: PaymentProvider
    amount: float
    status: PaymentStatus
    transaction_id: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_ticket_url: Optional[str] = None
    pix_expires_at: Optional[datetime] = None

class ShipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    carrier: Optional[str] = None
    tracking_code: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: OrderKind
    status: OrderStatus
    subtotal_amount: float
    discount_amount: float
    shipping_amount: float
    total_amount: float
    currency: str
    notes: Optional[str] = None
    shipping_data: Optional[dict] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemOut]
    address_snapshot: Optional[AddressSnapshotOut] = None
    payments: List[PaymentOut] = []
    shipments: List[ShipmentOut] = []

# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int

# Tracking update made from the back office
class OrderStatusPatch(BaseModel):
    status: OrderStatus
    carrier: Optional[str] = None
    tracking_code: Optional[str] = None

class ApprovePaymentPayload(BaseModel):
    transaction_id: Optional[str] = None
    skip_gateway_check: bool = False
