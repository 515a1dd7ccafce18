from datetime import datetime
from typing import Optional

from pydantic import BaseModel

# Normalized result of a PIX charge created at the gateway
class PixPaymentResult(BaseModel):
    payment_id: str
    qr_code: str
    qr_code_base64: Optional[str] = None
    pix_copy_paste: str
    ticket_url: Optional[str] = None
    expiration_date: datetime
    status: str = "pending"
    payload: Optional[dict] = None

# Normalized result of a card charge. status is approved, pending or rejected.
class CardPaymentResult(BaseModel):
    success: bool
    status: str
    transaction_id: Optional[str] = None
    payload: Optional[dict] = None
    error: Optional[str] = None

class GatewayPaymentStatus(BaseModel):
    transaction_id: str
    status: str # approved | pending | rejected | cancelled | refunded
    raw_status: Optional[str] = None
    status_detail: Optional[str] = None
    external_reference: Optional[str] = None
    payload: Optional[dict] = None

# Gateway preapproval that charges the following subscription cycles
class RecurringSubscriptionResult(BaseModel):
    success: bool
    preapproval_id: Optional[str] = None
    status: Optional[str] = None # authorized | pending | paused | cancelled
    next_payment_date: Optional[datetime] = None
    payload: Optional[dict] = None
    error: Optional[str] = None
