import enum
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from schemas.shipping import ShippingOptionSelection

# Closed set of checkout failure codes returned to the client
class ErrorCode(str, enum.Enum):
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    ALREADY_SUBSCRIBED = "ALREADY_SUBSCRIBED"
    ADDRESS_NOT_FOUND = "ADDRESS_NOT_FOUND"
    EMPTY_CART = "EMPTY_CART"
    CART_VALIDATION_FAILED = "CART_VALIDATION_FAILED"
    INVALID_TOTAL = "INVALID_TOTAL"
    PIX_CREATION_FAILED = "PIX_CREATION_FAILED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    USER_BLOCKED = "USER_BLOCKED"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_ORDER_STATE = "INVALID_ORDER_STATE"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"

class PixPaymentData(BaseModel):
    method: Literal["pix"]

class CardPaymentData(BaseModel):
    method: Literal["credit_card", "debit_card"]
    # Optional so a missing token reaches the service and fails as PAYMENT_FAILED
    card_token: Optional[str] = None
    brand: Optional[str] = None
    last_four: Optional[str] = Field(default=None, max_length=4)
    installments: int = Field(default=1, ge=1, le=12)
    holder_name: Optional[str] = None

PaymentData = Annotated[Union[PixPaymentData, CardPaymentData], Field(discriminator="method")]

class SubscriptionCheckoutRequest(BaseModel):
    plan_slug: str
    address_id: int
    payment_data: PaymentData
    shipping_option: Optional[ShippingOptionSelection] = None

class ProductCheckoutRequest(BaseModel):
    address_id: int
    payment_data: PaymentData
    notes: Optional[str] = Field(default=None, max_length=500)
    shipping_option: Optional[ShippingOptionSelection] = None

# What the client needs to finish (PIX) or display (card) a payment
class PaymentPreference(BaseModel):
    method: str
    status: str
    transaction_id: Optional[str] = None
    amount: float
    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    pix_copy_paste: Optional[str] = None
    ticket_url: Optional[str] = None
    expiration_date: Optional[datetime] = None

class CheckoutResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    order_id: Optional[int] = None
    payment_id: Optional[int] = None
    subscription_id: Optional[int] = None
    payment_preference: Optional[PaymentPreference] = None

    @classmethod
    def fail(cls, error_code: ErrorCode, error: str, **kwargs) -> "CheckoutResult":
        return cls(success=False, error=error, error_code=error_code, **kwargs)

class PendingPixOut(BaseModel):
    order_id: int
    payment_id: int
    amount: float
    preference: PaymentPreference
    seconds_remaining: int

class PaymentStatusOut(BaseModel):
    transaction_id: str
    status: str
    order_id: Optional[int] = None
    order_status: Optional[str] = None
