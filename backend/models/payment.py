# backend/models/payment.py
import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, JSON, Text, func
from sqlalchemy.orm import relationship
from database import Base

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELED = "CANCELED"

class PaymentProvider(str, enum.Enum):
    MERCADO_PAGO = "MERCADO_PAGO"

# Payment attempt for an order. The oldest payment of an order is the canonical one.
class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    provider = Column(Enum(PaymentProvider), nullable=False, default=PaymentProvider.MERCADO_PAGO)
    amount = Column(Float, nullable=False)
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)

    # Gateway payment id, echoed back by webhooks
    transaction_id = Column(String, nullable=True, index=True)
    payload = Column(JSON, nullable=True)

    # PIX charge data
    pix_qr_code = Column(Text, nullable=True)
    pix_qr_code_base64 = Column(Text, nullable=True)
    pix_ticket_url = Column(String, nullable=True)
    pix_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="payments")
