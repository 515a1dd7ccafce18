# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, JSON, Text, func
from sqlalchemy.orm import relationship
from database import Base

class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"

class OrderKind(str, enum.Enum):
    PRODUCT = "PRODUCT"
    SUBSCRIPTION = "SUBSCRIPTION"

# Immutable purchase snapshot. Only the status moves after creation.
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    kind = Column(Enum(OrderKind), nullable=False, default=OrderKind.PRODUCT)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)

    subtotal_amount = Column(Float, nullable=False)
    discount_amount = Column(Float, nullable=False, default=0)
    shipping_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="BRL")

    notes = Column(Text, nullable=True)
    shipping_data = Column(JSON, nullable=True) # Carrier quote selected at checkout

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    payments = relationship("Payment", back_populates="order", order_by="Payment.id")
    address_snapshot = relationship(
        "OrderAddressSnapshot", back_populates="order", uselist=False, cascade="all, delete-orphan"
    )
    shipments = relationship("Shipment", back_populates="order", order_by="Shipment.id")

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=True)

    # Captured at order time, independent of the live catalog rows
    title = Column(String, nullable=False)
    sku = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")

# Copy of the delivery address; never a foreign key to Address
class OrderAddressSnapshot(Base):
    __tablename__ = "order_address_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    whatsapp = Column(String, nullable=True)
    street = Column(String, nullable=False)
    number = Column(String, nullable=False)
    complement = Column(String, nullable=True)
    neighborhood = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String(2), nullable=False)
    zip_code = Column(String(9), nullable=False)
    country = Column(String(2), nullable=False, default="BR")

    order = relationship("Order", back_populates="address_snapshot")

# Tracking information written when an order is shipped or delivered
class Shipment(Base):
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    status = Column(String, nullable=False, default="PENDING")
    carrier = Column(String, nullable=True)
    tracking_code = Column(String, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="shipments")
