# backend/models/subscription.py
import enum
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, JSON, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELED = "CANCELED"

class CycleStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"

# Static catalog of subscription tiers. discount_percent applies to product purchases.
class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)
    discount_percent = Column(
        Float, CheckConstraint("discount_percent >= 0 AND discount_percent <= 100"), nullable=False, default=0
    )
    billing_cycle = Column(String, nullable=False, default="MONTHLY")
    color_scheme = Column(String, nullable=True)
    benefits = Column(JSON, nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    shipping_profile_id = Column(Integer, ForeignKey("shipping_profiles.id"), nullable=True)

    shipping_profile = relationship("ShippingProfile")

# At most one ACTIVE subscription per user, enforced at checkout validation
class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(Enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.ACTIVE, index=True)

    started_at = Column(DateTime, nullable=False)
    next_billing_at = Column(DateTime, nullable=True)
    canceled_at = Column(DateTime, nullable=True)

    provider = Column(String, nullable=True)
    provider_sub_id = Column(String, nullable=True, index=True) # Preapproval id, or the first payment id when no recurrence was set up
    auto_renew = Column(Boolean, nullable=False, default=False) # Gateway charges the next cycles

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    plan = relationship("SubscriptionPlan")
    cycles = relationship(
        "SubscriptionCycle", back_populates="subscription", cascade="all, delete-orphan",
        order_by="SubscriptionCycle.cycle_start",
    )

class SubscriptionCycle(Base):
    __tablename__ = "subscription_cycles"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), index=True, nullable=False)
    status = Column(Enum(CycleStatus), nullable=False, default=CycleStatus.PENDING)
    cycle_start = Column(DateTime, nullable=False)
    cycle_end = Column(DateTime, nullable=False)
    amount = Column(Float, nullable=False)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)

    subscription = relationship("Subscription", back_populates="cycles")
