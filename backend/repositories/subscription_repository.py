# backend/repositories/subscription_repository.py
from sqlalchemy.orm import Session, joinedload

from models.subscription import (
    CycleStatus, Subscription, SubscriptionCycle, SubscriptionPlan, SubscriptionStatus,
)
from utils.clock import add_months, first_day_of_next_month, utcnow

def find_active_plans(db: Session):
    return (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.active.is_(True))
        .order_by(SubscriptionPlan.price)
        .all()
    )

def find_plan_by_slug(db: Session, slug: str):
    return (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.slug == slug, SubscriptionPlan.active.is_(True))
        .first()
    )

def find_user_active_subscription(db: Session, user_id: int):
    return (
        db.query(Subscription)
        .options(joinedload(Subscription.plan))
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE)
        .order_by(Subscription.started_at.desc())
        .first()
    )

def find_user_latest_subscription(db: Session, user_id: int):
    return (
        db.query(Subscription)
        .options(joinedload(Subscription.plan))
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.started_at.desc(), Subscription.id.desc())
        .first()
    )

def user_has_any_active_subscription(db: Session, user_id: int) -> bool:
    return (
        db.query(Subscription.id)
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE)
        .first()
        is not None
    )

def find_subscription_by_payment_id(db: Session, payment_id: int):
    return (
        db.query(Subscription)
        .join(SubscriptionCycle, SubscriptionCycle.subscription_id == Subscription.id)
        .filter(SubscriptionCycle.payment_id == payment_id)
        .first()
    )

# Next billing falls on the first day of the following month
def create_subscription(db: Session, user_id: int, plan_id: int, provider=None, provider_sub_id=None) -> Subscription:
    now = utcnow()
    subscription = Subscription(
        user_id=user_id,
        plan_id=plan_id,
        status=SubscriptionStatus.ACTIVE,
        started_at=now,
        next_billing_at=first_day_of_next_month(now),
        provider=provider,
        provider_sub_id=provider_sub_id,
    )
    db.add(subscription)
    db.flush()
    return subscription

# The first cycle covers the period already paid at checkout
def create_first_cycle(db: Session, subscription_id: int, amount: float, payment_id=None) -> SubscriptionCycle:
    now = utcnow()
    cycle = SubscriptionCycle(
        subscription_id=subscription_id,
        status=CycleStatus.PAID if payment_id else CycleStatus.PENDING,
        cycle_start=now,
        cycle_end=add_months(now, 1),
        amount=amount,
        payment_id=payment_id,
    )
    db.add(cycle)
    db.flush()
    return cycle

def cancel_subscription(db: Session, subscription: Subscription) -> Subscription:
    if subscription.status != SubscriptionStatus.CANCELED:
        subscription.status = SubscriptionStatus.CANCELED
        subscription.canceled_at = utcnow()
        subscription.next_billing_at = None
        db.flush()
    return subscription
