# backend/repositories/shipping_repository.py
from sqlalchemy.orm import Session

from models.product import Product
from models.shipping import ShippingProfile
from models.subscription import SubscriptionPlan

def find_profile_by_id(db: Session, profile_id: int):
    return (
        db.query(ShippingProfile)
        .filter(ShippingProfile.id == profile_id, ShippingProfile.active.is_(True))
        .first()
    )

def find_profiles_for_products(db: Session, product_ids):
    rows = (
        db.query(Product)
        .filter(Product.id.in_(list(product_ids)), Product.shipping_profile_id.isnot(None))
        .all()
    )
    return [p.shipping_profile for p in rows if p.shipping_profile is not None]

def find_profile_for_plan(db: Session, plan_id: int):
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
    if plan is None:
        return None
    return plan.shipping_profile
