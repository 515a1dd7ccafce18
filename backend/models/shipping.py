# backend/models/shipping.py
from sqlalchemy import Column, Integer, String, Float, Boolean, CheckConstraint
from database import Base

# Package weight and dimensions used to quote shipping for products and plans
class ShippingProfile(Base):
    __tablename__ = "shipping_profiles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    weight_kg = Column(Float, CheckConstraint("weight_kg > 0"), nullable=False, default=0.5)
    width_cm = Column(Float, nullable=False, default=20)
    height_cm = Column(Float, nullable=False, default=10)
    length_cm = Column(Float, nullable=False, default=30)
    active = Column(Boolean, nullable=False, default=True)
