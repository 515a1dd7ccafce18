# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base

# Catalog product. Stock is tracked here unless the product sells through variants.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(String)

    base_price = Column(Float, CheckConstraint("base_price >= 0"), nullable=False)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    shipping_profile_id = Column(Integer, ForeignKey("shipping_profiles.id"), nullable=True)
    image_url = Column(String, nullable=True)

    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
    shipping_profile = relationship("ShippingProfile")

# Sellable variation of a product (size, flavour...). A null price falls back to the product price.
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    sku = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Float, CheckConstraint("price IS NULL OR price >= 0"), nullable=True)
    stock = Column(Integer, CheckConstraint("stock >= 0"), nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")

    @property
    def effective_price(self):
        return self.price if self.price is not None else self.product.base_price
