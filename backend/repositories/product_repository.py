# backend/repositories/product_repository.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from models.product import Product, ProductVariant

def find_product_by_id(db: Session, product_id: int):
    return db.query(Product).filter(Product.id == product_id).first()

def find_variant_by_id(db: Session, variant_id: int):
    return db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()

# Decrement-and-check in one statement so concurrent confirmations cannot oversell.
# Returns False when the row did not have enough stock.
def reserve_stock(db: Session, product_id: int, variant_id, quantity: int) -> bool:
    model, row_id = (ProductVariant, variant_id) if variant_id else (Product, product_id)
    result = db.execute(
        update(model)
        .where(model.id == row_id, model.stock >= quantity)
        .values(stock=model.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    db.flush()
    reserved = result.rowcount == 1
    if reserved:
        row = db.get(model, row_id)
        if row is not None:
            db.refresh(row, ["stock"])
    return reserved
