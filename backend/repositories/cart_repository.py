# backend/repositories/cart_repository.py
from sqlalchemy.orm import Session, joinedload

from models.cart import Cart, CartItem

# Retrieve the user's cart or create it on first access
def find_or_create_by_user_id(db: Session, user_id: int) -> Cart:
    cart = (
        db.query(Cart)
        .options(joinedload(Cart.items))
        .filter(Cart.user_id == user_id)
        .first()
    )
    if not cart:
        cart = Cart(user_id=user_id)
        db.add(cart)
        db.flush()
    return cart

def find_item(db: Session, cart_id: int, item_id: int):
    return db.query(CartItem).filter(CartItem.id == item_id, CartItem.cart_id == cart_id).first()

# Same product and variant are merged into one line
def add_item(db: Session, cart: Cart, product_id: int, variant_id, quantity: int, unit_price: float) -> CartItem:
    item = (
        db.query(CartItem)
        .filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product_id,
            CartItem.variant_id.is_(None) if variant_id is None else CartItem.variant_id == variant_id,
        )
        .first()
    )
    if item:
        item.quantity += quantity
    else:
        item = CartItem(
            cart_id=cart.id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
            unit_price=unit_price,
        )
        db.add(item)
    db.flush()
    return item

def update_item_quantity(db: Session, item: CartItem, quantity: int) -> CartItem:
    item.quantity = quantity
    db.flush()
    return item

def update_item_price(db: Session, item: CartItem, unit_price: float) -> CartItem:
    item.unit_price = unit_price
    db.flush()
    return item

def remove_item(db: Session, item: CartItem):
    db.delete(item)
    db.flush()

def clear_cart(db: Session, user_id: int) -> int:
    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if not cart:
        return 0
    removed = db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session="fetch")
    db.flush()
    db.expire(cart, ["items"])
    return removed
