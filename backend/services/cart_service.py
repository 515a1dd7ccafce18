# backend/services/cart_service.py
import logging

from sqlalchemy.orm import Session

from models.cart import Cart, CartItem
from repositories import cart_repository, product_repository
from schemas.cart import CartIssue, CartItemOut, CartOut, CartValidation
from utils.money import round_money

logger = logging.getLogger(__name__)

class CartServiceError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

def current_price(item: CartItem) -> float:
    if item.variant is not None:
        return round_money(item.variant.effective_price)
    return round_money(item.product.base_price)

def available_stock(item: CartItem) -> int:
    if item.variant is not None:
        return item.variant.stock
    return item.product.stock

def is_available(item: CartItem) -> bool:
    if item.product is None or not item.product.active:
        return False
    if item.variant_id is not None and (item.variant is None or not item.variant.active):
        return False
    return True

def cart_to_out(cart: Cart) -> CartOut:
    items_out = []
    subtotal = 0.0
    for it in cart.items:
        available = is_available(it)
        line_total = round_money(it.unit_price * it.quantity)
        subtotal += line_total
        items_out.append(CartItemOut(
            id=it.id,
            product_id=it.product_id,
            variant_id=it.variant_id,
            name=it.product.name if it.product else "",
            variant_name=it.variant.name if it.variant else None,
            quantity=it.quantity,
            unit_price=round_money(it.unit_price),
            current_price=current_price(it) if available else None,
            line_total=line_total,
            available_stock=available_stock(it) if available else 0,
            available=available,
        ))
    return CartOut(
        id=cart.id,
        items=items_out,
        item_count=sum(i.quantity for i in items_out),
        subtotal=round_money(subtotal),
    )

class CartService:
    def __init__(self, db: Session):
        self.db = db

    def _cart(self, user_id: int) -> Cart:
        return cart_repository.find_or_create_by_user_id(self.db, user_id)

    def _item(self, cart: Cart, item_id: int) -> CartItem:
        item = cart_repository.find_item(self.db, cart.id, item_id)
        if not item:
            raise CartServiceError("Item não encontrado no carrinho", status_code=404)
        return item

    def _refresh(self, cart: Cart) -> CartOut:
        self.db.commit()
        self.db.refresh(cart)
        return cart_to_out(cart)

    def get_cart(self, user_id: int) -> CartOut:
        cart = self._cart(user_id)
        self.db.commit()
        return cart_to_out(cart)

    def add_to_cart(self, user_id: int, product_id: int, variant_id=None, quantity: int = 1) -> CartOut:
        product = product_repository.find_product_by_id(self.db, product_id)
        if not product or not product.active:
            raise CartServiceError("Produto não encontrado", status_code=404)

        price, stock = product.base_price, product.stock
        if variant_id is not None:
            variant = product_repository.find_variant_by_id(self.db, variant_id)
            if not variant or variant.product_id != product.id or not variant.active:
                raise CartServiceError("Variação não encontrada", status_code=404)
            price, stock = variant.effective_price, variant.stock

        cart = self._cart(user_id)
        in_cart = sum(
            i.quantity for i in cart.items if i.product_id == product_id and i.variant_id == variant_id
        )
        if in_cart + quantity > stock:
            raise CartServiceError(f"Estoque insuficiente. Disponível: {stock}")

        cart_repository.add_item(self.db, cart, product_id, variant_id, quantity, round_money(price))
        return self._refresh(cart)

    def update_quantity(self, user_id: int, item_id: int, quantity: int) -> CartOut:
        cart = self._cart(user_id)
        item = self._item(cart, item_id)
        stock = available_stock(item) if is_available(item) else 0
        if quantity > stock:
            raise CartServiceError(f"Estoque insuficiente. Disponível: {stock}")
        cart_repository.update_item_quantity(self.db, item, quantity)
        return self._refresh(cart)

    def remove_item(self, user_id: int, item_id: int) -> CartOut:
        cart = self._cart(user_id)
        cart_repository.remove_item(self.db, self._item(cart, item_id))
        return self._refresh(cart)

    # Align stored unit prices with the current catalog prices
    def refresh_prices(self, user_id: int) -> CartOut:
        cart = self._cart(user_id)
        for item in cart.items:
            if is_available(item):
                price = current_price(item)
                if price != round_money(item.unit_price):
                    cart_repository.update_item_price(self.db, item, price)
        return self._refresh(cart)

    def validate_cart_for_checkout(self, user_id: int) -> CartValidation:
        cart = self._cart(user_id)
        issues = []
        for item in cart.items:
            name = item.product.name if item.product else f"Produto {item.product_id}"
            base = {"item_id": item.id, "product_id": item.product_id, "variant_id": item.variant_id, "product_name": name}

            if not is_available(item):
                issues.append(CartIssue(kind="unavailable", **base))
                continue

            stock = available_stock(item)
            if stock <= 0:
                issues.append(CartIssue(kind="out_of_stock", **base))
            elif item.quantity > stock:
                issues.append(CartIssue(kind="insufficient_stock", details=f"Disponível: {stock}", **base))

            price = current_price(item)
            if price != round_money(item.unit_price):
                issues.append(CartIssue(kind="price_changed", details=f"Preço atual: R$ {price:.2f}", **base))

        return CartValidation(valid=not issues, issues=issues)
