# backend/routes/cart.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.cart import CartAddItem, CartOut, CartUpdateItem, CartValidation
from services.cart_service import CartService, CartServiceError
from services.providers import get_cart_service
from utils.audit import client_ip, write_log
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/cart", tags=["Cart"])

def _run(action):
    try:
        return action()
    except CartServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.get("", response_model=CartOut)
def get_cart(
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return service.get_cart(current_user.id)

@router.post("/items", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    out = _run(lambda: service.add_to_cart(current_user.id, payload.product_id, payload.variant_id, payload.quantity))
    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "variant_id": payload.variant_id, "qty": payload.quantity,
              "subtotal": out.subtotal},
    )
    return out

@router.put("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    out = _run(lambda: service.update_quantity(current_user.id, item_id, payload.quantity))
    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        ip=client_ip(request),
        meta={"item_id": item_id, "qty": payload.quantity, "subtotal": out.subtotal},
    )
    return out

@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    out = _run(lambda: service.remove_item(current_user.id, item_id))
    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        ip=client_ip(request),
        meta={"item_id": item_id, "cart_items": len(out.items)},
    )
    return out

@router.post("/refresh-prices", response_model=CartOut)
def refresh_prices(
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return service.refresh_prices(current_user.id)

@router.get("/validate", response_model=CartValidation)
def validate_cart(
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    return service.validate_cart_for_checkout(current_user.id)
