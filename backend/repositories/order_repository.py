# backend/repositories/order_repository.py
from sqlalchemy.orm import Session, joinedload, selectinload

from models.order import Order, OrderItem, OrderAddressSnapshot, OrderStatus, Shipment
from utils.clock import utcnow

# Status moves allowed after creation. PAID is reached only through payment confirmation.
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELED},
    OrderStatus.PAID: {OrderStatus.SHIPPED, OrderStatus.CANCELED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELED: set(),
}

class InvalidStatusTransition(ValueError):
    pass

def _with_relations(q):
    return q.options(
        selectinload(Order.items),
        selectinload(Order.payments),
        selectinload(Order.shipments),
        joinedload(Order.address_snapshot),
    )

def create_order(db: Session, order_data: dict, items: list, address_snapshot: dict) -> Order:
    order = Order(**order_data)
    order.items = [OrderItem(**item) for item in items]
    order.address_snapshot = OrderAddressSnapshot(**address_snapshot)
    db.add(order)
    db.flush()
    return order

def find_order_by_id(db: Session, order_id: int):
    return _with_relations(db.query(Order)).filter(Order.id == order_id).first()

def find_user_order_by_id(db: Session, order_id: int, user_id: int):
    return _with_relations(db.query(Order)).filter(Order.id == order_id, Order.user_id == user_id).first()

def find_user_orders(db: Session, user_id: int, page: int = 1, page_size: int = 10):
    q = db.query(Order).filter(Order.user_id == user_id)
    total = q.count()
    rows = (
        _with_relations(q)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total

def mark_order_as_paid(db: Session, order: Order) -> Order:
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PAID
        db.flush()
    return order

def update_order_status(db: Session, order: Order, new_status: OrderStatus, carrier=None, tracking_code=None) -> Order:
    if new_status == order.status:
        return order
    if new_status not in ALLOWED_TRANSITIONS[order.status]:
        raise InvalidStatusTransition(f"Não é possível alterar o pedido de {order.status.value} para {new_status.value}")

    order.status = new_status
    now = utcnow()
    if new_status == OrderStatus.SHIPPED:
        db.add(Shipment(order_id=order.id, status="SHIPPED", carrier=carrier, tracking_code=tracking_code, shipped_at=now))
    elif new_status == OrderStatus.DELIVERED:
        shipment = db.query(Shipment).filter(Shipment.order_id == order.id).order_by(Shipment.id.desc()).first()
        if shipment is None:
            shipment = Shipment(order_id=order.id, carrier=carrier, tracking_code=tracking_code)
            db.add(shipment)
        shipment.status = "DELIVERED"
        shipment.delivered_at = now
    db.flush()
    db.expire(order, ["shipments"])
    return order
