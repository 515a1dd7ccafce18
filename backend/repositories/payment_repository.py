# backend/repositories/payment_repository.py
from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from models.order import Order
from models.payment import Payment, PaymentProvider, PaymentStatus

def create_payment(db: Session, order_id: int, amount: float, provider=PaymentProvider.MERCADO_PAGO) -> Payment:
    payment = Payment(order_id=order_id, amount=amount, provider=provider, status=PaymentStatus.PENDING)
    db.add(payment)
    db.flush()
    return payment

def find_payment_by_transaction_id(db: Session, transaction_id: str):
    if not transaction_id:
        return None
    return (
        db.query(Payment)
        .options(joinedload(Payment.order).selectinload(Order.items))
        .filter(Payment.transaction_id == str(transaction_id))
        .first()
    )

# Latest unexpired PIX charge still waiting for the buyer
def find_pending_pix_payment(db: Session, user_id: int, now):
    return (
        db.query(Payment)
        .join(Order, Payment.order_id == Order.id)
        .filter(
            Order.user_id == user_id,
            Payment.status == PaymentStatus.PENDING,
            Payment.pix_qr_code.isnot(None),
            Payment.pix_expires_at > now,
        )
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )

def attach_pix_data(db: Session, payment: Payment, pix) -> Payment:
    payment.transaction_id = str(pix.payment_id)
    payment.pix_qr_code = pix.qr_code
    payment.pix_qr_code_base64 = pix.qr_code_base64
    payment.pix_ticket_url = pix.ticket_url
    payment.pix_expires_at = pix.expiration_date
    payment.payload = pix.payload
    db.flush()
    return payment

def mark_payment_as_failed(db: Session, payment: Payment, payload=None) -> Payment:
    payment.status = PaymentStatus.FAILED
    if payload is not None:
        payment.payload = payload
    db.flush()
    return payment

def mark_payment_as_refunded(db: Session, payment: Payment, payload=None) -> Payment:
    payment.status = PaymentStatus.REFUNDED
    if payload is not None:
        payment.payload = payload
    db.flush()
    return payment

CLAIMABLE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)

# Conditional PENDING/FAILED -> PAID transition. Only the caller that wins the update
# runs the paid-order side effects, so replayed confirmations are no-ops.
# Refunded and canceled payments are never claimed again.
def claim_payment_as_paid(db: Session, payment: Payment, transaction_id=None, payload=None) -> bool:
    values = {"status": PaymentStatus.PAID}
    if transaction_id:
        values["transaction_id"] = str(transaction_id)
    if payload is not None:
        values["payload"] = payload
    result = db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status.in_(CLAIMABLE_STATUSES))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.flush()
    db.refresh(payment)
    return result.rowcount == 1
