# backend/services/checkout_service.py
import logging
from typing import NamedTuple, assert_never

from sqlalchemy.orm import Session

from models.address import Address
from models.order import Order, OrderKind, OrderStatus
from models.payment import Payment, PaymentStatus
from models.subscription import Subscription, SubscriptionPlan, SubscriptionStatus
from models.users import User, UserStatus
from repositories import (
    address_repository, cart_repository, order_repository, payment_repository,
    product_repository, subscription_repository,
)
from schemas.checkout import (
    CardPaymentData, CheckoutResult, ErrorCode, PaymentPreference, PendingPixOut,
    PixPaymentData, ProductCheckoutRequest, SubscriptionCheckoutRequest,
)
from services.cart_service import CartService
from services.payment_service import PaymentService, PaymentServiceError
from services.shipping_service import ShippingService
from utils.audit import write_log
from utils.clock import utcnow
from utils.money import is_valid_amount, round_money

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Erro ao processar pedido. Tente novamente."
INVALID_TOTAL_MESSAGE = "Valor do pedido inválido. Revise seu carrinho e tente novamente."

class CheckoutError(Exception):
    def __init__(self, error_code: ErrorCode, message: str):
        super().__init__(message)
        self.error_code = error_code
        self.message = message

class OrderTotals(NamedTuple):
    subtotal: float
    discount: float
    shipping: float
    total: float

# discount = round(subtotal * pct / 100); total = round(subtotal + shipping - discount)
def compute_order_totals(subtotal, shipping_amount=0.0, discount_percent=0.0) -> OrderTotals:
    subtotal = round_money(subtotal)
    shipping = round_money(shipping_amount or 0.0)
    discount = round_money(subtotal * discount_percent / 100) if discount_percent else 0.0
    total = round_money(subtotal + shipping - discount)
    return OrderTotals(subtotal=subtotal, discount=discount, shipping=shipping, total=total)

def build_address_snapshot(user: User, address: Address) -> dict:
    return {
        "full_name": user.full_name or user.email,
        "whatsapp": user.whatsapp,
        "street": address.street,
        "number": address.number,
        "complement": address.complement,
        "neighborhood": address.neighborhood,
        "city": address.city,
        "state": address.state,
        "zip_code": address.zip_code,
        "country": address.country or "BR",
    }

def pix_preference(payment: Payment) -> PaymentPreference:
    return PaymentPreference(
        method="pix",
        status="pending",
        transaction_id=payment.transaction_id,
        amount=payment.amount,
        qr_code=payment.pix_qr_code,
        qr_code_base64=payment.pix_qr_code_base64,
        pix_copy_paste=payment.pix_qr_code,
        ticket_url=payment.pix_ticket_url,
        expiration_date=payment.pix_expires_at,
    )

class CheckoutService:
    def __init__(self, db: Session, payment_service: PaymentService, shipping_service: ShippingService,
                 cart_service: CartService = None):
        self.db = db
        self.payment_service = payment_service
        self.shipping_service = shipping_service
        self.cart_service = cart_service or CartService(db)

    # -- validation -------------------------------------------------------

    def _ensure_active_user(self, user: User):
        if user.status == UserStatus.BLOCKED:
            raise CheckoutError(ErrorCode.USER_BLOCKED, "Sua conta está bloqueada. Entre em contato com o suporte.")

    def _require_address(self, user_id: int, address_id: int) -> Address:
        address = address_repository.find_address_by_id(self.db, address_id, user_id)
        if not address:
            raise CheckoutError(ErrorCode.ADDRESS_NOT_FOUND, "Endereço não encontrado")
        return address

    def validate_subscription_checkout(self, user_id: int, plan_slug: str, address_id: int):
        plan = subscription_repository.find_plan_by_slug(self.db, plan_slug)
        if not plan:
            raise CheckoutError(ErrorCode.PLAN_NOT_FOUND, "Plano não encontrado ou inativo")

        if subscription_repository.user_has_any_active_subscription(self.db, user_id):
            raise CheckoutError(
                ErrorCode.ALREADY_SUBSCRIBED,
                "Você já possui uma assinatura ativa. Cancele a atual antes de assinar outro plano.",
            )

        address = self._require_address(user_id, address_id)
        return plan, address

    def _active_discount_percent(self, user_id: int) -> float:
        subscription = subscription_repository.find_user_active_subscription(self.db, user_id)
        if subscription is None or subscription.plan is None:
            return 0.0
        return float(subscription.plan.discount_percent or 0)

    def _ensure_valid_total(self, user_id: int, totals: OrderTotals):
        if not is_valid_amount(totals.total):
            logger.error("Rejected checkout for user %s with invalid total: %s", user_id, totals)
            raise CheckoutError(ErrorCode.INVALID_TOTAL, INVALID_TOTAL_MESSAGE)

    # -- checkout flows ---------------------------------------------------

    async def process_subscription_checkout(self, user_id: int, user: User,
                                            request: SubscriptionCheckoutRequest) -> CheckoutResult:
        try:
            self._ensure_active_user(user)
            plan, address = self.validate_subscription_checkout(user_id, request.plan_slug, request.address_id)

            shipping_amount = request.shipping_option.price if request.shipping_option else 0.0
            totals = compute_order_totals(plan.price, shipping_amount)
            self._ensure_valid_total(user_id, totals)

            order, payment = self._create_subscription_order(user_id, user, plan, address, request, totals)
            description = f"Assinatura {plan.name}"

            payment_data = request.payment_data
            if isinstance(payment_data, PixPaymentData):
                return await self._start_pix_payment(order, payment, user, description)
            elif isinstance(payment_data, CardPaymentData):
                return await self._charge_card(order, payment, user, payment_data, description)
            else:
                assert_never(payment_data)
        except CheckoutError as e:
            self.db.rollback()
            return CheckoutResult.fail(e.error_code, e.message)
        except Exception:
            self.db.rollback()
            logger.exception("Subscription checkout failed for user %s", user_id)
            return CheckoutResult.fail(ErrorCode.INTERNAL_ERROR, "Erro ao processar assinatura. Tente novamente.")

    async def process_product_checkout(self, user_id: int, user: User,
                                       request: ProductCheckoutRequest) -> CheckoutResult:
        try:
            self._ensure_active_user(user)

            cart = cart_repository.find_or_create_by_user_id(self.db, user_id)
            if not cart.items:
                raise CheckoutError(ErrorCode.EMPTY_CART, "Seu carrinho está vazio")

            validation = self.cart_service.validate_cart_for_checkout(user_id)
            if not validation.valid:
                details = "; ".join(issue.message for issue in validation.issues)
                raise CheckoutError(
                    ErrorCode.CART_VALIDATION_FAILED,
                    f"Alguns itens do carrinho precisam de atenção: {details}",
                )

            address = self._require_address(user_id, request.address_id)

            subtotal = sum(item.unit_price * item.quantity for item in cart.items)
            shipping_amount = request.shipping_option.price if request.shipping_option else 0.0
            totals = compute_order_totals(subtotal, shipping_amount, self._active_discount_percent(user_id))
            self._ensure_valid_total(user_id, totals)

            order, payment = self._create_product_order(user_id, user, cart, address, request, totals)
            description = f"Pedido #{order.id}"

            payment_data = request.payment_data
            if isinstance(payment_data, PixPaymentData):
                return await self._start_pix_payment(order, payment, user, description)
            elif isinstance(payment_data, CardPaymentData):
                return await self._charge_card(order, payment, user, payment_data, description)
            else:
                assert_never(payment_data)
        except CheckoutError as e:
            self.db.rollback()
            return CheckoutResult.fail(e.error_code, e.message)
        except Exception:
            self.db.rollback()
            logger.exception("Product checkout failed for user %s", user_id)
            return CheckoutResult.fail(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)

    # -- order creation ---------------------------------------------------

    def _shipping_snapshot(self, request, address: Address, **profile_lookup):
        if not request.shipping_option:
            return None
        profile = self.shipping_service.resolve_profile(**profile_lookup)
        return self.shipping_service.build_order_shipping_data(request.shipping_option, address.zip_code, profile)

    # Order, items, address snapshot and payment row are committed together before the gateway call
    def _create_subscription_order(self, user_id, user, plan: SubscriptionPlan, address, request, totals: OrderTotals):
        price = round_money(plan.price)
        order = order_repository.create_order(
            self.db,
            {
                "user_id": user_id,
                "kind": OrderKind.SUBSCRIPTION,
                "status": OrderStatus.PENDING,
                "subtotal_amount": totals.subtotal,
                "discount_amount": totals.discount,
                "shipping_amount": totals.shipping,
                "total_amount": totals.total,
                "shipping_data": self._shipping_snapshot(request, address, plan_id=plan.id),
            },
            [{
                "plan_id": plan.id,
                "title": f"Assinatura {plan.name}",
                "sku": plan.slug,
                "quantity": 1,
                "unit_price": price,
                "total_price": price,
            }],
            build_address_snapshot(user, address),
        )
        payment = payment_repository.create_payment(self.db, order.id, totals.total)
        write_log(
            self.db, user_id=user_id, action="CHECKOUT_SUBSCRIPTION", resource="orders", status="PENDING",
            meta={"order_id": order.id, "plan": plan.slug, "total": totals.total}, commit=False,
        )
        self.db.commit()
        return order, payment

    def _create_product_order(self, user_id, user, cart, address, request, totals: OrderTotals):
        items = []
        for item in cart.items:
            title = item.product.name
            if item.variant is not None:
                title = f"{title} - {item.variant.name}"
            unit_price = round_money(item.unit_price)
            items.append({
                "product_id": item.product_id,
                "variant_id": item.variant_id,
                "title": title,
                "sku": item.variant.sku if item.variant is not None else item.product.slug,
                "quantity": item.quantity,
                "unit_price": unit_price,
                "total_price": round_money(unit_price * item.quantity),
            })

        order = order_repository.create_order(
            self.db,
            {
                "user_id": user_id,
                "kind": OrderKind.PRODUCT,
                "status": OrderStatus.PENDING,
                "subtotal_amount": totals.subtotal,
                "discount_amount": totals.discount,
                "shipping_amount": totals.shipping,
                "total_amount": totals.total,
                "notes": request.notes,
                "shipping_data": self._shipping_snapshot(
                    request, address, product_ids=[i["product_id"] for i in items]
                ),
            },
            items,
            build_address_snapshot(user, address),
        )
        payment = payment_repository.create_payment(self.db, order.id, totals.total)
        write_log(
            self.db, user_id=user_id, action="CHECKOUT_CART", resource="orders", status="PENDING",
            meta={"order_id": order.id, "items": len(items), "discount": totals.discount, "total": totals.total},
            commit=False,
        )
        self.db.commit()
        return order, payment

    # -- payment branches -------------------------------------------------

    async def _start_pix_payment(self, order: Order, payment: Payment, user: User, description: str) -> CheckoutResult:
        try:
            pix = await self.payment_service.create_pix_payment_direct(
                amount=payment.amount,
                description=description,
                email=user.email,
                external_reference=f"order_{order.id}",
            )
        except PaymentServiceError as e:
            logger.error("PIX creation failed for order %s: %s", order.id, e)
            payment_repository.mark_payment_as_failed(self.db, payment, payload={"error": str(e)})
            write_log(
                self.db, user_id=order.user_id, action="PIX_CREATE", resource="payments", status="FAILED",
                meta={"order_id": order.id, "payment_id": payment.id}, commit=False,
            )
            self.db.commit()
            return CheckoutResult.fail(
                ErrorCode.PIX_CREATION_FAILED, "Erro ao gerar o PIX. Tente novamente.",
                order_id=order.id, payment_id=payment.id,
            )

        payment_repository.attach_pix_data(self.db, payment, pix)
        self.db.commit()
        return CheckoutResult(
            success=True, order_id=order.id, payment_id=payment.id, payment_preference=pix_preference(payment),
        )

    async def _charge_card(self, order: Order, payment: Payment, user: User, card: CardPaymentData,
                           description: str) -> CheckoutResult:
        result = await self.payment_service.create_card_payment(
            amount=payment.amount,
            card=card,
            email=user.email,
            external_reference=f"order_{order.id}",
            description=description,
        )
        preference = PaymentPreference(
            method=card.method, status=result.status, transaction_id=result.transaction_id, amount=payment.amount,
        )

        if not result.success:
            if result.transaction_id:
                payment.transaction_id = result.transaction_id
            payment_repository.mark_payment_as_failed(self.db, payment, payload=result.payload or {"error": result.error})
            write_log(
                self.db, user_id=order.user_id, action="CARD_CHARGE", resource="payments", status="FAILED",
                meta={"order_id": order.id, "payment_id": payment.id, "error": result.error}, commit=False,
            )
            self.db.commit()
            return CheckoutResult.fail(
                ErrorCode.PAYMENT_FAILED, result.error, order_id=order.id, payment_id=payment.id,
            )

        if result.status != "approved":
            # Gateway is still analysing the charge; the webhook finalizes it
            payment.transaction_id = result.transaction_id
            payment.payload = result.payload
            self.db.commit()
            return CheckoutResult(
                success=True, order_id=order.id, payment_id=payment.id, payment_preference=preference,
            )

        subscription_id = None
        if order.kind == OrderKind.SUBSCRIPTION:
            subscription = await self._finalize_subscription_order(
                order, payment, result.transaction_id, result.payload, card=card, email=user.email,
            )
            subscription_id = subscription.id if subscription else None
        else:
            self.handle_product_payment_confirmation(order, payment, result.transaction_id, result.payload)
        self.db.commit()
        return CheckoutResult(
            success=True, order_id=order.id, payment_id=payment.id, subscription_id=subscription_id,
            payment_preference=preference,
        )

    # -- confirmation -----------------------------------------------------

    async def _finalize_subscription_order(self, order: Order, payment: Payment, transaction_id=None, payload=None,
                                           card: CardPaymentData = None, email: str = None):
        claimed = payment_repository.claim_payment_as_paid(self.db, payment, transaction_id, payload)
        if not claimed and payment.status != PaymentStatus.PAID:
            logger.warning("Approval for order %s ignored, payment %s is %s", order.id, payment.id, payment.status.value)
            return None
        order_repository.mark_order_as_paid(self.db, order)

        linked = subscription_repository.find_subscription_by_payment_id(self.db, payment.id)
        if linked:
            return linked

        existing = subscription_repository.find_user_active_subscription(self.db, order.user_id)
        if existing:
            logger.warning("User %s already has subscription %s, order %s not re-subscribed",
                           order.user_id, existing.id, order.id)
            return existing

        plan_id = order.items[0].plan_id if order.items else None
        if plan_id is None:
            logger.error("Subscription order %s has no plan item", order.id)
            return None

        subscription = subscription_repository.create_subscription(
            self.db, order.user_id, plan_id, provider=payment.provider.value,
            provider_sub_id=payment.transaction_id,
        )
        subscription_repository.create_first_cycle(self.db, subscription.id, payment.amount, payment_id=payment.id)
        write_log(
            self.db, user_id=order.user_id, action="SUBSCRIPTION_CREATE", resource="subscriptions",
            meta={"order_id": order.id, "subscription_id": subscription.id, "plan_id": plan_id}, commit=False,
        )
        if card is not None:
            await self._start_recurring_billing(order, payment, subscription, card, email)
        return subscription

    # PIX subscriptions have no card to charge, so only card checkouts get a preapproval.
    # A failed preapproval keeps the paid subscription active without automatic renewal.
    async def _start_recurring_billing(self, order: Order, payment: Payment, subscription, card: CardPaymentData,
                                       email: str):
        recurring = await self.payment_service.create_recurring_subscription(
            card_token=card.card_token,
            email=email,
            reason=order.items[0].title,
            amount=payment.amount,
            external_reference=f"order_{order.id}",
            start_date=subscription.next_billing_at,
        )
        if not recurring.success:
            logger.error("Subscription %s paid but recurring billing failed: %s", subscription.id, recurring.error)
            write_log(
                self.db, user_id=order.user_id, action="RECURRING_BILLING", resource="subscriptions", status="FAILED",
                meta={"order_id": order.id, "subscription_id": subscription.id, "error": recurring.error},
                commit=False,
            )
            return

        subscription.provider_sub_id = recurring.preapproval_id
        subscription.auto_renew = True
        self.db.flush()

    # Stock reservation and cart clearing run only for the caller that moves the payment to PAID
    def handle_product_payment_confirmation(self, order: Order, payment: Payment, transaction_id=None,
                                            payload=None) -> bool:
        if not payment_repository.claim_payment_as_paid(self.db, payment, transaction_id, payload):
            if payment.status == PaymentStatus.PAID:
                order_repository.mark_order_as_paid(self.db, order)
            else:
                logger.warning("Approval for order %s ignored, payment %s is %s",
                               order.id, payment.id, payment.status.value)
            return False
        order_repository.mark_order_as_paid(self.db, order)

        shortages = []
        for item in order.items:
            if item.product_id is None and item.variant_id is None:
                continue
            if not product_repository.reserve_stock(self.db, item.product_id, item.variant_id, item.quantity):
                shortages.append({"order_item_id": item.id, "title": item.title, "quantity": item.quantity})

        if shortages:
            logger.error("Order %s paid with insufficient stock: %s", order.id, shortages)
            write_log(
                self.db, user_id=order.user_id, action="STOCK_SHORTAGE", resource="orders", status="FAILED",
                meta={"order_id": order.id, "items": shortages}, commit=False,
            )

        cart_repository.clear_cart(self.db, order.user_id)
        write_log(
            self.db, user_id=order.user_id, action="ORDER_PAID", resource="orders",
            meta={"order_id": order.id, "payment_id": payment.id}, commit=False,
        )
        return True

    async def handle_payment_webhook(self, payment_id, status: str, transaction_id, payload=None) -> CheckoutResult:
        try:
            payment = payment_repository.find_payment_by_transaction_id(self.db, transaction_id or payment_id)
            if not payment:
                logger.warning("Webhook for unknown payment %s (status %s)", transaction_id or payment_id, status)
                return CheckoutResult.fail(ErrorCode.NOT_FOUND, "Pagamento não encontrado")

            order = payment.order
            result = CheckoutResult(success=True, order_id=order.id, payment_id=payment.id)

            if status == "approved":
                if order.kind == OrderKind.SUBSCRIPTION:
                    subscription = await self._finalize_subscription_order(order, payment, transaction_id, payload)
                    result.subscription_id = subscription.id if subscription else None
                else:
                    self.handle_product_payment_confirmation(order, payment, transaction_id, payload)
            elif status in ("rejected", "cancelled"):
                if payment.status == PaymentStatus.PENDING:
                    payment_repository.mark_payment_as_failed(self.db, payment, payload)
            elif status == "refunded":
                if payment.status != PaymentStatus.REFUNDED:
                    payment_repository.mark_payment_as_refunded(self.db, payment, payload)
                    await self._cancel_refunded_subscription(order, payment)

            write_log(
                self.db, user_id=order.user_id, action="PAYMENT_WEBHOOK", resource="payments",
                meta={"order_id": order.id, "payment_id": payment.id, "gateway_status": status}, commit=False,
            )
            self.db.commit()
            return result
        except Exception:
            self.db.rollback()
            logger.exception("Webhook reconciliation failed for payment %s", transaction_id or payment_id)
            return CheckoutResult.fail(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)

    async def _cancel_refunded_subscription(self, order: Order, payment: Payment):
        if order.kind != OrderKind.SUBSCRIPTION:
            return
        subscription = subscription_repository.find_subscription_by_payment_id(self.db, payment.id)
        if subscription is None:
            plan_id = order.items[0].plan_id if order.items else None
            active = subscription_repository.find_user_active_subscription(self.db, order.user_id)
            if active is not None and active.plan_id == plan_id:
                subscription = active
        if subscription is not None and subscription.status != SubscriptionStatus.CANCELED:
            await self.cancel_subscription(subscription)
            logger.info("Subscription %s canceled after refund of payment %s", subscription.id, payment.id)

    # Stops the gateway preapproval before canceling locally. A gateway failure is logged
    # and leaves auto_renew set so the pending charge stays visible.
    async def cancel_subscription(self, subscription: Subscription) -> bool:
        gateway_canceled = True
        if subscription.auto_renew and subscription.provider_sub_id:
            gateway_canceled = await self.payment_service.cancel_recurring_subscription(subscription.provider_sub_id)
            if gateway_canceled:
                subscription.auto_renew = False
            else:
                logger.error("Preapproval %s of subscription %s is still active at the gateway",
                             subscription.provider_sub_id, subscription.id)
                write_log(
                    self.db, user_id=subscription.user_id, action="RECURRING_BILLING_CANCEL",
                    resource="subscriptions", status="FAILED",
                    meta={"subscription_id": subscription.id, "preapproval_id": subscription.provider_sub_id},
                    commit=False,
                )
        subscription_repository.cancel_subscription(self.db, subscription)
        return gateway_canceled

    # -- PIX follow-ups and manual reconciliation -------------------------

    async def regenerate_pix(self, user_id: int, order_id: int, user: User) -> CheckoutResult:
        order = order_repository.find_user_order_by_id(self.db, order_id, user_id)
        if not order:
            return CheckoutResult.fail(ErrorCode.ORDER_NOT_FOUND, "Pedido não encontrado")
        if order.status != OrderStatus.PENDING:
            return CheckoutResult.fail(ErrorCode.INVALID_ORDER_STATE, "Este pedido não está aguardando pagamento")

        payment = order.payments[0] if order.payments else None
        if payment is not None and payment.status == PaymentStatus.PAID:
            return CheckoutResult.fail(ErrorCode.INVALID_ORDER_STATE, "Este pedido já foi pago")
        if payment is None:
            payment = payment_repository.create_payment(self.db, order.id, order.total_amount)

        try:
            pix = await self.payment_service.create_pix_payment_direct(
                amount=order.total_amount,
                description=f"Pedido #{order.id}",
                email=user.email,
                external_reference=f"order_{order.id}",
            )
        except PaymentServiceError as e:
            self.db.rollback()
            logger.error("PIX regeneration failed for order %s: %s", order.id, e)
            return CheckoutResult.fail(
                ErrorCode.PIX_CREATION_FAILED, "Erro ao gerar o PIX. Tente novamente.", order_id=order.id,
            )

        payment.status = PaymentStatus.PENDING
        payment_repository.attach_pix_data(self.db, payment, pix)
        write_log(
            self.db, user_id=user_id, action="PIX_REGENERATE", resource="payments",
            meta={"order_id": order.id, "payment_id": payment.id}, commit=False,
        )
        self.db.commit()
        return CheckoutResult(
            success=True, order_id=order.id, payment_id=payment.id, payment_preference=pix_preference(payment),
        )

    def find_pending_pix(self, user_id: int):
        now = utcnow()
        payment = payment_repository.find_pending_pix_payment(self.db, user_id, now)
        if payment is None or payment.order.status != OrderStatus.PENDING:
            return None
        return PendingPixOut(
            order_id=payment.order_id,
            payment_id=payment.id,
            amount=payment.amount,
            preference=pix_preference(payment),
            seconds_remaining=max(0, int((payment.pix_expires_at - now).total_seconds())),
        )

    # Polling fallback: ask the gateway and reconcile when a webhook was missed
    async def check_payment_status(self, user_id: int, transaction_id: str):
        payment = payment_repository.find_payment_by_transaction_id(self.db, transaction_id)
        if payment is None or payment.order.user_id != user_id:
            return None

        gateway = await self.payment_service.get_payment_status(transaction_id)
        needs_sync = (
            (gateway.status == "approved" and payment.status in payment_repository.CLAIMABLE_STATUSES)
            or (gateway.status in ("rejected", "cancelled") and payment.status == PaymentStatus.PENDING)
            or (gateway.status == "refunded" and payment.status != PaymentStatus.REFUNDED)
        )
        if needs_sync:
            await self.handle_payment_webhook(payment.id, gateway.status, transaction_id, gateway.payload)
            self.db.refresh(payment)
            self.db.refresh(payment.order)
        return gateway.status, payment.order

    async def approve_payment_manually(self, order_id: int, admin_id: int, transaction_id: str = None,
                                       skip_gateway_check: bool = False) -> CheckoutResult:
        order = order_repository.find_order_by_id(self.db, order_id)
        if not order:
            return CheckoutResult.fail(ErrorCode.ORDER_NOT_FOUND, "Pedido não encontrado")
        if not order.payments:
            return CheckoutResult.fail(ErrorCode.NOT_FOUND, "Pagamento não encontrado neste pedido")

        payment = order.payments[0]
        if transaction_id:
            payment = next((p for p in order.payments if p.transaction_id == transaction_id), None)
            if payment is None:
                return CheckoutResult.fail(ErrorCode.NOT_FOUND, "Pagamento não encontrado neste pedido")
        if payment.status == PaymentStatus.PAID:
            return CheckoutResult.fail(ErrorCode.INVALID_ORDER_STATE, "Pagamento já está aprovado")
        if payment.status in (PaymentStatus.REFUNDED, PaymentStatus.CANCELED):
            return CheckoutResult.fail(
                ErrorCode.INVALID_ORDER_STATE, "Pagamento estornado ou cancelado não pode ser aprovado",
            )

        if payment.transaction_id and not skip_gateway_check:
            try:
                gateway = await self.payment_service.get_payment_status(payment.transaction_id)
                if gateway.status != "approved":
                    return CheckoutResult.fail(
                        ErrorCode.PAYMENT_FAILED,
                        f"Pagamento não está aprovado no Mercado Pago. Status atual: {gateway.raw_status}",
                    )
            except PaymentServiceError as e:
                logger.warning("Could not verify payment %s at the gateway, approving manually: %s",
                               payment.transaction_id, e)

        try:
            result = CheckoutResult(success=True, order_id=order.id, payment_id=payment.id)
            if order.kind == OrderKind.SUBSCRIPTION:
                subscription = await self._finalize_subscription_order(order, payment)
                result.subscription_id = subscription.id if subscription else None
            else:
                self.handle_product_payment_confirmation(order, payment)
            write_log(
                self.db, user_id=admin_id, action="PAYMENT_MANUAL_APPROVE", resource="payments",
                meta={"order_id": order.id, "payment_id": payment.id}, commit=False,
            )
            self.db.commit()
            return result
        except Exception:
            self.db.rollback()
            logger.exception("Manual approval failed for order %s", order_id)
            return CheckoutResult.fail(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
