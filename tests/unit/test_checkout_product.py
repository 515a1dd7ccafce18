import asyncio
import math

import pytest

from models.address import Address
from models.cart import CartItem
from models.log import Log
from models.order import Order, OrderKind, OrderStatus
from models.payment import Payment, PaymentStatus
from repositories import address_repository
from schemas.checkout import ErrorCode, ProductCheckoutRequest
from services.checkout_service import compute_order_totals


def _request(address, method="pix", **kw):
    payment_data = {"method": method}
    if method != "pix":
        payment_data.update(card_token="tok_abc", brand="Visa", installments=2)
    return ProductCheckoutRequest(address_id=address.id, payment_data=payment_data, **kw)


def _checkout(service, user, request):
    return asyncio.run(service.process_product_checkout(user.id, user, request))


def test_compute_order_totals_applies_discount_and_shipping():
    totals = compute_order_totals(100.0, 10.0, 20)

    assert totals.subtotal == 100.0
    assert totals.discount == 20.0
    assert totals.shipping == 10.0
    assert totals.total == 90.0


def test_compute_order_totals_rounds_each_step():
    totals = compute_order_totals(33.335, 0, 15)

    assert totals.subtotal == 33.34
    assert totals.discount == 5.0
    assert totals.total == 28.34


@pytest.mark.parametrize("subtotal", [float("nan"), float("inf")])
def test_compute_order_totals_keeps_non_finite_values_detectable(subtotal):
    totals = compute_order_totals(subtotal)
    assert not math.isfinite(totals.total)


def test_subscriber_discount_applies_to_cart(checkout_service, factory, db_session, customer):
    factory.subscription(customer, factory.plan(discount_percent=20))
    factory.cart_item(customer, factory.product(base_price=50.0), quantity=2)
    address = factory.address(customer)
    option = {"option_id": "pac", "carrier": "Correios", "service": "PAC", "price": 10.0, "delivery_days": 5}

    result = _checkout(checkout_service, customer, _request(address, shipping_option=option))

    assert result.success is True
    order = db_session.get(Order, result.order_id)
    assert order.kind == OrderKind.PRODUCT
    assert order.subtotal_amount == 100.0
    assert order.discount_amount == 20.0
    assert order.shipping_amount == 10.0
    assert order.total_amount == 90.0
    assert result.payment_preference.amount == 90.0


def test_empty_cart(checkout_service, factory, customer, gateway):
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address))

    assert result.success is False
    assert result.error_code == ErrorCode.EMPTY_CART
    assert gateway.created == []


def test_cart_validation_failure_lists_the_items(checkout_service, factory, db_session, customer, gateway):
    product = factory.product(name="Café Especial", stock=5)
    factory.cart_item(customer, product, quantity=3)
    product.stock = 1
    db_session.commit()
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address))

    assert result.error_code == ErrorCode.CART_VALIDATION_FAILED
    assert "Café Especial" in result.error
    assert gateway.created == []
    assert db_session.query(Order).count() == 0


def test_zero_total_is_rejected_before_any_row_is_written(checkout_service, factory, db_session, customer, gateway):
    factory.cart_item(customer, factory.product(base_price=0.0))
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address))

    assert result.error_code == ErrorCode.INVALID_TOTAL
    assert gateway.created == []
    assert db_session.query(Order).count() == 0
    assert db_session.query(Payment).count() == 0


def test_card_checkout_reserves_stock_and_clears_cart(checkout_service, factory, db_session, customer, gateway):
    product = factory.product(base_price=30.0, stock=5)
    factory.cart_item(customer, product, quantity=2)
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address, method="credit_card"))

    assert result.success is True
    assert result.payment_preference.status == "approved"
    assert gateway.created[0]["installments"] == 2
    assert db_session.get(Order, result.order_id).status == OrderStatus.PAID
    assert db_session.get(Payment, result.payment_id).status == PaymentStatus.PAID
    db_session.refresh(product)
    assert product.stock == 3
    assert db_session.query(CartItem).count() == 0


def test_card_checkout_with_variant_reserves_variant_stock(checkout_service, factory, db_session, customer):
    product = factory.product(base_price=30.0, stock=5)
    variant = factory.variant(product, price=35.0, stock=4)
    factory.cart_item(customer, product, quantity=3, variant=variant)
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address, method="credit_card"))

    order = db_session.get(Order, result.order_id)
    assert order.items[0].sku == variant.sku
    assert order.items[0].total_price == 105.0
    db_session.refresh(variant)
    db_session.refresh(product)
    assert variant.stock == 1
    assert product.stock == 5


def test_rejected_card_keeps_cart_and_stock(checkout_service, factory, db_session, customer, gateway):
    gateway.card_status = "rejected"
    gateway.card_status_detail = "cc_rejected_high_risk"
    product = factory.product(stock=5)
    factory.cart_item(customer, product)
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address, method="credit_card"))

    assert result.error_code == ErrorCode.PAYMENT_FAILED
    assert result.error == "Pagamento recusado por segurança."
    assert db_session.get(Payment, result.payment_id).status == PaymentStatus.FAILED
    db_session.refresh(product)
    assert product.stock == 5
    assert db_session.query(CartItem).count() == 1


def test_pix_checkout_waits_for_confirmation(checkout_service, factory, db_session, customer):
    product = factory.product(stock=5)
    factory.cart_item(customer, product, quantity=2)
    address = factory.address(customer)

    result = _checkout(checkout_service, customer, _request(address))

    assert result.success is True
    assert db_session.get(Order, result.order_id).status == OrderStatus.PENDING
    db_session.refresh(product)
    assert product.stock == 5
    assert db_session.query(CartItem).count() == 1
    assert db_session.query(Log).filter(Log.action == "CHECKOUT_CART").count() == 1


def test_address_snapshot_survives_address_changes(checkout_service, factory, db_session, customer):
    factory.cart_item(customer, factory.product())
    address = factory.address(customer, street="Rua Augusta", number="500")

    result = _checkout(checkout_service, customer, _request(address, notes="Deixar na portaria"))

    address_repository.update_address(db_session, address, {"street": "Rua Nova", "number": "1"})
    db_session.commit()
    address_repository.delete_address(db_session, address)
    db_session.commit()

    order = db_session.get(Order, result.order_id)
    assert db_session.query(Address).count() == 0
    assert order.address_snapshot.street == "Rua Augusta"
    assert order.address_snapshot.number == "500"
    assert order.address_snapshot.full_name == customer.full_name
    assert order.notes == "Deixar na portaria"
