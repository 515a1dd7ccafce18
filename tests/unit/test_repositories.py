from models.payment import PaymentStatus
from repositories import (
    address_repository, order_repository, payment_repository, product_repository,
    shipping_repository, subscription_repository,
)


def _order(db, user, total=10.0):
    order = order_repository.create_order(
        db,
        {"user_id": user.id, "subtotal_amount": total, "total_amount": total},
        [{"title": "Item", "quantity": 1, "unit_price": total, "total_price": total}],
        {"full_name": "Maria", "street": "Rua A", "number": "1", "neighborhood": "B",
         "city": "C", "state": "SP", "zip_code": "01310100"},
    )
    db.commit()
    return order


def test_first_address_becomes_default_and_default_moves(db_session, customer):
    base = {"street": "Rua A", "number": "1", "neighborhood": "B", "city": "C", "state": "SP", "zip_code": "01310100"}
    first = address_repository.create_address(db_session, customer.id, dict(base))
    second = address_repository.create_address(db_session, customer.id, dict(base, is_default=True))
    db_session.commit()
    db_session.refresh(first)

    assert first.is_default is False
    assert second.is_default is True

    address_repository.delete_address(db_session, second)
    db_session.commit()
    db_session.refresh(first)
    assert first.is_default is True


def test_reserve_stock_never_goes_negative(db_session, factory):
    product = factory.product(stock=3)

    assert product_repository.reserve_stock(db_session, product.id, None, 2) is True
    assert product_repository.reserve_stock(db_session, product.id, None, 2) is False
    db_session.commit()
    db_session.refresh(product)
    assert product.stock == 1


def test_claim_payment_as_paid_only_once(db_session, customer):
    order = _order(db_session, customer)
    payment = payment_repository.create_payment(db_session, order.id, 10.0)
    db_session.commit()

    assert payment_repository.claim_payment_as_paid(db_session, payment, "tx-1") is True
    assert payment_repository.claim_payment_as_paid(db_session, payment, "tx-1") is False
    assert payment.status == PaymentStatus.PAID
    assert payment_repository.find_payment_by_transaction_id(db_session, "tx-1").id == payment.id
    assert payment_repository.find_payment_by_transaction_id(db_session, None) is None


def test_refunded_payment_cannot_be_claimed_again(db_session, customer):
    order = _order(db_session, customer)
    payment = payment_repository.create_payment(db_session, order.id, 10.0)
    payment_repository.mark_payment_as_failed(db_session, payment)
    db_session.commit()

    assert payment_repository.claim_payment_as_paid(db_session, payment, "tx-2") is True
    payment_repository.mark_payment_as_refunded(db_session, payment)
    db_session.commit()

    assert payment_repository.claim_payment_as_paid(db_session, payment, "tx-2") is False
    assert payment.status == PaymentStatus.REFUNDED


def test_user_orders_are_paginated_newest_first(db_session, factory, customer):
    ids = [_order(db_session, customer).id for _ in range(3)]
    _order(db_session, factory.user())

    rows, total = order_repository.find_user_orders(db_session, customer.id, page=1, page_size=2)

    assert total == 3
    assert [o.id for o in rows] == [ids[2], ids[1]]


def test_subscription_lookups(db_session, factory, customer):
    plan = factory.plan()
    subscription = factory.subscription(customer, plan)

    assert subscription_repository.find_user_active_subscription(db_session, customer.id).plan.slug == plan.slug
    assert subscription_repository.user_has_any_active_subscription(db_session, customer.id) is True

    subscription_repository.cancel_subscription(db_session, subscription)
    db_session.commit()

    assert subscription_repository.user_has_any_active_subscription(db_session, customer.id) is False
    assert subscription_repository.find_user_latest_subscription(db_session, customer.id).id == subscription.id


def test_shipping_profiles_for_products_and_plans(db_session, factory):
    profile = factory.shipping_profile(weight_kg=1.2)
    inactive = factory.shipping_profile(active=False)
    product = factory.product(shipping_profile_id=profile.id)
    bare = factory.product()
    plan = factory.plan(shipping_profile_id=profile.id)

    assert shipping_repository.find_profiles_for_products(db_session, [product.id, bare.id]) == [profile]
    assert shipping_repository.find_profile_for_plan(db_session, plan.id) == profile
    assert shipping_repository.find_profile_by_id(db_session, inactive.id) is None
