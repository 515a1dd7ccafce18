import pytest

from services.cart_service import CartService, CartServiceError


@pytest.fixture
def cart_service(db_session):
    return CartService(db_session)


def test_cart_is_created_lazily(cart_service, customer):
    cart = cart_service.get_cart(customer.id)

    assert cart.items == []
    assert cart.subtotal == 0.0


def test_add_to_cart_merges_same_product(cart_service, factory, customer):
    product = factory.product(base_price=25.0)

    cart_service.add_to_cart(customer.id, product.id, quantity=1)
    cart = cart_service.add_to_cart(customer.id, product.id, quantity=2)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3
    assert cart.subtotal == 75.0


def test_add_to_cart_keeps_variants_apart(cart_service, factory, customer):
    product = factory.product(base_price=30.0)
    small = factory.variant(product, price=None)
    large = factory.variant(product, price=45.0)

    cart_service.add_to_cart(customer.id, product.id, small.id)
    cart = cart_service.add_to_cart(customer.id, product.id, large.id)

    assert [i.unit_price for i in cart.items] == [30.0, 45.0]


def test_add_to_cart_refuses_more_than_stock(cart_service, factory, customer):
    product = factory.product(stock=2)

    with pytest.raises(CartServiceError) as exc:
        cart_service.add_to_cart(customer.id, product.id, quantity=3)
    assert "Disponível: 2" in exc.value.message


def test_add_inactive_product_is_not_found(cart_service, factory, customer):
    product = factory.product(active=False)

    with pytest.raises(CartServiceError) as exc:
        cart_service.add_to_cart(customer.id, product.id)
    assert exc.value.status_code == 404


def test_update_and_remove_items(cart_service, factory, customer):
    product = factory.product(stock=5)
    item = factory.cart_item(customer, product, quantity=1)

    cart = cart_service.update_quantity(customer.id, item.id, 4)
    assert cart.items[0].quantity == 4

    cart = cart_service.remove_item(customer.id, item.id)
    assert cart.items == []


def test_validation_passes_for_healthy_cart(cart_service, factory, customer):
    factory.cart_item(customer, factory.product(stock=3), quantity=2)

    validation = cart_service.validate_cart_for_checkout(customer.id)

    assert validation.valid is True
    assert validation.issues == []


def test_validation_reports_every_issue_kind(cart_service, factory, db_session, customer):
    sold_out = factory.product(name="Café", stock=5)
    scarce = factory.product(name="Chá", stock=5)
    repriced = factory.product(name="Mel", base_price=10.0)
    retired = factory.product(name="Granola")
    factory.cart_item(customer, sold_out)
    factory.cart_item(customer, scarce, quantity=4)
    factory.cart_item(customer, repriced)
    factory.cart_item(customer, retired)

    sold_out.stock = 0
    scarce.stock = 2
    repriced.base_price = 12.0
    retired.active = False
    db_session.commit()

    validation = cart_service.validate_cart_for_checkout(customer.id)
    issues = {(i.product_name, i.kind): i for i in validation.issues}

    assert validation.valid is False
    assert ("Café", "out_of_stock") in issues
    assert issues[("Chá", "insufficient_stock")].details == "Disponível: 2"
    assert issues[("Mel", "price_changed")].details == "Preço atual: R$ 12.00"
    assert ("Granola", "unavailable") in issues


def test_refresh_prices_clears_price_changes(cart_service, factory, db_session, customer):
    product = factory.product(base_price=10.0)
    factory.cart_item(customer, product)
    product.base_price = 11.5
    db_session.commit()

    cart = cart_service.refresh_prices(customer.id)

    assert cart.items[0].unit_price == 11.5
    assert cart_service.validate_cart_for_checkout(customer.id).valid is True
