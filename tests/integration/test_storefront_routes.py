from models.subscription import SubscriptionStatus
from utils.tokenJWT import create_access_token, get_current_user


def test_cart_flow(client, factory):
    product = factory.product(name="Granola", base_price=22.5, stock=4)

    added = client.post("/cart/items", json={"product_id": product.id, "quantity": 2})
    item_id = added.json()["items"][0]["id"]
    too_many = client.put(f"/cart/items/{item_id}", json={"quantity": 9})
    updated = client.put(f"/cart/items/{item_id}", json={"quantity": 3})

    assert added.status_code == 200
    assert added.json()["subtotal"] == 45.0
    assert too_many.status_code == 400
    assert updated.json()["item_count"] == 3
    assert client.get("/cart/validate").json() == {"valid": True, "issues": []}

    assert client.delete(f"/cart/items/{item_id}").json()["items"] == []
    assert client.delete(f"/cart/items/{item_id}").status_code == 404


def test_cart_price_change_and_refresh(client, factory, db_session, customer):
    product = factory.product(base_price=10.0)
    factory.cart_item(customer, product)
    product.base_price = 12.0
    db_session.commit()

    validation = client.get("/cart/validate").json()
    refreshed = client.post("/cart/refresh-prices").json()

    assert validation["valid"] is False
    assert validation["issues"][0]["kind"] == "price_changed"
    assert "preço alterado" in validation["issues"][0]["message"]
    assert refreshed["items"][0]["unit_price"] == 12.0


def test_unknown_product_cannot_be_added(client):
    assert client.post("/cart/items", json={"product_id": 404}).status_code == 404


def test_address_crud(client, factory):
    body = {
        "street": "Rua das Flores", "number": "10", "neighborhood": "Centro",
        "city": "Curitiba", "state": "pr", "zip_code": "80010-000",
    }

    created = client.post("/addresses", json=body)
    address_id = created.json()["id"]
    updated = client.put(f"/addresses/{address_id}", json={"number": "12"})

    assert created.status_code == 201
    assert created.json()["is_default"] is True
    assert created.json()["zip_code"] == "80010000"
    assert created.json()["state"] == "PR"
    assert updated.json()["number"] == "12"
    assert len(client.get("/addresses").json()) == 1

    client.login_as(factory.user())
    assert client.put(f"/addresses/{address_id}", json={"number": "1"}).status_code == 404


def test_address_rejects_invalid_cep(client):
    body = {
        "street": "Rua A", "number": "1", "neighborhood": "B",
        "city": "C", "state": "SP", "zip_code": "123",
    }
    assert client.post("/addresses", json=body).status_code == 422


def test_delete_address(client, factory, customer):
    address = factory.address(customer)

    assert client.delete(f"/addresses/{address.id}").status_code == 204
    assert client.get("/addresses").json() == []


def test_shipping_quote(client, factory):
    product = factory.product()

    res = client.post("/shipping/quote", json={"cep": "01310-100", "product_ids": [product.id]})

    assert res.status_code == 200
    body = res.json()
    assert body["state"] == "SP"
    assert [o["service"] for o in body["options"]] == ["PAC", "SEDEX"]


def test_shipping_quote_invalid_cep(client):
    res = client.post("/shipping/quote", json={"cep": "999"})

    assert res.status_code == 400
    assert res.json()["success"] is False


def test_plans_and_my_subscription(client, factory, customer):
    factory.plan(name="Premium", price=99.9)
    basic = factory.plan(name="Básico", price=29.9)
    factory.plan(name="Antigo", active=False)

    plans = client.get("/subscriptions/plans").json()
    assert [p["name"] for p in plans] == ["Básico", "Premium"]
    assert client.get("/subscriptions/me").status_code == 404

    factory.subscription(customer, basic)
    mine = client.get("/subscriptions/me").json()
    canceled = client.post("/subscriptions/me/cancel").json()

    assert mine["plan"]["slug"] == basic.slug
    assert canceled["status"] == SubscriptionStatus.CANCELED.value
    assert client.post("/subscriptions/me/cancel").status_code == 404


def test_cancel_stops_recurring_billing_at_the_gateway(client, factory, db_session, customer, gateway):
    subscription = factory.subscription(customer, factory.plan())
    subscription.provider_sub_id = "preapproval-7"
    subscription.auto_renew = True
    db_session.commit()
    gateway.preapprovals["preapproval-7"] = {"id": "preapproval-7", "status": "authorized"}

    canceled = client.post("/subscriptions/me/cancel")

    assert canceled.status_code == 200
    assert canceled.json()["status"] == SubscriptionStatus.CANCELED.value
    assert canceled.json()["auto_renew"] is False
    assert gateway.preapproval_updates == [("preapproval-7", {"status": "cancelled"})]
    assert gateway.preapprovals["preapproval-7"]["status"] == "cancelled"


def test_bearer_token_resolves_the_user(app, client, factory):
    buyer = factory.user(email="token@example.com")
    app.dependency_overrides.pop(get_current_user)

    anonymous = client.get("/cart")
    forged = client.get("/cart", headers={"Authorization": "Bearer not-a-token"})
    authed = client.get("/cart", headers={"Authorization": f"Bearer {create_access_token({'sub': buyer.email})}"})

    assert anonymous.status_code in (401, 403)
    assert forged.status_code == 401
    assert authed.status_code == 200
    assert authed.json()["items"] == []
