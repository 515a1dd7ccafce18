import os

# Keep the app import from touching a real database file
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("MP_ACCESS_TOKEN", "TEST-token")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Settings, get_settings
from database import get_db, init_db
from models.address import Address
from models.product import Product, ProductVariant
from models.shipping import ShippingProfile
from models.subscription import SubscriptionPlan
from models.users import User
from repositories import cart_repository, subscription_repository
from services.cart_service import CartService
from services.checkout_service import CheckoutService
from services.payment_service import PaymentService
from services.providers import get_mercadopago_client
from services.shipping_service import ShippingService
from utils.tokenJWT import get_current_user

from fakes import FakeMercadoPagoClient

# Automatic marking by folder
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class Factory:
    """Creates committed rows with sensible storefront defaults."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, **kw):
        n = self._next()
        data = {"email": f"cliente{n}@example.com", "full_name": "Maria Silva", "whatsapp": "11999990000"}
        data.update(kw)
        return self._save(User(**data))

    def address(self, user, **kw):
        data = {
            "user_id": user.id, "street": "Avenida Paulista", "number": "1000", "complement": "Apto 12",
            "neighborhood": "Bela Vista", "city": "São Paulo", "state": "SP", "zip_code": "01310100",
        }
        data.update(kw)
        return self._save(Address(**data))

    def shipping_profile(self, **kw):
        data = {"name": "Caixa pequena", "weight_kg": 0.5, "width_cm": 20, "height_cm": 10, "length_cm": 30}
        data.update(kw)
        return self._save(ShippingProfile(**data))

    def plan(self, **kw):
        n = self._next()
        data = {"name": f"Plano {n}", "slug": f"plano-{n}", "price": 49.90, "discount_percent": 10}
        data.update(kw)
        return self._save(SubscriptionPlan(**data))

    def product(self, **kw):
        n = self._next()
        data = {"name": f"Produto {n}", "slug": f"produto-{n}", "base_price": 50.0, "stock": 10}
        data.update(kw)
        return self._save(Product(**data))

    def variant(self, product, **kw):
        n = self._next()
        data = {"product_id": product.id, "sku": f"SKU-{n}", "name": f"Variação {n}", "price": None, "stock": 5}
        data.update(kw)
        return self._save(ProductVariant(**data))

    def cart_item(self, user, product, quantity=1, variant=None, unit_price=None):
        cart = cart_repository.find_or_create_by_user_id(self.db, user.id)
        if unit_price is None:
            unit_price = variant.effective_price if variant is not None else product.base_price
        item = cart_repository.add_item(
            self.db, cart, product.id, variant.id if variant is not None else None, quantity, unit_price
        )
        self.db.commit()
        return item

    def subscription(self, user, plan):
        subscription = subscription_repository.create_subscription(self.db, user.id, plan.id)
        self.db.commit()
        return subscription


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()

@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def factory(db_session):
    return Factory(db_session)

@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        MP_ACCESS_TOKEN="TEST-token",
        MP_WEBHOOK_SECRET="",
        SHIPPING_USE_EXTERNAL_API=False,
    )

@pytest.fixture
def gateway():
    return FakeMercadoPagoClient()

@pytest.fixture
def payment_service(gateway, settings):
    return PaymentService(gateway, settings)

@pytest.fixture
def shipping_service(db_session, settings):
    return ShippingService(db_session, settings)

@pytest.fixture
def checkout_service(db_session, payment_service, shipping_service):
    return CheckoutService(db_session, payment_service, shipping_service, CartService(db_session))

@pytest.fixture
def customer(factory):
    return factory.user()

@pytest.fixture
def admin(factory):
    return factory.user(email="admin@example.com", role="ADMIN", full_name="Admin")

@pytest.fixture
def app():
    from main import app as fastapi_app
    return fastapi_app

@pytest.fixture
def client(app, db_session, gateway, settings, customer):
    """API client authenticated as `customer`; use `login_as` to switch users."""
    state = {"user": customer}

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_mercadopago_client] = lambda: gateway
    app.dependency_overrides[get_current_user] = lambda: state["user"]

    with TestClient(app) as c:
        c.login_as = lambda user: state.update(user=user)
        yield c
    app.dependency_overrides.clear()
