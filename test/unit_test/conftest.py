import os

# Settings are read at import time, so the environment has to be in place first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_dummy"
os.environ["INTERNAL_API_SECRET"] = "internal-test-secret"
os.environ["APP_URL"] = "http://localhost:3000"
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from farmmarket.auth.security import create_access_token, get_password_hash
from farmmarket.core.rate_limit import account_lockout, rate_limiter
from farmmarket.db.init import init_db
from farmmarket.db.session import Base, get_db
from farmmarket.main import app
from farmmarket.models.farmer import Farmer
from farmmarket.models.product import Product
from farmmarket.models.user import User

TEST_PASSWORD = "password123"
# bcrypt is slow; hash once and reuse for every fixture user
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def client_at(client):
    """Build extra clients connecting directly from a given address."""

    def _client_at(host):
        return TestClient(app, raise_server_exceptions=False, client=(host, 50000))

    return _client_at


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.reset()
    account_lockout.reset()
    yield
    rate_limiter.reset()
    account_lockout.reset()


@pytest.fixture
def make_user(db_session):
    def _make_user(email, role="customer", name="Test User", is_active=True, **fields):
        user = User(
            email=email,
            name=name,
            hashed_password=TEST_PASSWORD_HASH,
            role=role,
            is_active=is_active,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_farm(db_session):
    def _make_farm(user, farm_name="Green Acres Farm", **fields):
        fields.setdefault("description", "Organic vegetables")
        fields.setdefault("city", "Countryside")
        fields.setdefault("state", "CA")
        farm = Farmer(user_id=user.id, farm_name=farm_name, **fields)
        db_session.add(farm)
        db_session.commit()
        db_session.refresh(farm)
        return farm

    return _make_farm


@pytest.fixture
def make_product(db_session):
    def _make_product(farm, name="Organic Tomatoes", price="3.99", quantity=100, **fields):
        fields.setdefault("description", "Fresh, juicy organic tomatoes.")
        fields.setdefault("unit", "lb")
        fields.setdefault("category", "vegetables")
        fields.setdefault("images", [])
        product = Product(farmer_id=farm.id, name=name, price=Decimal(price), quantity=quantity, **fields)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make_product


@pytest.fixture
def customer(make_user):
    return make_user("john@example.com", name="John Doe")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role="admin", name="Admin User")


@pytest.fixture
def farmer_user(make_user):
    return make_user("bob@example.com", role="farmer", name="Bob Johnson")


@pytest.fixture
def farm(farmer_user, make_farm):
    return make_farm(farmer_user)


@pytest.fixture
def other_farmer_user(make_user):
    return make_user("sarah@example.com", role="farmer", name="Sarah Williams")


@pytest.fixture
def other_farm(other_farmer_user, make_farm):
    return make_farm(other_farmer_user, farm_name="Sunshine Orchard", city="Rural")


@pytest.fixture
def product(farm, make_product):
    return make_product(farm)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def headers_for():
    return auth_headers
