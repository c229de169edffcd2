import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from shopcart.database.core import Base, build_engine, get_db
from shopcart.database.models import Product
from shopcart.cart.controller import get_identity
from shopcart.cart.identity import Identity
from shopcart.cart.service import CartService
from shopcart.main import create_app
from shopcart.services.cache_backends import MemoryCacheStore
from shopcart.services.session_store import MappingSessionStore

# Use an in-memory SQLite database for testing
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def engine():
    engine = build_engine(TEST_SQLALCHEMY_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """
    Creates a new, isolated in-memory database session for each test.
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def product(db_session):
    product = Product(id=1, name="Arduino Uno", price=Decimal("100"), stock=50)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def other_product(db_session):
    product = Product(id=2, name="Raspberry Pi", price=Decimal("250.50"), stock=5)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def cache_store():
    return MemoryCacheStore()


@pytest.fixture
def guest_session():
    """Raw session mapping, as Starlette's request.session would hold it."""
    return {}


@pytest.fixture
def cart_service(db_session, guest_session, cache_store):
    return CartService(
        db=db_session,
        session=MappingSessionStore(guest_session),
        cache_store=cache_store,
    )


@pytest.fixture
def user():
    return Identity(user_id="user-1")


@pytest.fixture
def guest():
    return Identity.guest()


@pytest.fixture
def api(db_session, cache_store):
    """
    Builds the app against the test database; ``api.login(user_id)`` and
    ``api.logout()`` switch the identity the cart endpoints see.
    """
    app = create_app(cache_store=cache_store, create_tables=False)
    current = {"identity": Identity.guest()}

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity] = lambda: current["identity"]

    with TestClient(app) as client:
        client.login = lambda user_id: current.update(identity=Identity(user_id=user_id))
        client.logout = lambda: current.update(identity=Identity.guest())
        yield client

    app.dependency_overrides.clear()
