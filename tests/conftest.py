import os
import tempfile
import time
import uuid

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret")
os.environ.setdefault("CART_STORAGE_DIR", tempfile.mkdtemp(prefix="cart-storage-"))

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.local_storage import MemoryStorage
from app.database import get_session
from app.dependencies import get_cart_registry
from app.main import app
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.repositories.cart_repo import CartRepository
from app.services.cart_store import CartStore, CartStoreRegistry

API = "/api/v1"


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cart_repo(storage):
    return CartRepository(storage)


@pytest.fixture
def store(cart_repo):
    return CartStore(cart_repo, "cart-storage:test-device").hydrate()


@pytest.fixture
def registry(cart_repo):
    return CartStoreRegistry(cart_repo, "cart-storage")


@pytest.fixture(name="client")
def client_fixture(session, registry):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_cart_registry] = lambda: registry
    client = TestClient(app)
    client.headers["X-Cart-Session"] = "device-1"
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = jwt.encode(
        {
            "sub": str(uuid.uuid4()),
            "email": "owner@example.com",
            "role": "authenticated",
            "exp": int(time.time()) + 3600,
        },
        os.environ["SUPABASE_JWT_SECRET"],
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_product(session):
    def _make(name="Silk Scarf", price=2500.0, stock=3, in_stock=True):
        product = Product(
            name=name,
            price=price,
            stock_quantity=stock,
            in_stock=in_stock,
            image_url=f"https://cdn.example.com/{name.lower().replace(' ', '-')}.jpg",
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_order(session):
    def _make(lines, status="pending", customer_name="Amina", phone="+213555000111"):
        """
        lines: list of (product_or_None, quantity, unit_price)
        """
        subtotal = sum(qty * price for _, qty, price in lines)
        order = Order(
            customer_name=customer_name,
            customer_phone=phone,
            subtotal=subtotal,
            shipping_cost=500.0,
            total_amount=subtotal + 500.0,
            status=status,
        )
        session.add(order)
        session.flush()
        for product, qty, price in lines:
            session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id if product is not None else None,
                    product_name=product.name if product is not None else "Archived item",
                    quantity=qty,
                    price=price,
                )
            )
        session.commit()
        session.refresh(order)
        return order

    return _make
