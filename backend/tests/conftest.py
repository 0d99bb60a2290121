"""
Pytest configuration and shared fixtures for the canteen API tests.

Provides an in-memory SQLite order store, a fake Midtrans gateway, sample
users/menu/orders, and an HTTP client bound to the ASGI app.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# Test-only values for settings that would normally come from .env
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-for-pytest-only")
os.environ.setdefault("MIDTRANS_SERVER_KEY", "SB-Mid-server-test")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from typing import AsyncGenerator
from unittest.mock import AsyncMock

from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from middleware.auth import issue_access_token
from middleware.rate_limit import _limiter
from services.midtrans_client import PaymentConfig
from services.order_store import OrderStore
from services.payment_service import PaymentOrchestrator

if not settings.supabase_jwt_secret:
    settings.supabase_jwt_secret = "test-jwt-secret-for-pytest-only"

PARENT_ID = "11111111-1111-1111-1111-111111111111"
OTHER_PARENT_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_ID = "33333333-3333-3333-3333-333333333333"
CASHIER_ID = "44444444-4444-4444-4444-444444444444"


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    import db_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    _limiter.reset()
    yield
    _limiter.reset()


# ── Gateway Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def payment_config() -> PaymentConfig:
    return PaymentConfig(server_key="SB-Mid-server-test")


@pytest.fixture
def fake_gateway():
    """Stand-in for MidtransClient; tests set return values / side effects."""
    gateway = AsyncMock()
    gateway.create_transaction.return_value = {
        "token": "snap-token-123",
        "redirect_url": "https://app.sandbox.midtrans.com/snap/v2/vtweb/snap-token-123",
    }
    gateway.get_status.return_value = {
        "status_code": "201",
        "transaction_status": "pending",
        "snap_token": "snap-token-existing",
        "redirect_url": "https://app.sandbox.midtrans.com/snap/v2/vtweb/snap-token-existing",
        "va_numbers": [{"bank": "permata", "va_number": "8562000123456789"}],
    }
    return gateway


@pytest.fixture
def order_store(db_session: AsyncSession) -> OrderStore:
    return OrderStore(db_session)


@pytest.fixture
def orchestrator(payment_config, fake_gateway, order_store) -> PaymentOrchestrator:
    return PaymentOrchestrator(payment_config, fake_gateway, order_store)


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
async def sample_users(db_session: AsyncSession):
    """Two parents, one admin, one cashier."""
    from db_models import Profile, UserRole

    db_session.add_all([
        Profile(id=PARENT_ID, full_name="Ibu Sari", email="sari@example.com", phone="081200000001"),
        Profile(id=OTHER_PARENT_ID, full_name="Pak Joko", email="joko@example.com"),
        Profile(id=ADMIN_ID, full_name="Admin Kantin", email="admin@example.com"),
        Profile(id=CASHIER_ID, full_name="Kasir Kantin", role="parent"),
        UserRole(user_id=ADMIN_ID, role="admin"),
        UserRole(user_id=CASHIER_ID, role="cashier"),
    ])
    await db_session.commit()


@pytest.fixture
async def sample_menu_item(db_session: AsyncSession):
    from db_models import MenuItem

    item = MenuItem(name="Nasi Goreng", price=15000, image_url="https://img.example/nasi.jpg", is_available=True)
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest.fixture
def make_order(db_session: AsyncSession, sample_menu_item):
    """Factory: create an order with (quantity, price) items and reload it with items."""
    from db_models import Order, OrderItem

    async def _make(
        user_id: str = PARENT_ID,
        child_name: str = "Budi",
        total_amount: float = 15000,
        items=((1, 15000),),
        menu_item_id=None,
        **fields,
    ):
        order = Order(
            user_id=user_id,
            child_name=child_name,
            child_class="3A",
            total_amount=total_amount,
            **fields,
        )
        db_session.add(order)
        await db_session.flush()
        for quantity, price in items:
            db_session.add(OrderItem(
                order_id=order.id,
                menu_item_id=menu_item_id or sample_menu_item.id,
                quantity=quantity,
                price=price,
            ))
        await db_session.commit()
        return await reload_order(db_session, order.id)

    return _make


async def reload_order(db_session: AsyncSession, order_id: str):
    from db_models import Order

    result = await db_session.execute(
        select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


def auth_headers(user_id: str, email: str | None = None, phone: str | None = None) -> dict:
    token = issue_access_token(user_id=user_id, email=email, phone=phone)
    return {"Authorization": f"Bearer {token}"}


# ── HTTP Client ──────────────────────────────────────────────────────


@pytest.fixture
async def client(db_session: AsyncSession, payment_config, fake_gateway):
    """
    ASGI client with the in-memory database and the fake gateway wired in.
    """
    from main import app
    from deps import get_gateway, get_payment_config

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_config] = lambda: payment_config
    app.dependency_overrides[get_gateway] = lambda: fake_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
