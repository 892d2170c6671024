"""Fixtures for API tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tracking.api import purchases as purchases_api
from tracking.api import tracking as tracking_api
from tracking.api.deps import get_current_user
from tracking.core.database import Base, get_db
from tracking.fulfillment.event_emitter import MaterialEventEmitter
from tracking.fulfillment.transition_engine import StatusTransitionEngine
from tracking.main import app
from tracking.services.batch_coordinator import BatchUpdateCoordinator
from tracking.services.realtime_channel import RealtimeSyncChannel
from factories import ADMIN_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID, create_order, make_user, material_doc


@pytest.fixture
def api_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def orders(api_session_factory):
    """Two orders of the customer, one cancelled order of another customer."""

    async def seed():
        order_a = await create_order(
            api_session_factory,
            house_name="Rumah Minimalis",
            customer_name="Andi",
            user_id=CUSTOMER_ID,
            materials=[
                material_doc("Besi", "pending", minutes=10, quantity=120, unit="batang"),
                material_doc("Semen", "shipped", minutes=20, quantity=50, unit="sak"),
            ],
        )
        order_b = await create_order(
            api_session_factory,
            house_name="Rumah Modern",
            customer_name="Andi",
            user_id=CUSTOMER_ID,
            materials=[material_doc("Cat", "delivered", minutes=5, quantity=12, unit="galon")],
        )
        order_c = await create_order(
            api_session_factory,
            house_name="Rumah Klasik",
            customer_name="Joko",
            user_id=OTHER_CUSTOMER_ID,
            status="cancelled",
            materials=[material_doc("Genteng", "pending")],
        )
        return order_a, order_b, order_c

    return asyncio.run(seed())


@pytest.fixture
def client(api_session_factory):
    """Create a test client wired to the per-test database."""
    emitter = MaterialEventEmitter()
    engine = StatusTransitionEngine(api_session_factory, event_emitter=emitter)
    tracking_api.init_tracking_api(engine, BatchUpdateCoordinator(engine))
    channel = RealtimeSyncChannel(api_session_factory, emitter)
    purchases_api.init_purchases_api(channel)

    async def override_get_db():
        async with api_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    channel.close()


@pytest.fixture
def login_as(client):
    """Authenticate every request as the given user."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return client

    return _login


@pytest.fixture
def admin_client(login_as):
    return login_as(make_user(ADMIN_ID, "admin", is_admin=True))


@pytest.fixture
def customer_client(login_as):
    return login_as(make_user(CUSTOMER_ID, "andi"))
