"""Shared fixtures: a throwaway SQLite database per test and a seeded
pair of purchase orders."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_material_tracking.db")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import tracking.models  # noqa: F401  registers tables
from tracking.core.database import Base
from tracking.fulfillment.event_emitter import MaterialEventEmitter
from tracking.fulfillment.transition_engine import StatusTransitionEngine
from factories import create_order, material_doc


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'tracking.db'}"


@pytest.fixture
async def test_engine(database_url):
    """Create a test database engine."""
    engine = create_async_engine(
        database_url,
        connect_args={"check_same_thread": False},
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def emitter():
    return MaterialEventEmitter()


@pytest.fixture
def transition_engine(session_factory, emitter):
    return StatusTransitionEngine(session_factory, event_emitter=emitter)


@pytest.fixture
async def scenario_orders(session_factory):
    """Order A: Besi pending, Semen shipped. Order B: Cat delivered."""
    order_a = await create_order(
        session_factory,
        house_name="Rumah Minimalis",
        customer_name="Andi",
        materials=[
            material_doc("Besi", "pending", minutes=10, quantity=120, unit="batang"),
            material_doc("Semen", "shipped", minutes=20, quantity=50, unit="sak"),
        ],
    )
    order_b = await create_order(
        session_factory,
        house_name="Rumah Modern",
        customer_name="Siti",
        materials=[material_doc("Cat", "delivered", minutes=5, quantity=12, unit="galon")],
    )
    return order_a, order_b
