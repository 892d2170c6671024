"""Builders for purchase orders and material documents used across tests."""

from datetime import datetime, timedelta, timezone

from tracking.models.user import User
from tracking.repositories.purchase_repository import PurchaseRepository

BASE_TIME = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)

ADMIN_ID = 1
CUSTOMER_ID = 2
OTHER_CUSTOMER_ID = 3


def material_doc(name, status="pending", minutes=0, quantity=1, unit="pcs", **extra):
    """Stored material document updated ``minutes`` after BASE_TIME."""
    return {
        "name": name,
        "status": status,
        "quantity": quantity,
        "unit": unit,
        "last_updated": (BASE_TIME + timedelta(minutes=minutes)).isoformat(),
        **extra,
    }


async def create_order(session_factory, house_name="Rumah Tipe 36", customer_name="Budi",
                       materials=None, **kwargs) -> str:
    async with session_factory() as session:
        order = await PurchaseRepository(session).create(
            house_name=house_name,
            customer_name=customer_name,
            materials=materials or [],
            **kwargs,
        )
        return order.id


async def read_materials(session_factory, order_id) -> list[dict]:
    async with session_factory() as session:
        order = await PurchaseRepository(session).get_by_id(order_id)
        return order.materials


async def read_status(session_factory, order_id) -> str:
    async with session_factory() as session:
        order = await PurchaseRepository(session).get_by_id(order_id)
        return order.status


def make_user(user_id, username, is_admin=False):
    """Unsaved account used to stand in for the authenticated user."""
    user = User(username=username, password_hash="unused", is_admin=is_admin)
    user.id = user_id
    return user
