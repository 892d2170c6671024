"""Seed a few purchase orders with materials for local development."""

import asyncio
from datetime import datetime, timedelta, timezone

from tracking.core.database import async_session
from tracking.core.init_db import init_db
from tracking.repositories.purchase_repository import PurchaseRepository


def _material(name, status, quantity, unit, days_ago, **extra):
    updated = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return {
        "name": name,
        "status": status,
        "quantity": quantity,
        "unit": unit,
        "last_updated": updated.isoformat(),
        **extra,
    }


DEMO_ORDERS = [
    {
        "house_name": "Rumah Minimalis Tipe 36",
        "customer_name": "Budi Santoso",
        "total_amount": 185_000_000,
        "materials": [
            _material("Semen", "shipped", 50, "sak", 1, estimated_arrival="2026-11-02"),
            _material("Besi Beton", "processing", 120, "batang", 3),
            _material("Pasir", "pending", 8, "m³", 5),
        ],
    },
    {
        "house_name": "Rumah Modern Tipe 45",
        "customer_name": "Siti Rahma",
        "total_amount": 240_000_000,
        "materials": [
            _material("Bata Ringan", "delivered", 2000, "buah", 7),
            _material("Cat Tembok", "pending", 12, "galon", 2, notes="Warna putih tulang"),
        ],
    },
]


async def seed():
    await init_db()
    async with async_session() as db:
        repo = PurchaseRepository(db)
        for data in DEMO_ORDERS:
            order = await repo.create(**data)
            print(f"Created order {order.id}: {order.house_name} / {order.customer_name}")


if __name__ == "__main__":
    asyncio.run(seed())
