"""Purchase Order Model

A customer's purchase of one prebuilt house design. The materials being
procured for the house live inside the order as one JSON array.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from tracking.core.database import Base


def new_order_id() -> str:
    # hex form keeps "-" free for selection keys
    return uuid.uuid4().hex


class PurchaseOrder(Base):
    """Purchase order document.

    ``materials`` is only ever replaced as a whole; index positions inside
    it are the identity of each material.
    """

    __tablename__ = "purchase_orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_order_id)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    house_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    house_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )  # pending, completed, cancelled
    purchase_date: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    total_amount: Mapped[float] = mapped_column(Float, default=0.0)
    materials: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_purchase_orders_status", "status"),
        Index("idx_purchase_orders_date", "purchase_date"),
    )
