"""Shared data models for material tracking."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from tracking.fulfillment.errors import InvalidStatusError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Read a stored timestamp as an aware UTC datetime.

    Missing values read as the epoch so they sort last in recency order.
    """
    if value is None or value == "":
        return EPOCH
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class MaterialStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"

    @property
    def rank(self) -> int:
        """Severity used by status sorting; higher is further along."""
        return _STATUS_RANK[self]

    @property
    def label(self) -> str:
        """Customer-facing label."""
        return _STATUS_LABEL[self]

    @classmethod
    def parse(cls, value: "str | MaterialStatus") -> "MaterialStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidStatusError(
                f"Invalid material status {value!r}; expected one of: {allowed}"
            ) from None


_STATUS_RANK = {
    MaterialStatus.PENDING: 0,
    MaterialStatus.PROCESSING: 1,
    MaterialStatus.SHIPPED: 2,
    MaterialStatus.DELIVERED: 3,
}

_STATUS_LABEL = {
    MaterialStatus.PENDING: "Menunggu",
    MaterialStatus.PROCESSING: "Sedang Diproses",
    MaterialStatus.SHIPPED: "Dalam Pengiriman",
    MaterialStatus.DELIVERED: "Terkirim",
}


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidStatusError(
                f"Invalid order status {value!r}; expected one of: {allowed}"
            ) from None


@dataclass
class MaterialRecord:
    """One procurable item inside a purchase order."""

    name: str
    status: MaterialStatus
    quantity: float
    unit: str
    last_updated: datetime
    estimated_arrival: str | None = None
    notes: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "MaterialRecord":
        return cls(
            name=doc.get("name", ""),
            status=MaterialStatus.parse(doc.get("status", MaterialStatus.PENDING)),
            quantity=float(doc.get("quantity", 0)),
            unit=doc.get("unit", ""),
            last_updated=parse_timestamp(doc.get("last_updated")),
            estimated_arrival=doc.get("estimated_arrival") or None,
            notes=doc.get("notes") or None,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "quantity": self.quantity,
            "unit": self.unit,
            "last_updated": self.last_updated.isoformat(),
            "estimated_arrival": self.estimated_arrival,
            "notes": self.notes,
        }

    def with_status(self, status: MaterialStatus, at: datetime) -> "MaterialRecord":
        # status and last_updated always move together
        return replace(self, status=status, last_updated=at)


@dataclass
class OrderSnapshot:
    """Storage-independent copy of a purchase order and its materials."""

    id: str
    house_name: str
    customer_name: str
    status: OrderStatus
    materials: list[MaterialRecord] = field(default_factory=list)
    user_id: int | None = None
    house_id: str | None = None
    purchase_date: datetime | None = None
    total_amount: float = 0.0

    @property
    def is_cancelled(self) -> bool:
        return self.status is OrderStatus.CANCELLED

    @classmethod
    def from_model(cls, order: Any) -> "OrderSnapshot":
        """Build from a ``PurchaseOrder`` row."""
        return cls(
            id=order.id,
            house_name=order.house_name,
            customer_name=order.customer_name,
            status=OrderStatus.parse(order.status),
            materials=[MaterialRecord.from_document(m) for m in (order.materials or [])],
            user_id=order.user_id,
            house_id=order.house_id,
            purchase_date=parse_timestamp(order.purchase_date) if order.purchase_date else None,
            total_amount=order.total_amount or 0.0,
        )


class ChangeKind(str, Enum):
    STATUS = "status"
    DETAILS = "details"
    ADDED = "added"
    ORDER_STATUS = "order_status"


@dataclass
class MaterialChangeEvent:
    """Emitted after a mutation of an order's materials has committed.

    ``materials`` is the full array as written, so listeners never need to
    re-read the order.
    """

    order_id: str
    kind: ChangeKind
    materials: list[MaterialRecord]
    order_status: OrderStatus
    timestamp: datetime
    material_index: int | None = None
    status: MaterialStatus | None = None
