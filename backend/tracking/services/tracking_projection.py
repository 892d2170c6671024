"""Read-side view over the materials of every non-cancelled order.

The projection joins order metadata with each material, filters and sorts
the result for the admin list, and folds per-status counters. Nothing here
is persisted; the projection is rebuilt from the store whenever the admin
view is refreshed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from tracking.fulfillment.models import (
    EPOCH,
    MaterialChangeEvent,
    MaterialRecord,
    MaterialStatus,
    OrderSnapshot,
    OrderStatus,
)
from tracking.repositories.purchase_repository import PurchaseRepository


class SortKey(str, Enum):
    DATE = "date"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class TrackingFilter:
    search_text: str | None = None
    status: MaterialStatus | None = None


@dataclass
class TrackingSort:
    by: SortKey = SortKey.DATE
    order: SortOrder = SortOrder.DESC


@dataclass
class TrackingEntry:
    """One material joined with its order's metadata."""

    order_id: str
    material_index: int
    house_name: str
    customer_name: str
    material: MaterialRecord

    @property
    def selection_key(self) -> str:
        return f"{self.order_id}-{self.material_index}"


@dataclass
class OrderMaterialView:
    """An order with its (sorted) material entries."""

    order_id: str
    house_name: str
    customer_name: str
    order_status: OrderStatus
    purchase_date: datetime | None
    entries: list[TrackingEntry] = field(default_factory=list)

    @property
    def first_updated(self) -> datetime:
        return self.entries[0].material.last_updated if self.entries else EPOCH


@dataclass
class MaterialStats:
    total: int = 0
    pending: int = 0
    processing: int = 0
    shipped: int = 0
    delivered: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "processing": self.processing,
            "shipped": self.shipped,
            "delivered": self.delivered,
        }


class TrackingProjection:
    """Filterable, sortable view of tracked materials.

    Cancelled orders are left out on construction and when a change event
    reports a cancellation.
    """

    def __init__(self, orders: Iterable[OrderSnapshot]):
        self._orders: dict[str, OrderSnapshot] = {
            order.id: order for order in orders if not order.is_cancelled
        }

    @classmethod
    async def load(cls, session: AsyncSession) -> "TrackingProjection":
        """Build a projection from every non-cancelled order in the store."""
        repo = PurchaseRepository(session)
        orders = await repo.list_trackable()
        return cls(OrderSnapshot.from_model(order) for order in orders)

    @property
    def orders(self) -> list[OrderSnapshot]:
        return list(self._orders.values())

    def apply(self, event: MaterialChangeEvent) -> None:
        """Bring one order up to date from a committed change event."""
        if event.order_status is OrderStatus.CANCELLED:
            self._orders.pop(event.order_id, None)
            return
        order = self._orders.get(event.order_id)
        if order is None:
            # orders outside the loaded set stay out until the next load
            return
        order.materials = list(event.materials)
        order.status = event.order_status

    def list(
        self,
        filter: TrackingFilter | None = None,
        sort: TrackingSort | None = None,
    ) -> list[OrderMaterialView]:
        """Filtered, two-level sorted view.

        An order is included when the search text matches its house or
        customer name and, if a status is given, when any one of its
        materials has that status. Included orders keep all their materials.
        Materials sort inside each order by the chosen key, then orders sort
        by their first material's last update in the same direction.
        """
        filter = filter or TrackingFilter()
        sort = sort or TrackingSort()
        descending = sort.order is SortOrder.DESC

        views = [
            self._view(order, sort.by, descending)
            for order in self._orders.values()
            if _matches(order, filter)
        ]
        views.sort(key=lambda v: v.first_updated, reverse=descending)
        return views

    def aggregate(self) -> MaterialStats:
        """Count materials per status across all tracked orders."""
        stats = MaterialStats()
        for order in self._orders.values():
            for material in order.materials:
                stats.total += 1
                name = material.status.value
                setattr(stats, name, getattr(stats, name) + 1)
        return stats

    def _view(self, order: OrderSnapshot, by: SortKey, descending: bool) -> OrderMaterialView:
        entries = [
            TrackingEntry(
                order_id=order.id,
                material_index=index,
                house_name=order.house_name,
                customer_name=order.customer_name,
                material=material,
            )
            for index, material in enumerate(order.materials)
        ]
        if by is SortKey.STATUS:
            entries.sort(key=lambda e: e.material.status.rank, reverse=descending)
        else:
            entries.sort(key=lambda e: e.material.last_updated, reverse=descending)
        return OrderMaterialView(
            order_id=order.id,
            house_name=order.house_name,
            customer_name=order.customer_name,
            order_status=order.status,
            purchase_date=order.purchase_date,
            entries=entries,
        )


def _matches(order: OrderSnapshot, filter: TrackingFilter) -> bool:
    if filter.search_text:
        needle = filter.search_text.lower()
        if needle not in order.house_name.lower() and needle not in order.customer_name.lower():
            return False
    if filter.status is not None:
        return any(m.status is filter.status for m in order.materials)
    return True
