"""Status transition engine for materials inside purchase orders."""

import logging
import math
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tracking.fulfillment.errors import (
    InvalidMaterialError,
    MaterialNotFoundError,
    OrderCancelledError,
    TransportError,
)
from tracking.fulfillment.event_emitter import MaterialEventEmitter
from tracking.fulfillment.models import (
    ChangeKind,
    MaterialChangeEvent,
    MaterialRecord,
    MaterialStatus,
    OrderSnapshot,
    OrderStatus,
    utcnow,
)
from tracking.repositories.purchase_repository import PurchaseRepository

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "quantity", "unit", "estimated_arrival", "notes"})

# Receives the order's material list (a private copy) and the write time;
# edits the list in place and returns (index, record) of the touched material.
Mutation = Callable[[list[MaterialRecord], datetime], tuple[int, MaterialRecord]]


class StatusTransitionEngine:
    """Applies single-material changes to an order's material array.

    Every operation reads the whole array, splices in the changed entry and
    writes the whole array back in one update. Nothing is locked: two
    concurrent writes to different indices of the same order race and the
    later commit wins for the entire array.

    Each call opens its own session, so calls may run concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_emitter: MaterialEventEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the engine.

        Args:
            session_factory: Factory producing a fresh AsyncSession per call
            event_emitter: Optional emitter notified after each commit
            clock: Source of last_updated timestamps
        """
        self.session_factory = session_factory
        self.event_emitter = event_emitter
        self.clock = clock

    async def transition(
        self,
        order_id: str,
        material_index: int,
        new_status: str | MaterialStatus,
    ) -> MaterialRecord:
        """Set one material's status.

        Any status may move to any other, backwards included.

        Raises:
            InvalidStatusError: new_status is not a material status
            MaterialNotFoundError: unknown order or index out of range
            OrderCancelledError: the order is cancelled
            TransportError: the store call failed
        """
        status = MaterialStatus.parse(new_status)

        def mutate(materials: list[MaterialRecord], now: datetime):
            current = _material_at(order_id, materials, material_index)
            materials[material_index] = current.with_status(status, now)
            return material_index, materials[material_index]

        _, record = await self._rewrite(order_id, ChangeKind.STATUS, mutate)
        logger.info(f"Material {order_id}[{material_index}] set to {status.value}")
        return record

    async def add_material(
        self,
        order_id: str,
        name: str,
        quantity: float,
        unit: str,
        status: str | MaterialStatus = MaterialStatus.PENDING,
        estimated_arrival: str | None = None,
        notes: str | None = None,
    ) -> tuple[int, MaterialRecord]:
        """Append a material to an order.

        Returns:
            Index of the new material and the stored record
        """
        parsed_status = MaterialStatus.parse(status)
        fields = _validate_fields(
            {"name": name, "quantity": quantity, "unit": unit}
        )

        def mutate(materials: list[MaterialRecord], now: datetime):
            record = MaterialRecord(
                name=fields["name"],
                status=parsed_status,
                quantity=fields["quantity"],
                unit=fields["unit"],
                last_updated=now,
                estimated_arrival=estimated_arrival or None,
                notes=notes or None,
            )
            materials.append(record)
            return len(materials) - 1, record

        index, record = await self._rewrite(order_id, ChangeKind.ADDED, mutate)
        logger.info(f"Material '{record.name}' added to {order_id} at index {index}")
        return index, record

    async def update_details(
        self, order_id: str, material_index: int, changes: dict[str, Any]
    ) -> MaterialRecord:
        """Edit the descriptive fields of one material.

        Only name, quantity, unit, estimated_arrival and notes can change
        here; status goes through transition().
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidMaterialError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}"
            )
        fields = _validate_fields(changes)

        def mutate(materials: list[MaterialRecord], now: datetime):
            current = _material_at(order_id, materials, material_index)
            materials[material_index] = replace(current, last_updated=now, **fields)
            return material_index, materials[material_index]

        _, record = await self._rewrite(order_id, ChangeKind.DETAILS, mutate)
        logger.info(
            f"Material {order_id}[{material_index}] details updated: {sorted(fields)}"
        )
        return record

    async def set_order_status(
        self, order_id: str, new_status: str | OrderStatus
    ) -> OrderSnapshot:
        """Change the order-level status.

        Cancelling takes the order out of tracking views; its materials
        are kept.
        """
        status = OrderStatus.parse(new_status)
        try:
            async with self.session_factory() as session:
                repo = PurchaseRepository(session)
                order = await repo.get_by_id(order_id)
                if order is None:
                    raise MaterialNotFoundError(f"Order '{order_id}' not found")
                snapshot = replace(OrderSnapshot.from_model(order), status=status)
                if not await repo.update_status(order_id, status.value):
                    raise MaterialNotFoundError(f"Order '{order_id}' not found")
                # no await between commit and emit, so events follow commit order
                self._emit(
                    MaterialChangeEvent(
                        order_id=order_id,
                        kind=ChangeKind.ORDER_STATUS,
                        materials=snapshot.materials,
                        order_status=snapshot.status,
                        timestamp=self.clock(),
                    )
                )
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to update order {order_id}: {e}") from e

        logger.info(f"Order {order_id} status set to {status.value}")
        return snapshot

    async def _rewrite(
        self, order_id: str, kind: ChangeKind, mutate: Mutation
    ) -> tuple[int, MaterialRecord]:
        """Read-modify-write the materials array of one order."""
        try:
            async with self.session_factory() as session:
                repo = PurchaseRepository(session)
                order = await repo.get_by_id(order_id)
                if order is None:
                    raise MaterialNotFoundError(f"Order '{order_id}' not found")

                snapshot = OrderSnapshot.from_model(order)
                if snapshot.is_cancelled:
                    raise OrderCancelledError(f"Order '{order_id}' is cancelled")

                materials = list(snapshot.materials)
                now = self.clock()
                index, record = mutate(materials, now)

                written = await repo.replace_materials(
                    order_id, [m.to_document() for m in materials]
                )
                if not written:
                    raise MaterialNotFoundError(f"Order '{order_id}' not found")
                # no await between commit and emit, so events follow commit order
                self._emit(
                    MaterialChangeEvent(
                        order_id=order_id,
                        kind=kind,
                        materials=materials,
                        order_status=snapshot.status,
                        timestamp=now,
                        material_index=index,
                        status=record.status,
                    )
                )
        except SQLAlchemyError as e:
            raise TransportError(f"Failed to update order {order_id}: {e}") from e

        return index, record

    def _emit(self, event: MaterialChangeEvent) -> None:
        if self.event_emitter is not None:
            self.event_emitter.emit(event)


def _material_at(
    order_id: str, materials: list[MaterialRecord], index: int
) -> MaterialRecord:
    # negative indices are not addresses
    if not isinstance(index, int) or index < 0 or index >= len(materials):
        raise MaterialNotFoundError(
            f"Material index {index} not found in order '{order_id}'"
        )
    return materials[index]


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = dict(fields)
    for key in ("name", "unit"):
        if key in cleaned:
            value = (cleaned[key] or "").strip()
            if not value:
                raise InvalidMaterialError(f"Material {key} is required")
            cleaned[key] = value
    if "quantity" in cleaned:
        try:
            quantity = float(cleaned["quantity"])
        except (TypeError, ValueError):
            raise InvalidMaterialError("Material quantity must be a number") from None
        if not math.isfinite(quantity):
            raise InvalidMaterialError("Material quantity must be a finite number")
        if quantity <= 0:
            raise InvalidMaterialError("Material quantity must be greater than zero")
        cleaned["quantity"] = quantity
    for key in ("estimated_arrival", "notes"):
        if key in cleaned:
            cleaned[key] = cleaned[key] or None
    return cleaned
