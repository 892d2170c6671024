"""Live material snapshots for customers watching one order.

Subscribers receive the full material list of their order on subscription
and again after every committed change, in commit order. Admin views do not
use this channel; they refetch the projection on demand.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tracking.fulfillment.event_emitter import MaterialEventEmitter
from tracking.fulfillment.models import (
    MaterialChangeEvent,
    MaterialRecord,
    OrderSnapshot,
    OrderStatus,
)
from tracking.repositories.purchase_repository import PurchaseRepository

logger = logging.getLogger(__name__)


class SnapshotState(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class MaterialSnapshot:
    """What a subscriber sees for its order at one point in time.

    ``NOT_FOUND`` means the order does not exist, which is different from a
    ``FOUND`` order that has no materials yet.
    """

    order_id: str
    state: SnapshotState
    materials: list[MaterialRecord] = field(default_factory=list)
    order_status: OrderStatus | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "state": self.state.value,
            "order_status": self.order_status.value if self.order_status else None,
            "error": self.error,
            "materials": [
                {**m.to_document(), "index": i, "label": m.status.label}
                for i, m in enumerate(self.materials)
            ],
        }


SnapshotCallback = Callable[[MaterialSnapshot], None]


class _Subscription:
    def __init__(self, order_id: str, on_change: SnapshotCallback):
        self.order_id = order_id
        self.on_change = on_change
        self.active = True
        # events that arrive while the initial snapshot is being read
        self.pending: list[MaterialSnapshot] | None = []

    def deliver(self, snapshot: MaterialSnapshot) -> None:
        if not self.active:
            return
        if self.pending is not None:
            self.pending.append(snapshot)
            return
        self._call(snapshot)

    def start(self, initial: MaterialSnapshot) -> None:
        buffered, self.pending = self.pending or [], None
        for snapshot in [initial, *buffered]:
            if not self.active:
                return
            self._call(snapshot)

    def _call(self, snapshot: MaterialSnapshot) -> None:
        try:
            self.on_change(snapshot)
        except Exception:
            logger.exception(f"Snapshot callback for order {self.order_id} failed")


class RealtimeSyncChannel:
    """Pushes order material snapshots to subscribers without polling.

    Fed by the MaterialEventEmitter, so every committed transition reaches
    the subscribers of that order. Delivery is in-process; a different push
    mechanism can sit behind the same subscribe() contract.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_emitter: MaterialEventEmitter,
    ):
        """Initialize the channel and start listening for changes.

        Args:
            session_factory: Factory used to read the initial snapshot
            event_emitter: Source of committed change events
        """
        self.session_factory = session_factory
        self.event_emitter = event_emitter
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self.event_emitter.subscribe(self.on_event)

    async def subscribe(
        self,
        order_id: str,
        on_change: SnapshotCallback,
        owner_id: int | None = None,
    ) -> Callable[[], None]:
        """Watch one order's materials.

        The current snapshot is delivered before this returns. Failures
        (store errors, or ``owner_id`` not owning the order) arrive through
        ``on_change`` as an ``ERROR`` snapshot.

        Args:
            order_id: Order to watch; it need not exist yet
            on_change: Called with every snapshot
            owner_id: When given, only that customer's order may be watched

        Returns:
            An idempotent unsubscribe function; call it when the view goes
            away or the subscription leaks
        """
        subscription = _Subscription(order_id, on_change)
        self._subscriptions.setdefault(order_id, []).append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            subscribers = self._subscriptions.get(order_id)
            if subscribers and subscription in subscribers:
                subscribers.remove(subscription)
                if not subscribers:
                    del self._subscriptions[order_id]
            logger.debug(f"Unsubscribed from order {order_id}")

        initial, owner = await self._read(order_id)
        if owner_id is not None and initial.state is SnapshotState.FOUND and owner != owner_id:
            unsubscribe()
            logger.warning(f"User {owner_id} may not watch order {order_id}")
            subscription._call(
                MaterialSnapshot(
                    order_id=order_id,
                    state=SnapshotState.ERROR,
                    error="Permission denied",
                )
            )
            return unsubscribe

        subscription.start(initial)
        logger.debug(f"Subscribed to order {order_id}")
        return unsubscribe

    def on_event(self, event: MaterialChangeEvent) -> None:
        """Forward a committed change to the order's subscribers."""
        subscribers = self._subscriptions.get(event.order_id)
        if not subscribers:
            return
        snapshot = MaterialSnapshot(
            order_id=event.order_id,
            state=SnapshotState.FOUND,
            materials=list(event.materials),
            order_status=event.order_status,
        )
        for subscription in list(subscribers):
            subscription.deliver(snapshot)

    def subscriber_count(self, order_id: str | None = None) -> int:
        if order_id is not None:
            return len(self._subscriptions.get(order_id, []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def close(self) -> None:
        """Stop listening for changes and drop every subscription."""
        for subscribers in self._subscriptions.values():
            for subscription in subscribers:
                subscription.active = False
        self._subscriptions.clear()
        try:
            self.event_emitter.unsubscribe(self.on_event)
        except ValueError:
            pass

    async def _read(self, order_id: str) -> tuple[MaterialSnapshot, int | None]:
        """Read the current snapshot and the id of the owning customer."""
        try:
            async with self.session_factory() as session:
                order = await PurchaseRepository(session).get_by_id(order_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to read order {order_id} for subscription: {e}")
            snapshot = MaterialSnapshot(
                order_id=order_id, state=SnapshotState.ERROR, error=str(e)
            )
            return snapshot, None

        if order is None:
            return MaterialSnapshot(order_id=order_id, state=SnapshotState.NOT_FOUND), None

        order_snapshot = OrderSnapshot.from_model(order)
        snapshot = MaterialSnapshot(
            order_id=order_id,
            state=SnapshotState.FOUND,
            materials=order_snapshot.materials,
            order_status=order_snapshot.status,
        )
        return snapshot, order_snapshot.user_id
