"""Event emitter for material change events."""

import logging
from typing import TYPE_CHECKING, Callable, List

if TYPE_CHECKING:
    from tracking.fulfillment.models import MaterialChangeEvent

logger = logging.getLogger(__name__)


class MaterialEventEmitter:
    """Event emitter for broadcasting committed material changes to listeners.

    The realtime channel and any loaded tracking projection subscribe here
    to observe every transition without re-reading the store.
    """

    def __init__(self) -> None:
        """Initialize an empty list of listeners."""
        self._listeners: List[Callable[["MaterialChangeEvent"], None]] = []

    def subscribe(self, listener: Callable[["MaterialChangeEvent"], None]) -> None:
        """Subscribe a listener to material change events.

        Args:
            listener: A callable that accepts a MaterialChangeEvent.

        Raises:
            ValueError: If the listener is already subscribed.
        """
        if listener in self._listeners:
            raise ValueError("Listener is already subscribed")
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[["MaterialChangeEvent"], None]) -> None:
        """Unsubscribe a listener.

        Raises:
            ValueError: If the listener is not subscribed.
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            raise ValueError("Listener is not subscribed") from None

    def emit(self, event: "MaterialChangeEvent") -> None:
        """Deliver an event to every subscribed listener.

        The change is already committed when this runs, so a failing
        listener is logged and the remaining listeners still get the event.
        """
        logger.debug(
            f"MaterialEventEmitter.emit(): {event.kind.value} on {event.order_id}"
            f"[{event.material_index}]"
        )

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Material event listener {listener!r} failed")

    def __len__(self) -> int:
        return len(self._listeners)
