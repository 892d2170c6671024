"""Material fulfillment tracking: status model, change events and the
transition engine that is the only writer of material records."""

from tracking.fulfillment.errors import (
    InvalidMaterialError,
    InvalidStatusError,
    MaterialNotFoundError,
    OrderCancelledError,
    TrackingError,
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
)
from tracking.fulfillment.transition_engine import StatusTransitionEngine

__all__ = [
    "ChangeKind",
    "InvalidMaterialError",
    "InvalidStatusError",
    "MaterialChangeEvent",
    "MaterialEventEmitter",
    "MaterialNotFoundError",
    "MaterialRecord",
    "MaterialStatus",
    "OrderCancelledError",
    "OrderSnapshot",
    "OrderStatus",
    "StatusTransitionEngine",
    "TrackingError",
    "TransportError",
]
