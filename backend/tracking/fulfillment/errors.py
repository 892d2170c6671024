"""Errors raised by material tracking operations.

Each error carries a short ``kind`` code that batch results and API
responses report alongside the message.
"""


class TrackingError(Exception):
    """Base class for material tracking failures."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MaterialNotFoundError(TrackingError):
    """Unknown order id, or a material index outside the order's list."""

    kind = "not_found"


class InvalidStatusError(TrackingError):
    """Status value outside the closed status enum."""

    kind = "invalid_status"


class OrderCancelledError(TrackingError):
    """Mutation attempted on a cancelled order."""

    kind = "cancelled"


class InvalidMaterialError(TrackingError):
    """Material fields failed validation (empty name/unit, bad quantity)."""

    kind = "invalid_material"


class TransportError(TrackingError):
    """The backing store could not be reached or refused the operation."""

    kind = "transport"
