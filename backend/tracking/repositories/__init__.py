"""Repository layer for database operations.

This module provides repository classes for purchase orders and the
material arrays embedded in them.
"""

from tracking.repositories.purchase_repository import PurchaseRepository

__all__ = [
    "PurchaseRepository",
]
