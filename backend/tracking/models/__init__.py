# Database models
from tracking.models.user import User
from tracking.models.purchase import PurchaseOrder

__all__ = [
    "User",
    "PurchaseOrder",
]
