"""Repository for purchase order database operations."""

from datetime import datetime
from typing import Any, List, Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from tracking.models.purchase import PurchaseOrder


class PurchaseRepository:
    """Repository for PurchaseOrder database operations.

    Treats each order as a document: it is read whole by id, and its
    ``materials`` array is written back whole. There is no partial-array
    update, so two writers that read the same array race and the later
    commit wins.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(
        self,
        house_name: str,
        customer_name: str,
        materials: Optional[List[dict[str, Any]]] = None,
        user_id: Optional[int] = None,
        house_id: Optional[str] = None,
        status: str = "pending",
        total_amount: float = 0.0,
        purchase_date: Optional[datetime] = None,
    ) -> PurchaseOrder:
        """Create a purchase order.

        Args:
            house_name: Display name of the purchased house
            customer_name: Display name of the buyer
            materials: Initial material documents
            user_id: Owning customer account
            house_id: Catalog id of the house
            status: Order-level status
            total_amount: Purchase total
            purchase_date: Purchase time, defaults to the database clock

        Returns:
            Created PurchaseOrder instance
        """
        order = PurchaseOrder(
            house_name=house_name,
            customer_name=customer_name,
            materials=list(materials or []),
            user_id=user_id,
            house_id=house_id,
            status=status,
            total_amount=total_amount,
        )
        if purchase_date is not None:
            order.purchase_date = purchase_date
        self.session.add(order)
        await self.session.commit()
        await self.session.refresh(order)
        return order

    async def get_by_id(self, order_id: str) -> Optional[PurchaseOrder]:
        """Get a purchase order by id.

        Returns:
            PurchaseOrder instance or None
        """
        result = await self.session.execute(
            select(PurchaseOrder).where(PurchaseOrder.id == order_id)
        )
        return result.scalar_one_or_none()

    async def list_trackable(self) -> List[PurchaseOrder]:
        """List every order whose status is not ``cancelled``."""
        result = await self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.status != "cancelled")
            .order_by(PurchaseOrder.purchase_date.desc())
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: int) -> List[PurchaseOrder]:
        """List all orders owned by a customer, cancelled ones included."""
        result = await self.session.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.user_id == user_id)
            .order_by(PurchaseOrder.purchase_date.desc())
        )
        return list(result.scalars().all())

    async def replace_materials(
        self, order_id: str, materials: List[dict[str, Any]]
    ) -> bool:
        """Overwrite an order's whole materials array and commit.

        Returns:
            True if the order existed, False otherwise
        """
        result = await self.session.execute(
            update(PurchaseOrder)
            .where(PurchaseOrder.id == order_id)
            .values(materials=materials)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def update_status(self, order_id: str, status: str) -> bool:
        """Set the order-level status and commit.

        Returns:
            True if the order existed, False otherwise
        """
        result = await self.session.execute(
            update(PurchaseOrder)
            .where(PurchaseOrder.id == order_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0
