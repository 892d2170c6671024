# backend/tracking/api/purchases.py
import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tracking.api.deps import get_current_user
from tracking.core.config import settings
from tracking.core.database import get_db
from tracking.fulfillment.models import OrderSnapshot
from tracking.models.user import User
from tracking.repositories.purchase_repository import PurchaseRepository
from tracking.schemas.tracking import PurchaseDetailResponse
from tracking.services.realtime_channel import (
    MaterialSnapshot,
    RealtimeSyncChannel,
    SnapshotState,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

# Initialized in main.py
_channel: RealtimeSyncChannel | None = None


def init_purchases_api(channel: RealtimeSyncChannel):
    global _channel
    _channel = channel


def get_channel() -> RealtimeSyncChannel:
    if _channel is None:
        raise HTTPException(status_code=500, detail="Realtime channel not initialized")
    return _channel


@router.get("", response_model=list[PurchaseDetailResponse])
async def list_my_purchases(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    orders = await PurchaseRepository(db).list_for_user(current_user.id)
    return [PurchaseDetailResponse.from_snapshot(OrderSnapshot.from_model(o)) for o in orders]


@router.get("/{order_id}", response_model=PurchaseDetailResponse)
async def get_purchase(
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await PurchaseRepository(db).get_by_id(order_id)
    # someone else's order looks the same as a missing one
    if order is None or (not current_user.is_admin and order.user_id != current_user.id):
        raise HTTPException(status_code=404, detail="Purchase not found")
    return PurchaseDetailResponse.from_snapshot(OrderSnapshot.from_model(order))


@router.get("/{order_id}/stream")
async def stream_purchase_materials(
    order_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    channel: RealtimeSyncChannel = Depends(get_channel),
):
    """Server-sent events with the order's full material list.

    One event on connect, then one per committed change. The subscription
    ends when the client disconnects.
    """
    owner_id = None if current_user.is_admin else current_user.id

    async def event_generator():
        queue: asyncio.Queue[MaterialSnapshot] = asyncio.Queue()
        unsubscribe = await channel.subscribe(order_id, queue.put_nowait, owner_id=owner_id)
        logger.info(f"User {current_user.username} watching order {order_id}")
        try:
            while True:
                try:
                    snapshot = await asyncio.wait_for(
                        queue.get(), timeout=settings.REALTIME_KEEPALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    yield ": keep-alive\n\n"
                    continue

                yield f"data: {json.dumps(snapshot.to_dict(), ensure_ascii=False)}\n\n"
                if snapshot.state is SnapshotState.ERROR:
                    break
        finally:
            unsubscribe()
            logger.info(f"User {current_user.username} stopped watching order {order_id}")

    return StreamingResponse(event_generator(), media_type="text/event-stream")
