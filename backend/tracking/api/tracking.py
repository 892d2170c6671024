"""REST API endpoints for admin material tracking."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from tracking.api.deps import require_admin
from tracking.core.database import get_db
from tracking.fulfillment.errors import (
    InvalidMaterialError,
    InvalidStatusError,
    MaterialNotFoundError,
    OrderCancelledError,
    TrackingError,
    TransportError,
)
from tracking.fulfillment.models import MaterialStatus, OrderSnapshot
from tracking.fulfillment.transition_engine import StatusTransitionEngine
from tracking.models.user import User
from tracking.repositories.purchase_repository import PurchaseRepository
from tracking.schemas.tracking import (
    BatchUpdateRequest,
    BatchUpdateResponse,
    MaterialCreateRequest,
    MaterialResponse,
    MaterialStatsResponse,
    MaterialUpdateRequest,
    OrderStatusUpdateRequest,
    OrderTrackingResponse,
    PurchaseDetailResponse,
    StatusUpdateRequest,
    TrackingListResponse,
)
from tracking.services.batch_coordinator import BatchUpdateCoordinator
from tracking.services.export_serializer import CSV_MEDIA_TYPE, export_filename, serialize
from tracking.services.tracking_projection import (
    SortKey,
    SortOrder,
    TrackingFilter,
    TrackingProjection,
    TrackingSort,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tracking", tags=["tracking"])

# Initialized in main.py
_engine: StatusTransitionEngine | None = None
_coordinator: BatchUpdateCoordinator | None = None

_ERROR_STATUS_CODES = {
    MaterialNotFoundError: 404,
    InvalidStatusError: 400,
    InvalidMaterialError: 400,
    OrderCancelledError: 409,
    TransportError: 503,
}


def init_tracking_api(engine: StatusTransitionEngine, coordinator: BatchUpdateCoordinator):
    """Initialize the tracking API with its engine and batch coordinator.

    Args:
        engine: StatusTransitionEngine instance
        coordinator: BatchUpdateCoordinator instance
    """
    global _engine, _coordinator
    _engine = engine
    _coordinator = coordinator


def get_engine() -> StatusTransitionEngine:
    if _engine is None:
        raise HTTPException(status_code=500, detail="Transition engine not initialized")
    return _engine


def get_coordinator() -> BatchUpdateCoordinator:
    if _coordinator is None:
        raise HTTPException(status_code=500, detail="Batch coordinator not initialized")
    return _coordinator


def to_http_exception(error: TrackingError) -> HTTPException:
    status_code = _ERROR_STATUS_CODES.get(type(error), 500)
    return HTTPException(status_code=status_code, detail=error.message)


def tracking_query(
    search: str | None = Query(None, description="Matches house or customer name"),
    status: str | None = Query(None, description="Orders with any material in this status"),
    sort_by: SortKey = Query(SortKey.DATE),
    order: SortOrder = Query(SortOrder.DESC),
) -> tuple[TrackingFilter, TrackingSort]:
    try:
        parsed = MaterialStatus.parse(status) if status and status != "all" else None
    except InvalidStatusError as e:
        raise to_http_exception(e)
    return TrackingFilter(search_text=search, status=parsed), TrackingSort(by=sort_by, order=order)


@router.get("", response_model=TrackingListResponse)
async def list_tracking(
    query: tuple[TrackingFilter, TrackingSort] = Depends(tracking_query),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Tracked materials of every non-cancelled order, with status counters."""
    projection = await TrackingProjection.load(db)
    views = projection.list(*query)
    return TrackingListResponse(
        items=[OrderTrackingResponse.from_view(v) for v in views],
        stats=MaterialStatsResponse.from_stats(projection.aggregate()),
    )


@router.get("/stats", response_model=MaterialStatsResponse)
async def tracking_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    projection = await TrackingProjection.load(db)
    return MaterialStatsResponse.from_stats(projection.aggregate())


@router.get("/export")
async def export_tracking(
    query: tuple[TrackingFilter, TrackingSort] = Depends(tracking_query),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the filtered and sorted view as CSV."""
    projection = await TrackingProjection.load(db)
    content = serialize(projection.list(*query))
    filename = export_filename(datetime.now(timezone.utc).date())
    logger.info(f"Exported material tracking as {filename}")
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/batch", response_model=BatchUpdateResponse)
async def batch_update(
    request: BatchUpdateRequest,
    current_user: User = Depends(require_admin),
    coordinator: BatchUpdateCoordinator = Depends(get_coordinator),
):
    """Set one status on every selected material.

    Keys succeed or fail independently; the response lists both.
    """
    try:
        result = await coordinator.apply_batch(request.keys, request.status)
    except TrackingError as e:
        raise to_http_exception(e)
    logger.info(f"Batch update by {current_user.username}: {result.summary}")
    return BatchUpdateResponse.from_result(result)


@router.get("/{order_id}", response_model=PurchaseDetailResponse)
async def get_order(
    order_id: str,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    order = await PurchaseRepository(db).get_by_id(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order '{order_id}' not found")
    return PurchaseDetailResponse.from_snapshot(OrderSnapshot.from_model(order))


@router.patch("/{order_id}/status", response_model=PurchaseDetailResponse)
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    current_user: User = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_engine),
):
    try:
        snapshot = await engine.set_order_status(order_id, request.status)
    except TrackingError as e:
        raise to_http_exception(e)
    return PurchaseDetailResponse.from_snapshot(snapshot)


@router.post("/{order_id}/materials", response_model=MaterialResponse, status_code=201)
async def add_material(
    order_id: str,
    request: MaterialCreateRequest,
    current_user: User = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_engine),
):
    try:
        index, record = await engine.add_material(
            order_id,
            name=request.name,
            quantity=request.quantity,
            unit=request.unit,
            status=request.status,
            estimated_arrival=request.estimated_arrival,
            notes=request.notes,
        )
    except TrackingError as e:
        raise to_http_exception(e)
    return MaterialResponse.from_record(index, record)


@router.put("/{order_id}/materials/{material_index}", response_model=MaterialResponse)
async def update_material(
    order_id: str,
    material_index: int,
    request: MaterialUpdateRequest,
    current_user: User = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_engine),
):
    """Edit descriptive fields; fields left out of the body are kept."""
    try:
        record = await engine.update_details(
            order_id, material_index, request.model_dump(exclude_unset=True)
        )
    except TrackingError as e:
        raise to_http_exception(e)
    return MaterialResponse.from_record(material_index, record)


@router.patch("/{order_id}/materials/{material_index}/status", response_model=MaterialResponse)
async def update_material_status(
    order_id: str,
    material_index: int,
    request: StatusUpdateRequest,
    current_user: User = Depends(require_admin),
    engine: StatusTransitionEngine = Depends(get_engine),
):
    try:
        record = await engine.transition(order_id, material_index, request.status)
    except TrackingError as e:
        logger.warning(f"Status update of {order_id}[{material_index}] failed: {e.message}")
        raise to_http_exception(e)
    return MaterialResponse.from_record(material_index, record)
