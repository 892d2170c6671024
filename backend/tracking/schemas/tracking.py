# backend/tracking/schemas/tracking.py
from datetime import datetime
from pydantic import BaseModel, Field

from tracking.fulfillment.models import MaterialRecord, OrderSnapshot
from tracking.services.batch_coordinator import BatchUpdateResult
from tracking.services.tracking_projection import MaterialStats, OrderMaterialView


class MaterialResponse(BaseModel):
    index: int
    name: str
    status: str
    label: str
    quantity: float
    unit: str
    estimated_arrival: str | None = None
    notes: str | None = None
    last_updated: datetime

    @classmethod
    def from_record(cls, index: int, record: MaterialRecord) -> "MaterialResponse":
        return cls(
            index=index,
            name=record.name,
            status=record.status.value,
            label=record.status.label,
            quantity=record.quantity,
            unit=record.unit,
            estimated_arrival=record.estimated_arrival,
            notes=record.notes,
            last_updated=record.last_updated,
        )


class TrackingEntryResponse(MaterialResponse):
    # "{order_id}-{index}", the key batch updates take
    selection_key: str


class OrderTrackingResponse(BaseModel):
    order_id: str
    house_name: str
    customer_name: str
    order_status: str
    purchase_date: datetime | None = None
    materials: list[TrackingEntryResponse]

    @classmethod
    def from_view(cls, view: OrderMaterialView) -> "OrderTrackingResponse":
        return cls(
            order_id=view.order_id,
            house_name=view.house_name,
            customer_name=view.customer_name,
            order_status=view.order_status.value,
            purchase_date=view.purchase_date,
            materials=[
                TrackingEntryResponse(
                    **MaterialResponse.from_record(e.material_index, e.material).model_dump(),
                    selection_key=e.selection_key,
                )
                for e in view.entries
            ],
        )


class MaterialStatsResponse(BaseModel):
    total: int
    pending: int
    processing: int
    shipped: int
    delivered: int

    @classmethod
    def from_stats(cls, stats: MaterialStats) -> "MaterialStatsResponse":
        return cls(**stats.as_dict())


class TrackingListResponse(BaseModel):
    items: list[OrderTrackingResponse]
    stats: MaterialStatsResponse


class PurchaseDetailResponse(BaseModel):
    id: str
    house_id: str | None = None
    house_name: str
    customer_name: str
    status: str
    purchase_date: datetime | None = None
    total_amount: float
    materials: list[MaterialResponse]

    @classmethod
    def from_snapshot(cls, order: OrderSnapshot) -> "PurchaseDetailResponse":
        return cls(
            id=order.id,
            house_id=order.house_id,
            house_name=order.house_name,
            customer_name=order.customer_name,
            status=order.status.value,
            purchase_date=order.purchase_date,
            total_amount=order.total_amount,
            materials=[
                MaterialResponse.from_record(i, m) for i, m in enumerate(order.materials)
            ],
        )


class StatusUpdateRequest(BaseModel):
    # kept as a plain string so unknown values reach the engine's own check
    status: str = Field(..., description="pending, processing, shipped or delivered")


class OrderStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="pending, completed or cancelled")


class BatchUpdateRequest(BaseModel):
    keys: list[str] = Field(..., description="Selection keys '{order_id}-{index}'")
    status: str


class BatchFailureResponse(BaseModel):
    key: str
    kind: str
    error: str


class BatchUpdateResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    status: str
    message: str
    succeeded_keys: list[str]
    failures: list[BatchFailureResponse]
    duration_seconds: float

    @classmethod
    def from_result(cls, result: BatchUpdateResult) -> "BatchUpdateResponse":
        return cls(
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            status=result.status.value,
            message=result.summary,
            succeeded_keys=[s.key for s in result.successes],
            failures=[
                BatchFailureResponse(key=f.key, kind=f.kind, error=f.error)
                for f in result.failures
            ],
            duration_seconds=result.duration_seconds,
        )


class MaterialCreateRequest(BaseModel):
    name: str
    quantity: float = Field(..., allow_inf_nan=False)
    unit: str
    status: str = "pending"
    estimated_arrival: str | None = None
    notes: str | None = None


class MaterialUpdateRequest(BaseModel):
    name: str | None = None
    quantity: float | None = Field(None, allow_inf_nan=False)
    unit: str | None = None
    estimated_arrival: str | None = None
    notes: str | None = None
