"""CSV export of the material tracking view.

Renders the currently filtered and sorted projection as comma-joined rows
for offline handoff. Fields are joined as-is without quoting; free-text
fields are expected not to contain commas.
"""

from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from tracking.core.config import settings
from tracking.services.tracking_projection import OrderMaterialView

EXPORT_HEADER = [
    "House Name",
    "Customer Name",
    "Material Name",
    "Quantity",
    "Unit",
    "Status",
    "Estimated Arrival",
    "Last Updated",
]

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def export_filename(day: date) -> str:
    return f"material_tracking_{day.isoformat()}.csv"


def format_quantity(quantity: float) -> str:
    # 10.0 prints as "10", 2.5 as "2.5"
    if float(quantity).is_integer():
        return str(int(quantity))
    return repr(float(quantity))


def format_local_date(value: datetime, tz: str | None = None) -> str:
    """Short Indonesian date (d/m/yyyy) in the display time zone."""
    local = value.astimezone(ZoneInfo(tz or settings.DISPLAY_TIMEZONE))
    return f"{local.day}/{local.month}/{local.year}"


def export_rows(views: Iterable[OrderMaterialView], tz: str | None = None) -> list[list[str]]:
    """One row per material, repeating the order fields on every row."""
    rows = []
    for view in views:
        for entry in view.entries:
            material = entry.material
            rows.append([
                view.house_name,
                view.customer_name,
                material.name,
                format_quantity(material.quantity),
                material.unit,
                material.status.value,
                material.estimated_arrival or "",
                format_local_date(material.last_updated, tz),
            ])
    return rows


def serialize(views: Iterable[OrderMaterialView], tz: str | None = None) -> str:
    """Render the view as CSV text: header row, then one row per material."""
    lines = [",".join(EXPORT_HEADER)]
    lines.extend(",".join(row) for row in export_rows(views, tz))
    return "".join(f"{line}\n" for line in lines)
