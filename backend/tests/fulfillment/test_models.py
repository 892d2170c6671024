"""Tests for material tracking data models."""

from datetime import datetime, timedelta, timezone

import pytest

from tracking.fulfillment.errors import InvalidStatusError
from tracking.fulfillment.models import (
    EPOCH,
    MaterialRecord,
    MaterialStatus,
    OrderSnapshot,
    OrderStatus,
    parse_timestamp,
)


class TestMaterialStatus:
    """Test MaterialStatus."""

    def test_parse_values(self):
        assert MaterialStatus.parse("shipped") is MaterialStatus.SHIPPED
        assert MaterialStatus.parse(MaterialStatus.DELIVERED) is MaterialStatus.DELIVERED

    @pytest.mark.parametrize("value", ["", "Shipped", "lost", "canceled"])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(InvalidStatusError) as exc_info:
            MaterialStatus.parse(value)
        assert exc_info.value.kind == "invalid_status"

    def test_rank_follows_lifecycle(self):
        ranks = [s.rank for s in MaterialStatus]
        assert ranks == sorted(ranks)
        assert MaterialStatus.PENDING.rank < MaterialStatus.DELIVERED.rank

    def test_labels(self):
        assert MaterialStatus.PENDING.label == "Menunggu"
        assert MaterialStatus.PROCESSING.label == "Sedang Diproses"
        assert MaterialStatus.SHIPPED.label == "Dalam Pengiriman"
        assert MaterialStatus.DELIVERED.label == "Terkirim"


class TestOrderStatus:
    def test_parse(self):
        assert OrderStatus.parse("cancelled") is OrderStatus.CANCELLED

    def test_parse_rejects_material_status(self):
        with pytest.raises(InvalidStatusError):
            OrderStatus.parse("shipped")


class TestParseTimestamp:
    def test_missing_is_epoch(self):
        assert parse_timestamp(None) == EPOCH
        assert parse_timestamp("") == EPOCH

    def test_naive_is_utc(self):
        parsed = parse_timestamp("2026-10-01T08:00:00")
        assert parsed == datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)

    def test_offset_is_normalized(self):
        parsed = parse_timestamp("2026-10-01T15:00:00+07:00")
        assert parsed.utcoffset() == timedelta(0)
        assert parsed.hour == 8


class TestMaterialRecord:
    """Test MaterialRecord document conversion."""

    def test_from_document(self):
        record = MaterialRecord.from_document({
            "name": "Semen",
            "status": "shipped",
            "quantity": 50,
            "unit": "sak",
            "last_updated": "2026-10-01T08:00:00+00:00",
            "estimated_arrival": "",
        })

        assert record.status is MaterialStatus.SHIPPED
        assert record.quantity == 50.0
        assert record.estimated_arrival is None
        assert record.notes is None

    def test_from_document_defaults(self):
        record = MaterialRecord.from_document({"name": "Pasir"})

        assert record.status is MaterialStatus.PENDING
        assert record.last_updated == EPOCH

    def test_to_document_keeps_optional_fields(self):
        record = MaterialRecord(
            name="Cat",
            status=MaterialStatus.PENDING,
            quantity=12,
            unit="galon",
            last_updated=datetime(2026, 10, 1, tzinfo=timezone.utc),
            notes="Warna putih",
        )

        doc = record.to_document()

        assert doc["status"] == "pending"
        assert doc["notes"] == "Warna putih"
        assert doc["estimated_arrival"] is None
        assert MaterialRecord.from_document(doc) == record

    def test_with_status_moves_timestamp(self):
        record = MaterialRecord.from_document({"name": "Besi", "quantity": 1, "unit": "batang"})
        at = datetime(2026, 10, 2, tzinfo=timezone.utc)

        updated = record.with_status(MaterialStatus.SHIPPED, at)

        assert updated.status is MaterialStatus.SHIPPED
        assert updated.last_updated == at
        assert record.status is MaterialStatus.PENDING


class TestOrderSnapshot:
    def test_is_cancelled(self):
        snapshot = OrderSnapshot(
            id="a", house_name="Rumah", customer_name="Budi", status=OrderStatus.CANCELLED
        )
        assert snapshot.is_cancelled

    def test_pending_is_not_cancelled(self):
        snapshot = OrderSnapshot(
            id="a", house_name="Rumah", customer_name="Budi", status=OrderStatus.PENDING
        )
        assert not snapshot.is_cancelled
        assert snapshot.materials == []
