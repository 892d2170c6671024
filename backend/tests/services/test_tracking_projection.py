"""Tests for TrackingProjection."""

from datetime import datetime, timedelta, timezone

import pytest

from tracking.fulfillment.models import (
    ChangeKind,
    MaterialChangeEvent,
    MaterialRecord,
    MaterialStatus,
    OrderSnapshot,
    OrderStatus,
)
from tracking.services.tracking_projection import (
    SortKey,
    SortOrder,
    TrackingFilter,
    TrackingProjection,
    TrackingSort,
)

T0 = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)


def material(name, status, minutes):
    return MaterialRecord(
        name=name,
        status=MaterialStatus(status),
        quantity=1,
        unit="pcs",
        last_updated=T0 + timedelta(minutes=minutes),
    )


def order(order_id, house, customer, *materials, status=OrderStatus.PENDING):
    return OrderSnapshot(
        id=order_id,
        house_name=house,
        customer_name=customer,
        status=status,
        materials=list(materials),
    )


@pytest.fixture
def projection():
    return TrackingProjection([
        order(
            "A", "Rumah Minimalis", "Andi",
            material("Besi", "pending", 10),
            material("Semen", "shipped", 20),
        ),
        order("B", "Rumah Modern", "Siti", material("Cat", "delivered", 5)),
    ])


class TestAggregate:
    """Test per-status counters."""

    def test_scenario_counts(self, projection):
        stats = projection.aggregate()

        assert stats.as_dict() == {
            "total": 3,
            "pending": 1,
            "processing": 0,
            "shipped": 1,
            "delivered": 1,
        }

    def test_empty_projection(self):
        stats = TrackingProjection([]).aggregate()

        assert stats.total == 0
        assert stats.pending == stats.processing == stats.shipped == stats.delivered == 0

    def test_counts_sum_to_total(self, projection):
        stats = projection.aggregate()

        assert stats.pending + stats.processing + stats.shipped + stats.delivered == stats.total

    def test_cancelled_orders_not_counted(self):
        projection = TrackingProjection([
            order("A", "Rumah", "Andi", material("Besi", "pending", 0)),
            order("C", "Rumah", "Joko", material("Bata", "pending", 0), status=OrderStatus.CANCELLED),
        ])

        assert projection.aggregate().total == 1
        assert [o.id for o in projection.orders] == ["A"]


class TestFilter:
    """Test search and status filters."""

    def test_status_filter_keeps_whole_order(self, projection):
        views = projection.list(TrackingFilter(status=MaterialStatus.SHIPPED))

        assert [v.order_id for v in views] == ["A"]
        assert {e.material.name for e in views[0].entries} == {"Besi", "Semen"}

    def test_status_filter_no_match(self, projection):
        assert projection.list(TrackingFilter(status=MaterialStatus.PROCESSING)) == []

    def test_search_matches_house_name_case_insensitive(self, projection):
        views = projection.list(TrackingFilter(search_text="MODERN"))

        assert [v.order_id for v in views] == ["B"]

    def test_search_matches_customer_name(self, projection):
        views = projection.list(TrackingFilter(search_text="and"))

        assert [v.order_id for v in views] == ["A"]

    def test_search_does_not_match_material_name(self, projection):
        assert projection.list(TrackingFilter(search_text="semen")) == []

    def test_search_and_status_combined(self, projection):
        views = projection.list(TrackingFilter(search_text="rumah", status=MaterialStatus.DELIVERED))

        assert [v.order_id for v in views] == ["B"]

    def test_empty_search_matches_all(self, projection):
        assert len(projection.list(TrackingFilter(search_text=""))) == 2


class TestSort:
    """Test two-level sorting."""

    def test_default_is_date_descending(self, projection):
        views = projection.list()

        assert [v.order_id for v in views] == ["A", "B"]
        assert [e.material.name for e in views[0].entries] == ["Semen", "Besi"]

    def test_date_ascending_reverses_both_levels(self, projection):
        desc = projection.list(sort=TrackingSort(SortKey.DATE, SortOrder.DESC))
        asc = projection.list(sort=TrackingSort(SortKey.DATE, SortOrder.ASC))

        assert [v.order_id for v in asc] == ["B", "A"]
        assert [e.material.name for e in asc[1].entries] == ["Besi", "Semen"]
        assert [v.order_id for v in asc] == [v.order_id for v in reversed(desc)]

    def test_status_sort_by_rank(self):
        projection = TrackingProjection([
            order(
                "A", "Rumah", "Andi",
                material("Bata", "shipped", 0),
                material("Besi", "pending", 1),
                material("Cat", "delivered", 2),
                material("Pasir", "processing", 3),
            ),
        ])

        desc = projection.list(sort=TrackingSort(SortKey.STATUS, SortOrder.DESC))
        asc = projection.list(sort=TrackingSort(SortKey.STATUS, SortOrder.ASC))

        assert [e.material.status.value for e in desc[0].entries] == [
            "delivered", "shipped", "processing", "pending",
        ]
        assert [e.material.status.value for e in asc[0].entries] == [
            "pending", "processing", "shipped", "delivered",
        ]

    def test_entries_keep_original_index(self, projection):
        views = projection.list()

        assert [e.selection_key for e in views[0].entries] == ["A-1", "A-0"]

    def test_order_without_materials_sorts_last_descending(self):
        projection = TrackingProjection([
            order("E", "Rumah Kosong", "Andi"),
            order("A", "Rumah", "Siti", material("Besi", "pending", 0)),
        ])

        views = projection.list()

        assert [v.order_id for v in views] == ["A", "E"]
        assert views[1].entries == []


class TestApply:
    """Test folding change events into the projection."""

    def _event(self, order_id, materials, order_status=OrderStatus.PENDING):
        return MaterialChangeEvent(
            order_id=order_id,
            kind=ChangeKind.STATUS,
            materials=materials,
            order_status=order_status,
            timestamp=T0,
        )

    def test_apply_replaces_materials(self, projection):
        projection.apply(self._event("A", [
            material("Besi", "delivered", 30),
            material("Semen", "shipped", 20),
        ]))

        stats = projection.aggregate()
        assert stats.pending == 0
        assert stats.delivered == 2

    def test_apply_cancellation_removes_order(self, projection):
        projection.apply(self._event("A", [], order_status=OrderStatus.CANCELLED))

        assert [o.id for o in projection.orders] == ["B"]

    def test_apply_unknown_order_ignored(self, projection):
        projection.apply(self._event("Z", [material("Kayu", "pending", 0)]))

        assert projection.aggregate().total == 3


class TestLoad:
    """Test building the projection from the store."""

    @pytest.mark.asyncio
    async def test_aggregate_after_transition(self, session_factory, transition_engine, scenario_orders):
        order_a, _ = scenario_orders

        async with session_factory() as session:
            before = (await TrackingProjection.load(session)).aggregate()
        await transition_engine.transition(order_a, 0, "delivered")
        async with session_factory() as session:
            after = (await TrackingProjection.load(session)).aggregate()

        assert (before.total, before.pending, before.shipped, before.delivered) == (3, 1, 1, 1)
        assert (after.total, after.pending, after.shipped, after.delivered) == (3, 0, 1, 2)

    @pytest.mark.asyncio
    async def test_load_excludes_cancelled(self, session_factory, transition_engine, scenario_orders):
        _, order_b = scenario_orders
        await transition_engine.set_order_status(order_b, "cancelled")

        async with session_factory() as session:
            projection = await TrackingProjection.load(session)

        assert projection.aggregate().total == 2
        assert order_b not in {o.id for o in projection.orders}

    @pytest.mark.asyncio
    async def test_loaded_projection_follows_events(self, session_factory, emitter, transition_engine, scenario_orders):
        order_a, _ = scenario_orders
        async with session_factory() as session:
            projection = await TrackingProjection.load(session)
        emitter.subscribe(projection.apply)

        await transition_engine.transition(order_a, 1, "delivered")

        assert projection.aggregate().delivered == 2
