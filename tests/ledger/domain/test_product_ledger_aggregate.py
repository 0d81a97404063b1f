"""Tests for the ProductLedger aggregate — allocation changes and transfers."""

import pytest
from ledger.allocation.events import (
    AllocationAdjusted,
    AllocationThresholdsConfigured,
    LedgerOpened,
    LowStockDetected,
    StockTransferred,
)
from ledger.allocation.ledger import ProductLedger
from ledger.allocation.status import DEFAULT_MAX_STOCK, DEFAULT_REORDER_POINT
from protean.exceptions import ValidationError


def _ledger_with(*allocations):
    """Open a ledger and seed (warehouse_id, quantity, safety_stock) tuples."""
    product_ledger = ProductLedger.open("prod-001")
    for warehouse_id, quantity, safety in allocations:
        product_ledger.adjust(warehouse_id, quantity_delta=quantity, safety_stock_delta=safety)
    product_ledger._events.clear()
    return product_ledger


class TestLedgerOpening:
    def test_open_sets_product_id(self):
        product_ledger = ProductLedger.open("prod-001")
        assert str(product_ledger.product_id) == "prod-001"

    def test_open_generates_id(self):
        product_ledger = ProductLedger.open("prod-001")
        assert product_ledger.id is not None

    def test_open_raises_ledger_opened(self):
        product_ledger = ProductLedger.open("prod-001")
        assert len(product_ledger._events) == 1
        event = product_ledger._events[0]
        assert isinstance(event, LedgerOpened)
        assert event.ledger_id == str(product_ledger.id)

    def test_open_starts_with_no_allocations(self):
        product_ledger = ProductLedger.open("prod-001")
        assert not product_ledger.allocations
        assert product_ledger.total_allocated() == 0


class TestAdjust:
    def test_first_adjust_creates_record_with_defaults(self):
        product_ledger = _ledger_with()
        product_ledger.adjust("wh-01", quantity_delta=100, safety_stock_delta=20)

        record = product_ledger.record_for("wh-01")
        assert record.allocated_quantity == 100
        assert record.safety_stock == 20
        assert record.reorder_point == DEFAULT_REORDER_POINT
        assert record.max_stock == DEFAULT_MAX_STOCK
        assert record.last_updated is not None

    def test_negative_delta_on_absent_record_is_clamped(self):
        product_ledger = _ledger_with()
        product_ledger.adjust("wh-01", quantity_delta=-10, safety_stock_delta=-5)

        record = product_ledger.record_for("wh-01")
        assert record.allocated_quantity == 0
        assert record.safety_stock == 0

    def test_deltas_are_added_to_existing_record(self):
        product_ledger = _ledger_with(("wh-01", 100, 20))
        product_ledger.adjust("wh-01", quantity_delta=25, safety_stock_delta=-5)

        record = product_ledger.record_for("wh-01")
        assert record.allocated_quantity == 125
        assert record.safety_stock == 15

    def test_decrement_below_zero_clamps(self):
        product_ledger = _ledger_with(("wh-01", 30, 0))
        product_ledger.adjust("wh-01", quantity_delta=-50)
        assert product_ledger.record_for("wh-01").allocated_quantity == 0

    def test_decrement_below_zero_without_clamp_rejected(self):
        product_ledger = _ledger_with(("wh-01", 30, 10))
        with pytest.raises(ValidationError) as exc:
            product_ledger.adjust("wh-01", quantity_delta=-50, safety_stock_delta=-20, clamp=False)

        assert "quantity_delta" in exc.value.messages
        assert "safety_stock_delta" in exc.value.messages
        assert product_ledger.record_for("wh-01").allocated_quantity == 30
        assert product_ledger._events == []

    def test_safety_above_allocated_is_allowed(self):
        product_ledger = _ledger_with(("wh-01", 10, 0))
        product_ledger.adjust("wh-01", safety_stock_delta=15)
        assert product_ledger.record_for("wh-01").safety_stock == 15
        assert product_ledger.available_at("wh-01") == 0

    def test_adjust_raises_allocation_adjusted(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.adjust("wh-01", quantity_delta=10, reason="Cycle count")

        event = product_ledger._events[0]
        assert isinstance(event, AllocationAdjusted)
        assert event.previous_quantity == 100
        assert event.new_quantity == 110
        assert event.record_created is False
        assert event.reason == "Cycle count"

    def test_decrement_into_low_stock_raises_low_stock_detected(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.adjust("wh-01", quantity_delta=-85)

        assert [type(e) for e in product_ledger._events] == [AllocationAdjusted, LowStockDetected]
        assert product_ledger._events[1].status == "Low_Stock"

    def test_increment_does_not_raise_low_stock(self):
        product_ledger = _ledger_with()
        product_ledger.adjust("wh-01", quantity_delta=5)
        assert all(not isinstance(e, LowStockDetected) for e in product_ledger._events)


class TestConfigure:
    def test_sets_thresholds(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.configure("wh-01", reorder_point=5, max_stock=1000)

        record = product_ledger.record_for("wh-01")
        assert record.reorder_point == 5
        assert record.max_stock == 1000
        assert isinstance(product_ledger._events[0], AllocationThresholdsConfigured)

    def test_partial_update_keeps_other_threshold(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.configure("wh-01", max_stock=800)

        record = product_ledger.record_for("wh-01")
        assert record.reorder_point == DEFAULT_REORDER_POINT
        assert record.max_stock == 800

    def test_zero_reorder_point_is_accepted(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.configure("wh-01", reorder_point=0)
        assert product_ledger.record_for("wh-01").reorder_point == 0

    def test_missing_record_rejected(self):
        product_ledger = _ledger_with()
        with pytest.raises(ValidationError):
            product_ledger.configure("wh-01", reorder_point=5)

    def test_negative_values_rejected(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        with pytest.raises(ValidationError) as exc:
            product_ledger.configure("wh-01", reorder_point=-1, max_stock=-1)
        assert set(exc.value.messages) == {"reorder_point", "max_stock"}


class TestTransfer:
    def test_moves_stock_between_warehouses(self):
        product_ledger = _ledger_with(("wh-01", 100, 20))
        product_ledger.transfer("tr-001", "wh-01", "wh-02", 80)

        assert product_ledger.record_for("wh-01").allocated_quantity == 20
        assert product_ledger.record_for("wh-02").allocated_quantity == 80

    def test_total_is_conserved(self):
        product_ledger = _ledger_with(("wh-01", 100, 20), ("wh-02", 40, 0))
        before = product_ledger.total_allocated()

        product_ledger.transfer("tr-001", "wh-01", "wh-02", 30)
        product_ledger.transfer("tr-002", "wh-02", "wh-01", 50)

        assert product_ledger.total_allocated() == before

    def test_destination_created_with_zero_safety_stock(self):
        product_ledger = _ledger_with(("wh-01", 100, 20))
        product_ledger.transfer("tr-001", "wh-01", "wh-02", 10)

        destination = product_ledger.record_for("wh-02")
        assert destination.safety_stock == 0
        assert destination.reorder_point == DEFAULT_REORDER_POINT

    def test_existing_destination_keeps_safety_stock(self):
        product_ledger = _ledger_with(("wh-01", 100, 0), ("wh-02", 50, 15))
        product_ledger.transfer("tr-001", "wh-01", "wh-02", 10)
        assert product_ledger.record_for("wh-02").safety_stock == 15

    def test_single_event_carries_both_legs(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        product_ledger.transfer("tr-001", "wh-01", "wh-02", 10)

        transferred = [e for e in product_ledger._events if isinstance(e, StockTransferred)]
        assert len(transferred) == 1
        event = transferred[0]
        assert event.source_previous_quantity == 100
        assert event.source_new_quantity == 90
        assert event.destination_previous_quantity == 0
        assert event.destination_new_quantity == 10
        assert event.destination_created is True

    def test_cannot_touch_safety_stock(self):
        product_ledger = _ledger_with(("wh-01", 100, 20))
        with pytest.raises(ValidationError) as exc:
            product_ledger.transfer("tr-001", "wh-01", "wh-02", 81)
        assert exc.value.messages["quantity"] == ["Insufficient available stock: 80 available, 81 requested"]

    def test_self_transfer_rejected(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        with pytest.raises(ValidationError) as exc:
            product_ledger.transfer("tr-001", "wh-01", "wh-01", 1)
        assert "to_warehouse_id" in exc.value.messages

    def test_non_positive_quantity_rejected(self):
        product_ledger = _ledger_with(("wh-01", 100, 0))
        with pytest.raises(ValidationError):
            product_ledger.transfer("tr-001", "wh-01", "wh-02", 0)

    def test_absent_source_has_nothing_available(self):
        product_ledger = _ledger_with(("wh-02", 100, 0))
        with pytest.raises(ValidationError):
            product_ledger.transfer("tr-001", "wh-01", "wh-02", 1)

    def test_failed_transfer_changes_nothing(self):
        product_ledger = _ledger_with(("wh-01", 10, 0))
        with pytest.raises(ValidationError):
            product_ledger.transfer("tr-001", "wh-01", "wh-02", 11)

        assert product_ledger.record_for("wh-01").allocated_quantity == 10
        assert product_ledger.record_for("wh-02") is None
        assert product_ledger._events == []

    def test_draining_source_below_reorder_point_raises_low_stock(self):
        product_ledger = _ledger_with(("wh-01", 100, 20))
        product_ledger.transfer("tr-001", "wh-01", "wh-02", 80)

        low = [e for e in product_ledger._events if isinstance(e, LowStockDetected)]
        assert len(low) == 1
        assert low[0].warehouse_id == "wh-01"
        assert low[0].allocated_quantity == 20
