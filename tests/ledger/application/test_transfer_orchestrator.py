"""Application tests for create_transfer — validation, apply and conflict handling.

Covers:
- The 100/20 -> 80 scenario followed by a rejected 1-unit transfer
- Conservation of total stock across warehouses
- Every violated rule reported at once
- Stale validation surfaces as a conflict and a Failed transfer record
- Concurrent submissions for one product never overdraw the source
- Future-dated transfers are stored Pending without touching the ledger
"""

import threading
from datetime import UTC, datetime, timedelta

import pytest
from ledger.allocation import store
from ledger.domain import ledger as ledger_domain
from ledger.errors import ErrorKind
from ledger.product.registration import RegisterProduct
from ledger.transfer.orchestrator import CreateTransfer, create_transfer, validate_transfer
from ledger.transfer.transfer import StockTransfer, TransferStatus
from ledger.warehouse.management import CreateWarehouse, DeactivateWarehouse
from protean import current_domain


def _warehouse(warehouse_id, capacity=1000):
    return current_domain.process(
        CreateWarehouse(warehouse_id=warehouse_id, name=warehouse_id.upper(), region="North", capacity=capacity),
        asynchronous=False,
    )


def _product(product_id="prod-001", sku="SKU-001", unit_price=10.0):
    return current_domain.process(
        RegisterProduct(
            product_id=product_id,
            business_id="biz-001",
            name=f"Product {product_id}",
            sku=sku,
            unit_price=unit_price,
        ),
        asynchronous=False,
    )


@pytest.fixture(autouse=True)
def _reference_data():
    _warehouse("wh-01")
    _warehouse("wh-02")
    _warehouse("wh-03")
    _product("prod-001")
    store.upsert_delta("prod-001", "wh-01", quantity_delta=100, safety_stock_delta=20)


def _fields(result):
    return {error.field for error in result.errors}


class TestScenario:
    def test_move_all_available_then_reject_one_more(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", 80)

        assert result.success
        assert result.status == TransferStatus.COMPLETED.value
        assert result.source.allocated_quantity == 20
        assert result.source.available == 0
        assert result.source.status == "Low_Stock"
        assert result.destination.allocated_quantity == 80
        assert result.destination.safety_stock == 0

        second = create_transfer("wh-01", "wh-02", "prod-001", 1)

        assert not second.success
        assert second.error_kind() == ErrorKind.VALIDATION
        assert second.errors[0].message == "Insufficient available stock: 0 available, 1 requested"
        assert store.get("prod-001", "wh-01").allocated_quantity == 20
        assert store.get("prod-001", "wh-02").allocated_quantity == 80


class TestConservation:
    def test_total_unchanged_after_transfers(self):
        store.upsert_delta("prod-001", "wh-02", quantity_delta=30)
        before = sum(s.allocated_quantity for s in store.records(product_id="prod-001"))

        create_transfer("wh-01", "wh-02", "prod-001", 25)
        create_transfer("wh-02", "wh-03", "prod-001", 40)
        create_transfer("wh-03", "wh-01", "prod-001", 10)

        after = sum(s.allocated_quantity for s in store.records(product_id="prod-001"))
        assert after == before

    def test_transfer_record_persisted_completed(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", 5, notes="Rebalance", requested_by="ops-1")

        transfer = current_domain.repository_for(StockTransfer).get(result.transfer_id)
        assert transfer.status == TransferStatus.COMPLETED.value
        assert transfer.quantity == 5
        assert transfer.notes == "Rebalance"
        assert transfer.requested_by == "ops-1"
        assert transfer.completed_at is not None


class TestValidation:
    def test_self_transfer_rejected_regardless_of_quantity(self):
        for quantity in (1, 80, 10_000):
            result = create_transfer("wh-01", "wh-01", "prod-001", quantity)
            assert not result.success
            assert "to_warehouse_id" in _fields(result)

    def test_collects_every_problem(self):
        result = create_transfer(None, None, None, 0)

        assert not result.success
        assert _fields(result) >= {"from_warehouse_id", "to_warehouse_id", "product_id", "quantity"}

    def test_bool_quantity_rejected(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", True)
        assert "quantity" in _fields(result)

    def test_non_integer_quantity_rejected(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", 2.5)
        assert "quantity" in _fields(result)

    def test_over_available_is_validation_error(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", 81)
        assert result.error_kind() == ErrorKind.VALIDATION
        assert store.get("prod-001", "wh-01").allocated_quantity == 100

    def test_unknown_references_are_not_found(self):
        result = create_transfer("wh-01", "wh-99", "prod-999", 5)

        assert result.error_kind() == ErrorKind.NOT_FOUND
        not_found = {e.field for e in result.errors if e.kind == ErrorKind.NOT_FOUND}
        assert not_found == {"to_warehouse_id", "product_id"}

    def test_inactive_destination_rejected(self):
        current_domain.process(DeactivateWarehouse(warehouse_id="wh-02"), asynchronous=False)
        result = create_transfer("wh-01", "wh-02", "prod-001", 5)

        assert not result.success
        assert "to_warehouse_id" in _fields(result)

    def test_unknown_priority_rejected(self):
        result = create_transfer("wh-01", "wh-02", "prod-001", 5, priority="Whenever")
        assert "priority" in _fields(result)

    def test_rejection_persists_nothing(self):
        create_transfer("wh-01", "wh-01", "prod-001", 5)
        assert current_domain.repository_for(StockTransfer)._dao.query.all().items == []

    def test_validate_transfer_clean_request(self):
        assert validate_transfer("wh-01", "wh-02", "prod-001", 80) == []


class TestConflict:
    def test_stale_validation_becomes_conflict(self):
        # Both requests pass validation against the same snapshot...
        assert validate_transfer("wh-01", "wh-02", "prod-001", 60) == []
        assert validate_transfer("wh-01", "wh-03", "prod-001", 60) == []

        # ...then are applied one after the other
        first = current_domain.process(
            CreateTransfer(product_id="prod-001", from_warehouse_id="wh-01", to_warehouse_id="wh-02", quantity=60),
            asynchronous=False,
        )
        second = current_domain.process(
            CreateTransfer(product_id="prod-001", from_warehouse_id="wh-01", to_warehouse_id="wh-03", quantity=60),
            asynchronous=False,
        )

        assert first.success
        assert not second.success
        assert second.error_kind() == ErrorKind.CONFLICT
        assert second.status == TransferStatus.FAILED.value

        # No overdraw: only the first move was applied
        assert store.get("prod-001", "wh-01").allocated_quantity == 40
        assert store.get("prod-001", "wh-03") is None

        failed = current_domain.repository_for(StockTransfer).get(second.transfer_id)
        assert failed.status == TransferStatus.FAILED.value
        assert "Insufficient available stock" in failed.failure_reason


    def test_concurrent_requests_never_overdraw(self):
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        failures = []

        def _submit(destination):
            try:
                with ledger_domain.domain_context():
                    barrier.wait()
                    results.append(create_transfer("wh-01", destination, "prod-001", 30))
            except Exception as exc:  # noqa: BLE001
                failures.append(exc)

        threads = [
            threading.Thread(target=_submit, args=("wh-02" if i % 2 else "wh-03",)) for i in range(workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert failures == []
        assert len(results) == workers
        # 80 available: exactly two 30-unit moves fit
        assert sum(1 for result in results if result.success) == 2
        assert store.get("prod-001", "wh-01").allocated_quantity == 40
        assert store.find_ledger("prod-001").total_allocated() == 100

class TestScheduledRequest:
    def test_future_transfer_is_pending_and_ledger_untouched(self):
        result = create_transfer(
            "wh-01",
            "wh-02",
            "prod-001",
            10,
            scheduled_date=datetime.now(UTC) + timedelta(days=2),
        )

        assert result.success
        assert result.status == TransferStatus.PENDING.value
        assert result.source is None
        assert store.get("prod-001", "wh-01").allocated_quantity == 100
        assert store.get("prod-001", "wh-02") is None

    def test_past_scheduled_date_applies_immediately(self):
        result = create_transfer(
            "wh-01",
            "wh-02",
            "prod-001",
            10,
            scheduled_date=datetime.now(UTC) - timedelta(minutes=5),
        )
        assert result.status == TransferStatus.COMPLETED.value


class TestResultPayload:
    def test_to_dict_on_failure(self):
        payload = create_transfer("wh-01", "wh-01", "prod-001", 5).to_dict()
        assert payload["success"] is False
        assert payload["error"] == "validation"
        assert payload["errors"][0]["field"] == "to_warehouse_id"

    def test_to_dict_on_success(self):
        payload = create_transfer("wh-01", "wh-02", "prod-001", 5).to_dict()
        assert payload["success"] is True
        assert payload["source"]["allocated_quantity"] == 95
        assert payload["destination"]["allocated_quantity"] == 5
