"""Low stock report — allocation records at or below their reorder point."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from ledger.allocation.events import (
    AllocationAdjusted,
    AllocationThresholdsConfigured,
    LowStockDetected,
    StockTransferred,
)
from ledger.allocation.ledger import ProductLedger
from ledger.domain import ledger


def report_key(product_id, warehouse_id):
    return f"{product_id}:{warehouse_id}"


@ledger.projection
class LowStockReport:
    report_id = Identifier(identifier=True, required=True)  # "<product_id>:<warehouse_id>"
    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    allocated_quantity = Integer(default=0)
    available = Integer(default=0)
    reorder_point = Integer(default=20)
    is_critical = Boolean(default=False)  # allocated == 0
    detected_at = DateTime()


def _existing(product_id, warehouse_id):
    try:
        return current_domain.repository_for(LowStockReport).get(report_key(product_id, warehouse_id))
    except ObjectNotFoundError:
        return None


def _refresh(report, allocated_quantity, reorder_point):
    """Drop the entry once stock is back above the reorder point, else update it."""
    repo = current_domain.repository_for(LowStockReport)
    if allocated_quantity > reorder_point:
        repo._dao.delete(report)
        return
    report.allocated_quantity = allocated_quantity
    report.reorder_point = reorder_point
    report.is_critical = allocated_quantity == 0
    repo.add(report)


@ledger.projector(projector_for=LowStockReport, aggregates=[ProductLedger])
class LowStockReportProjector:
    @on(LowStockDetected)
    def on_low_stock_detected(self, event):
        repo = current_domain.repository_for(LowStockReport)
        report = _existing(event.product_id, event.warehouse_id)
        if report is None:
            report = LowStockReport(
                report_id=report_key(event.product_id, event.warehouse_id),
                product_id=event.product_id,
                warehouse_id=event.warehouse_id,
            )
        report.allocated_quantity = event.allocated_quantity
        report.available = event.available
        report.reorder_point = event.reorder_point
        report.is_critical = event.allocated_quantity == 0
        report.detected_at = event.detected_at
        repo.add(report)

    @on(AllocationAdjusted)
    def on_allocation_adjusted(self, event):
        """Remove from the report if restocked above threshold."""
        if event.new_quantity <= event.previous_quantity:
            return  # Decrements are reported through LowStockDetected
        report = _existing(event.product_id, event.warehouse_id)
        if report is None:
            return
        report.available = max(0, event.new_quantity - event.new_safety_stock)
        _refresh(report, event.new_quantity, event.reorder_point)

    @on(StockTransferred)
    def on_stock_transferred(self, event):
        """The receiving warehouse may have climbed out of low stock."""
        report = _existing(event.product_id, event.to_warehouse_id)
        if report is None:
            return
        report.available = max(0, report.available + event.quantity)
        _refresh(report, event.destination_new_quantity, event.destination_reorder_point)

    @on(AllocationThresholdsConfigured)
    def on_thresholds_configured(self, event):
        report = _existing(event.product_id, event.warehouse_id)
        if report is None:
            return
        _refresh(report, report.allocated_quantity, event.reorder_point)
