"""ProductLedger aggregate (Event Sourced) — the core of the ledger domain.

One ProductLedger exists per product and holds an AllocationRecord per
warehouse the product has ever been assigned to. Keeping every warehouse of
a product inside one aggregate makes the product the consistency boundary:
a transfer is a single event touching two records, so stock is conserved
across warehouses by construction.

Allocation Model (per warehouse):
    allocated_quantity: Units physically assigned to the warehouse
    safety_stock:       Reserved buffer, never offered for transfer
    available:          max(0, allocated_quantity - safety_stock)
    reorder_point:      At or below this the record is Low_Stock
    max_stock:          At or above 90% of this the record is Overstock

Records are created lazily and never removed, only zeroed.
"""

from datetime import UTC, datetime
from uuid import uuid4

from protean import apply
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from ledger.allocation.events import (
    AllocationAdjusted,
    AllocationThresholdsConfigured,
    LedgerOpened,
    LowStockDetected,
    StockTransferred,
)
from ledger.allocation.status import (
    DEFAULT_MAX_STOCK,
    DEFAULT_REORDER_POINT,
    StockStatus,
    classify,
)
from ledger.domain import ledger


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ledger.entity(part_of="ProductLedger")
class AllocationRecord:
    """Stock of the ledger's product assigned to one warehouse."""

    warehouse_id = Identifier(required=True)
    allocated_quantity = Integer(default=0)
    safety_stock = Integer(default=0)
    reorder_point = Integer(default=DEFAULT_REORDER_POINT)
    max_stock = Integer(default=DEFAULT_MAX_STOCK)
    last_updated = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@ledger.aggregate(is_event_sourced=True)
class ProductLedger:
    """Event-sourced aggregate tracking one product's allocation across warehouses."""

    product_id = Identifier(required=True)
    allocations = HasMany(AllocationRecord)
    opened_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, product_id):
        """Open an empty ledger for a product.

        Uses _create_new() to get a blank aggregate with auto-generated
        identity. State is established by the LedgerOpened @apply handler.
        """
        product_ledger = cls._create_new()
        product_ledger.raise_(
            LedgerOpened(
                ledger_id=str(product_ledger.id),
                product_id=str(product_id),
                opened_at=datetime.now(UTC),
            )
        )
        return product_ledger

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def record_for(self, warehouse_id):
        """Return the allocation record for a warehouse, or None."""
        return next(
            (a for a in (self.allocations or []) if str(a.warehouse_id) == str(warehouse_id)),
            None,
        )

    def available_at(self, warehouse_id):
        record = self.record_for(warehouse_id)
        return classify(record).available if record else 0

    def total_allocated(self):
        return sum(a.allocated_quantity or 0 for a in (self.allocations or []))

    def _check_low_stock(self, warehouse_id):
        """Raise LowStockDetected if the record is at or below its reorder point."""
        record = self.record_for(warehouse_id)
        if record is None:
            return
        classification = classify(record)
        if classification.status in (StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK):
            self.raise_(
                LowStockDetected(
                    ledger_id=str(self.id),
                    product_id=str(self.product_id),
                    warehouse_id=str(warehouse_id),
                    allocated_quantity=record.allocated_quantity,
                    available=classification.available,
                    reorder_point=record.reorder_point,
                    status=classification.status.value,
                    detected_at=datetime.now(UTC),
                )
            )

    # -------------------------------------------------------------------
    # Allocation changes
    # -------------------------------------------------------------------
    def adjust(self, warehouse_id, quantity_delta=0, safety_stock_delta=0, clamp=True, reason=None):
        """Apply quantity and safety-stock deltas to one warehouse.

        Results are clamped at zero. With ``clamp=False`` a delta that would
        drive either value negative is rejected and nothing changes.
        """
        quantity_delta = quantity_delta or 0
        safety_stock_delta = safety_stock_delta or 0

        record = self.record_for(warehouse_id)
        prev_quantity = record.allocated_quantity if record else 0
        prev_safety = record.safety_stock if record else 0
        raw_quantity = prev_quantity + quantity_delta
        raw_safety = prev_safety + safety_stock_delta

        if not clamp:
            errors = {}
            if raw_quantity < 0:
                errors["quantity_delta"] = [f"Adjustment would result in negative allocation: {raw_quantity}"]
            if raw_safety < 0:
                errors["safety_stock_delta"] = [f"Adjustment would result in negative safety stock: {raw_safety}"]
            if errors:
                raise ValidationError(errors)

        new_quantity = max(0, raw_quantity)

        self.raise_(
            AllocationAdjusted(
                ledger_id=str(self.id),
                product_id=str(self.product_id),
                warehouse_id=str(warehouse_id),
                record_id=str(record.id) if record else str(uuid4()),
                record_created=record is None,
                quantity_delta=quantity_delta,
                safety_stock_delta=safety_stock_delta,
                previous_quantity=prev_quantity,
                new_quantity=new_quantity,
                previous_safety_stock=prev_safety,
                new_safety_stock=max(0, raw_safety),
                reorder_point=record.reorder_point if record else DEFAULT_REORDER_POINT,
                reason=reason,
                adjusted_at=datetime.now(UTC),
            )
        )
        if new_quantity < prev_quantity:
            self._check_low_stock(warehouse_id)

    def configure(self, warehouse_id, reorder_point=None, max_stock=None):
        """Set reorder point and/or max stock on an existing record."""
        record = self.record_for(warehouse_id)
        if record is None:
            raise ValidationError({"warehouse_id": ["No allocation exists for this product at the warehouse"]})

        errors = {}
        if reorder_point is not None and reorder_point < 0:
            errors["reorder_point"] = ["Reorder point cannot be negative"]
        if max_stock is not None and max_stock < 0:
            errors["max_stock"] = ["Max stock cannot be negative"]
        if errors:
            raise ValidationError(errors)

        self.raise_(
            AllocationThresholdsConfigured(
                ledger_id=str(self.id),
                product_id=str(self.product_id),
                warehouse_id=str(warehouse_id),
                reorder_point=record.reorder_point if reorder_point is None else reorder_point,
                max_stock=record.max_stock if max_stock is None else max_stock,
                configured_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Transfers
    # -------------------------------------------------------------------
    def transfer(self, transfer_id, from_warehouse_id, to_warehouse_id, quantity):
        """Move available stock from one warehouse to another.

        Availability is checked against the ledger's current state, so a
        stale earlier validation can never overdraw the source.
        """
        errors = {}
        if str(from_warehouse_id) == str(to_warehouse_id):
            errors["to_warehouse_id"] = ["Source and destination warehouses must be different"]
        if quantity is None or quantity <= 0:
            errors["quantity"] = ["Quantity must be positive"]
        else:
            available = self.available_at(from_warehouse_id)
            if quantity > available:
                errors["quantity"] = [f"Insufficient available stock: {available} available, {quantity} requested"]
        if errors:
            raise ValidationError(errors)

        source = self.record_for(from_warehouse_id)
        destination = self.record_for(to_warehouse_id)
        dest_previous = destination.allocated_quantity if destination else 0

        self.raise_(
            StockTransferred(
                ledger_id=str(self.id),
                product_id=str(self.product_id),
                transfer_id=str(transfer_id),
                from_warehouse_id=str(from_warehouse_id),
                to_warehouse_id=str(to_warehouse_id),
                destination_record_id=str(destination.id) if destination else str(uuid4()),
                destination_created=destination is None,
                quantity=quantity,
                source_previous_quantity=source.allocated_quantity,
                source_new_quantity=source.allocated_quantity - quantity,
                destination_previous_quantity=dest_previous,
                destination_new_quantity=dest_previous + quantity,
                destination_reorder_point=destination.reorder_point if destination else DEFAULT_REORDER_POINT,
                transferred_at=datetime.now(UTC),
            )
        )
        self._check_low_stock(from_warehouse_id)

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_ledger_opened(self, event: LedgerOpened):
        self.id = event.ledger_id
        self.product_id = event.product_id
        self.opened_at = event.opened_at
        self.updated_at = event.opened_at

    @apply
    def _on_allocation_adjusted(self, event: AllocationAdjusted):
        record = self.record_for(event.warehouse_id)
        if record is None:
            self.add_allocations(
                AllocationRecord(
                    id=event.record_id,
                    warehouse_id=event.warehouse_id,
                    allocated_quantity=event.new_quantity,
                    safety_stock=event.new_safety_stock,
                    last_updated=event.adjusted_at,
                )
            )
        else:
            record.allocated_quantity = event.new_quantity
            record.safety_stock = event.new_safety_stock
            record.last_updated = event.adjusted_at
        self.updated_at = event.adjusted_at

    @apply
    def _on_allocation_thresholds_configured(self, event: AllocationThresholdsConfigured):
        record = self.record_for(event.warehouse_id)
        if record:
            record.reorder_point = event.reorder_point
            record.max_stock = event.max_stock
            record.last_updated = event.configured_at
        self.updated_at = event.configured_at

    @apply
    def _on_stock_transferred(self, event: StockTransferred):
        source = self.record_for(event.from_warehouse_id)
        if source:
            source.allocated_quantity = event.source_new_quantity
            source.last_updated = event.transferred_at

        destination = self.record_for(event.to_warehouse_id)
        if destination is None:
            self.add_allocations(
                AllocationRecord(
                    id=event.destination_record_id,
                    warehouse_id=event.to_warehouse_id,
                    allocated_quantity=event.destination_new_quantity,
                    safety_stock=0,
                    last_updated=event.transferred_at,
                )
            )
        else:
            destination.allocated_quantity = event.destination_new_quantity
            destination.last_updated = event.transferred_at
        self.updated_at = event.transferred_at

    @apply
    def _on_low_stock_detected(self, event: LowStockDetected):  # noqa: ARG002
        # Notification-only event: no state change
        pass
