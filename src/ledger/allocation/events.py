"""Domain events for the ProductLedger aggregate.

All events are versioned, immutable facts about allocation changes.
Events are persisted to the event store and used for:
- Rebuilding ledger state via @apply (event sourcing)
- Updating projections (directory, movement log, low-stock report)

A transfer is a single StockTransferred event carrying both legs, so the
source decrement and destination increment can never be observed apart.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ledger.domain import ledger


@ledger.event(part_of="ProductLedger")
class LedgerOpened:
    """A product received its first allocation and now has a ledger."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    product_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@ledger.event(part_of="ProductLedger")
class AllocationAdjusted:
    """Allocated quantity and/or safety stock changed at one warehouse."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    record_id = Identifier(required=True)
    record_created = Boolean(default=False)
    quantity_delta = Integer(default=0)  # Requested, before clamping
    safety_stock_delta = Integer(default=0)
    previous_quantity = Integer(default=0)
    new_quantity = Integer(default=0)
    previous_safety_stock = Integer(default=0)
    new_safety_stock = Integer(default=0)
    reorder_point = Integer(default=0)
    reason = String(max_length=255)
    adjusted_at = DateTime(required=True)


@ledger.event(part_of="ProductLedger")
class AllocationThresholdsConfigured:
    """Reorder point and/or max stock were set for one warehouse."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    reorder_point = Integer(default=0)
    max_stock = Integer(default=0)
    configured_at = DateTime(required=True)


@ledger.event(part_of="ProductLedger")
class StockTransferred:
    """Stock moved between two warehouses of the same product ledger."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    product_id = Identifier(required=True)
    transfer_id = Identifier(required=True)
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    destination_record_id = Identifier(required=True)
    destination_created = Boolean(default=False)
    quantity = Integer(required=True)
    source_previous_quantity = Integer(default=0)
    source_new_quantity = Integer(default=0)
    destination_previous_quantity = Integer(default=0)
    destination_new_quantity = Integer(default=0)
    destination_reorder_point = Integer(default=0)
    transferred_at = DateTime(required=True)


@ledger.event(part_of="ProductLedger")
class LowStockDetected:
    """Allocation at a warehouse dropped to or below its reorder point."""

    __version__ = 1

    ledger_id = Identifier(required=True)
    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    allocated_quantity = Integer(default=0)
    available = Integer(default=0)
    reorder_point = Integer(default=0)
    status = String(required=True)
    detected_at = DateTime(required=True)
