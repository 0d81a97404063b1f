"""Stock movement log — append-only audit trail of allocation changes.

Every transfer produces two entries, one per warehouse, sharing a transfer id.
"""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ledger.allocation.events import AllocationAdjusted, StockTransferred
from ledger.allocation.ledger import ProductLedger
from ledger.domain import ledger


@ledger.projection
class StockMovementLog:
    entry_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    event_type = String(required=True)
    description = String(required=True)
    quantity_change = Integer(default=0)
    previous_level = Integer(default=0)
    new_level = Integer(default=0)
    transfer_id = Identifier()
    occurred_at = DateTime(required=True)


def _add_entry(
    product_id,
    warehouse_id,
    event_type,
    description,
    occurred_at,
    quantity_change=0,
    previous_level=0,
    new_level=0,
    transfer_id=None,
):
    current_domain.repository_for(StockMovementLog).add(
        StockMovementLog(
            entry_id=str(uuid.uuid4()),
            product_id=product_id,
            warehouse_id=warehouse_id,
            event_type=event_type,
            description=description,
            quantity_change=quantity_change,
            previous_level=previous_level,
            new_level=new_level,
            transfer_id=transfer_id,
            occurred_at=occurred_at,
        )
    )


@ledger.projector(projector_for=StockMovementLog, aggregates=[ProductLedger])
class StockMovementLogProjector:
    @on(AllocationAdjusted)
    def on_allocation_adjusted(self, event):
        description = f"Allocation adjusted by {event.new_quantity - event.previous_quantity}"
        if event.new_safety_stock != event.previous_safety_stock:
            description += f", safety stock {event.previous_safety_stock} -> {event.new_safety_stock}"
        if event.reason:
            description += f": {event.reason}"
        _add_entry(
            event.product_id,
            event.warehouse_id,
            "AllocationAdjusted",
            description,
            event.adjusted_at,
            quantity_change=event.new_quantity - event.previous_quantity,
            previous_level=event.previous_quantity,
            new_level=event.new_quantity,
        )

    @on(StockTransferred)
    def on_stock_transferred(self, event):
        _add_entry(
            event.product_id,
            event.from_warehouse_id,
            "TransferOut",
            f"Transferred {event.quantity} units to {event.to_warehouse_id}",
            event.transferred_at,
            quantity_change=-event.quantity,
            previous_level=event.source_previous_quantity,
            new_level=event.source_new_quantity,
            transfer_id=event.transfer_id,
        )
        _add_entry(
            event.product_id,
            event.to_warehouse_id,
            "TransferIn",
            f"Received {event.quantity} units from {event.from_warehouse_id}",
            event.transferred_at,
            quantity_change=event.quantity,
            previous_level=event.destination_previous_quantity,
            new_level=event.destination_new_quantity,
            transfer_id=event.transfer_id,
        )
