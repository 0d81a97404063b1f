"""Allocation adjustment — commands and handler for direct ledger writes.

Dispatch these through ``ledger.allocation.store`` so the product lock is
held across the unit of work.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from ledger.allocation.ledger import ProductLedger
from ledger.allocation.store import find_ledger, snapshot_of
from ledger.domain import ledger
from ledger.product.product import Product
from ledger.warehouse.warehouse import Warehouse


@ledger.command(part_of="ProductLedger")
class AdjustAllocation:
    """Add quantity and safety-stock deltas to a product's allocation at a warehouse."""

    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    quantity_delta = Integer(default=0)  # Can be negative
    safety_stock_delta = Integer(default=0)  # Can be negative
    clamp = Boolean(default=True)
    reason = String(max_length=255)


@ledger.command(part_of="ProductLedger")
class ConfigureAllocation:
    """Set reorder point and/or max stock for an existing allocation."""

    product_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    reorder_point = Integer()
    max_stock = Integer()


@ledger.command_handler(part_of=ProductLedger)
class AllocationAdjustmentHandler:
    @handle(AdjustAllocation)
    def adjust_allocation(self, command):
        # Raise ObjectNotFoundError for unknown references
        current_domain.repository_for(Product).get(command.product_id)
        current_domain.repository_for(Warehouse).get(command.warehouse_id)

        product_ledger = find_ledger(command.product_id) or ProductLedger.open(command.product_id)
        product_ledger.adjust(
            warehouse_id=command.warehouse_id,
            quantity_delta=command.quantity_delta or 0,
            safety_stock_delta=command.safety_stock_delta or 0,
            clamp=command.clamp is not False,
            reason=command.reason,
        )
        current_domain.repository_for(ProductLedger).add(product_ledger)
        return snapshot_of(product_ledger, command.warehouse_id)

    @handle(ConfigureAllocation)
    def configure_allocation(self, command):
        product_ledger = find_ledger(command.product_id)
        if product_ledger is None:
            raise ValidationError({"product_id": ["No allocation exists for this product"]})

        product_ledger.configure(
            warehouse_id=command.warehouse_id,
            reorder_point=command.reorder_point,
            max_stock=command.max_stock,
        )
        current_domain.repository_for(ProductLedger).add(product_ledger)
        return snapshot_of(product_ledger, command.warehouse_id)
