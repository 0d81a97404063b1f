"""Domain events for the StockTransfer aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ledger.domain import ledger


@ledger.event(part_of="StockTransfer")
class TransferRequested:
    """A transfer between two warehouses was recorded."""

    __version__ = 1

    transfer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    quantity = Integer(required=True)
    priority = String(required=True)
    reason = String(required=True)
    notes = Text()
    scheduled_date = DateTime()
    requested_by = String()
    requested_at = DateTime(required=True)


@ledger.event(part_of="StockTransfer")
class TransferCompleted:
    """The ledger applied the transfer."""

    __version__ = 1

    transfer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    quantity = Integer(required=True)
    completed_at = DateTime(required=True)


@ledger.event(part_of="StockTransfer")
class TransferFailed:
    """The transfer could not be applied and will not be retried."""

    __version__ = 1

    transfer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    failure_reason = String(required=True)
    failed_at = DateTime(required=True)
