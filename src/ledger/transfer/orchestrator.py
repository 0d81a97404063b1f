"""Transfer orchestration — validation, the CreateTransfer command and its handler.

``create_transfer`` is the entry point callers use. It validates the request
against current state and reports every problem at once; if the request is
clean it dispatches ``CreateTransfer`` while holding the product's allocation
lock. The ledger re-checks availability when it applies the move, so stock
that disappeared between validation and commit yields a conflict result and
a Failed transfer record, never an overdraw.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ledger.allocation import store
from ledger.allocation.ledger import ProductLedger
from ledger.allocation.store import AllocationSnapshot, allocation_lock, find_ledger, snapshot_of
from ledger.domain import ledger
from ledger.errors import ErrorKind, LedgerError, dominant_kind, errors_from_messages
from ledger.product.product import Product
from ledger.transfer.transfer import (
    StockTransfer,
    TransferPriority,
    TransferReason,
    TransferStatus,
)
from ledger.warehouse.warehouse import Warehouse, WarehouseStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a transfer request, successful or not."""

    success: bool
    transfer_id: str | None = None
    status: str | None = None
    message: str = ""
    errors: tuple[LedgerError, ...] = ()
    source: AllocationSnapshot | None = None
    destination: AllocationSnapshot | None = None

    @classmethod
    def rejected(cls, errors, transfer_id=None, status=None):
        return cls(
            success=False,
            transfer_id=transfer_id,
            status=status,
            message="; ".join(error.message for error in errors),
            errors=tuple(errors),
        )

    def error_kind(self):
        return dominant_kind(self.errors)

    def to_dict(self):
        kind = self.error_kind()
        return {
            "success": self.success,
            "transfer_id": self.transfer_id,
            "status": self.status,
            "message": self.message,
            "error": kind.value if kind else None,
            "errors": [error.to_dict() for error in self.errors],
            "source": self.source.to_dict() if self.source else None,
            "destination": self.destination.to_dict() if self.destination else None,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _lookup(aggregate_cls, identifier):
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError:
        return None


def _is_positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_transfer(
    from_warehouse_id,
    to_warehouse_id,
    product_id,
    quantity,
    priority=None,
    reason=None,
):
    """Check a transfer request against current state.

    Returns the full list of LedgerErrors; an empty list means the request
    may be applied.
    """
    errors = []

    if not from_warehouse_id:
        errors.append(LedgerError.validation("from_warehouse_id", "Source warehouse is required"))
    if not to_warehouse_id:
        errors.append(LedgerError.validation("to_warehouse_id", "Destination warehouse is required"))
    if not product_id:
        errors.append(LedgerError.validation("product_id", "Product is required"))
    if not _is_positive_int(quantity):
        errors.append(LedgerError.validation("quantity", "Quantity must be a positive integer", product_id))
    if from_warehouse_id and to_warehouse_id and str(from_warehouse_id) == str(to_warehouse_id):
        errors.append(
            LedgerError.validation("to_warehouse_id", "Source and destination warehouses must be different")
        )
    if priority is not None and priority not in {p.value for p in TransferPriority}:
        errors.append(LedgerError.validation("priority", f"Unknown priority: {priority}"))
    if reason is not None and reason not in {r.value for r in TransferReason}:
        errors.append(LedgerError.validation("reason", f"Unknown reason: {reason}"))

    product = _lookup(Product, product_id) if product_id else None
    if product_id and product is None:
        errors.append(LedgerError.not_found("product_id", f"Product {product_id} not found", product_id))

    source = _lookup(Warehouse, from_warehouse_id) if from_warehouse_id else None
    if from_warehouse_id and source is None:
        errors.append(LedgerError.not_found("from_warehouse_id", f"Warehouse {from_warehouse_id} not found"))

    destination = _lookup(Warehouse, to_warehouse_id) if to_warehouse_id else None
    if to_warehouse_id and destination is None:
        errors.append(LedgerError.not_found("to_warehouse_id", f"Warehouse {to_warehouse_id} not found"))
    elif destination is not None and destination.status != WarehouseStatus.ACTIVE.value:
        errors.append(LedgerError.validation("to_warehouse_id", f"Destination warehouse {destination.name} is inactive"))

    if (
        product is not None
        and source is not None
        and _is_positive_int(quantity)
        and str(from_warehouse_id) != str(to_warehouse_id)
    ):
        available = store.available(product_id, from_warehouse_id)
        if quantity > available:
            errors.append(
                LedgerError.validation(
                    "quantity",
                    f"Insufficient available stock: {available} available, {quantity} requested",
                    product_id,
                )
            )

    return errors


# ---------------------------------------------------------------------------
# Applying a transfer to the ledger
# ---------------------------------------------------------------------------
def apply_transfer(transfer):
    """Move stock for a Pending transfer inside the current unit of work.

    Must run while the product's allocation lock is held. A transfer the
    ledger refuses is recorded as Failed and reported as a conflict.
    """
    transfer_repo = current_domain.repository_for(StockTransfer)
    product_ledger = find_ledger(transfer.product_id)

    try:
        if product_ledger is None:
            raise ValidationError(
                {"quantity": [f"Insufficient available stock: 0 available, {transfer.quantity} requested"]}
            )
        product_ledger.transfer(
            transfer_id=transfer.id,
            from_warehouse_id=transfer.from_warehouse_id,
            to_warehouse_id=transfer.to_warehouse_id,
            quantity=transfer.quantity,
        )
    except ValidationError as exc:
        errors = errors_from_messages(exc.messages, kind=ErrorKind.CONFLICT, product_id=str(transfer.product_id))
        result = TransferResult.rejected(errors, transfer_id=str(transfer.id), status=TransferStatus.FAILED.value)
        transfer.fail(result.message)
        transfer_repo.add(transfer)
        logger.warning(
            "Transfer failed at apply time",
            transfer_id=str(transfer.id),
            product_id=str(transfer.product_id),
            quantity=transfer.quantity,
            reason=result.message,
        )
        return result

    transfer.complete()
    current_domain.repository_for(ProductLedger).add(product_ledger)
    transfer_repo.add(transfer)

    logger.info(
        "Transfer completed",
        transfer_id=str(transfer.id),
        product_id=str(transfer.product_id),
        from_warehouse_id=str(transfer.from_warehouse_id),
        to_warehouse_id=str(transfer.to_warehouse_id),
        quantity=transfer.quantity,
    )
    return TransferResult(
        success=True,
        transfer_id=str(transfer.id),
        status=TransferStatus.COMPLETED.value,
        message=f"Transferred {transfer.quantity} units",
        source=snapshot_of(product_ledger, transfer.from_warehouse_id),
        destination=snapshot_of(product_ledger, transfer.to_warehouse_id),
    )


# ---------------------------------------------------------------------------
# Command + handler
# ---------------------------------------------------------------------------
@ledger.command(part_of="StockTransfer")
class CreateTransfer:
    """Record a transfer and apply it unless it is scheduled for later."""

    product_id = Identifier(required=True)
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    quantity = Integer(required=True)
    priority = String(default=TransferPriority.NORMAL.value)
    reason = String(default=TransferReason.OTHER.value)
    notes = Text()
    scheduled_date = DateTime()
    requested_by = String(max_length=255)


@ledger.command_handler(part_of=StockTransfer)
class TransferHandler:
    @handle(CreateTransfer)
    def create_transfer(self, command):
        transfer = StockTransfer.request(
            product_id=command.product_id,
            from_warehouse_id=command.from_warehouse_id,
            to_warehouse_id=command.to_warehouse_id,
            quantity=command.quantity,
            priority=command.priority,
            reason=command.reason,
            notes=command.notes,
            scheduled_date=command.scheduled_date,
            requested_by=command.requested_by,
        )

        if not transfer.is_due():
            current_domain.repository_for(StockTransfer).add(transfer)
            logger.info(
                "Transfer scheduled",
                transfer_id=str(transfer.id),
                product_id=str(transfer.product_id),
                scheduled_date=transfer.scheduled_date.isoformat(),
            )
            return TransferResult(
                success=True,
                transfer_id=str(transfer.id),
                status=TransferStatus.PENDING.value,
                message=f"Transfer scheduled for {transfer.scheduled_date.isoformat()}",
            )

        return apply_transfer(transfer)


# ---------------------------------------------------------------------------
# Service entry point
# ---------------------------------------------------------------------------
def create_transfer(
    from_warehouse_id,
    to_warehouse_id,
    product_id,
    quantity,
    notes=None,
    priority=TransferPriority.NORMAL.value,
    reason=TransferReason.OTHER.value,
    scheduled_date=None,
    requested_by=None,
):
    """Validate and, if clean, apply a warehouse-to-warehouse transfer.

    Never raises for client-fixable problems: they come back in
    ``TransferResult.errors``.
    """
    errors = validate_transfer(
        from_warehouse_id,
        to_warehouse_id,
        product_id,
        quantity,
        priority=priority,
        reason=reason,
    )
    if errors:
        logger.info(
            "Transfer rejected",
            product_id=str(product_id) if product_id else None,
            from_warehouse_id=str(from_warehouse_id) if from_warehouse_id else None,
            to_warehouse_id=str(to_warehouse_id) if to_warehouse_id else None,
            error_count=len(errors),
        )
        return TransferResult.rejected(errors)

    with allocation_lock(product_id):
        return current_domain.process(
            CreateTransfer(
                product_id=product_id,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                quantity=quantity,
                priority=priority,
                reason=reason,
                notes=notes,
                scheduled_date=scheduled_date,
                requested_by=requested_by,
            ),
            asynchronous=False,
        )
