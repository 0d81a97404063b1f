"""Scheduled transfer execution — command, handler and the due-transfer sweep.

Future-dated transfers are stored Pending and leave the ledger untouched.
An external scheduler (cron, K8s CronJob) calls the maintenance endpoint,
which runs ``run_due_transfers``. Each due transfer is applied under its
product's allocation lock and ends Completed or Failed.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ledger.allocation.store import SCAN_LIMIT, allocation_lock
from ledger.domain import ledger
from ledger.errors import LedgerError
from ledger.transfer.orchestrator import TransferResult, apply_transfer
from ledger.transfer.transfer import StockTransfer, TransferStatus, naive_utc
from ledger.warehouse.warehouse import Warehouse, WarehouseStatus

logger = structlog.get_logger(__name__)


@ledger.command(part_of="StockTransfer")
class ExecuteScheduledTransfer:
    """Apply a Pending transfer whose scheduled date has been reached."""

    transfer_id = Identifier(required=True)
    as_of = DateTime()  # Optional: defaults to now


@ledger.command_handler(part_of=StockTransfer)
class ScheduledTransferHandler:
    @handle(ExecuteScheduledTransfer)
    def execute_scheduled_transfer(self, command):
        repo = current_domain.repository_for(StockTransfer)
        transfer = repo.get(command.transfer_id)

        if transfer.status != TransferStatus.PENDING.value:
            raise ValidationError({"status": [f"Transfer is already {transfer.status}"]})
        if not transfer.is_due(command.as_of):
            raise ValidationError({"scheduled_date": ["Transfer is not due yet"]})

        destination = current_domain.repository_for(Warehouse).get(transfer.to_warehouse_id)
        if destination.status != WarehouseStatus.ACTIVE.value:
            error = LedgerError.conflict(
                f"Destination warehouse {destination.name} is inactive",
                field="to_warehouse_id",
                product_id=str(transfer.product_id),
            )
            transfer.fail(error.message)
            repo.add(transfer)
            logger.warning(
                "Scheduled transfer failed",
                transfer_id=str(transfer.id),
                reason=error.message,
            )
            return TransferResult.rejected([error], transfer_id=str(transfer.id), status=TransferStatus.FAILED.value)

        return apply_transfer(transfer)


def due_transfers(as_of=None):
    """Pending transfers with a scheduled date at or before ``as_of``, oldest first."""
    as_of = as_of or datetime.now(UTC)
    pending = (
        current_domain.repository_for(StockTransfer)
        ._dao.query.filter(status=TransferStatus.PENDING.value)
        .limit(SCAN_LIMIT)
        .all()
        .items
    )
    due = [transfer for transfer in pending if transfer.scheduled_date and transfer.is_due(as_of)]
    return sorted(due, key=lambda t: (naive_utc(t.scheduled_date), str(t.id)))


def run_due_transfers(as_of=None):
    """Execute every due scheduled transfer. Returns counts by outcome."""
    as_of = as_of or datetime.now(UTC)
    logger.info("Checking for due scheduled transfers", as_of=as_of.isoformat())

    due = due_transfers(as_of)
    counts = {"due": len(due), "completed": 0, "failed": 0, "skipped": 0}
    if not due:
        logger.info("No scheduled transfers due")
        return counts

    for transfer in due:
        try:
            with allocation_lock(transfer.product_id):
                result = current_domain.process(
                    ExecuteScheduledTransfer(transfer_id=str(transfer.id), as_of=as_of),
                    asynchronous=False,
                )
        except ValidationError as exc:
            # Another sweep settled it first
            counts["skipped"] += 1
            logger.info(
                "Scheduled transfer skipped",
                transfer_id=str(transfer.id),
                reason=exc.messages,
            )
            continue
        if result.success:
            counts["completed"] += 1
        else:
            counts["failed"] += 1

    logger.info("Scheduled transfer sweep finished", **counts)
    return counts
