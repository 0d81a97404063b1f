"""StockTransfer aggregate (CQRS) — the record of one warehouse-to-warehouse move.

The stock itself moves inside the product's ProductLedger; this aggregate
keeps the request, its scheduling and its outcome for history and auditing.

State Machine:
    PENDING → COMPLETED   (ledger applied the move)
    PENDING → FAILED      (availability gone at apply time)

COMPLETED and FAILED are terminal.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from ledger.domain import ledger
from ledger.transfer.events import TransferCompleted, TransferFailed, TransferRequested


class TransferPriority(Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class TransferReason(Enum):
    REBALANCING = "Rebalancing"
    DEMAND_FULFILLMENT = "Demand_Fulfillment"
    OVERFLOW = "Overflow"
    MAINTENANCE = "Maintenance"
    OPTIMIZATION = "Optimization"
    EMERGENCY = "Emergency"
    ADMIN_DIRECTIVE = "Admin_Directive"
    OTHER = "Other"


class TransferStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    TransferStatus.PENDING: {TransferStatus.COMPLETED, TransferStatus.FAILED},
    TransferStatus.COMPLETED: set(),  # Terminal
    TransferStatus.FAILED: set(),  # Terminal
}


def naive_utc(value):
    """Drop tzinfo after converting to UTC; stored datetimes may come back naive."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


@ledger.aggregate
class StockTransfer:
    product_id = Identifier(required=True)
    from_warehouse_id = Identifier(required=True)
    to_warehouse_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    priority = String(choices=TransferPriority, default=TransferPriority.NORMAL.value)
    reason = String(choices=TransferReason, default=TransferReason.OTHER.value)
    notes = Text()
    scheduled_date = DateTime()
    status = String(choices=TransferStatus, default=TransferStatus.PENDING.value)
    failure_reason = String(max_length=500)
    requested_by = String(max_length=255)
    created_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def request(
        cls,
        product_id,
        from_warehouse_id,
        to_warehouse_id,
        quantity,
        priority=None,
        reason=None,
        notes=None,
        scheduled_date=None,
        requested_by=None,
    ):
        now = datetime.now(UTC)
        transfer = cls(
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            priority=priority or TransferPriority.NORMAL.value,
            reason=reason or TransferReason.OTHER.value,
            notes=notes,
            scheduled_date=scheduled_date,
            status=TransferStatus.PENDING.value,
            requested_by=requested_by,
            created_at=now,
        )
        transfer.raise_(
            TransferRequested(
                transfer_id=str(transfer.id),
                product_id=str(product_id),
                from_warehouse_id=str(from_warehouse_id),
                to_warehouse_id=str(to_warehouse_id),
                quantity=quantity,
                priority=transfer.priority,
                reason=transfer.reason,
                notes=notes,
                scheduled_date=scheduled_date,
                requested_by=requested_by,
                requested_at=now,
            )
        )
        return transfer

    def is_due(self, as_of=None):
        """True if the transfer should be applied now (unscheduled or date reached)."""
        if self.scheduled_date is None:
            return True
        return naive_utc(self.scheduled_date) <= naive_utc(as_of or datetime.now(UTC))

    def _assert_can_transition(self, target_status):
        current = TransferStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def complete(self):
        self._assert_can_transition(TransferStatus.COMPLETED)
        self.status = TransferStatus.COMPLETED.value
        self.completed_at = datetime.now(UTC)
        self.raise_(
            TransferCompleted(
                transfer_id=str(self.id),
                product_id=str(self.product_id),
                from_warehouse_id=str(self.from_warehouse_id),
                to_warehouse_id=str(self.to_warehouse_id),
                quantity=self.quantity,
                completed_at=self.completed_at,
            )
        )

    def fail(self, reason):
        self._assert_can_transition(TransferStatus.FAILED)
        self.status = TransferStatus.FAILED.value
        self.failure_reason = reason
        failed_at = datetime.now(UTC)
        self.raise_(
            TransferFailed(
                transfer_id=str(self.id),
                product_id=str(self.product_id),
                failure_reason=reason,
                failed_at=failed_at,
            )
        )
