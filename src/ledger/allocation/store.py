"""Allocation record store — per (product, warehouse) access to the ledger.

Reads go through the LedgerDirectory projection to find a product's
ProductLedger, then replay it from the event store. Writes are dispatched as
commands while the product's lock is held, so the lock covers the handler
and the unit-of-work commit. Two writers for the same product therefore
serialize, and each re-validates against the state the other committed.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ledger.allocation.ledger import ProductLedger
from ledger.allocation.status import classify
from ledger.errors import ErrorKind, LedgerError, errors_from_messages
from ledger.projections.ledger_directory import LedgerDirectory

logger = structlog.get_logger(__name__)

SCAN_LIMIT = 10_000

# One lock per product, never evicted: the map grows with the product catalogue
# and a product must map to the same lock for the life of the process.
_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


@contextmanager
def allocation_lock(product_id):
    """Serialize ledger writes for one product. Re-entrant."""
    with _locks_guard:
        lock = _locks.setdefault(str(product_id), threading.RLock())
    with lock:
        yield


@dataclass(frozen=True)
class AllocationSnapshot:
    """Point-in-time copy of one allocation record, safe to hand to callers."""

    product_id: str
    warehouse_id: str
    allocated_quantity: int
    safety_stock: int
    reorder_point: int
    max_stock: int
    available: int
    status: str
    last_updated: datetime | None = None

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "allocated_quantity": self.allocated_quantity,
            "safety_stock": self.safety_stock,
            "reorder_point": self.reorder_point,
            "max_stock": self.max_stock,
            "available": self.available,
            "status": self.status,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


def snapshot_of(product_ledger, warehouse_id):
    """Snapshot a warehouse's record from a loaded ledger, or None if absent."""
    record = product_ledger.record_for(warehouse_id)
    if record is None:
        return None
    classification = classify(record)
    return AllocationSnapshot(
        product_id=str(product_ledger.product_id),
        warehouse_id=str(record.warehouse_id),
        allocated_quantity=record.allocated_quantity or 0,
        safety_stock=record.safety_stock or 0,
        reorder_point=record.reorder_point,
        max_stock=record.max_stock,
        available=classification.available,
        status=classification.status.value,
        last_updated=record.last_updated,
    )


def find_ledger(product_id):
    """Load the product's ledger, or None if nothing was ever allocated."""
    try:
        entry = current_domain.repository_for(LedgerDirectory).get(str(product_id))
    except ObjectNotFoundError:
        return None
    return current_domain.repository_for(ProductLedger).get(entry.ledger_id)


def all_ledgers():
    """Every product ledger, ordered by product id."""
    entries = current_domain.repository_for(LedgerDirectory)._dao.query.limit(SCAN_LIMIT).all().items
    repo = current_domain.repository_for(ProductLedger)
    return [repo.get(entry.ledger_id) for entry in sorted(entries, key=lambda e: str(e.product_id))]


# ---------------------------------------------------------------------------
# Store contract
# ---------------------------------------------------------------------------
def get(product_id, warehouse_id):
    """Current allocation of a product at a warehouse, or None."""
    product_ledger = find_ledger(product_id)
    if product_ledger is None:
        return None
    return snapshot_of(product_ledger, warehouse_id)


def available(product_id, warehouse_id):
    """Transferable units at a warehouse; 0 when no record exists."""
    snapshot = get(product_id, warehouse_id)
    return snapshot.available if snapshot else 0


def records(warehouse_id=None, product_id=None):
    """Snapshots of current records, optionally filtered.

    Ordered by product id, then warehouse id.
    """
    if product_id is not None:
        product_ledger = find_ledger(product_id)
        ledgers = [product_ledger] if product_ledger else []
    else:
        ledgers = all_ledgers()

    snapshots = []
    for product_ledger in ledgers:
        for record in sorted(product_ledger.allocations or [], key=lambda r: str(r.warehouse_id)):
            if warehouse_id is not None and str(record.warehouse_id) != str(warehouse_id):
                continue
            snapshots.append(snapshot_of(product_ledger, record.warehouse_id))
    return snapshots


def upsert_delta(product_id, warehouse_id, quantity_delta=0, safety_stock_delta=0, clamp=True, reason=None):
    """Add deltas to a record, creating it on first assignment.

    Returns the updated snapshot. With ``clamp=False`` a delta that would go
    negative raises ValidationError and leaves the ledger untouched.
    """
    from ledger.allocation.adjustment import AdjustAllocation

    with allocation_lock(product_id):
        return current_domain.process(
            AdjustAllocation(
                product_id=product_id,
                warehouse_id=warehouse_id,
                quantity_delta=quantity_delta,
                safety_stock_delta=safety_stock_delta,
                clamp=clamp,
                reason=reason,
            ),
            asynchronous=False,
        )


def configure(product_id, warehouse_id, reorder_point=None, max_stock=None):
    """Set thresholds on an existing record and return its snapshot."""
    from ledger.allocation.adjustment import ConfigureAllocation

    with allocation_lock(product_id):
        return current_domain.process(
            ConfigureAllocation(
                product_id=product_id,
                warehouse_id=warehouse_id,
                reorder_point=reorder_point,
                max_stock=max_stock,
            ),
            asynchronous=False,
        )


# ---------------------------------------------------------------------------
# Batch upsert
# ---------------------------------------------------------------------------
MAX_BATCH_SIZE = 1000


@dataclass(frozen=True)
class BatchUpsertResult:
    created: tuple[AllocationSnapshot, ...] = ()
    updated: tuple[AllocationSnapshot, ...] = ()
    errors: tuple[LedgerError, ...] = ()

    def to_dict(self):
        return {
            "created": [snapshot.to_dict() for snapshot in self.created],
            "updated": [snapshot.to_dict() for snapshot in self.updated],
            "errors": [error.to_dict() for error in self.errors],
        }


def _entry_errors(entry):
    product_id = entry.get("product_id")
    errors = []
    if not product_id:
        errors.append(LedgerError.validation("product_id", "Product is required"))
    if not entry.get("warehouse_id"):
        errors.append(LedgerError.validation("warehouse_id", "Warehouse is required", product_id))
    for field in ("allocated_quantity", "safety_stock"):
        value = entry.get(field, 0)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            errors.append(LedgerError.validation(field, f"{field} must be a non-negative integer", product_id))
    return errors


def upsert_batch(entries, reason=None):
    """Set absolute allocated quantity and safety stock for many records.

    Each entry is a mapping of ``product_id``, ``warehouse_id``,
    ``allocated_quantity`` and ``safety_stock``. Entries are applied one by
    one; a bad entry is reported in ``errors`` and the rest still apply.
    Raises ValidationError when the batch is empty or too large.
    """
    entries = list(entries or [])
    if not entries:
        raise ValidationError({"allocations": ["At least one allocation is required"]})
    if len(entries) > MAX_BATCH_SIZE:
        raise ValidationError({"allocations": [f"At most {MAX_BATCH_SIZE} allocations per batch"]})

    created, updated, errors = [], [], []
    for entry in entries:
        entry_errors = _entry_errors(entry)
        if entry_errors:
            errors.extend(entry_errors)
            continue

        product_id = str(entry["product_id"])
        warehouse_id = str(entry["warehouse_id"])
        try:
            with allocation_lock(product_id):
                current = get(product_id, warehouse_id)
                snapshot = upsert_delta(
                    product_id,
                    warehouse_id,
                    quantity_delta=entry.get("allocated_quantity", 0) - (current.allocated_quantity if current else 0),
                    safety_stock_delta=entry.get("safety_stock", 0) - (current.safety_stock if current else 0),
                    clamp=False,
                    reason=reason,
                )
        except ObjectNotFoundError as exc:
            errors.append(LedgerError(kind=ErrorKind.NOT_FOUND, message=str(exc), product_id=product_id))
            continue
        except ValidationError as exc:
            errors.extend(errors_from_messages(exc.messages, product_id=product_id))
            continue

        (updated if current else created).append(snapshot)

    logger.info(
        "Allocation batch applied",
        created=len(created),
        updated=len(updated),
        errors=len(errors),
    )
    return BatchUpsertResult(created=tuple(created), updated=tuple(updated), errors=tuple(errors))
