"""Bulk move coordinator — propose, then confirm, moving many products to one warehouse.

``propose_bulk_move`` is all-or-nothing: any invalid item rejects the whole
proposal and every problem is reported. ``confirm_bulk_move`` issues one
transfer per item and keeps going past failures; items that succeeded stay
applied.

Items without an explicit source draw from the first warehouse, by id, that
is not the target and holds the product. The source is resolved again at
confirm time because stock may have moved since the proposal.
"""

from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ledger.allocation import store
from ledger.errors import ErrorKind, LedgerError
from ledger.product.product import Product
from ledger.transfer.orchestrator import create_transfer
from ledger.transfer.transfer import TransferReason
from ledger.warehouse.warehouse import Warehouse, WarehouseStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BulkMoveItem:
    product_id: str
    quantity: int
    source_warehouse_id: str | None = None


@dataclass(frozen=True)
class BulkMove:
    """A resolved item: where it comes from and how much is available there."""

    product_id: str
    source_warehouse_id: str
    target_warehouse_id: str
    quantity: int
    available: int

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "source_warehouse_id": self.source_warehouse_id,
            "target_warehouse_id": self.target_warehouse_id,
            "quantity": self.quantity,
            "available": self.available,
        }


@dataclass(frozen=True)
class BulkMoveProposal:
    valid: bool
    moves: tuple[BulkMove, ...] = ()
    errors: tuple[LedgerError, ...] = ()

    def to_dict(self):
        if self.valid:
            return {"valid": True, "moves": [move.to_dict() for move in self.moves]}
        return {
            "valid": False,
            "errors": [{"product_id": error.product_id, "reason": error.message} for error in self.errors],
        }


@dataclass(frozen=True)
class BulkMoveOutcome:
    succeeded: int
    failed: int
    transfer_ids: tuple[str, ...] = ()
    errors: tuple[LedgerError, ...] = ()

    def is_partial(self):
        return self.succeeded > 0 and self.failed > 0

    def to_dict(self):
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "transfer_ids": list(self.transfer_ids),
            "errors": [{"product_id": error.product_id, "reason": error.message} for error in self.errors],
        }


def _coerce(item):
    if isinstance(item, BulkMoveItem):
        return item
    if isinstance(item, Mapping):
        return BulkMoveItem(
            product_id=item.get("product_id"),
            quantity=item.get("quantity"),
            source_warehouse_id=item.get("source_warehouse_id"),
        )
    raise TypeError(f"Unsupported bulk move item: {item!r}")


def _is_positive_int(value):
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def resolve_source(product_id, target_warehouse_id):
    """First warehouse by id, other than the target, holding the product. None if none does."""
    for snapshot in store.records(product_id=product_id):
        if snapshot.warehouse_id != str(target_warehouse_id) and snapshot.allocated_quantity > 0:
            return snapshot.warehouse_id
    return None


def _reference_errors(product_id, source_warehouse_id=None):
    """NotFound errors for an item whose product or explicit source does not exist."""
    errors = []
    try:
        current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        errors.append(LedgerError.not_found("product_id", f"Product {product_id} not found", product_id))
    if source_warehouse_id:
        try:
            current_domain.repository_for(Warehouse).get(str(source_warehouse_id))
        except ObjectNotFoundError:
            errors.append(
                LedgerError.not_found(
                    "source_warehouse_id", f"Warehouse {source_warehouse_id} not found", product_id
                )
            )
    return errors


def _target_errors(target_warehouse_id):
    if not target_warehouse_id:
        return [LedgerError.validation("target_warehouse_id", "Target warehouse is required")]
    try:
        target = current_domain.repository_for(Warehouse).get(str(target_warehouse_id))
    except ObjectNotFoundError:
        return [LedgerError.not_found("target_warehouse_id", f"Warehouse {target_warehouse_id} not found")]
    if target.status != WarehouseStatus.ACTIVE.value:
        return [LedgerError.validation("target_warehouse_id", f"Target warehouse {target.name} is inactive")]
    return []


def propose_bulk_move(target_warehouse_id, items):
    """Validate every item and resolve its source. Nothing is changed."""
    items = [_coerce(item) for item in items or []]
    errors = _target_errors(target_warehouse_id)
    if not items:
        errors.append(LedgerError.validation("items", "At least one item is required"))

    moves = []
    claimed = {}  # (product, source) -> units already proposed
    for item in items:
        product_id = str(item.product_id) if item.product_id else None
        if not product_id:
            errors.append(LedgerError.validation("product_id", "Product is required"))
            continue
        if not _is_positive_int(item.quantity):
            errors.append(LedgerError.validation("quantity", "Quantity must be a positive integer", product_id))
            continue

        reference_errors = _reference_errors(product_id, item.source_warehouse_id)
        if reference_errors:
            errors.extend(reference_errors)
            continue

        source_id = item.source_warehouse_id or resolve_source(product_id, target_warehouse_id)
        if source_id is None:
            errors.append(
                LedgerError.validation("source_warehouse_id", "No source warehouse holds this product", product_id)
            )
            continue
        source_id = str(source_id)
        if source_id == str(target_warehouse_id):
            errors.append(
                LedgerError.validation(
                    "source_warehouse_id", "Source and target warehouses must be different", product_id
                )
            )
            continue

        available = store.available(product_id, source_id) - claimed.get((product_id, source_id), 0)
        if item.quantity > available:
            errors.append(
                LedgerError.validation(
                    "quantity",
                    f"Insufficient available stock at {source_id}: {max(0, available)} available, "
                    f"{item.quantity} requested",
                    product_id,
                )
            )
            continue

        claimed[(product_id, source_id)] = claimed.get((product_id, source_id), 0) + item.quantity
        moves.append(
            BulkMove(
                product_id=product_id,
                source_warehouse_id=source_id,
                target_warehouse_id=str(target_warehouse_id),
                quantity=item.quantity,
                available=available,
            )
        )

    if errors:
        logger.info("Bulk move proposal rejected", target_warehouse_id=target_warehouse_id, error_count=len(errors))
        return BulkMoveProposal(valid=False, errors=tuple(errors))
    return BulkMoveProposal(valid=True, moves=tuple(moves))


def confirm_bulk_move(target_warehouse_id, items, requested_by=None, reason=TransferReason.REBALANCING.value):
    """Issue one transfer per item. Failures are collected, never fatal to the batch."""
    items = [_coerce(item) for item in items or []]
    succeeded = 0
    transfer_ids = []
    errors = []

    for item in items:
        product_id = str(item.product_id) if item.product_id else None
        reference_errors = _reference_errors(product_id, item.source_warehouse_id) if product_id else []
        if reference_errors:
            errors.extend(reference_errors)
            continue

        source_id = item.source_warehouse_id
        if source_id is None and product_id:
            source_id = resolve_source(product_id, target_warehouse_id)
        if source_id is None:
            errors.append(
                LedgerError.validation("source_warehouse_id", "No source warehouse holds this product", product_id)
            )
            continue

        result = create_transfer(
            from_warehouse_id=source_id,
            to_warehouse_id=target_warehouse_id,
            product_id=product_id,
            quantity=item.quantity,
            reason=reason,
            requested_by=requested_by,
        )
        if result.transfer_id:
            transfer_ids.append(result.transfer_id)
        if result.success:
            succeeded += 1
        else:
            errors.append(
                LedgerError(
                    kind=result.error_kind() or ErrorKind.VALIDATION,
                    message=result.message,
                    product_id=product_id,
                )
            )

    failed = len(items) - succeeded
    logger.info(
        "Bulk move confirmed",
        target_warehouse_id=target_warehouse_id,
        succeeded=succeeded,
        failed=failed,
    )
    return BulkMoveOutcome(
        succeeded=succeeded,
        failed=failed,
        transfer_ids=tuple(transfer_ids),
        errors=tuple(errors),
    )
