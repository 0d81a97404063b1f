"""Availability and stock-status classification for allocation records.

Pure functions: no repository access, no side effects. Anything exposing
``allocated_quantity``, ``safety_stock``, ``reorder_point`` and ``max_stock``
attributes can be classified (aggregate entities, snapshots, projections).
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_REORDER_POINT = 20
DEFAULT_MAX_STOCK = 500
OVERSTOCK_RATIO = 0.9


class StockStatus(Enum):
    OUT_OF_STOCK = "Out_Of_Stock"
    LOW_STOCK = "Low_Stock"
    OVERSTOCK = "Overstock"
    IN_STOCK = "In_Stock"


@dataclass(frozen=True)
class Classification:
    """Derived view of a single allocation record."""

    available: int
    status: StockStatus


def available_quantity(allocated_quantity: int, safety_stock: int) -> int:
    """Units that may be transferred or fulfilled. Never negative."""
    return max(0, (allocated_quantity or 0) - (safety_stock or 0))


def stock_status(allocated_quantity: int, reorder_point: int, max_stock: int) -> StockStatus:
    # Check order matters: an empty record is OUT_OF_STOCK even when the
    # reorder point is 0 and LOW_STOCK would also match.
    allocated = allocated_quantity or 0
    if allocated == 0:
        return StockStatus.OUT_OF_STOCK
    if allocated <= (reorder_point or 0):
        return StockStatus.LOW_STOCK
    if allocated >= OVERSTOCK_RATIO * (max_stock or 0):
        return StockStatus.OVERSTOCK
    return StockStatus.IN_STOCK


def classify(record) -> Classification:
    """Classify an allocation record into available quantity and status."""
    reorder_point = record.reorder_point if record.reorder_point is not None else DEFAULT_REORDER_POINT
    max_stock = record.max_stock if record.max_stock is not None else DEFAULT_MAX_STOCK
    return Classification(
        available=available_quantity(record.allocated_quantity, record.safety_stock),
        status=stock_status(record.allocated_quantity, reorder_point, max_stock),
    )
