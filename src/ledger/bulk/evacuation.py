"""Evacuation planning — where a warehouse's stock should go before it closes.

Only available stock is planned for relocation; safety stock stays with the
warehouse and is listed as retained. The plan is advisory: callers execute
it through bulk moves, one target warehouse at a time.
"""

from collections import defaultdict
from dataclasses import dataclass

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ledger.allocation import store
from ledger.allocation.store import SCAN_LIMIT
from ledger.warehouse.warehouse import Warehouse, WarehouseStatus

FALLBACK_WAREHOUSE_NAME = "default"


@dataclass(frozen=True)
class PlannedMove:
    product_id: str
    target_warehouse_id: str
    quantity: int


@dataclass(frozen=True)
class RetainedStock:
    product_id: str
    safety_stock: int


@dataclass(frozen=True)
class EvacuationPlan:
    warehouse_id: str
    moves: tuple[PlannedMove, ...] = ()
    retained: tuple[RetainedStock, ...] = ()

    def total_quantity(self):
        return sum(move.quantity for move in self.moves)

    def moves_by_target(self):
        """Moves grouped by target warehouse, ready to confirm as bulk moves.

        Every item names the evacuated warehouse as its source, so confirming
        never draws from another warehouse holding the same product.
        """
        grouped = defaultdict(list)
        for move in self.moves:
            grouped[move.target_warehouse_id].append(
                {
                    "product_id": move.product_id,
                    "quantity": move.quantity,
                    "source_warehouse_id": self.warehouse_id,
                }
            )
        return dict(grouped)

    def to_dict(self):
        return {
            "warehouse_id": self.warehouse_id,
            "total_quantity": self.total_quantity(),
            "moves": [
                {"product_id": m.product_id, "target_warehouse_id": m.target_warehouse_id, "quantity": m.quantity}
                for m in self.moves
            ],
            "retained": [{"product_id": r.product_id, "safety_stock": r.safety_stock} for r in self.retained],
        }


def _remaining_capacity(candidates):
    stock = defaultdict(int)
    for snapshot in store.records():
        stock[snapshot.warehouse_id] += snapshot.allocated_quantity
    return {str(w.id): max(0, (w.capacity or 0) - stock[str(w.id)]) for w in candidates}


def plan_evacuation(warehouse_id, target_warehouse_id=None):
    """Build a relocation plan for everything movable out of ``warehouse_id``.

    If the selected target has room for all of it, everything goes there.
    Otherwise stock is spread over active warehouses in id order by their
    remaining capacity, and whatever does not fit is assigned to the
    warehouse named "default", or to the first candidate if none is.

    Raises ObjectNotFoundError for an unknown warehouse and ValidationError
    for an unusable target.
    """
    warehouse_repo = current_domain.repository_for(Warehouse)
    warehouse = warehouse_repo.get(str(warehouse_id))
    warehouse_id = str(warehouse.id)

    target = None
    if target_warehouse_id:
        target = warehouse_repo.get(str(target_warehouse_id))
        if str(target.id) == warehouse_id:
            raise ValidationError({"target_warehouse_id": ["Target must differ from the warehouse being evacuated"]})
        if target.status != WarehouseStatus.ACTIVE.value:
            raise ValidationError({"target_warehouse_id": [f"Target warehouse {target.name} is inactive"]})

    snapshots = store.records(warehouse_id=warehouse_id)
    retained = tuple(
        RetainedStock(product_id=s.product_id, safety_stock=min(s.safety_stock, s.allocated_quantity))
        for s in snapshots
        if s.safety_stock > 0 and s.allocated_quantity > 0
    )
    movable = [s for s in snapshots if s.available > 0]
    if not movable:
        return EvacuationPlan(warehouse_id=warehouse_id, retained=retained)

    candidates = sorted(
        (
            w
            for w in warehouse_repo._dao.query.filter(status=WarehouseStatus.ACTIVE.value).limit(SCAN_LIMIT).all().items
            if str(w.id) != warehouse_id
        ),
        key=lambda w: str(w.id),
    )
    if not candidates:
        raise ValidationError({"warehouse_id": ["No active warehouse can receive the stock"]})

    remaining = _remaining_capacity(candidates)
    total = sum(s.available for s in movable)

    if target is not None and remaining[str(target.id)] >= total:
        moves = tuple(PlannedMove(s.product_id, str(target.id), s.available) for s in movable)
        return EvacuationPlan(warehouse_id=warehouse_id, moves=moves, retained=retained)

    fallback = next(
        (w for w in candidates if (w.name or "").strip().lower() == FALLBACK_WAREHOUSE_NAME),
        candidates[0],
    )
    moves = []
    for snapshot in movable:
        left = snapshot.available
        for candidate in candidates:
            room = remaining[str(candidate.id)]
            if left == 0:
                break
            if room <= 0:
                continue
            take = min(left, room)
            moves.append(PlannedMove(snapshot.product_id, str(candidate.id), take))
            remaining[str(candidate.id)] -= take
            left -= take
        if left > 0:
            moves.append(PlannedMove(snapshot.product_id, str(fallback.id), left))

    return EvacuationPlan(warehouse_id=warehouse_id, moves=tuple(moves), retained=retained)
