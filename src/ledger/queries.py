"""Read-side queries for dashboards.

Every call is recomputed from current state; nothing here is cached.
Allocation figures come from the ProductLedger aggregates themselves, while
history and alerts come from their projections.
"""

import math
from collections import defaultdict
from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ledger.allocation import store
from ledger.allocation.status import StockStatus
from ledger.allocation.store import SCAN_LIMIT
from ledger.product.product import Product
from ledger.projections.low_stock_report import LowStockReport
from ledger.projections.stock_movement_log import StockMovementLog
from ledger.transfer.transfer import StockTransfer, naive_utc
from ledger.warehouse.warehouse import Warehouse

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class InventorySummary:
    total_items: int = 0
    low_stock_items: int = 0
    out_of_stock_items: int = 0
    total_quantity: int = 0
    total_reserved: int = 0
    total_value: float = 0.0

    def to_dict(self):
        return {
            "total_items": self.total_items,
            "low_stock_items": self.low_stock_items,
            "out_of_stock_items": self.out_of_stock_items,
            "total_quantity": self.total_quantity,
            "total_reserved": self.total_reserved,
            "total_value": self.total_value,
        }


@dataclass(frozen=True)
class TransferPage:
    transfers: tuple
    total: int
    page: int
    limit: int

    def total_pages(self):
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(frozen=True)
class AllocationPage:
    allocations: tuple
    total: int
    page: int
    limit: int
    totals: InventorySummary = InventorySummary()

    def total_pages(self):
        return math.ceil(self.total / self.limit) if self.limit else 0


def _all(aggregate_cls, **filters):
    query = current_domain.repository_for(aggregate_cls)._dao.query
    if filters:
        query = query.filter(**filters)
    return query.limit(SCAN_LIMIT).all().items


def _products_by_id(product_ids=None):
    products = {str(p.id): p for p in _all(Product)}
    if product_ids is None:
        return products
    return {pid: products[pid] for pid in product_ids if pid in products}


# ---------------------------------------------------------------------------
# Warehouses
# ---------------------------------------------------------------------------
def list_warehouses():
    """Every warehouse with the total units currently allocated to it."""
    current_stock = defaultdict(int)
    for snapshot in store.records():
        current_stock[snapshot.warehouse_id] += snapshot.allocated_quantity

    warehouses = sorted(_all(Warehouse), key=lambda w: ((w.name or "").lower(), str(w.id)))
    return [
        {
            "id": str(w.id),
            "name": w.name,
            "region": w.region,
            "capacity": w.capacity or 0,
            "current_stock": current_stock[str(w.id)],
            "status": w.status,
        }
        for w in warehouses
    ]


def list_warehouse_products(warehouse_id):
    """Allocations held at one warehouse, with product details.

    Raises ObjectNotFoundError for an unknown warehouse.
    """
    current_domain.repository_for(Warehouse).get(str(warehouse_id))

    snapshots = store.records(warehouse_id=warehouse_id)
    products = _products_by_id({s.product_id for s in snapshots})
    rows = []
    for snapshot in snapshots:
        product = products.get(snapshot.product_id)
        rows.append(
            {
                "product_id": snapshot.product_id,
                "name": product.name if product else None,
                "sku": product.sku if product else None,
                "allocated_quantity": snapshot.allocated_quantity,
                "safety_stock": snapshot.safety_stock,
                "available": snapshot.available,
                "status": snapshot.status,
                "reorder_point": snapshot.reorder_point,
                "max_stock": snapshot.max_stock,
            }
        )
    return rows


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------
def summarize(records, unit_prices=None):
    """Aggregate allocation snapshots into dashboard totals.

    ``unit_prices`` maps product id to price; when omitted, prices are read
    from the registered products. Unknown products are valued at zero.
    """
    records = list(records)
    if unit_prices is None:
        unit_prices = {pid: p.unit_price or 0.0 for pid, p in _products_by_id({r.product_id for r in records}).items()}

    low_stock = out_of_stock = quantity = reserved = 0
    value = 0.0
    for record in records:
        allocated = record.allocated_quantity or 0
        if allocated <= record.reorder_point:
            low_stock += 1
        if record.status == StockStatus.OUT_OF_STOCK.value:
            out_of_stock += 1
        quantity += allocated
        reserved += record.safety_stock or 0
        value += allocated * unit_prices.get(record.product_id, 0.0)

    return InventorySummary(
        total_items=len(records),
        low_stock_items=low_stock,
        out_of_stock_items=out_of_stock,
        total_quantity=quantity,
        total_reserved=reserved,
        total_value=round(value, 2),
    )


def summary(warehouse_id=None):
    """Totals over the current ledger, optionally for a single warehouse."""
    return summarize(store.records(warehouse_id=warehouse_id))


# ---------------------------------------------------------------------------
# Allocation listing
# ---------------------------------------------------------------------------
def _matches(search, *values):
    needle = search.strip().lower()
    return any(needle in (value or "").lower() for value in values)


def list_allocations(
    search=None,
    warehouse_id=None,
    product_id=None,
    low_stock=False,
    available_only=False,
    page=1,
    limit=DEFAULT_PAGE_SIZE,
):
    """Allocation records with product and warehouse details, one page at a time.

    ``search`` matches product name, SKU or warehouse name, case-insensitively.
    ``low_stock`` keeps records at or below their reorder point and
    ``available_only`` keeps records with transferable stock. Filters apply
    before paging; ``totals`` covers every matching record.
    """
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))

    snapshots = store.records(warehouse_id=warehouse_id, product_id=product_id)
    products = _products_by_id({s.product_id for s in snapshots})
    warehouses = {str(w.id): w for w in _all(Warehouse)}

    rows = []
    for snapshot in snapshots:
        product = products.get(snapshot.product_id)
        warehouse = warehouses.get(snapshot.warehouse_id)
        product_name = product.name if product else None
        sku = product.sku if product else None
        warehouse_name = warehouse.name if warehouse else None
        is_low_stock = snapshot.allocated_quantity <= snapshot.reorder_point

        if search and not _matches(search, product_name, sku, warehouse_name):
            continue
        if low_stock and not is_low_stock:
            continue
        if available_only and snapshot.available <= 0:
            continue
        rows.append((snapshot, product_name, sku, warehouse_name, is_low_stock))

    rows.sort(key=lambda r: ((r[3] or "").lower(), (r[1] or "").lower(), r[0].warehouse_id, r[0].product_id))
    totals = summarize(
        [r[0] for r in rows],
        unit_prices={pid: p.unit_price or 0.0 for pid, p in products.items()},
    )

    start = (page - 1) * limit
    allocations = tuple(
        {
            **snapshot.to_dict(),
            "product_name": product_name,
            "sku": sku,
            "warehouse_name": warehouse_name,
            "is_low_stock": is_low_stock,
        }
        for snapshot, product_name, sku, warehouse_name, is_low_stock in rows[start : start + limit]
    )
    return AllocationPage(allocations=allocations, total=len(rows), page=page, limit=limit, totals=totals)


# ---------------------------------------------------------------------------
# Transfer history, movements and alerts
# ---------------------------------------------------------------------------
def list_transfers(status=None, warehouse_id=None, product_id=None, page=1, limit=DEFAULT_PAGE_SIZE):
    """Transfers newest first. ``warehouse_id`` matches either end of a transfer."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))

    filters = {}
    if status:
        filters["status"] = status
    if product_id:
        filters["product_id"] = str(product_id)
    transfers = _all(StockTransfer, **filters)
    if warehouse_id:
        transfers = [
            t for t in transfers if str(warehouse_id) in (str(t.from_warehouse_id), str(t.to_warehouse_id))
        ]

    transfers.sort(key=lambda t: (naive_utc(t.created_at), str(t.id)), reverse=True)
    start = (page - 1) * limit
    return TransferPage(
        transfers=tuple(transfers[start : start + limit]),
        total=len(transfers),
        page=page,
        limit=limit,
    )


def get_transfer(transfer_id):
    """A single transfer record, or None."""
    try:
        return current_domain.repository_for(StockTransfer).get(str(transfer_id))
    except ObjectNotFoundError:
        return None


def movement_history(product_id=None, warehouse_id=None, limit=MAX_PAGE_SIZE):
    """Most recent movement log entries first."""
    filters = {}
    if product_id:
        filters["product_id"] = str(product_id)
    if warehouse_id:
        filters["warehouse_id"] = str(warehouse_id)
    entries = _all(StockMovementLog, **filters)
    entries.sort(key=lambda e: naive_utc(e.occurred_at), reverse=True)
    return entries[:limit]


def low_stock_alerts(warehouse_id=None):
    """Open low-stock entries, critical (empty) ones first."""
    filters = {"warehouse_id": str(warehouse_id)} if warehouse_id else {}
    reports = _all(LowStockReport, **filters)
    return sorted(reports, key=lambda r: (not r.is_critical, str(r.product_id), str(r.warehouse_id)))
