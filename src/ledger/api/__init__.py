from ledger.api.routes import (
    allocation_router,
    inventory_router,
    maintenance_router,
    product_router,
    transfer_router,
    warehouse_router,
)

__all__ = [
    "allocation_router",
    "inventory_router",
    "maintenance_router",
    "product_router",
    "transfer_router",
    "warehouse_router",
]
