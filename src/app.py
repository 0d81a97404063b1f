"""Stock Ledger FastAPI application.

Single-domain web server that processes commands synchronously via HTTP.
Every request under a ledger route runs inside the ledger domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - unset/"test"  → event_processing = "sync"  (projectors fire in UoW)
#   - "production"  → event_processing = "async" (projectors fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ledger.domain import ledger  # noqa: E402
from ledger.utils.logging import bind_request_context, clear_request_context, configure_logging
from protean.integrations.fastapi import register_exception_handlers

configure_logging()
ledger.init()

_LEDGER_PREFIXES = (
    "/warehouses",
    "/products",
    "/allocations",
    "/transfers",
    "/inventory",
    "/maintenance",
)


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Stock Ledger API",
    description="Warehouse allocations, transfers and bulk moves",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ledger domain context for ledger routes."""
    if not request.url.path.startswith(_LEDGER_PREFIXES):
        # Health check, docs, etc.
        return await call_next(request)

    bind_request_context(method=request.method, path=request.url.path)
    try:
        with ledger.domain_context():
            response = await call_next(request)
    finally:
        clear_request_context()
    return response


register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ledger.api import (  # noqa: E402
    allocation_router,
    inventory_router,
    maintenance_router,
    product_router,
    transfer_router,
    warehouse_router,
)

app.include_router(warehouse_router)
app.include_router(product_router)
app.include_router(allocation_router)
app.include_router(transfer_router)
app.include_router(inventory_router)
app.include_router(maintenance_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": ledger.name}})
