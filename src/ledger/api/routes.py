"""FastAPI routes for the Ledger domain.

Thin adapters that translate HTTP requests into commands and service calls.
Protean ValidationError / ObjectNotFoundError raised by plain commands are
mapped to HTTP responses by ``register_exception_handlers``; transfer and
bulk-move endpoints carry their own structured error payloads instead.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from ledger import queries
from ledger.allocation import store
from ledger.api.schemas import (
    AdjustAllocationRequest,
    AllocationListResponse,
    AllocationResponse,
    AllocationRowResponse,
    BatchAllocationRequest,
    BatchAllocationResponse,
    BulkMoveRequest,
    BulkOutcomeResponse,
    BulkProposalResponse,
    ChangePriceRequest,
    ConfigureThresholdsRequest,
    CreateTransferRequest,
    CreateWarehouseRequest,
    EvacuationPlanResponse,
    LowStockResponse,
    MovementResponse,
    ProductIdResponse,
    RegisterProductRequest,
    RunScheduledTransfersRequest,
    RunScheduledTransfersResponse,
    StatusResponse,
    SummaryResponse,
    TransferListResponse,
    TransferRecordResponse,
    TransferResultResponse,
    UpdateWarehouseRequest,
    WarehouseIdResponse,
    WarehouseProductResponse,
    WarehouseResponse,
)
from ledger.bulk.coordinator import confirm_bulk_move, propose_bulk_move
from ledger.bulk.evacuation import plan_evacuation
from ledger.errors import ErrorKind
from ledger.product.registration import ChangeProductPrice, RegisterProduct
from ledger.transfer.orchestrator import create_transfer
from ledger.transfer.scheduling import run_due_transfers
from ledger.warehouse.management import (
    CreateWarehouse,
    DeactivateWarehouse,
    ReactivateWarehouse,
    UpdateWarehouse,
)

_ERROR_STATUS = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


def _iso(value):
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Warehouse Router
# ---------------------------------------------------------------------------
warehouse_router = APIRouter(prefix="/warehouses", tags=["warehouses"])


@warehouse_router.post("", status_code=201, response_model=WarehouseIdResponse)
async def create_warehouse(body: CreateWarehouseRequest) -> WarehouseIdResponse:
    command = CreateWarehouse(
        warehouse_id=body.warehouse_id,
        name=body.name,
        region=body.region,
        capacity=body.capacity,
    )
    result = current_domain.process(command, asynchronous=False)
    return WarehouseIdResponse(warehouse_id=result)


@warehouse_router.get("", response_model=list[WarehouseResponse])
async def list_warehouses() -> list[WarehouseResponse]:
    return [WarehouseResponse(**row) for row in queries.list_warehouses()]


@warehouse_router.put("/{warehouse_id}", response_model=StatusResponse)
async def update_warehouse(warehouse_id: str, body: UpdateWarehouseRequest) -> StatusResponse:
    command = UpdateWarehouse(
        warehouse_id=warehouse_id,
        name=body.name,
        region=body.region,
        capacity=body.capacity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@warehouse_router.put("/{warehouse_id}/deactivate", response_model=StatusResponse)
async def deactivate_warehouse(warehouse_id: str) -> StatusResponse:
    current_domain.process(DeactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)
    return StatusResponse()


@warehouse_router.put("/{warehouse_id}/reactivate", response_model=StatusResponse)
async def reactivate_warehouse(warehouse_id: str) -> StatusResponse:
    current_domain.process(ReactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)
    return StatusResponse()


@warehouse_router.get("/{warehouse_id}/products", response_model=list[WarehouseProductResponse])
async def list_warehouse_products(warehouse_id: str) -> list[WarehouseProductResponse]:
    return [WarehouseProductResponse(**row) for row in queries.list_warehouse_products(warehouse_id)]


@warehouse_router.get("/{warehouse_id}/evacuation-plan", response_model=EvacuationPlanResponse)
async def evacuation_plan(warehouse_id: str, target_warehouse_id: str | None = None) -> EvacuationPlanResponse:
    plan = plan_evacuation(warehouse_id, target_warehouse_id=target_warehouse_id)
    return EvacuationPlanResponse(**plan.to_dict())


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        product_id=body.product_id,
        business_id=body.business_id,
        name=body.name,
        sku=body.sku,
        unit_price=body.unit_price,
        weight=body.weight,
        dimensions=body.dimensions,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def change_product_price(product_id: str, body: ChangePriceRequest) -> StatusResponse:
    current_domain.process(
        ChangeProductPrice(product_id=product_id, unit_price=body.unit_price),
        asynchronous=False,
    )
    return StatusResponse()


# ---------------------------------------------------------------------------
# Allocation Router
# ---------------------------------------------------------------------------
allocation_router = APIRouter(prefix="/allocations", tags=["allocations"])


@allocation_router.get("", response_model=AllocationListResponse)
async def list_allocations(
    search: str | None = None,
    warehouse_id: str | None = None,
    product_id: str | None = None,
    low_stock: bool = False,
    available_only: bool = False,
    page: int = 1,
    limit: int = queries.DEFAULT_PAGE_SIZE,
) -> AllocationListResponse:
    result = queries.list_allocations(
        search=search,
        warehouse_id=warehouse_id,
        product_id=product_id,
        low_stock=low_stock,
        available_only=available_only,
        page=page,
        limit=limit,
    )
    return AllocationListResponse(
        allocations=[AllocationRowResponse(**row) for row in result.allocations],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages(),
        summary=SummaryResponse(**result.totals.to_dict()),
    )


@allocation_router.put("", response_model=BatchAllocationResponse)
async def upsert_allocations(body: BatchAllocationRequest) -> BatchAllocationResponse:
    result = store.upsert_batch([entry.model_dump() for entry in body.allocations], reason=body.reason)
    return BatchAllocationResponse(**result.to_dict())


@allocation_router.get("/{product_id}/{warehouse_id}", response_model=AllocationResponse)
async def get_allocation(product_id: str, warehouse_id: str) -> AllocationResponse:
    snapshot = store.get(product_id, warehouse_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No allocation for this product at the warehouse")
    return AllocationResponse(**snapshot.to_dict())


@allocation_router.put("/{product_id}/{warehouse_id}", response_model=AllocationResponse)
async def adjust_allocation(product_id: str, warehouse_id: str, body: AdjustAllocationRequest) -> AllocationResponse:
    snapshot = store.upsert_delta(
        product_id,
        warehouse_id,
        quantity_delta=body.quantity_delta,
        safety_stock_delta=body.safety_stock_delta,
        clamp=body.clamp,
        reason=body.reason,
    )
    return AllocationResponse(**snapshot.to_dict())


@allocation_router.put("/{product_id}/{warehouse_id}/thresholds", response_model=AllocationResponse)
async def configure_thresholds(
    product_id: str, warehouse_id: str, body: ConfigureThresholdsRequest
) -> AllocationResponse:
    snapshot = store.configure(
        product_id,
        warehouse_id,
        reorder_point=body.reorder_point,
        max_stock=body.max_stock,
    )
    return AllocationResponse(**snapshot.to_dict())


# ---------------------------------------------------------------------------
# Transfer Router
# ---------------------------------------------------------------------------
transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])


def _transfer_record(transfer):
    return TransferRecordResponse(
        transfer_id=str(transfer.id),
        product_id=str(transfer.product_id),
        from_warehouse_id=str(transfer.from_warehouse_id),
        to_warehouse_id=str(transfer.to_warehouse_id),
        quantity=transfer.quantity,
        priority=transfer.priority,
        reason=transfer.reason,
        notes=transfer.notes,
        status=transfer.status,
        failure_reason=transfer.failure_reason,
        requested_by=transfer.requested_by,
        scheduled_date=_iso(transfer.scheduled_date),
        created_at=_iso(transfer.created_at),
        completed_at=_iso(transfer.completed_at),
    )


@transfer_router.post("", status_code=201, response_model=TransferResultResponse)
async def request_transfer(body: CreateTransferRequest):
    result = create_transfer(
        from_warehouse_id=body.from_warehouse_id,
        to_warehouse_id=body.to_warehouse_id,
        product_id=body.product_id,
        quantity=body.quantity,
        notes=body.notes,
        priority=body.priority,
        reason=body.reason,
        scheduled_date=body.scheduled_date,
        requested_by=body.requested_by,
    )
    payload = TransferResultResponse(**result.to_dict()).model_dump(mode="json")
    if result.success:
        return JSONResponse(status_code=201, content=payload)
    return JSONResponse(status_code=_ERROR_STATUS[result.error_kind()], content=payload)


@transfer_router.get("", response_model=TransferListResponse)
async def list_transfers(
    status: str | None = None,
    warehouse_id: str | None = None,
    product_id: str | None = None,
    page: int = 1,
    limit: int = queries.DEFAULT_PAGE_SIZE,
) -> TransferListResponse:
    result = queries.list_transfers(
        status=status,
        warehouse_id=warehouse_id,
        product_id=product_id,
        page=page,
        limit=limit,
    )
    return TransferListResponse(
        transfers=[_transfer_record(t) for t in result.transfers],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages(),
    )


@transfer_router.get("/{transfer_id}", response_model=TransferRecordResponse)
async def get_transfer(transfer_id: str) -> TransferRecordResponse:
    transfer = queries.get_transfer(transfer_id)
    if transfer is None:
        raise HTTPException(status_code=404, detail=f"Transfer {transfer_id} not found")
    return _transfer_record(transfer)


@transfer_router.post("/bulk/propose", response_model=BulkProposalResponse)
async def propose_bulk(body: BulkMoveRequest) -> BulkProposalResponse:
    proposal = propose_bulk_move(body.target_warehouse_id, [item.model_dump() for item in body.items])
    return BulkProposalResponse(**proposal.to_dict())


@transfer_router.post("/bulk/confirm", response_model=BulkOutcomeResponse)
async def confirm_bulk(body: BulkMoveRequest) -> BulkOutcomeResponse:
    outcome = confirm_bulk_move(
        body.target_warehouse_id,
        [item.model_dump() for item in body.items],
        requested_by=body.requested_by,
    )
    return BulkOutcomeResponse(**outcome.to_dict())


# ---------------------------------------------------------------------------
# Inventory Router: dashboard reads
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.get("/summary", response_model=SummaryResponse)
async def inventory_summary(warehouse_id: str | None = None) -> SummaryResponse:
    return SummaryResponse(**queries.summary(warehouse_id=warehouse_id).to_dict())


@inventory_router.get("/movements", response_model=list[MovementResponse])
async def stock_movements(product_id: str | None = None, warehouse_id: str | None = None) -> list[MovementResponse]:
    return [
        MovementResponse(
            entry_id=str(entry.entry_id),
            product_id=str(entry.product_id),
            warehouse_id=str(entry.warehouse_id),
            event_type=entry.event_type,
            description=entry.description,
            quantity_change=entry.quantity_change,
            previous_level=entry.previous_level,
            new_level=entry.new_level,
            transfer_id=str(entry.transfer_id) if entry.transfer_id else None,
            occurred_at=_iso(entry.occurred_at),
        )
        for entry in queries.movement_history(product_id=product_id, warehouse_id=warehouse_id)
    ]


@inventory_router.get("/low-stock", response_model=list[LowStockResponse])
async def low_stock(warehouse_id: str | None = None) -> list[LowStockResponse]:
    return [
        LowStockResponse(
            product_id=str(report.product_id),
            warehouse_id=str(report.warehouse_id),
            allocated_quantity=report.allocated_quantity,
            available=report.available,
            reorder_point=report.reorder_point,
            is_critical=report.is_critical,
            detected_at=_iso(report.detected_at),
        )
        for report in queries.low_stock_alerts(warehouse_id=warehouse_id)
    ]


# ---------------------------------------------------------------------------
# Maintenance: periodic background job endpoints
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/scheduled-transfers/run", response_model=RunScheduledTransfersResponse)
async def run_scheduled_transfers(
    body: RunScheduledTransfersRequest | None = None,
) -> RunScheduledTransfersResponse:
    """Apply Pending transfers whose scheduled date has passed.

    Designed to be called periodically by an external scheduler.
    Idempotent: completed and failed transfers are never picked up again.
    """
    counts = run_due_transfers(as_of=body.as_of if body else None)
    return RunScheduledTransfersResponse(**counts)
