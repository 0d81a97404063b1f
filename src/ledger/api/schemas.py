"""Pydantic request/response schemas for the Ledger API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field, StrictInt


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class ErrorDetail(BaseModel):
    kind: str
    field: str | None = None
    message: str
    product_id: str | None = None


class ProductErrorDetail(BaseModel):
    product_id: str | None = None
    reason: str


# ---------------------------------------------------------------------------
# Warehouses
# ---------------------------------------------------------------------------
class CreateWarehouseRequest(BaseModel):
    warehouse_id: str | None = None
    name: str = Field(min_length=1, max_length=255)
    region: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=0, default=0)


class UpdateWarehouseRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    region: str | None = Field(default=None, max_length=100)
    capacity: int | None = Field(default=None, ge=0)


class WarehouseIdResponse(BaseModel):
    warehouse_id: str


class WarehouseResponse(BaseModel):
    id: str
    name: str
    region: str
    capacity: int
    current_stock: int
    status: str


class WarehouseProductResponse(BaseModel):
    product_id: str
    name: str | None = None
    sku: str | None = None
    allocated_quantity: int
    safety_stock: int
    available: int
    status: str
    reorder_point: int
    max_stock: int


class PlannedMoveResponse(BaseModel):
    product_id: str
    target_warehouse_id: str
    quantity: int


class RetainedStockResponse(BaseModel):
    product_id: str
    safety_stock: int


class EvacuationPlanResponse(BaseModel):
    warehouse_id: str
    total_quantity: int
    moves: list[PlannedMoveResponse]
    retained: list[RetainedStockResponse]


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    product_id: str | None = None
    business_id: str
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=50)
    unit_price: float = Field(ge=0.0, default=0.0)
    weight: float | None = Field(default=None, ge=0.0)
    dimensions: str | None = Field(default=None, max_length=100)


class ChangePriceRequest(BaseModel):
    unit_price: float = Field(ge=0.0)


class ProductIdResponse(BaseModel):
    product_id: str


# ---------------------------------------------------------------------------
# Allocations
# ---------------------------------------------------------------------------
class AdjustAllocationRequest(BaseModel):
    quantity_delta: int = 0
    safety_stock_delta: int = 0
    clamp: bool = True
    reason: str | None = Field(default=None, max_length=255)


class ConfigureThresholdsRequest(BaseModel):
    reorder_point: int | None = Field(default=None, ge=0)
    max_stock: int | None = Field(default=None, ge=0)


class AllocationResponse(BaseModel):
    product_id: str
    warehouse_id: str
    allocated_quantity: int
    safety_stock: int
    reorder_point: int
    max_stock: int
    available: int
    status: str
    last_updated: str | None = None


class AllocationRowResponse(AllocationResponse):
    product_name: str | None = None
    sku: str | None = None
    warehouse_name: str | None = None
    is_low_stock: bool


class AllocationLevelRequest(BaseModel):
    product_id: str
    warehouse_id: str
    allocated_quantity: int = Field(ge=0)
    safety_stock: int = Field(ge=0, default=0)


class BatchAllocationRequest(BaseModel):
    allocations: list[AllocationLevelRequest] = Field(min_length=1, max_length=1000)
    reason: str | None = Field(default=None, max_length=255)


class BatchAllocationResponse(BaseModel):
    created: list[AllocationResponse]
    updated: list[AllocationResponse]
    errors: list[ErrorDetail] = []


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------
class CreateTransferRequest(BaseModel):
    # Optional so that every missing field is reported together
    from_warehouse_id: str | None = None
    to_warehouse_id: str | None = None
    product_id: str | None = None
    quantity: StrictInt | None = None
    notes: str | None = None
    priority: str = "Normal"
    reason: str = "Other"
    scheduled_date: datetime | None = None
    requested_by: str | None = None


class TransferResultResponse(BaseModel):
    success: bool
    transfer_id: str | None = None
    status: str | None = None
    message: str = ""
    error: str | None = None
    errors: list[ErrorDetail] = []
    source: AllocationResponse | None = None
    destination: AllocationResponse | None = None


class TransferRecordResponse(BaseModel):
    transfer_id: str
    product_id: str
    from_warehouse_id: str
    to_warehouse_id: str
    quantity: int
    priority: str
    reason: str
    notes: str | None = None
    status: str
    failure_reason: str | None = None
    requested_by: str | None = None
    scheduled_date: str | None = None
    created_at: str | None = None
    completed_at: str | None = None


class TransferListResponse(BaseModel):
    transfers: list[TransferRecordResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class BulkMoveItemRequest(BaseModel):
    product_id: str | None = None
    quantity: StrictInt | None = None
    source_warehouse_id: str | None = None


class BulkMoveRequest(BaseModel):
    target_warehouse_id: str
    items: list[BulkMoveItemRequest]
    requested_by: str | None = None


class BulkMoveResponse(BaseModel):
    product_id: str
    source_warehouse_id: str
    target_warehouse_id: str
    quantity: int
    available: int


class BulkProposalResponse(BaseModel):
    valid: bool
    moves: list[BulkMoveResponse] = []
    errors: list[ProductErrorDetail] = []


class BulkOutcomeResponse(BaseModel):
    succeeded: int
    failed: int
    transfer_ids: list[str]
    errors: list[ProductErrorDetail] = []


# ---------------------------------------------------------------------------
# Inventory reads
# ---------------------------------------------------------------------------
class SummaryResponse(BaseModel):
    total_items: int
    low_stock_items: int
    out_of_stock_items: int
    total_quantity: int
    total_reserved: int
    total_value: float


class AllocationListResponse(BaseModel):
    allocations: list[AllocationRowResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    summary: SummaryResponse


class MovementResponse(BaseModel):
    entry_id: str
    product_id: str
    warehouse_id: str
    event_type: str
    description: str
    quantity_change: int
    previous_level: int
    new_level: int
    transfer_id: str | None = None
    occurred_at: str | None = None


class LowStockResponse(BaseModel):
    product_id: str
    warehouse_id: str
    allocated_quantity: int
    available: int
    reorder_point: int
    is_critical: bool
    detected_at: str | None = None


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
class RunScheduledTransfersRequest(BaseModel):
    as_of: datetime | None = None


class RunScheduledTransfersResponse(BaseModel):
    due: int
    completed: int
    failed: int
    skipped: int = 0
