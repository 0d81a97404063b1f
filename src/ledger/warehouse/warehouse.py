"""Warehouse aggregate (CQRS) — physical location stock is allocated to.

Warehouses are referenced by id from allocation records and transfers.
This is a standard CQRS aggregate (not event sourced).
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String

from ledger.domain import ledger
from ledger.warehouse.events import (
    WarehouseCreated,
    WarehouseDeactivated,
    WarehouseReactivated,
    WarehouseUpdated,
)


class WarehouseStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


@ledger.aggregate
class Warehouse:
    """A physical location where inventory is allocated."""

    name = String(required=True, max_length=255)
    region = String(required=True, max_length=100)
    capacity = Integer(default=0, min_value=0)
    status = String(choices=WarehouseStatus, default=WarehouseStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @property
    def is_active(self):
        return self.status == WarehouseStatus.ACTIVE.value

    @classmethod
    def create(cls, name, region, capacity=0, warehouse_id=None):
        """Create a new warehouse. An explicit id may be supplied by the caller."""
        now = datetime.now(UTC)
        attributes = {
            "name": name,
            "region": region,
            "capacity": capacity,
            "created_at": now,
            "updated_at": now,
        }
        if warehouse_id:
            attributes["id"] = warehouse_id
        warehouse = cls(**attributes)
        warehouse.raise_(
            WarehouseCreated(
                warehouse_id=str(warehouse.id),
                name=name,
                region=region,
                capacity=str(capacity),
                created_at=now,
            )
        )
        return warehouse

    def update_details(self, name=None, region=None, capacity=None):
        """Update warehouse name, region and/or capacity."""
        if capacity is not None and capacity < 0:
            raise ValidationError({"capacity": ["Capacity cannot be negative"]})
        if name is not None:
            self.name = name
        if region is not None:
            self.region = region
        if capacity is not None:
            self.capacity = capacity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            WarehouseUpdated(
                warehouse_id=str(self.id),
                name=self.name,
                region=self.region,
                capacity=str(self.capacity),
                updated_at=self.updated_at,
            )
        )

    def deactivate(self):
        """Deactivate the warehouse."""
        if not self.is_active:
            raise ValidationError({"warehouse": ["Warehouse is already inactive"]})
        self.status = WarehouseStatus.INACTIVE.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            WarehouseDeactivated(
                warehouse_id=str(self.id),
                deactivated_at=self.updated_at,
            )
        )

    def reactivate(self):
        """Bring an inactive warehouse back into service."""
        if self.is_active:
            raise ValidationError({"warehouse": ["Warehouse is already active"]})
        self.status = WarehouseStatus.ACTIVE.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            WarehouseReactivated(
                warehouse_id=str(self.id),
                reactivated_at=self.updated_at,
            )
        )
