"""Warehouse management — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ledger.domain import ledger
from ledger.warehouse.warehouse import Warehouse


@ledger.command(part_of="Warehouse")
class CreateWarehouse:
    """Create a new warehouse."""

    warehouse_id = Identifier()  # Optional: generated when absent
    name = String(required=True, max_length=255)
    region = String(required=True, max_length=100)
    capacity = Integer(default=0)


@ledger.command(part_of="Warehouse")
class UpdateWarehouse:
    """Update warehouse details."""

    warehouse_id = Identifier(required=True)
    name = String(max_length=255)
    region = String(max_length=100)
    capacity = Integer()


@ledger.command(part_of="Warehouse")
class DeactivateWarehouse:
    """Deactivate a warehouse."""

    warehouse_id = Identifier(required=True)


@ledger.command(part_of="Warehouse")
class ReactivateWarehouse:
    """Reactivate a warehouse."""

    warehouse_id = Identifier(required=True)


@ledger.command_handler(part_of=Warehouse)
class WarehouseManagementHandler:
    @handle(CreateWarehouse)
    def create_warehouse(self, command):
        warehouse = Warehouse.create(
            name=command.name,
            region=command.region,
            capacity=command.capacity or 0,
            warehouse_id=command.warehouse_id,
        )
        current_domain.repository_for(Warehouse).add(warehouse)
        return str(warehouse.id)

    @handle(UpdateWarehouse)
    def update_warehouse(self, command):
        repo = current_domain.repository_for(Warehouse)
        warehouse = repo.get(command.warehouse_id)
        warehouse.update_details(
            name=command.name,
            region=command.region,
            capacity=command.capacity,
        )
        repo.add(warehouse)

    @handle(DeactivateWarehouse)
    def deactivate_warehouse(self, command):
        repo = current_domain.repository_for(Warehouse)
        warehouse = repo.get(command.warehouse_id)
        warehouse.deactivate()
        repo.add(warehouse)

    @handle(ReactivateWarehouse)
    def reactivate_warehouse(self, command):
        repo = current_domain.repository_for(Warehouse)
        warehouse = repo.get(command.warehouse_id)
        warehouse.reactivate()
        repo.add(warehouse)
