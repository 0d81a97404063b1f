"""Domain events for the Warehouse aggregate."""

from protean.fields import DateTime, Identifier, String

from ledger.domain import ledger


@ledger.event(part_of="Warehouse")
class WarehouseCreated:
    """A new warehouse was created."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    name = String(required=True)
    region = String(required=True)
    capacity = Identifier(required=True)  # Stored as string to avoid Integer(0) issue
    created_at = DateTime(required=True)


@ledger.event(part_of="Warehouse")
class WarehouseUpdated:
    """Warehouse details were updated."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    name = String(required=True)
    region = String(required=True)
    capacity = Identifier(required=True)
    updated_at = DateTime(required=True)


@ledger.event(part_of="Warehouse")
class WarehouseDeactivated:
    """A warehouse was deactivated and no longer receives stock."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@ledger.event(part_of="Warehouse")
class WarehouseReactivated:
    """An inactive warehouse was brought back into service."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    reactivated_at = DateTime(required=True)
