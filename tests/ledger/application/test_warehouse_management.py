"""Application tests for warehouse management commands."""

import pytest
from ledger.warehouse.management import (
    CreateWarehouse,
    DeactivateWarehouse,
    ReactivateWarehouse,
    UpdateWarehouse,
)
from ledger.warehouse.warehouse import Warehouse, WarehouseStatus
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _create(**overrides):
    defaults = {"name": "Central", "region": "North", "capacity": 500}
    defaults.update(overrides)
    return current_domain.process(CreateWarehouse(**defaults), asynchronous=False)


class TestWarehouseManagement:
    def test_create(self):
        warehouse_id = _create()
        warehouse = current_domain.repository_for(Warehouse).get(warehouse_id)
        assert warehouse.name == "Central"
        assert warehouse.capacity == 500

    def test_create_with_explicit_id(self):
        assert _create(warehouse_id="wh-01") == "wh-01"

    def test_update(self):
        warehouse_id = _create()
        current_domain.process(UpdateWarehouse(warehouse_id=warehouse_id, capacity=800), asynchronous=False)

        warehouse = current_domain.repository_for(Warehouse).get(warehouse_id)
        assert warehouse.capacity == 800
        assert warehouse.region == "North"

    def test_deactivate_and_reactivate(self):
        warehouse_id = _create()
        current_domain.process(DeactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)
        assert current_domain.repository_for(Warehouse).get(warehouse_id).status == WarehouseStatus.INACTIVE.value

        current_domain.process(ReactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)
        assert current_domain.repository_for(Warehouse).get(warehouse_id).status == WarehouseStatus.ACTIVE.value

    def test_double_deactivate_rejected(self):
        warehouse_id = _create()
        current_domain.process(DeactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(DeactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)

    def test_unknown_warehouse(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(DeactivateWarehouse(warehouse_id="missing"), asynchronous=False)
