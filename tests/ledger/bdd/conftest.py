"""Shared BDD fixtures and step definitions for the Ledger domain."""

import pytest
from ledger.allocation import store
from ledger.product.registration import RegisterProduct
from ledger.warehouse.management import CreateWarehouse, DeactivateWarehouse
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('active warehouses "{first}" and "{second}"'))
def active_warehouses(first, second):
    for warehouse_id in (first, second):
        current_domain.process(
            CreateWarehouse(warehouse_id=warehouse_id, name=warehouse_id.upper(), region="North", capacity=1000),
            asynchronous=False,
        )


@given(parsers.cfparse('a registered product "{product_id}"'))
def registered_product(product_id):
    current_domain.process(
        RegisterProduct(
            product_id=product_id,
            business_id="biz-001",
            name=f"Product {product_id}",
            sku=product_id.upper(),
            unit_price=5.0,
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('"{warehouse_id}" holds {quantity:d} units of "{product_id}" with {safety:d} in safety stock'))
def stocked_allocation(warehouse_id, quantity, product_id, safety):
    store.upsert_delta(product_id, warehouse_id, quantity_delta=quantity, safety_stock_delta=safety)


@given(parsers.cfparse('warehouse "{warehouse_id}" is deactivated'))
def deactivated_warehouse(warehouse_id):
    current_domain.process(DeactivateWarehouse(warehouse_id=warehouse_id), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('"{warehouse_id}" holds {quantity:d} units of "{product_id}"'))
def warehouse_holds(warehouse_id, quantity, product_id):
    snapshot = store.get(product_id, warehouse_id)
    assert snapshot is not None
    assert snapshot.allocated_quantity == quantity


@then(parsers.cfparse('"{product_id}" has {quantity:d} units across all warehouses'))
def product_total(product_id, quantity):
    assert store.find_ledger(product_id).total_allocated() == quantity
