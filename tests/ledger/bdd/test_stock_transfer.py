"""BDD tests for stock transfers."""

from datetime import UTC, datetime, timedelta

from ledger.allocation import store
from ledger.bulk.coordinator import confirm_bulk_move
from ledger.transfer.orchestrator import create_transfer
from ledger.transfer.scheduling import run_due_transfers
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/stock_transfer.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('{quantity:d} units of "{product_id}" were transferred from "{source}" to "{target}"'))
def earlier_transfer(quantity, product_id, source, target):
    assert create_transfer(source, target, product_id, quantity).success


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse('{quantity:d} units of "{product_id}" are transferred from "{source}" to "{target}"'),
    target_fixture="result",
)
def transfer(quantity, product_id, source, target):
    return create_transfer(source, target, product_id, quantity)


@when(
    parsers.cfparse('{quantity:d} units of "{product_id}" are scheduled from "{source}" to "{target}" for tomorrow'),
    target_fixture="result",
)
def scheduled_transfer(quantity, product_id, source, target):
    return create_transfer(
        source,
        target,
        product_id,
        quantity,
        scheduled_date=datetime.now(UTC) + timedelta(days=1),
    )


@when("scheduled transfers are run two days from now")
def run_scheduled():
    run_due_transfers(as_of=datetime.now(UTC) + timedelta(days=2))


@when(
    parsers.cfparse(
        'a bulk move of {first_qty:d} "{first}" and {second_qty:d} "{second}" to "{target}" is confirmed'
    ),
    target_fixture="outcome",
)
def bulk_move(first_qty, first, second_qty, second, target):
    return confirm_bulk_move(
        target,
        [
            {"product_id": first, "quantity": first_qty},
            {"product_id": second, "quantity": second_qty},
        ],
    )


@when(parsers.cfparse('"{warehouse_id}" is strictly adjusted by {delta:d} units of "{product_id}"'))
def strict_adjustment(warehouse_id, delta, product_id, error):
    try:
        store.upsert_delta(product_id, warehouse_id, quantity_delta=delta, clamp=False)
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the transfer succeeds")
def transfer_succeeds(result):
    assert result.success, result.message


@then(parsers.cfparse('the transfer is rejected with a "{kind}" error'))
def transfer_rejected(result, kind):
    assert not result.success
    assert result.error_kind().value == kind


@then(parsers.cfparse('the rejection mentions "{text}"'))
def rejection_mentions(result, text):
    assert text in result.message


@then(parsers.cfparse('the transfer is "{status}"'))
def transfer_status(result, status):
    assert result.status == status


@then(parsers.cfparse("{succeeded:d} item succeeds and {failed:d} item fails"))
def bulk_counts(outcome, succeeded, failed):
    assert outcome.succeeded == succeeded
    assert outcome.failed == failed
