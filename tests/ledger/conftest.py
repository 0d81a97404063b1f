import os

import pytest


@pytest.fixture(scope="session")
def _ledger_domain(request):
    """Initialize the ledger domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ledger.domain import ledger

    ledger.init()
    return ledger


@pytest.fixture(scope="session", autouse=True)
def setup_db(_ledger_domain):
    from ledger.utils.db import drop_db, setup_db

    setup_db(_ledger_domain)

    yield

    drop_db(_ledger_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_ledger_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _ledger_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()
