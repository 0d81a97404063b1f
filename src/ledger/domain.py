"""Ledger bounded context — Stock Allocation and Transfer Coordination.

Tracks per-warehouse stock allocations for every product (event-sourced),
moves stock between warehouses atomically, coordinates bulk moves, and
serves read models to the operations dashboards.
"""

import structlog
from protean.domain import Domain

ledger = Domain(name="ledger")

logger = structlog.get_logger(__name__)
