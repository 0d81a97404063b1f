"""Ledger directory — maps a product to its ProductLedger aggregate."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ledger.allocation.events import LedgerOpened
from ledger.allocation.ledger import ProductLedger
from ledger.domain import ledger


@ledger.projection
class LedgerDirectory:
    product_id = Identifier(identifier=True, required=True)
    ledger_id = Identifier(required=True)
    opened_at = DateTime()


@ledger.projector(projector_for=LedgerDirectory, aggregates=[ProductLedger])
class LedgerDirectoryProjector:
    @on(LedgerOpened)
    def on_ledger_opened(self, event):
        current_domain.repository_for(LedgerDirectory).add(
            LedgerDirectory(
                product_id=event.product_id,
                ledger_id=event.ledger_id,
                opened_at=event.opened_at,
            )
        )
