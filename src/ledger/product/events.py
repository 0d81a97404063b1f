"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ledger.domain import ledger


@ledger.event(part_of="Product")
class ProductRegistered:
    """A product became known to the ledger."""

    __version__ = 1

    product_id = Identifier(required=True)
    business_id = Identifier(required=True)
    name = String(required=True)
    sku = String(required=True)
    unit_price = Float()
    registered_at = DateTime(required=True)


@ledger.event(part_of="Product")
class ProductPriceChanged:
    """The unit price used for stock valuation changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float()
    new_price = Float()
    changed_at = DateTime(required=True)
