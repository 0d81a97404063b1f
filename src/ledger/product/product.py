"""Product aggregate (CQRS) — reference data for allocation reporting.

Products are owned by a business. The ledger keeps the name, SKU and unit
price it needs for warehouse listings and stock valuation; everything else
about a product lives with the owning business.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from ledger.domain import ledger
from ledger.product.events import ProductPriceChanged, ProductRegistered


@ledger.aggregate
class Product:
    business_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    unit_price = Float(default=0.0, min_value=0.0)
    weight = Float(min_value=0.0)  # kg
    dimensions = String(max_length=100)  # "LxWxH" in cm
    registered_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        business_id,
        name,
        sku,
        unit_price=0.0,
        weight=None,
        dimensions=None,
        product_id=None,
    ):
        now = datetime.now(UTC)
        attributes = {
            "business_id": business_id,
            "name": name,
            "sku": sku.strip().upper(),
            "unit_price": unit_price or 0.0,
            "weight": weight,
            "dimensions": dimensions,
            "registered_at": now,
            "updated_at": now,
        }
        if product_id:
            attributes["id"] = product_id
        product = cls(**attributes)
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                business_id=str(business_id),
                name=name,
                sku=product.sku,
                unit_price=product.unit_price,
                registered_at=now,
            )
        )
        return product

    def change_price(self, unit_price):
        if unit_price is None or unit_price < 0:
            raise ValidationError({"unit_price": ["Unit price cannot be negative"]})
        previous = self.unit_price
        self.unit_price = unit_price
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=unit_price,
                changed_at=self.updated_at,
            )
        )
