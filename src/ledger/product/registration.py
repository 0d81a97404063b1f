"""Product registration — commands and handler.

Enforces SKU uniqueness per business at handler level (cross-instance check
requires a repository query).
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ledger.domain import ledger
from ledger.product.product import Product


@ledger.command(part_of="Product")
class RegisterProduct:
    product_id = Identifier()  # Optional: generated when absent
    business_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    unit_price = Float(default=0.0)
    weight = Float()
    dimensions = String(max_length=100)


@ledger.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    unit_price = Float(required=True)


@ledger.command_handler(part_of=Product)
class ProductRegistrationHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(Product)

        sku = command.sku.strip().upper()
        existing = repo._dao.query.filter(business_id=str(command.business_id), sku=sku).all()
        if existing.items:
            raise ValidationError({"sku": [f"SKU {sku} is already registered for this business"]})

        product = Product.register(
            business_id=command.business_id,
            name=command.name,
            sku=sku,
            unit_price=command.unit_price,
            weight=command.weight,
            dimensions=command.dimensions,
            product_id=command.product_id,
        )
        repo.add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_product_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.unit_price)
        repo.add(product)
