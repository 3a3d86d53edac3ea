"""Catalogue reference — read-only product and variant lookups.

Checkout never owns catalogue data. It keeps two thin projections, fed by
the catalogue (or seeded directly), holding just enough to price cart lines
and to resolve a product's category for discount scoping. Nothing here links
back to discounts; discounts refer to products and categories by id only.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.domain import checkout


@checkout.projection
class ProductReference:
    product_id = Identifier(identifier=True, required=True)
    name = String(max_length=255)
    category_id = Identifier()
    price = Float(default=0.0)


@checkout.projection
class VariantReference:
    variant_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    sku = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0)


class CatalogueReference:
    """Lookup facade over the catalogue projections."""

    def get_product(self, product_id) -> ProductReference:
        return current_domain.repository_for(ProductReference).get(str(product_id))

    def get_variant(self, variant_id) -> VariantReference:
        return current_domain.repository_for(VariantReference).get(str(variant_id))

    def category_of(self, product_id) -> str | None:
        """Category id of a product, or None when the product is unknown or uncategorised."""
        try:
            product = self.get_product(product_id)
        except ObjectNotFoundError:
            return None
        return str(product.category_id) if product.category_id else None

    def priced_variant(self, variant_id) -> VariantReference:
        """Return the variant if it can back a sale, raising ValidationError otherwise."""
        try:
            variant = self.get_variant(variant_id)
        except ObjectNotFoundError:
            raise ValidationError({"variant_id": [f"Variant {variant_id} is not in the catalogue"]}) from None
        if not variant.price or variant.price <= 0:
            raise ValidationError({"variant_id": [f"Variant {variant_id} has no sale price"]})
        return variant

    # -------------------------------------------------------------------
    # Seeding (catalogue sync, fixtures)
    # -------------------------------------------------------------------
    def register_product(self, product_id, price, category_id=None, name=None) -> ProductReference:
        product = ProductReference(
            product_id=str(product_id),
            name=name,
            category_id=str(category_id) if category_id else None,
            price=price,
        )
        current_domain.repository_for(ProductReference).add(product)
        return product

    def register_variant(self, variant_id, product_id, price, stock_quantity=0, sku=None) -> VariantReference:
        variant = VariantReference(
            variant_id=str(variant_id),
            product_id=str(product_id),
            sku=sku,
            price=price,
            stock_quantity=stock_quantity,
        )
        current_domain.repository_for(VariantReference).add(variant)
        return variant
