"""Discount administration — commands and handler.

Definitions are validated by the aggregate's invariants; the handler adds
the checks that need the catalog as a whole (code uniqueness, no deletion
once a discount has been redeemed).
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout, logger
from checkout.promotion.discount import Discount, DiscountType
from checkout.promotion.usage import DiscountUsage

_TERM_FIELDS = (
    "code",
    "name",
    "description",
    "discount_type",
    "percentage_value",
    "fixed_value",
    "minimum_order_value",
    "maximum_discount_amount",
    "start_date",
    "end_date",
    "is_featured",
    "max_usage_count",
    "max_usage_per_customer",
)


def _ids(value) -> list[str]:
    if not value:
        return []
    ids = json.loads(value) if isinstance(value, str) else value
    return [str(i) for i in ids]


@checkout.command(part_of="Discount")
class CreateDiscount:
    code = String(required=True, max_length=50)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True)
    percentage_value = Float()
    fixed_value = Float()
    minimum_order_value = Float()
    maximum_discount_amount = Float()
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    is_featured = Boolean(default=False)
    scope = String(default="AllProducts")
    product_ids = Text()  # JSON array
    category_ids = Text()  # JSON array
    max_usage_count = Integer()
    max_usage_per_customer = Integer()
    created_by = String(max_length=255)


@checkout.command(part_of="Discount")
class UpdateDiscount:
    """Change a discount's terms; only the fields supplied are touched."""

    discount_id = Identifier(required=True)
    code = String(max_length=50)
    name = String(max_length=100)
    description = String(max_length=500)
    discount_type = String()
    percentage_value = Float()
    fixed_value = Float()
    minimum_order_value = Float()
    maximum_discount_amount = Float()
    start_date = DateTime()
    end_date = DateTime()
    is_featured = Boolean()
    scope = String()
    max_usage_count = Integer()
    max_usage_per_customer = Integer()


@checkout.command(part_of="Discount")
class DeleteDiscount:
    discount_id = Identifier(required=True)


@checkout.command(part_of="Discount")
class ActivateDiscount:
    discount_id = Identifier(required=True)


@checkout.command(part_of="Discount")
class DeactivateDiscount:
    discount_id = Identifier(required=True)


@checkout.command(part_of="Discount")
class AddProductsToDiscount:
    discount_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON array


@checkout.command(part_of="Discount")
class RemoveProductsFromDiscount:
    discount_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON array


@checkout.command(part_of="Discount")
class AddCategoriesToDiscount:
    discount_id = Identifier(required=True)
    category_ids = Text(required=True)  # JSON array


@checkout.command(part_of="Discount")
class RemoveCategoriesFromDiscount:
    discount_id = Identifier(required=True)
    category_ids = Text(required=True)  # JSON array


@checkout.command_handler(part_of=Discount)
class ManageDiscountHandler:
    @handle(CreateDiscount)
    def create_discount(self, command):
        repo = current_domain.repository_for(Discount)
        if repo.code_taken(command.code):
            raise ValidationError({"code": [f"Discount code {command.code.upper()} already exists"]})

        discount = Discount.create(
            code=command.code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            percentage_value=command.percentage_value,
            fixed_value=command.fixed_value,
            minimum_order_value=command.minimum_order_value,
            maximum_discount_amount=command.maximum_discount_amount,
            start_date=command.start_date,
            end_date=command.end_date,
            is_active=command.is_active,
            is_featured=command.is_featured,
            scope=command.scope,
            product_ids=_ids(command.product_ids),
            category_ids=_ids(command.category_ids),
            max_usage_count=command.max_usage_count,
            max_usage_per_customer=command.max_usage_per_customer,
            created_by=command.created_by,
        )
        repo.add(discount)
        logger.info("discount_created", discount_id=str(discount.id), code=discount.code)
        return str(discount.id)

    @handle(UpdateDiscount)
    def update_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)

        changes = {name: getattr(command, name) for name in _TERM_FIELDS if getattr(command, name) is not None}
        if "code" in changes and repo.code_taken(changes["code"], exclude_id=discount.id):
            raise ValidationError({"code": [f"Discount code {changes['code'].upper()} already exists"]})

        # Switching type drops the value of the previous type
        if changes.get("discount_type") == DiscountType.PERCENTAGE.value:
            changes["fixed_value"] = None
        elif changes.get("discount_type") == DiscountType.FIXED_AMOUNT.value:
            changes["percentage_value"] = None

        if changes:
            discount.update_terms(**changes)
        if command.scope and command.scope != discount.scope:
            discount.change_scope(command.scope)

        repo.add(discount)
        logger.info("discount_updated", discount_id=str(discount.id), fields=sorted(changes))

    @handle(DeleteDiscount)
    def delete_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        if current_domain.repository_for(DiscountUsage).has_usage(discount.id) or discount.current_usage_count:
            raise ValidationError({"discount": ["A discount that has been used cannot be deleted"]})

        repo._dao.delete(discount)
        logger.info("discount_deleted", discount_id=str(discount.id), code=discount.code)

    @handle(ActivateDiscount)
    def activate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.activate()
        repo.add(discount)

    @handle(DeactivateDiscount)
    def deactivate_discount(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.deactivate()
        repo.add(discount)

    @handle(AddProductsToDiscount)
    def add_products(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.include_products(_ids(command.product_ids))
        repo.add(discount)

    @handle(RemoveProductsFromDiscount)
    def remove_products(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.exclude_products(_ids(command.product_ids))
        repo.add(discount)

    @handle(AddCategoriesToDiscount)
    def add_categories(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.include_categories(_ids(command.category_ids))
        repo.add(discount)

    @handle(RemoveCategoriesFromDiscount)
    def remove_categories(self, command):
        repo = current_domain.repository_for(Discount)
        discount = repo.get(command.discount_id)
        discount.exclude_categories(_ids(command.category_ids))
        repo.add(discount)
