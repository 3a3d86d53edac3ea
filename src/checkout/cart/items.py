"""Cart commands and handler — creation, line edits, expiry."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.catalogue.reference import CatalogueReference
from checkout.domain import checkout, logger


@checkout.command(part_of="Cart")
class CreateCart:
    """Open a cart for a signed-in customer or a guest session."""

    customer_email = String(max_length=255)
    session_id = String(max_length=255)


@checkout.command(part_of="Cart")
class AddToCart:
    cart_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@checkout.command(part_of="Cart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@checkout.command(part_of="Cart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@checkout.command(part_of="Cart")
class ExpireCartItems:
    """Close every active line of a stale cart."""

    cart_id = Identifier(required=True)


@checkout.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(
            customer_email=command.customer_email,
            session_id=command.session_id,
        )
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        variant = CatalogueReference().priced_variant(command.variant_id)

        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        item = cart.add_item(
            variant_id=command.variant_id,
            product_id=variant.product_id,
            quantity=command.quantity,
            unit_price=variant.price,
        )
        repo.add(cart)
        return str(item.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)

    @handle(ExpireCartItems)
    def expire_cart_items(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        expired = cart.expire_items()
        repo.add(cart)
        if expired:
            logger.info("cart_items_expired", cart_id=str(cart.id), count=len(expired))
        return expired
