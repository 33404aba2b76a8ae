"""Cart line management — commands and handler.

A cart is opened on the first ``AddToCart`` for a user.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True, max_length=5)
    quantity = Integer(default=1, min_value=1)


@storefront.command(part_of="Cart")
class UpdateCartLine:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class RemoveFromCart:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        # Unknown products are rejected before a cart is touched
        current_domain.repository_for(Product).get(command.product_id)

        repo = current_domain.repository_for(Cart)
        try:
            cart = repo.get(command.user_id)
        except ObjectNotFoundError:
            cart = Cart.open(command.user_id)

        line_id = cart.add_line(command.product_id, command.size, command.quantity or 1)
        repo.add(cart)
        return line_id

    @handle(UpdateCartLine)
    def update_cart_line(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.user_id)
        cart.update_line(command.line_id, command.quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.user_id)
        cart.remove_line(command.line_id)
        repo.add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        try:
            cart = repo.get(command.user_id)
        except ObjectNotFoundError:
            return
        cart.clear()
        repo.add(cart)
