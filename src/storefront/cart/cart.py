"""Cart aggregate — the lines a user intends to buy, keyed by user.

Prices are not stored on the cart; they are resolved at checkout. The cart is
emptied by the order workflow once stock for the order has been committed.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from storefront.cart.events import CartCleared, CartLineAdded, CartLineRemoved, CartLineUpdated
from storefront.domain import storefront
from storefront.stock.stock import Size


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    size = String(choices=Size, required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.aggregate
class Cart:
    user_id = Identifier(identifier=True)
    lines = HasMany(CartLine)
    updated_at = DateTime()

    @classmethod
    def open(cls, user_id):
        return cls(user_id=user_id, updated_at=datetime.now(UTC))

    def _line(self, line_id):
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})
        return line

    def add_line(self, product_id, size, quantity):
        """Add a line, or increase the quantity of the matching (product, size) line."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = next(
            (line for line in self.lines if str(line.product_id) == str(product_id) and line.size == size),
            None,
        )
        if existing:
            existing.quantity += quantity
            line_id = str(existing.id)
            new_quantity = existing.quantity
        else:
            line = CartLine(product_id=product_id, size=size, quantity=quantity)
            self.add_lines(line)
            line_id = str(line.id)
            new_quantity = quantity

        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartLineAdded(
                user_id=str(self.user_id),
                line_id=line_id,
                product_id=str(product_id),
                size=size,
                quantity=new_quantity,
            )
        )
        return line_id

    def update_line(self, line_id, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        line = self._line(line_id)
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(CartLineUpdated(user_id=str(self.user_id), line_id=str(line_id), quantity=quantity))

    def remove_line(self, line_id):
        line = self._line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartLineRemoved(user_id=str(self.user_id), line_id=str(line_id)))

    def clear(self):
        if not self.lines:
            return
        for line in list(self.lines):
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(user_id=str(self.user_id)))

    def as_items(self) -> list[dict]:
        return [
            {"product_id": str(line.product_id), "size": line.size, "quantity": line.quantity} for line in self.lines
        ]
