"""ProductStock aggregate — on-hand quantity per product and size.

One logical stock pool per product. Each size is a ``SizeStock`` row and the
aggregate keeps a denormalised ``in_stock`` flag that is recomputed after
every quantity change and never set on its own.

Sales figures (units sold, revenue, last sale) ride along with the quantities:
a commit records a sale and a restore takes it back, in the same save.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.errors import InsufficientStock
from storefront.utils.money import round2
from storefront.stock.events import (
    ProductSoldOut,
    StockCommitted,
    StockInitialized,
    StockLevelSet,
    StockRestored,
)


class Size(Enum):
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


SIZE_ORDER = [size.value for size in Size]


def is_known_size(size) -> bool:
    return size in SIZE_ORDER


@storefront.entity(part_of="ProductStock")
class SizeStock:
    size = String(choices=Size, required=True)
    quantity = Integer(default=0, min_value=0)


@storefront.aggregate
class ProductStock:
    product_id = Identifier(identifier=True)
    sizes = HasMany(SizeStock)
    in_stock = Boolean(default=False)
    updated_at = DateTime()

    total_sold = Integer(default=0, min_value=0)
    revenue = Float(default=0.0, min_value=0.0)
    last_sold_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, product_id, quantities=None):
        """Create the stock record for a product.

        Args:
            product_id: Identity of the catalogue product.
            quantities: Optional dict of ``{size: quantity}``; sizes left out
                start at zero.
        """
        quantities = quantities or {}
        for size, quantity in quantities.items():
            _check_size(size)
            _check_quantity(quantity)

        now = datetime.now(UTC)
        stock = cls(
            product_id=product_id,
            sizes=[SizeStock(size=size, quantity=int(quantities.get(size, 0))) for size in SIZE_ORDER],
            updated_at=now,
        )
        stock._refresh_in_stock()

        stock.raise_(
            StockInitialized(
                product_id=str(product_id),
                quantities=json.dumps(stock.levels()),
                in_stock=stock.in_stock,
                initialized_at=now,
            )
        )
        return stock

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def _row(self, size):
        return next((row for row in self.sizes if row.size == size), None)

    def quantity_of(self, size) -> int:
        row = self._row(size)
        return row.quantity if row is not None else 0

    def can_supply(self, size, quantity) -> bool:
        return self._row(size) is not None and self.quantity_of(size) >= quantity

    def levels(self) -> dict:
        """Quantities keyed by size, in S..XXL order."""
        present = {row.size: row.quantity for row in self.sizes}
        return {size: present[size] for size in SIZE_ORDER if size in present}

    def sales(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "total_sold": self.total_sold or 0,
            "revenue": self.revenue or 0.0,
            "last_sold_at": self.last_sold_at,
        }

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def commit(self, size, quantity, unit_price=0.0):
        """Take ``quantity`` units of ``size`` out of stock and record the sale.

        Guarded by ``quantity_of(size) >= quantity``; a failed guard leaves
        the record untouched.
        """
        _check_quantity(quantity, minimum=1)
        row = self._row(size)
        if row is None or row.quantity < quantity:
            raise InsufficientStock(
                self.product_id,
                size,
                requested=quantity,
                available=row.quantity if row is not None else 0,
            )

        was_in_stock = self.in_stock
        row.quantity -= quantity
        self._touch()
        self.total_sold = (self.total_sold or 0) + quantity
        self.revenue = round2((self.revenue or 0.0) + quantity * unit_price)
        self.last_sold_at = self.updated_at

        self.raise_(
            StockCommitted(
                product_id=str(self.product_id),
                size=size,
                quantity=quantity,
                unit_price=unit_price,
                remaining=row.quantity,
                in_stock=self.in_stock,
            )
        )
        if was_in_stock and not self.in_stock:
            self.raise_(ProductSoldOut(product_id=str(self.product_id), sold_out_at=self.updated_at))

    def restore(self, size, quantity, unit_price=0.0):
        """Return ``quantity`` units of ``size`` to stock, unconditionally.

        The sale recorded by the matching commit is reversed; sales figures
        never drop below zero.
        """
        _check_size(size)
        _check_quantity(quantity, minimum=1)
        row = self._row(size)
        if row is None:
            row = SizeStock(size=size, quantity=0)
            self.add_sizes(row)
            row = self._row(size)

        row.quantity += quantity
        self._touch()
        self.total_sold = max(0, (self.total_sold or 0) - quantity)
        self.revenue = max(0.0, round2((self.revenue or 0.0) - quantity * unit_price))

        self.raise_(
            StockRestored(
                product_id=str(self.product_id),
                size=size,
                quantity=quantity,
                available=row.quantity,
                in_stock=self.in_stock,
            )
        )

    def set_quantity(self, size, quantity):
        """Overwrite the quantity of one size (administrative correction)."""
        _check_size(size)
        _check_quantity(quantity)
        row = self._row(size)
        previous = row.quantity if row is not None else 0
        if row is None:
            self.add_sizes(SizeStock(size=size, quantity=quantity))
        else:
            row.quantity = quantity
        self._touch()

        self.raise_(
            StockLevelSet(
                product_id=str(self.product_id),
                size=size,
                previous_quantity=previous,
                quantity=quantity,
                in_stock=self.in_stock,
            )
        )

    def _touch(self):
        self._refresh_in_stock()
        self.updated_at = datetime.now(UTC)

    def _refresh_in_stock(self):
        self.in_stock = any(row.quantity > 0 for row in self.sizes)


def _check_size(size):
    if not is_known_size(size):
        raise ValidationError({"size": [f"Invalid size {size!r}; expected one of {', '.join(SIZE_ORDER)}"]})


def _check_quantity(quantity, minimum=0):
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < minimum:
        raise ValidationError({"quantity": [f"Quantity must be an integer of at least {minimum}"]})
