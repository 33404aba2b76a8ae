"""Domain events for the Cart aggregate."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartLineAdded:
    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartLineUpdated:
    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartLineRemoved:
    __version__ = 1

    user_id = Identifier(required=True)
    line_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """All lines were removed, normally right after checkout committed stock."""

    __version__ = 1

    user_id = Identifier(required=True)
