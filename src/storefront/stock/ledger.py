"""Stock ledger — the only writer of per-size quantities.

Each line's compare-and-decrement runs under the product's lock and is saved
straight away, outside any command unit of work, so a decrement is visible to
the next caller as soon as it returns. Lines of one order are committed one
at a time; if a later line fails, the lines already taken are handed back
before the failure propagates.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.errors import InsufficientStock
from storefront.stock.stock import ProductStock, is_known_size
from storefront.utils.locks import KeyedLock

logger = structlog.get_logger(__name__)

# Products ranked in the top this-many by units sold count as bestsellers
BESTSELLER_LIMIT = 10


@dataclass(frozen=True)
class StockLine:
    product_id: str
    size: str
    quantity: int
    unit_price: float = 0.0  # recorded against the product's sales figures

    @classmethod
    def from_dict(cls, data: dict) -> "StockLine":
        return cls(
            product_id=str(data["product_id"]),
            size=data["size"],
            quantity=int(data["quantity"]),
            unit_price=float(data.get("unit_price") or 0.0),
        )


class StockLedger:
    def __init__(self, locks: KeyedLock | None = None):
        self._locks = locks or KeyedLock()

    @staticmethod
    def _repo():
        return current_domain.repository_for(ProductStock)

    def _load(self, product_id) -> ProductStock | None:
        try:
            return self._repo().get(str(product_id))
        except ObjectNotFoundError:
            return None

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def levels(self, product_id) -> dict:
        stock = self._load(product_id)
        if stock is None:
            raise ObjectNotFoundError(f"No stock record for product {product_id}")
        return {"product_id": str(stock.product_id), "sizes": stock.levels(), "in_stock": stock.in_stock}

    def sales(self, product_id) -> dict:
        """Units sold, revenue and last sale for one product, with its bestseller flag."""
        stock = self._load(product_id)
        if stock is None:
            raise ObjectNotFoundError(f"No stock record for product {product_id}")
        bestseller_ids = {entry["product_id"] for entry in self.bestsellers()}
        return {**stock.sales(), "bestseller": str(stock.product_id) in bestseller_ids}

    def bestsellers(self, limit=BESTSELLER_LIMIT) -> list[dict]:
        """Products with at least one sale, most units sold first.

        Ties on units sold go to the higher revenue.
        """
        records = self._repo()._dao.query.all().items
        selling = [stock for stock in records if (stock.total_sold or 0) > 0]
        ranked = sorted(selling, key=lambda stock: (stock.total_sold, stock.revenue or 0.0), reverse=True)
        return [{**stock.sales(), "bestseller": True} for stock in ranked[:limit]]

    def validate(self, lines):
        """Check every line against current stock; fail on the first short one.

        Advisory only: nothing is held, so a line that passes here can still
        fail at ``reserve_and_commit``.
        """
        for line in lines:
            _check_line(line)
            stock = self._load(line.product_id)
            if stock is None or not stock.can_supply(line.size, line.quantity):
                available = stock.quantity_of(line.size) if stock is not None else 0
                logger.info(
                    "Stock validation failed",
                    product_id=line.product_id,
                    size=line.size,
                    requested=line.quantity,
                    available=available,
                )
                raise InsufficientStock(line.product_id, line.size, requested=line.quantity, available=available)

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def reserve_and_commit(self, lines):
        """Atomically decrement each line, undoing earlier lines if one fails."""
        for line in lines:
            _check_line(line)

        committed = []
        try:
            for line in lines:
                self._commit_line(line)
                committed.append(line)
        except InsufficientStock:
            if committed:
                logger.warning(
                    "Partial stock commit rolled back",
                    committed_lines=len(committed),
                    total_lines=len(lines),
                )
                self.restore(committed)
            raise

    def _commit_line(self, line: StockLine):
        with self._locks.hold(line.product_id):
            stock = self._load(line.product_id)
            if stock is None:
                raise InsufficientStock(line.product_id, line.size, requested=line.quantity, available=0)
            stock.commit(line.size, line.quantity, line.unit_price)
            self._repo().add(stock)

        logger.debug(
            "Stock committed",
            product_id=line.product_id,
            size=line.size,
            quantity=line.quantity,
        )

    def restore(self, lines):
        """Add every line's quantity back; the inverse of ``reserve_and_commit``."""
        for line in lines:
            with self._locks.hold(line.product_id):
                stock = self._load(line.product_id)
                if stock is None:
                    logger.warning(
                        "Stock record missing, cannot restore",
                        product_id=line.product_id,
                        size=line.size,
                        quantity=line.quantity,
                    )
                    continue
                stock.restore(line.size, line.quantity, line.unit_price)
                self._repo().add(stock)

            logger.debug(
                "Stock restored",
                product_id=line.product_id,
                size=line.size,
                quantity=line.quantity,
            )

    def set_quantity(self, product_id, size, quantity) -> dict:
        with self._locks.hold(product_id):
            stock = self._load(product_id)
            if stock is None:
                raise ObjectNotFoundError(f"No stock record for product {product_id}")
            stock.set_quantity(size, quantity)
            self._repo().add(stock)

        logger.info("Stock level set", product_id=str(product_id), size=size, quantity=quantity)
        return {"product_id": str(stock.product_id), "sizes": stock.levels(), "in_stock": stock.in_stock}


def _check_line(line: StockLine):
    if line.quantity < 1:
        raise ValidationError({"quantity": [f"Quantity for product {line.product_id} must be at least 1"]})
    if not is_known_size(line.size):
        raise InsufficientStock(line.product_id, line.size, requested=line.quantity, available=0)
