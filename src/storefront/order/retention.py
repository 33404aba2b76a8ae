"""Cancelled order retention — command and handler for purging old cancellations.

Triggered daily by an external scheduler (cron) via ``manage.py
sweep-cancelled-orders`` or the maintenance API endpoint. Stock for these
orders was restored when they were cancelled, so the purge only deletes.
"""

from datetime import timedelta

import structlog
from protean import handle
from protean.fields import DateTime, Float
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order, OrderStatus
from storefront.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class SweepStaleCancelledOrders:
    """Delete orders that have been Cancelled for longer than the retention window."""

    older_than_hours = Float(default=48.0, min_value=0.0)
    as_of = DateTime()  # Optional: defaults to now


@storefront.command_handler(part_of=Order)
class SweepStaleCancelledOrdersHandler:
    @handle(SweepStaleCancelledOrders)
    def sweep_stale_cancelled_orders(self, command):
        as_of = as_utc(command.as_of) or utcnow()
        hours = command.older_than_hours if command.older_than_hours is not None else 48.0
        cutoff = as_of - timedelta(hours=hours)

        repo = current_domain.repository_for(Order)
        cancelled = repo._dao.query.filter(status=OrderStatus.CANCELLED.value).all().items

        stale = [order for order in cancelled if (as_utc(order.cancelled_at) or as_utc(order.updated_at)) < cutoff]
        if not stale:
            logger.debug("No stale cancelled orders found", cutoff=cutoff.isoformat())
            return 0

        for order in stale:
            repo._dao.delete(order)
            logger.info(
                "Purged cancelled order",
                order_id=str(order.id),
                order_number=order.order_number,
                cancelled_at=str(order.cancelled_at),
            )

        logger.info("Stale cancelled orders purged", count=len(stale), cutoff=cutoff.isoformat())
        return len(stale)
