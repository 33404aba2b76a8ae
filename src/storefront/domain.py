"""Storefront bounded context — size-keyed stock, pricing, carts and orders.

Holds the stock ledger, the discount resolver, shopping carts and the order
lifecycle. External collaborators (carrier aggregator, payment gateways,
notification transport) are reached through adapters wired in
``storefront.wiring``.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
