"""Service composition.

Every stateful collaborator (locks, credential holder, tracking cache,
gateways) is built here once and handed to whoever needs it. Nothing in the
storefront reaches for a module-level instance.
"""

from dataclasses import dataclass

from storefront.carrier import build_carrier
from storefront.carrier.port import CarrierPort
from storefront.carrier.tracking import TrackingCache
from storefront.config import Settings
from storefront.discount.resolver import DiscountResolver
from storefront.notification import build_notifier
from storefront.notification.port import NotificationDispatcher
from storefront.order.sequence import OrderNumberSequence
from storefront.order.workflow import OrderWorkflow
from storefront.payment import build_gateways
from storefront.payment.port import PaymentGateway
from storefront.stock.ledger import StockLedger
from storefront.utils.clock import utcnow
from storefront.utils.locks import KeyedLock


@dataclass
class Services:
    settings: Settings
    locks: KeyedLock
    ledger: StockLedger
    resolver: DiscountResolver
    sequence: OrderNumberSequence
    carrier: CarrierPort
    tracking: TrackingCache
    gateways: dict[str, PaymentGateway]
    notifier: NotificationDispatcher
    workflow: OrderWorkflow


def build_services(
    settings: Settings | None = None,
    *,
    carrier: CarrierPort | None = None,
    gateways: dict[str, PaymentGateway] | None = None,
    notifier: NotificationDispatcher | None = None,
    clock=None,
) -> Services:
    """Assemble the storefront's services from settings.

    Adapters passed explicitly replace the ones ``settings`` would select,
    which is how tests plug in fakes with scripted behaviour.
    """
    settings = settings or Settings.from_env()
    clock = clock or utcnow

    locks = KeyedLock()
    ledger = StockLedger(locks)
    resolver = DiscountResolver(clock=clock)
    sequence = OrderNumberSequence(locks)
    carrier = carrier or build_carrier(settings)
    tracking = TrackingCache(
        carrier,
        ttl=settings.tracking_ttl,
        clock=clock,
        max_entries=settings.tracking_cache_max_entries,
    )
    gateways = gateways or build_gateways(settings)
    notifier = notifier or build_notifier(settings)

    workflow = OrderWorkflow(
        ledger=ledger,
        resolver=resolver,
        carrier=carrier,
        tracking=tracking,
        gateways=gateways,
        notifier=notifier,
        settings=settings,
        sequence=sequence,
        locks=locks,
    )

    return Services(
        settings=settings,
        locks=locks,
        ledger=ledger,
        resolver=resolver,
        sequence=sequence,
        carrier=carrier,
        tracking=tracking,
        gateways=gateways,
        notifier=notifier,
        workflow=workflow,
    )
