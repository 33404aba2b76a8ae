"""Storefront API package."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.api.routes import (
    cart_router,
    discount_router,
    get_services,
    maintenance_router,
    order_router,
    product_router,
)
from storefront.errors import (
    CarrierError,
    DiscountConflict,
    InsufficientStock,
    InvalidTransitionError,
    PaymentError,
    VerificationError,
)

logger = structlog.get_logger(__name__)

__all__ = [
    "product_router",
    "discount_router",
    "cart_router",
    "order_router",
    "maintenance_router",
    "get_services",
    "include_storefront",
    "register_storefront_exception_handlers",
    "sweep_discounts_before_read",
]

# Handlers are looked up along the exception's MRO, so these win over
# Protean's generic ValidationError mapping.
_STATUS_BY_ERROR = {
    InsufficientStock: 409,
    InvalidTransitionError: 409,
    DiscountConflict: 409,
    VerificationError: 402,
    PaymentError: 502,
}


def _domain_error_handler(status_code):
    async def handler(request: Request, exc):
        logger.info(
            "Request rejected",
            path=request.url.path,
            error=type(exc).__name__,
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content={"error": exc.messages})

    return handler


async def _carrier_error_handler(request: Request, exc: CarrierError):
    logger.warning("Carrier request failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"error": {"carrier": [str(exc)]}})


def register_storefront_exception_handlers(app: FastAPI):
    register_exception_handlers(app)
    for error, status_code in _STATUS_BY_ERROR.items():
        app.add_exception_handler(error, _domain_error_handler(status_code))
    app.add_exception_handler(CarrierError, _carrier_error_handler)


def sweep_discounts_before_read(services) -> int:
    """Clear expired discounts ahead of a price read.

    A failed sweep is logged and the read goes ahead with whatever discounts
    are still attached; the next read retries it.
    """
    try:
        swept = services.resolver.sweep_expired()
    except Exception:
        logger.exception("Expired discount sweep failed before read")
        return 0

    if swept:
        logger.info("Expired discounts swept before read", count=swept)
    return swept


def include_storefront(app: FastAPI):
    """Mount every storefront router and its error mapping on ``app``."""
    for router in (product_router, discount_router, cart_router, order_router, maintenance_router):
        app.include_router(router)
    register_storefront_exception_handlers(app)
