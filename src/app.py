"""Storefront FastAPI application.

Processes commands synchronously via HTTP. Every request runs inside the
storefront domain context, and services built once at startup hang off
``app.state.services``.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.config import Settings
from storefront.domain import storefront
from storefront.utils.logging import bind_request_context, clear_request_context, get_logger
from storefront.wiring import build_services

logger = get_logger(__name__)

# PROTEAN_ENV controls which domain.toml overlay is applied
storefront.init()

# Paths whose handlers read discounted prices; expired discounts are swept first
_DISCOUNT_SWEEP_PREFIXES = ("/products", "/discounts")


def create_app(settings: Settings | None = None, services=None) -> FastAPI:
    settings = settings or Settings.from_env()

    from storefront.api import include_storefront, sweep_discounts_before_read

    app = FastAPI(
        title="Storefront API",
        description="Apparel storefront: size-keyed stock, discounts, carts and orders",
    )
    with storefront.domain_context():
        app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context and request log context for each request."""
        clear_request_context()
        bind_request_context(
            request_id=request.headers.get("x-request-id") or uuid4().hex,
            path=request.url.path,
        )
        with storefront.domain_context():
            if request.method == "GET" and request.url.path.startswith(_DISCOUNT_SWEEP_PREFIXES):
                await run_in_threadpool(sweep_discounts_before_read, request.app.state.services)
            response = await call_next(request)
        return response

    include_storefront(app)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "domain": storefront.name,
                "environment": settings.env,
                "carrier": type(app.state.services.carrier).__name__,
            }
        )

    return app


app = create_app()
