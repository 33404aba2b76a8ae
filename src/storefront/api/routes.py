"""FastAPI routes for the storefront."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddDiscountRequest,
    AddToCartRequest,
    AdvanceStatusRequest,
    CancelOrderRequest,
    CartLineIdResponse,
    CartLineResponse,
    CartResponse,
    CheckoutResponse,
    ConfirmPaymentRequest,
    DiscountIdResponse,
    DiscountResponse,
    OrderItemResponse,
    OrderResponse,
    PlacementResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductResponse,
    RegisterProductRequest,
    SalesResponse,
    SetStockRequest,
    ShipmentResponse,
    StatusResponse,
    StockLevelsResponse,
    SweepRequest,
    SweepResponse,
    TrackingNotificationResponse,
    TrackingResponse,
    UpdateCartLineRequest,
)
from storefront.cart.cart import Cart
from storefront.cart.management import AddToCart, ClearCart, RemoveFromCart, UpdateCartLine
from storefront.carrier.fake_adapter import FakeCarrier
from storefront.catalogue.product import Product
from storefront.catalogue.registration import RegisterProduct
from storefront.stock.ledger import BESTSELLER_LIMIT
from storefront.order.order import Order
from storefront.wiring import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


product_router = APIRouter(prefix="/products", tags=["products"])
discount_router = APIRouter(prefix="/discounts", tags=["discounts"])
cart_router = APIRouter(prefix="/carts", tags=["carts"])
order_router = APIRouter(prefix="/orders", tags=["orders"])
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def _product_response(product: Product, services: Services) -> ProductResponse:
    effective_price = services.resolver.effective_price(product)
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        description=product.description,
        category=product.category,
        base_price=product.base_price,
        effective_price=effective_price,
        currency=product.currency,
        discount_id=str(product.current_discount_id) if product.current_discount_id else None,
    )


def _sales_response(entry: dict) -> SalesResponse:
    try:
        name = current_domain.repository_for(Product).get(entry["product_id"]).name
    except ObjectNotFoundError:
        name = None
    return SalesResponse(name=name, **entry)


def _order_response(order: Order) -> OrderResponse:
    shipment = None
    if order.shipment is not None:
        shipment = ShipmentResponse(**order.shipment.to_dict())
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        user_id=str(order.user_id),
        status=order.status,
        amount=order.amount,
        delivery_charge=order.delivery_charge,
        currency=order.currency,
        payment_method=order.payment_method,
        paid=bool(order.paid),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                name=item.name,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
        shipment=shipment,
        cancellation_reason=order.cancellation_reason,
        created_at=order.created_at,
        cancelled_at=order.cancelled_at,
    )


# ---------------------------------------------------------------------------
# Products and stock
# ---------------------------------------------------------------------------
@product_router.post("", status_code=201, response_model=ProductIdResponse)
def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        name=body.name,
        category=body.category,
        base_price=body.base_price,
        description=body.description,
        currency=body.currency,
        initial_stock=json.dumps(body.initial_stock),
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("", response_model=list[ProductResponse])
def list_products(category: str | None = None, services: Services = Depends(get_services)):
    query = current_domain.repository_for(Product)._dao.query
    if category:
        query = query.filter(category=category)
    products = sorted(query.all().items, key=lambda product: product.created_at)
    return [_product_response(product, services) for product in products]


@product_router.get("/bestsellers", response_model=list[SalesResponse])
def list_bestsellers(limit: int = BESTSELLER_LIMIT, services: Services = Depends(get_services)):
    """Best-selling products, most units sold first."""
    return [_sales_response(entry) for entry in services.ledger.bestsellers(limit=limit)]


@product_router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, services: Services = Depends(get_services)) -> ProductResponse:
    product = current_domain.repository_for(Product).get(product_id)
    return _product_response(product, services)


@product_router.get("/{product_id}/stock", response_model=StockLevelsResponse)
def get_stock(product_id: str, services: Services = Depends(get_services)) -> StockLevelsResponse:
    return StockLevelsResponse(**services.ledger.levels(product_id))


@product_router.get("/{product_id}/sales", response_model=SalesResponse)
def get_sales(product_id: str, services: Services = Depends(get_services)) -> SalesResponse:
    return _sales_response(services.ledger.sales(product_id))


@product_router.put("/{product_id}/stock", response_model=StockLevelsResponse)
def set_stock(
    product_id: str,
    body: SetStockRequest,
    services: Services = Depends(get_services),
) -> StockLevelsResponse:
    return StockLevelsResponse(**services.ledger.set_quantity(product_id, body.size, body.quantity))


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
@discount_router.post("", status_code=201, response_model=DiscountIdResponse)
def add_discount(body: AddDiscountRequest, services: Services = Depends(get_services)) -> DiscountIdResponse:
    discount_id = services.resolver.add(
        product_id=body.product_id,
        discount_type=body.discount_type,
        value=body.value,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    return DiscountIdResponse(discount_id=discount_id)


@discount_router.get("", response_model=list[DiscountResponse])
def list_discounts(services: Services = Depends(get_services)):
    return [DiscountResponse(**entry) for entry in services.resolver.list_active()]


@discount_router.delete("/{product_id}", response_model=StatusResponse)
def remove_discount(product_id: str, services: Services = Depends(get_services)) -> StatusResponse:
    removed = services.resolver.remove(product_id)
    if not removed:
        raise HTTPException(status_code=404, detail="No active discount for product")
    return StatusResponse(status="removed")


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------
@cart_router.get("/{user_id}", response_model=CartResponse)
def get_cart(user_id: str) -> CartResponse:
    try:
        cart = current_domain.repository_for(Cart).get(user_id)
    except ObjectNotFoundError:
        return CartResponse(user_id=user_id, lines=[])
    return CartResponse(
        user_id=user_id,
        lines=[
            CartLineResponse(
                line_id=str(line.id),
                product_id=str(line.product_id),
                size=line.size,
                quantity=line.quantity,
            )
            for line in cart.lines
        ],
    )


@cart_router.post("/{user_id}/lines", status_code=201, response_model=CartLineIdResponse)
def add_to_cart(user_id: str, body: AddToCartRequest) -> CartLineIdResponse:
    command = AddToCart(
        user_id=user_id,
        product_id=body.product_id,
        size=body.size,
        quantity=body.quantity,
    )
    line_id = current_domain.process(command, asynchronous=False)
    return CartLineIdResponse(line_id=line_id)


@cart_router.put("/{user_id}/lines/{line_id}", response_model=StatusResponse)
def update_cart_line(user_id: str, line_id: str, body: UpdateCartLineRequest) -> StatusResponse:
    command = UpdateCartLine(user_id=user_id, line_id=line_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{user_id}/lines/{line_id}", response_model=StatusResponse)
def remove_from_cart(user_id: str, line_id: str) -> StatusResponse:
    current_domain.process(RemoveFromCart(user_id=user_id, line_id=line_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{user_id}", response_model=StatusResponse)
def clear_cart(user_id: str) -> StatusResponse:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return StatusResponse(status="cleared")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=PlacementResponse)
def place_order(
    body: PlaceOrderRequest,
    request: Request,
    services: Services = Depends(get_services),
) -> PlacementResponse:
    """Place an order from explicit lines, or from the user's cart when none are given."""
    items = [line.model_dump() for line in body.items] if body.items is not None else None
    placement = services.workflow.place_order(
        user_id=body.user_id,
        address=body.address.model_dump(),
        payment_method=body.payment_method,
        items=items,
        origin=str(request.base_url).rstrip("/"),
    )

    checkout = None
    if placement.checkout is not None:
        checkout = CheckoutResponse(
            reference=placement.checkout.reference,
            redirect_url=placement.checkout.redirect_url,
            gateway_order=placement.checkout.gateway_order,
        )
    return PlacementResponse(
        order_id=str(placement.order.id),
        order_number=placement.order.order_number,
        amount=placement.order.amount,
        status=placement.order.status,
        checkout=checkout,
    )


@order_router.post("/{order_id}/payment", response_model=OrderResponse)
def confirm_payment(
    order_id: str,
    body: ConfirmPaymentRequest,
    services: Services = Depends(get_services),
) -> OrderResponse:
    """Confirm a Stripe or Razorpay payment with the gateway's callback payload."""
    order = services.workflow.confirm_payment(order_id, body.payload)
    return _order_response(order)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def advance_status(
    order_id: str,
    body: AdvanceStatusRequest,
    services: Services = Depends(get_services),
) -> OrderResponse:
    order = services.workflow.advance_status(order_id, body.status)
    return _order_response(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    services: Services = Depends(get_services),
) -> OrderResponse:
    order = services.workflow.cancel_order(order_id, body.reason)
    return _order_response(order)


@order_router.get("", response_model=list[OrderResponse])
def list_orders(user_id: str | None = None, services: Services = Depends(get_services)):
    return [_order_response(order) for order in services.workflow.list_orders(user_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, services: Services = Depends(get_services)) -> OrderResponse:
    return _order_response(services.workflow.get_order(order_id))


@order_router.get("/{order_id}/tracking", response_model=TrackingResponse)
def track_order(order_id: str, services: Services = Depends(get_services)) -> TrackingResponse:
    return TrackingResponse(**services.workflow.track_order(order_id))


@order_router.post("/{order_id}/tracking/notify", response_model=TrackingNotificationResponse)
def send_tracking_update(order_id: str, services: Services = Depends(get_services)) -> TrackingNotificationResponse:
    """Send the customer their shipment's tracking details."""
    return TrackingNotificationResponse(**services.workflow.send_tracking_update(order_id))


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@maintenance_router.post("/discounts/sweep", response_model=SweepResponse)
def sweep_expired_discounts(body: SweepRequest, services: Services = Depends(get_services)) -> SweepResponse:
    return SweepResponse(swept=services.resolver.sweep_expired(as_of=body.as_of))


@maintenance_router.post("/orders/sweep", response_model=SweepResponse)
def sweep_cancelled_orders(body: SweepRequest, services: Services = Depends(get_services)) -> SweepResponse:
    return SweepResponse(swept=services.workflow.sweep_cancelled_orders(as_of=body.as_of))


@maintenance_router.post("/carrier/configure", response_model=StatusResponse)
def configure_carrier(
    should_succeed: bool = True,
    services: Services = Depends(get_services),
) -> StatusResponse:
    """Configure the FakeCarrier behavior (non-production only)."""
    if services.settings.is_production:
        raise HTTPException(status_code=403, detail="Carrier configuration not available in production")
    if not isinstance(services.carrier, FakeCarrier):
        raise HTTPException(status_code=400, detail="Carrier configuration only available for FakeCarrier")

    services.carrier.configure(should_succeed=should_succeed)
    return StatusResponse(status="configured")
