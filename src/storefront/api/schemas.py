"""Pydantic API schemas for the storefront.

These are the external API contracts, separate from domain commands. The
routes translate between these schemas and commands or service calls.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Products and stock
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Banarasi Silk Saree",
                    "category": "Saree",
                    "base_price": 1000.0,
                    "description": "Handwoven silk with zari border.",
                    "initial_stock": {"S": 4, "M": 10, "L": 6},
                }
            ]
        }
    }

    name: str = Field(..., max_length=255)
    category: str = Field(..., max_length=50)
    base_price: float = Field(..., ge=0)
    description: str | None = None
    currency: str = Field("INR", max_length=3)
    initial_stock: dict[str, int] = Field(default_factory=dict)


class ProductIdResponse(BaseModel):
    product_id: str


class ProductResponse(BaseModel):
    product_id: str
    name: str
    description: str | None = None
    category: str
    base_price: float
    effective_price: float
    currency: str
    discount_id: str | None = None


class SetStockRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"size": "M", "quantity": 12}]}}

    size: str = Field(..., max_length=5)
    quantity: int = Field(..., ge=0)


class StockLevelsResponse(BaseModel):
    product_id: str
    sizes: dict[str, int]
    in_stock: bool


class SalesResponse(BaseModel):
    product_id: str
    name: str | None = None
    total_sold: int
    revenue: float
    last_sold_at: datetime | None = None
    bestseller: bool


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
class AddDiscountRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "discount_type": "percentage",
                    "value": 20,
                    "start_date": "2026-11-01T00:00:00Z",
                    "end_date": "2026-11-15T00:00:00Z",
                }
            ]
        }
    }

    product_id: str
    discount_type: str = Field(..., max_length=20)
    value: float = Field(..., ge=0)
    start_date: datetime
    end_date: datetime


class DiscountIdResponse(BaseModel):
    discount_id: str


class DiscountResponse(BaseModel):
    discount_id: str
    product_id: str
    product_name: str
    discount_type: str
    value: float
    start_date: datetime
    end_date: datetime
    base_price: float
    effective_price: float


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    size: str = Field(..., max_length=5)
    quantity: int = Field(1, ge=1)


class UpdateCartLineRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class CartLineIdResponse(BaseModel):
    line_id: str


class CartLineResponse(BaseModel):
    line_id: str
    product_id: str
    size: str
    quantity: int


class CartResponse(BaseModel):
    user_id: str
    lines: list[CartLineResponse]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineRequest(BaseModel):
    product_id: str
    size: str = Field(..., max_length=5)
    quantity: int = Field(..., ge=1)


class AddressRequest(BaseModel):
    first_name: str = Field(..., max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., max_length=20)
    street: str = Field(..., max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    zipcode: str = Field(..., max_length=20)
    country: str = Field("India", max_length=100)


class PlaceOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "payment_method": "COD",
                    "address": {
                        "first_name": "Asha",
                        "last_name": "Rao",
                        "email": "asha@example.com",
                        "phone": "9876543210",
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "zipcode": "560001",
                    },
                }
            ]
        }
    }

    user_id: str
    payment_method: str
    address: AddressRequest
    items: list[OrderLineRequest] | None = None


class CheckoutResponse(BaseModel):
    reference: str
    redirect_url: str | None = None
    gateway_order: dict | None = None


class PlacementResponse(BaseModel):
    order_id: str
    order_number: int
    amount: float
    status: str
    checkout: CheckoutResponse | None = None


class ConfirmPaymentRequest(BaseModel):
    payload: dict = Field(default_factory=dict)


class AdvanceStatusRequest(BaseModel):
    status: str


class CancelOrderRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    size: str
    quantity: int
    unit_price: float


class ShipmentResponse(BaseModel):
    shipment_id: str | None = None
    carrier_order_id: str | None = None
    tracking_code: str | None = None
    carrier_name: str | None = None
    tracking_url: str | None = None
    tracking_status: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: int
    user_id: str
    status: str
    amount: float
    delivery_charge: float
    currency: str
    payment_method: str
    paid: bool
    items: list[OrderItemResponse]
    shipment: ShipmentResponse | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    cancelled_at: datetime | None = None


class TrackingResponse(BaseModel):
    order_id: str
    tracking_code: str
    carrier_name: str | None = None
    tracking_url: str | None = None
    current_status: str | None = None
    tracking_data: dict


class TrackingNotificationResponse(BaseModel):
    order_id: str
    tracking_code: str
    delivered: bool


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
class SweepRequest(BaseModel):
    as_of: datetime | None = None


class SweepResponse(BaseModel):
    swept: int


class StatusResponse(BaseModel):
    status: str = "ok"
