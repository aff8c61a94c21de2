"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. JSON keys are camelCase on the wire; Python
code uses the snake_case field names.
"""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ordering.order.state_machine import OrderStatus

T = TypeVar("T")

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class Envelope(BaseModel, Generic[T]):
    """Success wrapper around every response body."""

    time: datetime = Field(default_factory=_now)
    http_status: str = "OK"
    is_success: bool = True
    response: T | None = None

    model_config = _CAMEL


class SubError(BaseModel):
    field: str
    message: str
    value: Any = None
    type: str | None = None

    model_config = _CAMEL


class ErrorBody(BaseModel):
    time: datetime = Field(default_factory=_now)
    http_status: str
    header: str
    message: str
    is_success: bool = False
    sub_errors: list[SubError] | None = None
    order_id: str | None = None

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    apartment: str | None = None

    model_config = _CAMEL


class CartItemSchema(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    name: str | None = None
    unit_price: float | None = None  # Ignored; the catalog price wins

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    items: list[CartItemSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    order_notes: str | None = Field(default=None, max_length=1000)

    model_config = {
        **_CAMEL,
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"productId": "prod-001", "quantity": 2}],
                    "shippingAddress": {
                        "street": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postalCode": "62701",
                        "country": "US",
                    },
                    "orderNotes": "Leave at the door",
                }
            ]
        },
    }


class UpdateOrderStatusRequest(BaseModel):
    new_status: OrderStatus

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class PaymentRequest(BaseModel):
    order_id: str = Field(min_length=1)
    payment_method_id: str = Field(min_length=1)

    model_config = _CAMEL


class CheckoutRequest(BaseModel):
    order_id: str = Field(min_length=1)

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_price: float

    model_config = _CAMEL


class OrderResponse(BaseModel):
    id: str
    user_id: str
    items: list[OrderItemResponse]
    total_amount: float
    order_status: OrderStatus
    shipping_address: AddressSchema | None = None
    external_payment_id: str | None = None
    payment_intent_id: str | None = None
    client_secret: str | None = None
    order_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = _CAMEL


class OrderHistoryItemResponse(BaseModel):
    id: str
    order_date: datetime | None = None
    total_amount: float
    status: OrderStatus
    item_count: int

    model_config = _CAMEL


class PagingResponse(BaseModel, Generic[T]):
    content: list[T]
    page_number: int
    page_size: int
    total_element_count: int
    total_page_count: int
    is_first_page: bool
    is_last_page: bool
    has_next_page: bool
    has_previous_page: bool

    model_config = _CAMEL


class PaymentResponse(BaseModel):
    order_id: str
    payment_intent_id: str
    status: str
    message: str
    client_secret: str | None = None

    model_config = _CAMEL


class CheckoutResponse(BaseModel):
    redirect_url: str

    model_config = _CAMEL
