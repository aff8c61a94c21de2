"""FastAPI routes for the Ordering domain — orders and payments."""

from fastapi import APIRouter, Depends, Query

from ordering.api.dependencies import admin_identity, current_identity
from ordering.api.schemas import (
    AddressSchema,
    CheckoutRequest,
    CheckoutResponse,
    CreateOrderRequest,
    Envelope,
    OrderHistoryItemResponse,
    OrderItemResponse,
    OrderResponse,
    PagingResponse,
    PaymentRequest,
    PaymentResponse,
    UpdateOrderStatusRequest,
)
from ordering.auth.identity import Identity
from ordering.order.order import Order
from ordering.order.placement import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, CartItem, OrderPlacementService
from ordering.payment.processing import PaymentProcessingService


def _order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        id=str(order.id),
        user_id=str(order.user_id),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price_at_order_time,
                total_price=item.line_total,
            )
            for item in order.items
        ],
        total_amount=order.total_amount,
        order_status=order.status,
        shipping_address=(
            AddressSchema(
                street=address.street,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
                country=address.country,
                apartment=address.apartment,
            )
            if address
            else None
        ),
        external_payment_id=order.external_payment_id,
        payment_intent_id=order.payment_intent_id,
        client_secret=order.payment_client_secret,
        order_notes=order.order_notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _history_item(order: Order) -> OrderHistoryItemResponse:
    return OrderHistoryItemResponse(
        id=str(order.id),
        order_date=order.created_at,
        total_amount=order.total_amount,
        status=order.status,
        item_count=order.item_count,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=Envelope[OrderResponse])
def create_order(
    body: CreateOrderRequest,
    identity: Identity = Depends(current_identity),
) -> Envelope[OrderResponse]:
    order = OrderPlacementService().create_order(
        identity,
        cart_items=[
            CartItem(product_id=item.product_id, quantity=item.quantity, name=item.name, unit_price=item.unit_price)
            for item in body.items
        ],
        shipping_address=body.shipping_address.model_dump(),
        order_notes=body.order_notes,
    )
    return Envelope(http_status="CREATED", response=_order_response(order))


@order_router.get("/history", response_model=Envelope[list[OrderHistoryItemResponse]])
def get_order_history(identity: Identity = Depends(current_identity)) -> Envelope:
    orders = OrderPlacementService().get_order_history(identity)
    return Envelope(response=[_history_item(order) for order in orders])


@order_router.get("/admin/all", response_model=Envelope[PagingResponse[OrderResponse]])
def list_all_orders(
    page: int = Query(default=1, ge=1),
    size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(admin_identity),
) -> Envelope:
    result = OrderPlacementService().list_all_orders(identity, page=page, size=size)
    return Envelope(
        response=PagingResponse[OrderResponse](
            content=[_order_response(order) for order in result.content],
            page_number=result.page_number,
            page_size=result.page_size,
            total_element_count=result.total_element_count,
            total_page_count=result.total_page_count,
            is_first_page=result.is_first_page,
            is_last_page=result.is_last_page,
            has_next_page=result.has_next_page,
            has_previous_page=result.has_previous_page,
        )
    )


@order_router.get("/{order_id}", response_model=Envelope[OrderResponse])
def get_order(order_id: str, identity: Identity = Depends(current_identity)) -> Envelope:
    order = OrderPlacementService().get_order_by_id(identity, order_id)
    return Envelope(response=_order_response(order))


@order_router.put("/{order_id}/status", response_model=Envelope[OrderResponse])
def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    identity: Identity = Depends(admin_identity),
) -> Envelope:
    order = OrderPlacementService().update_order_status(identity, order_id, body.new_status)
    return Envelope(response=_order_response(order))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/process", response_model=Envelope[PaymentResponse])
def process_payment(body: PaymentRequest, identity: Identity = Depends(current_identity)) -> Envelope:
    result = PaymentProcessingService().process_payment(identity, body.order_id, body.payment_method_id)
    return Envelope(
        response=PaymentResponse(
            order_id=result.order_id,
            payment_intent_id=result.payment_intent_id,
            status=result.status,
            message=result.message,
            client_secret=result.client_secret,
        )
    )


@payment_router.post("/create-checkout-session", response_model=Envelope[CheckoutResponse])
def create_checkout_session(body: CheckoutRequest, identity: Identity = Depends(current_identity)) -> Envelope:
    url = PaymentProcessingService().create_checkout_session(identity, body.order_id)
    return Envelope(response=CheckoutResponse(redirect_url=url))
