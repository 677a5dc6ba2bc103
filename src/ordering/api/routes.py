"""FastAPI routes for the Ordering domain — carts, orders and payments.

The caller id comes from the ``X-User-Id`` header, set by the identity
gateway in front of this service after it verified the caller.
"""

import json

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddCartLineRequest,
    AddMenuBundleRequest,
    BalanceResponse,
    BundleIdResponse,
    CartBundleResponse,
    CartLineResponse,
    CartResponse,
    CheckoutRequest,
    GatewayCallback,
    InitiatePaymentRequest,
    LineIdResponse,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    PaymentResponse,
    ReorderResponse,
    StatusResponse,
    UpdateOrderStatusRequest,
    UpdateQuantityRequest,
)
from ordering.cart.bundles import AddMenuBundle, RemoveMenuBundle, UpdateMenuBundle
from ordering.cart.items import AddCartLine, ClearCart, RemoveCartLine, UpdateCartLine
from ordering.cart.snapshot import snapshot_cart
from ordering.domain import logger
from ordering.order.checkout import PlaceOrder
from ordering.order.history import HideOrder
from ordering.order.order import Order
from ordering.order.queries import get_order_for, list_buyer_orders, list_restaurant_orders
from ordering.order.reorder import ReorderPreviousOrder
from ordering.order.status import AdvanceOrderStatus
from ordering.payment.initiation import request_payment
from ordering.payment.lookup import get_payment_for
from ordering.payment.polling import poll_payment
from ordering.payment.webhook import process_gateway_callback
from payments.gateway import get_gateway


def caller_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return x_user_id


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------
def _cart_response(user_id) -> CartResponse:
    snapshot = snapshot_cart(user_id)

    def line(item):
        return CartLineResponse(
            line_id=item.line_id,
            product_id=item.product_id,
            variant_id=item.variant_id,
            variant_label=item.variant_label,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )

    bundles = {}
    for item in snapshot.lines:
        if item.bundle_id:
            bundles.setdefault(item.bundle_id, []).append(item)

    return CartResponse(
        user_id=str(user_id),
        restaurant_id=snapshot.restaurant_id,
        lines=[line(item) for item in snapshot.lines if not item.bundle_id],
        bundles=[
            CartBundleResponse(
                bundle_id=bundle_id,
                menu_id=items[0].menu_id,
                quantity=items[0].quantity,
                lines=[line(item) for item in items],
                total=sum(item.line_total for item in items),
            )
            for bundle_id, items in bundles.items()
        ],
        subtotal=snapshot.subtotal,
        item_count=snapshot.item_count,
    )


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        user_id=str(order.user_id),
        restaurant_id=str(order.restaurant_id),
        restaurant_name=order.restaurant_name,
        status=order.status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id),
                variant_label=item.variant_label,
                quantity=item.quantity,
                unit_price=item.unit_price,
                menu_id=str(item.menu_id) if item.menu_id else None,
                bundle_id=str(item.bundle_id) if item.bundle_id else None,
            )
            for item in order.items
        ],
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        total=order.total,
        is_delivery=order.is_delivery,
        delivery_address=order.delivery_address,
        payment_method=order.payment_method,
        notes=order.notes,
        paid_at=order.paid_at,
        created_at=order.created_at,
    )


def _order_list_response(page) -> OrderListResponse:
    return OrderListResponse(items=[_order_response(order) for order in page["items"]], meta=page["meta"])


def _payment_response(payment) -> PaymentResponse:
    return PaymentResponse(
        payment_id=str(payment.id),
        order_id=str(payment.order_id),
        amount=payment.amount,
        currency=payment.currency,
        phone=payment.phone,
        provider=payment.provider,
        provider_transaction_id=payment.provider_transaction_id,
        status=payment.status,
        failure_reason=payment.failure_reason,
        timed_out=payment.timed_out,
        created_at=payment.created_at,
        completed_at=payment.completed_at,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/me", response_model=CartResponse)
async def get_my_cart(user_id: str = Depends(caller_id)) -> CartResponse:
    return _cart_response(user_id)


@cart_router.post("/me/lines", status_code=201, response_model=LineIdResponse)
async def add_cart_line(body: AddCartLineRequest, user_id: str = Depends(caller_id)) -> LineIdResponse:
    command = AddCartLine(user_id=user_id, variant_id=body.variant_id, quantity=body.quantity)
    line_id = current_domain.process(command, asynchronous=False)
    return LineIdResponse(line_id=line_id)


@cart_router.patch("/me/lines/{line_id}", response_model=StatusResponse)
async def update_cart_line(
    line_id: str, body: UpdateQuantityRequest, user_id: str = Depends(caller_id)
) -> StatusResponse:
    command = UpdateCartLine(user_id=user_id, line_id=line_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/me/lines/{line_id}", response_model=StatusResponse)
async def remove_cart_line(line_id: str, user_id: str = Depends(caller_id)) -> StatusResponse:
    current_domain.process(RemoveCartLine(user_id=user_id, line_id=line_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/me/bundles", status_code=201, response_model=BundleIdResponse)
async def add_menu_bundle(body: AddMenuBundleRequest, user_id: str = Depends(caller_id)) -> BundleIdResponse:
    command = AddMenuBundle(user_id=user_id, menu_id=body.menu_id, quantity=body.quantity)
    bundle_id = current_domain.process(command, asynchronous=False)
    return BundleIdResponse(bundle_id=bundle_id)


@cart_router.patch("/me/bundles/{bundle_id}", response_model=StatusResponse)
async def update_menu_bundle(
    bundle_id: str, body: UpdateQuantityRequest, user_id: str = Depends(caller_id)
) -> StatusResponse:
    command = UpdateMenuBundle(user_id=user_id, bundle_id=bundle_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/me/bundles/{bundle_id}", response_model=StatusResponse)
async def remove_menu_bundle(bundle_id: str, user_id: str = Depends(caller_id)) -> StatusResponse:
    current_domain.process(RemoveMenuBundle(user_id=user_id, bundle_id=bundle_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("/me", response_model=StatusResponse)
async def clear_cart(user_id: str = Depends(caller_id)) -> StatusResponse:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def checkout(body: CheckoutRequest, user_id: str = Depends(caller_id)) -> OrderResponse:
    command = PlaceOrder(
        user_id=user_id,
        payment_method=body.payment_method,
        is_delivery=body.is_delivery,
        address_id=body.address_id,
        notes=body.notes,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.get("", response_model=OrderListResponse)
async def list_my_orders(page: int = 1, page_size: int = 10, user_id: str = Depends(caller_id)) -> OrderListResponse:
    return _order_list_response(list_buyer_orders(user_id, page=page, page_size=page_size))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, user_id: str = Depends(caller_id)) -> OrderResponse:
    return _order_response(get_order_for(user_id, order_id))


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, user_id: str = Depends(caller_id)
) -> OrderResponse:
    command = AdvanceOrderStatus(order_id=order_id, actor_id=user_id, new_status=body.status, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def hide_order(order_id: str, user_id: str = Depends(caller_id)) -> StatusResponse:
    current_domain.process(HideOrder(order_id=order_id, user_id=user_id), asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/reorder", response_model=ReorderResponse)
async def reorder(order_id: str, user_id: str = Depends(caller_id)) -> ReorderResponse:
    result = current_domain.process(ReorderPreviousOrder(user_id=user_id, order_id=order_id), asynchronous=False)
    return ReorderResponse(**result)


# ---------------------------------------------------------------------------
# Restaurant Router
# ---------------------------------------------------------------------------
restaurant_router = APIRouter(prefix="/restaurants", tags=["restaurants"])


@restaurant_router.get("/{restaurant_id}/orders", response_model=OrderListResponse)
async def list_orders_for_restaurant(
    restaurant_id: str,
    status: str | None = None,
    page: int = 1,
    page_size: int = 10,
    user_id: str = Depends(caller_id),
) -> OrderListResponse:
    page_data = list_restaurant_orders(user_id, restaurant_id, status=status, page=page, page_size=page_size)
    return _order_list_response(page_data)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

# Gateway calls are blocking HTTP; these handlers run in the threadpool


@payment_router.get("/gateway/health")
def gateway_health() -> dict:
    return get_gateway().health_check()


@payment_router.get("/gateway/balance", response_model=BalanceResponse)
def gateway_balance() -> BalanceResponse:
    balance = get_gateway().get_balance()
    return BalanceResponse(available_balance=balance.available_balance, currency=balance.currency)


@payment_router.post("", status_code=201, response_model=PaymentResponse)
def initiate_payment(body: InitiatePaymentRequest, user_id: str = Depends(caller_id)) -> PaymentResponse:
    return _payment_response(request_payment(user_id, body.order_id, body.phone))


@payment_router.get("/{payment_id}/status", response_model=PaymentResponse)
def payment_status(payment_id: str, user_id: str = Depends(caller_id)) -> PaymentResponse:
    get_payment_for(user_id, payment_id)
    return _payment_response(poll_payment(payment_id))


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/{provider}")
async def gateway_webhook(provider: str, request: Request) -> dict:
    """Gateway callback. Any non-2xx answer makes the provider re-deliver."""
    raw = await request.body()
    return await run_in_threadpool(_apply_callback, provider, raw, request.headers.get("X-Callback-Signature"))


def _apply_callback(provider: str, raw: bytes, signature: str | None) -> dict:
    if not get_gateway().verify_callback_signature(raw, signature):
        logger.warning("Gateway callback with invalid signature rejected", provider=provider)
        raise HTTPException(status_code=401, detail="Invalid callback signature")

    try:
        callback = GatewayCallback.model_validate(json.loads(raw or b"{}"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Malformed callback payload")

    reason = callback.reason
    if isinstance(reason, dict):
        reason = reason.get("message") or reason.get("code")

    payment = process_gateway_callback(
        provider,
        callback.reference_id,
        callback.status,
        reason=reason,
        financial_transaction_id=callback.financial_transaction_id,
    )
    return {"status": "ok", "payment_id": str(payment.id), "payment_status": payment.status}
