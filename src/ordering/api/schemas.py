"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartLineRequest(BaseModel):
    variant_id: str
    quantity: int = Field(default=1, ge=1)

    model_config = {"json_schema_extra": {"examples": [{"variant_id": "var-001", "quantity": 2}]}}


class AddMenuBundleRequest(BaseModel):
    menu_id: str
    quantity: int = Field(default=1, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(ge=1)


class CartLineResponse(BaseModel):
    line_id: str
    product_id: str
    variant_id: str
    variant_label: str
    quantity: int
    unit_price: float
    line_total: float


class CartBundleResponse(BaseModel):
    bundle_id: str
    menu_id: str | None
    quantity: int
    lines: list[CartLineResponse]
    total: float


class CartResponse(BaseModel):
    user_id: str
    restaurant_id: str | None
    lines: list[CartLineResponse]
    bundles: list[CartBundleResponse]
    subtotal: float
    item_count: int


class LineIdResponse(BaseModel):
    line_id: str


class BundleIdResponse(BaseModel):
    bundle_id: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    payment_method: str = Field(alias="paymentMethod")
    is_delivery: bool = Field(default=True, alias="isDelivery")
    address_id: str | None = Field(default=None, alias="addressId")
    notes: str | None = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [{"paymentMethod": "MTN_MOMO", "isDelivery": True, "addressId": "addr-001"}]
        },
    )


class UpdateOrderStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    variant_id: str
    variant_label: str | None
    quantity: int
    unit_price: float
    menu_id: str | None = None
    bundle_id: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    user_id: str
    restaurant_id: str
    restaurant_name: str | None
    status: str
    items: list[OrderItemResponse]
    subtotal: float
    delivery_fee: float
    total: float
    is_delivery: bool
    delivery_address: str | None
    payment_method: str
    notes: str | None
    paid_at: datetime | None
    created_at: datetime | None


class PageMeta(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    meta: PageMeta


class StatusResponse(BaseModel):
    status: str = "ok"


class ReorderSummary(BaseModel):
    requested: int
    added: int
    unavailable: int
    errors: int


class ReorderResponse(BaseModel):
    added: list[dict]
    unavailable: list[dict]
    errors: list[dict]
    summary: ReorderSummary


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class InitiatePaymentRequest(BaseModel):
    order_id: str = Field(alias="orderId")
    phone: str

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"examples": [{"orderId": "ord-001", "phone": "+242061234567"}]},
    )


class PaymentResponse(BaseModel):
    payment_id: str
    order_id: str
    amount: float
    currency: str
    phone: str
    provider: str | None
    provider_transaction_id: str | None
    status: str
    failure_reason: str | None
    timed_out: bool
    created_at: datetime | None
    completed_at: datetime | None


class GatewayCallback(BaseModel):
    reference_id: str = Field(alias="referenceId")
    status: str
    financial_transaction_id: str | None = Field(default=None, alias="financialTransactionId")
    reason: str | dict | None = None

    model_config = ConfigDict(populate_by_name=True)


class BalanceResponse(BaseModel):
    available_balance: str
    currency: str
