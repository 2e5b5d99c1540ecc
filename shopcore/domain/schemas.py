# shopcore/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# kwoty w JSON jako liczby, w srodku zawsze Decimal
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ApiModel(BaseModel):
    """Baza dla schem API - camelCase na zewnatrz, snake_case w kodzie."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- cart ---

class CartItemIn(ApiModel):
    """Schema dla dodawania produktu do koszyka."""

    session_id: str | None = Field(None, min_length=1, max_length=128, description="Brak = nowa sesja")
    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")


class CartUpdateIn(ApiModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=0, description="0 usuwa pozycje")


class CartLineOut(ApiModel):
    id: int
    product_id: int
    name: str | None = None
    sku: str | None = None
    quantity: int
    price: Money
    subtotal: Money


class CartOut(ApiModel):
    """Schema dla koszyka (response)."""

    id: int
    session_id: str
    items: List[CartLineOut]
    total: Money
    expires_at: datetime | None = None


# --- checkout ---

class CustomerIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=254, pattern=_EMAIL_PATTERN)
    phone: str = Field(..., min_length=5, max_length=30)


class ShippingAddressIn(ApiModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("Norway", min_length=1, max_length=100)


class CheckoutIn(ApiModel):
    """Schema dla checkoutu koszyka."""

    session_id: str = Field(..., min_length=1, max_length=128)
    customer: CustomerIn
    shipping_address: ShippingAddressIn
    payment_intent_id: str | None = Field(None, min_length=1)
    notes: str | None = Field(None, max_length=500)


# --- orders ---

class CustomerOut(ApiModel):
    name: str
    email: str
    phone: str


class ShippingAddressOut(ApiModel):
    street: str
    city: str
    postal_code: str
    country: str


class OrderItemOut(ApiModel):
    product_id: int
    name: str | None = None
    sku: str | None = None
    quantity: int
    price: Money
    subtotal: Money


class RefundOut(ApiModel):
    refund_id: str
    amount: Money
    reason: str | None = None
    created_at: datetime


class OrderOut(ApiModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    customer: CustomerOut
    shipping_address: ShippingAddressOut
    items: List[OrderItemOut]
    subtotal: Money
    tax: Money
    shipping_fee: Money
    discount: Money
    total: Money
    order_status: str
    payment_status: str
    payment_method: str
    payment_intent_id: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    refunds: List[RefundOut] = []
    language: str
    notes: str | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class OrderListOut(ApiModel):
    orders: List[OrderOut]
    total: int
    page: int
    limit: int
    pages: int


class TrackingStepOut(ApiModel):
    status: str
    message: str
    completed: bool
    at: datetime | None = None


class TrackingOut(ApiModel):
    """Publiczny widok sledzenia - bez danych klienta."""

    order_number: str
    order_status: str
    payment_status: str
    item_count: int
    total: Money
    tracking_number: str | None = None
    carrier: str | None = None
    estimated_delivery: datetime | None = None
    order_date: datetime
    last_update: datetime
    status_history: List[TrackingStepOut]


class CancelIn(ApiModel):
    email: str = Field(..., min_length=3, max_length=254)


class StatusUpdateIn(ApiModel):
    order_status: str = Field(..., min_length=1)


class ShippingUpdateIn(ApiModel):
    tracking_number: str | None = Field(None, min_length=1, max_length=100)
    carrier: str | None = Field(None, min_length=1, max_length=100)
    estimated_delivery: datetime | None = None


class SequenceSyncOut(ApiModel):
    name: str
    value: int


# --- payments ---

class CreateIntentIn(ApiModel):
    order_id: str = Field(..., min_length=1)
    amount: Decimal | None = Field(None, gt=0)


class PaymentIntentOut(ApiModel):
    payment_intent_id: str
    client_secret: str | None = None
    amount: Money
    currency: str


class ConfirmPaymentIn(ApiModel):
    order_id: str = Field(..., min_length=1)
    payment_intent_id: str = Field(..., min_length=1)


class PaymentStatusOut(ApiModel):
    payment_intent_id: str
    status: str
    amount: Money
    currency: str
    created: datetime | None = None
    order_number: str | None = None
    payment_status: str | None = None


class PaymentVerifyOut(PaymentStatusOut):
    is_successful: bool
    is_pending: bool
    is_failed: bool
    metadata: dict = {}


class RefundIn(ApiModel):
    payment_intent_id: str = Field(..., min_length=1)
    amount: Decimal | None = Field(None, gt=0)
    reason: Literal["duplicate", "fraudulent", "requested_by_customer"] | None = None


class RefundResultOut(ApiModel):
    refund_id: str
    amount: Money
    status: str
    reason: str | None = None
    order_number: str
    payment_status: str


class WebhookAck(ApiModel):
    received: bool = True
    type: str | None = None
