# cartflow/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field, ConfigDict

from cartflow.domain.entities import (
    CartItem,
    CheckoutTotals,
    OrderResult,
    PaymentMethod,
    SavedAddress,
    ShippingAddress,
)


class ItemIn(BaseModel):
    """Add a catalog product to the cart."""

    product_id: str = Field(..., min_length=1, description="Catalog product id")
    quantity: int = Field(1, description="Requested quantity, clamped to stock")


class QuantityIn(BaseModel):
    quantity: int = Field(..., description="New quantity, clamped to 1..stock")


class IdentityIn(BaseModel):
    """Identity reported by the auth layer; no buyer_id means guest."""

    buyer_id: str | None = None


class CartOut(BaseModel):
    identity: str
    items: List[CartItem]
    subtotal: Decimal
    count: int


class AddressFieldsIn(BaseModel):
    """Address as typed by the buyer; coordinates only ever come from geocoding."""

    name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    note: str | None = None

    def to_address(self) -> ShippingAddress:
        return ShippingAddress(**self.model_dump(include=set(AddressFieldsIn.model_fields)))


class AddressIn(AddressFieldsIn):
    label: str = Field("Home Address", max_length=100)
    make_default: bool = False


class RenameIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)


class AddressOut(SavedAddress):
    pass


class StartCheckoutIn(BaseModel):
    """Start a checkout over the whole cart, or over the listed product ids."""

    product_ids: List[str] | None = None


class ShippingIn(AddressFieldsIn):
    saved_address_id: int | None = Field(None, description="Prefill from a saved address")
    buyer_id: str | None = None


class PaymentIn(BaseModel):
    payment_method: PaymentMethod | None = None
    terms_accepted: bool = False


class VoucherIn(BaseModel):
    voucher_id: int | None = None


class QuoteOut(BaseModel):
    fee_amount: Decimal
    distance_meters: int
    provider_reference: str | None = None
    vehicle_class: str
    weight_band: str


class CheckoutOut(BaseModel):
    step: str
    address: ShippingAddress
    payment_method: PaymentMethod | None = None
    terms_accepted: bool
    quote: QuoteOut | None = None
    voucher_code: str | None = None
    totals: CheckoutTotals
    order: OrderResult | None = None

    model_config = ConfigDict(use_enum_values=True)


class OrderLineOut(BaseModel):
    product_id: str
    seller_id: str
    title: str
    image: str | None = None
    quantity: int
    unit_price: Decimal
    status: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    buyer_id: str | None = None
    status: str
    total_amount: Decimal
    subtotal: Decimal
    shipping_fee: Decimal
    tax: Decimal
    discount: Decimal
    item_count: int
    summary_title: str | None = None
    summary_image: str | None = None
    voucher_code: str | None = None
    payment_method: str
    dropoff_address: str | None = None
    courier_quotation_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderDetailOut(OrderOut):
    lines: List[OrderLineOut] = []
