# cartflow/domain/entities.py
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

ZERO = Decimal("0.00")


def money(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def as_utc(value: datetime | None) -> datetime | None:
    #sqlite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def round_whole(value) -> Decimal:
    """Round to whole currency units, half away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class Identity(BaseModel):
    """
    Current owner of a cart: an anonymous guest or an authenticated buyer.
    Guests are told apart by the client session they browse in.
    """

    buyer_id: str | None = None
    session_id: str | None = None  # guests only

    model_config = ConfigDict(frozen=True)

    @classmethod
    def guest(cls, session_id: str | None = None) -> "Identity":
        return cls(buyer_id=None, session_id=session_id)

    @classmethod
    def for_session(cls, buyer_id: str | None, session_id: str) -> "Identity":
        return cls(buyer_id=buyer_id) if buyer_id else cls.guest(session_id)

    @property
    def is_guest(self) -> bool:
        return self.buyer_id is None

    @property
    def cache_key(self) -> str:
        if self.buyer_id:
            return f"cart:{self.buyer_id}"
        if self.session_id:
            return f"cart:guest:{self.session_id}"
        return "cart:guest"


class CartItem(BaseModel):
    product_id: str
    title: str
    unit_price: Decimal
    original_price: Decimal | None = None
    quantity: int = Field(1, ge=1)
    stock_limit: int | None = None
    weight_kg: Decimal = Decimal("0")
    seller_id: str | None = None
    image_ref: str | None = None
    color_variant: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_weight_kg(self) -> Decimal:
        return self.weight_kg * self.quantity


class Location(BaseModel):
    lat: float
    lng: float
    formatted_address: str | None = None

    model_config = ConfigDict(frozen=True)


class ShippingAddress(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    note: str | None = None
    location: Location | None = None

    REQUIRED: ClassVar[tuple[str, ...]] = ("name", "street", "city", "postal_code", "phone", "email")

    def missing_fields(self) -> list[str]:
        return [f for f in self.REQUIRED if not str(getattr(self, f) or "").strip()]

    def freeform(self) -> str:
        parts = [self.street, self.city, self.province, self.postal_code]
        return ", ".join(p.strip() for p in parts if p and p.strip())

    def same_dropoff(self, other: "ShippingAddress | None") -> bool:
        if other is None:
            return False
        return self.freeform().lower() == other.freeform().lower()


class SavedAddress(BaseModel):
    id: int
    buyer_id: str
    label: str
    name: str
    phone: str | None = None
    street: str
    city: str
    province: str | None = None
    postal_code: str | None = None
    is_default: bool = False
    lat: float | None = None
    lng: float | None = None
    formatted_address: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def line(self) -> str:
        return ", ".join(p for p in (self.street, self.city, self.province) if p)

    @property
    def location(self) -> Location | None:
        if self.lat is None or self.lng is None:
            return None
        return Location(lat=self.lat, lng=self.lng, formatted_address=self.formatted_address)


class ParcelClass(BaseModel):
    vehicle_class: str
    weight_band: str

    model_config = ConfigDict(frozen=True)


class ShippingQuote(BaseModel):
    """Courier offer, only valid for the dropoff and parcel class it was requested for."""

    fee_amount: Decimal
    distance_meters: int
    provider_reference: str | None = None
    dropoff: Location
    parcel: ParcelClass

    model_config = ConfigDict(frozen=True)

    def is_valid_for(self, dropoff: Location | None, parcel: ParcelClass) -> bool:
        return dropoff is not None and self.dropoff == dropoff and self.parcel == parcel


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Voucher(BaseModel):
    id: int
    seller_id: str | None = None
    name: str | None = None
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_purchase: Decimal | None = None
    max_discount: Decimal | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    status: str = "active"

    model_config = ConfigDict(from_attributes=True)

    def is_eligible(self, now: datetime) -> bool:
        if self.status != "active":
            return False
        now = as_utc(now)
        start, end = as_utc(self.valid_from), as_utc(self.valid_to)
        if start is not None and now < start:
            return False
        if end is not None and now > end:
            return False
        return True


class CheckoutTotals(BaseModel):
    """Derived figures for a checkout, never persisted as such."""

    subtotal: Decimal
    shipping_fee: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal

    @classmethod
    def compute(cls, subtotal, shipping_fee, tax, discount) -> "CheckoutTotals":
        subtotal, shipping_fee, tax, discount = (
            money(v) for v in (subtotal, shipping_fee, tax, discount)
        )
        total = max(ZERO, subtotal + shipping_fee + tax - discount)
        return cls(
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            tax=tax,
            discount=discount,
            total=money(total),
        )


class PaymentMethod(str, Enum):
    CARD = "card"
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    COD = "cod"


class PaymentFailurePolicy(str, Enum):
    DEGRADE_TO_SUCCESS = "degrade_to_success"
    SURFACE_PENDING = "surface_pending"


class OrderOutcome(str, Enum):
    PLACED = "placed"  # cash on delivery, nothing else to do
    REDIRECT = "redirect"  # hosted payment page ready
    DEGRADED_SUCCESS = "degraded_success"  # payment session failed, treated as placed
    PAYMENT_PENDING = "payment_pending"  # payment session failed, surfaced as such


class ShippingSnapshot(BaseModel):
    buyer_name: str
    buyer_address: str
    payment_method: PaymentMethod
    dropoff: Location | None = None
    quotation_id: str | None = None


class OrderResult(BaseModel):
    order_id: int
    outcome: OrderOutcome
    total: Decimal
    redirect_url: str | None = None
    lines_created: int = 0
    payment_error: str | None = None


class CartSummary(BaseModel):
    subtotal: Decimal
    item_count: int
    line_count: int
