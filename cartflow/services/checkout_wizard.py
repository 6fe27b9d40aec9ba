# cartflow/services/checkout_wizard.py
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from cartflow.domain.entities import (
    CartItem,
    CheckoutTotals,
    Location,
    OrderResult,
    ParcelClass,
    PaymentMethod,
    SavedAddress,
    ShippingAddress,
    ShippingQuote,
    ShippingSnapshot,
    Voucher,
    ZERO,
    round_whole,
)
from cartflow.domain.errors import (
    CheckoutError,
    InvalidTransition,
    PaymentValidationError,
    ShippingValidationError,
)
from cartflow.services.address_resolver import AddressResolver
from cartflow.services.cart_store import CartStore
from cartflow.services.order_placer import OrderPlacer
from cartflow.services.scope import LoadScope
from cartflow.services.shipping_quote_client import CourierQuoteClient, classify_parcel
from cartflow.services.voucher_engine import VoucherEngine
from cartflow.utils.settings import VAT_RATE, PICKUP_LAT, PICKUP_LNG, PICKUP_ADDRESS
from cartflow.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutStep(str, Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"
    PLACED = "placed"


_BACK = {
    CheckoutStep.PAYMENT: CheckoutStep.SHIPPING,
    CheckoutStep.REVIEW: CheckoutStep.PAYMENT,
}


@dataclass(frozen=True)
class StepResult:
    ok: bool
    step: CheckoutStep
    error: CheckoutError | None = None
    order: OrderResult | None = None


def default_pickup() -> Location:
    return Location(lat=PICKUP_LAT, lng=PICKUP_LNG, formatted_address=PICKUP_ADDRESS)


class CheckoutWizard:
    """
    Shipping -> Payment -> Review -> Placed.

    Every transition is guarded and reported through a StepResult; a failed
    guard leaves the wizard where it was. Going back keeps the data entered
    in the later steps. The cart is only touched once the order is placed.
    """

    def __init__(
        self,
        cart: CartStore,
        resolver: AddressResolver,
        quotes: CourierQuoteClient,
        vouchers: VoucherEngine,
        placer: OrderPlacer,
        pickup: Location | None = None,
        selection: list[str] | None = None,
        vat_rate: Decimal = VAT_RATE,
    ):
        self.cart = cart
        self.resolver = resolver
        self.quotes = quotes
        self.vouchers = vouchers
        self.placer = placer
        self.pickup = pickup or default_pickup()
        self.selection = [str(pid) for pid in selection] if selection is not None else None
        self.vat_rate = vat_rate

        self.step = CheckoutStep.SHIPPING
        self.address = ShippingAddress()
        self.payment_method: PaymentMethod | None = None
        self.terms_accepted = False
        self.quote: ShippingQuote | None = None
        self.voucher: Voucher | None = None
        self.order: OrderResult | None = None
        self.scope = LoadScope()

    def rebind(self, resolver: AddressResolver, vouchers: VoucherEngine, placer: OrderPlacer) -> None:
        """Swap request-scoped collaborators, checkout state is kept."""
        self.resolver = resolver
        self.vouchers = vouchers
        self.placer = placer

    # derived state
    @property
    def items(self) -> list[CartItem]:
        return self.cart.selection(self.selection)

    @property
    def seller_id(self) -> str | None:
        # single seller per checkout, taken from the first line
        items = self.items
        return items[0].seller_id if items else None

    @property
    def abandoned(self) -> bool:
        return self.scope.cancelled

    def parcel(self) -> ParcelClass:
        weight = sum((i.line_weight_kg for i in self.items), Decimal("0"))
        return classify_parcel(weight)

    def quote_is_current(self) -> bool:
        if not self.items:
            return True
        return self.quote is not None and self.quote.is_valid_for(self.address.location, self.parcel())

    def totals(self) -> CheckoutTotals:
        subtotal = self.cart.subtotal(self.selection)
        shipping = self.quote.fee_amount if self.quote is not None and self.items else ZERO
        tax = round_whole(subtotal * self.vat_rate)
        discount = self.vouchers.discount_for(self.voucher, subtotal)
        return CheckoutTotals.compute(subtotal, shipping, tax, discount)

    # data entry
    def set_address(self, address: ShippingAddress) -> StepResult:
        if self.step != CheckoutStep.SHIPPING:
            return self._fail(InvalidTransition("The address can only be changed in the shipping step"))

        if address.same_dropoff(self.address):
            #same place, keep whatever was resolved for it
            address = address.model_copy(update={"location": address.location or self.address.location})
        else:
            self.quote = None
        self.address = address
        return self._ok()

    def use_saved_address(self, saved: SavedAddress, email: str) -> StepResult:
        return self.set_address(
            ShippingAddress(
                name=saved.name,
                email=email,
                phone=saved.phone or "",
                street=saved.street,
                city=saved.city,
                province=saved.province or "",
                postal_code=saved.postal_code or "",
                location=saved.location,
            )
        )

    def choose_payment(self, method: PaymentMethod | None, terms_accepted: bool) -> StepResult:
        if self.step != CheckoutStep.PAYMENT:
            return self._fail(InvalidTransition("Payment can only be chosen in the payment step"))
        self.payment_method = method
        self.terms_accepted = bool(terms_accepted)
        return self._ok()

    def select_voucher(self, voucher_id: int | None) -> StepResult:
        if self.step == CheckoutStep.PLACED or self.abandoned:
            return self._fail(InvalidTransition("Checkout is closed"))
        if voucher_id is None:
            self.voucher = None
            return self._ok()
        try:
            self.voucher = self.vouchers.validate_selection(
                voucher_id,
                self.cart.subtotal(self.selection),
                self.seller_id,
            )
        except CheckoutError as e:
            return self._fail(e)
        return self._ok()

    # transitions
    def next(self) -> StepResult:
        if self.abandoned:
            return self._fail(InvalidTransition("Checkout was abandoned"))
        if self.step == CheckoutStep.SHIPPING:
            return self._submit_shipping()
        if self.step == CheckoutStep.PAYMENT:
            return self._submit_payment()
        return self._fail(InvalidTransition(f"No next step from {self.step.value}"))

    def back(self) -> StepResult:
        previous = _BACK.get(self.step)
        if previous is None or self.abandoned:
            return self._fail(InvalidTransition(f"Cannot go back from {self.step.value}"))
        self.step = previous
        return self._ok()

    def place_order(self) -> StepResult:
        if self.abandoned:
            return self._fail(InvalidTransition("Checkout was abandoned"))
        if self.step != CheckoutStep.REVIEW:
            return self._fail(InvalidTransition("Orders are placed from the review step"))
        if not self.quote_is_current():
            return self._fail(InvalidTransition("Delivery quote is out of date, go back to shipping"))

        location = self.address.location
        snapshot = ShippingSnapshot(
            buyer_name=self.address.name,
            buyer_address=(location.formatted_address if location else None) or self.address.freeform(),
            payment_method=self.payment_method,
            dropoff=location,
            quotation_id=self.quote.provider_reference if self.quote else None,
        )
        try:
            result = self.placer.place_order(
                self.items,
                snapshot,
                self.totals(),
                voucher_code=self.voucher.code if self.voucher else None,
            )
        except CheckoutError as e:
            logger.warning(f"Placing order failed: {e.message}")
            return self._fail(e)

        self.order = result
        self.step = CheckoutStep.PLACED
        return StepResult(ok=True, step=self.step, order=result)

    def abandon(self) -> None:
        """Leave the checkout; late results of running calls are dropped."""
        if self.step != CheckoutStep.PLACED:
            self.scope.cancel()

    def _submit_shipping(self) -> StepResult:
        missing = self.address.missing_fields()
        if missing:
            return self._fail(ShippingValidationError(missing))

        scope = self.scope
        try:
            resolved = self.resolver.resolve(self.address)
            if scope.cancelled:
                return self._fail(InvalidTransition("Checkout was abandoned"))
            self.address = resolved

            if self.items and not self.quote_is_current():
                quote = self.quotes.request_quote(self.pickup, resolved.location, self.parcel())
                if scope.cancelled:
                    return self._fail(InvalidTransition("Checkout was abandoned"))
                self.quote = quote
        except CheckoutError as e:
            logger.info(f"Shipping step blocked: {e.code}")
            return self._fail(e)

        self.step = CheckoutStep.PAYMENT
        return self._ok()

    def _submit_payment(self) -> StepResult:
        if self.payment_method is None:
            return self._fail(PaymentValidationError("Select a payment method"))
        if not self.terms_accepted:
            return self._fail(PaymentValidationError("Accept the terms and conditions to continue"))
        if not self.quote_is_current():
            return self._fail(InvalidTransition("Delivery quote is out of date, go back to shipping"))

        self.step = CheckoutStep.REVIEW
        return self._ok()

    def _ok(self) -> StepResult:
        return StepResult(ok=True, step=self.step)

    def _fail(self, error: CheckoutError) -> StepResult:
        return StepResult(ok=False, step=self.step, error=error)
