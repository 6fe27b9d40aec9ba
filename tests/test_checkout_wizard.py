# tests/test_checkout_wizard.py
from decimal import Decimal

import pytest
import requests

from cartflow.domain.entities import (
    DiscountType,
    Identity,
    Location,
    OrderOutcome,
    PaymentMethod,
    SavedAddress,
    ShippingAddress,
    Voucher,
)
from cartflow.domain.errors import (
    AddressNotFound,
    InvalidTransition,
    PaymentValidationError,
    QuoteUnavailable,
    ShippingValidationError,
    VoucherNotApplicable,
)
from cartflow.services.address_resolver import AddressResolver
from cartflow.services.checkout_wizard import CheckoutStep, CheckoutWizard
from cartflow.services.order_placer import OrderPlacer
from cartflow.services.payment_handoff import PaymentGatewayClient, PaymentHandoff
from cartflow.services.shipping_quote_client import LIGHT, MEDIUM
from cartflow.services.voucher_engine import VoucherEngine
from fakes import FakeGateway, FakeGeocoder, FakeNotifications, FakeQuotes, make_item

PICKUP = Location(lat=14.5995, lng=120.9842, formatted_address="Warehouse")


def full_address(**kw):
    values = dict(
        name="Juan Dela Cruz",
        email="juan@example.com",
        phone="09171234567",
        street="123 Main St",
        city="Makati",
        postal_code="1200",
    )
    values.update(kw)
    return ShippingAddress(**values)


class Harness:
    def __init__(self, db, store, geocoder=None, quotes=None, gateway=None, vouchers=None, selection=None):
        self.geocoder = geocoder or FakeGeocoder()
        self.quotes = quotes or FakeQuotes()
        self.gateway = gateway or FakeGateway()
        self.wizard = CheckoutWizard(
            cart=store,
            resolver=AddressResolver(None, self.geocoder),
            quotes=self.quotes,
            vouchers=VoucherEngine(catalog=vouchers or []),
            placer=OrderPlacer(db, store, PaymentHandoff(self.gateway), notifications=FakeNotifications()),
            pickup=PICKUP,
            selection=selection,
        )

    def to_payment(self):
        self.wizard.set_address(full_address())
        return self.wizard.next()

    def to_review(self, method=PaymentMethod.COD):
        self.to_payment()
        self.wizard.choose_payment(method, True)
        return self.wizard.next()


@pytest.fixture
def cart(store):
    store.identity = Identity(buyer_id="buyer-1")
    store.add(make_item("sofa", price="1000", weight="2", seller="s1"), 1)
    return store


def test_missing_fields_block_shipping(db, cart):
    h = Harness(db, cart)
    h.wizard.set_address(full_address(phone="", postal_code="  "))

    result = h.wizard.next()

    assert not result.ok
    assert result.step is CheckoutStep.SHIPPING
    assert isinstance(result.error, ShippingValidationError)
    assert result.error.missing == ["postal_code", "phone"]
    assert h.geocoder.calls == []


def test_unresolvable_address_stays_on_shipping(db, cart):
    h = Harness(db, cart, geocoder=FakeGeocoder(error=AddressNotFound("nope")))

    result = h.to_payment()

    assert isinstance(result.error, AddressNotFound)
    assert h.wizard.step is CheckoutStep.SHIPPING
    assert h.quotes.calls == []


def test_quote_failure_stays_on_shipping(db, cart):
    h = Harness(db, cart, quotes=FakeQuotes(error=QuoteUnavailable("courier down")))

    result = h.to_payment()

    assert isinstance(result.error, QuoteUnavailable)
    assert h.wizard.step is CheckoutStep.SHIPPING
    assert h.wizard.quote is None


def test_shipping_step_resolves_and_quotes(db, cart):
    h = Harness(db, cart)

    result = h.to_payment()

    assert result.ok
    assert result.step is CheckoutStep.PAYMENT
    pickup, dropoff, parcel = h.quotes.calls[0]
    assert pickup == PICKUP
    assert dropoff == h.wizard.address.location
    assert parcel == LIGHT
    assert h.wizard.totals().shipping_fee == Decimal("250")


def test_payment_step_validation(db, cart):
    h = Harness(db, cart)
    h.to_payment()

    assert isinstance(h.wizard.next().error, PaymentValidationError)
    h.wizard.choose_payment(PaymentMethod.CARD, False)
    assert isinstance(h.wizard.next().error, PaymentValidationError)
    h.wizard.choose_payment(PaymentMethod.CARD, True)
    assert h.wizard.next().step is CheckoutStep.REVIEW


def test_back_keeps_entered_data(db, cart):
    h = Harness(db, cart)
    h.to_review(PaymentMethod.GCASH)

    assert h.wizard.back().step is CheckoutStep.PAYMENT
    assert h.wizard.back().step is CheckoutStep.SHIPPING
    assert h.wizard.payment_method is PaymentMethod.GCASH
    assert h.wizard.address.street == "123 Main St"
    assert not h.wizard.back().ok


def test_steps_cannot_be_skipped(db, cart):
    h = Harness(db, cart)

    assert isinstance(h.wizard.choose_payment(PaymentMethod.COD, True).error, InvalidTransition)
    assert isinstance(h.wizard.place_order().error, InvalidTransition)

    h.to_payment()
    assert isinstance(h.wizard.set_address(full_address(street="1 Other St")).error, InvalidTransition)


def test_changed_address_needs_a_new_quote(db, cart):
    h = Harness(db, cart)
    h.to_payment()
    h.wizard.back()

    h.wizard.set_address(full_address(street="77 New St"))
    assert h.wizard.quote is None
    assert h.wizard.next().ok
    assert len(h.quotes.calls) == 2


def test_same_address_reuses_quote(db, cart):
    h = Harness(db, cart)
    h.to_payment()
    h.wizard.back()

    h.wizard.set_address(full_address(name="Juana Dela Cruz"))
    assert h.wizard.next().ok
    assert len(h.quotes.calls) == 1
    assert len(h.geocoder.calls) == 1


def test_cart_growth_invalidates_quote(db, cart):
    h = Harness(db, cart)
    h.to_payment()
    h.wizard.choose_payment(PaymentMethod.COD, True)

    cart.add(make_item("table", weight="15", seller="s1"))

    assert h.wizard.parcel() == MEDIUM
    assert not h.wizard.quote_is_current()
    assert isinstance(h.wizard.next().error, InvalidTransition)


def test_saved_address_skips_geocoding(db, cart):
    h = Harness(db, cart)
    saved = SavedAddress(
        id=1, buyer_id="buyer-1", label="Home", name="Juan", phone="0917", street="5 Elm St",
        city="Pasig", postal_code="1600", lat=14.57, lng=121.06, formatted_address="5 Elm St, Pasig",
    )

    h.wizard.use_saved_address(saved, email="juan@example.com")

    assert h.wizard.next().ok
    assert h.geocoder.calls == []
    assert h.quotes.calls[0][1] == saved.location


def test_voucher_selection_and_totals(db, cart):
    vouchers = [
        Voucher(id=1, seller_id="s1", code="TENOFF", discount_type=DiscountType.PERCENTAGE,
                discount_value=Decimal("10")),
        Voucher(id=2, seller_id="s1", code="BIG", discount_type=DiscountType.FIXED,
                discount_value=Decimal("100"), min_purchase=Decimal("5000")),
        Voucher(id=3, seller_id="other", code="ELSEWHERE", discount_type=DiscountType.FIXED,
                discount_value=Decimal("100")),
    ]
    h = Harness(db, cart, vouchers=vouchers)
    h.to_payment()

    assert h.wizard.select_voucher(1).ok
    totals = h.wizard.totals()
    assert totals.subtotal == Decimal("1000.00")
    assert totals.tax == Decimal("120.00")
    assert totals.discount == Decimal("100.00")
    assert totals.total == Decimal("1270.00")

    assert isinstance(h.wizard.select_voucher(2).error, VoucherNotApplicable)
    assert isinstance(h.wizard.select_voucher(3).error, VoucherNotApplicable)
    assert h.wizard.voucher.code == "TENOFF"

    assert h.wizard.select_voucher(None).ok
    assert h.wizard.totals().discount == Decimal("0.00")


def test_discount_can_cover_the_whole_order(db, store):
    store.add(make_item("cushion", price="100", seller="s1"))
    vouchers = [Voucher(id=1, seller_id="s1", code="FREE", discount_type=DiscountType.FIXED,
                        discount_value=Decimal("100"))]
    h = Harness(db, store, quotes=FakeQuotes(fee="0"), vouchers=vouchers)
    h.wizard.vat_rate = Decimal("0")

    h.wizard.select_voucher(1)

    assert h.wizard.totals().total == Decimal("0.00")


def test_place_cash_on_delivery_order(db, cart):
    h = Harness(db, cart)
    h.to_review(PaymentMethod.COD)

    result = h.wizard.place_order()

    assert result.ok
    assert result.step is CheckoutStep.PLACED
    assert result.order.outcome is OrderOutcome.PLACED
    assert result.order.total == Decimal("1370.00")
    assert h.gateway.calls == []
    assert cart.items == []


def test_place_only_selected_items(db, cart):
    cart.add(make_item("lamp", price="300", seller="s1"))
    h = Harness(db, cart, selection=["lamp"])
    h.to_review(PaymentMethod.CARD)

    result = h.wizard.place_order()

    assert result.order.outcome is OrderOutcome.REDIRECT
    assert result.order.total == Decimal("586.00")
    assert result.order.lines_created == 1


def test_empty_selection_needs_no_quote(db, store):
    h = Harness(db, store)
    h.to_review(PaymentMethod.COD)

    assert h.wizard.step is CheckoutStep.REVIEW
    assert h.quotes.calls == []
    assert h.wizard.totals().shipping_fee == Decimal("0.00")
    assert not h.wizard.place_order().ok


def test_abandon_drops_late_results(db, cart):
    h = Harness(db, cart)
    h.wizard.set_address(full_address())

    class AbandoningGeocoder(FakeGeocoder):
        def geocode(self, address):
            location = super().geocode(address)
            h.wizard.abandon()
            return location

    h.wizard.resolver = AddressResolver(None, AbandoningGeocoder())
    result = h.wizard.next()

    assert not result.ok
    assert h.wizard.address.location is None
    assert h.wizard.step is CheckoutStep.SHIPPING
    assert h.wizard.abandoned
    assert not h.wizard.next().ok


def test_unreadable_gateway_reply_still_places_the_order(db, cart, monkeypatch):
    class Reply:
        status_code = 200

        def raise_for_status(self):
            pass

        def json(self):
            return ["unexpected"]

    monkeypatch.setattr(requests, "post", lambda *a, **kw: Reply())
    h = Harness(db, cart, gateway=PaymentGatewayClient(base_url="http://pay.test"))
    h.to_review(PaymentMethod.GCASH)

    result = h.wizard.place_order()

    assert result.ok
    assert result.step is CheckoutStep.PLACED
    assert result.order.outcome is OrderOutcome.DEGRADED_SUCCESS
    assert result.order.redirect_url is None
    assert cart.items == []
