# cartflow/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from cartflow.api.deps import CheckoutServices, get_cart_session, get_checkout_services, http_error
from cartflow.domain.errors import CheckoutError
from cartflow.domain.schemas import (
    CheckoutOut,
    PaymentIn,
    QuoteOut,
    ShippingIn,
    StartCheckoutIn,
    VoucherIn,
)
from cartflow.services.checkout_wizard import CheckoutWizard, StepResult
from cartflow.services.session_registry import CartSession

router = APIRouter(prefix="/checkout", tags=["checkout"])


def checkout_out(wizard: CheckoutWizard) -> CheckoutOut:
    quote = wizard.quote
    return CheckoutOut(
        step=wizard.step.value,
        address=wizard.address,
        payment_method=wizard.payment_method,
        terms_accepted=wizard.terms_accepted,
        quote=QuoteOut(
            fee_amount=quote.fee_amount,
            distance_meters=quote.distance_meters,
            provider_reference=quote.provider_reference,
            vehicle_class=quote.parcel.vehicle_class,
            weight_band=quote.parcel.weight_band,
        ) if quote else None,
        voucher_code=wizard.voucher.code if wizard.voucher else None,
        totals=wizard.totals(),
        order=wizard.order,
    )


def active_wizard(session: CartSession, services: CheckoutServices) -> CheckoutWizard:
    wizard = session.wizard
    if wizard is None or wizard.abandoned:
        raise HTTPException(status_code=404, detail="No checkout in progress")
    wizard.rebind(services.resolver(), services.vouchers(), services.placer(session.store))
    return wizard


def respond(result: StepResult, wizard: CheckoutWizard) -> CheckoutOut:
    if not result.ok:
        raise http_error(result.error)
    return checkout_out(wizard)


@router.post("/", response_model=CheckoutOut, status_code=201)
def start_checkout(
    payload: StartCheckoutIn,
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        if session.wizard is not None:
            session.wizard.abandon()
        session.wizard = CheckoutWizard(
            cart=session.store,
            resolver=services.resolver(),
            quotes=services.quotes,
            vouchers=services.vouchers(),
            placer=services.placer(session.store),
            selection=payload.product_ids,
        )
        return checkout_out(session.wizard)


@router.get("/", response_model=CheckoutOut)
def get_checkout(
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        return checkout_out(active_wizard(session, services))


@router.put("/shipping", response_model=CheckoutOut)
def set_shipping(
    payload: ShippingIn,
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        if payload.saved_address_id is not None:
            if not payload.buyer_id:
                raise HTTPException(status_code=422, detail="buyer_id is required with saved_address_id")
            try:
                saved = wizard.resolver.get(payload.buyer_id, payload.saved_address_id)
            except CheckoutError as e:
                raise http_error(e)
            result = wizard.use_saved_address(saved, email=payload.email)
        else:
            result = wizard.set_address(payload.to_address())
        return respond(result, wizard)


@router.put("/payment", response_model=CheckoutOut)
def set_payment(
    payload: PaymentIn,
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        return respond(wizard.choose_payment(payload.payment_method, payload.terms_accepted), wizard)


@router.put("/voucher", response_model=CheckoutOut)
def set_voucher(
    payload: VoucherIn,
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        return respond(wizard.select_voucher(payload.voucher_id), wizard)


@router.post("/next", response_model=CheckoutOut)
def next_step(
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        return respond(wizard.next(), wizard)


@router.post("/back", response_model=CheckoutOut)
def previous_step(
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        return respond(wizard.back(), wizard)


@router.post("/place", response_model=CheckoutOut)
def place_order(
    session: CartSession = Depends(get_cart_session),
    services: CheckoutServices = Depends(get_checkout_services),
):
    with session.lock:
        wizard = active_wizard(session, services)
        return respond(wizard.place_order(), wizard)


@router.delete("/", status_code=204)
def abandon_checkout(session: CartSession = Depends(get_cart_session)):
    with session.lock:
        if session.wizard is not None:
            session.wizard.abandon()
            session.wizard = None
