# cartflow/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from cartflow.data.database import get_db
from cartflow.domain.errors import (
    CatalogUnavailable,
    CheckoutError,
    EmptyCheckout,
    GeocodeServiceError,
    InvalidTransition,
    LineNotFound,
    OrderPersistenceError,
    OutOfStock,
    QuoteUnavailable,
)
from cartflow.repos.voucher_repo import VoucherRepo
from cartflow.services.address_resolver import AddressResolver
from cartflow.services.cart_mirror import CeleryCartMirror, SqlCartMirror
from cartflow.services.cart_store import CartStore
from cartflow.services.geocoding_client import GeocodingClient
from cartflow.services.local_cache import LocalCartCache
from cartflow.services.order_placer import OrderPlacer
from cartflow.services.payment_handoff import PaymentGatewayClient, PaymentHandoff
from cartflow.services.product_client import ProductClient
from cartflow.services.session_registry import CartSession, SessionRegistry
from cartflow.services.shipping_quote_client import CourierQuoteClient
from cartflow.services.voucher_engine import VoucherEngine
from cartflow.utils.settings import CART_MIRROR_MODE


def build_cart_store() -> CartStore:
    mirror = CeleryCartMirror() if CART_MIRROR_MODE == "celery" else SqlCartMirror()
    return CartStore(cache=LocalCartCache(), mirror=mirror)


_registry = SessionRegistry(build_cart_store)


def get_registry() -> SessionRegistry:
    return _registry


def get_cart_session(
    x_session_id: str = Header(..., min_length=1),
    registry: SessionRegistry = Depends(get_registry),
) -> CartSession:
    return registry.get(x_session_id)


def get_product_client() -> ProductClient:
    return ProductClient()


def get_geocoder() -> GeocodingClient:
    return GeocodingClient()


def get_quote_client() -> CourierQuoteClient:
    return CourierQuoteClient()


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient()


class CheckoutServices:
    """Request-scoped collaborators of a checkout wizard."""

    def __init__(self, db: Session, geocoder: GeocodingClient, quotes: CourierQuoteClient,
                 gateway: PaymentGatewayClient):
        self.db = db
        self.geocoder = geocoder
        self.quotes = quotes
        self.gateway = gateway

    def resolver(self) -> AddressResolver:
        return AddressResolver(self.db, self.geocoder)

    def vouchers(self) -> VoucherEngine:
        return VoucherEngine(VoucherRepo(self.db))

    def placer(self, store: CartStore) -> OrderPlacer:
        return OrderPlacer(self.db, store, PaymentHandoff(self.gateway))


def get_checkout_services(
    db: Session = Depends(get_db),
    geocoder: GeocodingClient = Depends(get_geocoder),
    quotes: CourierQuoteClient = Depends(get_quote_client),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
) -> CheckoutServices:
    return CheckoutServices(db, geocoder, quotes, gateway)


def http_error(error: CheckoutError) -> HTTPException:
    if isinstance(error, LineNotFound) or error.code in ("saved_address_not_found", "order_not_found"):
        status = 404
    elif isinstance(error, (InvalidTransition, OutOfStock)):
        status = 409
    elif isinstance(error, (GeocodeServiceError, QuoteUnavailable, OrderPersistenceError)):
        status = 503
    elif isinstance(error, CatalogUnavailable):
        status = 502
    elif isinstance(error, EmptyCheckout):
        status = 400
    else:
        status = 422
    return HTTPException(status_code=status, detail=error.as_dict())
