# cartflow/api/routers/carts.py
from fastapi import APIRouter, Depends, Header, HTTPException

from cartflow.api.deps import get_cart_session, get_product_client, get_registry, http_error
from cartflow.domain.errors import CheckoutError
from cartflow.domain.schemas import CartOut, IdentityIn, ItemIn, QuantityIn
from cartflow.services.product_client import ProductClient
from cartflow.services.session_registry import CartSession, SessionRegistry

router = APIRouter(prefix="/carts", tags=["carts"])


def cart_out(session: CartSession) -> CartOut:
    store = session.store
    return CartOut(
        identity=store.identity.cache_key,
        items=store.items,
        subtotal=store.subtotal(),
        count=store.count,
    )


@router.get("/", response_model=CartOut)
def get_cart(session: CartSession = Depends(get_cart_session)):
    return cart_out(session)


@router.post("/identity", response_model=CartOut)
def switch_identity(payload: IdentityIn, session: CartSession = Depends(get_cart_session)):
    with session.lock:
        session.bridge.on_identity_change(session.identity_for(payload.buyer_id))
        return cart_out(session)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    session: CartSession = Depends(get_cart_session),
    products: ProductClient = Depends(get_product_client),
):
    try:
        snapshot = products.fetch_snapshot(payload.product_id)
    except CheckoutError as e:
        raise http_error(e)

    with session.lock:
        try:
            session.store.add(snapshot, payload.quantity)
        except CheckoutError as e:
            raise http_error(e)
        return cart_out(session)


@router.put("/items/{product_id}", response_model=CartOut)
def set_quantity(
    product_id: str,
    payload: QuantityIn,
    session: CartSession = Depends(get_cart_session),
):
    with session.lock:
        try:
            session.store.set_quantity(product_id, payload.quantity)
        except CheckoutError as e:
            raise http_error(e)
        return cart_out(session)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(product_id: str, session: CartSession = Depends(get_cart_session)):
    with session.lock:
        if not session.store.remove(product_id):
            raise HTTPException(status_code=404, detail="Product not in cart")
        return cart_out(session)


@router.delete("/", response_model=CartOut)
def clear_cart(session: CartSession = Depends(get_cart_session)):
    with session.lock:
        session.store.clear()
        return cart_out(session)


@router.delete("/session", status_code=204)
def end_session(
    x_session_id: str = Header(..., min_length=1),
    registry: SessionRegistry = Depends(get_registry),
):
    """Forget the session's cart state; the cached cart stays for the next visit."""
    if not registry.drop(x_session_id):
        raise HTTPException(status_code=404, detail="Unknown session")
