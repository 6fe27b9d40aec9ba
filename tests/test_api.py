# tests/test_api.py
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cartflow.api import deps
from cartflow.data.database import get_db
from cartflow.data.models.voucher import VoucherModel
from cartflow.domain.errors import CatalogUnavailable
from cartflow.main import create_app
from cartflow.services.cart_store import CartStore
from cartflow.services.local_cache import LocalCartCache
from cartflow.services.session_registry import SessionRegistry
from fakes import FakeGateway, FakeGeocoder, FakeQuotes, make_item

CATALOG = {
    "sofa": make_item("sofa", price="1000", stock=3, weight="2", seller="s1"),
    "lamp": make_item("lamp", price="300", weight="1", seller="s1"),
}

ADDRESS = {
    "name": "Juan Dela Cruz",
    "email": "juan@example.com",
    "phone": "09171234567",
    "street": "123 Main St",
    "city": "Makati",
    "postal_code": "1200",
}


class FakeProducts:
    def fetch_snapshot(self, product_id):
        if product_id not in CATALOG:
            raise CatalogUnavailable(f"Product {product_id} could not be read")
        return CATALOG[product_id]


@pytest.fixture
def client(db, fake_redis, mirror):
    registry = SessionRegistry(lambda: CartStore(cache=LocalCartCache(client=fake_redis), mirror=mirror))

    def override_db():
        yield db

    app = create_app(with_lifespan=False)
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_registry] = lambda: registry
    app.dependency_overrides[deps.get_product_client] = lambda: FakeProducts()
    app.dependency_overrides[deps.get_geocoder] = lambda: FakeGeocoder()
    app.dependency_overrides[deps.get_quote_client] = lambda: FakeQuotes()
    app.dependency_overrides[deps.get_payment_gateway] = lambda: FakeGateway()

    with TestClient(app, headers={"X-Session-Id": "session-1"}) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_session_header_is_required(client):
    resp = client.get("/carts/", headers={"X-Session-Id": ""})
    assert resp.status_code == 422


def test_add_item_is_clamped_to_stock(client):
    resp = client.post("/carts/items", json={"product_id": "sofa", "quantity": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert body["identity"] == "cart:guest:session-1"
    assert body["items"][0]["quantity"] == 3
    assert Decimal(body["subtotal"]) == Decimal("3000")
    assert body["count"] == 3


def test_unknown_product(client):
    resp = client.post("/carts/items", json={"product_id": "ghost"})
    assert resp.status_code == 502


def test_update_and_remove_lines(client):
    client.post("/carts/items", json={"product_id": "lamp"})

    assert client.put("/carts/items/lamp", json={"quantity": 4}).json()["count"] == 4
    assert client.put("/carts/items/ghost", json={"quantity": 1}).status_code == 404
    assert client.delete("/carts/items/lamp").json()["items"] == []
    assert client.delete("/carts/items/lamp").status_code == 404


def test_guest_sessions_do_not_share_carts(client):
    client.post("/carts/items", json={"product_id": "lamp"})

    other = client.get("/carts/", headers={"X-Session-Id": "session-2"}).json()

    assert other["identity"] == "cart:guest:session-2"
    assert other["count"] == 0
    client.post("/carts/items", json={"product_id": "sofa"}, headers={"X-Session-Id": "session-2"})
    assert [i["product_id"] for i in client.get("/carts/").json()["items"]] == ["lamp"]


def test_logged_in_session_has_its_own_cart(client):
    client.post("/carts/items", json={"product_id": "lamp"})
    client.post("/carts/identity", json={"buyer_id": "b2"}, headers={"X-Session-Id": "session-2"})
    assert client.get("/carts/", headers={"X-Session-Id": "session-2"}).json()["count"] == 0
    assert client.get("/carts/").json()["count"] == 1


def test_login_loads_remote_cart(client, mirror):
    mirror.remote["b1"] = [make_item("sofa", stock=3, quantity=2, seller="s1")]

    body = client.post("/carts/identity", json={"buyer_id": "b1"}).json()

    assert body["identity"] == "cart:b1"
    assert [i["product_id"] for i in body["items"]] == ["sofa"]
    assert client.post("/carts/items", json={"product_id": "lamp"}).status_code == 200
    assert mirror.calls[-1] == ("upsert", "b1", "lamp", 1)


def test_checkout_cash_on_delivery(client):
    client.post("/carts/identity", json={"buyer_id": "b1"})
    client.post("/carts/items", json={"product_id": "sofa", "quantity": 1})

    assert client.post("/checkout/", json={}).json()["step"] == "shipping"
    assert client.put("/checkout/shipping", json=ADDRESS).status_code == 200

    body = client.post("/checkout/next").json()
    assert body["step"] == "payment"
    assert body["quote"]["vehicle_class"] == "MOTORCYCLE"
    assert Decimal(body["totals"]["shipping_fee"]) == Decimal("250")

    client.put("/checkout/payment", json={"payment_method": "cod", "terms_accepted": True})
    assert client.post("/checkout/next").json()["step"] == "review"

    placed = client.post("/checkout/place").json()
    assert placed["step"] == "placed"
    assert placed["order"]["outcome"] == "placed"
    assert Decimal(placed["order"]["total"]) == Decimal("1370")
    assert client.get("/carts/").json()["items"] == []


def test_checkout_errors(client):
    assert client.get("/checkout/").status_code == 404

    client.post("/carts/items", json={"product_id": "lamp"})
    client.post("/checkout/", json={"product_ids": ["lamp"]})
    client.put("/checkout/shipping", json={**ADDRESS, "phone": ""})

    resp = client.post("/checkout/next")
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "shipping_invalid"
    assert resp.json()["detail"]["missing"] == ["phone"]

    assert client.post("/checkout/place").status_code == 409
    assert client.post("/checkout/back").status_code == 409

    assert client.delete("/checkout/").status_code == 204
    assert client.post("/checkout/next").status_code == 404


def test_checkout_with_saved_address(client):
    created = client.post("/addresses/", params={"buyer_id": "b1"},
                          json={**ADDRESS, "label": "Home"}).json()
    client.post("/carts/items", json={"product_id": "lamp"})
    client.post("/checkout/", json={})

    body = client.put(
        "/checkout/shipping",
        json={"saved_address_id": created["id"], "buyer_id": "b1", "email": "juan@example.com"},
    ).json()
    assert body["address"]["street"] == "123 Main St"

    missing_buyer = client.put("/checkout/shipping", json={"saved_address_id": created["id"]})
    assert missing_buyer.status_code == 422
    unknown = client.put("/checkout/shipping", json={"saved_address_id": 999, "buyer_id": "b1"})
    assert unknown.status_code == 404


def test_saved_addresses(client):
    home = client.post("/addresses/", params={"buyer_id": "b1"}, json=ADDRESS)
    assert home.status_code == 201
    assert home.json()["is_default"] is True

    office = client.post("/addresses/", params={"buyer_id": "b1"},
                         json={**ADDRESS, "street": "9 Side St", "label": "Office"}).json()
    client.post(f"/addresses/{office['id']}/default", params={"buyer_id": "b1"})
    renamed = client.patch(f"/addresses/{office['id']}", params={"buyer_id": "b1"}, json={"label": "Work"})
    assert renamed.json()["label"] == "Work"

    listed = client.get("/addresses/", params={"buyer_id": "b1"}).json()
    assert [a["label"] for a in listed] == ["Work", "Home Address"]

    assert client.delete(f"/addresses/{office['id']}", params={"buyer_id": "b1"}).status_code == 204
    assert client.delete(f"/addresses/{office['id']}", params={"buyer_id": "b1"}).status_code == 404
    assert len(client.get("/addresses/", params={"buyer_id": "b1"}).json()) == 1


def test_vouchers_and_selection(client, db):
    db.add(VoucherModel(seller_id="s1", code="TENOFF", discount_type="percentage", discount_value=Decimal("10")))
    db.add(VoucherModel(seller_id="s2", code="OTHER", discount_type="fixed", discount_value=Decimal("50")))
    db.commit()

    listed = client.get("/vouchers/", params={"seller_id": "s1"}).json()
    assert [v["code"] for v in listed] == ["TENOFF"]

    client.post("/carts/items", json={"product_id": "sofa"})
    client.post("/checkout/", json={})
    body = client.put("/checkout/voucher", json={"voucher_id": listed[0]["id"]}).json()

    assert body["voucher_code"] == "TENOFF"
    assert Decimal(body["totals"]["discount"]) == Decimal("100")


def test_shipping_coordinates_always_come_from_geocoding(client):
    client.post("/carts/items", json={"product_id": "lamp"})
    client.post("/checkout/", json={})
    client.put(
        "/checkout/shipping",
        json={**ADDRESS, "location": {"lat": 0, "lng": 0, "formatted_address": "Null Island"}},
    )

    body = client.post("/checkout/next").json()

    assert body["step"] == "payment"
    assert body["address"]["location"]["formatted_address"] == "123 Main St, Makati"
    assert body["address"]["location"]["lat"] == 14.55


def test_saved_address_ignores_client_coordinates(client):
    created = client.post(
        "/addresses/",
        params={"buyer_id": "b1"},
        json={**ADDRESS, "location": {"lat": 0, "lng": 0}},
    ).json()

    assert created["lat"] == 14.55
    assert created["formatted_address"] == "123 Main St, Makati"


def test_end_session(client):
    client.post("/carts/items", json={"product_id": "lamp"})

    assert client.delete("/carts/session").status_code == 204
    assert client.delete("/carts/session").status_code == 404
    # the guest cache outlives the in-process session
    assert client.get("/carts/").json()["count"] == 1


def test_placed_order_can_be_read_back_by_its_buyer(client):
    client.post("/carts/identity", json={"buyer_id": "b1"})
    client.post("/carts/items", json={"product_id": "sofa", "quantity": 2})
    client.post("/checkout/", json={})
    client.put("/checkout/shipping", json=ADDRESS)
    client.post("/checkout/next")
    client.put("/checkout/payment", json={"payment_method": "cod", "terms_accepted": True})
    client.post("/checkout/next")
    order_id = client.post("/checkout/place").json()["order"]["order_id"]

    resp = client.get(f"/orders/{order_id}", params={"buyer_id": "b1"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["item_count"] == 2
    assert body["payment_method"] == "cod"
    assert [(l["product_id"], l["quantity"]) for l in body["lines"]] == [("sofa", 2)]
    assert client.get(f"/orders/{order_id}", params={"buyer_id": "b2"}).status_code == 404
    assert client.get("/orders/999", params={"buyer_id": "b1"}).status_code == 404
