import uuid
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.services.checkout_service import OrderLine, price_items

API = "/api/v1"

CUSTOMER = {
    "customer_name": "  Amina Benali ",
    "customer_phone": "+213 555-000-111",
    "customer_email": "amina@example.com",
    "customer_address": "12 Rue Didouche, Alger",
    "special_instructions": "",
}


def line(price, qty):
    return OrderLine(product_id=None, name="x", image=None, unit_price=price, quantity=qty)


def test_pricing_threshold_is_exclusive():
    at = price_items([line(1000, 2), line(3000, 1)], 5000, 500)
    assert (at.subtotal, at.shipping_cost, at.total_amount) == (5000, 500, 5500)

    above = price_items([line(5001, 1)], 5000, 500)
    assert (above.subtotal, above.shipping_cost, above.total_amount) == (5001, 0, 5001)


def fill_cart(client, product, times=1):
    for _ in range(times):
        client.post(f"{API}/cart", json={"product_id": str(product.id)})


def test_checkout_empty_cart_is_rejected_without_writes(client, session, monkeypatch):
    calls = []
    monkeypatch.setattr(OrderRepository, "create_order", lambda *a, **k: calls.append(a))

    resp = client.post(f"{API}/checkout", json=CUSTOMER)

    assert resp.status_code == 400
    assert calls == []
    assert session.exec(select(Order)).all() == []


def test_checkout_persists_order_and_clears_cart(client, session, make_product):
    scarf = make_product(name="Silk Scarf", price=1000.0, stock=5)
    bag = make_product(name="Leather Bag", price=3000.0, stock=2)
    fill_cart(client, scarf, times=2)
    fill_cart(client, bag)

    resp = client.post(f"{API}/checkout", json=CUSTOMER)
    assert resp.status_code == 200, resp.text
    body = resp.json()

    order = body["order"]
    assert order["status"] == "pending"
    assert order["customer_name"] == "Amina Benali"
    assert order["customer_phone"] == "+213555000111"
    assert order["special_instructions"] is None
    assert (order["subtotal"], order["shipping_cost"], order["total_amount"]) == (5000, 500, 5500)
    assert {(i["product_name"], i["quantity"], i["price"]) for i in order["items"]} == {
        ("Silk Scarf", 2, 1000.0),
        ("Leather Bag", 1, 3000.0),
    }

    stored = session.exec(select(OrderItem)).all()
    assert len(stored) == 2
    assert all(str(i.order_id) == order["id"] for i in stored)

    # Stock is only reserved at confirmation time.
    session.refresh(scarf)
    assert scarf.stock_quantity == 5

    cart = client.get(f"{API}/cart").json()
    assert cart["items"] == []
    assert cart["total_items"] == 0


def test_checkout_builds_merchant_message_link(client, make_product):
    fill_cart(client, make_product(name="Silk Scarf", price=6000.0, stock=1))

    body = client.post(f"{API}/checkout", json=CUSTOMER).json()

    url = urlparse(body["notification_url"])
    assert url.netloc == "wa.me"
    assert url.path == "/1234567890"
    text = parse_qs(url.query)["text"][0]
    assert "Amina Benali" in text
    assert "Silk Scarf - 6000.00 DA x1" in text
    assert "Shipping: Free" in text


def test_confirmation_is_readable_once(client, make_product):
    fill_cart(client, make_product(price=1200.0, stock=2))
    body = client.post(f"{API}/checkout", json=CUSTOMER).json()
    token = body["confirmation_token"]

    first = client.get(f"{API}/checkout/confirmation/{token}").json()
    assert first["order_id"] == body["order"]["id"]
    assert first["total_amount"] == 1700.0
    assert first["is_placeholder"] is False

    reload = client.get(f"{API}/checkout/confirmation/{token}").json()
    assert reload["is_placeholder"] is True
    assert reload["order_id"] is None
    assert reload["items"] == []
    assert reload["total_amount"] == 0


def test_storage_failure_keeps_cart_and_leaves_no_order(client, session, make_product, monkeypatch):
    product = make_product(price=1000.0, stock=3)
    fill_cart(client, product, times=2)

    def boom(self, session, items):
        raise OperationalError("INSERT INTO order_items", {}, Exception("connection lost"))

    monkeypatch.setattr(OrderRepository, "create_items", boom)

    resp = client.post(f"{API}/checkout", json=CUSTOMER)
    assert resp.status_code == 503

    assert session.exec(select(Order)).all() == []
    cart = client.get(f"{API}/cart").json()
    assert cart["total_items"] == 2


def test_buy_now_leaves_cart_untouched(client, session, make_product):
    in_cart = make_product(name="Silk Scarf", price=1000.0, stock=3)
    direct = make_product(name="Leather Bag", price=2600.0, stock=4)
    fill_cart(client, in_cart)

    resp = client.post(
        f"{API}/checkout/buy-now",
        json={**CUSTOMER, "product_id": str(direct.id), "quantity": 2},
    )
    assert resp.status_code == 200, resp.text
    order = resp.json()["order"]
    assert (order["subtotal"], order["shipping_cost"], order["total_amount"]) == (5200, 0, 5200)
    assert [i["product_name"] for i in order["items"]] == ["Leather Bag"]

    cart = client.get(f"{API}/cart").json()
    assert [i["name"] for i in cart["items"]] == ["Silk Scarf"]


def test_buy_now_more_than_stock_is_refused(client, make_product):
    product = make_product(stock=1)
    resp = client.post(
        f"{API}/checkout/buy-now",
        json={**CUSTOMER, "product_id": str(product.id), "quantity": 2},
    )
    assert resp.status_code == 409


@pytest.mark.parametrize(
    "override",
    [
        {"customer_name": "   "},
        {"customer_phone": "0555"},
        {"customer_phone": "call me"},
        {"customer_email": "not-an-email"},
    ],
)
def test_invalid_contact_details_are_rejected(client, session, make_product, override):
    fill_cart(client, make_product(stock=1))
    resp = client.post(f"{API}/checkout", json={**CUSTOMER, **override})
    assert resp.status_code == 422
    assert session.exec(select(Order)).all() == []


def test_second_submission_while_in_flight_is_refused(client, make_product):
    from app.routers.checkout import service

    fill_cart(client, make_product(stock=2))

    # A double click landing while the first submission is still running.
    with service._submission("device-1"):
        resp = client.post(f"{API}/checkout", json=CUSTOMER)
    assert resp.status_code == 409
    assert client.get(f"{API}/cart").json()["total_items"] == 1

    assert client.post(f"{API}/checkout", json=CUSTOMER).status_code == 200
    assert service._in_flight == set()


def test_missing_cart_session_header(client):
    resp = client.get(f"{API}/cart", headers={"X-Cart-Session": ""})
    assert resp.status_code == 400


def test_unknown_product_in_buy_now(client):
    resp = client.post(
        f"{API}/checkout/buy-now",
        json={**CUSTOMER, "product_id": str(uuid.uuid4())},
    )
    assert resp.status_code == 400
