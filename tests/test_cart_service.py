import uuid

import pytest
from fastapi import HTTPException

from app.repositories.product_repo import ProductRepository
from app.services.cart_service import CartService
from app.services.wishlist_service import WishlistService


@pytest.fixture
def service():
    return CartService(ProductRepository())


def test_increment_up_to_stock_then_signal(session, store, service, make_product):
    product = make_product(price=2500.0, stock=3)

    first = service.add_from_catalog(session, store, product.id)
    assert first.signal == "added"
    for _ in range(2):
        assert service.increment(store, product.id).signal == "updated"

    assert len(store.items) == 1
    assert store.get_cart_item(product.id).quantity == 3
    assert store.totals.total_price == 7500.0

    refused = service.increment(store, product.id)
    assert refused.signal == "max_stock_reached"
    assert refused.cart.items[0].quantity == 3
    assert refused.cart.total_price == 7500.0


def test_decrement_to_zero_removes_line(session, store, service, make_product):
    product = make_product(stock=5)
    service.add_from_catalog(session, store, product.id, quantity=2)

    assert service.decrement(store, product.id).signal == "updated"
    result = service.decrement(store, product.id)
    assert result.signal == "removed"
    assert result.cart.items == []
    assert store.get_cart_item(product.id) is None


def test_add_from_catalog_uses_current_stock(session, store, service, make_product):
    product = make_product(stock=2)
    service.add_from_catalog(session, store, product.id)

    product.stock_quantity = 5
    session.add(product)
    session.commit()

    result = service.add_from_catalog(session, store, product.id, quantity=3)
    assert result.signal == "added"
    line = store.get_cart_item(product.id)
    assert line.quantity == 4
    assert line.stock_limit == 5


def test_add_from_catalog_partial_add_reports_limit(session, store, service, make_product):
    product = make_product(stock=2)
    result = service.add_from_catalog(session, store, product.id, quantity=5)
    assert result.signal == "max_stock_reached"
    assert store.get_cart_item(product.id).quantity == 2


def test_add_after_stock_shrank_reports_limit(session, store, service, make_product):
    product = make_product(stock=5)
    service.add_from_catalog(session, store, product.id, quantity=5)

    product.stock_quantity = 3
    session.add(product)
    session.commit()

    result = service.add_from_catalog(session, store, product.id)
    assert result.signal == "max_stock_reached"
    line = store.get_cart_item(product.id)
    assert (line.quantity, line.stock_limit) == (3, 3)
    assert result.cart.total_items == 3


def test_large_add_is_clamped_in_one_step(session, store, cart_repo, service, make_product, monkeypatch):
    product = make_product(stock=4)
    saves = []
    original_save = cart_repo.save

    def counting_save(key, snapshot):
        saves.append(key)
        original_save(key, snapshot)

    monkeypatch.setattr(cart_repo, "save", counting_save)

    result = service.add_from_catalog(session, store, product.id, quantity=1_000_000)
    assert result.signal == "max_stock_reached"
    assert store.get_cart_item(product.id).quantity == 4
    assert len(saves) <= 2


def test_add_from_catalog_refuses_out_of_stock(session, store, service, make_product):
    product = make_product(stock=0)
    with pytest.raises(HTTPException) as exc:
        service.add_from_catalog(session, store, product.id)
    assert exc.value.status_code == 409
    assert store.items == []


def test_add_from_catalog_unknown_product(session, store, service):
    with pytest.raises(HTTPException) as exc:
        service.add_from_catalog(session, store, uuid.uuid4())
    assert exc.value.status_code == 404


def test_set_quantity_on_missing_line(store, service):
    assert service.set_quantity(store, uuid.uuid4(), 3).signal == "not_in_cart"


# ---- wishlist ----


def test_wishlist_add_twice_keeps_one_entry(session, store, service, make_product):
    wishlist = WishlistService(service)
    product = make_product(name="Leather Bag")
    wishlist.add(session, store, product.id)
    result = wishlist.add(session, store, product.id)
    assert result.count == 1


def test_move_to_cart_uses_live_stock_and_keeps_entry(session, store, service, make_product):
    wishlist = WishlistService(service)
    product = make_product(stock=1)
    wishlist.add(session, store, product.id)

    result = wishlist.move_to_cart(session, store, product.id)
    assert result.signal == "added"
    assert store.get_cart_item(product.id).stock_limit == 1
    assert store.is_in_wishlist(product.id)
    assert wishlist.list(store).items[0].in_cart is True

    again = wishlist.move_to_cart(session, store, product.id)
    assert again.signal == "max_stock_reached"


def test_move_to_cart_can_remove_entry(session, store, service, make_product):
    wishlist = WishlistService(service, remove_on_move=True)
    product = make_product(stock=4)
    wishlist.add(session, store, product.id)

    wishlist.move_to_cart(session, store, product.id)
    assert not store.is_in_wishlist(product.id)


def test_move_to_cart_refused_without_stock(session, store, service, make_product):
    wishlist = WishlistService(service)
    product = make_product(stock=3)
    wishlist.add(session, store, product.id)

    product.stock_quantity = 0
    session.add(product)
    session.commit()

    with pytest.raises(HTTPException) as exc:
        wishlist.move_to_cart(session, store, product.id)
    assert exc.value.status_code == 409
    assert store.items == []


def test_move_to_cart_refused_when_product_deleted(session, store, service, make_product):
    wishlist = WishlistService(service)
    product = make_product()
    wishlist.add(session, store, product.id)

    session.delete(product)
    session.commit()

    with pytest.raises(HTTPException) as exc:
        wishlist.move_to_cart(session, store, product.id)
    assert exc.value.status_code == 409
