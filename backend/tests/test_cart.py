import pytest
from sqlalchemy.exc import SQLAlchemyError

import models
from cart import (
    Cart,
    CartOwner,
    CartService,
    GuestCartStore,
    _user_fallback_key,
    guest_cart_store,
    is_guest_session_id,
    new_guest_session_id,
)
from conftest import bearer
from redis_client import RedisClient

GYRO = {"id": 1, "name": "Classic Gyro", "price": 12.99, "image": None}
BAKLAVA = {"id": 6, "name": "Baklava", "price": 6.99, "image": None}


def test_adding_the_same_item_increments_quantity():
    cart = Cart()
    cart.add(GYRO)
    cart.add(GYRO, 2)

    assert len(cart.lines) == 1
    assert cart.lines[0]["quantity"] == 3
    assert cart.item_count == 3


def test_total_is_rounded_sum_of_lines():
    cart = Cart()
    cart.add(GYRO, 2)
    cart.add(BAKLAVA)

    assert cart.total == 32.97


def test_add_rejects_non_positive_quantity():
    with pytest.raises(ValueError):
        Cart().add(GYRO, 0)


def test_update_quantity_below_one_removes_the_line():
    cart = Cart()
    cart.add(GYRO)
    cart.add(BAKLAVA)

    assert cart.update_quantity(GYRO["id"], 0) is True
    assert [line["id"] for line in cart.lines] == [BAKLAVA["id"]]


def test_update_quantity_of_missing_line():
    assert Cart().update_quantity(99, 3) is False


def test_loading_drops_lines_without_quantity():
    cart = Cart([dict(GYRO, quantity=0), dict(BAKLAVA, quantity=2)])
    assert cart.to_list() == [dict(BAKLAVA, quantity=2)]


def test_guest_session_ids_are_unique():
    first, second = new_guest_session_id(), new_guest_session_id()
    assert first.startswith("guest_")
    assert first != second


def test_guest_store_falls_back_to_memory_without_redis():
    store = GuestCartStore(client=RedisClient(host=""))
    store.save("guest_1", [dict(GYRO, quantity=1)])

    assert store.load("guest_1")[0]["name"] == "Classic Gyro"
    store.delete("guest_1")
    assert store.load("guest_1") == []


def test_guest_session_id_format():
    assert is_guest_session_id(new_guest_session_id())
    assert is_guest_session_id("guest_1700000000000_abc123xyz")
    for value in (None, "", "guest_1", "guest_abc_abc123xyz", "user:1", "user_1", "guest_1_ABC123XYZ"):
        assert not is_guest_session_id(value)


def test_guest_store_expires_memory_entries():
    now = [1000.0]
    store = GuestCartStore(client=RedisClient(host=""), ttl=10, clock=lambda: now[0])
    store.save("guest_1", [dict(GYRO, quantity=1)])

    now[0] += 5
    assert store.load("guest_1")[0]["quantity"] == 1

    now[0] += 6
    assert store.load("guest_1") == []
    assert store._local == {}


def test_user_cart_is_persisted_in_user_carts(db, customer):
    service = CartService(db)
    owner = CartOwner(user_id=customer.id)
    cart = service.load(owner)
    cart.add(GYRO, 2)
    service.save(owner, cart)

    row = db.query(models.UserCart).filter(models.UserCart.user_id == customer.id).one()
    assert row.cart_data[0]["quantity"] == 2
    assert service.load(owner).item_count == 2


def test_user_cart_falls_back_when_the_database_write_fails(db, customer, monkeypatch):
    def failing_commit():
        raise SQLAlchemyError("database is locked")

    service = CartService(db)
    owner = CartOwner(user_id=customer.id)
    cart = Cart()
    cart.add(GYRO, 2)

    commit = db.commit
    monkeypatch.setattr(db, "commit", failing_commit)
    service.save(owner, cart)

    assert guest_cart_store.load(_user_fallback_key(customer.id))[0]["quantity"] == 2
    assert db.query(models.UserCart).filter(models.UserCart.user_id == customer.id).count() == 0
    assert service.load(owner).item_count == 2

    monkeypatch.setattr(db, "commit", commit)
    cart.add(BAKLAVA)
    service.save(owner, cart)

    assert guest_cart_store.load(_user_fallback_key(customer.id)) == []
    row = db.query(models.UserCart).filter(models.UserCart.user_id == customer.id).one()
    assert {line["id"]: line["quantity"] for line in row.cart_data} == {1: 2, 6: 1}


def test_claim_merges_guest_cart_into_user_cart(db, customer):
    service = CartService(db)
    user_owner = CartOwner(user_id=customer.id)
    user_cart = Cart()
    user_cart.add(GYRO)
    service.save(user_owner, user_cart)

    guest_owner = CartOwner(session_id="guest_abc")
    guest_cart = Cart()
    guest_cart.add(GYRO, 2)
    guest_cart.add(BAKLAVA)
    service.save(guest_owner, guest_cart)

    merged = service.claim(customer.id, "guest_abc", policy="merge")

    assert {line["id"]: line["quantity"] for line in merged.lines} == {1: 3, 6: 1}
    assert service.load(guest_owner).is_empty()


def test_claim_replace_discards_previous_user_cart(db, customer):
    service = CartService(db)
    user_cart = Cart()
    user_cart.add(GYRO, 5)
    service.save(CartOwner(user_id=customer.id), user_cart)

    guest_cart = Cart()
    guest_cart.add(BAKLAVA)
    service.save(CartOwner(session_id="guest_xyz"), guest_cart)

    replaced = service.claim(customer.id, "guest_xyz", policy="replace")
    assert [line["id"] for line in replaced.lines] == [BAKLAVA["id"]]


def test_claim_rejects_unknown_policy(db, customer):
    with pytest.raises(ValueError):
        CartService(db).claim(customer.id, "guest_1", policy="shuffle")


# ========== HTTP ==========

def test_guest_gets_a_session_id(api_client):
    resp = api_client.get("/cart")

    assert resp.status_code == 200
    session_id = resp.headers["X-Cart-Session"]
    assert session_id.startswith("guest_")
    assert resp.json() == {"session_id": session_id, "items": [], "total": 0.0, "item_count": 0}


def test_guest_cart_survives_between_requests(api_client, menu_item):
    session = {"X-Cart-Session": "guest_1700000000000_session01"}
    api_client.post("/cart/items", json={"menu_item_id": menu_item.id, "quantity": 2}, headers=session)

    data = api_client.get("/cart", headers=session).json()
    assert data["item_count"] == 2
    assert data["items"][0]["name"] == menu_item.name
    assert data["total"] == round(menu_item.price * 2, 2)


def test_update_and_remove_cart_lines(api_client, menu_item):
    session = {"X-Cart-Session": "guest_1700000000000_session02"}
    api_client.post("/cart/items", json={"menu_item_id": menu_item.id}, headers=session)

    resp = api_client.put(f"/cart/items/{menu_item.id}", json={"quantity": 4}, headers=session)
    assert resp.json()["item_count"] == 4

    resp = api_client.delete(f"/cart/items/{menu_item.id}", headers=session)
    assert resp.json()["items"] == []

    resp = api_client.delete(f"/cart/items/{menu_item.id}", headers=session)
    assert resp.status_code == 404


def test_out_of_stock_item_cannot_be_added(api_client, db, menu_item):
    menu_item.in_stock = False
    db.commit()

    resp = api_client.post("/cart/items", json={"menu_item_id": menu_item.id})
    assert resp.status_code == 400
    assert "out of stock" in resp.json()["detail"]


def test_unknown_item_cannot_be_added(api_client):
    resp = api_client.post("/cart/items", json={"menu_item_id": 9999})
    assert resp.status_code == 404


def test_quantity_must_be_positive(api_client, menu_item):
    resp = api_client.post("/cart/items", json={"menu_item_id": menu_item.id, "quantity": 0})
    assert resp.status_code == 422


def test_signed_in_user_cart_and_claim(api_client, customer, menu_item):
    guest = {"X-Cart-Session": "guest_1700000000000_prelogin1"}
    api_client.post("/cart/items", json={"menu_item_id": menu_item.id, "quantity": 2}, headers=guest)

    headers = dict(bearer(customer), **guest)
    resp = api_client.post("/cart/claim", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["item_count"] == 2
    assert resp.json()["session_id"] is None

    # The guest cart is gone, the user cart holds the items
    assert api_client.get("/cart", headers=guest).json()["items"] == []
    assert api_client.get("/cart", headers=bearer(customer)).json()["item_count"] == 2


def test_claim_requires_login(api_client):
    resp = api_client.post("/cart/claim", headers={"X-Cart-Session": new_guest_session_id()})
    assert resp.status_code == 401


def test_cart_quantity_update_is_capped(api_client, menu_item):
    session = {"X-Cart-Session": "guest_1700000000000_session03"}
    api_client.post("/cart/items", json={"menu_item_id": menu_item.id}, headers=session)

    resp = api_client.put(f"/cart/items/{menu_item.id}", json={"quantity": 101}, headers=session)
    assert resp.status_code == 422
    assert api_client.get("/cart", headers=session).json()["item_count"] == 1


def test_guest_cannot_use_a_user_cart_key(api_client, customer):
    guest_cart_store.save(_user_fallback_key(customer.id), [dict(GYRO, quantity=3)])

    for value in (_user_fallback_key(customer.id), f"user_{customer.id}", "guest_1"):
        resp = api_client.get("/cart", headers={"X-Cart-Session": value})

        assert resp.json()["items"] == []
        issued = resp.headers["X-Cart-Session"]
        assert issued != value
        assert is_guest_session_id(issued)


def test_claim_rejects_invalid_session_header(api_client, customer):
    guest_cart_store.save(_user_fallback_key(customer.id), [dict(GYRO, quantity=3)])

    headers = dict(bearer(customer), **{"X-Cart-Session": _user_fallback_key(customer.id)})
    assert api_client.post("/cart/claim", headers=headers).status_code == 400
    assert api_client.post("/cart/claim", headers=bearer(customer)).status_code == 400
