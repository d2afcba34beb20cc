import pytest
from sqlalchemy import event

import models
from repositories import NotFoundError, OrderRepository


def order_data(**overrides):
    data = {
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "customer_phone": "2125550100",
        "address": "42 Olive Street, New York, 10001",
        "total": 25.98,
        "payment_status": "paid",
        "payment_method": "demo",
    }
    data.update(overrides)
    return data


def test_create_computes_line_subtotals(db, menu_item):
    order = OrderRepository(db).create(order_data(), [
        {"menu_item_id": menu_item.id, "name": menu_item.name, "quantity": 2, "price": 12.99},
    ])

    assert order.id is not None
    assert order.status == "pending"
    assert order.items[0].subtotal == 25.98


def test_order_without_items_is_refused(db):
    with pytest.raises(ValueError):
        OrderRepository(db).create(order_data(), [])
    assert db.query(models.Order).count() == 0


def test_failed_item_insert_leaves_no_order(db, menu_item):
    def fail_insert(mapper, connection, target):
        raise RuntimeError("disk full")

    event.listen(models.OrderItem, "before_insert", fail_insert)
    try:
        with pytest.raises(RuntimeError):
            OrderRepository(db).create(order_data(), [
                {"menu_item_id": menu_item.id, "name": menu_item.name, "quantity": 1, "price": 12.99},
            ])
    finally:
        event.remove(models.OrderItem, "before_insert", fail_insert)

    assert db.query(models.Order).count() == 0
    assert db.query(models.OrderItem).count() == 0


def test_status_update_and_unknown_status(db, menu_item):
    repo = OrderRepository(db)
    order = repo.create(order_data(), [{"menu_item_id": menu_item.id, "quantity": 1, "price": 12.99}])

    updated = repo.update_status(order.id, "preparing")
    assert updated.status == "preparing"
    assert updated.updated_at is not None

    with pytest.raises(ValueError):
        repo.update_status(order.id, "teleported")
    with pytest.raises(NotFoundError):
        repo.update_status(9999, "ready")


def test_stats(db, menu_item):
    repo = OrderRepository(db)
    line = [{"menu_item_id": menu_item.id, "quantity": 1, "price": 10.0}]
    first = repo.create(order_data(total=10.0), line)
    repo.create(order_data(total=20.0), line)
    repo.update_status(first.id, "delivered")

    stats = repo.stats()

    assert stats["total_orders"] == 2
    assert stats["total_revenue"] == 30.0
    assert stats["pending_orders"] == 1
    assert stats["delivered_orders"] == 1
    assert stats["today_orders"] == 2
    assert stats["today_revenue"] == 30.0


# ========== HTTP ==========

@pytest.fixture()
def placed_order(db, menu_item):
    return OrderRepository(db).create(order_data(), [
        {"menu_item_id": menu_item.id, "name": menu_item.name, "quantity": 2, "price": 12.99},
    ])


def test_admin_lists_and_filters_orders(api_client, admin_headers, placed_order):
    orders = api_client.get("/admin/orders", headers=admin_headers).json()
    assert [o["id"] for o in orders] == [placed_order.id]
    assert orders[0]["items"][0]["name"] == "Classic Gyro"

    assert api_client.get("/admin/orders", params={"status": "ready"}, headers=admin_headers).json() == []


def test_admin_updates_order_status(api_client, admin_headers, placed_order):
    url = f"/admin/orders/{placed_order.id}/status"

    resp = api_client.patch(url, json={"status": "ready"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"

    assert api_client.patch(url, json={"status": "lost"}, headers=admin_headers).status_code == 422
    assert api_client.patch("/admin/orders/9999/status", json={"status": "ready"},
                            headers=admin_headers).status_code == 404


def test_order_stats_endpoint(api_client, admin_headers, placed_order):
    stats = api_client.get("/admin/orders/stats", headers=admin_headers).json()

    assert stats["total_orders"] == 1
    assert stats["total_revenue"] == 25.98
    assert stats["pending_orders"] == 1


def test_admin_deletes_order(api_client, admin_headers, db, placed_order):
    order_id = placed_order.id

    assert api_client.delete(f"/admin/orders/{order_id}", headers=admin_headers).status_code == 200
    assert api_client.get(f"/admin/orders/{order_id}", headers=admin_headers).status_code == 404
    assert db.query(models.OrderItem).count() == 0


def test_customers_cannot_manage_orders(api_client, customer_headers, placed_order):
    assert api_client.get("/admin/orders", headers=customer_headers).status_code == 403


def test_account_history_only_shows_own_orders(api_client, customer, customer_headers, db, menu_item):
    repo = OrderRepository(db)
    line = [{"menu_item_id": menu_item.id, "quantity": 1, "price": 12.99}]
    mine = repo.create(order_data(customer_email=customer.email.upper()), line)
    repo.create(order_data(customer_email="someone@else.com"), line)

    history = api_client.get("/account/orders", headers=customer_headers).json()
    assert [o["id"] for o in history] == [mine.id]
