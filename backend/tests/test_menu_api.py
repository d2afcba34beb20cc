import models

NEW_ITEM = {
    "name": "Lamb Kleftiko",
    "description": "Slow-cooked lamb with potatoes and lemon.",
    "price": 21.5,
    "image": "https://example.com/kleftiko.jpg",
    "category": "Mains",
}


def test_public_menu_lists_seeded_items(api_client):
    resp = api_client.get("/menu")

    assert resp.status_code == 200
    names = [item["name"] for item in resp.json()]
    assert len(names) == 8
    assert "Classic Gyro" in names


def test_menu_filters(api_client):
    starters = api_client.get("/menu", params={"category": "starters"}).json()
    assert {item["category"] for item in starters} == {"starters"}
    assert len(starters) == 3

    search = api_client.get("/menu", params={"search": "FETA"}).json()
    assert {item["name"] for item in search} == {"Greek Salad", "Spanakopita"}

    assert len(api_client.get("/menu", params={"category": "all"}).json()) == 8


def test_featured_menu(api_client):
    featured = api_client.get("/menu/featured").json()
    assert featured and all(item["featured"] for item in featured)


def test_single_menu_item(api_client, menu_item):
    assert api_client.get(f"/menu/{menu_item.id}").json()["name"] == menu_item.name
    assert api_client.get("/menu/9999").status_code == 404


def test_admin_endpoints_require_admin(api_client, customer_headers):
    assert api_client.post("/admin/menu", json=NEW_ITEM).status_code == 401
    resp = api_client.post("/admin/menu", json=NEW_ITEM, headers=customer_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Only administrators can access this resource"


def test_admin_creates_item(api_client, admin_headers, db):
    resp = api_client.post("/admin/menu", json=NEW_ITEM, headers=admin_headers)

    assert resp.status_code == 201
    created = resp.json()
    assert created["category"] == "mains"
    assert created["in_stock"] is True
    assert created["featured"] is False
    assert db.query(models.MenuItem).count() == 9


def test_invalid_price_is_rejected(api_client, admin_headers):
    resp = api_client.post("/admin/menu", json=dict(NEW_ITEM, price=0), headers=admin_headers)
    assert resp.status_code == 422


def test_partial_update_keeps_other_fields(api_client, admin_headers, menu_item):
    resp = api_client.put(f"/admin/menu/{menu_item.id}", json={"price": 13.49}, headers=admin_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["price"] == 13.49
    assert data["name"] == "Classic Gyro"
    assert data["category"] == "mains"


def test_update_rejects_null_for_required_fields(api_client, admin_headers, menu_item):
    for field in ("name", "price", "category", "featured", "in_stock"):
        resp = api_client.put(f"/admin/menu/{menu_item.id}", json={field: None}, headers=admin_headers)
        assert resp.status_code == 422

    assert api_client.get(f"/menu/{menu_item.id}").json()["price"] == 12.99


def test_update_normalizes_category(api_client, admin_headers, menu_item):
    resp = api_client.put(f"/admin/menu/{menu_item.id}", json={"category": " Desserts "}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["category"] == "desserts"
    assert api_client.put(f"/admin/menu/{menu_item.id}", json={"category": "  "},
                          headers=admin_headers).status_code == 422


def test_toggle_featured_and_stock(api_client, admin_headers, menu_item):
    was_featured = menu_item.featured

    resp = api_client.patch(f"/admin/menu/{menu_item.id}/featured", headers=admin_headers)
    assert resp.json()["featured"] is (not was_featured)

    resp = api_client.patch(f"/admin/menu/{menu_item.id}/in-stock", headers=admin_headers)
    assert resp.json()["in_stock"] is False
    resp = api_client.patch(f"/admin/menu/{menu_item.id}/in-stock", headers=admin_headers)
    assert resp.json()["in_stock"] is True


def test_delete_item(api_client, admin_headers, menu_item):
    item_id = menu_item.id

    assert api_client.delete(f"/admin/menu/{item_id}", headers=admin_headers).status_code == 200
    assert api_client.get(f"/menu/{item_id}").status_code == 404
    assert api_client.delete(f"/admin/menu/{item_id}", headers=admin_headers).status_code == 404


def test_deleting_an_ordered_item_keeps_order_history(api_client, admin_headers, db, menu_item):
    order = models.Order(customer_name="Jane", customer_email="jane@example.com", total=12.99)
    order.items.append(models.OrderItem(menu_item_id=menu_item.id, name=menu_item.name, quantity=1,
                                        price=12.99, subtotal=12.99))
    db.add(order)
    db.commit()
    order_id = order.id

    api_client.delete(f"/admin/menu/{menu_item.id}", headers=admin_headers)

    resp = api_client.get(f"/admin/orders/{order_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["items"][0]["name"] == "Classic Gyro"
