from datetime import timedelta

from backoffice.core.availability import today_utc
from backoffice.models.orders import Order
from backoffice.models.products import Product
from backoffice.models.transactions import SALE, Transaction


def _order_payload(product, **overrides):
    payload = {
        "product_id": product.product_id,
        "quantity_ordered": 2,
        "rating": 4,
        "review": "Good value",
        "customer_info": {"name": "Ada", "email": "ada@example.com"},
    }
    payload.update(overrides)
    return payload


def _sales(db_session):
    return db_session.query(Transaction).filter(Transaction.type == SALE).all()


# ---------------- PRODUCT LOOKUP ----------------
def test_product_for_order(client, make_product):
    product = make_product(description="")

    response = client.get(f"/api/orders/product/{product.product_id}")

    assert response.status_code == 200
    data = response.json()["product"]
    assert data["is_available"] is True
    assert data["description"] == "Description not available"
    assert "cost_price" not in data


def test_product_for_order_not_found(client):
    assert client.get("/api/orders/product/NOPE").status_code == 404


# ---------------- AVAILABILITY ----------------
def test_check_availability_ok(client, make_product):
    product = make_product(quantity=10, threshold_value=2)

    response = client.post(
        "/api/orders/check-availability",
        json={"product_id": product.product_id, "requested_quantity": 10},
    )

    assert response.status_code == 200
    assert response.json()["can_order"] is True


def test_check_availability_insufficient(client, make_product):
    product = make_product(quantity=3, threshold_value=1)

    response = client.post(
        "/api/orders/check-availability",
        json={"product_id": product.product_id, "requested_quantity": 5},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["available_quantity"] == 3


def test_check_availability_expired(client, make_product):
    product = make_product(expiry_date=today_utc() - timedelta(days=1))

    response = client.post(
        "/api/orders/check-availability",
        json={"product_id": product.product_id, "requested_quantity": 1},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["available_quantity"] == 0


def test_check_availability_requires_quantity(client, make_product):
    product = make_product()

    response = client.post(
        "/api/orders/check-availability",
        json={"product_id": product.product_id, "requested_quantity": 0},
    )

    assert response.status_code == 400


# ---------------- PLACE ORDER ----------------
def test_place_order_takes_stock_and_records_sale(client, db_session, make_product):
    product = make_product(quantity=10, threshold_value=8, selling_price=15)

    response = client.post("/api/orders/place-order", json=_order_payload(product))

    assert response.status_code == 201
    data = response.json()
    assert data["order"]["order_id"].startswith("ORD-")
    assert data["order"]["total_amount"] == 30.0
    assert data["order"]["customer_info"]["name"] == "Ada"
    assert data["updated_product"]["remaining_quantity"] == 8
    assert data["updated_product"]["availability"] == "Low stock"
    assert data["updated_product"]["average_rating"] == 4.0

    sales = _sales(db_session)
    assert len(sales) == 1
    assert sales[0].order_id == data["order"]["order_id"]
    assert float(sales[0].amount) == 30.0


def test_place_order_snapshots_product(client, db_session, make_product):
    product = make_product(selling_price=15)

    order_id = client.post(
        "/api/orders/place-order", json=_order_payload(product)
    ).json()["order"]["order_id"]
    client.put(f"/api/products/{product.product_id}", json={"selling_price": "25.00", "name": "Renamed"})

    order = client.get(f"/api/orders/order/{order_id}").json()
    assert order["price_per_unit"] == 15.0
    assert order["product_name"] == product.name


def test_place_order_last_units_go_out_of_stock(client, make_product):
    product = make_product(quantity=2, threshold_value=1)

    response = client.post("/api/orders/place-order", json=_order_payload(product, quantity_ordered=2))

    assert response.json()["updated_product"]["availability"] == "Out of stock"

    again = client.post("/api/orders/place-order", json=_order_payload(product, quantity_ordered=1))
    assert again.status_code == 400
    assert again.json()["detail"]["message"] == "Product is out of stock"


def test_place_order_more_than_stock(client, db_session, make_product):
    product = make_product(quantity=1, threshold_value=0)

    response = client.post("/api/orders/place-order", json=_order_payload(product, quantity_ordered=3))

    assert response.status_code == 400
    assert db_session.query(Order).count() == 0


def test_place_order_requires_rating(client, make_product):
    product = make_product()

    missing = client.post("/api/orders/place-order", json=_order_payload(product, rating=None))
    out_of_range = client.post("/api/orders/place-order", json=_order_payload(product, rating=6))

    assert missing.status_code == 400
    assert out_of_range.status_code == 400


def test_place_order_unknown_product(client):
    response = client.post(
        "/api/orders/place-order",
        json={"product_id": "NOPE", "quantity_ordered": 1, "rating": 5},
    )

    assert response.status_code == 404


def test_ratings_accumulate_on_product(client, db_session, make_product):
    product = make_product()

    client.post("/api/orders/place-order", json=_order_payload(product, rating=5, quantity_ordered=1))
    client.post("/api/orders/place-order", json=_order_payload(product, rating=4, quantity_ordered=1))
    client.post("/api/orders/place-order", json=_order_payload(product, rating=4, quantity_ordered=1))

    refreshed = db_session.get(Product, product.id)
    db_session.refresh(refreshed)
    assert refreshed.total_ratings == 3
    assert refreshed.rating_sum == 13
    assert refreshed.average_rating == 4.3


# ---------------- LIST & STATUS ----------------
def test_list_orders_filters_by_status(client, make_product):
    product = make_product()
    first = client.post("/api/orders/place-order", json=_order_payload(product)).json()["order"]
    client.post("/api/orders/place-order", json=_order_payload(product))
    client.patch(f"/api/orders/order/{first['order_id']}/status", json={"status": "shipped"})

    everything = client.get("/api/orders/orders").json()
    shipped = client.get("/api/orders/orders", params={"status": "shipped"}).json()

    assert everything["pagination"]["total_orders"] == 2
    assert [order["order_id"] for order in shipped["orders"]] == [first["order_id"]]


def test_invalid_status_rejected(client, make_product):
    product = make_product()
    order = client.post("/api/orders/place-order", json=_order_payload(product)).json()["order"]

    response = client.patch(f"/api/orders/order/{order['order_id']}/status", json={"status": "lost"})

    assert response.status_code == 400
    assert "cancelled" in response.json()["detail"]["valid_statuses"]


def test_cancel_order_restocks_once_and_drops_sale(client, db_session, make_product):
    product = make_product(quantity=10, threshold_value=2)
    order = client.post(
        "/api/orders/place-order", json=_order_payload(product, quantity_ordered=4)
    ).json()["order"]

    first = client.patch(f"/api/orders/order/{order['order_id']}/status", json={"status": "cancelled"})
    second = client.patch(f"/api/orders/order/{order['order_id']}/status", json={"status": "cancelled"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["order"]["order_status"] == "cancelled"

    refreshed = db_session.get(Product, product.id)
    db_session.refresh(refreshed)
    assert refreshed.quantity == 10
    assert _sales(db_session) == []


def test_cancelled_order_cannot_be_reopened(client, db_session, make_product):
    product = make_product(quantity=10, threshold_value=2)
    order = client.post(
        "/api/orders/place-order", json=_order_payload(product, quantity_ordered=4)
    ).json()["order"]
    url = f"/api/orders/order/{order['order_id']}/status"

    client.patch(url, json={"status": "cancelled"})
    reopened = client.patch(url, json={"status": "pending"})
    client.patch(url, json={"status": "cancelled"})

    assert reopened.status_code == 400
    assert client.get(f"/api/orders/order/{order['order_id']}").json()["order_status"] == "cancelled"

    refreshed = db_session.get(Product, product.id)
    db_session.refresh(refreshed)
    assert refreshed.quantity == 10


def test_get_unknown_order(client):
    assert client.get("/api/orders/order/ORD-NOPE").status_code == 404
