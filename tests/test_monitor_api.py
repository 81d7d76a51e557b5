from datetime import timedelta

from sqlalchemy import update

from backoffice.core.availability import IN_STOCK, STATUS_ACTIVE, today_utc
from backoffice.models.products import Product


def test_status_reports_stopped_monitor(client):
    response = client.get("/api/monitor/status")

    assert response.status_code == 200
    assert response.json()["status_monitor"]["is_running"] is False


def test_trigger_expires_stale_products(client, db_session, make_product):
    product = make_product(name="Old Milk")
    db_session.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(expiry_date=today_utc() - timedelta(days=1), status=STATUS_ACTIVE, availability=IN_STOCK)
    )
    db_session.commit()

    response = client.post("/api/monitor/trigger")

    assert response.status_code == 200
    assert response.json()["summary"]["expired"] == 1

    expired = client.get("/api/monitor/products/expired").json()
    assert expired["count"] == 1
    assert expired["products"][0]["name"] == "Old Milk"
    assert "cost_price" not in expired["products"][0]


def test_products_by_status(client, make_product):
    make_product(name="Plenty", quantity=50, threshold_value=5)
    make_product(name="Few", quantity=3, threshold_value=5)
    make_product(name="None Left", quantity=0, threshold_value=5)

    low = client.get("/api/monitor/products/low-stock").json()
    out = client.get("/api/monitor/products/OUT-OF-STOCK").json()

    assert [product["name"] for product in low["products"]] == ["Few"]
    assert [product["name"] for product in out["products"]] == ["None Left"]


def test_products_by_unknown_status(client):
    assert client.get("/api/monitor/products/spoiled").status_code == 400


def test_summary(client, make_product):
    make_product(name="Plenty")
    make_product(name="Few", quantity=2, threshold_value=5)
    make_product(name="Gone Off", expiry_date=today_utc() - timedelta(days=3))

    data = client.get("/api/monitor/summary").json()

    assert data["summary"] == {
        "total": 3,
        "active": 2,
        "expired": 1,
        "out_of_stock": 0,
        "low_stock": 1,
        "in_stock": 1,
    }
    assert data["alerts"]["recently_expired"][0]["name"] == "Gone Off"
    assert data["alerts"]["low_stock_items"][0]["quantity"] == 2
