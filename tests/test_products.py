from datetime import timedelta

from backoffice.core.availability import LOW_STOCK, today_utc
from backoffice.models.products import Product
from backoffice.models.transactions import PURCHASE, SOURCE_BULK_UPLOAD, Transaction


def _expiry(days=365):
    return (today_utc() + timedelta(days=days)).strftime("%d/%m/%y")


# ---------------- CREATE ----------------
def test_create_product_records_purchase(client, db_session, product_payload):
    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 201
    data = response.json()
    assert data["product_id"].startswith("PROD-")
    assert data["availability"] == "In stock"
    assert data["status"] == "active"
    assert data["cost_price"] == 8.5

    purchase = db_session.query(Transaction).one()
    assert purchase.type == PURCHASE
    assert purchase.product_id == data["product_id"]
    assert float(purchase.amount) == 340.0


def test_create_product_keeps_given_product_id(client, product_payload):
    product_payload["product_id"] = "SKU-RICE-5KG"

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 201
    assert response.json()["product_id"] == "SKU-RICE-5KG"


def test_create_product_low_stock_from_threshold(client, product_payload):
    product_payload["quantity"] = 10

    response = client.post("/api/products", json=product_payload)

    assert response.json()["availability"] == LOW_STOCK


def test_create_product_rejects_selling_below_cost(client, product_payload):
    product_payload["selling_price"] = "5.00"

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Selling price should be greater than or equal to cost price"


def test_create_product_rejects_threshold_above_quantity(client, product_payload):
    product_payload["threshold_value"] = 41

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Threshold value should not exceed quantity"


def test_create_product_rejects_past_expiry(client, product_payload):
    product_payload["expiry_date"] = (today_utc() - timedelta(days=1)).isoformat()

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Expiry date must be in the future"


def test_create_product_rejects_negative_price(client, product_payload):
    product_payload["cost_price"] = "-1"

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Cost price must be a positive number"


def test_create_product_missing_fields_is_422(client):
    response = client.post("/api/products", json={"name": "Only a name"})

    assert response.status_code == 422


def test_duplicate_name_is_conflict(client, product_payload):
    client.post("/api/products", json=product_payload)
    product_payload["name"] = "BASMATI rice"

    response = client.post("/api/products", json=product_payload)

    assert response.status_code == 409


# ---------------- ID & FORMAT ----------------
def test_generate_id(client):
    response = client.get("/api/products/generate-id")

    assert response.status_code == 200
    assert response.json()["product_id"].startswith("PROD-")


def test_csv_format(client):
    response = client.get("/api/products/csv-format")

    assert response.status_code == 200
    assert response.json()["format"]["columnOrder"][0] == "productName"


# ---------------- CSV ----------------
def test_import_csv_reports_each_row(client, db_session, make_product):
    make_product(name="Existing Item")

    body = "\n".join([
        f"Laptop Pro,,Electronics,800,1200,15,piece,{_expiry()},5,Fast laptop",
        f"Existing Item,,Misc,1,2,10,piece,{_expiry()},1,",
        "Broken Row,,Electronics,800",
        "Bad Date,,Electronics,1,2,10,piece,2030-01-01,1,",
        f",,Electronics,1,2,10,piece,{_expiry()},1,",
    ])

    response = client.post(
        "/api/products/import-csv",
        content=body,
        headers={"Content-Type": "text/csv"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["results"] == {"total": 5, "successful": 1, "failed": 4}

    failures = {failure["row_number"]: failure["error_type"] for failure in data["details"]["failed"]}
    assert failures == {
        2: "DUPLICATE",
        3: "INVALID_FORMAT",
        4: "DATE_FORMAT_ERROR",
        5: "MISSING_FIELDS",
    }

    created = db_session.query(Product).filter(Product.name == "Laptop Pro").one()
    purchase = db_session.query(Transaction).filter(Transaction.product_id == created.product_id).one()
    assert purchase.source == SOURCE_BULK_UPLOAD


def test_import_csv_all_rows_ok(client):
    body = (
        f"Gaming Mouse,,Electronics,40,75,50,piece,{_expiry()},10,\n"
        f"Office Chair,,Furniture,200,350,25,piece,{_expiry(500)},3,\n"
    )

    response = client.post("/api/products/import-csv", content=body)

    data = response.json()
    assert data["success"] is True
    assert data["message"] == "All 2 products uploaded successfully!"


def test_import_csv_empty_body(client):
    response = client.post("/api/products/import-csv", content="\n\n")

    assert response.status_code == 400


def test_validate_csv_writes_nothing(client, db_session):
    body = (
        "productName,productId,category,costPrice,sellingPrice,quantity,unit,expiryDate,thresholdValue,description\n"
        f"Laptop Pro,,Electronics,800,1200,15,piece,{_expiry()},5,Fast laptop\n"
        f"Cheap Laptop,,Electronics,800,100,15,piece,{_expiry()},5,\n"
    )

    response = client.post("/api/products/validate-csv", content=body)

    assert response.status_code == 200
    data = response.json()
    assert data["valid_products"] == 1
    assert data["total_rows"] == 2
    assert data["errors"][0]["row"] == 3
    assert db_session.query(Product).count() == 0


def test_validate_csv_missing_columns(client):
    response = client.post("/api/products/validate-csv", content="productName,category\nA,B\n")

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Missing required columns")


# ---------------- SEARCH ----------------
def test_search_products(client, make_product):
    make_product(name="Green Tea", category="Beverages")
    make_product(name="Coffee Beans", category="Beverages")
    make_product(name="Notebook", category="Stationery")

    response = client.get("/api/products/search", params={"query": "bever"})

    data = response.json()
    assert data["pagination"]["total_products"] == 2
    assert {product["name"] for product in data["products"]} == {"Green Tea", "Coffee Beans"}


def test_search_products_paginates(client, make_product):
    for index in range(3):
        make_product(name=f"Soap {index}")

    response = client.get("/api/products/search", params={"query": "soap", "limit": 2, "page": 2})

    data = response.json()
    assert len(data["products"]) == 1
    assert data["pagination"]["total_pages"] == 2
    assert data["pagination"]["has_next"] is False
    assert data["pagination"]["has_previous"] is True


def test_search_requires_query(client):
    response = client.get("/api/products/search", params={"query": "  "})

    assert response.status_code == 400


# ---------------- READ / UPDATE / DELETE ----------------
def test_list_and_get_product(client, make_product):
    product = make_product()

    assert len(client.get("/api/products").json()) == 1
    assert client.get(f"/api/products/{product.product_id}").json()["name"] == product.name
    assert client.get("/api/products/PROD-MISSING").status_code == 404


def test_update_product_rederives_availability(client, make_product):
    product = make_product(quantity=50, threshold_value=5)

    response = client.put(f"/api/products/{product.product_id}", json={"quantity": 0})

    assert response.status_code == 200
    assert response.json()["availability"] == "Out of stock"


def test_update_price_of_low_stock_product(client, make_product):
    product = make_product(quantity=50, threshold_value=5)
    client.put(f"/api/products/{product.product_id}", json={"quantity": 5})

    response = client.put(f"/api/products/{product.product_id}", json={"selling_price": "20.00"})

    assert response.status_code == 200
    assert response.json()["selling_price"] == 20.0


def test_update_product_validates(client, make_product):
    product = make_product()

    response = client.put(f"/api/products/{product.product_id}", json={"selling_price": "1.00"})

    assert response.status_code == 400


def test_update_keeps_unchanged_past_expiry(client, make_product):
    expiry = today_utc() - timedelta(days=2)
    product = make_product(expiry_date=expiry)

    response = client.put(
        f"/api/products/{product.product_id}",
        json={"expiry_date": expiry.isoformat(), "selling_price": "20.00"},
    )

    assert response.status_code == 200
    assert response.json()["selling_price"] == 20.0


def test_update_rejects_new_past_expiry(client, make_product):
    product = make_product()

    response = client.put(
        f"/api/products/{product.product_id}",
        json={"expiry_date": (today_utc() - timedelta(days=1)).isoformat()},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Expiry date must be in the future"


def test_update_strips_name(client, make_product):
    product = make_product()

    response = client.put(f"/api/products/{product.product_id}", json={"name": "  Jasmine Rice  "})

    assert response.status_code == 200
    assert response.json()["name"] == "Jasmine Rice"


def test_delete_product(client, make_product):
    product = make_product()

    assert client.delete(f"/api/products/{product.product_id}").status_code == 204
    assert client.delete(f"/api/products/{product.product_id}").status_code == 404
