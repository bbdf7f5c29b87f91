import json
from decimal import Decimal
from unittest.mock import MagicMock

from bson import ObjectId
from pymongo.errors import PyMongoError

from catalog_api.api.deps import get_product_repository
from conftest import PRODUCT_PAYLOAD


def create_product(client, auth_headers, **overrides):
    response = client.post("/products", json={**PRODUCT_PAYLOAD, **overrides}, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["product"]


def test_create_product(client, auth_headers):
    response = client.post("/products", json=PRODUCT_PAYLOAD, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Product created!"
    product = body["product"]
    assert ObjectId.is_valid(product["_id"])
    assert product["name"] == "Nebula Headphones"
    assert product["price"] == "129.99"
    assert product["rating"] == 4.5
    assert product["createdAt"]


def test_rating_defaults_to_zero(client, auth_headers):
    payload = {k: v for k, v in PRODUCT_PAYLOAD.items() if k != "rating"}

    response = client.post("/products", json=payload, headers=auth_headers)

    assert response.status_code == 201
    assert response.json()["product"]["rating"] == 0


def test_duplicate_name_is_rejected(client, auth_headers, db):
    create_product(client, auth_headers)

    response = client.post("/products", json={**PRODUCT_PAYLOAD, "category": "other"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"message": "Product with this name already exists"}
    assert db.products.count_documents({}) == 1


def test_product_validation(client, auth_headers, db):
    for overrides in ({"name": "ab"}, {"name": "x" * 31}, {"price": "-1"}, {"stock": -1}, {"rating": 6}):
        response = client.post("/products", json={**PRODUCT_PAYLOAD, **overrides}, headers=auth_headers)
        assert response.status_code == 400, overrides

    assert db.products.count_documents({}) == 0


def test_price_outside_decimal128_range_is_rejected(client, auth_headers, db):
    for price in ("1e7000", "1.0000000000000000000000000000000001"):
        response = client.post("/products", json={**PRODUCT_PAYLOAD, "price": price}, headers=auth_headers)
        assert response.status_code == 400, price
        assert response.json()["message"] == "Validation failed"

    assert db.products.count_documents({}) == 0

    product = create_product(client, auth_headers)
    response = client.patch(f"/products/{product['_id']}", json={"price": "1e7000"}, headers=auth_headers)
    assert response.status_code == 400
    assert db.products.find_one()["price"].to_decimal() == Decimal("129.99")


def test_get_product(client, auth_headers):
    product = create_product(client, auth_headers)

    response = client.get(f"/products/{product['_id']}", headers=auth_headers)

    assert response.status_code == 200
    fetched = response.json()["product"]
    assert fetched["_id"] == product["_id"]
    assert fetched["name"] == product["name"]
    assert fetched["price"] == "129.99"


def test_get_missing_product_is_404(client, auth_headers):
    for product_id in (str(ObjectId()), "not-an-id"):
        response = client.get(f"/products/{product_id}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Product not found!"}


def test_list_products_with_filter(client, auth_headers):
    create_product(client, auth_headers)
    create_product(client, auth_headers, name="Lumos Desk Lamp", category="home", stock=0)

    response = client.get("/products", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Products fetched!"
    assert len(response.json()["products"]) == 2

    response = client.get("/products", params={"filter": json.dumps({"category": "home"})}, headers=auth_headers)
    assert [p["name"] for p in response.json()["products"]] == ["Lumos Desk Lamp"]

    response = client.get("/products", params={"filter": json.dumps({"stock": {"$gt": 0}})}, headers=auth_headers)
    assert [p["name"] for p in response.json()["products"]] == ["Nebula Headphones"]


def test_list_products_filters_by_price(client, auth_headers):
    product = create_product(client, auth_headers)
    create_product(client, auth_headers, name="Lumos Desk Lamp", price="49.50")

    response = client.get("/products", params={"filter": json.dumps({"price": product["price"]})}, headers=auth_headers)

    assert response.status_code == 200
    assert [p["name"] for p in response.json()["products"]] == ["Nebula Headphones"]

    response = client.get("/products", params={"filter": json.dumps({"price": "cheap"})}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid number for 'price'"


def test_list_products_rejects_unsafe_filter(client, auth_headers):
    response = client.get("/products", params={"filter": '{"$where": "1"}'}, headers=auth_headers)
    assert response.status_code == 400

    response = client.get("/products", params={"filter": "{broken"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid filter: not valid JSON"


def test_patch_product(client, auth_headers):
    product = create_product(client, auth_headers)

    response = client.patch(
        f"/products/{product['_id']}",
        json={"stock": 3, "price": "99.50", "color": "red"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    updated = response.json()["product"]
    assert updated["stock"] == 3
    assert updated["price"] == "99.50"
    assert updated["name"] == product["name"]
    # Неизвестные поля отбрасываются
    assert "color" not in updated


def test_patch_product_validates_values(client, auth_headers):
    product = create_product(client, auth_headers)

    response = client.patch(f"/products/{product['_id']}", json={"stock": -3}, headers=auth_headers)
    assert response.status_code == 400

    response = client.patch(f"/products/{product['_id']}", json={"name": None}, headers=auth_headers)
    assert response.status_code == 400


def test_patch_missing_product_is_404(client, auth_headers):
    response = client.patch(f"/products/{ObjectId()}", json={"stock": 1}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"message": "Product not found"}


def test_put_replaces_product(client, auth_headers):
    product = create_product(client, auth_headers)
    replacement = {**PRODUCT_PAYLOAD, "name": "Nebula Pro", "rating": 1, "description": "Second gen."}

    response = client.put(f"/products/{product['_id']}", json=replacement, headers=auth_headers)

    assert response.status_code == 200
    replaced = response.json()["product"]
    assert replaced["_id"] == product["_id"]
    assert replaced["name"] == "Nebula Pro"
    assert replaced["description"] == "Second gen."


def test_put_requires_full_product(client, auth_headers):
    product = create_product(client, auth_headers)

    response = client.put(f"/products/{product['_id']}", json={"name": "Only name"}, headers=auth_headers)

    assert response.status_code == 400


def test_put_missing_product_is_404(client, auth_headers):
    response = client.put(f"/products/{ObjectId()}", json=PRODUCT_PAYLOAD, headers=auth_headers)
    assert response.status_code == 404


def test_delete_product(client, auth_headers, db):
    product = create_product(client, auth_headers)

    response = client.delete(f"/products/{product['_id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Product deleted!"
    assert response.json()["product"]["name"] == product["name"]
    assert db.products.count_documents({}) == 0


def test_delete_missing_product_is_404(client, auth_headers):
    response = client.delete(f"/products/{ObjectId()}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"message": "Product not found"}


def test_storage_failure_is_500(client, app, auth_headers):
    failing = MagicMock()
    failing.list.side_effect = PyMongoError("connection refused")
    failing.delete.side_effect = PyMongoError("connection refused")
    app.dependency_overrides[get_product_repository] = lambda: failing

    response = client.get("/products", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"message": "Error while fetching products", "error": "connection refused"}

    response = client.delete(f"/products/{ObjectId()}", headers=auth_headers)
    assert response.status_code == 500
    assert response.json()["message"] == "Error while deleting product"


def test_products_require_token(client):
    assert client.get("/products").status_code == 401
    assert client.post("/products", json=PRODUCT_PAYLOAD).status_code == 401


def test_token_is_checked_before_body_fields(client, db):
    product_id = ObjectId()

    assert client.post("/products", json={"name": "x", "price": "cheap"}).status_code == 401
    assert client.patch(f"/products/{product_id}", json={"stock": -1}).status_code == 401
    assert client.put(f"/products/{product_id}", json={}).status_code == 401
    assert db.products.count_documents({}) == 0


def test_unparseable_body_is_rejected_before_token_check(client):
    # FastAPI декодирует JSON до зависимостей роутера
    response = client.post(
        "/products",
        content=b"{broken",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"
