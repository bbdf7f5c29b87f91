import mongomock
import pytest
from fastapi.testclient import TestClient

from catalog_api.config import Settings
from catalog_api.core.database import ensure_indexes
from catalog_api.main import create_app

SIGNUP_PAYLOAD = {
    "firstName": "A",
    "lastName": "B",
    "email": "a@b.com",
    "password": "abc123!",
}

PRODUCT_PAYLOAD = {
    "name": "Nebula Headphones",
    "description": "Wireless noise-cancelling over-ears.",
    "price": "129.99",
    "category": "audio",
    "stock": 12,
    "rating": 4.5,
    "image": "https://img.shop.io/nebula.png",
}


@pytest.fixture
def settings(tmp_path):
    return Settings(secret_key="test-secret", logs_dir=tmp_path / "logs")


@pytest.fixture
def db():
    database = mongomock.MongoClient()["catalog_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def app(settings, db):
    return create_app(settings, database=db)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def token(client):
    response = client.post("/auth/signup", json=SIGNUP_PAYLOAD)
    assert response.status_code == 201
    return response.json()["token"]


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
