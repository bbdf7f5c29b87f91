"""
Настройка подключения к MongoDB.
"""
import logging

from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from catalog_api.config import Settings

logger = logging.getLogger(__name__)

USERS = "users"
PRODUCTS = "products"


def get_client(settings: Settings) -> MongoClient:
    """Создаёт клиента и проверяет, что сервер отвечает"""
    logger.info("Подключение к MongoDB: %s", settings.mongo_db_name)
    client = MongoClient(settings.mongo_uri, tz_aware=True)
    client.admin.command("ping")
    logger.info("Успешное подключение к MongoDB")
    return client


def ensure_indexes(db: Database):
    """Уникальные индексы (email, name) и индекс по категории"""
    db[USERS].create_index([("email", ASCENDING)], unique=True, name="email_unique")
    db[PRODUCTS].create_index([("name", ASCENDING)], unique=True, name="name_unique")
    db[PRODUCTS].create_index([("category", ASCENDING)], name="category")
    logger.info("Индексы MongoDB готовы")


def get_db(request: Request) -> Database:
    """
    Dependency для получения базы в endpoint'ах.

    Использование:
        @router.get("/")
        def list_items(db: Database = Depends(get_db)):
            ...
    """
    return request.app.state.db
