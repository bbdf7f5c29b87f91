"""
Управление проектом - CLI команды.

Использование:
    python manage.py check-db
    python manage.py create-indexes
    python manage.py seed-db
    python manage.py reset-db
"""

import argparse
from decimal import Decimal

from pymongo.database import Database

from catalog_api.config import Settings
from catalog_api.core.database import PRODUCTS, USERS, ensure_indexes, get_client
from catalog_api.core.security import hash_password
from catalog_api.repositories.products import ProductRepository
from catalog_api.repositories.users import UserRepository
from catalog_api.schemas import ProductCreate, UserSignup

SAMPLE_PRODUCTS = [
    {
        "name": "Aurora Card Wallet",
        "description": "Slim RFID wallet with glassmorphic sheen.",
        "price": Decimal("29.99"),
        "category": "accessories",
        "stock": 40,
        "rating": 4.2,
        "image": "https://images.unsplash.com/photo-1592417817030-2f1b1c86a8e7",
    },
    {
        "name": "Nebula Headphones",
        "description": "Wireless noise-cancelling over-ears.",
        "price": Decimal("129.00"),
        "category": "audio",
        "stock": 12,
        "rating": 4.7,
        "image": "https://images.unsplash.com/photo-1518445145672-c8cfc6a2d6b1",
    },
    {
        "name": "Lumos Desk Lamp",
        "description": "Minimal, touch dimmer, USB-C powered.",
        "price": Decimal("49.50"),
        "category": "home",
        "stock": 25,
        "image": "https://images.unsplash.com/photo-1555041469-a586c61ea9bc",
    },
]

DEMO_USER = {"firstName": "Demo", "lastName": "User", "email": "demo@catalog.dev", "password": "demo123!"}


def check_db(db: Database):
    """Проверка базы данных - показать всех пользователей"""
    users, total = UserRepository(db).list({}, page=1, limit=1000)

    print(f"\n📊 Всего пользователей в БД: {total}, товаров: {db[PRODUCTS].count_documents({})}\n")
    print("=" * 60)

    if not users:
        print("⚠️  База данных пустая.")
        print("   Зарегистрируйте пользователя через POST /auth/signup\n")
        return

    for user in users:
        print(f"ID: {user['_id']}")
        print(f"Email: {user['email']}")
        print(f"Имя: {user.get('firstName')} {user.get('lastName') or ''}")
        print(f"Пароль (хеш): {user['password'][:60]}...")
        print(f"Создан: {user.get('createdAt')}")
        print("-" * 60)


def create_indexes(db: Database):
    """Создать индексы (если их нет)"""
    ensure_indexes(db)
    print("✅ Индексы созданы\n")


def seed_db(db: Database):
    """Заполнить БД тестовыми товарами и демо-пользователем"""
    ensure_indexes(db)
    products = ProductRepository(db)
    users = UserRepository(db)

    for data in SAMPLE_PRODUCTS:
        if db[PRODUCTS].find_one({"name": data["name"]}):
            print(f"⚠️  Товар {data['name']} уже существует")
            continue
        products.create(ProductCreate(**data).to_document())
        print(f"✅ Создан товар: {data['name']}")

    if users.find_by_email(DEMO_USER["email"]):
        print(f"⚠️  Пользователь {DEMO_USER['email']} уже существует")
    else:
        signup = UserSignup(**DEMO_USER)
        fields = signup.to_document()
        fields["password"] = hash_password(signup.password)
        fields["token"] = None
        users.create(fields)
        print(f"✅ Создан пользователь: {DEMO_USER['email']} / {DEMO_USER['password']}")

    print("\n✅ Тестовые данные добавлены\n")


def reset_db(db: Database):
    """Сброс базы данных (удалить коллекции и создать индексы заново)"""
    print("⚠️  ВНИМАНИЕ: Это удалит всех пользователей и товары!")
    confirm = input("Продолжить? (yes/no): ")

    if confirm.lower() != "yes":
        print("❌ Отменено")
        return

    db.drop_collection(USERS)
    db.drop_collection(PRODUCTS)
    ensure_indexes(db)
    print("✅ База данных сброшена\n")


def main():
    """Главная функция - обработка команд"""
    parser = argparse.ArgumentParser(
        description="Управление проектом Catalog API"
    )

    parser.add_argument(
        "command",
        choices=["check-db", "create-indexes", "seed-db", "reset-db"],
        help="Команда для выполнения"
    )

    args = parser.parse_args()

    commands = {
        "check-db": check_db,
        "create-indexes": create_indexes,
        "seed-db": seed_db,
        "reset-db": reset_db,
    }

    settings = Settings.from_env()
    client = get_client(settings)
    try:
        commands[args.command](client[settings.mongo_db_name])
    finally:
        client.close()


if __name__ == "__main__":
    main()
