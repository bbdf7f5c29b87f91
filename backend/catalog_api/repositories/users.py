from typing import Any, Dict, Optional

from pymongo.database import Database

from catalog_api.core.database import USERS
from catalog_api.repositories.base import Repository, parse_object_id, utcnow

# Поля, которые разрешено менять через PATCH /users/{id}
ALLOWED_UPDATES = ("firstName", "lastName", "email", "password")


class UserRepository(Repository):
    """Коллекция users"""

    def __init__(self, db: Database):
        super().__init__(db[USERS])

    def find_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.strip().lower()})

    def set_token(self, id: Any, token: Optional[str]) -> None:
        """Запоминает последний выданный токен"""
        self.collection.update_one(
            {"_id": parse_object_id(id)},
            {"$set": {"token": token, "updatedAt": utcnow()}},
        )

    def preserved_on_replace(self, current: dict) -> Dict[str, Any]:
        return {"token": current.get("token")}
