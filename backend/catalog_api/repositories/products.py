from typing import Any, Dict, List, Optional, Sequence, Tuple

from pymongo import DESCENDING
from pymongo.database import Database

from catalog_api.core.database import PRODUCTS
from catalog_api.repositories.base import Repository


class ProductRepository(Repository):
    """Коллекция products. Список без пагинации, новые сверху."""

    def __init__(self, db: Database):
        super().__init__(db[PRODUCTS])

    def list(
        self,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[dict], int]:
        return super().list(filter, sort=[("createdAt", DESCENDING)])
