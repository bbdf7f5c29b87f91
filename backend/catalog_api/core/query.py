"""
Построитель запросов к MongoDB из параметров filter/sort.

Клиент присылает JSON, но в базу уходит только то, что прошло
белый список полей и операторов.
"""
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from bson import Decimal128

from catalog_api.core.errors import ValidationError

ALLOWED_OPERATORS = frozenset({"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin"})
LIST_OPERATORS = frozenset({"$in", "$nin"})
SCALAR_TYPES = (str, int, float, bool, type(None))

SORT_DIRECTIONS = {1: 1, -1: -1, "1": 1, "-1": -1, "asc": 1, "desc": -1}


def _parse_json(raw: Optional[str], name: str) -> Dict[str, Any]:
    if raw is None or raw.strip() == "":
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}: not valid JSON")
    if not isinstance(value, dict):
        raise ValidationError(f"Invalid {name}: expected a JSON object")
    return value


def _check_scalar(field: str, value: Any) -> Any:
    if not isinstance(value, SCALAR_TYPES):
        raise ValidationError(f"Invalid filter value for '{field}'")
    return value


def _to_decimal128(field: str, value: Any) -> Decimal128:
    # Цены хранятся как Decimal128, строка или double с ними не совпадут
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"Invalid number for '{field}'")
    try:
        number = Decimal(str(value).strip())
        if not number.is_finite():
            raise ValueError(value)
        return Decimal128(number)
    except (ArithmeticError, ValueError):
        raise ValidationError(f"Invalid number for '{field}'")


class QueryBuilder:
    """Белый список полей для одной коллекции"""

    def __init__(
        self,
        fields: FrozenSet[str],
        date_fields: FrozenSet[str] = frozenset(),
        lowercase_fields: FrozenSet[str] = frozenset(),
        decimal_fields: FrozenSet[str] = frozenset(),
    ):
        self.fields = fields
        self.date_fields = date_fields
        self.lowercase_fields = lowercase_fields
        self.decimal_fields = decimal_fields

    def _coerce(self, field: str, value: Any) -> Any:
        value = _check_scalar(field, value)
        if field in self.decimal_fields:
            return _to_decimal128(field, value)
        if field in self.lowercase_fields and isinstance(value, str):
            return value.strip().lower()
        # Даты приходят строкой ISO-8601
        if field in self.date_fields and isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                raise ValidationError(f"Invalid date for '{field}'")
        return value

    def _check_field(self, field: str, what: str):
        if field not in self.fields:
            raise ValidationError(
                f"Invalid {what} field: {field}",
                allowedFields=sorted(self.fields),
            )

    def build_filter(self, raw: Optional[str]) -> Dict[str, Any]:
        """JSON-строка filter -> безопасный фильтр MongoDB"""
        query: Dict[str, Any] = {}
        for field, condition in _parse_json(raw, "filter").items():
            self._check_field(field, "filter")

            if not isinstance(condition, dict):
                query[field] = self._coerce(field, condition)
                continue

            if not condition:
                raise ValidationError(f"Empty condition for '{field}'")

            clause = {}
            for op, operand in condition.items():
                if op not in ALLOWED_OPERATORS:
                    raise ValidationError(f"Operator not allowed: {op}")
                if op in LIST_OPERATORS:
                    if not isinstance(operand, list):
                        raise ValidationError(f"Operator {op} expects a list")
                    clause[op] = [self._coerce(field, item) for item in operand]
                else:
                    clause[op] = self._coerce(field, operand)
            query[field] = clause
        return query

    def build_sort(self, raw: Optional[str]) -> List[Tuple[str, int]]:
        """JSON-строка sort -> список (поле, направление) для pymongo"""
        spec = []
        for field, direction in _parse_json(raw, "sort").items():
            self._check_field(field, "sort")
            key = direction.lower() if isinstance(direction, str) else direction
            if not isinstance(key, (int, str)) or isinstance(key, bool) or key not in SORT_DIRECTIONS:
                raise ValidationError(f"Invalid sort direction for '{field}'")
            spec.append((field, SORT_DIRECTIONS[key]))
        return spec


USER_QUERY = QueryBuilder(
    fields=frozenset({"firstName", "lastName", "email", "createdAt", "updatedAt"}),
    date_fields=frozenset({"createdAt", "updatedAt"}),
    lowercase_fields=frozenset({"email"}),
)

PRODUCT_QUERY = QueryBuilder(
    fields=frozenset({"name", "description", "price", "category", "stock", "rating", "createdAt", "updatedAt"}),
    date_fields=frozenset({"createdAt", "updatedAt"}),
    decimal_fields=frozenset({"price"}),
)
