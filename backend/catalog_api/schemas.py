"""
Pydantic модели запросов и сериализация документов MongoDB.

Поля в JSON - camelCase (firstName, createdAt), как и в коллекциях.
"""
import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Iterable, Optional

from bson import Decimal128, ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator, model_validator

# 6-72 символа (bcrypt учитывает только первые 72 байта): буква, цифра и спецсимвол из @$!%*?&
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-zA-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{6,72}$")
PASSWORD_RULE = (
    "Password must be 6 to 72 characters long, and include at least one letter, "
    "one number, and one special character."
)

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
RequiredStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ProductName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30)]


def check_password(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULE)
    return value


def normalize_email(value: str) -> str:
    return value.strip().lower()


def check_price(value: Optional[Decimal]) -> Optional[Decimal]:
    """Цена должна помещаться в Decimal128 без округления"""
    if value is None:
        return value
    try:
        Decimal128(value)
    except ArithmeticError:
        raise ValueError("Price is out of range or too precise")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_document(self, exclude_unset: bool = False) -> Dict[str, Any]:
        """Модель -> документ MongoDB (camelCase ключи)"""
        doc = self.model_dump(by_alias=True, exclude_unset=exclude_unset)
        return {key: to_bson(value) for key, value in doc.items()}


# ============= AUTH / USERS =============

class UserSignup(CamelModel):
    """
    Схема регистрации.

    POST /auth/signup
    {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@lovelace.io",
        "password": "abc123!"
    }
    """
    first_name: RequiredStr = Field(..., alias="firstName", description="Имя")
    last_name: Optional[TrimmedStr] = Field(None, alias="lastName", description="Фамилия")
    email: EmailStr = Field(..., description="Email (хранится в нижнем регистре)")
    password: str = Field(..., description="Пароль в открытом виде, хешируется перед сохранением")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_rule(cls, value: str) -> str:
        return check_password(value)


class UserLogin(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)


class UserReplace(UserSignup):
    """PUT /users/{id}: те же обязательные поля, что при регистрации"""


class UserUpdate(CamelModel):
    """PATCH /users/{id}: любое подмножество разрешённых полей"""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    first_name: Optional[RequiredStr] = Field(None, alias="firstName")
    last_name: Optional[TrimmedStr] = Field(None, alias="lastName")
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return normalize_email(value) if value is not None else value

    @field_validator("password")
    @classmethod
    def password_rule(cls, value):
        return check_password(value) if value is not None else value

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in ("first_name", "email", "password"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{type(self).model_fields[name].alias or name} cannot be null")
        return self


class TokenResponse(BaseModel):
    message: str
    token: str


# ============= PRODUCTS =============

class ProductCreate(CamelModel):
    """Товар целиком (POST и PUT)"""
    name: ProductName = Field(..., description="Уникальное имя, 3-30 символов")
    description: RequiredStr
    price: Decimal = Field(..., ge=0, description="Точная десятичная цена")
    category: RequiredStr
    stock: int = Field(..., ge=0)
    rating: float = Field(0, ge=0, le=5)
    image: RequiredStr = Field(..., description="URL картинки")

    @field_validator("price")
    @classmethod
    def price_range(cls, value: Decimal) -> Decimal:
        return check_price(value)


class ProductUpdate(CamelModel):
    """PATCH /products/{id}: неизвестные поля отбрасываются"""
    name: Optional[ProductName] = None
    description: Optional[RequiredStr] = None
    price: Optional[Decimal] = Field(None, ge=0)
    category: Optional[RequiredStr] = None
    stock: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    image: Optional[RequiredStr] = None

    @field_validator("price")
    @classmethod
    def price_range(cls, value):
        return check_price(value)

    @model_validator(mode="after")
    def reject_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# ============= СЕРИАЛИЗАЦИЯ =============

def to_bson(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    return value


def to_json(value: Any) -> Any:
    """Типы BSON -> типы, которые понимает JSON"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return str(value.to_decimal())
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_json(v) for v in value]
    return value


def public_document(doc: Optional[dict], hidden: Iterable[str] = ()) -> Optional[dict]:
    if doc is None:
        return None
    return {k: to_json(v) for k, v in doc.items() if k not in hidden}


USER_HIDDEN_FIELDS = ("password", "token")


def public_user(doc: Optional[dict]) -> Optional[dict]:
    """Пользователь без хеша пароля и токена"""
    return public_document(doc, hidden=USER_HIDDEN_FIELDS)


def public_product(doc: Optional[dict]) -> Optional[dict]:
    return public_document(doc)
