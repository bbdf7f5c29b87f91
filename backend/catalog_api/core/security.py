"""
Функции безопасности: хеширование паролей, создание и проверка JWT токенов.
"""
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from catalog_api.config import Settings

# Контекст для хеширования паролей (bcrypt, 10 раундов)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def hash_password(password: str) -> str:
    """Хеширует пароль со случайной солью"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Проверяет пароль (сравнение за постоянное время)"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Битый или пустой хеш в БД
        return False


@dataclass(frozen=True)
class TokenClaims:
    """Данные из проверенного токена"""
    id: str
    email: str
    exp: int


@dataclass(frozen=True)
class TokenResult:
    """Результат проверки токена: либо claims, либо error"""
    claims: Optional[TokenClaims] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.claims is not None


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создаёт JWT токен.

    Args:
        data: Данные для вшивания в токен ({"id": ..., "email": ...})
        settings: Настройки с секретом и алгоритмом
        expires_delta: Время жизни токена (по умолчанию из настроек, 1 час)
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    if "id" in data:
        to_encode.setdefault("sub", str(data["id"]))
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> TokenResult:
    """Проверяет подпись и срок действия токена"""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True},
        )
    except JWTError as e:
        return TokenResult(error=str(e) or "Invalid token")

    user_id = payload.get("id") or payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        return TokenResult(error="Token is missing identity claims")

    return TokenResult(claims=TokenClaims(id=str(user_id), email=email, exp=int(payload["exp"])))
