"""
Общие зависимости ручек: настройки, репозитории, аудит и проверка токена.
"""
import logging
from typing import Any, Optional

from fastapi import Depends, Header, Request
from pymongo.database import Database
from pymongo.errors import PyMongoError

from catalog_api.config import Settings
from catalog_api.core.audit import AuditLogger
from catalog_api.core.database import get_db
from catalog_api.core.errors import ApiError, ForbiddenError, InternalError, UnauthorizedError
from catalog_api.core.security import TokenClaims, decode_access_token
from catalog_api.repositories.products import ProductRepository
from catalog_api.repositories.users import UserRepository

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_logger(request: Request) -> AuditLogger:
    return request.app.state.audit


def get_user_repository(db: Database = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_product_repository(db: Database = Depends(get_db)) -> ProductRepository:
    return ProductRepository(db)


def request_url(request: Request) -> str:
    """Путь с query-строкой, как его прислал клиент"""
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


class RequestAudit:
    """Аудит одного запроса: метод, URL и тело уже подставлены"""

    def __init__(self, audit: AuditLogger, request: Request, with_headers: bool = False):
        self.audit = audit
        self.method = request.method
        self.url = request_url(request)
        self.headers = dict(request.headers) if with_headers else None
        self.payload: Any = None

    def log(self, level: str, message: str, status: Optional[int] = None):
        self.audit.submit(
            level,
            message,
            self.method,
            self.url,
            status=status,
            headers=self.headers,
            payload=self.payload,
        )

    def info(self, message: str, status: int = 200):
        self.log("INFO", message, status)

    def fail(self, exc: ApiError, level: str = "WARN") -> ApiError:
        """Пишет ошибку в аудит и возвращает её для raise"""
        message = f"{exc.message} - {exc.extra}" if exc.extra else exc.message
        self.log(level, message, exc.status_code)
        return exc

    def storage_error(self, message: str, exc: PyMongoError) -> ApiError:
        """Сбой MongoDB -> 500 с текстом исходной ошибки"""
        logger.error("%s %s: %s", self.method, self.url, exc, exc_info=True)
        return self.fail(InternalError(message, error=str(exc)), level="ERROR")


def request_audit(request: Request, audit: AuditLogger = Depends(get_audit_logger)) -> RequestAudit:
    return RequestAudit(audit, request)


def request_audit_with_headers(request: Request, audit: AuditLogger = Depends(get_audit_logger)) -> RequestAudit:
    """Для signup/login: в аудит дополнительно пишутся заголовки"""
    return RequestAudit(audit, request, with_headers=True)


# ============= ACCESS-CONTROL GATE =============

def require_token(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
    audit: AuditLogger = Depends(get_audit_logger),
) -> TokenClaims:
    """
    Проверяет заголовок Authorization: Bearer <token> на каждом запросе.

    401 - заголовка нет или он не в формате Bearer,
    403 - токен не прошёл проверку (подпись, срок действия).
    """
    trail = RequestAudit(audit, request)

    token = None
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()

    if not token:
        raise trail.fail(UnauthorizedError("Authorization token missing or invalid"))

    result = decode_access_token(token, settings)
    if not result.ok:
        logger.warning("Токен не прошёл проверку: %s", result.error)
        raise trail.fail(ForbiddenError("Token verification failed", error=result.error), level="ERROR")

    request.state.user = result.claims
    trail.log("INFO", f"Token verified successfully - User ID: {result.claims.id}")
    return result.claims
