"""
Ошибки API и их обработчики.

Каждая ошибка знает свой HTTP статус и отдаётся клиенту как
{"message": ..., **extra}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Базовая ошибка API"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"message": self.message, **self.extra}


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateKeyError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def format_validation_errors(raw_errors) -> list:
    """Ошибки pydantic -> [{"field": ..., "message": ...}]"""
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
        for err in raw_errors
    ]


def _audit(request: Request, level: str, message: str, status_code: int, payload=None):
    audit = getattr(request.app.state, "audit", None)
    if audit is not None:
        audit.submit(level, message, request.method, request.url.path, status=status_code, payload=payload)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки pydantic -> 400 вместо стандартного 422"""
    errors = format_validation_errors(exc.errors())
    logger.warning("Невалидный запрос %s %s: %s", request.method, request.url.path, errors)
    _audit(request, "WARN", f"Validation failed - {errors}", status.HTTP_400_BAD_REQUEST, payload=getattr(exc, "body", None))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Последний рубеж: всё, что не поймали обработчики ручек"""
    logger.error("Необработанная ошибка %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    _audit(request, "ERROR", f"Internal Server Error - {exc}", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "error": str(exc)},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
