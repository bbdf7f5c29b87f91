"""
Catalog API - главный файл приложения.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from catalog_api.api import auth, products, users
from catalog_api.api.deps import request_url, require_token
from catalog_api.config import Settings
from catalog_api.core.audit import AuditLogger
from catalog_api.core.database import ensure_indexes, get_client
from catalog_api.core.errors import register_exception_handlers
from catalog_api.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Собирает приложение.

    settings - если не передать, читаются из окружения (.env);
    database - готовая база (в тестах mongomock), иначе подключаемся по MONGO_URI.
    """
    settings = settings or Settings.from_env()

    # ===== НАСТРОЙКА ЛОГИРОВАНИЯ =====
    setup_logging(settings)

    # ============= LIFESPAN EVENT =============

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Код ДО yield - выполняется при старте (startup).
        Код ПОСЛЕ yield - выполняется при остановке (shutdown).
        """
        # ===== STARTUP =====
        logger.info("Catalog API запускается...")

        client = None
        if app.state.db is None:
            client = get_client(settings)
            app.state.db = client[settings.mongo_db_name]
        ensure_indexes(app.state.db)
        logger.info("База данных: %s", app.state.db.name)

        logger.info(f"Документация: http://{settings.api_host}:{settings.api_port}/docs")
        logger.info("API готов к работе!")

        yield  # Приложение работает

        # ===== SHUTDOWN =====
        logger.info("Остановка приложения...")
        app.state.audit.shutdown()
        if client is not None:
            client.close()
        logger.info("Приложение остановлено")

    # ============= СОЗДАНИЕ ПРИЛОЖЕНИЯ =============

    app = FastAPI(
        title="Catalog API",
        description="Users and products over MongoDB with JWT auth",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.audit = AuditLogger(settings.logs_dir)

    # ============= CORS =============

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============= АУДИТ ЗАПРОСОВ =============

    @app.middleware("http")
    async def audit_requests(request: Request, call_next):
        audit: AuditLogger = request.app.state.audit
        url = request_url(request)
        audit.submit("INFO", f"Incoming request: {request.method} {url}", request.method, url)
        response = await call_next(request)
        audit.submit("INFO", f"Response: {response.status_code}", request.method, url, status=response.status_code)
        return response

    register_exception_handlers(app)

    # ============= РОУТЕРЫ =============

    # Битый JSON отклоняется (400) ещё до require_token, всё остальное сначала проверяет токен
    app.include_router(auth.router, prefix="/auth")
    app.include_router(products.router, prefix="/products", dependencies=[Depends(require_token)])
    app.include_router(users.router, prefix="/users", dependencies=[Depends(require_token)])

    # ============= HEALTH CHECK =============

    @app.get("/health", tags=["Health"])
    async def health():
        """Проверка что API работает"""
        logger.debug("Health check вызван")
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)
