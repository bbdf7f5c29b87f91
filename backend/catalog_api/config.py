"""
Конфигурация бэкенда.

Все настройки собираются один раз при старте в объект Settings
и дальше передаются компонентам явно (app.state.settings).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Корневая директория бэкенда
BASE_DIR = Path(__file__).parent.parent  # backend/


@dataclass(frozen=True)
class Settings:
    """Неизменяемые настройки процесса"""

    secret_key: str
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "catalog"

    # ============= БЕЗОПАСНОСТЬ =============
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # ============= API =============
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # ============= ЛОГИ =============
    log_level: str = "INFO"
    logs_dir: Path = BASE_DIR / "logs"

    @classmethod
    def from_env(cls) -> "Settings":
        """Читает .env и переменные окружения"""
        load_dotenv()

        secret_key = os.getenv("SECRET_KEY")
        if not secret_key:
            raise RuntimeError("SECRET_KEY не задан")

        return cls(
            secret_key=secret_key,
            mongo_uri=os.getenv("MONGO_URI", cls.mongo_uri),
            mongo_db_name=os.getenv("MONGO_DB_NAME", cls.mongo_db_name),
            algorithm=os.getenv("ALGORITHM", cls.algorithm),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)
            ),
            api_host=os.getenv("API_HOST", cls.api_host),
            api_port=int(os.getenv("PORT", cls.api_port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            logs_dir=Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs"))),
        )
