"""
Логирование сервиса.

Обычные сообщения идут в stdout, ошибки (в том числе сбои записи
аудит-лога) - в stderr. В каталоге settings.logs_dir лежат app.log
со всеми записями и errors.log только с ошибками. Ежедневные
аудит-файлы пишет AuditLogger, а не этот модуль.
"""
import logging
import sys
from pathlib import Path

from catalog_api.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

APP_LOG = "app.log"
ERROR_LOG = "errors.log"

# Библиотеки, которые шумят на INFO/DEBUG
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "pymongo": logging.WARNING,
    "passlib": logging.ERROR,
}


class BelowLevelFilter(logging.Filter):
    """Пропускает только записи ниже заданного уровня"""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def _stream_handler(stream, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(settings: Settings) -> logging.Logger:
    """
    Настройка корневого логгера.

    - stdout: INFO и WARNING
    - stderr: ERROR и выше
    - app.log: всё от settings.log_level
    - errors.log: только ошибки
    """
    log_dir = settings.logs_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    # Повторный вызов (тесты, перезапуск приложения) не дублирует хэндлеры
    root_logger.handlers.clear()

    stdout_handler = _stream_handler(sys.stdout, logging.INFO, formatter)
    stdout_handler.addFilter(BelowLevelFilter(logging.ERROR))

    for handler in (
        stdout_handler,
        _stream_handler(sys.stderr, logging.ERROR, formatter),
        _file_handler(log_dir / APP_LOG, logging.DEBUG, formatter),
        _file_handler(log_dir / ERROR_LOG, logging.ERROR, formatter),
    ):
        root_logger.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    return root_logger
