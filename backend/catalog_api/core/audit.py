"""
Аудит-лог запросов: одна запись на событие, один файл на UTC-день.

Запись в файл никогда не должна ронять запрос: ошибки записи
уходят в обычный logging и дальше не пробрасываются.
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

MASKED_FIELDS = {"password"}


def _mask(payload: Any) -> Any:
    """Прячет пароли в теле запроса"""
    if isinstance(payload, Mapping):
        return {k: ("***" if k in MASKED_FIELDS else _mask(v)) for k, v in payload.items()}
    if isinstance(payload, list):
        return [_mask(item) for item in payload]
    return payload


class AuditLogger:
    """Пишет аудит-записи в <log_dir>/<YYYY-MM-DD>.log"""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="audit"
        )

    def log_file_path(self, now: Optional[datetime] = None) -> Path:
        now = now or datetime.now(timezone.utc)
        return self.log_dir / f"{now.date().isoformat()}.log"

    def format_entry(
        self,
        level: str,
        message: str,
        method: str = "UNKNOWN",
        url: str = "UNKNOWN",
        status: Optional[int] = None,
        headers: Optional[Mapping[str, Any]] = None,
        payload: Any = None,
        now: Optional[datetime] = None,
    ) -> str:
        now = now or datetime.now(timezone.utc)
        headers_text = json.dumps(dict(headers or {}), indent=2, default=str)
        payload_text = json.dumps(_mask(payload), indent=2, default=str) if payload else "N/A"
        return (
            f"\n{now.isoformat()} [{level}]\n"
            f"Method: {method}\n"
            f"URL: {url}\n"
            f"Status: {status if status is not None else 'UNKNOWN'}\n"
            f"Headers: {headers_text}\n"
            f"Payload: {payload_text}\n"
            f"Response: {message}"
        )

    def record(
        self,
        level: str,
        message: str,
        method: str = "UNKNOWN",
        url: str = "UNKNOWN",
        status: Optional[int] = None,
        headers: Optional[Mapping[str, Any]] = None,
        payload: Any = None,
    ) -> None:
        """Синхронно дописывает запись в файл текущего дня"""
        now = datetime.now(timezone.utc)
        try:
            entry = self.format_entry(level, message, method, url, status, headers, payload, now=now)
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(self.log_file_path(now), mode="a", encoding="utf-8") as f:
                f.write(entry)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write audit log: %s", e)

    def submit(self, level: str, message: str, method: str = "UNKNOWN", url: str = "UNKNOWN", **kwargs) -> None:
        """Пишет запись в фоне, не задерживая ответ"""
        executor = self._executor
        if executor is None:
            # Воркер уже остановлен, пишем сразу
            self.record(level, message, method, url, **kwargs)
            return
        try:
            executor.submit(self.record, level, message, method, url, **kwargs)
        except RuntimeError:
            self.record(level, message, method, url, **kwargs)

    def shutdown(self) -> None:
        """Дожидается записи хвоста и останавливает воркер"""
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
