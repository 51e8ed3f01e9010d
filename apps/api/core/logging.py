"""
Logging setup shared by the API, the Celery worker and the standalone scheduler.

Each process calls ``setup_logging(service)`` once at startup. Records carry
the service name so report and reminder runs from different processes can be
told apart in one log stream.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from core.config import settings

TEXT_FORMAT = "%(asctime)s - %(service)s - %(name)s - %(levelname)s - %(message)s"


class ServiceFilter(logging.Filter):
    """Stamps every record with the process's service name."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra_fields`` are merged in at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": getattr(record, "service", None),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


def setup_logging(service: str = "api") -> logging.Logger:
    """
    Configure the root logger for this process.

    JSON in production or when LOG_FORMAT=json, plain text otherwise.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    use_json = settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(ServiceFilter(service))
    handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Quiet libraries
    for name, lib_level in (("sqlalchemy.engine", logging.WARNING), ("urllib3", logging.WARNING), ("celery", logging.INFO)):
        logging.getLogger(name).setLevel(lib_level)

    return root
