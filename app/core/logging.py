# app/core/logging.py
import logging
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger


class JsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname


_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Install a single JSON handler on the root logger. Safe to call more than once."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    root.addHandler(handler)
    _configured = True

    # Quiet chatty libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
