"""Structured JSON logging with correlation ID support."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from homestay.infra.settings import get_settings

from .correlation import get_correlation_id

_ROOT_LOGGER = "homestay"


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes correlation ID and extra_fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        # dates and Decimals are rendered via str()
        return json.dumps(log_obj, default=str)


def configure_logging() -> None:
    """Attach the JSON handler to the package root logger once.

    Domain modules log through logging.getLogger(__name__), so everything
    under "homestay." is emitted as JSON through this handler.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    if any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(get_settings().log_level)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output."""
    configure_logging()
    return logging.getLogger(name)
