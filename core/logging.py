"""
Logging configuration

LOG_FORMAT=text gives one line per record; LOG_FORMAT=json gives one JSON
object per record including the structured extras the pipeline attaches
(event, error_context, request_id, ...).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from core.config import settings

# Attributes every LogRecord has; anything else was passed through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class SnapshotJSONFormatter(logging.Formatter):
    """One JSON document per log record"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return SnapshotJSONFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def setup_logging():
    """Configure application logging"""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.LOG_FORMAT))
    logging.basicConfig(level=log_level, handlers=[handler])

    # Quiet SQLAlchemy and httpx below WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {settings.LOG_LEVEL} level ({settings.LOG_FORMAT})")
