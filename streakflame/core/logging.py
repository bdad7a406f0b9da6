"""
Logging setup for StreakFlame.

- JSON lines in production, one-line pretty records in development.
- Everything lives under the "streakflame" logger; modules use
  logging.getLogger(__name__) and inherit its handler.
"""
import json
import logging
import sys
from datetime import datetime, timezone

_ROOT_LOGGER = "streakflame"


def _format_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _format_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = f"{_format_timestamp(record)} {record.levelname} [{record.name}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development", level: str = "INFO") -> None:
    """Attach a single stdout handler to the streakflame logger (idempotent)."""
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter: logging.Formatter
    if env == "production":
        formatter = JsonFormatter()
    else:
        formatter = PrettyFormatter()

    for handler in list(logger.handlers):
        if getattr(handler, "_streakflame", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler._streakflame = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
