"""Structured logging configuration with correlation ID support."""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variable to store the current request's correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "correlation_id"}

# Our middleware already writes one line per request
_QUIET_LOGGERS = ("uvicorn.access",)


def _extra_fields(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Structured fields passed with ``extra=`` (tank id, batch id,
    quantities) are grouped under ``context``; Decimals and datetimes are
    written in their string form so no precision is lost.
    """

    def __init__(self, service: str = "cellar"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "") or "N/A",
        }

        context = _extra_fields(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamps the current request's correlation ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(log_level: str = "INFO", sql_echo: bool = False) -> None:
    """
    Install the JSON handler on the root logger.

    Safe to call more than once: later calls only adjust levels, so
    handlers added by others (pytest's capture handler, uvicorn's) stay.

    Args:
        log_level: Root level name, e.g. "INFO" or "DEBUG".
        sql_echo: Let SQLAlchemy's statement log through at INFO.
    """
    root = logging.getLogger()
    root.setLevel(log_level.upper())

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if sql_echo else logging.WARNING
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)
