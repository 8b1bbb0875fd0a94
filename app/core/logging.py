import logging
import sys
import json
from contextvars import ContextVar

from app.core.config import settings

request_id_var = ContextVar("request_id", default="system")

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "request_id"}


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = request_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the log shipper in production."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "service": settings.app_name,
            "logger": record.name,
            "location": f"{record.module}.py:{record.lineno}",
            "request_id": getattr(record, "request_id", "system"),
            "message": record.getMessage(),
        }
        context = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str | None = None):
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if settings.is_production:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.setLevel((level or settings.log_level).upper())
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # Storage uploads log every request at INFO
    logging.getLogger("botocore").setLevel(logging.WARNING)
