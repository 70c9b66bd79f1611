"""Structured JSON logging configuration."""

import contextvars
import logging
import uuid

from pythonjsonlogger.json import JsonFormatter

dispatch_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("dispatch_id", default="")


class DispatchIdFilter(logging.Filter):
    """Inject dispatch_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.dispatch_id = dispatch_id_var.get("")  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False) -> None:
    """Configure root logger with JSON formatter and dispatch-id filter."""
    handler = logging.StreamHandler()
    formatter = JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(dispatch_id)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler.setFormatter(formatter)
    handler.addFilter(DispatchIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def generate_dispatch_id() -> str:
    """Generate a new dispatch ID."""
    return uuid.uuid4().hex[:16]
