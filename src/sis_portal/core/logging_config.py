"""Logging configuration.

- Human-readable text by default, single-line JSON when LOG_FORMAT=json
- Request ID and access logging middleware for the FastAPI app
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request

from sis_portal.config import LOG_FORMAT, LOG_LEVEL

access_logger = logging.getLogger("sis_portal.access")


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "request_id"):
            entry["request_id"] = record.request_id
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = LOG_LEVEL, log_format: str = LOG_FORMAT) -> None:
    """Configure the root logger.

    Args:
        level: Log level name, e.g. "INFO".
        log_format: "json" for machine-parseable output, anything else for text.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root.addHandler(handler)

    # The access middleware below replaces uvicorn's own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def install_access_log(app: FastAPI) -> None:
    """Attach a request id to every request and log one line per response."""

    @app.middleware("http")
    async def _log_request(request: Request, call_next):
        request_id = uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        access_logger.info(
            "%s %s %s %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"request_id": request_id},
        )
        response.headers["X-Request-ID"] = request_id
        return response
