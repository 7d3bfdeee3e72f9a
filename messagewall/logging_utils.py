import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional, TextIO

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from pythonjsonlogger.json import JsonFormatter

from messagewall.metrics import record_http_request

REQUEST_LOGGER = "messagewall.requests"
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# Request id of the request being handled, picked up by every log line
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContextJsonFormatter(JsonFormatter):
    """JSON lines with a UTC ``ts`` (millisecond precision, Z suffix), ``level`` and ``request_id``."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("ts", _utc_timestamp(record.created))
        log_record["level"] = record.levelname
        request_id = request_id_ctx.get()
        if request_id and "request_id" not in log_record:
            log_record["request_id"] = request_id


def _utc_timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def setup_logging(log_level: str = "INFO", stream: TextIO = sys.stdout) -> logging.Logger:
    """
    Send all application and uvicorn logs to ``stream`` as JSON lines.

    uvicorn's access log is switched off; RequestLoggingMiddleware writes
    one line per request instead.
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(RequestContextJsonFormatter("%(ts)s %(level)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers = [handler]

    for name in UVICORN_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
    logging.getLogger("uvicorn.access").disabled = True

    return root


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one structured line per request and record HTTP metrics.

    Every line has request_id, method, path, status and latency_ms, plus
    identity_issued when the identity middleware handed out a new cookie.
    POST /api/messages adds result and, when stored, message_id.
    The request id is echoed back in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            elapsed = time.perf_counter() - started
            response.headers["X-Request-ID"] = request_id

            path = request.url.path
            if path != "/metrics":
                record_http_request(request.method, path, response.status_code, elapsed)

            log_data = {
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "latency_ms": round(elapsed * 1000, 2),
            }
            identity = getattr(request.state, "identity", None)
            if identity is not None and identity.is_new:
                log_data["identity_issued"] = True
            log_data.update(getattr(request.state, "create_log_data", {}))

            logging.getLogger(REQUEST_LOGGER).log(
                _level_for(response.status_code), "Request completed", extra=log_data
            )
            return response
        finally:
            request_id_ctx.reset(token)


def log_create_data(request: Request, result: str, message_id: Optional[int] = None) -> None:
    """
    Attach the outcome of a create to the request so the middleware logs it.

    Args:
        request: FastAPI request object
        result: "created" or the error code returned to the client
        message_id: id assigned by the store, when the insert succeeded
    """
    create_data = {"result": result}
    if message_id is not None:
        create_data["message_id"] = message_id
    request.state.create_log_data = create_data
