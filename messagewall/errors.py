"""
API error taxonomy.

Every failure reaches the client as ``{"error": <code>}``, with a
human-readable ``message`` for validation failures.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from messagewall.metrics import record_create_outcome
from messagewall.logging_utils import log_create_data

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors rendered as a JSON error body."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "bad_request"
    message: Optional[str] = None

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message or self.error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class TooFrequent(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "too_frequent"
    message = "太快啦，等会再发~"


class BadContent(ApiError):
    error = "bad_content"
    message = "内容不能为空"


class BadType(ApiError):
    error = "bad_type"
    message = "类型只能是 wall 或 note"


class TooLong(ApiError):
    error = "too_long"


class InvalidJson(ApiError):
    error = "invalid_json"
    message = "请求体不是合法的 JSON"


class PayloadTooLarge(ApiError):
    status_code = 413  # Content Too Large
    error = "payload_too_large"
    message = "请求体超过大小限制"


def _is_create_request(request: Request) -> bool:
    return request.method == "POST" and request.url.path == "/api/messages"


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if _is_create_request(request):
        record_create_outcome(exc.error)
        log_create_data(request, result=exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def db_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    if _is_create_request(request):
        record_create_outcome("db_error")
        log_create_data(request, result="db_error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "db_error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(SQLAlchemyError, db_error_handler)
