"""
Anonymous cookie identity.

Every request gets an ``Identity``: the token from the ``uid`` cookie when the
client sent one, otherwise a fresh uuid4 that is set as a cookie on the
response. Tokens are never checked against a registry.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from messagewall.metrics import record_identity_issued

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    token: str
    is_new: bool = False


class IdentityMiddleware(BaseHTTPMiddleware):
    """Attach ``request.state.identity`` and issue the cookie on first contact."""

    def __init__(self, app: ASGIApp, cookie_name: str = "uid", max_age: int = 365 * 24 * 3600):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.max_age = max_age

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        token = request.cookies.get(self.cookie_name)
        if token:
            identity = Identity(token=token)
        else:
            identity = Identity(token=str(uuid.uuid4()), is_new=True)
            record_identity_issued()
            logger.debug(f"Issued new identity {identity.token}")

        request.state.identity = identity
        response = await call_next(request)

        if identity.is_new:
            response.set_cookie(
                key=self.cookie_name,
                value=identity.token,
                max_age=self.max_age,
                expires=self.max_age,
                path="/",
                httponly=True,
                samesite="lax",
            )
        return response


def get_identity(request: Request) -> Identity:
    """Dependency returning the caller's identity."""
    return request.state.identity
