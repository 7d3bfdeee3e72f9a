"""
Per-identity posting cooldown.

One ``CooldownRateLimiter`` is built per application and handed to request
handlers through a FastAPI dependency. State is process-local, unbounded and
lost on restart.
"""

import logging
from typing import Dict

from fastapi import Request

logger = logging.getLogger(__name__)


class CooldownRateLimiter:
    """
    Allow at most one accepted post per identity within ``interval_ms``.

    The window is measured from the last *accepted* post. A rejected attempt
    does not move the window. ``check`` has no await points, so the
    check-and-set is atomic with respect to other requests on the event loop.
    """

    def __init__(self, interval_ms: int = 5000):
        self.interval_ms = interval_ms
        self._last_accepted: Dict[str, int] = {}

    def check(self, identity: str, now: int) -> bool:
        """
        Return True and record ``now`` if ``identity`` may post, else False.
        """
        last = self._last_accepted.get(identity, 0)
        if now - last < self.interval_ms:
            logger.debug(f"Post rejected for {identity}: {now - last}ms since last post")
            return False
        self._last_accepted[identity] = now
        return True

    def last_accepted(self, identity: str):
        return self._last_accepted.get(identity)

    def __len__(self) -> int:
        return len(self._last_accepted)


def get_rate_limiter(request: Request) -> CooldownRateLimiter:
    """Dependency returning the application's rate limiter."""
    return request.app.state.rate_limiter
