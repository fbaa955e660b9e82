"""Optional shared-secret check for inbound webhook calls."""
from __future__ import annotations

import hmac
import logging
from typing import Callable, Optional

from fastapi import Header

logger = logging.getLogger(__name__)


class Unauthorized(Exception):
    """Raised when the bearer credential does not match the configured secret."""


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    """No secret configured admits everything; otherwise require an exact match."""
    if not secret:
        return True
    expected = f"Bearer {secret}".encode("utf-8")
    given = (authorization or "").encode("utf-8")
    return hmac.compare_digest(given, expected)


def require_auth(secret: Optional[str]) -> Callable[..., None]:
    """Build a FastAPI dependency bound to ``secret``."""

    def _dependency(authorization: Optional[str] = Header(default=None)) -> None:
        if not is_authorized(authorization, secret):
            logger.warning("Rejected webhook call with missing or invalid bearer token")
            raise Unauthorized()

    return _dependency
