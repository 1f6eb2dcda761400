"""Shared API dependencies."""

import hmac
from collections.abc import Generator
from typing import Optional

from fastapi import Header
from sqlmodel import Session

from ragbrain.core.database import get_session
from ragbrain.core.exceptions import AuthError, ForbiddenError
from ragbrain.core.settings import settings


def get_db_session() -> Generator[Session, None, None]:
    """Provide a database session for request handlers."""
    yield from get_session()


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    """Check the shared API key when one is configured; open otherwise."""
    expected = settings.api_key.get_secret_value() if settings.api_key else ""
    if not expected:
        return
    supplied = x_api_key or _bearer_token(authorization)
    if not supplied:
        raise AuthError("API key required")
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise ForbiddenError("Invalid API key")


__all__ = ["get_db_session", "require_api_key"]
