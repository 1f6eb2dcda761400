from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

logger = logging.getLogger(__name__)

_REDACTED = "[REDACTED]"
_CREDENTIAL_PATTERNS = (
    re.compile(r"(?i)bearer\s+[A-Za-z0-9._~+/=-]+"),
    re.compile(r"sk-[A-Za-z0-9_-]{16,}"),
    re.compile(r"ghp_[A-Za-z0-9]{36}"),
    re.compile(r"AKIA[0-9A-Z]{16}"),
)


def scrub(text: str) -> str:
    """Remove credential-looking fragments from a client-facing message."""

    from ragbrain.core.settings import settings  # noqa: PLC0415

    if settings.api_key is not None:
        secret = settings.api_key.get_secret_value()
        if secret:
            text = text.replace(secret, _REDACTED)
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(_REDACTED, text)
    return text


def _error_payload(
    *,
    error: str,
    code: str | None = None,
    details: Any | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": scrub(error), "code": code}
    if details is not None:
        payload["details"] = details
    return payload


def _validation_details(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    # Input values and ctx objects are dropped; they may echo request data back.
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": scrub(str(err.get("msg", "")))}
        for err in errors
    ]


class RagbrainException(Exception):
    """Base exception for ragbrain.

    Raised from service functions invoked by request handlers, so FastAPI can
    translate them via registered exception handlers.
    """

    status_code: int = 400
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.status_code = status_code if status_code is not None else self.status_code
        self.details = details
        super().__init__(message)


class ValidationError(RagbrainException):
    """Malformed or missing caller input."""

    status_code = 400
    default_code = "validation_error"


class NotFoundError(RagbrainException):
    """Referenced identifier is absent or deleted."""

    status_code = 404
    default_code = "not_found"


class AuthError(RagbrainException):
    """Missing credential."""

    status_code = 401
    default_code = "unauthorized"


class ForbiddenError(RagbrainException):
    """Credential supplied but not accepted."""

    status_code = 403
    default_code = "forbidden"


class TransientUpstreamError(RagbrainException):
    """Embedding/model call failed in a way that is worth retrying."""

    status_code = 503
    default_code = "upstream_unavailable"


class ConfigurationError(RagbrainException):
    """Raised when configuration is invalid (server-side)."""

    status_code = 500
    default_code = "configuration_error"


def register_exception_handlers(app: FastAPI) -> None:
    """Register ragbrain's exception handlers on a FastAPI app."""

    @app.exception_handler(RagbrainException)
    async def _ragbrain_exception_handler(
        _request: Request, exc: RagbrainException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(error=exc.message, code=exc.code, details=exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content=_error_payload(
                error="Validation error",
                code="validation_error",
                details=_validation_details(list(exc.errors())),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = getattr(exc, "detail", None)
        error = detail if isinstance(detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(error=error, code="http_exception"),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_payload(error="Internal server error", code="internal_error"),
        )
