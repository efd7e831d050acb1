"""API middleware -- CORS, request logging, caller identity, and error handling.

Starlette runs middleware as a stack, last added first.  ``create_app`` adds
them so that a request flows

    RequestLogging -> ErrorHandling -> TrustedUser -> route handler

and the request log always sees the final status code, including the one
ErrorHandling substituted for an application error.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from smartlens.api.schemas import ErrorResponse
from smartlens.utils.errors import (
    ExtractionTooShortError,
    NoteAccessDeniedError,
    NoteNotFoundError,
    OCRExtractionError,
    PersistenceError,
    SmartLensError,
    StorageError,
    UploadValidationError,
)
from smartlens.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

USER_ID_HEADER = "X-User-Id"

# Largest id SQLite can bind as an INTEGER.
MAX_ROW_ID = 2**63 - 1

_EXTRACTION_FAILED_MESSAGE = "Text extraction failed. Please try with a clearer file."
_BUCKET_MISCONFIGURED_MESSAGE = "Storage bucket not configured properly."
_SAVE_FAILED_MESSAGE = "Failed to save note to database."
_UPLOAD_FAILED_MESSAGE = "Upload failed!"
_REQUEST_FAILED_MESSAGE = "Request failed."


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Defaults to ``["*"]``; pass explicit origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


class TrustedUserMiddleware(BaseHTTPMiddleware):
    """Read the authenticated user id set by the fronting auth gateway.

    Account management and token verification happen upstream; the gateway
    forwards the verified id in the ``X-User-Id`` header.  Requests under
    ``/api/notes`` without a positive integer id no larger than
    :data:`MAX_ROW_ID` get a 401.  The id is exposed to routes as
    ``request.state.user_id``.
    """

    def __init__(self, app, protected_prefix: str = "/api/notes") -> None:  # noqa: ANN001
        super().__init__(app)
        self._protected_prefix = protected_prefix

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not request.url.path.startswith(self._protected_prefix):
            return await call_next(request)

        raw = request.headers.get(USER_ID_HEADER, "").strip()
        if not (raw.isascii() and raw.isdigit()) or not 0 < int(raw) <= MAX_ROW_ID:
            _logger.info("auth_rejected", path=str(request.url.path), header_present=bool(raw))
            body = ErrorResponse(message="Authentication required.")
            return JSONResponse(status_code=401, content=body.model_dump(exclude_none=True))

        request.state.user_id = int(raw)
        structlog.contextvars.bind_contextvars(user_id=request.state.user_id)
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("user_id")


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def build_error_body(exc: SmartLensError, *, is_upload: bool = False) -> ErrorResponse:
    """Translate an application error into the client-facing failure body.

    Internal detail (provider names, file paths) stays out of ``message``;
    it is only echoed in ``error`` for unexpected server-side failures.
    """
    if isinstance(exc, ExtractionTooShortError):
        return ErrorResponse(
            message=exc.message,
            extracted_text=exc.extracted_text,
            extracted_text_length=exc.extracted_length,
        )
    if isinstance(exc, (UploadValidationError, NoteNotFoundError, NoteAccessDeniedError)):
        return ErrorResponse(message=exc.message)
    if isinstance(exc, OCRExtractionError):
        return ErrorResponse(message=_EXTRACTION_FAILED_MESSAGE)
    if isinstance(exc, StorageError) and "Bucket not found" in exc.message:
        return ErrorResponse(message=_BUCKET_MISCONFIGURED_MESSAGE)
    if isinstance(exc, PersistenceError) and is_upload:
        return ErrorResponse(message=_SAVE_FAILED_MESSAGE, error=exc.message)
    return ErrorResponse(
        message=_UPLOAD_FAILED_MESSAGE if is_upload else _REQUEST_FAILED_MESSAGE,
        error=exc.message,
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``SmartLensError`` subclasses and return structured JSON errors.

    The status code comes from the exception class.  Full details are logged
    server-side; the client only sees the sanitised :class:`ErrorResponse`.
    Generic Python exceptions bubble up to Starlette's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except SmartLensError as exc:
            log = _logger.warning if exc.status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                status=exc.status_code,
                path=str(request.url.path),
            )
            body = build_error_body(exc, is_upload=request.url.path.endswith("/upload"))
            return JSONResponse(
                status_code=exc.status_code,
                content=body.model_dump(exclude_none=True),
            )
