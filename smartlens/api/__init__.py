"""SmartLens API layer -- routes, schemas, and middleware."""

from smartlens.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    TrustedUserMiddleware,
    configure_cors,
)
from smartlens.api.routes import router
from smartlens.api.schemas import (
    ErrorResponse,
    HealthResponse,
    NoteListResponse,
    NoteResponse,
    UploadResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "ErrorResponse",
    "HealthResponse",
    "NoteListResponse",
    "NoteResponse",
    "RequestLoggingMiddleware",
    "TrustedUserMiddleware",
    "UploadResponse",
    "configure_cors",
    "router",
]
