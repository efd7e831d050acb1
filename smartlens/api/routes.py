"""FastAPI routes for SmartLens.

Endpoint                          Method  Description
--------------------------------  ------  -----------------------------------
/api/notes/upload                 POST    Upload a document -> Note
/api/notes                        GET     List the caller's notes
/api/notes/{note_id}              GET     Fetch one of the caller's notes
/api/notes/{note_id}              DELETE  Delete one of the caller's notes
/api/health                       GET     Health check + provider availability

Service dependencies are resolved from ``app.state`` (populated by
``smartlens.main._build_all``) through ``Annotated[..., Depends(...)]``
aliases.  The caller's id comes from ``request.state.user_id``, set by
:class:`~smartlens.api.middleware.TrustedUserMiddleware`.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, Path, Request, UploadFile

from smartlens import __version__
from smartlens.api.middleware import MAX_ROW_ID
from smartlens.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    HealthResponse,
    NoteDetailResponse,
    NoteListResponse,
    NoteResponse,
    UploadResponse,
)
from smartlens.config.settings import PipelineConfig
from smartlens.interfaces.note_repository import INoteRepository
from smartlens.models.document import UploadedAsset
from smartlens.models.note import Note
from smartlens.pipeline.orchestrator import IngestionOrchestrator
from smartlens.utils.errors import NoteAccessDeniedError, NoteNotFoundError
from smartlens.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")

# Uploads are read in 64 KB chunks, stopping once past the size limit.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> IngestionOrchestrator:
    return request.app.state.orchestrator


def _get_note_repository(request: Request) -> INoteRepository:
    return request.app.state.note_repository


def _get_pipeline_config(request: Request) -> PipelineConfig:
    return request.app.state.pipeline_config


def _get_user_id(request: Request) -> int:
    """Return the caller id established by TrustedUserMiddleware."""
    return request.state.user_id


OrchestratorDep = Annotated[IngestionOrchestrator, Depends(_get_orchestrator)]
NoteRepositoryDep = Annotated[INoteRepository, Depends(_get_note_repository)]
PipelineConfigDep = Annotated[PipelineConfig, Depends(_get_pipeline_config)]
UserIdDep = Annotated[int, Depends(_get_user_id)]
NoteIdPath = Annotated[int, Path(gt=0, le=MAX_ROW_ID)]


async def _read_capped(file: UploadFile, limit: int) -> tuple[bytes, int]:
    """Read *file* until EOF or until more than *limit* bytes have been seen.

    Returns the bytes read and the byte count; a count above *limit* means
    the upload was cut short.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        chunks.append(chunk)
        if total > limit:
            break
    return b"".join(chunks), total


async def _owned_note(notes: INoteRepository, note_id: int, user_id: int, denied_message: str) -> Note:
    note = await notes.get(note_id)
    if note is None:
        raise NoteNotFoundError()
    if note.user_id != user_id:
        _logger.warning("note_access_denied", note_id=note_id, user_id=user_id)
        raise NoteAccessDeniedError(denied_message)
    return note


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@router.post(
    "/notes/upload",
    response_model=UploadResponse,
    responses=_ERROR_RESPONSES,
    summary="Upload a photo, scan or PDF and turn it into a note",
)
async def upload_note(
    orchestrator: OrchestratorDep,
    pipeline_config: PipelineConfigDep,
    user_id: UserIdDep,
    file: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
) -> UploadResponse:
    """Extract, deduplicate, store, analyze and persist one uploaded document."""
    asset: UploadedAsset | None = None
    if file is not None:
        data, size = await _read_capped(file, pipeline_config.max_upload_bytes)
        asset = UploadedAsset(
            user_id=user_id,
            filename=file.filename or "upload",
            media_type=file.content_type or "",
            size=size,
            data=data,
        )

    outcome = await orchestrator.ingest(user_id, asset, title)
    return UploadResponse.from_outcome(outcome)


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses=_ERROR_RESPONSES,
    summary="List the caller's notes, newest first",
)
async def list_notes(notes: NoteRepositoryDep, user_id: UserIdDep) -> NoteListResponse:
    rows = await notes.list_for_user(user_id)
    return NoteListResponse(count=len(rows), notes=[NoteResponse.from_note(n) for n in rows])


@router.get(
    "/notes/{note_id}",
    response_model=NoteDetailResponse,
    responses=_ERROR_RESPONSES,
    summary="Fetch a single note",
)
async def get_note(note_id: NoteIdPath, notes: NoteRepositoryDep, user_id: UserIdDep) -> NoteDetailResponse:
    note = await _owned_note(
        notes, note_id, user_id, "Access denied. This note belongs to another user."
    )
    return NoteDetailResponse(note=NoteResponse.from_note(note))


@router.delete(
    "/notes/{note_id}",
    response_model=DeleteResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a note",
)
async def delete_note(note_id: NoteIdPath, notes: NoteRepositoryDep, user_id: UserIdDep) -> DeleteResponse:
    await _owned_note(notes, note_id, user_id, "Access denied. You can only delete your own notes.")
    if not await notes.delete(note_id):
        # Deleted concurrently between the ownership check and the delete.
        raise NoteNotFoundError()
    return DeleteResponse()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``healthy`` needs primary OCR and analysis, ``degraded`` means OCR only
    (notes are saved without analysis), ``unhealthy`` means uploads of
    images cannot be read.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    if providers.get("ocr") and providers.get("analysis"):
        status = "healthy"
    elif providers.get("ocr"):
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
