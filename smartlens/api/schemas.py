"""Pydantic request/response schemas for the SmartLens API.

Every response carries a ``success`` flag.  Note payloads serialise the
analysis in the camelCase shape the analysis prompt asks for
(``keyPoints``, ``actionItems``) so the stored JSON and the API agree.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from smartlens.models.analysis import AnalysisFailureReason
from smartlens.models.note import Note
from smartlens.models.pipeline import IngestionOutcome


class NoteResponse(BaseModel):
    """A stored note as returned to the client."""

    id: int
    user_id: int
    title: str
    original_image_url: str
    extracted_text: str
    extraction_source: str
    analysis_result: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_note(cls, note: Note) -> NoteResponse:
        return cls(
            id=note.id,
            user_id=note.user_id,
            title=note.title,
            original_image_url=note.original_image_url,
            extracted_text=note.extracted_text,
            extraction_source=note.extraction_source.value,
            analysis_result=(
                note.analysis_result.model_dump(mode="json", by_alias=True)
                if note.analysis_result is not None
                else None
            ),
            created_at=note.created_at,
        )


class UploadResponse(BaseModel):
    """Response returned after a successful upload, fresh or duplicate."""

    success: bool = True
    message: str
    note: NoteResponse
    extracted_text_length: int
    analysis_completed: bool
    analysis_error: str | None = None
    analysis_failure_reason: AnalysisFailureReason | None = None
    is_duplicate: bool = False

    @classmethod
    def from_outcome(cls, outcome: IngestionOutcome) -> UploadResponse:
        return cls(
            message=outcome.message,
            note=NoteResponse.from_note(outcome.note),
            extracted_text_length=outcome.extracted_text_length,
            analysis_completed=outcome.analysis_completed,
            analysis_error=outcome.analysis_error,
            analysis_failure_reason=outcome.analysis_failure_reason,
            is_duplicate=outcome.is_duplicate,
        )


class NoteListResponse(BaseModel):
    """The caller's notes, newest first."""

    success: bool = True
    count: int
    notes: list[NoteResponse] = Field(default_factory=list)


class NoteDetailResponse(BaseModel):
    success: bool = True
    note: NoteResponse


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Note deleted successfully."


class ErrorResponse(BaseModel):
    """Standard failure body.

    ``extracted_text`` and ``extracted_text_length`` are only set when the
    upload was rejected for yielding too little text.
    """

    success: bool = False
    message: str
    error: str | None = None
    extracted_text: str | None = None
    extracted_text_length: int | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
