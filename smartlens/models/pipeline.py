"""Ingestion state-machine models.

:class:`IngestionState` is the single record of one upload's progress.  It is
frozen; the orchestrator advances it with ``model_copy(update={...})`` so each
stage's snapshot can be logged without worrying about later mutation.
:class:`IngestionOutcome` is what a successful run hands back to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from smartlens.models.analysis import AnalysisFailureReason, AnalysisResult
from smartlens.models.document import ExtractionResult
from smartlens.models.note import Note


class IngestionStage(str, Enum):  # noqa: UP042
    """Stages of one upload.

        RECEIVED -> VALIDATED -> EXTRACTED -> LENGTH_CHECKED -> {DUPLICATE | FRESH}
        FRESH -> STORED -> ANALYZED_OR_DEGRADED -> PERSISTED -> RESPONDED
        DUPLICATE -> RESPONDED
    """

    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    EXTRACTED = "EXTRACTED"
    LENGTH_CHECKED = "LENGTH_CHECKED"
    DUPLICATE = "DUPLICATE"
    FRESH = "FRESH"
    STORED = "STORED"
    ANALYZED_OR_DEGRADED = "ANALYZED_OR_DEGRADED"
    PERSISTED = "PERSISTED"
    RESPONDED = "RESPONDED"


class IngestionState(BaseModel):
    """Snapshot of an upload moving through the pipeline."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    filename: str
    media_type: str
    stage: IngestionStage = IngestionStage.RECEIVED
    extraction: ExtractionResult | None = None
    is_duplicate: bool = False
    asset_path: str | None = None
    asset_url: str | None = None
    analysis: AnalysisResult | None = None
    analysis_failure: AnalysisFailureReason | None = None
    note: Note | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class IngestionOutcome(BaseModel):
    """Result of a successful upload, fresh or duplicate."""

    model_config = ConfigDict(frozen=True)

    note: Note
    message: str
    extracted_text_length: int
    analysis_completed: bool
    analysis_error: str | None = None
    analysis_failure_reason: AnalysisFailureReason | None = None
    is_duplicate: bool = False
