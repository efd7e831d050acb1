"""Pydantic v2 domain models for the SmartLens ingestion pipeline."""

from smartlens.models.analysis import (
    AnalysisEntities,
    AnalysisFailureReason,
    AnalysisResult,
    NoteCategory,
    Sentiment,
)
from smartlens.models.document import ExtractionResult, ExtractionSource, UploadedAsset
from smartlens.models.note import Note, NoteDraft, derive_title
from smartlens.models.pipeline import IngestionOutcome, IngestionStage, IngestionState

__all__ = [
    "AnalysisEntities",
    "AnalysisFailureReason",
    "AnalysisResult",
    "ExtractionResult",
    "ExtractionSource",
    "IngestionOutcome",
    "IngestionStage",
    "IngestionState",
    "Note",
    "NoteCategory",
    "NoteDraft",
    "Sentiment",
    "UploadedAsset",
    "derive_title",
]
