"""Persisted note models.

A Note is the unit the pipeline produces: the extracted text of one uploaded
document, where the original was stored, and the analysis if one could be
made.  After creation a Note can only be deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from smartlens.models.analysis import AnalysisResult
from smartlens.models.document import ExtractionSource


class NoteDraft(BaseModel):
    """Everything needed to insert a Note; the store assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    title: str
    original_image_url: str
    extracted_text: str = Field(min_length=1)
    extraction_source: ExtractionSource
    analysis_result: AnalysisResult | None = None


class Note(NoteDraft):
    """A stored note as returned by the note repository."""

    id: int
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


def derive_title(extracted_text: str, max_chars: int = 50) -> str:
    """Build a title from the first *max_chars* characters of the text.

    An ellipsis marks titles cut from longer text.
    """
    title = extracted_text[:max_chars].strip()
    if len(extracted_text) > max_chars:
        title += "..."
    return title
